# services/snapshots.py
"""
Ledger snapshot construction.

The snapshot is the exact dict that gets canonicalized and hashed. The write
path (prediction save, note finalize), the verifier and the chain audit all
build it through ``build_snapshot`` so the field set and formatting can
never drift between anchoring and verification.

Any change to a snapshot's fields or formatting is a new schema version:
add a builder under a new (kind, version) key and leave the old one alone,
otherwise every hash issued under the old shape stops verifying.
"""
import enum
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from models import Prediction, ConsultationNote
from .exceptions import SnapshotValidationError

CURRENT_SCHEMA_VERSION = 1

RISK_CATEGORIES = ("Low", "Medium", "High")


class PayloadKind(str, enum.Enum):
     PREDICTION = "prediction"
     NOTE = "note"


def format_timestamp(value: datetime) -> str:
     """
     ISO-8601 UTC with millisecond precision and a trailing Z
     (the same string JavaScript's Date.toISOString() produces).
     Naive datetimes are taken to be UTC.
     """
     if not isinstance(value, datetime):
          raise SnapshotValidationError(f"Expected datetime, got {type(value).__name__}")
     if value.tzinfo is None:
          value = value.replace(tzinfo=timezone.utc)
     value = value.astimezone(timezone.utc)
     return f"{value:%Y-%m-%dT%H:%M:%S}.{value.microsecond // 1000:03d}Z"


def _require(value: Any, field: str) -> Any:
     if value is None:
          raise SnapshotValidationError(f"Snapshot field '{field}' is required")
     return value


def _require_int(value: Any, field: str, low: Optional[int] = None, high: Optional[int] = None) -> int:
     if isinstance(value, bool) or not isinstance(value, int):
          raise SnapshotValidationError(f"Snapshot field '{field}' must be an integer")
     if (low is not None and value < low) or (high is not None and value > high):
          raise SnapshotValidationError(f"Snapshot field '{field}' out of range: {value}")
     return value


def _prediction_v1(prediction: Prediction, fallback_at: Optional[datetime] = None) -> dict:
     if not isinstance(prediction.input, Mapping) or not prediction.input:
          raise SnapshotValidationError("Snapshot field 'input' must be a non-empty object")
     if prediction.risk_category not in RISK_CATEGORIES:
          raise SnapshotValidationError(f"Unknown risk category: {prediction.risk_category!r}")

     return {
          "input": dict(prediction.input),
          "risk": {
               "risk": _require_int(prediction.risk_percentage, "risk_percentage", 0, 100),
               "category": prediction.risk_category,
          },
          "score": _require_int(prediction.health_score, "health_score", 0, 100),
          "at": format_timestamp(_require(prediction.created_at, "created_at")),
          "patient_id": _require(prediction.patient_id, "patient_id"),
     }


def _note_v1(note: ConsultationNote, fallback_at: Optional[datetime] = None) -> dict:
     finalized_at = note.finalized_at or fallback_at
     return {
          "appointment_id": _require(note.appointment_id, "appointment_id"),
          "note_id": _require(note.id, "note_id"),
          "patient_id": _require(note.patient_id, "patient_id"),
          "doctor_id": _require(note.doctor_id, "doctor_id"),
          "diagnosis": note.diagnosis or "",
          "recommendations": note.recommendations or "",
          "finalized_at": format_timestamp(_require(finalized_at, "finalized_at")),
     }


_BUILDERS: dict[tuple[PayloadKind, int], Callable[..., dict]] = {
     (PayloadKind.PREDICTION, 1): _prediction_v1,
     (PayloadKind.NOTE, 1): _note_v1,
}


def build_snapshot(
     kind: PayloadKind,
     payload: Any,
     version: int = CURRENT_SCHEMA_VERSION,
     fallback_at: Optional[datetime] = None,
) -> dict:
     """
     Build the hashable snapshot of a prediction or note.

     Args:
          kind: which payload variant ``payload`` is
          payload: the owning Prediction / ConsultationNote row
          version: snapshot schema version (stored on the ledger entry)
          fallback_at: used as ``finalized_at`` for notes that lack one
               (verification passes the ledger entry's created_at)

     Raises:
          SnapshotValidationError: unknown version or missing/invalid fields
     """
     builder = _BUILDERS.get((PayloadKind(kind), version))
     if builder is None:
          raise SnapshotValidationError(f"No snapshot schema v{version} for {PayloadKind(kind).value}")
     return builder(payload, fallback_at)
