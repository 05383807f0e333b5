# services/ledger_service.py
"""
Verification Ledger Service - hash-chained, append-only anchors of medical payloads.

When a prediction is saved or a consultation note is finalized:
1. Build the payload snapshot (services.snapshots) and hash its canonical form
2. Look up the patient's most recent payload_hash as prev_hash (None for genesis)
3. Store the record under a fresh random tx_id; records are append-only

Verification: rebuild the snapshot from the owning record, hash, compare
(services.verification_service); per-patient chain audit via verify_subject_chain.
"""
import logging
import secrets
import string
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Tuple

from sqlalchemy import desc, event
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, object_session

import config
from logging_config import audit_log
from models import LedgerTransaction, Prediction, ConsultationNote, utc_now
from .access_service import Requester, can_read_subject, is_privileged
from .exceptions import (
     LedgerError,
     LedgerImmutableError,
     PayloadReferenceError,
     SnapshotValidationError,
     TransactionIdCollisionError,
)
from .hashing import content_hash, is_sha256_hex
from .snapshots import CURRENT_SCHEMA_VERSION, PayloadKind, build_snapshot

logger = logging.getLogger(__name__)

TX_ID_PREFIX = "tx_"
TX_ID_ALPHABET = string.ascii_letters + string.digits + "_-"


@dataclass(frozen=True)
class PayloadRef:
     """
     Reference to the record a ledger entry anchors: exactly one of a
     prediction or a consultation note. Prefer the ``prediction`` / ``note``
     constructors.
     """
     prediction_id: Optional[int] = None
     note_id: Optional[int] = None

     def __post_init__(self):
          if (self.prediction_id is None) == (self.note_id is None):
               raise PayloadReferenceError(
                    "Ledger entry must reference exactly one payload "
                    f"(prediction_id={self.prediction_id}, note_id={self.note_id})"
               )

     @classmethod
     def prediction(cls, prediction_id: int) -> "PayloadRef":
          return cls(prediction_id=prediction_id)

     @classmethod
     def note(cls, note_id: int) -> "PayloadRef":
          return cls(note_id=note_id)

     @property
     def kind(self) -> PayloadKind:
          return PayloadKind.PREDICTION if self.prediction_id is not None else PayloadKind.NOTE


@dataclass(frozen=True)
class LedgerMetadata:
     """Reduced-disclosure view of an entry: enough to drive an access request."""
     tx_id: str
     patient_id: int
     created_at: datetime
     payload_kind: PayloadKind
     appointment_id: Optional[int] = None


# ---------------------------------------------------------------------------
# Append-only guard
# ---------------------------------------------------------------------------

@event.listens_for(LedgerTransaction, "before_update")
def _refuse_ledger_update(mapper, connection, target):
     session = object_session(target)
     if session is None or session.is_modified(target, include_collections=False):
          raise LedgerImmutableError(f"Ledger entry {target.tx_id} is immutable")


@event.listens_for(LedgerTransaction, "before_delete")
def _refuse_ledger_delete(mapper, connection, target):
     raise LedgerImmutableError(f"Ledger entry {target.tx_id} cannot be deleted")


# ---------------------------------------------------------------------------
# Chain builder
# ---------------------------------------------------------------------------

def generate_tx_id(length: Optional[int] = None) -> str:
     """Short random public handle, e.g. tx_V1StGXR8_Z."""
     length = length or config.LEDGER_TX_ID_LENGTH
     return TX_ID_PREFIX + "".join(secrets.choice(TX_ID_ALPHABET) for _ in range(length))


def get_previous_hash(db: Session, patient_id: int) -> Optional[str]:
     """payload_hash of the patient's most recent entry, or None if there is none (genesis)."""
     last = (
          db.query(LedgerTransaction.payload_hash)
          .filter(LedgerTransaction.patient_id == patient_id)
          .order_by(desc(LedgerTransaction.created_at), desc(LedgerTransaction.id))
          .limit(1)
          .first()
     )
     return last[0] if last else None


def build_entry(
     db: Session,
     subject_id: int,
     author_id: int,
     snapshot: Any,
     payload_ref: PayloadRef,
     appointment_id: Optional[int] = None,
     schema_version: int = CURRENT_SCHEMA_VERSION,
     created_at: Optional[datetime] = None,
     tx_id: Optional[str] = None,
) -> LedgerTransaction:
     """
     Build (but do not persist) the next chain entry for a patient.

     The snapshot must be the exact, frozen data that build_snapshot will
     reconstruct at verification time.

     Raises:
          PayloadReferenceError: payload_ref is not a PayloadRef
          CanonicalizationError: snapshot holds a value with no canonical form
     """
     if not isinstance(payload_ref, PayloadRef):
          raise PayloadReferenceError(f"Expected PayloadRef, got {type(payload_ref).__name__}")

     payload_hash = content_hash(snapshot)
     return LedgerTransaction(
          tx_id=tx_id or generate_tx_id(),
          payload_hash=payload_hash,
          prev_hash=get_previous_hash(db, subject_id),
          schema_version=schema_version,
          patient_id=subject_id,
          created_by=author_id,
          prediction_id=payload_ref.prediction_id,
          note_id=payload_ref.note_id,
          appointment_id=appointment_id,
          created_at=created_at or utc_now(),
     )


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

def _check_entry(entry: LedgerTransaction) -> None:
     if (entry.prediction_id is None) == (entry.note_id is None):
          raise PayloadReferenceError(
               f"Ledger entry {entry.tx_id} must reference exactly one payload "
               f"(prediction_id={entry.prediction_id}, note_id={entry.note_id})"
          )
     if not is_sha256_hex(entry.payload_hash):
          raise LedgerError(f"Ledger entry {entry.tx_id} has a malformed payload_hash")
     if entry.prev_hash is not None and not is_sha256_hex(entry.prev_hash):
          raise LedgerError(f"Ledger entry {entry.tx_id} has a malformed prev_hash")
     if entry.patient_id is None or entry.created_by is None:
          raise LedgerError(f"Ledger entry {entry.tx_id} needs patient_id and created_by")


def append_entry(db: Session, entry: LedgerTransaction) -> str:
     """
     Append an entry to the ledger (flushed inside a savepoint, not committed).

     Returns:
          The entry's tx_id.

     Raises:
          PayloadReferenceError: zero or two payload references
          TransactionIdCollisionError: tx_id already exists
     """
     _check_entry(entry)

     if _tx_id_exists(db, entry.tx_id):
          raise TransactionIdCollisionError(entry.tx_id)

     try:
          with db.begin_nested():
               db.add(entry)
               db.flush()
     except IntegrityError:
          # Lost a race for the same tx_id between the check and the insert
          if _tx_id_exists(db, entry.tx_id):
               raise TransactionIdCollisionError(entry.tx_id)
          raise
     return entry.tx_id


def _tx_id_exists(db: Session, tx_id: str) -> bool:
     return db.query(LedgerTransaction.id).filter(LedgerTransaction.tx_id == tx_id).first() is not None


def anchor_payload(
     db: Session,
     subject_id: int,
     author_id: int,
     snapshot: Any,
     payload_ref: PayloadRef,
     appointment_id: Optional[int] = None,
     max_attempts: Optional[int] = None,
) -> LedgerTransaction:
     """
     Build and append an entry, retrying with a fresh tx_id on collision.

     Raises:
          TransactionIdCollisionError: every attempt collided
     """
     max_attempts = max_attempts or config.LEDGER_TX_ID_MAX_ATTEMPTS
     for attempt in range(1, max_attempts + 1):
          entry = build_entry(
               db,
               subject_id=subject_id,
               author_id=author_id,
               snapshot=snapshot,
               payload_ref=payload_ref,
               appointment_id=appointment_id,
          )
          try:
               append_entry(db, entry)
          except TransactionIdCollisionError:
               audit_log.tx_id_collision(entry.tx_id, attempt)
               if attempt == max_attempts:
                    raise
               continue
          audit_log.entry_anchored(entry.tx_id, subject_id, payload_ref.kind.value, entry.prev_hash)
          return entry


def anchor_prediction(db: Session, prediction: Prediction) -> LedgerTransaction:
     """Anchor a freshly saved (flushed) prediction."""
     snapshot = build_snapshot(PayloadKind.PREDICTION, prediction)
     return anchor_payload(
          db,
          subject_id=prediction.patient_id,
          author_id=prediction.created_by,
          snapshot=snapshot,
          payload_ref=PayloadRef.prediction(prediction.id),
     )


def anchor_note(db: Session, note: ConsultationNote) -> LedgerTransaction:
     """Anchor a finalized consultation note."""
     if not note.is_final:
          raise SnapshotValidationError(f"Note {note.id} must be finalized before anchoring")
     snapshot = build_snapshot(PayloadKind.NOTE, note)
     return anchor_payload(
          db,
          subject_id=note.patient_id,
          author_id=note.doctor_id,
          snapshot=snapshot,
          payload_ref=PayloadRef.note(note.id),
          appointment_id=note.appointment_id,
     )


def get_entry(db: Session, tx_id: str) -> Optional[LedgerTransaction]:
     """Unchecked lookup; callers outside this module go through get_by_transaction_id."""
     return db.query(LedgerTransaction).filter(LedgerTransaction.tx_id == tx_id).first()


def can_read_entry(db: Session, requester: Optional[Requester], entry: LedgerTransaction) -> bool:
     if requester is None:
          return False
     return requester.id == entry.created_by or can_read_subject(db, requester, entry.patient_id)


def get_by_transaction_id(
     db: Session,
     tx_id: str,
     requester: Optional[Requester],
) -> Optional[LedgerTransaction]:
     """
     Entry for tx_id if the requester may read it.
     Missing and forbidden both return None so existence is not leaked.
     """
     entry = get_entry(db, tx_id)
     if entry is None or not can_read_entry(db, requester, entry):
          return None
     return entry


def get_metadata_only(
     db: Session,
     tx_id: str,
     requester: Optional[Requester],
) -> Optional[LedgerMetadata]:
     """Metadata without payload content, for doctors only."""
     if not is_privileged(requester):
          return None
     entry = get_entry(db, tx_id)
     if entry is None:
          return None
     return LedgerMetadata(
          tx_id=entry.tx_id,
          patient_id=entry.patient_id,
          created_at=entry.created_at,
          payload_kind=PayloadKind(entry.payload_kind),
          appointment_id=entry.appointment_id,
     )


def list_entries_for_subject(
     db: Session,
     subject_id: int,
     requester: Optional[Requester],
) -> list[LedgerTransaction]:
     """A patient's entries, newest first; empty when the requester has no access."""
     if not can_read_subject(db, requester, subject_id):
          return []
     return (
          db.query(LedgerTransaction)
          .filter(LedgerTransaction.patient_id == subject_id)
          .order_by(desc(LedgerTransaction.created_at), desc(LedgerTransaction.id))
          .all()
     )


# ---------------------------------------------------------------------------
# Recomputation
# ---------------------------------------------------------------------------

def load_payload(db: Session, entry: LedgerTransaction):
     if entry.prediction_id is not None:
          return db.get(Prediction, entry.prediction_id)
     return db.get(ConsultationNote, entry.note_id)


def reconstruct_snapshot(db: Session, entry: LedgerTransaction) -> Optional[dict]:
     """
     Rebuild the snapshot the entry was anchored with, from the owning record.
     None when the owning record no longer exists.

     Raises:
          SnapshotValidationError: the owning record can no longer produce a valid snapshot
     """
     payload = load_payload(db, entry)
     if payload is None:
          return None
     return build_snapshot(
          PayloadKind(entry.payload_kind),
          payload,
          version=entry.schema_version,
          fallback_at=entry.created_at,
     )


def recompute_matches(db: Session, entry: LedgerTransaction) -> Tuple[Optional[bool], Optional[dict]]:
     """
     Recompute the entry's hash from its owning record.

     Returns:
          (matches, snapshot) - matches is None when the payload is missing;
          False (with snapshot None) when the record can no longer be snapshotted.
     """
     try:
          snapshot = reconstruct_snapshot(db, entry)
     except SnapshotValidationError as e:
          logger.warning("Snapshot rebuild failed for %s: %s", entry.tx_id, e)
          return False, None
     if snapshot is None:
          return None, None
     return content_hash(snapshot) == entry.payload_hash, snapshot


def verify_subject_chain(db: Session, subject_id: int) -> Tuple[bool, str, int]:
     """
     Walk a patient's chain oldest to newest: check each prev_hash links to an
     earlier payload_hash of the same patient and recompute each payload hash.

     Concurrent appends may leave an entry pointing at an older predecessor
     (or a second null genesis link); those are counted as out-of-order links,
     not failures. A prev_hash that matches no earlier entry breaks the chain.

     Returns:
          (all_valid: bool, message: str, entries_checked: int)
     """
     entries = (
          db.query(LedgerTransaction)
          .filter(LedgerTransaction.patient_id == subject_id)
          .order_by(LedgerTransaction.created_at, LedgerTransaction.id)
          .all()
     )
     if not entries:
          return True, "Chain is empty (no entries)", 0

     prev_hash = None
     earlier = set()
     out_of_order = 0
     checked = 0

     for entry in entries:
          if entry.prev_hash != prev_hash:
               if entry.prev_hash is not None and entry.prev_hash not in earlier:
                    return False, f"Chain broken at {entry.tx_id}: prev_hash mismatch", checked
               logger.info("Out-of-order link at %s for patient %s", entry.tx_id, subject_id)
               out_of_order += 1
          matches, _ = recompute_matches(db, entry)
          if matches is None:
               return False, f"Payload not found for {entry.tx_id}", checked
          if not matches:
               return False, f"Hash mismatch at {entry.tx_id}", checked
          prev_hash = entry.payload_hash
          earlier.add(entry.payload_hash)
          checked += 1

     if out_of_order:
          return True, f"Full chain verification passed ({out_of_order} out-of-order links)", checked
     return True, "Full chain verification passed", checked
