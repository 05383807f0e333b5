# services/prediction_service.py
"""
Prediction Service - saves risk assessments and anchors them in the ledger.

Risk values are computed by the caller; this layer only validates,
persists, anchors and notifies.
"""
from typing import Optional, Tuple

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session

from models import Prediction, LedgerTransaction
from .access_service import Requester, can_read_subject
from .exceptions import LedgerImmutableError, SnapshotValidationError
from .ledger_service import anchor_prediction
from .notification_service import notify

# Fields that feed the ledger snapshot; frozen once the row exists
ANCHORED_FIELDS = ("input", "risk_percentage", "risk_category", "health_score", "created_at", "patient_id")


@event.listens_for(Prediction, "before_update")
def _refuse_anchored_field_change(mapper, connection, target):
     state = inspect(target)
     changed = [name for name in ANCHORED_FIELDS if state.attrs[name].history.has_changes()]
     if changed:
          raise LedgerImmutableError(f"Prediction {target.id} fields are anchored: {', '.join(changed)}")


class PredictionService:
     """Service class for prediction-related business logic."""

     @staticmethod
     def save_prediction(
          db: Session,
          requester: Requester,
          input: dict,
          risk_percentage: int,
          risk_category: str,
          health_score: int,
          patient_id: Optional[int] = None,
          doctor_remarks: Optional[str] = None,
     ) -> Tuple[Prediction, LedgerTransaction]:
          """
          Store a prediction and anchor it into the verification ledger.

          Args:
               db: SQLAlchemy database session
               requester: the patient (or a consented doctor) saving it
               input: vitals the risk was computed from
               risk_percentage / risk_category / health_score: computed risk
               patient_id: defaults to the requester
               doctor_remarks: optional free text, outside the anchored snapshot

          Returns:
               (prediction, ledger entry) - flushed, not committed

          Raises:
               PermissionError: requester may not write for this patient
               SnapshotValidationError: invalid prediction fields
          """
          patient_id = requester.id if patient_id is None else patient_id
          if not can_read_subject(db, requester, patient_id):
               raise PermissionError("Not allowed to save predictions for this patient")
          if not input:
               raise SnapshotValidationError("Prediction input is required")

          prediction = Prediction(
               patient_id=patient_id,
               created_by=requester.id,
               input=input,
               risk_percentage=risk_percentage,
               risk_category=risk_category,
               health_score=health_score,
               doctor_remarks=doctor_remarks or None,
          )
          db.add(prediction)
          db.flush()  # Flush to get the ID and created_at without committing

          entry = anchor_prediction(db, prediction)

          notify(
               db,
               user_id=patient_id,
               type="prediction",
               title="Prediction completed",
               body=f"Risk: {risk_percentage}% ({risk_category}) - Score: {health_score}/100",
               href=f"/verify/{entry.tx_id}",
          )
          return prediction, entry

     @staticmethod
     def get_prediction(db: Session, requester: Requester, prediction_id: int) -> Optional[Prediction]:
          """Prediction if the requester may read it, else None."""
          prediction = db.get(Prediction, prediction_id)
          if prediction is None or not can_read_subject(db, requester, prediction.patient_id):
               return None
          return prediction
