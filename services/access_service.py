# services/access_service.py
"""
Authorization collaborator for ledger reads.

A requester may read a patient's ledger entries and payloads when they are
that patient, or a doctor holding a GRANTED consent from that patient.
"""
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from models import DoctorPatientConsent, ConsentStatus, UserRole


@dataclass(frozen=True)
class Requester:
     """Authenticated principal making a request (from the JWT claims)."""
     id: int
     role: UserRole

     @property
     def is_doctor(self) -> bool:
          return self.role == UserRole.DOCTOR


def is_privileged(requester: Optional[Requester]) -> bool:
     """Privileged collaborators (doctors) may ask patients for access."""
     return requester is not None and requester.is_doctor


def has_granted_consent(db: Session, doctor_id: int, patient_id: int) -> bool:
     consent = (
          db.query(DoctorPatientConsent.id)
          .filter(
               DoctorPatientConsent.doctor_id == doctor_id,
               DoctorPatientConsent.patient_id == patient_id,
               DoctorPatientConsent.status == ConsentStatus.GRANTED,
          )
          .first()
     )
     return consent is not None


def can_read_subject(db: Session, requester: Optional[Requester], subject_id: int) -> bool:
     """Check if requester may read full payload content for the given patient."""
     if requester is None:
          return False
     if requester.id == subject_id:
          return True
     return requester.is_doctor and has_granted_consent(db, requester.id, subject_id)
