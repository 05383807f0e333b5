# services/consent_service.py
"""
Consent collaborator - doctor access requests and patient decisions.

One consent row exists per (patient, doctor) pair. Requests are idempotent:
a pending or granted row is returned as-is, a revoked one is reopened as
pending, and only a newly opened request notifies the patient.
"""
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from logging_config import audit_log
from models import DoctorPatientConsent, ConsentStatus, User, UserRole
from .access_service import Requester
from .exceptions import ConsentRequestError
from .notification_service import notify

CONSENT_REQUEST_TITLE = "Doctor requested access"
CONSENT_REQUEST_BODY = (
     "A doctor requested your consent to view a verified report. "
     "You can approve or revoke access in Access Control."
)


def get_consent(db: Session, patient_id: int, doctor_id: int) -> Optional[DoctorPatientConsent]:
     return (
          db.query(DoctorPatientConsent)
          .filter(
               DoctorPatientConsent.patient_id == patient_id,
               DoctorPatientConsent.doctor_id == doctor_id,
          )
          .order_by(DoctorPatientConsent.created_at.desc(), DoctorPatientConsent.id.desc())
          .first()
     )


def get_consent_status(db: Session, patient_id: int, doctor_id: int) -> Optional[ConsentStatus]:
     """Latest consent status for the pair, or None if the doctor never asked."""
     consent = get_consent(db, patient_id, doctor_id)
     return consent.status if consent else None


def request_patient_consent(
     db: Session,
     requester: Requester,
     patient_id: int,
) -> Tuple[DoctorPatientConsent, bool]:
     """
     Ask a patient for access on behalf of a doctor.

     Returns:
          (consent, opened) - opened is False when an existing pending or
          granted relationship was reused.

     Raises:
          ConsentRequestError: requester is not a doctor, or patient unknown
     """
     if not requester.is_doctor:
          raise ConsentRequestError("Only doctors can request consent")

     patient = db.get(User, patient_id)
     if patient is None or patient.role != UserRole.PATIENT:
          raise ConsentRequestError(f"Patient {patient_id} not found")

     consent = get_consent(db, patient_id, requester.id)
     if consent is not None and consent.status in (ConsentStatus.PENDING, ConsentStatus.GRANTED):
          audit_log.consent_requested(consent.id, requester.id, patient_id, reused=True)
          return consent, False

     if consent is None:
          consent = DoctorPatientConsent(
               patient_id=patient_id,
               doctor_id=requester.id,
               status=ConsentStatus.PENDING,
          )
          db.add(consent)
     else:
          # Unique per pair, so a revoked relationship is reopened in place
          consent.status = ConsentStatus.PENDING
     db.flush()

     notify(
          db,
          user_id=patient_id,
          type="consent",
          title=CONSENT_REQUEST_TITLE,
          body=CONSENT_REQUEST_BODY,
          href="/patient/consents",
     )
     audit_log.consent_requested(consent.id, requester.id, patient_id, reused=False)
     return consent, True


def set_consent_status(
     db: Session,
     requester: Requester,
     consent_id: int,
     status: ConsentStatus,
) -> Optional[DoctorPatientConsent]:
     """
     Patient grants or revokes a doctor's access.

     Returns None when the consent does not exist or belongs to another patient.
     """
     if status not in (ConsentStatus.GRANTED, ConsentStatus.REVOKED):
          raise ConsentRequestError(f"Patients can only grant or revoke, not {status.value}")

     consent = (
          db.query(DoctorPatientConsent)
          .filter(
               DoctorPatientConsent.id == consent_id,
               DoctorPatientConsent.patient_id == requester.id,
          )
          .first()
     )
     if consent is None:
          return None

     if consent.status != status:
          consent.status = status
          db.flush()
          notify(
               db,
               user_id=consent.doctor_id,
               type="consent",
               title="Access granted" if status == ConsentStatus.GRANTED else "Access revoked",
               body="A patient updated your access to their records.",
               href="/doctor/consents",
          )
          audit_log.consent_decision(consent.id, consent.patient_id, status.value)
     return consent


def list_consents(db: Session, requester: Requester) -> list[DoctorPatientConsent]:
     """Consents addressed to a doctor, or given by a patient."""
     query = db.query(DoctorPatientConsent)
     if requester.is_doctor:
          query = query.filter(DoctorPatientConsent.doctor_id == requester.id)
     else:
          query = query.filter(DoctorPatientConsent.patient_id == requester.id)
     return query.order_by(DoctorPatientConsent.created_at.desc(), DoctorPatientConsent.id.desc()).all()
