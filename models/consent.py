# models/consent.py
import enum

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Enum, UniqueConstraint

from .base import Base, utc_now


class ConsentStatus(str, enum.Enum):
     """Lifecycle of a doctor's access to a patient's records."""
     PENDING = "pending"
     GRANTED = "granted"
     REVOKED = "revoked"


class DoctorPatientConsent(Base):
     """
     One row per (patient, doctor) pair. A doctor may read a patient's
     ledger entries and payloads only while the status is GRANTED.
     """
     __tablename__ = "doctor_patient_consents"
     __table_args__ = (
          UniqueConstraint("patient_id", "doctor_id", name="uq_consents_patient_doctor"),
     )

     id = Column(Integer, primary_key=True, autoincrement=True)
     patient_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
     doctor_id = Column(Integer, ForeignKey("users.id", ondelete="NO ACTION"), nullable=False, index=True)
     status = Column(
          Enum(ConsentStatus, name="consent_status", values_callable=lambda e: [m.value for m in e], create_constraint=True),
          default=ConsentStatus.PENDING,
          nullable=False,
     )
     note = Column(Text, nullable=True)

     created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
     updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)

     def __repr__(self):
          return f"<DoctorPatientConsent(id={self.id}, doctor={self.doctor_id}, patient={self.patient_id}, status='{self.status.value}')>"
