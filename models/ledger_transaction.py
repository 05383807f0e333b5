# models/ledger_transaction.py
"""
LedgerTransaction model - hash-chained, append-only anchor of a payload.

Each record stores the SHA-256 of the canonical snapshot of exactly one
payload (a prediction or a consultation note) and the payload_hash of the
previous record for the same patient, forming a per-patient chain.
Records are append-only; modification is refused at the application layer
(see services.ledger_service).
"""
from sqlalchemy import (
     Column,
     Integer,
     String,
     DateTime,
     ForeignKey,
     CheckConstraint,
     Index,
)
from sqlalchemy.orm import relationship

from .base import Base, utc_now

EXACTLY_ONE_PAYLOAD_SQL = (
     "(CASE WHEN prediction_id IS NULL THEN 0 ELSE 1 END)"
     " + (CASE WHEN note_id IS NULL THEN 0 ELSE 1 END) = 1"
)


class LedgerTransaction(Base):
     """
     Immutable ledger entry. Created when a prediction is saved or a note is finalized.
     Chain per patient: prev_hash -> payload_hash of the patient's previous entry (None for genesis).
     """
     __tablename__ = "ledger_transactions"
     __table_args__ = (
          CheckConstraint(EXACTLY_ONE_PAYLOAD_SQL, name="ck_ledger_transactions_exactly_one_payload"),
          Index("ix_ledger_transactions_patient_created", "patient_id", "created_at"),
     )

     id = Column(Integer, primary_key=True, autoincrement=True)
     tx_id = Column(String(32), nullable=False, unique=True, index=True)  # public handle (URLs, QR codes)
     payload_hash = Column(String(64), nullable=False)  # SHA-256 hex length
     prev_hash = Column(String(64), nullable=True)  # None for genesis
     schema_version = Column(Integer, nullable=False, default=1)

     patient_id = Column(Integer, ForeignKey("users.id", ondelete="NO ACTION"), nullable=False)
     created_by = Column(Integer, ForeignKey("users.id", ondelete="NO ACTION"), nullable=False)

     # Exactly one of these is set
     prediction_id = Column(
          Integer,
          ForeignKey("predictions.id", ondelete="NO ACTION"),  # Prevent delete of anchored payloads
          nullable=True,
          index=True,
     )
     note_id = Column(
          Integer,
          ForeignKey("consultation_notes.id", ondelete="NO ACTION"),
          nullable=True,
          index=True,
     )
     appointment_id = Column(Integer, nullable=True)

     created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

     # Relationships
     prediction = relationship("Prediction", back_populates="ledger_entry")
     note = relationship("ConsultationNote", back_populates="ledger_entry")

     @property
     def payload_kind(self) -> str:
          return "prediction" if self.prediction_id is not None else "note"

     def __repr__(self):
          return f"<LedgerTransaction(id={self.id}, tx_id='{self.tx_id}', hash={self.payload_hash[:16]}...)>"
