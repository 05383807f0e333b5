# models/consultation_note.py
"""
ConsultationNote model - a doctor's diagnosis/recommendations for one appointment.

Drafts can be edited; once finalized the note is anchored into the ledger
and frozen.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, Integer, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from .base import Base, utc_now


class ConsultationNote(Base):
     __tablename__ = "consultation_notes"

     id = Column(Integer, primary_key=True, autoincrement=True)
     appointment_id = Column(Integer, nullable=False, unique=True, index=True)  # appointments live outside this service
     doctor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
     patient_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

     diagnosis = Column(Text, nullable=True)
     recommendations = Column(Text, nullable=True)

     is_final = Column(Boolean, default=False, nullable=False)
     finalized_at = Column(DateTime(timezone=True), nullable=True)

     # Timestamps
     created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
     updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)

     # Relationships
     ledger_entry = relationship("LedgerTransaction", back_populates="note", uselist=False)

     def __repr__(self):
          return f"<ConsultationNote(id={self.id}, appointment_id={self.appointment_id}, final={self.is_final})>"

     def finalize(self, at: Optional[datetime] = None) -> None:
          """Mark the note as final. Caller is responsible for anchoring it."""
          self.is_final = True
          self.finalized_at = at or utc_now()
