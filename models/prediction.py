# models/prediction.py
"""
Prediction model - a saved risk assessment for a patient.

The anchored fields (input, risk_percentage, risk_category, health_score,
created_at, patient_id) are fixed at creation; only doctor_remarks may change
later and it is not part of the ledger snapshot.
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship

from .base import Base, utc_now


class Prediction(Base):
     __tablename__ = "predictions"

     id = Column(Integer, primary_key=True, autoincrement=True)
     patient_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
     created_by = Column(Integer, ForeignKey("users.id"), nullable=False)

     input = Column(JSON, nullable=False)
     risk_percentage = Column(Integer, nullable=False)
     risk_category = Column(String(20), nullable=False)  # Low, Medium, High
     health_score = Column(Integer, nullable=False)
     doctor_remarks = Column(Text, nullable=True)

     created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

     # Relationships
     patient = relationship("User", back_populates="predictions", foreign_keys=[patient_id])
     ledger_entry = relationship("LedgerTransaction", back_populates="prediction", uselist=False)

     def __repr__(self):
          return f"<Prediction(id={self.id}, patient_id={self.patient_id}, risk={self.risk_percentage}%)>"
