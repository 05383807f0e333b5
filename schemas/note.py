"""
Pydantic schemas for consultation notes.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict


class NoteDraft(BaseModel):
     """Create or update the draft note for an appointment."""
     appointment_id: int = Field(..., gt=0)
     patient_id: int = Field(..., gt=0)
     diagnosis: Optional[str] = Field(None, max_length=2000)
     recommendations: Optional[str] = Field(None, max_length=4000)

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "appointment_id": 12,
                    "patient_id": 3,
                    "diagnosis": "Mild hypertension",
                    "recommendations": "Reduce sodium intake; recheck in 4 weeks",
               }
          }
     )


class NoteResponse(BaseModel):
     id: int
     appointment_id: int
     doctor_id: int
     patient_id: int
     diagnosis: Optional[str] = None
     recommendations: Optional[str] = None
     is_final: bool
     finalized_at: Optional[datetime] = None
     tx_id: Optional[str] = None

     model_config = ConfigDict(from_attributes=True)
