"""
Pydantic schemas for prediction API request/response validation.
"""
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict


class RiskCategoryEnum(str, Enum):
     LOW = "Low"
     MEDIUM = "Medium"
     HIGH = "High"


class VitalsInput(BaseModel):
     """Vitals the risk assessment was computed from."""
     heart_rate: int = Field(..., ge=30, le=220)
     systolic_bp: int = Field(..., ge=70, le=250)
     diastolic_bp: int = Field(..., ge=40, le=150)
     glucose_mgdl: int = Field(..., ge=40, le=500)
     temperature_c: float = Field(..., ge=34, le=43)


class PredictionCreate(BaseModel):
     """Schema for saving a prediction (risk values computed client-side)."""
     input: VitalsInput
     risk_percentage: int = Field(..., ge=0, le=100)
     risk_category: RiskCategoryEnum
     health_score: int = Field(..., ge=0, le=100)
     patient_id: Optional[int] = Field(None, gt=0, description="Defaults to the caller")
     doctor_remarks: Optional[str] = Field(None, max_length=2000, description="Free text; not part of the ledger snapshot")

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "input": {
                         "heart_rate": 76,
                         "systolic_bp": 126,
                         "diastolic_bp": 82,
                         "glucose_mgdl": 108,
                         "temperature_c": 36.9,
                    },
                    "risk_percentage": 24,
                    "risk_category": "Low",
                    "health_score": 76,
               }
          }
     )


class PredictionResponse(BaseModel):
     id: int
     patient_id: int
     created_by: int
     input: dict
     risk_percentage: int
     risk_category: str
     health_score: int
     doctor_remarks: Optional[str] = None
     created_at: datetime
     tx_id: Optional[str] = None

     model_config = ConfigDict(from_attributes=True)
