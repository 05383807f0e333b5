"""
Pydantic schemas for consents and notifications.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict

from models import ConsentStatus


class ConsentResponse(BaseModel):
     id: int
     patient_id: int
     doctor_id: int
     status: ConsentStatus
     created_at: datetime
     updated_at: datetime

     model_config = ConfigDict(from_attributes=True)


class NotificationResponse(BaseModel):
     id: int
     type: str
     title: str
     body: Optional[str] = None
     href: Optional[str] = None
     is_read: bool
     created_at: datetime

     model_config = ConfigDict(from_attributes=True)
