"""
Pydantic schemas for ledger entries and verification results.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict

from services.snapshots import PayloadKind
from services.verification_service import VerifyStatus


class LedgerEntryResponse(BaseModel):
     """Full ledger entry (readable by the patient, the author, or consented doctors)."""
     tx_id: str
     payload_hash: str = Field(..., description="SHA-256 of the canonical payload snapshot")
     prev_hash: Optional[str] = Field(None, description="Previous entry's payload_hash for this patient; null for genesis")
     schema_version: int
     created_at: datetime
     patient_id: int
     created_by: int
     payload_kind: PayloadKind
     prediction_id: Optional[int] = None
     note_id: Optional[int] = None
     appointment_id: Optional[int] = None

     model_config = ConfigDict(
          from_attributes=True,
          json_schema_extra={
               "example": {
                    "tx_id": "tx_V1StGXR8_Z",
                    "payload_hash": "3f0a...e91c",
                    "prev_hash": None,
                    "schema_version": 1,
                    "created_at": "2026-01-21T10:30:00.123Z",
                    "patient_id": 3,
                    "created_by": 3,
                    "payload_kind": "prediction",
                    "prediction_id": 8,
               }
          },
     )


class LedgerMetadataResponse(BaseModel):
     """Metadata-only view; no payload content."""
     tx_id: str
     patient_id: int
     created_at: datetime
     payload_kind: PayloadKind
     appointment_id: Optional[int] = None

     model_config = ConfigDict(from_attributes=True)


class ChainVerificationResponse(BaseModel):
     verified: bool
     message: str
     entries_checked: int


class VerificationResponse(BaseModel):
     """Verification verdict for a tx_id."""
     tx_id: str
     status: VerifyStatus
     can_show_report: bool = False
     entry: Optional[LedgerEntryResponse] = None
     payload: Optional[dict] = Field(None, description="Reconstructed snapshot (valid/invalid only)")
     metadata: Optional[LedgerMetadataResponse] = None
     integrity_verified: Optional[bool] = Field(
          None, description="Hash check result for metadata-only access (consent states)"
     )

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "tx_id": "tx_V1StGXR8_Z",
                    "status": "valid",
                    "can_show_report": True,
               }
          }
     )
