# routers/ledger.py
"""
Ledger read API.

Missing and forbidden entries both answer 404 so a tx_id's existence is
never revealed to someone who may not read it.
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from database import get_session
from schemas.ledger import LedgerEntryResponse, LedgerMetadataResponse, ChainVerificationResponse
from security import verify_token
from services.access_service import Requester, can_read_subject
from services.ledger_service import (
     get_by_transaction_id,
     get_metadata_only,
     list_entries_for_subject,
     verify_subject_chain,
)

router = APIRouter(prefix="/api/ledger", tags=["ledger"])


# ---------------------------------------------------------------------------
# Per-patient views
# ---------------------------------------------------------------------------

@router.get(
     "/patient/{patient_id}",
     response_model=List[LedgerEntryResponse],
     summary="List a patient's ledger entries",
)
def list_patient_entries(
     patient_id: int,
     db: Session = Depends(get_session),
     requester: Requester = Depends(verify_token),
):
     """Newest first. Patients see their own; doctors need granted consent."""
     if not can_read_subject(db, requester, patient_id):
          raise HTTPException(
               status_code=status.HTTP_403_FORBIDDEN,
               detail="You do not have permission to view this patient's records",
          )
     entries = list_entries_for_subject(db, patient_id, requester)
     return [LedgerEntryResponse.model_validate(e) for e in entries]


@router.get(
     "/patient/{patient_id}/verify-chain",
     response_model=ChainVerificationResponse,
     summary="Verify a patient's ledger chain",
)
def verify_patient_chain(
     patient_id: int,
     db: Session = Depends(get_session),
     requester: Requester = Depends(verify_token),
):
     """
     Recompute hashes for all of a patient's entries and verify the
     prev_hash links. Returns verification result and number of entries checked.
     """
     if not can_read_subject(db, requester, patient_id):
          raise HTTPException(
               status_code=status.HTTP_403_FORBIDDEN,
               detail="You do not have permission to view this patient's records",
          )
     valid, message, count = verify_subject_chain(db, patient_id)
     return ChainVerificationResponse(verified=valid, message=message, entries_checked=count)


# ---------------------------------------------------------------------------
# Single entries
# ---------------------------------------------------------------------------

@router.get("/{tx_id}", response_model=LedgerEntryResponse, summary="Get a ledger entry")
def get_ledger_entry(
     tx_id: str,
     db: Session = Depends(get_session),
     requester: Requester = Depends(verify_token),
):
     entry = get_by_transaction_id(db, tx_id, requester)
     if entry is None:
          raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ledger entry not found")
     return LedgerEntryResponse.model_validate(entry)


@router.get("/{tx_id}/meta", response_model=LedgerMetadataResponse, summary="Get ledger entry metadata")
def get_ledger_metadata(
     tx_id: str,
     db: Session = Depends(get_session),
     requester: Requester = Depends(verify_token),
):
     """Doctors only; no payload content or hashes."""
     metadata = get_metadata_only(db, tx_id, requester)
     if metadata is None:
          raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ledger entry not found")
     return LedgerMetadataResponse.model_validate(metadata)
