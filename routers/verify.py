# routers/verify.py
"""
Verification API - the target of verification URLs and QR codes.

GET /api/verify/{tx_id} always answers 200 with an explicit status
(auth_required, no_access, consent_required, consent_pending, valid, invalid)
so clients can render guidance for each state.
"""
import asyncio
import contextlib
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

import config
from database import get_session, get_session_context
from schemas.ledger import VerificationResponse, LedgerEntryResponse, LedgerMetadataResponse
from security import optional_requester
from services.access_service import Requester
from services.consent_service import get_consent_status
from services.exceptions import ConsentRequestError
from services.verification_service import (
     ConsentPoller,
     VerificationResult,
     VerifyStatus,
     request_access,
     verify_transaction,
)

router = APIRouter(prefix="/api/verify", tags=["verify"])

DISCONNECT_CHECK_SECONDS = 0.5


def _build_verification_response(tx_id: str, result: VerificationResult) -> VerificationResponse:
     return VerificationResponse(
          tx_id=tx_id,
          status=result.status,
          can_show_report=result.can_show_report,
          entry=LedgerEntryResponse.model_validate(result.entry) if result.entry is not None else None,
          payload=result.payload,
          metadata=LedgerMetadataResponse.model_validate(result.metadata) if result.metadata is not None else None,
          integrity_verified=result.integrity_verified,
     )


def _verify_once(tx_id: str, requester: Optional[Requester]) -> VerificationResponse:
     with get_session_context() as db:
          return _build_verification_response(tx_id, verify_transaction(db, tx_id, requester))


def _consent_status_check(patient_id: int, doctor_id: int):
     def check():
          with get_session_context() as db:
               return get_consent_status(db, patient_id, doctor_id)
     return check


@router.get("/{tx_id}", response_model=VerificationResponse, summary="Verify a ledger entry")
def verify_entry(
     tx_id: str,
     db: Session = Depends(get_session),
     requester: Optional[Requester] = Depends(optional_requester),
):
     """
     Rebuild the anchored payload snapshot, hash it and compare with the
     stored payload_hash. Token optional: anonymous callers get auth_required.
     """
     return _build_verification_response(tx_id, verify_transaction(db, tx_id, requester))


@router.post(
     "/{tx_id}/request-access",
     response_model=VerificationResponse,
     summary="Ask the patient for access (doctors)",
)
def request_entry_access(
     tx_id: str,
     db: Session = Depends(get_session),
     requester: Optional[Requester] = Depends(optional_requester),
):
     """consent_required -> consent_pending. Repeating the call reuses the pending request."""
     try:
          result = request_access(db, tx_id, requester)
     except ConsentRequestError as e:
          raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
     return _build_verification_response(tx_id, result)


@router.get(
     "/{tx_id}/await-consent",
     response_model=VerificationResponse,
     summary="Wait for the patient's consent, then verify",
)
async def await_consent(
     tx_id: str,
     request: Request,
     timeout: Optional[float] = Query(None, ge=0, le=300, description="Seconds to wait (default from config)"),
     requester: Optional[Requester] = Depends(optional_requester),
):
     """
     Long-poll for consent_pending clients. Polls the consent status at a
     fixed interval and re-runs verification once access is granted.
     Polling stops when the client disconnects or the timeout passes.
     """
     current = await run_in_threadpool(_verify_once, tx_id, requester)
     if current.status != VerifyStatus.CONSENT_PENDING:
          return current

     poller = ConsentPoller(_consent_status_check(current.metadata.patient_id, requester.id))

     async def watch_disconnect():
          while not poller.cancelled:
               if await request.is_disconnected():
                    poller.cancel()
                    return
               await asyncio.sleep(DISCONNECT_CHECK_SECONDS)

     watcher = asyncio.create_task(watch_disconnect())
     try:
          granted = await poller.wait(config.CONSENT_POLL_TIMEOUT_SECONDS if timeout is None else timeout)
     finally:
          poller.cancel()
          watcher.cancel()
          with contextlib.suppress(asyncio.CancelledError):
               await watcher

     if not granted:
          return current
     return await run_in_threadpool(_verify_once, tx_id, requester)
