# services/verification_service.py
"""
Verifier - resolves a tx_id into a verification verdict for a requester.

States:
     loading          initial (never returned by verify_transaction)
     auth_required    no authenticated requester
     no_access        entry unreadable and no escalation path, or payload missing
     consent_required doctor without consent; may request access
     consent_pending  doctor's request awaits the patient's decision
     valid / invalid  recomputed hash equals / differs from the stored hash

Authorization outcomes and hash mismatches are result states, never
exceptions. Verification never writes; only request_access does.
"""
import asyncio
import enum
import time
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.orm import Session

import config
from logging_config import audit_log
from models import ConsentStatus, LedgerTransaction
from .access_service import Requester, is_privileged
from .consent_service import get_consent_status, request_patient_consent
from .ledger_service import (
     LedgerMetadata,
     get_by_transaction_id,
     get_entry,
     get_metadata_only,
     recompute_matches,
)


class VerifyStatus(str, enum.Enum):
     LOADING = "loading"
     AUTH_REQUIRED = "auth_required"
     NO_ACCESS = "no_access"
     CONSENT_REQUIRED = "consent_required"
     CONSENT_PENDING = "consent_pending"
     VALID = "valid"
     INVALID = "invalid"


@dataclass
class VerificationResult:
     status: VerifyStatus
     entry: Optional[LedgerTransaction] = None
     payload: Optional[dict] = None
     metadata: Optional[LedgerMetadata] = None
     # Hash check done without disclosing the payload (consent states only)
     integrity_verified: Optional[bool] = None

     @property
     def can_show_report(self) -> bool:
          return self.status in (VerifyStatus.VALID, VerifyStatus.INVALID)


def _consent_state(db: Session, tx_id: str, requester: Requester) -> VerificationResult:
     metadata = get_metadata_only(db, tx_id, requester)
     if metadata is None:
          return VerificationResult(VerifyStatus.NO_ACCESS)

     consent = get_consent_status(db, metadata.patient_id, requester.id)
     status = VerifyStatus.CONSENT_PENDING if consent == ConsentStatus.PENDING else VerifyStatus.CONSENT_REQUIRED

     entry = get_entry(db, tx_id)
     matches, _ = recompute_matches(db, entry)
     return VerificationResult(status, metadata=metadata, integrity_verified=matches)


def verify_transaction(db: Session, tx_id: str, requester: Optional[Requester]) -> VerificationResult:
     """
     Verify the ledger entry behind tx_id on behalf of requester.

     Safe to re-run at any time; reads only.
     """
     if requester is None:
          return VerificationResult(VerifyStatus.AUTH_REQUIRED)

     entry = get_by_transaction_id(db, tx_id, requester)
     if entry is None:
          result = _consent_state(db, tx_id, requester) if is_privileged(requester) else VerificationResult(VerifyStatus.NO_ACCESS)
          audit_log.verification(tx_id, requester.id, result.status.value)
          return result

     matches, snapshot = recompute_matches(db, entry)
     if matches is None:
          # Deleted and never-authorized look the same
          result = VerificationResult(VerifyStatus.NO_ACCESS)
     else:
          status = VerifyStatus.VALID if matches else VerifyStatus.INVALID
          result = VerificationResult(status, entry=entry, payload=snapshot)

     audit_log.verification(tx_id, requester.id, result.status.value)
     return result


def request_access(db: Session, tx_id: str, requester: Optional[Requester]) -> VerificationResult:
     """
     consent_required -> consent_pending: ask the entry's patient for access.

     Idempotent. Any other starting state is returned unchanged (re-verified).
     """
     current = verify_transaction(db, tx_id, requester)
     if current.status != VerifyStatus.CONSENT_REQUIRED:
          return current

     request_patient_consent(db, requester, current.metadata.patient_id)
     return VerificationResult(
          VerifyStatus.CONSENT_PENDING,
          metadata=current.metadata,
          integrity_verified=current.integrity_verified,
     )


class ConsentPoller:
     """
     Polls a consent-status check at a fixed interval until it reports
     GRANTED, the timeout passes, or the poller is cancelled.

     ``check`` is a blocking callable (it hits the database) and runs in a
     worker thread; ``cancel`` stops any further checks.
     """

     def __init__(
          self,
          check: Callable[[], Optional[ConsentStatus]],
          interval: Optional[float] = None,
     ):
          self._check = check
          self.interval = config.CONSENT_POLL_INTERVAL_SECONDS if interval is None else interval
          self._cancelled = asyncio.Event()
          self.checks = 0

     @property
     def cancelled(self) -> bool:
          return self._cancelled.is_set()

     def cancel(self) -> None:
          self._cancelled.set()

     async def wait(self, timeout: Optional[float] = None) -> bool:
          """
          Returns True once consent is granted, False on timeout or cancel.
          The first check runs immediately.
          """
          deadline = None if timeout is None else time.monotonic() + timeout
          while not self.cancelled:
               self.checks += 1
               status = await asyncio.to_thread(self._check)
               if status == ConsentStatus.GRANTED:
                    return True

               if deadline is None:
                    delay = self.interval
               else:
                    delay = min(self.interval, deadline - time.monotonic())
                    if delay <= 0:
                         return False
               try:
                    await asyncio.wait_for(self._cancelled.wait(), timeout=delay)
               except asyncio.TimeoutError:
                    pass
          return False
