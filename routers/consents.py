# routers/consents.py
"""
Consent management and in-app notifications.

Patients grant or revoke doctors' access; doctors see the requests
addressed to them.
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from database import get_session
from models import ConsentStatus
from schemas.consent import ConsentResponse, NotificationResponse
from security import verify_token
from services.access_service import Requester
from services.consent_service import list_consents, set_consent_status
from services.notification_service import list_notifications, mark_read

router = APIRouter(prefix="/api", tags=["consents"])


@router.get("/consents", response_model=List[ConsentResponse], summary="List my consents")
def get_consents(
     db: Session = Depends(get_session),
     requester: Requester = Depends(verify_token),
):
     return [ConsentResponse.model_validate(c) for c in list_consents(db, requester)]


def _decide(db: Session, requester: Requester, consent_id: int, decision: ConsentStatus) -> ConsentResponse:
     consent = set_consent_status(db, requester, consent_id, decision)
     if consent is None:
          raise HTTPException(
               status_code=status.HTTP_404_NOT_FOUND,
               detail=f"Consent with ID {consent_id} not found",
          )
     return ConsentResponse.model_validate(consent)


@router.post("/consents/{consent_id}/grant", response_model=ConsentResponse, summary="Grant a doctor access")
def grant_consent(
     consent_id: int,
     db: Session = Depends(get_session),
     requester: Requester = Depends(verify_token),
):
     return _decide(db, requester, consent_id, ConsentStatus.GRANTED)


@router.post("/consents/{consent_id}/revoke", response_model=ConsentResponse, summary="Revoke a doctor's access")
def revoke_consent(
     consent_id: int,
     db: Session = Depends(get_session),
     requester: Requester = Depends(verify_token),
):
     return _decide(db, requester, consent_id, ConsentStatus.REVOKED)


@router.get("/notifications", response_model=List[NotificationResponse], summary="List my notifications")
def get_notifications(
     unread_only: bool = Query(False, description="Only unread notifications"),
     db: Session = Depends(get_session),
     requester: Requester = Depends(verify_token),
):
     return [NotificationResponse.model_validate(n) for n in list_notifications(db, requester.id, unread_only)]


@router.post(
     "/notifications/{notification_id}/read",
     response_model=NotificationResponse,
     summary="Mark a notification read",
)
def read_notification(
     notification_id: int,
     db: Session = Depends(get_session),
     requester: Requester = Depends(verify_token),
):
     notification = mark_read(db, requester.id, notification_id)
     if notification is None:
          raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
     return NotificationResponse.model_validate(notification)
