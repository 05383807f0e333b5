# services/notification_service.py
"""
In-app notifications, with optional e-mail delivery through Brevo.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

import config
from models import Notification, User
from utils.email import send_notification_email

logger = logging.getLogger(__name__)


def notify(
     db: Session,
     user_id: int,
     type: str,
     title: str,
     body: Optional[str] = None,
     href: Optional[str] = None,
) -> Notification:
     """
     Add a notification for a user (flushed, not committed).

     When BREVO_API_KEY is configured the notification is also e-mailed.
     E-mail failures are logged and never fail the calling workflow.
     """
     notification = Notification(user_id=user_id, type=type, title=title, body=body, href=href)
     db.add(notification)
     db.flush()

     if config.BREVO_API_KEY:
          user = db.get(User, user_id)
          if user is not None:
               try:
                    send_notification_email(user.email, title, body or "", href)
               except Exception:
                    logger.exception("Notification e-mail to user %s failed", user_id)

     return notification


def list_notifications(db: Session, user_id: int, unread_only: bool = False) -> list[Notification]:
     query = db.query(Notification).filter(Notification.user_id == user_id)
     if unread_only:
          query = query.filter(Notification.is_read == False)  # noqa: E712
     return query.order_by(Notification.created_at.desc(), Notification.id.desc()).all()


def mark_read(db: Session, user_id: int, notification_id: int) -> Optional[Notification]:
     notification = (
          db.query(Notification)
          .filter(Notification.id == notification_id, Notification.user_id == user_id)
          .first()
     )
     if notification is None:
          return None
     notification.is_read = True
     db.flush()
     return notification
