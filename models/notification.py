# models/notification.py
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey

from .base import Base, utc_now


class Notification(Base):
     """In-app notification shown in the user's inbox."""
     __tablename__ = "notifications"

     id = Column(Integer, primary_key=True, autoincrement=True)
     user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
     type = Column(String(50), nullable=False)  # consent, prediction, note
     title = Column(String(200), nullable=False)
     body = Column(Text, nullable=True)
     href = Column(String(500), nullable=True)
     is_read = Column(Boolean, default=False, nullable=False)
     created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

     def __repr__(self):
          return f"<Notification(id={self.id}, user_id={self.user_id}, type='{self.type}')>"
