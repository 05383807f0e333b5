# models/user.py
import enum

from sqlalchemy import Column, Integer, String, DateTime, Enum
from sqlalchemy.orm import relationship

from .base import Base, utc_now


class UserRole(str, enum.Enum):
     """Portal roles. Doctors are the privileged collaborator role."""
     PATIENT = "patient"
     DOCTOR = "doctor"


class User(Base):
     """
     User model - central authentication table.
     One role per user, assigned at signup.
     """
     __tablename__ = "users"

     id = Column(Integer, primary_key=True, autoincrement=True)
     email = Column(String(255), unique=True, nullable=False, index=True)
     password = Column(String(255), nullable=False)
     full_name = Column(String(200), nullable=False)
     role = Column(
          Enum(UserRole, name="app_role", values_callable=lambda e: [m.value for m in e], create_constraint=True),
          nullable=False,
          default=UserRole.PATIENT,
     )
     created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

     # Relationships
     predictions = relationship("Prediction", back_populates="patient", foreign_keys="Prediction.patient_id")

     @property
     def is_doctor(self) -> bool:
          return self.role == UserRole.DOCTOR

     def __repr__(self):
          return f"<User(id={self.id}, email='{self.email}', role='{self.role.value}')>"
