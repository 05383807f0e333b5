from .base import Base, utc_now
from .user import User, UserRole
from .prediction import Prediction
from .consultation_note import ConsultationNote
from .consent import DoctorPatientConsent, ConsentStatus
from .notification import Notification
from .ledger_transaction import LedgerTransaction

__all__ = [
     "Base",
     "utc_now",
     "User",
     "UserRole",
     "Prediction",
     "ConsultationNote",
     "DoctorPatientConsent",
     "ConsentStatus",
     "Notification",
     "LedgerTransaction",
]
