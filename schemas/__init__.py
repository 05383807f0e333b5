from .auth import RegisterRequest, LoginRequest, UserResponse, TokenResponse
from .prediction import PredictionCreate, PredictionResponse, VitalsInput, RiskCategoryEnum
from .note import NoteDraft, NoteResponse
from .ledger import (
     LedgerEntryResponse,
     LedgerMetadataResponse,
     ChainVerificationResponse,
     VerificationResponse,
)
from .consent import ConsentResponse, NotificationResponse

__all__ = [
     "RegisterRequest",
     "LoginRequest",
     "UserResponse",
     "TokenResponse",
     "PredictionCreate",
     "PredictionResponse",
     "VitalsInput",
     "RiskCategoryEnum",
     "NoteDraft",
     "NoteResponse",
     "LedgerEntryResponse",
     "LedgerMetadataResponse",
     "ChainVerificationResponse",
     "VerificationResponse",
     "ConsentResponse",
     "NotificationResponse",
]
