# routers/__init__.py
from .auth import router as auth_router
from .predictions import router as predictions_router
from .notes import router as notes_router
from .ledger import router as ledger_router
from .verify import router as verify_router
from .consents import router as consents_router

all_routers = [
     auth_router,
     predictions_router,
     notes_router,
     ledger_router,
     verify_router,
     consents_router,
]

__all__ = [
     "auth_router",
     "predictions_router",
     "notes_router",
     "ledger_router",
     "verify_router",
     "consents_router",
     "all_routers",
]
