# config.py
"""
Application settings loaded from the environment (.env supported).
"""
import os
from urllib.parse import quote_plus

from dotenv import load_dotenv

load_dotenv()

# Database
DB_SERVER = os.getenv("DB_SERVER")
DB_PORT = os.getenv("DB_PORT", "1433")
DB_USER = os.getenv("DB_USER")
DB_PASS = os.getenv("DB_PASS")
DB_NAME = os.getenv("DB_NAME")

DATABASE_URL = os.getenv("DATABASE_URL") or (
     f"mssql+pymssql://{quote_plus(DB_USER or '')}:{quote_plus(DB_PASS or '')}"
     f"@{DB_SERVER}:{DB_PORT}/{DB_NAME}"
)
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() == "true"

# Auth
JWT_SECRET = os.getenv("JWT_SECRET", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", "720"))

# HTTP
CORS_ORIGINS = [o for o in os.getenv("CORS_ORIGINS", "").split(",") if o]
PORT = int(os.getenv("PORT", "10000"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("LOG_JSON", "true").lower() == "true"

# Ledger
LEDGER_TX_ID_LENGTH = int(os.getenv("LEDGER_TX_ID_LENGTH", "10"))
LEDGER_TX_ID_MAX_ATTEMPTS = int(os.getenv("LEDGER_TX_ID_MAX_ATTEMPTS", "3"))

# Consent polling
CONSENT_POLL_INTERVAL_SECONDS = float(os.getenv("CONSENT_POLL_INTERVAL_SECONDS", "4"))
CONSENT_POLL_TIMEOUT_SECONDS = float(os.getenv("CONSENT_POLL_TIMEOUT_SECONDS", "60"))

# Outbound e-mail (Brevo); unset disables e-mail delivery
BREVO_API_KEY = os.getenv("BREVO_API_KEY")
MAIL_SENDER_NAME = os.getenv("MAIL_SENDER_NAME", "HealthChain")
MAIL_SENDER_EMAIL = os.getenv("MAIL_SENDER_EMAIL", "noreply@healthchain.local")
