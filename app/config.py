"""
Runtime configuration.

Values come from the environment (optionally a local .env file) and are read
once at import time.
"""
import os

from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./onionpay.db")

ADMIN_JWT_SECRET = os.getenv("ADMIN_JWT_SECRET", "change-me-in-production")
ADMIN_JWT_ALGORITHM = os.getenv("ADMIN_JWT_ALGORITHM", "HS256")
ADMIN_TOKEN_EXPIRE_MINUTES = int(os.getenv("ADMIN_TOKEN_EXPIRE_MINUTES", "720"))

API_KEY_HASH_ROUNDS = int(os.getenv("API_KEY_HASH_ROUNDS", "12"))

ORDER_CODE_PREFIX = os.getenv("ORDER_CODE_PREFIX", "ONP")
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "INR")
REQUIRE_UTR_FOR_REVIEW = _flag("REQUIRE_UTR_FOR_REVIEW")

WEBHOOK_TIMEOUT_SECONDS = float(os.getenv("WEBHOOK_TIMEOUT_SECONDS", "10"))

UPLOADS_DIR = os.getenv("UPLOADS_DIR", "uploads")
MAX_QR_IMAGE_BYTES = int(os.getenv("MAX_QR_IMAGE_BYTES", str(2 * 1024 * 1024)))

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
