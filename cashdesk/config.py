import os
from datetime import date, datetime
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env

DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL environment variable is not set")

BUSINESS_TIMEZONE = os.getenv("BUSINESS_TIMEZONE", "America/Lima")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

cors_origins = os.getenv("CORS_ORIGINS", "")
CORS_ORIGINS = [origin.strip() for origin in cors_origins.split(",") if origin.strip()]


def now() -> datetime:
    """Current processing time in the business timezone."""
    return datetime.now(ZoneInfo(BUSINESS_TIMEZONE))


def today() -> date:
    return now().date()
