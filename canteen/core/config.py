# canteen/core/config.py
import os
import logging
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


class Settings:
    PROJECT_NAME: str = os.getenv("PROJECT_NAME", "School Canteen API")

    DATABASE_URL: str = os.getenv("DATABASE_URL")
    SQLITE_BUSY_TIMEOUT: float = float(os.getenv("SQLITE_BUSY_TIMEOUT", "30"))

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Compensating actions (stock release, refund) are retried, never dropped
    COMPENSATION_RETRIES: int = int(os.getenv("COMPENSATION_RETRIES", "3"))
    COMPENSATION_BACKOFF: float = float(os.getenv("COMPENSATION_BACKOFF", "0.05"))

    CORS_ORIGINS: list = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

settings = Settings()

# Validation Check
if not settings.DATABASE_URL:
    # Fallback for local testing if .env is missing (Use SQLite)
    logger.warning("DATABASE_URL not found. Using SQLite for local testing.")
    settings.DATABASE_URL = "sqlite:///./canteen.db"
