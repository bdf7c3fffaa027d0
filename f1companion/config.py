import logging
import os
from pathlib import Path

# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent

# Database
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR}/f1companion.db")

# Sessions
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "f1companion_session")
SESSION_EXPIRE_DAYS = int(os.getenv("SESSION_EXPIRE_DAYS", "7"))

# Public web app, used to build shareable invite links
APP_BASE_URL = os.getenv("APP_BASE_URL", "http://localhost:5173").rstrip("/")

# Leagues
DEFAULT_MAX_TEAMS = int(os.getenv("DEFAULT_MAX_TEAMS", "15"))
INVITE_TOKEN_LENGTH = int(os.getenv("INVITE_TOKEN_LENGTH", "10"))
INVITE_TOKEN_MAX_ATTEMPTS = int(os.getenv("INVITE_TOKEN_MAX_ATTEMPTS", "5"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Configure root logging for the API process."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
