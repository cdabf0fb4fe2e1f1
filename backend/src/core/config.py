"""
Application configuration using python-dotenv.

This module loads environment variables from .env file into os.environ
for use throughout the application.
"""

import os
import pathlib
from dotenv import load_dotenv


# Determine if we're running in a test environment
# Don't load .env file during testing to ensure predictable test behavior
is_testing = os.getenv("PYTEST_VERSION") is not None or "PYTEST_CURRENT_TEST" in os.environ

# Load .env file into os.environ (only outside of testing)
if not is_testing:
    # Try multiple possible locations for .env file
    possible_paths = [
        pathlib.Path(__file__).parent.parent.parent / ".env",  # backend/.env (when run from backend/src)
        pathlib.Path(__file__).parent.parent.parent.parent / ".env",  # repository root .env
        pathlib.Path.cwd() / ".env",  # .env in current directory
    ]

    for env_path in possible_paths:
        if env_path.exists():
            load_dotenv(env_path)
            break


def _get_int(name: str, default: int) -> int:
    """Read an integer environment variable, falling back to the default."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def get_database_url() -> str:
    """Get the database URL from environment."""
    return os.getenv(
        "DATABASE_URL",
        "sqlite:///./medical_scheduling.db"
    )

DATABASE_URL = get_database_url()
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# Practice-local clock. Appointment timestamps are stored naive in this zone.
APP_TIMEZONE = os.getenv("APP_TIMEZONE", "UTC")

# Booking transaction
DB_LOCK_TIMEOUT_MS = _get_int("DB_LOCK_TIMEOUT_MS", 5000)
SQLITE_BUSY_TIMEOUT_SECONDS = _get_int("SQLITE_BUSY_TIMEOUT_SECONDS", 5)

# Availability queries
MAX_AVAILABILITY_RANGE_DAYS = _get_int("MAX_AVAILABILITY_RANGE_DAYS", 62)

# Notification collaborator (empty URL means log-only delivery)
NOTIFICATION_WEBHOOK_URL = os.getenv("NOTIFICATION_WEBHOOK_URL", "")
NOTIFICATION_TIMEOUT_SECONDS = _get_int("NOTIFICATION_TIMEOUT_SECONDS", 5)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
