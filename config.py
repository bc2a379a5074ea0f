# config.py
# Role: Runtime configuration for the gold tracker.
#       Loads a local .env file (if any) and exposes settings read from
#       environment variables, with development-friendly defaults.

"""
Application settings.

Everything here comes from environment variables (optionally via .env):
- DATABASE_URL              SQLAlchemy URL (default: SQLite under ./database)
- BLOB_STORAGE_DIR          folder for uploaded screenshots
- SESSION_SECRET            key for the session cookie and signed blob URLs
- SECURITY_CODE             seeds app_settings.security_code if it is missing
- CLEANUP_ORPHANED_UPLOADS  remove an uploaded screenshot if the insert fails
- DISPLAY_UTC_OFFSET_MINUTES  offset used when showing timestamps (IST = 330)
- LOG_LEVEL
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _env_truthy(name: str, default: str = "0") -> bool:
    v = os.getenv(name, default)
    return str(v).strip().lower() in ("1", "true", "yes", "y", "on")


# Base directory of the project (where this module lives)
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# Default SQLite location: <project_root>/database/gold_tracker.db
DB_PATH = os.path.join(BASE_DIR, "database", "gold_tracker.db")

DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{DB_PATH}")

BLOB_STORAGE_DIR = os.getenv("BLOB_STORAGE_DIR", os.path.join(BASE_DIR, "storage"))

SESSION_SECRET = os.getenv("SESSION_SECRET", "change-this-session-secret")

SECURITY_CODE = (os.getenv("SECURITY_CODE") or "").strip() or None

CLEANUP_ORPHANED_UPLOADS = _env_truthy("CLEANUP_ORPHANED_UPLOADS", "0")

DISPLAY_UTC_OFFSET_MINUTES = int(os.getenv("DISPLAY_UTC_OFFSET_MINUTES", "330"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
