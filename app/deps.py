# app/deps.py
# Role: Shared application-level dependencies and globals.
#       Provides the Jinja2 templates loader (with display filters), the
#       "record set changed" channel and dashboard aggregator singletons,
#       and the FastAPI dependencies for DB, stores, and the session gate.

"""
Shared dependencies and globals for the gold tracker app.
"""

import os
from typing import Generator

from fastapi import Depends, Request
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session

import config
from db import SessionLocal
from app.errors import LoginRequired
from app.services.blob_store import LocalBlobStore
from app.services.dashboard_stats import DashboardAggregator
from app.services.display import format_grams, format_inr, format_timestamp
from app.services.record_events import RecordSetEvents
from app.services.record_store import RecordStore
from app.services.session_gate import SessionGate

APP_DIR = os.path.dirname(os.path.abspath(__file__))

# -------------------------------------------------------------------
# Templates
# -------------------------------------------------------------------

# Jinja2 templates loader (used by all HTML-rendering routes)
templates = Jinja2Templates(directory=os.path.join(APP_DIR, "templates"))
templates.env.filters["inr"] = format_inr
templates.env.filters["grams"] = format_grams
templates.env.filters["timestamp"] = format_timestamp

# -------------------------------------------------------------------
# Record set change channel
# -------------------------------------------------------------------

# Published by submission and deletion; the dashboard aggregator drops
# its cached stats whenever it fires.
record_events = RecordSetEvents()
dashboard_aggregator = DashboardAggregator(record_events)

# Blob store is created lazily so tests can point it elsewhere first
_blob_store = None

# -------------------------------------------------------------------
# Database / store dependencies
# -------------------------------------------------------------------

def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency that yields a database session and ensures it is closed.

    Typical usage in routes:
        db: Session = Depends(get_db)
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_record_store(db: Session = Depends(get_db)) -> RecordStore:
    return RecordStore(db)


def get_blob_store() -> LocalBlobStore:
    global _blob_store
    if _blob_store is None:
        _blob_store = LocalBlobStore(config.BLOB_STORAGE_DIR, config.SESSION_SECRET)
    return _blob_store


def get_events() -> RecordSetEvents:
    return record_events


# -------------------------------------------------------------------
# Session gate
# -------------------------------------------------------------------

def get_session_gate(request: Request) -> SessionGate:
    return SessionGate(request.session)


def require_session(gate: SessionGate = Depends(get_session_gate)) -> SessionGate:
    """
    Guard for every page except /login. Raises LoginRequired
    (handled in main.py as a redirect) when the session is missing or expired.
    """
    if not gate.is_valid():
        raise LoginRequired()
    return gate
