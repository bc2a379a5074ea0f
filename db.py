# db.py
# Role: Database bootstrap for the gold tracker.
#       Defines the SQLAlchemy engine, session factory, and declarative Base.
#       Also ensures the on-disk database directory exists for SQLite files.

"""
Database setup for the gold tracker.

- Uses DATABASE_URL from config (SQLite file under <project_root>/database by default)
- In-memory SQLite ("sqlite://") shares one connection so tables survive between sessions
"""

import os

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from config import DATABASE_URL


def _build_engine(url: str):
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)

    # For SQLite, we need check_same_thread=False for FastAPI (threaded request handling)
    connect_args = {"check_same_thread": False}

    if url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(url, connect_args=connect_args, poolclass=StaticPool)

    db_file = url.replace("sqlite:///", "", 1)
    db_dir = os.path.dirname(db_file)
    if db_dir:
        os.makedirs(db_dir, exist_ok=True)  # ensure folder exists

    return create_engine(url, connect_args=connect_args)


engine = _build_engine(DATABASE_URL)

# Standard session factory used via dependency injection (see app/deps.py:get_db)
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

# Declarative base class for ORM models
Base = declarative_base()
