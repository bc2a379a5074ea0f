# main.py
# Role: Application entry point for the gold tracker.
#       Initializes the FastAPI app, creates database tables, seeds the
#       security code, mounts static assets, and registers all route modules.

"""
Main FastAPI app for the personal gold/silver investment tracker.

Here we only:
- configure logging
- create the FastAPI app
- set up sessions and static files
- create DB tables (and seed the security code from the environment)
- include route modules
"""

import logging
import os

from fastapi import FastAPI, Request
from fastapi.responses import RedirectResponse
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware

import config
from db import Base, SessionLocal, engine
from app.errors import LoginRequired
from app.services.record_store import RecordStore
from app.routes_root import router as root_router
from app.routes_auth import router as auth_router
from app.routes_investments import router as investments_router
from app.routes_entries import router as entries_router
from app.routes_dashboard import router as dashboard_router

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# -------------------------------------------------------------------
# App & DB setup
# -------------------------------------------------------------------

# Create database tables (only if they don't exist yet).
Base.metadata.create_all(bind=engine)


def seed_security_code() -> None:
    """Store SECURITY_CODE from the environment if app_settings has none yet."""
    if not config.SECURITY_CODE:
        return
    db = SessionLocal()
    try:
        RecordStore(db).ensure_security_code(config.SECURITY_CODE)
    finally:
        db.close()


seed_security_code()

# FastAPI application instance
app = FastAPI(title="Gold Tracker")

# Signed cookie that carries is_authenticated / auth_time
app.add_middleware(SessionMiddleware, secret_key=config.SESSION_SECRET)

# Serve static files (CSS) from /static
app.mount(
    "/static",
    StaticFiles(directory=os.path.join(config.BASE_DIR, "app", "static")),
    name="static",
)


@app.exception_handler(LoginRequired)
async def login_required_handler(request: Request, exc: LoginRequired):
    return RedirectResponse(url="/login", status_code=303)


# -------------------------------------------------------------------
# Include routers
# -------------------------------------------------------------------

# Root / landing routes
app.include_router(root_router)

# Security code unlock / sign out
app.include_router(auth_router)

# Investment list, delete, screenshot links, CSV export
app.include_router(investments_router)

# Add-investment form post
app.include_router(entries_router)

# Dashboard summary cards
app.include_router(dashboard_router)
