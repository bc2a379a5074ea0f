# routes_auth.py
"""
Routes for the session gate: unlock with the security code, sign out.
"""

import logging

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from app.deps import get_record_store, get_session_gate, templates
from app.errors import PersistenceError
from app.services.record_store import RecordStore
from app.services.session_gate import SessionGate

logger = logging.getLogger(__name__)

router = APIRouter()


def _login_page(request: Request, error: str | None = None, status_code: int = 200):
    return templates.TemplateResponse(
        request,
        "login.html",
        {"error": error},
        status_code=status_code,
    )


@router.get("/login", response_class=HTMLResponse)
def login_page(
    request: Request,
    gate: SessionGate = Depends(get_session_gate),
):
    """
    Show the unlock form, or skip straight to the app if the session is still valid.
    """
    if gate.is_valid():
        return RedirectResponse(url="/investments", status_code=303)
    return _login_page(request)


@router.post("/login", response_class=HTMLResponse)
def login_submit(
    request: Request,
    security_code: str = Form(""),
    gate: SessionGate = Depends(get_session_gate),
    store: RecordStore = Depends(get_record_store),
):
    """
    Check the entered code against app_settings.security_code.

    - store failure  -> error banner, no session
    - wrong code     -> "Invalid security code", no session
    - match          -> session valid for 24h, redirect to the app
    """
    try:
        unlocked = gate.unlock(security_code, store)
    except PersistenceError as e:
        return _login_page(request, error=e.message, status_code=503)

    if not unlocked:
        logger.info("[auth] rejected security code attempt")
        return _login_page(
            request,
            error="Invalid security code. Please try again.",
            status_code=401,
        )

    logger.info("[auth] session started")
    return RedirectResponse(url="/investments", status_code=303)


@router.post("/logout")
def logout(gate: SessionGate = Depends(get_session_gate)):
    gate.clear()
    return RedirectResponse(url="/login", status_code=303)
