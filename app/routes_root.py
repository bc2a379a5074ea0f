# routes_root.py
"""
Root / landing endpoint.
"""

from fastapi import APIRouter
from fastapi.responses import RedirectResponse

router = APIRouter()


@router.get("/")
def read_root():
    """
    Landing endpoint: the investment list is the home page.
    Unauthenticated visitors are bounced on to /login from there.
    """
    return RedirectResponse(url="/investments", status_code=302)
