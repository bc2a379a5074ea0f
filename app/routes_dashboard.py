# app/routes_dashboard.py

from fastapi import APIRouter, Request, Depends

from .deps import templates, dashboard_aggregator, get_record_store, require_session
from app.services.record_store import RecordStore

router = APIRouter(dependencies=[Depends(require_session)])


@router.get("/dashboard")
def dashboard_page(
    request: Request,
    store: RecordStore = Depends(get_record_store),
):
    """
    Summary cards only: total invested, average, gold and silver totals,
    and the latest purchase.
    """
    stats = dashboard_aggregator.stats(store)

    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "stats": stats,
        },
    )
