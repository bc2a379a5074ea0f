# routes_investments.py
"""
Routes for the investment list: search/filter/sort/paginate, two-step
delete, screenshot links, CSV export, and serving signed blob URLs.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Form, Query, Request
from fastapi.responses import FileResponse, HTMLResponse, RedirectResponse, Response

from app.deps import (
    dashboard_aggregator,
    get_blob_store,
    get_events,
    get_record_store,
    require_session,
    templates,
)
from app.errors import BlobNotFound, PersistenceError, ScreenshotUnavailable
from app.services.blob_store import LocalBlobStore
from app.services.csv_export import export_filename
from app.services.entry_query import (
    CATEGORY_FILTERS,
    EntryListView,
    EntryQuery,
    ViewStatus,
)
from app.services.entry_submission import EntryForm
from app.services.record_events import RecordSetEvents
from app.services.record_store import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_session)])

# ?notice=<key> -> transient message shown above the list
NOTICES = {
    "added": "Investment entry added successfully!",
    "deleted": "Investment deleted.",
    "missing": "That investment no longer exists.",
    "screenshot_unavailable": "Unable to load screenshot",
}

# Options for the combined sort dropdown
SORT_OPTIONS = [
    ("date-desc", "Newest First"),
    ("date-asc", "Oldest First"),
    ("amount-desc", "Highest Amount"),
    ("amount-asc", "Lowest Amount"),
    ("category-asc", "Currency A-Z"),
    ("category-desc", "Currency Z-A"),
]


def list_url(query: EntryQuery, **extra) -> str:
    params = query.to_params()
    params.update({k: v for k, v in extra.items() if v is not None})
    if not params:
        return "/investments"
    return "/investments?" + urlencode(params)


def query_from_request(
    search: Optional[str],
    category: Optional[str],
    sort: Optional[str],
    dir: Optional[str],
    page: Optional[str],
    order: Optional[str] = None,
) -> EntryQuery:
    # The sort dropdown posts "key-dir" in one value
    if order and "-" in order:
        sort, dir = order.split("-", 1)
    return EntryQuery.from_params(search=search, category=category, sort=sort, dir=dir, page=page)


def render_investments_page(
    request: Request,
    view: EntryListView,
    store: RecordStore,
    *,
    notice: Optional[str] = None,
    banner: Optional[str] = None,
    form: Optional[EntryForm] = None,
    form_error: Optional[str] = None,
    show_form: bool = False,
    status_code: int = 200,
):
    """
    Render investments.html for an already refreshed view.
    Shared with routes_entries so a rejected submission re-renders the same page.
    """
    query = view.query
    first, last, count = view.result_range

    context: Dict[str, Any] = {
        "view": view,
        "query": query,
        "stats": dashboard_aggregator.stats(store),
        "notice": NOTICES.get(notice or ""),
        "banner": banner or (view.error if view.status == ViewStatus.ERRORED else None),
        "form": form or EntryForm(),
        "form_error": form_error,
        "show_form": show_form or form_error is not None,
        "category_filters": CATEGORY_FILTERS,
        "sort_options": SORT_OPTIONS,
        "current_order": f"{query.sort_key}-{query.sort_dir}",
        "range_first": first,
        "range_last": last,
        "range_count": count,
        "page_urls": [
            (n, list_url(query.with_page(n))) for n in range(1, view.total_pages + 1)
        ],
        "sort_urls": {key: list_url(query.toggle_sort(key)) for key in ("date", "amount", "category")},
        "clear_filters_url": list_url(query.cleared()),
        "confirm_url": lambda record_id: list_url(query, confirm_delete=record_id),
        "cancel_url": list_url(query),
        "add_url": list_url(query, show_form=1),
    }

    return templates.TemplateResponse(
        request,
        "investments.html",
        context,
        status_code=status_code,
    )


@router.get("/investments", response_class=HTMLResponse)
def investments_page(
    request: Request,
    search: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    sort: Optional[str] = Query(None),
    dir: Optional[str] = Query(None),
    order: Optional[str] = Query(None),
    page: Optional[str] = Query(None),
    confirm_delete: Optional[int] = Query(None),
    show_form: bool = Query(False),
    notice: Optional[str] = Query(None),
    store: RecordStore = Depends(get_record_store),
    blob_store: LocalBlobStore = Depends(get_blob_store),
    events: RecordSetEvents = Depends(get_events),
):
    """
    Main page: dashboard cards, filter bar, the current page of investments,
    and the add-investment form.

    `confirm_delete=<id>` puts that row into its confirm/cancel state.
    """
    query = query_from_request(search, category, sort, dir, page, order)

    view = EntryListView(store, blob_store, events, query)
    view.refresh()

    if confirm_delete is not None:
        view.request_delete(confirm_delete)

    status_code = 500 if view.status == ViewStatus.ERRORED else 200
    return render_investments_page(
        request,
        view,
        store,
        notice=notice,
        show_form=show_form,
        status_code=status_code,
    )


@router.post("/investments/{record_id}/delete")
def delete_investment_route(
    request: Request,
    record_id: int,
    search: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    sort: Optional[str] = Form(None),
    dir: Optional[str] = Form(None),
    store: RecordStore = Depends(get_record_store),
    blob_store: LocalBlobStore = Depends(get_blob_store),
    events: RecordSetEvents = Depends(get_events),
):
    """
    Second step of the delete flow (the confirm button).

    Deletes the record, then best-effort removes its screenshot, and
    redirects back to page 1 of the same filters.
    """
    query = EntryQuery.from_params(search=search, category=category, sort=sort, dir=dir)

    view = EntryListView(store, blob_store, events, query)
    view.refresh()
    if view.status == ViewStatus.ERRORED:
        return render_investments_page(request, view, store, status_code=500)

    view.request_delete(record_id)
    try:
        deleted = view.confirm_delete()
    except PersistenceError as e:
        view.cancel_delete()
        return render_investments_page(request, view, store, banner=e.message, status_code=500)

    notice = "deleted" if deleted else "missing"
    return RedirectResponse(url=list_url(query.with_page(1), notice=notice), status_code=303)


@router.get("/investments/export.csv")
def export_investments(
    store: RecordStore = Depends(get_record_store),
    blob_store: LocalBlobStore = Depends(get_blob_store),
    events: RecordSetEvents = Depends(get_events),
):
    """
    Download every investment (ignores the current filters and page).
    With no investments this is a no-op redirect back to the list.
    """
    view = EntryListView(store, blob_store, events)
    view.refresh()

    csv_text = view.export_csv() if view.status == ViewStatus.LOADED else None
    if csv_text is None:
        return RedirectResponse(url="/investments", status_code=303)

    filename = export_filename()
    logger.info("[export] %d investments -> %s", len(view.records), filename)
    return Response(
        content=csv_text,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/investments/{record_id}/screenshot")
def view_screenshot(
    record_id: int,
    store: RecordStore = Depends(get_record_store),
    blob_store: LocalBlobStore = Depends(get_blob_store),
    events: RecordSetEvents = Depends(get_events),
):
    """
    Redirect to a 1-hour signed URL for the record's screenshot,
    or back to the list with a notice if that is not possible.
    """
    view = EntryListView(store, blob_store, events)
    view.refresh()

    try:
        url = view.screenshot_url(record_id)
    except ScreenshotUnavailable:
        return RedirectResponse(url="/investments?notice=screenshot_unavailable", status_code=303)

    return RedirectResponse(url=url, status_code=303)


@router.get("/blobs/{token}")
def serve_blob(
    token: str,
    blob_store: LocalBlobStore = Depends(get_blob_store),
):
    """Serve a stored screenshot through its signed, expiring token."""
    try:
        path, content_type = blob_store.resolve(token)
    except BlobNotFound as e:
        logger.info("[blob] rejected signed URL: %s", e.message)
        return HTMLResponse("<p>Unable to load screenshot</p>", status_code=404)

    return FileResponse(path, media_type=content_type)
