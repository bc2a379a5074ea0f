# routes_entries.py
"""
Route for adding a new investment (form post with optional screenshot).
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import RedirectResponse

import config
from app.deps import get_blob_store, get_events, get_record_store, require_session
from app.errors import PersistenceError, ValidationError
from app.routes_investments import render_investments_page
from app.services.blob_store import LocalBlobStore
from app.services.entry_query import EntryListView
from app.services.entry_submission import EntryForm, ScreenshotUpload, submit_entry
from app.services.record_events import RecordSetEvents
from app.services.record_store import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_session)])


@router.post("/investments")
async def add_investment(
    request: Request,
    amount: str = Form(""),
    grams: str = Form(""),
    category: str = Form("Gold"),
    receipt_url: str = Form(""),
    notes: str = Form(""),
    screenshot: Optional[UploadFile] = File(None),
    store: RecordStore = Depends(get_record_store),
    blob_store: LocalBlobStore = Depends(get_blob_store),
    events: RecordSetEvents = Depends(get_events),
):
    """
    Responsibilities:
    - Read the form fields and the optional screenshot
    - Validate + upload + insert (see services.entry_submission)
    - On error: re-render the list page with the form open and the message inline
    - On success: redirect to the first page of the list with a notice
    """
    form = EntryForm(
        amount=amount,
        grams=grams,
        category=category,
        receipt_url=receipt_url,
        notes=notes,
    )

    upload = None
    if screenshot is not None and screenshot.filename:
        upload = ScreenshotUpload(
            filename=screenshot.filename or "",
            content_type=screenshot.content_type or "",
            data=await screenshot.read(),
        )

    try:
        record = submit_entry(
            store,
            blob_store,
            events,
            form,
            upload,
            cleanup_orphans=config.CLEANUP_ORPHANED_UPLOADS,
        )
    except (ValidationError, PersistenceError) as e:
        status_code = 400 if isinstance(e, ValidationError) else 500
        logger.info("[submit] rejected: %s", e.message)

        view = EntryListView(store, blob_store, events)
        view.refresh()
        return render_investments_page(
            request,
            view,
            store,
            form=form,
            form_error=e.message,
            status_code=status_code,
        )

    logger.info("[submit] added investment id=%s", record.id)
    return RedirectResponse(url="/investments?notice=added", status_code=303)
