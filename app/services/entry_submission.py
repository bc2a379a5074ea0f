# app/services/entry_submission.py
#
# Entry Submission
# Validates the "new investment" form, uploads the optional screenshot,
# then inserts the record. Nothing is inserted unless every field is valid
# and the upload (if any) succeeded.

import logging
import math
import mimetypes
import re
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Optional
from urllib.parse import urlparse

from app.errors import BlobStoreError, PersistenceError, ValidationError
from models import CATEGORIES, Investment

logger = logging.getLogger(__name__)

MAX_SCREENSHOT_BYTES = 5 * 1024 * 1024
_EXTENSION = re.compile(r"[a-z0-9]{1,8}")


@dataclass
class ScreenshotUpload:
    filename: str
    content_type: str
    data: bytes


@dataclass
class EntryForm:
    """Raw form values as posted (strings, possibly empty)."""

    amount: str = ""
    grams: str = ""
    category: str = "Gold"
    receipt_url: str = ""
    notes: str = ""


# ---- Field parsing ----

def parse_positive_number(raw: Optional[str], label: str) -> float:
    """'12.5' -> 12.5; anything not a positive finite number raises ValidationError."""
    try:
        value = float(str(raw).strip())
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be a positive number")

    if not math.isfinite(value) or value <= 0:
        raise ValidationError(f"{label} must be a positive number")
    return value


def parse_optional_grams(raw: Optional[str]) -> Optional[float]:
    if raw is None or str(raw).strip() == "":
        return None
    return parse_positive_number(raw, "Grams")


def parse_receipt_url(raw: Optional[str]) -> Optional[str]:
    value = (raw or "").strip()
    if not value:
        return None

    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError("Receipt URL must be a valid http(s) link")
    return value


def validate_screenshot(upload: Optional[ScreenshotUpload]) -> Optional[ScreenshotUpload]:
    """
    Returns None when no file was chosen (browsers post an empty part).
    """
    if upload is None or (not upload.filename and not upload.data):
        return None

    if not (upload.content_type or "").startswith("image/"):
        raise ValidationError("Please select an image file")

    if len(upload.data) > MAX_SCREENSHOT_BYTES:
        raise ValidationError("File size must be less than 5MB")

    return upload


def screenshot_path_for(filename: str, now: float, content_type: Optional[str] = None) -> str:
    """screenshots/<epoch ms>_<random>.<ext>"""
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if not _EXTENSION.fullmatch(ext):
        guessed = mimetypes.guess_extension(content_type or "") or ""
        ext = guessed.lstrip(".") or "img"
    suffix = uuid.uuid4().hex[:7]
    return f"screenshots/{int(now * 1000)}_{suffix}.{ext}"


# ---- Submit ----

def submit_entry(
    store,
    blob_store,
    events,
    form: EntryForm,
    screenshot: Optional[ScreenshotUpload] = None,
    *,
    cleanup_orphans: bool = False,
    clock: Callable[[], float] = time.time,
) -> Investment:
    """
    Validate -> upload screenshot (optional) -> insert.

    Raises ValidationError for bad input (nothing uploaded or stored) and
    PersistenceError for upload/insert failures.
    """
    amount = parse_positive_number(form.amount, "Amount")
    grams = parse_optional_grams(form.grams)

    category = (form.category or "").strip()
    if category not in CATEGORIES:
        raise ValidationError("Category must be Gold or Silver")

    receipt_url = parse_receipt_url(form.receipt_url)
    notes = (form.notes or "").strip() or None
    screenshot = validate_screenshot(screenshot)

    screenshot_path = None
    if screenshot is not None:
        path = screenshot_path_for(screenshot.filename, clock(), screenshot.content_type)
        try:
            screenshot_path = blob_store.upload(path, screenshot.data, screenshot.content_type)
        except BlobStoreError as e:
            logger.error("[submit] screenshot upload failed: %s", e.message)
            raise PersistenceError(f"Failed to upload screenshot: {e.message}") from e

    try:
        record = store.insert(
            amount=amount,
            grams=grams,
            category=category,
            screenshot_path=screenshot_path,
            receipt_url=receipt_url,
            notes=notes,
        )
    except PersistenceError:
        if screenshot_path:
            _handle_orphaned_upload(blob_store, screenshot_path, cleanup_orphans)
        raise

    events.publish()
    return record


def _handle_orphaned_upload(blob_store, path: str, cleanup: bool) -> None:
    if not cleanup:
        logger.warning("[submit] insert failed after upload; orphaned screenshot left at %s", path)
        return

    try:
        blob_store.remove([path])
        logger.info("[submit] insert failed; removed uploaded screenshot %s", path)
    except BlobStoreError as e:
        logger.warning("[submit] insert failed and cleanup of %s failed: %s", path, e.message)
