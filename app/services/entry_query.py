# app/services/entry_query.py
#
# Entry Query/View
# Everything the investment list does with the loaded record set:
# search + category filter, sorting, pagination, the two-step delete,
# screenshot links, CSV export and the aggregate total.
#
# All filtering/sorting happens in Python over the full record set; the
# store is only ever asked for "everything, newest first".

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, List, Optional, Sequence

from app.errors import (
    BlobStoreError,
    InvestmentError,
    LoadError,
    ScreenshotUnavailable,
)
from app.services.csv_export import build_investments_csv
from app.services.display import amount_text

logger = logging.getLogger(__name__)

PAGE_SIZE = 10
SIGNED_URL_TTL_SECONDS = 3600

SORT_KEYS = ("date", "amount", "category")
SORT_DIRECTIONS = ("asc", "desc")
CATEGORY_FILTERS = ("all", "Gold", "Silver")


# ---- Filtering ----

def matches_search(record, search_term: str) -> bool:
    if not search_term:
        return True

    needle = search_term.lower()
    notes = (record.notes or "").lower()
    return (
        needle in notes
        or needle in amount_text(record.amount).lower()
        or needle in (record.category or "").lower()
    )


def filter_records(records: Iterable, search_term: str = "", category_filter: str = "all") -> list:
    """Keep records matching the search term and, unless "all", the category."""
    result = []
    for record in records:
        if not matches_search(record, search_term):
            continue
        if category_filter != "all" and record.category != category_filter:
            continue
        result.append(record)
    return result


# ---- Sorting ----

def _sort_value(record, sort_key: str):
    if sort_key == "amount":
        return float(record.amount)
    if sort_key == "category":
        return record.category or ""
    return record.created_at


def sort_records(records: Iterable, sort_key: str = "date", sort_dir: str = "desc") -> list:
    """
    Stable sort by date/amount/category. Equal keys keep their input order.
    """
    return sorted(
        records,
        key=lambda r: _sort_value(r, sort_key),
        reverse=(sort_dir == "desc"),
    )


# ---- Pagination ----

def total_pages(count: int, page_size: int = PAGE_SIZE) -> int:
    return math.ceil(count / page_size)


def paginate(items: Sequence, page: int, page_size: int = PAGE_SIZE) -> list:
    start = (page - 1) * page_size
    return list(items[start : start + page_size])


def _parse_page(value) -> int:
    try:
        page = int(value)
    except (TypeError, ValueError):
        return 1
    return page if page >= 1 else 1


# ---- Query state ----

@dataclass(frozen=True)
class EntryQuery:
    """
    Inputs of the list view. Any change to search/category/sort goes through
    `with_changes`, which puts the view back on page 1.
    """

    search_term: str = ""
    category_filter: str = "all"
    sort_key: str = "date"
    sort_dir: str = "desc"
    page: int = 1

    @classmethod
    def from_params(
        cls,
        search: Optional[str] = None,
        category: Optional[str] = None,
        sort: Optional[str] = None,
        dir: Optional[str] = None,
        page=None,
    ) -> "EntryQuery":
        return cls(
            search_term=(search or "").strip(),
            category_filter=category if category in CATEGORY_FILTERS else "all",
            sort_key=sort if sort in SORT_KEYS else "date",
            sort_dir=dir if dir in SORT_DIRECTIONS else "desc",
            page=_parse_page(page),
        )

    @property
    def filters_active(self) -> bool:
        return bool(self.search_term) or self.category_filter != "all"

    def with_changes(self, **changes) -> "EntryQuery":
        """Change search/category/sort inputs; the page resets to 1."""
        return replace(self, page=1, **changes)

    def with_page(self, page: int) -> "EntryQuery":
        return replace(self, page=_parse_page(page))

    def toggle_sort(self, sort_key: str) -> "EntryQuery":
        """Same key flips direction; a new key starts descending."""
        if sort_key == self.sort_key:
            next_dir = "asc" if self.sort_dir == "desc" else "desc"
            return self.with_changes(sort_dir=next_dir)
        return self.with_changes(sort_key=sort_key, sort_dir="desc")

    def cleared(self) -> "EntryQuery":
        """Drop search term and category filter, keep sorting."""
        return self.with_changes(search_term="", category_filter="all")

    def to_params(self) -> dict:
        """Query-string parameters for this state (defaults omitted)."""
        params = {}
        if self.search_term:
            params["search"] = self.search_term
        if self.category_filter != "all":
            params["category"] = self.category_filter
        if (self.sort_key, self.sort_dir) != ("date", "desc"):
            params["sort"] = self.sort_key
            params["dir"] = self.sort_dir
        if self.page > 1:
            params["page"] = self.page
        return params


# ---- View ----

class ViewStatus(str, Enum):
    LOADING = "loading"
    LOADED = "loaded"
    ERRORED = "errored"


def delete_investment(store, blob_store, events, record) -> None:
    """
    Delete the record, then best-effort delete its screenshot.

    A failed blob removal is logged and otherwise ignored: the record
    is already gone and stays gone.
    """
    store.delete_by_id(record.id)

    if record.screenshot_path:
        try:
            blob_store.remove([record.screenshot_path])
        except BlobStoreError as e:
            logger.warning(
                "[delete] record %s deleted but screenshot %s was not: %s",
                record.id,
                record.screenshot_path,
                e.message,
            )

    events.publish()


class EntryListView:
    """
    Loaded state of the investment list.

    Loading -> Loaded | Errored; every refresh() goes back through Loading.
    The record list is replaced wholesale on each refresh.
    """

    def __init__(self, store, blob_store, events, query: Optional[EntryQuery] = None):
        self.store = store
        self.blob_store = blob_store
        self.events = events
        self.query = query or EntryQuery()

        self.status = ViewStatus.LOADING
        self.error: Optional[str] = None
        self.records: List = []
        self.total: float = 0.0
        self.pending_delete: Optional[int] = None
        self._loaded_once = False

    # ---- loading ----

    def refresh(self) -> ViewStatus:
        self.status = ViewStatus.LOADING
        self.error = None
        previous_ids = [r.id for r in self.records]

        try:
            records = self.store.select_all()
        except LoadError as e:
            self.status = ViewStatus.ERRORED
            self.error = e.message
            logger.error("[list] load failed: %s", e.message)
            return self.status

        self.records = list(records)
        self.total = sum(float(r.amount) for r in self.records)
        self.status = ViewStatus.LOADED

        if self._loaded_once and [r.id for r in self.records] != previous_ids:
            self.query = self.query.with_page(1)
        self._loaded_once = True

        return self.status

    def set_query(self, query: EntryQuery) -> None:
        self.query = query

    # ---- derived data ----

    @property
    def filtered(self) -> list:
        matched = filter_records(self.records, self.query.search_term, self.query.category_filter)
        return sort_records(matched, self.query.sort_key, self.query.sort_dir)

    @property
    def total_pages(self) -> int:
        return total_pages(len(self.filtered))

    @property
    def current_page(self) -> int:
        pages = self.total_pages
        if pages == 0:
            return 1
        return min(self.query.page, pages)

    @property
    def page_items(self) -> list:
        return paginate(self.filtered, self.current_page)

    @property
    def result_range(self) -> tuple:
        """(first, last, count) for "Showing first - last of count"."""
        count = len(self.filtered)
        if count == 0:
            return 0, 0, 0
        first = (self.current_page - 1) * PAGE_SIZE + 1
        last = min(self.current_page * PAGE_SIZE, count)
        return first, last, count

    @property
    def is_empty_store(self) -> bool:
        return self.status == ViewStatus.LOADED and not self.records

    @property
    def has_no_results(self) -> bool:
        return self.status == ViewStatus.LOADED and bool(self.records) and not self.filtered

    def find(self, record_id: int):
        for record in self.records:
            if record.id == record_id:
                return record
        return None

    # ---- delete (two-step) ----

    def request_delete(self, record_id: int) -> None:
        self.pending_delete = record_id

    def cancel_delete(self) -> None:
        self.pending_delete = None

    def confirm_delete(self) -> bool:
        """
        Delete the record selected by request_delete(). Returns False when
        nothing was selected or the record is no longer in the list.
        Raises PersistenceError if the store rejects the delete.
        """
        if self.pending_delete is None:
            return False

        record = self.find(self.pending_delete)
        if record is None:
            self.pending_delete = None
            return False

        delete_investment(self.store, self.blob_store, self.events, record)
        self.pending_delete = None
        self.refresh()
        return True

    # ---- screenshot ----

    def screenshot_url(self, record_id: int) -> str:
        record = self.find(record_id)
        if record is None or not record.screenshot_path:
            raise ScreenshotUnavailable("Unable to load screenshot")

        try:
            return self.blob_store.signed_url(record.screenshot_path, SIGNED_URL_TTL_SECONDS)
        except InvestmentError as e:
            logger.warning("[screenshot] signed URL failed for %s: %s", record.screenshot_path, e.message)
            raise ScreenshotUnavailable("Unable to load screenshot") from e

    # ---- export ----

    def export_csv(self) -> Optional[str]:
        """CSV of the full (unfiltered) record set, or None when there is nothing to export."""
        if not self.records:
            return None
        return build_investments_csv(self.records)
