# app/services/dashboard_stats.py
#
# Dashboard Aggregator
# Summary cards computed from the full record set: totals per metal,
# counts, average, latest purchase. Cached until the record set changes.

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from app.errors import LoadError

logger = logging.getLogger(__name__)


@dataclass
class DashboardStats:
    total_invested: float = 0.0
    total_entries: int = 0
    gold_count: int = 0
    silver_count: int = 0
    gold_amount: float = 0.0
    silver_amount: float = 0.0
    gold_grams: float = 0.0
    silver_grams: float = 0.0
    avg_investment: float = 0.0
    last_investment: Optional[Dict[str, Any]] = None


def _snapshot(record) -> Dict[str, Any]:
    # Plain values only; the cache outlives the DB session that loaded the row.
    return {
        "id": record.id,
        "created_at": record.created_at,
        "amount": float(record.amount),
        "category": record.category,
        "grams": record.grams,
    }


def compute_stats(records: Iterable) -> DashboardStats:
    """
    `records` is expected newest first (as returned by RecordStore.select_all),
    so the first one is the latest investment.
    """
    records = list(records)
    gold = [r for r in records if r.category == "Gold"]
    silver = [r for r in records if r.category == "Silver"]

    total = sum(float(r.amount) for r in records)

    return DashboardStats(
        total_invested=total,
        total_entries=len(records),
        gold_count=len(gold),
        silver_count=len(silver),
        gold_amount=sum(float(r.amount) for r in gold),
        silver_amount=sum(float(r.amount) for r in silver),
        gold_grams=sum(float(r.grams) for r in gold if r.grams),
        silver_grams=sum(float(r.grams) for r in silver if r.grams),
        avg_investment=total / len(records) if records else 0.0,
        last_investment=_snapshot(records[0]) if records else None,
    )


class DashboardAggregator:
    """
    Holds the last computed stats and drops them whenever the
    "record set changed" channel fires.

    A load that overlaps a mutation is returned to its caller but never
    cached, so the next call reloads.
    """

    def __init__(self, events):
        self._lock = threading.Lock()
        self._generation = 0
        self._cached: Optional[DashboardStats] = None
        self._last_good: Optional[DashboardStats] = None
        events.subscribe(self.invalidate)

    def invalidate(self) -> None:
        with self._lock:
            self._generation += 1
            self._cached = None

    def stats(self, store) -> DashboardStats:
        with self._lock:
            if self._cached is not None:
                return self._cached
            generation = self._generation

        try:
            records = store.select_all()
        except LoadError as e:
            logger.error("[dashboard] error fetching stats: %s", e.message)
            return self._last_good or DashboardStats()

        stats = compute_stats(records)
        with self._lock:
            self._last_good = stats
            if generation == self._generation:
                self._cached = stats
            else:
                logger.debug("[dashboard] record set changed during load, not caching")
        return stats
