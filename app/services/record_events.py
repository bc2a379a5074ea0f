# app/services/record_events.py
"""
"Record set changed" channel.

Submission and deletion publish after a successful mutation; views that
cache anything derived from the record set subscribe and drop it.
"""

import logging
from typing import Callable, List

logger = logging.getLogger(__name__)


class RecordSetEvents:
    def __init__(self):
        self._subscribers: List[Callable[[], None]] = []

    def subscribe(self, callback: Callable[[], None]) -> None:
        self._subscribers.append(callback)

    def publish(self) -> None:
        logger.debug("[events] record set changed -> %d subscriber(s)", len(self._subscribers))
        for callback in list(self._subscribers):
            callback()
