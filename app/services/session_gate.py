# app/services/session_gate.py
"""
Session gate: a single shared code unlocks the app for 24 hours.

State lives in a mutable mapping (the signed session cookie in the web app)
under two keys, so the gate itself holds nothing between requests.
"""

import re
import time
from typing import Callable, MutableMapping

AUTH_FLAG_KEY = "is_authenticated"
AUTH_TIME_KEY = "auth_time"

SESSION_DURATION_SECONDS = 24 * 60 * 60

_NON_DIGITS_RE = re.compile(r"[^0-9]")


def normalize_code(raw: str) -> str:
    """Security codes are numeric; everything else typed is dropped."""
    return _NON_DIGITS_RE.sub("", raw or "")


class SessionGate:
    def __init__(
        self,
        storage: MutableMapping,
        clock: Callable[[], float] = time.time,
        duration: int = SESSION_DURATION_SECONDS,
    ):
        self.storage = storage
        self.clock = clock
        self.duration = duration

    def is_valid(self) -> bool:
        """
        True while the session is younger than `duration`.
        Expired or malformed state is cleared.
        """
        flag = self.storage.get(AUTH_FLAG_KEY)
        auth_time = self.storage.get(AUTH_TIME_KEY)

        if flag is not True or auth_time is None:
            return False

        try:
            elapsed = self.clock() - float(auth_time)
        except (TypeError, ValueError):
            self.clear()
            return False

        if elapsed < self.duration:
            return True

        self.clear()
        return False

    def start(self) -> None:
        self.storage[AUTH_FLAG_KEY] = True
        self.storage[AUTH_TIME_KEY] = self.clock()

    def clear(self) -> None:
        self.storage.pop(AUTH_FLAG_KEY, None)
        self.storage.pop(AUTH_TIME_KEY, None)

    def unlock(self, code: str, store) -> bool:
        """
        Compare `code` to the stored security code (read fresh each attempt).
        Starts the session on a match. PersistenceError from the store propagates.
        """
        expected = store.get_security_code()
        entered = normalize_code(code)

        if entered and entered == expected:
            self.start()
            return True
        return False
