"""
dedup.py — Time-windowed memory of already-analysed process identities.

A key is remembered from the moment it is first seen until ``purge`` runs
after it has aged past ``max_age``.  Nothing is evicted on lookup, so a
key triggers at most one analysis per residency period.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

logger = logging.getLogger(__name__)


class DedupCache:
    """Mapping of composite process key → first-seen time.

    Parameters:
        max_age: Seconds an entry may live before ``purge`` removes it.
        clock:   Time source in seconds; ``time.time`` by default.
    """

    def __init__(self, max_age: float = 300.0, clock: Callable[[], float] = time.time) -> None:
        self.max_age = max_age
        self._clock = clock
        self._seen: dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._seen)

    def __contains__(self, key: str) -> bool:
        return key in self._seen

    def add_if_new(self, key: str) -> bool:
        """Record *key* and return ``True`` if it was not already present."""
        if key in self._seen:
            return False
        self._seen[key] = self._clock()
        return True

    def purge(self) -> int:
        """Drop entries older than ``max_age``; return how many were dropped."""
        now = self._clock()
        expired = [k for k, t in self._seen.items() if now - t > self.max_age]
        for k in expired:
            del self._seen[k]
        if expired:
            logger.debug("Cleaned up %d old process entries", len(expired))
        return len(expired)

    def clear(self) -> None:
        self._seen.clear()


def process_key(pid: int | str, name: str) -> str:
    """Dedup key used by the process scan."""
    return f"{pid}-{name}"


def handle_key(pid: int | str) -> str:
    """Dedup key used by the handle scan."""
    return f"handle-{pid}"
