"""Freshness and persistence policies.

This module contains no payload parsing; it only decides, from timestamps
and counters, whether something is stale or due.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from enum import StrEnum

from pyzmon._constants import (
    DEFAULT_CACHE_MIN_UPDATES,
    DEFAULT_CACHE_SAVE_INTERVAL_S,
    DEFAULT_EVICT_AFTER_S,
    DEFAULT_STALE_AFTER_S,
)


def _now_ms() -> int:
    """Current epoch timestamp in milliseconds."""
    return int(time.time() * 1000)


class Freshness(StrEnum):
    FRESH = "fresh"
    STALE = "stale"
    EXPIRED = "expired"


def classify_age(
    age_seconds: float,
    *,
    stale_after: float = DEFAULT_STALE_AFTER_S,
    evict_after: float = DEFAULT_EVICT_AFTER_S,
) -> Freshness:
    """Stale states are skipped for a tick; expired ones are evicted."""
    if age_seconds > evict_after:
        return Freshness.EXPIRED
    if age_seconds > stale_after:
        return Freshness.STALE
    return Freshness.FRESH


class CacheSavePolicy:
    """Debounce for profile cache writes.

    A save is due only when *both* ``min_interval`` seconds have passed
    since the last save (or load) and at least ``min_updates`` profile
    updates have been recorded since then.
    """

    def __init__(
        self,
        *,
        min_interval: float = DEFAULT_CACHE_SAVE_INTERVAL_S,
        min_updates: int = DEFAULT_CACHE_MIN_UPDATES,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._min_interval_ms = int(min_interval * 1000)
        self._min_updates = min_updates
        self._clock = clock
        self._last_save_ms = clock()
        self._pending_updates = 0

    @property
    def pending_updates(self) -> int:
        return self._pending_updates

    @property
    def last_save_ms(self) -> int:
        return self._last_save_ms

    def record_update(self, count: int = 1) -> None:
        self._pending_updates += count

    def reset(self, now_ms: int | None = None) -> None:
        """Restart the interval (e.g. after loading) without touching the counter."""
        self._last_save_ms = self._clock() if now_ms is None else now_ms

    def should_save(self, now_ms: int | None = None) -> bool:
        now = self._clock() if now_ms is None else now_ms
        if now - self._last_save_ms < self._min_interval_ms:
            return False
        return self._pending_updates >= self._min_updates

    def mark_saved(self, now_ms: int | None = None) -> None:
        self._last_save_ms = self._clock() if now_ms is None else now_ms
        self._pending_updates = 0
