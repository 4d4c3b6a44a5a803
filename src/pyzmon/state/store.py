"""In-memory live state store.

Holds the latest normalized state per athlete together with its rolling
stats. This is the only component that mutates athlete state; every
update replaces the previous record for that athlete (no merging).
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from typing import Any

from pyzmon._constants import DEFAULT_EVICT_AFTER_S, DEFAULT_STALE_AFTER_S
from pyzmon.models.state import AthleteState
from pyzmon.models.stats import AthleteStats
from pyzmon.state.policy import Freshness, classify_age

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class LiveStateStore:
    """Latest-wins athlete state plus duration-weighted stats."""

    def __init__(
        self,
        *,
        clock: Callable[[], datetime] = _utcnow,
        stale_after: float = DEFAULT_STALE_AFTER_S,
        evict_after: float = DEFAULT_EVICT_AFTER_S,
    ) -> None:
        self._clock = clock
        self._stale_after = stale_after
        self._evict_after = evict_after
        self._states: dict[int, AthleteState] = {}
        self._stats: dict[int, AthleteStats] = {}

    def __len__(self) -> int:
        return len(self._states)

    def __contains__(self, athlete_id: object) -> bool:
        return athlete_id in self._states

    def __iter__(self) -> Iterator[AthleteState]:
        return iter(tuple(self._states.values()))

    def upsert(self, raw: dict[str, Any] | AthleteState) -> tuple[AthleteState, AthleteStats]:
        """Normalize and store a state record, then fold it into the stats.

        Returns the stored state and the athlete's (live) stats object.
        """
        state = raw if isinstance(raw, AthleteState) else AthleteState.from_raw(raw)
        self._states[state.id] = state

        stats = self._stats.get(state.id)
        if stats is None:
            stats = AthleteStats()
            self._stats[state.id] = stats

        if stats.world_time is None:
            duration = 0
        else:
            # Reordered packets would yield a negative delta; those are not accumulated.
            duration = max(0, state.world_time - stats.world_time)
        if stats.world_time is None or state.world_time > stats.world_time:
            stats.world_time = state.world_time

        stats.accumulate(state, duration)
        return state, stats

    def get(self, athlete_id: int) -> AthleteState | None:
        return self._states.get(athlete_id)

    def stats(self, athlete_id: int) -> AthleteStats | None:
        return self._stats.get(athlete_id)

    def snapshot(self) -> list[AthleteState]:
        """Copy of the currently stored states (states themselves are frozen)."""
        return list(self._states.values())

    def evict(self, athlete_id: int) -> None:
        self._states.pop(athlete_id, None)

    def prune(self, now: datetime | None = None) -> list[AthleteState]:
        """Evict expired states and return the fresh ones.

        Stale states are kept in the store but left out of the result.
        Stats survive eviction so a returning athlete keeps its averages.
        """
        current = self._clock() if now is None else now
        fresh: list[AthleteState] = []
        evicted = 0
        for state in self.snapshot():
            freshness = classify_age(
                state.age_seconds(current),
                stale_after=self._stale_after,
                evict_after=self._evict_after,
            )
            if freshness is Freshness.EXPIRED:
                self.evict(state.id)
                evicted += 1
            elif freshness is Freshness.FRESH:
                fresh.append(state)
        if evicted:
            _logger.debug("Evicted %d expired athlete states", evicted)
        return fresh
