"""Athlete profile cache with debounced persistence."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

from pydantic import ValidationError

from pyzmon._constants import ATHLETE_CACHE_KEY
from pyzmon.exceptions import StorageError
from pyzmon.models.profile import AthleteProfile
from pyzmon.state.policy import CacheSavePolicy
from pyzmon.storage import StateStorage

_logger = logging.getLogger(__name__)


class ProfileCache:
    """Athlete id → profile, persisted as a list of ``[id, payload]`` pairs.

    Entries are only ever added or overwritten during a session.
    """

    def __init__(self, *, policy: CacheSavePolicy | None = None, key: str = ATHLETE_CACHE_KEY) -> None:
        self._profiles: dict[int, AthleteProfile] = {}
        self._policy = policy or CacheSavePolicy()
        self._key = key

    def __len__(self) -> int:
        return len(self._profiles)

    def __contains__(self, athlete_id: object) -> bool:
        return athlete_id in self._profiles

    def __iter__(self) -> Iterator[AthleteProfile]:
        return iter(tuple(self._profiles.values()))

    @property
    def policy(self) -> CacheSavePolicy:
        return self._policy

    def get(self, athlete_id: int) -> AthleteProfile | None:
        return self._profiles.get(athlete_id)

    def record(self, athlete_id: int, payload: dict[str, Any]) -> AthleteProfile:
        """Upsert the profile from an "entered world" payload (latest wins)."""
        profile = AthleteProfile.model_validate({"athleteId": athlete_id, **payload})
        self._profiles[athlete_id] = profile
        self._policy.record_update()
        return profile

    def to_pairs(self) -> list[list[Any]]:
        return [[athlete_id, profile.raw] for athlete_id, profile in self._profiles.items()]

    async def load(self, storage: StateStorage) -> int:
        """Populate from *storage*; returns the number of profiles loaded.

        A missing cache is treated as empty. Other storage failures propagate.
        """
        data = await storage.load(self._key)
        self._policy.reset()
        if data is None:
            _logger.debug("No athlete cache found; starting empty")
            return 0
        if not isinstance(data, list):
            raise StorageError(f"Athlete cache has unexpected type {type(data).__name__}", key=self._key)
        loaded = 0
        for item in data:
            try:
                athlete_id, payload = item
                profile = AthleteProfile.model_validate({"athleteId": athlete_id, **payload})
            except (TypeError, ValueError, ValidationError):
                _logger.warning("Skipping malformed athlete cache entry: %r", item)
                continue
            self._profiles[profile.athlete_id] = profile
            loaded += 1
        _logger.debug("Loaded %d athlete profiles", loaded)
        return loaded

    async def maybe_save(self, storage: StateStorage, now_ms: int | None = None) -> bool:
        """Save if the debounce policy allows it; returns whether a save happened."""
        if not self._policy.should_save(now_ms):
            return False
        await self._save(storage, now_ms)
        return True

    async def flush(self, storage: StateStorage) -> bool:
        """Save unconditionally if any updates are pending."""
        if not self._policy.pending_updates:
            return False
        await self._save(storage, None)
        return True

    async def _save(self, storage: StateStorage, now_ms: int | None) -> None:
        # Stamp before writing so a failing disk is not retried on every cycle.
        self._policy.reset(now_ms)
        await storage.save(self._key, self.to_pairs())
        self._policy.mark_saved(now_ms)
        _logger.debug("Saved %d athlete profiles", len(self._profiles))
