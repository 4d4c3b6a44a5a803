from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

import pytest

from pyzmon.ingestion.normalize import world_time_to_wall_clock
from pyzmon.state.policy import Freshness, classify_age
from pyzmon.state.store import LiveStateStore

WT0 = 1_000_000_000


def _raw(athlete_id: int, world_time: int, *, kmh: float = 30.0, **extra: Any) -> dict[str, Any]:
    return {"id": athlete_id, "worldTime": world_time, "speed": int(kmh * 1_000_000), **extra}


def _clock_at(world_time: int) -> datetime:
    return world_time_to_wall_clock(world_time)


def test_upsert_replaces_previous_record() -> None:
    store = LiveStateStore()

    store.upsert(_raw(1, WT0, power=100, draft=10))
    state, _ = store.upsert(_raw(1, WT0 + 1000, power=200))

    assert store.get(1) is state
    assert state.power == 200
    # No merge: draft from the first record does not survive.
    assert state.draft is None
    assert len(store) == 1


def test_first_sample_creates_zeroed_stats_without_accumulating() -> None:
    store = LiveStateStore()

    _, stats = store.upsert(_raw(1, WT0, power=300, heartrate=150))

    assert stats.world_time == WT0
    assert stats.power_sum == 0
    assert stats.power_dur == 0
    assert stats.power_max == 0


def test_power_average_is_time_weighted() -> None:
    store = LiveStateStore()
    samples = [(WT0, 100), (WT0 + 1000, 200), (WT0 + 4000, 300), (WT0 + 5000, 50)]

    for world_time, power in samples:
        _, stats = store.upsert(_raw(1, world_time, power=power))

    # Each sample is weighted by the time elapsed since the previous one.
    expected = (200 * 1000 + 300 * 3000 + 50 * 1000) / 5000
    assert stats.power_dur == 5000
    assert stats.power_sum / stats.power_dur == pytest.approx(expected)
    assert stats.power_avg == pytest.approx(expected)
    assert stats.power_max == 300


def test_stationary_sample_is_excluded() -> None:
    store = LiveStateStore()
    store.upsert(_raw(1, WT0, power=100))
    _, stats = store.upsert(_raw(1, WT0 + 1000, power=150))
    before = stats.model_copy()

    _, stats = store.upsert(_raw(1, WT0 + 2000, kmh=0, power=900, heartrate=190))

    assert stats.power_sum == before.power_sum
    assert stats.power_max == before.power_max
    assert stats.hr_max == before.hr_max
    assert stats.world_time == WT0 + 2000


def test_negative_world_time_delta_is_not_accumulated() -> None:
    store = LiveStateStore()
    store.upsert(_raw(1, WT0 + 5000, power=100))

    _, stats = store.upsert(_raw(1, WT0 + 1000, power=500))

    assert stats.power_dur == 0
    assert stats.power_max == 0
    # Stats clock never moves backwards, so the next delta is measured from the newest sample.
    assert stats.world_time == WT0 + 5000
    _, stats = store.upsert(_raw(1, WT0 + 6000, power=200))
    assert stats.power_dur == 1000


def test_zero_heartrate_is_ignored_but_power_counts() -> None:
    store = LiveStateStore()
    store.upsert(_raw(1, WT0))

    _, stats = store.upsert(_raw(1, WT0 + 2000, power=250, heartrate=0, draft=30, cadenceUHz=1_500_000))

    assert stats.hr_dur == 0
    assert stats.hr_avg is None
    assert stats.power_dur == 2000
    assert stats.draft_avg == pytest.approx(30)
    assert stats.cadence_avg == pytest.approx(90)


def test_prune_skips_stale_and_evicts_expired() -> None:
    now_wt = WT0 + 2_000_000
    store = LiveStateStore(clock=lambda: _clock_at(now_wt))
    store.upsert(_raw(1, now_wt - 1_000))
    store.upsert(_raw(2, now_wt - 20_000))
    store.upsert(_raw(3, now_wt - 1_900_000))

    fresh = store.prune()

    assert [s.id for s in fresh] == [1]
    assert 2 in store
    assert 3 not in store
    # Stats outlive eviction.
    assert store.stats(3) is not None


def test_classify_age_thresholds() -> None:
    assert classify_age(15.0) is Freshness.FRESH
    assert classify_age(15.001) is Freshness.STALE
    assert classify_age(1800.0) is Freshness.STALE
    assert classify_age(1800.5) is Freshness.EXPIRED
    assert classify_age(-timedelta(seconds=3).total_seconds()) is Freshness.FRESH


def test_prune_survives_counters_beyond_datetime_range() -> None:
    now_wt = WT0 + 2_000_000
    store = LiveStateStore(clock=lambda: _clock_at(now_wt))
    store.upsert(_raw(1, now_wt - 1_000))
    store.upsert(_raw(2, 2**62))
    store.upsert(_raw(3, now_wt - 1_900_000))

    fresh = store.prune()

    assert sorted(s.id for s in fresh) == [1, 2]
    assert 3 not in store
