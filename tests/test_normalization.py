from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import UTC, datetime

import pytest

from pyzmon._constants import WORLD_TIME_OFFSET_MS
from pyzmon.ingestion.normalize import (
    cadence_from_raw,
    distance,
    heading_to_degrees,
    safe_float,
    safe_int,
    speed_to_mps,
    world_time_age_seconds,
    world_time_to_epoch_ms,
    world_time_to_wall_clock,
)
from pyzmon.models.state import AthleteState


@dataclass
class _Pos:
    x: float
    y: float
    z: float = 0.0


def test_world_time_zero_is_offset() -> None:
    assert world_time_to_epoch_ms(0) == WORLD_TIME_OFFSET_MS
    wall = world_time_to_wall_clock(0)
    assert wall.tzinfo is UTC
    assert wall.timestamp() == pytest.approx(WORLD_TIME_OFFSET_MS / 1000)


def test_world_time_handles_64bit_counters() -> None:
    big = 2**62
    assert world_time_to_epoch_ms(big) == WORLD_TIME_OFFSET_MS + big


@pytest.mark.parametrize(
    "micro_rads",
    [0.0, -1e-20, 1e-9, math.pi * 1e6, -math.pi * 1e6, 2 * math.pi * 1e6, 123456789.0, -987654321.5, 1e15],
)
def test_heading_always_in_range(micro_rads: float) -> None:
    degrees = heading_to_degrees(micro_rads)
    assert 0 <= degrees < 360


def test_heading_reference_points() -> None:
    assert heading_to_degrees(0) == pytest.approx(180.0)
    assert heading_to_degrees(-math.pi * 1e6) == pytest.approx(0.0)
    assert heading_to_degrees(math.pi * 1e6 / 2) == pytest.approx(270.0)


def test_distance_ignores_altitude_and_is_symmetric() -> None:
    a = _Pos(0, 0, z=0)
    b = _Pos(300, 400, z=9999)

    assert distance(a, a) == 0
    assert distance(a, b) == pytest.approx(5.0)
    assert distance(a, b) == distance(b, a)


def test_speed_to_mps() -> None:
    assert speed_to_mps(36.0) == pytest.approx(10.0)


def test_cadence_absent_is_none() -> None:
    assert cadence_from_raw(None) is None
    assert cadence_from_raw(0) is None
    assert cadence_from_raw(1_500_000) == pytest.approx(90.0)


def test_safe_int_keeps_large_integers_exact() -> None:
    assert safe_int(2**62 + 1) == 2**62 + 1
    assert safe_int("12") == 12
    assert safe_int("--") is None


def test_athlete_state_from_raw_normalizes_units_and_flags() -> None:
    state = AthleteState.from_raw(
        {
            "id": 7,
            "worldTime": 1000,
            "x": 100.0,
            "y": -50.0,
            "altitude": 12.0,
            "roadLocation": 5000,
            "groupId": 3,
            "speed": 36_000_000,
            "heading": 0,
            "cadenceUHz": 1_500_000,
            "power": 250,
            "heartrate": 140,
            "draft": 20,
            "flags1": (1 << 2) | (4 << 24),
            "flags2": (1 << 4) | (42 << 7),
        }
    )

    assert state.id == 7
    assert state.z == 12.0
    assert state.speed == pytest.approx(36.0)
    assert state.heading == pytest.approx(180.0)
    assert state.cadence == pytest.approx(90.0)
    assert state.reverse is True
    assert state.ride_ons == 4
    assert state.road_id == 42
    assert state.road_signature == (42, True)
    assert state.raw["power"] == 250


def test_athlete_state_without_cadence() -> None:
    state = AthleteState.from_raw({"id": 1, "worldTime": 1, "speed": 0})

    assert state.cadence is None
    assert state.speed == 0
    assert state.power is None


def test_wall_clock_clamps_counters_beyond_datetime_range() -> None:
    assert world_time_to_wall_clock(2**62) == datetime.max.replace(tzinfo=UTC)
    assert world_time_to_wall_clock(-(2**62)) == datetime.min.replace(tzinfo=UTC)


def test_age_uses_integer_milliseconds_for_64bit_counters() -> None:
    now = world_time_to_wall_clock(1_000_000)

    assert world_time_age_seconds(1_000_000 - 2_500, now) == pytest.approx(2.5)
    assert world_time_age_seconds(2**62, now) < 0
    assert AthleteState(id=1, world_time=2**62).age_seconds(now) < 0


def test_infinite_values_are_rejected() -> None:
    assert safe_float(float("inf")) is None
    assert safe_float("-inf") is None
    assert safe_int(float("inf")) is None

    state = AthleteState.from_raw({"id": 1, "worldTime": 1, "heading": float("inf"), "x": float("-inf")})

    assert state.heading == pytest.approx(180.0)
    assert state.x == 0.0
