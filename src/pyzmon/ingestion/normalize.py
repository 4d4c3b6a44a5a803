"""Normalization helpers.

Centralizes defensive parsing and the unit conversions applied to decoded
athlete state records.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol

from pyzmon._constants import CADENCE_SCALE, SPEED_SCALE, WORLD_TIME_OFFSET_MS

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_HALF_CIRCLE = 1_000_000 * math.pi


class _Planar(Protocol):
    x: float
    y: float


def safe_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def safe_int(value: Any) -> int | None:
    # Counters are 64-bit; avoid the float round-trip for values already integral.
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            pass
    parsed = safe_float(value)
    if parsed is None:
        return None
    return int(parsed)


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text else None


def world_time_to_epoch_ms(world_time: int) -> int:
    """Convert a world time tick counter (ms) to Unix epoch milliseconds."""
    return WORLD_TIME_OFFSET_MS + int(world_time)


def world_time_to_wall_clock(world_time: int) -> datetime:
    """Convert a world time tick counter (ms) to an aware UTC datetime.

    Counters beyond the range of :class:`datetime` clamp to its bounds.
    """
    epoch_ms = world_time_to_epoch_ms(world_time)
    try:
        return _EPOCH + timedelta(milliseconds=epoch_ms)
    except OverflowError:
        bound = datetime.max if epoch_ms > 0 else datetime.min
        return bound.replace(tzinfo=UTC)


def world_time_age_seconds(world_time: int, now: datetime) -> float:
    """Seconds elapsed between a world time tick and the aware datetime *now*.

    Computed on integer epoch milliseconds so any 64-bit counter works.
    """
    now_ms = (now - _EPOCH) // timedelta(milliseconds=1)
    return (now_ms - world_time_to_epoch_ms(world_time)) / 1000


def heading_to_degrees(micro_rads: float) -> float:
    """Convert a heading in microradians to degrees in ``[0, 360)``."""
    degrees = (((micro_rads + _HALF_CIRCLE) / (2 * _HALF_CIRCLE)) * 360) % 360
    # Float modulo of a tiny negative value rounds up to the modulus itself.
    if degrees >= 360:
        return 0.0
    return degrees


def speed_from_raw(raw_speed: float | None) -> float:
    """Raw speed (millionths of km/h) to km/h."""
    if not raw_speed:
        return 0.0
    return raw_speed / SPEED_SCALE


def cadence_from_raw(cadence_uhz: float | None) -> float | None:
    """Raw cadence in microhertz to revolutions per minute (``None`` when absent)."""
    if not cadence_uhz:
        return None
    return cadence_uhz / CADENCE_SCALE * 60


def speed_to_mps(speed_kmh: float) -> float:
    return speed_kmh * 1000 / 3600


def distance(a: _Planar, b: _Planar) -> float:
    """Planar distance between two positions, roughly in meters.

    Only ``x`` and ``y`` are used; altitude is ignored.
    """
    return math.hypot(b.x - a.x, b.y - a.y) / 100
