"""Athlete state models.

:class:`PlayerState` mirrors a decoded per-tick player state record as
delivered by the protocol decoder (raw units, packed flags).
:class:`AthleteState` is the normalized record kept in the live store.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, ClassVar

from pydantic import AliasChoices, Field, field_validator

from pyzmon.ingestion.flags import Turning, decode_flags1, decode_flags2
from pyzmon.ingestion.normalize import (
    cadence_from_raw,
    heading_to_degrees,
    safe_float,
    safe_int,
    speed_from_raw,
    world_time_age_seconds,
    world_time_to_wall_clock,
)
from pyzmon.models._base import ZmonBaseModel


class PlayerState(ZmonBaseModel):
    """Decoded player state record in wire units."""

    _KEY_ALIASES: ClassVar[dict[str, str]] = {
        "athleteId": "id",
        "altitude": "z",
    }

    id: int
    world_time: int = 0
    """World time in milliseconds."""
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    road_location: float = 0.0
    group_id: int = 0
    """Event subgroup id (0 when not in an event)."""
    speed: float = 0.0
    """Millionths of km/h."""
    heading: float = 0.0
    """Microradians."""
    cadence_u_hz: float | None = Field(
        default=None,
        validation_alias=AliasChoices("cadenceUHz", "cadence_u_hz", "cadenceUhz"),
    )
    power: int | None = None
    heartrate: int | None = None
    draft: int | None = None
    flags1: int = 0
    flags2: int = 0
    watching_athlete_id: int | None = None

    @field_validator("world_time", "group_id", "flags1", "flags2", mode="before")
    @classmethod
    def _coerce_counters(cls, value: Any) -> int:
        parsed = safe_int(value)
        return 0 if parsed is None else parsed

    @field_validator("power", "heartrate", "draft", "watching_athlete_id", mode="before")
    @classmethod
    def _coerce_optional_ints(cls, value: Any) -> int | None:
        return safe_int(value)

    @field_validator("x", "y", "z", "road_location", "speed", "heading", mode="before")
    @classmethod
    def _coerce_floats(cls, value: Any) -> float:
        parsed = safe_float(value)
        return 0.0 if parsed is None else parsed


class AthleteState(ZmonBaseModel):
    """Latest normalized state of one athlete.

    Bitfields whose meaning is not known (``flags1_b0_1``,
    ``flags1_b4_23``, ``flags2_b0_3``, ``flags2_rem``) are preserved as
    decoded integers.
    """

    id: int
    world_time: int
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    road_id: int = 0
    road_location: float = 0.0
    reverse: bool = False
    reversing: bool = False
    group_id: int = 0
    speed: float = 0.0
    """km/h."""
    heading: float = 0.0
    """Degrees in ``[0, 360)``."""
    cadence: float | None = None
    """rpm, ``None`` when not reported."""
    power: int | None = None
    heartrate: int | None = None
    draft: int | None = None
    turning: Turning = Turning.NONE
    overlapping: bool = False
    ride_ons: int = 0
    flags1: int = 0
    flags2: int = 0
    flags1_b0_1: int = 0
    flags1_b4_23: int = 0
    flags2_b0_3: int = 0
    flags2_rem: int = 0
    watching_athlete_id: int | None = None

    @classmethod
    def from_player_state(cls, player: PlayerState) -> AthleteState:
        """Normalize a decoded wire record: units converted, flags unpacked."""
        f1 = decode_flags1(player.flags1)
        f2 = decode_flags2(player.flags2)
        return cls(
            id=player.id,
            world_time=player.world_time,
            x=player.x,
            y=player.y,
            z=player.z,
            road_id=f2.road_id,
            road_location=player.road_location,
            reverse=f1.reverse,
            reversing=f1.reversing,
            group_id=player.group_id,
            speed=speed_from_raw(player.speed),
            heading=heading_to_degrees(player.heading),
            cadence=cadence_from_raw(player.cadence_u_hz),
            power=player.power,
            heartrate=player.heartrate,
            draft=player.draft,
            turning=f2.turning,
            overlapping=f2.overlapping,
            ride_ons=f1.ride_ons,
            flags1=player.flags1,
            flags2=player.flags2,
            flags1_b0_1=f1.b0_1,
            flags1_b4_23=f1.b4_23,
            flags2_b0_3=f2.b0_3,
            flags2_rem=f2.rem,
            watching_athlete_id=player.watching_athlete_id,
            raw=player.raw,
        )

    @classmethod
    def from_raw(cls, data: dict[str, Any]) -> AthleteState:
        return cls.from_player_state(PlayerState.model_validate(data))

    @property
    def wall_clock(self) -> datetime:
        """Wall-clock time of this sample (UTC)."""
        return world_time_to_wall_clock(self.world_time)

    @property
    def road_signature(self) -> tuple[int, bool]:
        return (self.road_id, self.reverse)

    def age_seconds(self, now: datetime) -> float:
        return world_time_age_seconds(self.world_time, now)
