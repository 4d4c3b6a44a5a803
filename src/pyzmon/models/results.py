"""Models published to subscribers."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from pyzmon.models.profile import AthleteProfile
from pyzmon.models.state import AthleteState
from pyzmon.models.stats import AthleteStats


class WatchingEvent(BaseModel):
    """Latest state and stats of the watched athlete."""

    model_config = ConfigDict(frozen=True)

    state: AthleteState
    stats: AthleteStats


class NearbyAthlete(BaseModel):
    """One entry of the nearby window around the watched athlete.

    ``position`` is the signed offset from the watched athlete in road
    order (0 is the watched athlete itself).
    """

    model_config = ConfigDict(frozen=True)

    position: int
    rel_road_location: float
    rel_distance: float
    """Meters."""
    time_gap: float
    """Seconds, naive estimate at current speed."""
    athlete: AthleteProfile | None = None
    state: AthleteState

    @property
    def athlete_id(self) -> int:
        return self.state.id

    @property
    def watching(self) -> bool:
        return self.position == 0


class AthleteGroup(BaseModel):
    """A pack of riders with no internal gap above the grouping threshold."""

    model_config = ConfigDict(frozen=True)

    athletes: list[AthleteState]
    watching: bool = False
    """Whether the watched athlete rides in this group."""
    power: float | None = None
    """Mean power of members reporting power."""
    draft: float | None = None
    """Mean draft of members reporting draft."""
    dist_gap: float = 0.0
    time_gap: float = 0.0
    tot_dist_gap: float = 0.0
    tot_time_gap: float = 0.0

    @property
    def size(self) -> int:
        return len(self.athletes)


class ChatEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    from_athlete_id: int
    to: int = 0
    message: str = ""
    event_subgroup: int = 0
    first_name: str | None = None
    last_name: str | None = None
    avatar: str | None = None
    ts: int | None = None
    dist_gap: float | None = None
    """Meters between sender and watched athlete, when both are known."""

    @property
    def is_private(self) -> bool:
        return bool(self.to)
