"""Rolling per-athlete performance statistics."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from pyzmon.models.state import AthleteState


def _avg(total: float, duration: float) -> float | None:
    if duration <= 0:
        return None
    return total / duration


class AthleteStats(BaseModel):
    """Duration-weighted accumulators for one athlete.

    Sums are ``value * milliseconds``; durations are milliseconds of
    moving time. Stationary time never contributes.
    """

    model_config = ConfigDict(extra="forbid")

    power_sum: float = 0.0
    power_dur: int = 0
    power_max: int = 0
    hr_sum: float = 0.0
    hr_dur: int = 0
    hr_max: int = 0
    draft_sum: float = 0.0
    draft_dur: int = 0
    cadence_sum: float = 0.0
    cadence_dur: int = 0
    world_time: int | None = None
    """Last observed world time (``None`` before the first sample)."""

    def accumulate(self, state: AthleteState, duration: int) -> None:
        """Weight the sample's values by *duration* ms.

        No-op unless the duration is positive and the athlete is moving.
        """
        if duration <= 0 or not state.speed:
            return
        if state.power is not None:
            self.power_sum += state.power * duration
            self.power_dur += duration
            if state.power > self.power_max:
                self.power_max = state.power
        if state.heartrate:
            self.hr_sum += state.heartrate * duration
            self.hr_dur += duration
            if state.heartrate > self.hr_max:
                self.hr_max = state.heartrate
        if state.draft is not None:
            self.draft_sum += state.draft * duration
            self.draft_dur += duration
        if state.cadence is not None:
            self.cadence_sum += state.cadence * duration
            self.cadence_dur += duration

    @property
    def power_avg(self) -> float | None:
        return _avg(self.power_sum, self.power_dur)

    @property
    def hr_avg(self) -> float | None:
        return _avg(self.hr_sum, self.hr_dur)

    @property
    def draft_avg(self) -> float | None:
        return _avg(self.draft_sum, self.draft_dur)

    @property
    def cadence_avg(self) -> float | None:
        return _avg(self.cadence_sum, self.cadence_dur)
