"""Nearby window and group segmentation around the watched athlete.

Everything here is a pure function of a snapshot of fresh athlete states;
the scheduler owns pruning and publishing.

Road order
    Candidates are sorted by ``watched.road_location - road_location``,
    ascending when the watched athlete rides the road in reverse and
    descending otherwise, so the list always runs in the same direction
    relative to travel regardless of road direction.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Protocol

from pyzmon._constants import DEFAULT_GROUP_GAP_M, DEFAULT_NEARBY_WINDOW
from pyzmon.ingestion.normalize import distance, speed_to_mps
from pyzmon.models.profile import AthleteProfile
from pyzmon.models.results import AthleteGroup, NearbyAthlete
from pyzmon.models.state import AthleteState

_logger = logging.getLogger(__name__)

# km/h used when neither rider reports a speed.
_FALLBACK_SPEED_KMH = 1.0


class ProfileLookup(Protocol):
    def get(self, athlete_id: int) -> AthleteProfile | None: ...


@dataclass(frozen=True)
class RoadEntry:
    rel_road_location: float
    state: AthleteState


@dataclass(frozen=True)
class ProximityResult:
    nearby: list[NearbyAthlete]
    groups: list[AthleteGroup]


def _time_gap(dist: float, *speeds: float) -> float:
    speed = next((s for s in speeds if s), _FALLBACK_SPEED_KMH)
    return dist / speed_to_mps(speed)


def _mean(values: Iterable[float | None]) -> float | None:
    known = [v for v in values if v is not None]
    if not known:
        return None
    return sum(known) / len(known)


def same_road(watched: AthleteState, candidate: AthleteState) -> bool:
    """Whether *candidate* shares the watched athlete's road, direction and event group."""
    if watched.group_id and candidate.group_id != watched.group_id:
        return False
    return candidate.reverse == watched.reverse and candidate.road_id == watched.road_id


def order_by_road(watched: AthleteState, states: Iterable[AthleteState]) -> list[RoadEntry]:
    entries = [
        RoadEntry(rel_road_location=watched.road_location - s.road_location, state=s)
        for s in states
        if same_road(watched, s)
    ]
    entries.sort(key=lambda e: e.rel_road_location, reverse=not watched.reverse)
    return entries


def nearby_window(
    watched: AthleteState,
    ordered: Sequence[RoadEntry],
    profiles: ProfileLookup,
    *,
    window: int = DEFAULT_NEARBY_WINDOW,
) -> list[NearbyAthlete] | None:
    """Up to *window* riders either side of the watched athlete.

    Returns ``None`` when the watched athlete is not part of *ordered*.
    """
    center = next((i for i, e in enumerate(ordered) if e.state.id == watched.id), None)
    if center is None:
        return None

    nearby: list[NearbyAthlete] = []
    for i in range(max(0, center - window), min(len(ordered), center + window + 1)):
        entry = ordered[i]
        rel_distance = distance(entry.state, watched)
        nearby.append(
            NearbyAthlete(
                position=i - center,
                rel_road_location=entry.rel_road_location,
                rel_distance=rel_distance,
                time_gap=_time_gap(rel_distance, watched.speed, entry.state.speed),
                athlete=profiles.get(entry.state.id),
                state=entry.state,
            )
        )
    return nearby


def build_groups(
    watched_id: int,
    ordered: Sequence[RoadEntry],
    *,
    gap: float = DEFAULT_GROUP_GAP_M,
) -> list[AthleteGroup]:
    """Split road-ordered riders into packs wherever consecutive riders are more than *gap* apart.

    A group's ``dist_gap`` runs from the previous group's last rider (its
    tail) to this group's first rider (its head); ``time_gap`` divides it by
    the head's speed.
    """
    runs: list[list[AthleteState]] = []
    for entry in ordered:
        if runs and distance(entry.state, runs[-1][-1]) <= gap:
            runs[-1].append(entry.state)
        else:
            runs.append([entry.state])

    groups: list[AthleteGroup] = []
    prev_run: list[AthleteState] | None = None
    tot_dist_gap = 0.0
    tot_time_gap = 0.0
    for members in runs:
        lead = members[0]
        if prev_run is None:
            dist_gap = time_gap = 0.0
        else:
            dist_gap = distance(lead, prev_run[-1])
            time_gap = _time_gap(dist_gap, lead.speed)
        tot_dist_gap += dist_gap
        tot_time_gap += time_gap
        groups.append(
            AthleteGroup(
                athletes=members,
                watching=any(m.id == watched_id for m in members),
                power=_mean(m.power for m in members),
                draft=_mean(m.draft for m in members),
                dist_gap=dist_gap,
                time_gap=time_gap,
                tot_dist_gap=tot_dist_gap,
                tot_time_gap=tot_time_gap,
            )
        )
        prev_run = members
    return groups


def compute_proximity(
    watched: AthleteState,
    states: Iterable[AthleteState],
    profiles: ProfileLookup,
    *,
    window: int = DEFAULT_NEARBY_WINDOW,
    gap: float = DEFAULT_GROUP_GAP_M,
) -> ProximityResult | None:
    """Nearby window and groups for *watched* among fresh *states*.

    Returns ``None`` (skip this tick) when the watched athlete is not among
    the candidates, e.g. because its own state went stale.
    """
    ordered = order_by_road(watched, states)
    nearby = nearby_window(watched, ordered, profiles, window=window)
    if nearby is None:
        _logger.debug("Watched athlete %s not among %d candidates; skipping", watched.id, len(ordered))
        return None
    return ProximityResult(nearby=nearby, groups=build_groups(watched.id, ordered, gap=gap))
