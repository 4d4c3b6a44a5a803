"""Decoders for the two packed flag words carried by every player state.

Layout (least significant bits first)::

    flags1: [2 unknown][reverse][reversing][20 unknown][ride-ons ...]
    flags2: [4 unknown][turning x2][overlapping][road id x16][unknown ...]

Fields marked unknown are kept verbatim; their meaning has not been
established.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class Turning(enum.IntEnum):
    """Turn signal reported in ``flags2``."""

    NONE = 0
    RIGHT = 1
    LEFT = 2
    UNKNOWN = 3  # never observed


@dataclass(frozen=True)
class Flags1:
    b0_1: int
    reverse: bool
    reversing: bool
    b4_23: int
    ride_ons: int

    def pack(self) -> int:
        bits = self.ride_ons
        bits = (bits << 20) | self.b4_23
        bits = (bits << 1) | int(self.reversing)
        bits = (bits << 1) | int(self.reverse)
        return (bits << 2) | self.b0_1


@dataclass(frozen=True)
class Flags2:
    b0_3: int
    turning: Turning
    overlapping: bool
    road_id: int
    rem: int

    def pack(self) -> int:
        bits = self.rem
        bits = (bits << 16) | self.road_id
        bits = (bits << 1) | int(self.overlapping)
        bits = (bits << 2) | int(self.turning)
        return (bits << 4) | self.b0_3


def decode_flags1(bits: int) -> Flags1:
    b0_1 = bits & 0x3
    bits >>= 2
    reverse = bool(bits & 0x1)
    bits >>= 1
    reversing = bool(bits & 0x1)
    bits >>= 1
    b4_23 = bits & ((1 << 20) - 1)
    bits >>= 20
    return Flags1(b0_1=b0_1, reverse=reverse, reversing=reversing, b4_23=b4_23, ride_ons=bits)


def decode_flags2(bits: int) -> Flags2:
    b0_3 = bits & 0xF
    bits >>= 4
    turning = Turning(bits & 0x3)
    bits >>= 2
    overlapping = bool(bits & 0x1)  # near or recently on a junction; unconfirmed
    bits >>= 1
    road_id = bits & 0xFFFF
    bits >>= 16
    return Flags2(b0_3=b0_3, turning=turning, overlapping=overlapping, road_id=road_id, rem=bits)
