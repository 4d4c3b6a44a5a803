from __future__ import annotations

import pytest

from pyzmon.ingestion.flags import Turning, decode_flags1, decode_flags2


def test_flags1_field_layout() -> None:
    bits = 0b11 | (1 << 2) | (0 << 3) | (0xABCDE << 4) | (7 << 24)

    flags = decode_flags1(bits)

    assert flags.b0_1 == 0b11
    assert flags.reverse is True
    assert flags.reversing is False
    assert flags.b4_23 == 0xABCDE
    assert flags.ride_ons == 7


def test_flags2_field_layout() -> None:
    bits = 0xF | (2 << 4) | (1 << 6) | (0x1234 << 7) | (5 << 23)

    flags = decode_flags2(bits)

    assert flags.b0_3 == 0xF
    assert flags.turning == Turning.LEFT
    assert flags.overlapping is True
    assert flags.road_id == 0x1234
    assert flags.rem == 5


def test_flags2_turning_codes() -> None:
    assert decode_flags2(0).turning == Turning.NONE
    assert decode_flags2(1 << 4).turning == Turning.RIGHT
    assert decode_flags2(2 << 4).turning == Turning.LEFT
    assert decode_flags2(3 << 4).turning == Turning.UNKNOWN


@pytest.mark.parametrize(
    "bits",
    [0, 1, 0x3, 0xFFFFFFFF, 0x1_0000_0000, 2**63 - 1, 123456789, -1, -987654],
)
def test_flags_pack_reconstructs_input(bits: int) -> None:
    assert decode_flags1(bits).pack() == bits
    assert decode_flags2(bits).pack() == bits


def test_zero_decodes_to_defaults() -> None:
    flags = decode_flags1(0)
    assert (flags.b0_1, flags.reverse, flags.reversing, flags.b4_23, flags.ride_ons) == (0, False, False, 0, 0)
