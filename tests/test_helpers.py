#!/usr/bin/env python3
"""evohome_listener - Test the various helper functions."""

from evohome_listener.helpers import (
    apply_jitter,
    hex_from_str,
    hex_to_idx,
    hex_to_name,
    hex_to_percent,
    hex_to_temp,
)

from .helpers import assert_raises


def test_hex_to_temp() -> None:
    assert hex_to_temp("0802") == 20.5
    assert hex_to_temp("2710") == 100.0
    assert hex_to_temp("FF38") == -2.0
    assert hex_to_temp("7FFF") is None
    assert hex_to_temp("31FF") is None

    assert_raises(ValueError, hex_to_temp, "802")
    assert_raises(ValueError, hex_to_temp, "XXXX")


def test_hex_to_percent() -> None:
    assert hex_to_percent("00") == 0
    assert hex_to_percent("64") == 50.0
    assert hex_to_percent("C8") == 100.0
    assert hex_to_percent("C9") > 100

    assert_raises(ValueError, hex_to_percent, "C")


def test_hex_to_idx() -> None:
    assert hex_to_idx("0B") == 11
    assert hex_to_idx("FC") == 252

    assert_raises(ValueError, hex_to_idx, "FCC8")


def test_hex_to_name() -> None:
    assert hex_to_name(hex_from_str("Living Room") + "0000") == "Living Room"
    assert hex_to_name(hex_from_str(" Bed-room 2 ")) == "Bedroom"
    assert hex_to_name("7F" * 20) == ""

    assert_raises(ValueError, hex_to_name, "ZZ" * 20)
    assert_raises(ValueError, hex_to_name, "4C6")


def test_apply_jitter() -> None:
    for _ in range(100):
        assert 75 <= apply_jitter(100, 25) <= 125

    assert apply_jitter(100, 0) == 100
    assert apply_jitter(0, 25) == 0
