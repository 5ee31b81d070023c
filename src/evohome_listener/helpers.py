#!/usr/bin/env python3
"""evohome_listener - Helper functions."""

from __future__ import annotations

import random
import re
from datetime import datetime as dt, timezone
from typing import TypeAlias

from .const import MAX_HEAT_DEMAND

HexStr2: TypeAlias = str  # two characters, one byte
HexStr4: TypeAlias = str

_NAME_REGEX = re.compile(r"[^A-Za-z ]")


def hex_to_idx(value: HexStr2) -> int:
    """Convert a 2-char hex string into a (zone, log) index."""
    if not isinstance(value, str) or len(value) != 2:
        raise ValueError(f"Invalid value: {value}, is not a 2-char hex string")
    return int(value, 16)


def hex_to_temp(value: HexStr4) -> float | None:
    """Convert a 2's complement 4-char hex string (centi-degrees) to a float."""
    if not isinstance(value, str) or len(value) != 4:
        raise ValueError(f"Invalid value: {value}, is not a 4-char hex string")
    if value in ("31FF", "7EFF", "7FFF"):  # means: N/A
        return None
    temp: float = int(value, 16)
    temp = (temp if temp < 2**15 else temp - 2**16) / 100
    if temp < -273.15:
        raise ValueError(f"Invalid value: {temp} (0x{value}) is < -273.15")
    return temp


def hex_to_percent(value: HexStr2) -> float:
    """Convert a 2-char hex string (00-C8) into a percentage (0-100).

    Values above C8 are returned as is (i.e. > 100), for the caller to reject.
    """
    if not isinstance(value, str) or len(value) != 2:
        raise ValueError(f"Invalid value: {value}, is not a 2-char hex string")
    return int(value, 16) / MAX_HEAT_DEMAND * 100


def hex_to_name(value: str) -> str:
    """Return a zone name from an ASCII hex string (only letters & spaces kept)."""
    if not isinstance(value, str):
        raise ValueError(f"Invalid value: {value}, is not a string")
    result = bytes.fromhex(value).decode("latin-1")  # will raise a ValueError
    return _NAME_REGEX.sub("", result).strip()


def hex_from_str(value: str) -> str:
    """Convert a string to a variable-length ASCII hex string."""
    if not isinstance(value, str):
        raise ValueError(f"Invalid value: {value}, is not a string")
    return "".join(f"{ord(x):02X}" for x in value)


def apply_jitter(interval: float, percentage: float) -> float:
    """Return an interval with a random deviation of up to +/- percentage."""
    if interval <= 0 or percentage <= 0:
        return max(interval, 0)
    deviation = interval * percentage / 100
    return random.uniform(interval - deviation, interval + deviation)


def timestamp() -> str:
    """Return the current (UTC) time as an ISO 8601 string."""
    return dt.now(timezone.utc).isoformat(timespec="seconds")
