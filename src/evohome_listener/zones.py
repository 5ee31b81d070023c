#!/usr/bin/env python3
"""evohome_listener - the zone state store.

The store is the sole authority for zone knowledge. Only the decode path writes
to it, so it has no locking.
"""

from __future__ import annotations

import copy
import dataclasses
import logging
from collections.abc import Iterable
from typing import Any

from .const import (
    MAX_TEMPERATURE,
    MAX_ZONES,
    SZ_DEMAND_PERCENTAGE,
    SZ_INSERTED_AT,
    SZ_SETPOINT,
    SZ_TEMPERATURE,
    SZ_ZONE_ID,
    SZ_ZONE_NAME,
)

_LOGGER = logging.getLogger(__name__)


@dataclasses.dataclass(kw_only=True)
class Zone:
    """A zone record: 0-11 are real zones, higher idx are pseudo-zones."""

    idx: int
    name: str | None = None
    min_temp: float = 0  # #                 # 0 means unknown
    max_temp: float = 0  # #                 # 0 means unknown
    temperature: float | None = None
    setpoint: float | None = None
    heat_demand: float | None = None  # #    # a percentage

    @property
    def has_bounds(self) -> bool:
        return bool(self.min_temp and self.max_temp)

    @property
    def is_real(self) -> bool:
        return 0 <= self.idx < MAX_ZONES

    def setpoint_in_bounds(self, value: float) -> bool:
        """Return True if the value is strictly inside the bounds (or they're unknown)."""
        return not self.has_bounds or self.min_temp < value < self.max_temp

    def as_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, zone: dict[str, Any]) -> Zone:
        fields = {f.name for f in dataclasses.fields(cls)}
        return cls(**{k: v for k, v in zone.items() if k in fields})


class ZoneStore:
    """The zone state store, a map of zone idx to zone record."""

    def __init__(self) -> None:
        self._zones: dict[int, Zone] = {}

    def __len__(self) -> int:
        return len(self._zones)

    def __contains__(self, zone_idx: object) -> bool:
        return zone_idx in self._zones

    def get(self, zone_idx: int) -> Zone | None:
        return self._zones.get(zone_idx)

    def _get_or_create(self, zone_idx: int) -> Zone:
        if (zone := self._zones.get(zone_idx)) is None:
            _LOGGER.debug("Zone %02X: created", zone_idx)
            zone = self._zones[zone_idx] = Zone(idx=zone_idx)
        return zone

    def upsert(self, zone_idx: int, **attrs: Any) -> Zone:
        """Merge attrs into a zone record, creating it if required."""

        zone = self._get_or_create(zone_idx)
        for key, value in attrs.items():
            if key == "idx" or not hasattr(zone, key):
                raise AttributeError(f"Zone has no attr: {key}")
            setattr(zone, key, value)
        return zone

    def set_temperature(self, zone_idx: int, value: float) -> bool:
        """Update a zone's temperature, return False if the value was rejected."""

        if value > MAX_TEMPERATURE:
            _LOGGER.warning(
                "Zone %02X: temperature %s is implausible (> %s), value discarded",
                zone_idx,
                value,
                MAX_TEMPERATURE,
            )
            return False

        self.upsert(zone_idx, temperature=value)
        return True

    def set_setpoint(self, zone_idx: int, value: float) -> bool:
        """Update a zone's setpoint, return False if the value was rejected.

        Once the bounds of the zone are known, only values strictly inside them are
        accepted; before then, any (plausible) value is accepted.
        """

        if value > MAX_TEMPERATURE:
            _LOGGER.warning(
                "Zone %02X: setpoint %s is implausible (> %s), value discarded",
                zone_idx,
                value,
                MAX_TEMPERATURE,
            )
            return False

        zone = self._get_or_create(zone_idx)
        if not zone.setpoint_in_bounds(value):
            _LOGGER.warning(
                "Zone %02X: setpoint %s is out of bounds (%s, %s), value discarded",
                zone_idx,
                value,
                zone.min_temp,
                zone.max_temp,
            )
            return False

        zone.setpoint = value
        return True

    def snapshot(self) -> list[Zone]:
        """Return a copy of all the zone records, ordered by idx."""
        return [copy.copy(self._zones[k]) for k in sorted(self._zones)]

    def load(self, zones: Iterable[dict[str, Any]]) -> None:
        """Seed the store from a snapshot (e.g. from a previous run)."""

        for zone in zones:
            record = Zone.from_dict(zone)
            self._zones[record.idx] = record

        _LOGGER.info("Loaded %s zone(s) from snapshot", len(self._zones))

    def summary_rows(self, inserted_at: str) -> list[dict[str, Any]]:
        """Return the accumulated state of the real zones (with known temp/demand).

        The setpoint is included only if it is strictly inside the zone's bounds.
        """

        return [
            {
                SZ_ZONE_ID: zone.idx,
                SZ_ZONE_NAME: zone.name,
                SZ_TEMPERATURE: zone.temperature,
                SZ_SETPOINT: (
                    zone.setpoint
                    if zone.setpoint is not None
                    and zone.has_bounds
                    and zone.setpoint_in_bounds(zone.setpoint)
                    else None
                ),
                SZ_DEMAND_PERCENTAGE: zone.heat_demand,
                SZ_INSERTED_AT: inserted_at,
            }
            for zone in self.snapshot()
            if zone.is_real
            and zone.temperature is not None
            and zone.heat_demand is not None
        ]
