#!/usr/bin/env python3
"""evohome_listener - a RAMSES-II telegram encoder.

Construct a command (a telegram that is to be sent).
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from . import exceptions as exc
from .address import HGI_DEV_ADDR, NON_DEV_ADDR, Address
from .const import COMMAND_REGEX, I_, RP, RQ, W_, CommandName, VerbT

if TYPE_CHECKING:
    from .catalog import CommandCatalog


COMMAND_FORMAT = "{:>2} --- {} {} {} {} {:03d} {}"

_PAYLOAD_REGEX = re.compile(r"^([0-9A-F]{2})+$")

_LOGGER = logging.getLogger(__name__)


class Command:
    """The Command class (a pending command, to be sent exactly once).

    The payload is rendered when the command is created, the code is resolved
    from the catalog when it is encoded.
    """

    def __init__(
        self,
        verb: VerbT | str,
        name: CommandName | str,
        dst_id: str,
        payload: str,
        *,
        broadcast: bool = False,
    ) -> None:
        """Create a command (will raise a CommandInvalid if it is invalid)."""

        verb = I_ if verb == "I" else W_ if verb == "W" else verb
        if verb not in (I_, RQ, RP, W_):
            raise exc.CommandInvalid(f"Invalid verb: '{verb}'")

        try:
            self.name = CommandName(name)
        except ValueError:
            raise exc.CommandInvalid(f"Invalid command name: {name}") from None
        if self.name == CommandName.UNKNOWN:
            raise exc.CommandInvalid(f"Invalid command name: {name}")

        if not Address.is_valid(dst_id) or dst_id == NON_DEV_ADDR.id:
            raise exc.CommandInvalid(f"Invalid destination: {dst_id}")

        if not isinstance(payload, str) or not _PAYLOAD_REGEX.match(payload):
            raise exc.CommandInvalid(f"Invalid payload: {payload}")

        self.verb: VerbT = verb  # type: ignore[assignment]
        self.dst_id = dst_id
        self.payload = payload
        self.broadcast = broadcast

    def __repr__(self) -> str:
        # e.g.: RQ|01:145038|zone_name|0100
        return f"{self.verb.strip()}|{self.dst_id}|{self.name}|{self.payload}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Command):
            return NotImplemented
        return (
            self.verb,
            self.name,
            self.dst_id,
            self.payload,
            self.broadcast,
        ) == (
            other.verb,
            other.name,
            other.dst_id,
            other.payload,
            other.broadcast,
        )

    def __hash__(self) -> int:
        return hash((self.verb, self.name, self.dst_id, self.payload, self.broadcast))

    @property
    def length(self) -> int:
        """Return the payload length (in bytes)."""
        return len(self.payload) // 2

    def encode(self, catalog: CommandCatalog) -> str:
        """Return the command as a line, in the same grammar as the parser expects.

        A broadcast collapses the destination slot to null:
          RQ --- 18:000730 01:145038 --:------ 0004 002 0100  # directed
           I --- 18:000730 --:------ 18:000730 1F09 003 FF073F  # broadcast
        """

        if self.broadcast:
            addrs = (HGI_DEV_ADDR.id, NON_DEV_ADDR.id, HGI_DEV_ADDR.id)
        else:
            addrs = (HGI_DEV_ADDR.id, self.dst_id, NON_DEV_ADDR.id)

        try:
            code = catalog.code_for_name(self.name)
        except KeyError:
            raise exc.CommandInvalid(f"Not in the catalog: {self.name}") from None

        frame = COMMAND_FORMAT.format(self.verb, *addrs, code, self.length, self.payload)
        if not COMMAND_REGEX.match(frame):
            raise exc.CommandInvalid(f"Invalid frame: {frame}")
        return frame

    @classmethod
    def from_attrs(
        cls,
        verb: VerbT | str,
        name: CommandName | str,
        dst_id: str,
        payload: str,
        *,
        broadcast: bool = False,
    ) -> Command:
        """Create a command from its attrs."""
        return cls(verb, name, dst_id, payload, broadcast=broadcast)

    @classmethod  # constructor for RQ|0004
    def get_zone_name(cls, ctl_id: str, zone_idx: int) -> Command:
        """Constructor to get the name of a zone."""
        return cls.from_attrs(RQ, CommandName.ZONE_NAME, ctl_id, f"{zone_idx:02X}00")

    @classmethod  # constructor for RQ|000A
    def get_zone_info(cls, ctl_id: str, zone_idx: int) -> Command:
        """Constructor to get the setpoint bounds (and flags) of a zone."""
        return cls.from_attrs(RQ, CommandName.ZONE_INFO, ctl_id, f"{zone_idx:02X}")

    @classmethod  # constructor for RQ|0418
    def get_device_info(cls, ctl_id: str, log_idx: int) -> Command:
        """Constructor to get the nth entry of the controller's device list."""
        return cls.from_attrs(
            RQ, CommandName.DEVICE_INFO, ctl_id, f"0000{log_idx:02X}"
        )

    @classmethod  # constructor for RQ|10E0
    def get_heartbeat(cls, ctl_id: str) -> Command:
        """Constructor to check the controller is alive."""
        return cls.from_attrs(RQ, CommandName.HEARTBEAT, ctl_id, "00")

    @classmethod  # constructor for RQ|2E04
    def get_controller_mode(cls, ctl_id: str) -> Command:
        """Constructor to get the mode of the controller (e.g. auto, away)."""
        return cls.from_attrs(RQ, CommandName.CONTROLLER_MODE, ctl_id, "FF")
