#!/usr/bin/env python3
"""evohome_listener - a RAMSES-II telegram parser.

Decode a telegram (a line that was received from the bridge).
"""

from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING

from . import exceptions as exc
from .address import Address, pkt_addrs
from .const import MIN_LINE_WIDTH, TELEGRAM_REGEX, CommandName

if TYPE_CHECKING:
    from .catalog import CommandCatalog


PKT_LOGGER = logging.getLogger(f"{__name__}_log")

_LOGGER = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True, kw_only=True)
class Telegram:
    """A telegram, the (immutable) decode of a single line.

    For example:
      045  I --- 01:145038 --:------ 01:145038 30C9 006 0007D00B0834
    """

    raw: str  # #                # the line, less any trailing whitespace
    verb: str  # #               # I, W, RQ, RP (trimmed)
    src: Address
    dst: Address  # #            # the non-null of the two trailing address slots
    broadcast: bool  # #         # src == dst
    code: str  # #               # 30C9
    name: CommandName  # #       # zone_temperature (or unknown)
    length: int  # #             # the declared payload length (bytes), 0 if malformed
    payload: str  # #            # 0007D00B0834 (not validated)

    def __str__(self) -> str:
        return self.raw

    def __repr__(self) -> str:
        # e.g.: 30C9|I|01:145038|zone_temperature
        return f"{self.code}|{self.verb}|{self.src.id}|{self.name}"

    @property
    def hdr(self) -> str:
        """Return a header for the telegram (e.g. 0004|RP|01:145038)."""
        return f"{self.code}|{self.verb}|{self.src.id}"

    @classmethod
    def from_line(cls, line: str, catalog: CommandCatalog) -> Telegram:
        """Create a telegram from a line.

        Will raise a PacketInvalid (or PacketAddrSetInvalid) if it is invalid.
        """

        line = line.strip()

        if len(line) < MIN_LINE_WIDTH:
            raise exc.PacketInvalid(f"Line is too short ({len(line)} chars): {line}")

        if not (match := TELEGRAM_REGEX.match(line)):
            raise exc.PacketInvalid(f"Line has an invalid structure: {line}")

        src, dst = pkt_addrs(match["addrs"])  # may raise PacketAddrSetInvalid

        try:
            length = int(match["length"])
        except ValueError:
            _LOGGER.debug("Line has a malformed length field: %s", line)
            length = 0

        return cls(
            raw=line,
            verb=match["verb"].strip(),
            src=src,
            dst=dst,
            broadcast=src == dst,
            code=match["code"].upper(),
            name=catalog.name_for_code(match["code"]),
            length=length,
            payload=match["payload"] or "",
        )


def parse_line(line: str, catalog: CommandCatalog) -> Telegram | None:
    """Return a telegram from a line, or None if the line is not a valid telegram."""

    try:
        return Telegram.from_line(line, catalog)
    except exc.PacketInvalid as err:
        _LOGGER.debug("Line dropped: %s", err)
        return None
