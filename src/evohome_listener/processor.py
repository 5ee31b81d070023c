#!/usr/bin/env python3
"""evohome_listener - the message processor.

Filter, parse & dispatch each inbound line to its payload parser, which may update
the zone store, emit measurement rows and queue follow-up commands.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from . import exceptions as exc
from .const import (
    CTL_DEVICE_TYPE,
    IGNORED_LINE_MARKERS,
    MAX_ZONES,
    MIN_LINE_LENGTH,
    SZ_BROADCAST,
    SZ_COMMAND_TYPE,
    SZ_DEMAND_PERCENTAGE,
    SZ_DESTINATION_ID,
    SZ_DESTINATION_TYPE,
    SZ_INSERTED_AT,
    SZ_MESSAGE_TYPE,
    SZ_SETPOINT,
    SZ_SOURCE_ID,
    SZ_SOURCE_TYPE,
    SZ_TEMPERATURE,
    SZ_ZONE_ID,
    SZ_ZONE_NAME,
)
from .helpers import timestamp
from .logger import pkt_extra
from .packet import PKT_LOGGER, parse_line
from .parsers import PAYLOAD_PARSERS, parser_unknown

if TYPE_CHECKING:
    from .address import Address
    from .catalog import CommandCatalog
    from .dispatcher import CommandQueue
    from .packet import Telegram
    from .sinks import MeasurementSinkT
    from .zones import ZoneStore


_MsgHandlerT = Callable[["Telegram"], None]

_LOGGER = logging.getLogger(__name__)


class MessageProcessor:
    """The decode path: the (only) writer to the zone store."""

    def __init__(
        self,
        catalog: CommandCatalog,
        store: ZoneStore,
        queue: CommandQueue,
        *,
        controller_id: str | None = None,
        sink: MeasurementSinkT | None = None,
        disable_sending: bool = False,
    ) -> None:
        self.catalog = catalog
        self.store = store
        self.queue = queue
        self.controller_id = controller_id
        self.disable_sending = disable_sending  # if so, dont queue follow-up commands
        self.devices: dict[int, str] = {}  # the controller's device list

        self._sink = sink
        self._handlers: list[_MsgHandlerT] = []
        self._rows: list[dict[str, Any]] = []  # rows emitted by the current telegram

    def add_handler(self, handler: _MsgHandlerT) -> None:
        """Add a callback, to be invoked with each (valid) telegram."""
        self._handlers.append(handler)

    def is_controller(self, addr: Address) -> bool:
        """Return True if the address is that of the controller."""
        if self.controller_id:
            return addr.id == self.controller_id  # type: ignore[no-any-return]
        return addr.type == CTL_DEVICE_TYPE  # type: ignore[no-any-return]

    def process_line(self, line: str) -> Telegram | None:
        """Process a line from the bridge, return a telegram if it was valid."""

        line = line.strip()

        if len(line) < MIN_LINE_LENGTH or any(m in line for m in IGNORED_LINE_MARKERS):
            _LOGGER.debug("Line ignored: %s", line)
            return None

        if (tgm := parse_line(line, self.catalog)) is None:
            PKT_LOGGER.warning(
                "", extra=pkt_extra(line, error_text="Invalid telegram")
            )
            return None

        PKT_LOGGER.info("", extra=pkt_extra(line))
        self.process(tgm)
        return tgm

    def process(self, tgm: Telegram) -> None:
        """Dispatch a telegram to its payload parser, then to any handlers.

        A malformed payload is never propagated, so it cannot stall processing.
        """

        if self.controller_id is None and tgm.src.type == CTL_DEVICE_TYPE:
            _LOGGER.info("%r < controller discovered: %s", tgm, tgm.src.id)
            self.controller_id = tgm.src.id

        try:
            PAYLOAD_PARSERS[tgm.name](tgm, self)
        except (exc.PacketPayloadInvalid, ValueError) as err:
            _LOGGER.info("%r < payload is invalid: %s", tgm, err)
            parser_unknown(tgm, self)

        rows, self._rows = self._rows, []
        if rows and self._sink is not None:
            self._sink.insert(rows)  # may raise a SinkError

        for handler in self._handlers:
            try:
                handler(tgm)
            except Exception as err:  # protect from upper layers
                _LOGGER.exception("%r < exception from msg handler: %s", tgm, err)

    def emit(self, tgm: Telegram, zone_idx: int, **values: float) -> bool:
        """Emit a measurement row for a zone, if it is a real or a named zone.

        Return True if the row was emitted.
        """

        zone = self.store.get(zone_idx)
        zone_name = zone.name if zone else None

        if zone_idx >= MAX_ZONES and not zone_name:
            return False

        row: dict[str, Any] = {
            SZ_MESSAGE_TYPE: tgm.verb,
            SZ_COMMAND_TYPE: str(tgm.name),
            SZ_SOURCE_TYPE: self.catalog.name_for_device_type(tgm.src.type),
            SZ_SOURCE_ID: tgm.src.id,
            SZ_DESTINATION_TYPE: self.catalog.name_for_device_type(tgm.dst.type),
            SZ_DESTINATION_ID: tgm.dst.id,
            SZ_BROADCAST: tgm.broadcast,
            SZ_ZONE_ID: zone_idx,
            SZ_ZONE_NAME: zone_name,
            SZ_DEMAND_PERCENTAGE: values.get(SZ_DEMAND_PERCENTAGE),
            SZ_TEMPERATURE: values.get(SZ_TEMPERATURE),
            SZ_SETPOINT: values.get(SZ_SETPOINT),
            SZ_INSERTED_AT: timestamp(),
        }

        _LOGGER.debug("%r < emitted: %s", tgm, row)
        self._rows.append(row)
        return True
