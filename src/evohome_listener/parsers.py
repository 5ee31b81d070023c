#!/usr/bin/env python3
"""evohome_listener - payload parsers.

Each parser validates the whole payload before it mutates any zone, so that a
malformed telegram leaves the store unchanged. A parser raises PacketPayloadInvalid
(or ValueError) for a malformed payload, and the processor then falls back to
parser_unknown.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from types import MappingProxyType
from typing import TYPE_CHECKING

from . import exceptions as exc
from .address import hex_id_to_dev_id
from .command import Command
from .const import MAX_DEVICE_IDX, RP, RQ, CommandName
from .helpers import hex_to_idx, hex_to_name, hex_to_percent, hex_to_temp

if TYPE_CHECKING:
    from .packet import Telegram
    from .processor import MessageProcessor


_ParserT = Callable[["Telegram", "MessageProcessor"], None]

_LOGGER = logging.getLogger(__name__)


def _check_length(tgm: Telegram, *, block: int = 0, exact: int = 0) -> None:
    """Raise a PacketPayloadInvalid if the payload is not of the expected length."""

    if len(tgm.payload) != tgm.length * 2:
        raise exc.PacketPayloadInvalid(
            f"Payload length ({len(tgm.payload) // 2}) != declared length ({tgm.length})"
        )
    if exact and tgm.length != exact:
        raise exc.PacketPayloadInvalid(f"Payload length ({tgm.length}) != {exact}")
    if block and (tgm.length == 0 or tgm.length % block):
        raise exc.PacketPayloadInvalid(
            f"Payload length ({tgm.length}) is not a multiple of {block}"
        )


def _blocks(payload: str, size: int) -> list[str]:
    return [payload[i : i + size] for i in range(0, len(payload), size)]


# zone_name
def parser_0004(tgm: Telegram, proc: MessageProcessor) -> None:
    # RP --- 01:145038 18:000730 --:------ 0004 022 00004C6976696E6720526F6F6D000000000000000000
    # RQ payload is zz00, zone 252 (FC) is the boiler interface

    if tgm.verb != RP or not proc.is_controller(tgm.src):
        return parser_unknown(tgm, proc)

    _check_length(tgm, exact=22)
    zone_idx = hex_to_idx(tgm.payload[:2])

    try:
        name = hex_to_name(tgm.payload[4:])
    except ValueError as err:  # ask again, rather than store a corrupt name
        _LOGGER.info("%r < zone %02X has an undecodable name: %s", tgm, zone_idx, err)
        if not proc.disable_sending:
            proc.queue.put_repair(
                Command.get_zone_name(tgm.src.id, zone_idx),
                (CommandName.ZONE_NAME, zone_idx),
            )
        return

    proc.queue.reset_repairs((CommandName.ZONE_NAME, zone_idx))

    if not name:  # e.g. 7F7F...7F, an unconfigured zone
        _LOGGER.debug("%r < zone %02X has no name", tgm, zone_idx)
        return

    proc.store.upsert(zone_idx, name=name)
    _LOGGER.info("%r < zone %02X is named: %s", tgm, zone_idx, name)


# zone_info (setpoint bounds)
def parser_000a(tgm: Telegram, proc: MessageProcessor) -> None:
    #  I --- 01:145038 --:------ 01:145038 000A 012 001001F40DAC011001F40DAC
    # block is: zone_idx (2), flags (2), min_temp (4), max_temp (4), hex chars

    if tgm.verb == RQ or not proc.is_controller(tgm.src):
        return parser_unknown(tgm, proc)

    _check_length(tgm, block=6)

    bounds = [
        (hex_to_idx(seqx[:2]), hex_to_temp(seqx[4:8]), hex_to_temp(seqx[8:12]))
        for seqx in _blocks(tgm.payload, 12)
    ]

    for zone_idx, min_temp, max_temp in bounds:
        if min_temp is None or max_temp is None:
            continue
        proc.store.upsert(zone_idx, min_temp=min_temp, max_temp=max_temp)


# setpoint
def parser_2309(tgm: Telegram, proc: MessageProcessor) -> None:
    #  I --- 01:145038 --:------ 01:145038 2309 006 0007D0010834

    if tgm.verb == RQ or not proc.is_controller(tgm.src):
        return parser_unknown(tgm, proc)

    _check_length(tgm, block=3)

    setpoints = [
        (hex_to_idx(seqx[:2]), hex_to_temp(seqx[2:6]))
        for seqx in _blocks(tgm.payload, 6)
    ]

    for zone_idx, value in setpoints:
        if value is None:
            continue
        if proc.store.set_setpoint(zone_idx, value):
            proc.emit(tgm, zone_idx, setpoint=value)


# zone_temperature
def parser_30c9(tgm: Telegram, proc: MessageProcessor) -> None:
    #  I --- 01:145038 --:------ 01:145038 30C9 006 0008020B0834

    if tgm.verb == RQ or not proc.is_controller(tgm.src):
        return parser_unknown(tgm, proc)

    _check_length(tgm, block=3)

    temps = [
        (hex_to_idx(seqx[:2]), hex_to_temp(seqx[2:6]))
        for seqx in _blocks(tgm.payload, 6)
    ]

    for zone_idx, value in temps:
        if value is None:
            continue
        if proc.store.set_temperature(zone_idx, value):
            proc.emit(tgm, zone_idx, temperature=value)


# zone_heat_demand (3150), relay_heat_demand (0008)
def parser_3150(tgm: Telegram, proc: MessageProcessor) -> None:
    #  I --- 04:136513 --:------ 01:145038 3150 002 01CA
    #  I --- 13:237335 --:------ 13:237335 0008 002 FCC8

    _check_length(tgm, exact=2)

    zone_idx = hex_to_idx(tgm.payload[:2])
    value = hex_to_percent(tgm.payload[2:4])

    if value > 100:
        _LOGGER.warning(
            "%r < zone %02X: heat demand %s (0x%s) is > 100%%, value discarded",
            tgm,
            zone_idx,
            value,
            tgm.payload[2:4],
        )
        return

    proc.store.upsert(zone_idx, heat_demand=value)
    proc.emit(tgm, zone_idx, demand_percentage=value)


parser_0008 = parser_3150


# device_info
def parser_0418(tgm: Telegram, proc: MessageProcessor) -> None:
    # RP --- 01:145038 18:000730 --:------ 0418 022 004000B0061C040000008F14B0DB7FFFFF7000367F95
    # log_idx is hex chars 4:6, the device is hex chars 38:44 (000000 is the end)

    if tgm.verb != RP or not proc.is_controller(tgm.src):
        return parser_unknown(tgm, proc)

    _check_length(tgm, exact=22)

    log_idx = hex_to_idx(tgm.payload[4:6])
    device_hex = tgm.payload[38:44]

    if int(device_hex, 16) == 0:  # will raise a ValueError if not hex
        _LOGGER.info("%r < the device list ends at idx %02X", tgm, log_idx)
        return

    device_id = hex_id_to_dev_id(device_hex)
    proc.devices[log_idx] = device_id
    _LOGGER.info(
        "%r < device %02X is: %s (%s)",
        tgm,
        log_idx,
        device_id,
        proc.catalog.name_for_device_type(device_id[:2]),
    )

    if log_idx >= MAX_DEVICE_IDX:
        _LOGGER.warning("%r < the device list has no end (idx %02X)", tgm, log_idx)
        return

    if not proc.disable_sending:
        proc.queue.put_nowait(Command.get_device_info(tgm.src.id, log_idx + 1))


def parser_unknown(tgm: Telegram, proc: MessageProcessor) -> None:
    _LOGGER.debug("%r < not processed: %s", tgm, tgm.payload)


_PAYLOAD_PARSERS: dict[CommandName, _ParserT] = {
    CommandName.ZONE_NAME: parser_0004,
    CommandName.RELAY_HEAT_DEMAND: parser_0008,
    CommandName.ZONE_INFO: parser_000a,
    CommandName.DEVICE_INFO: parser_0418,
    CommandName.SETPOINT: parser_2309,
    CommandName.ZONE_TEMPERATURE: parser_30c9,
    CommandName.ZONE_HEAT_DEMAND: parser_3150,
}

# all other names (incl. unknown) are processed by parser_unknown
PAYLOAD_PARSERS: MappingProxyType[CommandName, _ParserT] = MappingProxyType(
    {name: _PAYLOAD_PARSERS.get(name, parser_unknown) for name in CommandName}
)
