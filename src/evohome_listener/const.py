#!/usr/bin/env python3
"""evohome_listener - a RAMSES-II zone listener & requester."""

from __future__ import annotations

import re
from enum import EnumCheck, StrEnum, verify
from types import SimpleNamespace
from typing import Final, Literal

# Below, verbs & command names - can use VerbT/CommandName for mypy type checking
VerbT = Literal[" I", "RQ", "RP", " W"]

I_: Final[VerbT] = " I"
RQ: Final[VerbT] = "RQ"
RP: Final[VerbT] = "RP"
W_: Final[VerbT] = " W"

VERBS: Final[tuple[str, ...]] = ("I", "W", "RQ", "RP")  # as trimmed by the parser


@verify(EnumCheck.UNIQUE)
class CommandName(StrEnum):
    EXTERNAL_SENSOR = "external_sensor"
    ZONE_NAME = "zone_name"
    SCHEDULE_SYNC = "schedule_sync"
    RELAY_HEAT_DEMAND = "relay_heat_demand"
    ZONE_INFO = "zone_info"
    OTHER_COMMAND = "other_command"
    DEVICE_INFO = "device_info"
    BATTERY_INFO = "battery_info"
    DHW_SETTINGS = "dhw_settings"
    HEARTBEAT = "heartbeat"
    DHW_TEMPERATURE = "dhw_temperature"
    WINDOW_STATUS = "window_status"
    SYNC = "sync"
    DHW_STATE = "dhw_state"
    BIND = "bind"
    SETPOINT_UFH = "setpoint_ufh"
    SETPOINT = "setpoint"
    SETPOINT_OVERRIDE = "setpoint_override"
    CONTROLLER_MODE = "controller_mode"
    ZONE_TEMPERATURE = "zone_temperature"
    DATE_REQUEST = "date_request"
    ZONE_HEAT_DEMAND = "zone_heat_demand"
    ACTUATOR_CHECK_REQ = "actuator_check_req"
    ACTUATOR_STATE = "actuator_state"
    UNKNOWN = "unknown"  # for any code not in COMMANDS_MAP


COMMANDS_MAP: Final[dict[str, CommandName]] = {
    "0002": CommandName.EXTERNAL_SENSOR,
    "0004": CommandName.ZONE_NAME,
    "0006": CommandName.SCHEDULE_SYNC,
    "0008": CommandName.RELAY_HEAT_DEMAND,
    "000A": CommandName.ZONE_INFO,
    "0100": CommandName.OTHER_COMMAND,
    "0418": CommandName.DEVICE_INFO,
    "1060": CommandName.BATTERY_INFO,
    "10A0": CommandName.DHW_SETTINGS,
    "10E0": CommandName.HEARTBEAT,
    "1260": CommandName.DHW_TEMPERATURE,
    "12B0": CommandName.WINDOW_STATUS,
    "1F09": CommandName.SYNC,
    "1F41": CommandName.DHW_STATE,
    "1FC9": CommandName.BIND,
    "22C9": CommandName.SETPOINT_UFH,
    "2309": CommandName.SETPOINT,
    "2349": CommandName.SETPOINT_OVERRIDE,
    "2E04": CommandName.CONTROLLER_MODE,
    "30C9": CommandName.ZONE_TEMPERATURE,
    "313F": CommandName.DATE_REQUEST,
    "3150": CommandName.ZONE_HEAT_DEMAND,
    "3B00": CommandName.ACTUATOR_CHECK_REQ,
    "3EF0": CommandName.ACTUATOR_STATE,
}

DEVICE_TYPE_MAP: Final[dict[str, str]] = {
    "01": "CTL",
    "02": "UFH",
    "04": "TRV",
    "07": "DHW",
    "13": "BDR",
    "18": "HGI",
    "30": "GWAY",
    "34": "STAT",
}
DEVICE_TYPE_UNKNOWN: Final = "NA"
COMMAND_NAME_UNKNOWN: Final = CommandName.UNKNOWN

HGI_DEVICE_ID: Final = "18:000730"  # the bridge's own (pseudo) address
NON_DEVICE_ID: Final = "--:------"
CTL_DEVICE_TYPE: Final = "01"
HGI_DEVICE_TYPE: Final = "18"

MAX_ZONES: Final[int] = 12  # evohome: 0-11, higher idx are pseudo-zones
MAX_TEMPERATURE: Final[float] = 100.0  # sanity ceiling for temps/setpoints
MAX_HEAT_DEMAND: Final[int] = 200  # raw value for 100%
MAX_DEVICE_IDX: Final[int] = 0xFF

OPENTHERM_ZONE_IDX: Final[int] = 252
OPENTHERM_ZONE_NAME: Final = "Opentherm"

MIN_LINE_WIDTH: Final[int] = 49  # up to, and including, the length field
MIN_LINE_LENGTH: Final[int] = 41  # shorter lines are bridge noise
IGNORED_LINE_MARKERS: Final[tuple[str, ...]] = ("_ENC", "_BAD", "BAD", "ERR")

# used by the gateway & its schema...
DEFAULT_SERIAL_PORT: Final = "/dev/ttyUSB0"
DEFAULT_QUEUE_SIZE: Final[int] = 100
DEFAULT_MAX_REPAIRS: Final[int] = 3

DEFAULT_REFRESH_INTERVAL: Final[float] = 900  # seconds
DEFAULT_REFRESH_JITTER: Final[float] = 25  # %
DEFAULT_HEARTBEAT_INTERVAL: Final[float] = 300
DEFAULT_HEALTH_CHECK_INTERVAL: Final[float] = 120
DEFAULT_MAX_SILENCE: Final[float] = 120
DEFAULT_SETTLE_DELAY: Final[float] = 2.0  # the bridge needs quiescence after a write
DEFAULT_RESET_DELAY: Final[float] = 5.0
DEFAULT_READ_TIMEOUT: Final[float] = 5.0
DEFAULT_PUBLISH_DELAY: Final[float] = 150
DEFAULT_PUBLISH_INTERVAL: Final[float] = 60
DEFAULT_SUMMARY_INTERVAL: Final[float] = 300
DEFAULT_PUBLISH_JITTER: Final[float] = 5  # %

DEVICE_ID_REGEX = SimpleNamespace(
    ANY=re.compile(r"^[0-9]{2}:[0-9]{6}$"),
    CTL=re.compile(r"^01:[0-9]{6}$"),
)

# Used by telegram structure validators
r = r"(-{3}|\d{3})"  # counter
v = r"( I|RP|RQ| W)"  # verb
d = r"(-{2}:-{6}|\d{2}:\d{6})"  # device ID
c = r"[0-9A-Fa-f]{4}"  # code (upper-cased when parsed)
l = r"\S{3}"  # length (may be malformed)  # noqa: E741
p = r"\S*"  # payload (is validated by the payload parsers)

TELEGRAM_REGEX = re.compile(
    f"^{r} (?P<verb>{v}) -{{3}} (?P<addrs>{d} {d} {d}) (?P<code>{c}) (?P<length>{l})"
    f"(?: (?P<payload>{p}))?$"
)
COMMAND_REGEX = re.compile(f"^{v} -{{3}} {d} {d} {d} {c} \\d{{3}} ([0-9A-F]{{2}})*$")


# Keys of measurement & summary rows
SZ_MESSAGE_TYPE: Final = "message_type"
SZ_COMMAND_TYPE: Final = "command_type"
SZ_SOURCE_TYPE: Final = "source_type"
SZ_SOURCE_ID: Final = "source_id"
SZ_DESTINATION_TYPE: Final = "destination_type"
SZ_DESTINATION_ID: Final = "destination_id"
SZ_BROADCAST: Final = "broadcast"
SZ_ZONE_ID: Final = "zone_id"
SZ_ZONE_NAME: Final = "zone_name"
SZ_DEMAND_PERCENTAGE: Final = "demand_percentage"
SZ_TEMPERATURE: Final = "temperature"
SZ_SETPOINT: Final = "setpoint"
SZ_INSERTED_AT: Final = "inserted_at"
