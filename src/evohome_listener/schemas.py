#!/usr/bin/env python3
"""evohome_listener - a RAMSES-II zone listener & requester.

Schema processor for the configuration.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Final, TypedDict

import voluptuous as vol

from .const import (
    DEFAULT_HEALTH_CHECK_INTERVAL,
    DEFAULT_HEARTBEAT_INTERVAL,
    DEFAULT_MAX_REPAIRS,
    DEFAULT_MAX_SILENCE,
    DEFAULT_PUBLISH_DELAY,
    DEFAULT_PUBLISH_INTERVAL,
    DEFAULT_PUBLISH_JITTER,
    DEFAULT_QUEUE_SIZE,
    DEFAULT_READ_TIMEOUT,
    DEFAULT_REFRESH_INTERVAL,
    DEFAULT_REFRESH_JITTER,
    DEFAULT_RESET_DELAY,
    DEFAULT_SETTLE_DELAY,
    DEFAULT_SUMMARY_INTERVAL,
    DEVICE_ID_REGEX,
    MAX_ZONES,
)

_LOGGER = logging.getLogger(__name__)


#
# 1/4: Packet log configuration
SZ_FILE_NAME: Final = "file_name"
SZ_PACKET_LOG: Final = "packet_log"
SZ_ROTATE_BACKUPS: Final = "rotate_backups"
SZ_ROTATE_BYTES: Final = "rotate_bytes"


class PktLogConfigT(TypedDict):
    file_name: str
    rotate_backups: int
    rotate_bytes: int | None


def sch_packet_log_dict_factory(
    default_backups: int = 0,
) -> dict[vol.Required, vol.Any]:
    """Return a packet log dict with a configurable default rotation policy.

    usage:

    SCH_PACKET_LOG_7 = vol.Schema(
        packet_log_dict_factory(default_backups=7), extra=vol.PREVENT_EXTRA
    )
    """

    SCH_PACKET_LOG_CONFIG = vol.Schema(
        {
            vol.Optional(SZ_ROTATE_BACKUPS, default=default_backups): vol.Any(
                None, int
            ),
            vol.Optional(SZ_ROTATE_BYTES, default=None): vol.Any(None, int),
        },
        extra=vol.PREVENT_EXTRA,
    )

    SCH_PACKET_LOG_NAME = str

    def NormalisePacketLog(rotate_backups: int = 0) -> Callable[..., Any]:
        def normalise_packet_log(node_value: str | PktLogConfigT) -> PktLogConfigT:
            if isinstance(node_value, str):
                return {
                    SZ_FILE_NAME: node_value,
                    SZ_ROTATE_BACKUPS: rotate_backups,
                    SZ_ROTATE_BYTES: None,
                }
            return node_value

        return normalise_packet_log

    return {  # SCH_PACKET_LOG_DICT
        vol.Optional(SZ_PACKET_LOG, default=None): vol.Any(
            None,
            vol.All(
                SCH_PACKET_LOG_NAME,
                NormalisePacketLog(rotate_backups=default_backups),
            ),
            SCH_PACKET_LOG_CONFIG.extend(
                {vol.Required(SZ_FILE_NAME): SCH_PACKET_LOG_NAME}
            ),
        )
    }


#
# 2/4: Serial port configuration
SZ_PORT_CONFIG: Final = "port_config"
SZ_PORT_NAME: Final = "port_name"
SZ_SERIAL_PORT: Final = "serial_port"

SZ_BAUDRATE: Final = "baudrate"
SZ_DSRDTR: Final = "dsrdtr"
SZ_RTSCTS: Final = "rtscts"
SZ_TIMEOUT: Final = "timeout"
SZ_XONXOFF: Final = "xonxoff"


SCH_SERIAL_PORT_CONFIG = vol.Schema(
    {
        vol.Optional(SZ_BAUDRATE, default=115200): vol.All(
            vol.Coerce(int), vol.Any(57600, 115200)
        ),  # NB: HGI80 does not work, except at 115200 - so must be default
        vol.Optional(SZ_DSRDTR, default=False): bool,
        vol.Optional(SZ_RTSCTS, default=False): bool,
        vol.Optional(SZ_TIMEOUT, default=0): vol.Any(None, int),
        vol.Optional(SZ_XONXOFF, default=True): bool,  # set True to remove \x11
    },
    extra=vol.PREVENT_EXTRA,
)


class PortConfigT(TypedDict):
    baudrate: int  # 57600, 115200
    dsrdtr: bool
    rtscts: bool
    timeout: int
    xonxoff: bool


def sch_serial_port_dict_factory() -> dict[vol.Optional, vol.Any]:
    """Return a serial port dict (a port name, or a dict with a port_name).

    usage:

    SCH_SERIAL_PORT = vol.Schema(
        sch_serial_port_dict_factory(), extra=vol.PREVENT_EXTRA
    )
    """

    SCH_SERIAL_PORT_NAME = str

    def NormaliseSerialPort() -> Callable[[str | dict[str, Any]], dict[str, Any]]:
        def normalise_serial_port(node_value: str | dict[str, Any]) -> dict[str, Any]:
            if isinstance(node_value, str):
                return {SZ_PORT_NAME: node_value} | SCH_SERIAL_PORT_CONFIG({})  # type: ignore[no-any-return]
            return node_value

        return normalise_serial_port

    return {  # SCH_SERIAL_PORT_DICT
        vol.Optional(SZ_SERIAL_PORT): vol.Any(
            vol.All(
                SCH_SERIAL_PORT_NAME,
                NormaliseSerialPort(),
            ),
            SCH_SERIAL_PORT_CONFIG.extend(
                {vol.Required(SZ_PORT_NAME): SCH_SERIAL_PORT_NAME}
            ),
        )
    }


def extract_serial_port(ser_port_dict: dict[str, Any]) -> tuple[str, PortConfigT]:
    """Extract a serial port, port_config_dict tuple from a sch_serial_port_dict."""
    port_name: str = ser_port_dict.get(SZ_PORT_NAME)  # type: ignore[assignment]
    port_config = {k: v for k, v in ser_port_dict.items() if k != SZ_PORT_NAME}
    return port_name, port_config  # type: ignore[return-value]


#
# 3/4: Timers (all in seconds, jitter in percent)
SZ_TIMERS: Final = "timers"

SZ_REFRESH_INTERVAL: Final = "refresh_interval"
SZ_REFRESH_JITTER: Final = "refresh_jitter"
SZ_HEARTBEAT_INTERVAL: Final = "heartbeat_interval"
SZ_HEALTH_CHECK_INTERVAL: Final = "health_check_interval"
SZ_MAX_SILENCE: Final = "max_silence"
SZ_SETTLE_DELAY: Final = "settle_delay"
SZ_RESET_DELAY: Final = "reset_delay"
SZ_READ_TIMEOUT: Final = "read_timeout"
SZ_PUBLISH_DELAY: Final = "publish_delay"
SZ_PUBLISH_INTERVAL: Final = "publish_interval"
SZ_SUMMARY_INTERVAL: Final = "summary_interval"
SZ_PUBLISH_JITTER: Final = "publish_jitter"


def _secs(minimum: float = 0) -> vol.All:
    return vol.All(vol.Coerce(float), vol.Range(min=minimum))


SCH_TIMERS = vol.Schema(
    {
        vol.Optional(SZ_REFRESH_INTERVAL, default=DEFAULT_REFRESH_INTERVAL): _secs(1),
        vol.Optional(SZ_REFRESH_JITTER, default=DEFAULT_REFRESH_JITTER): vol.All(
            vol.Coerce(float), vol.Range(min=0, max=50)
        ),
        vol.Optional(
            SZ_HEARTBEAT_INTERVAL, default=DEFAULT_HEARTBEAT_INTERVAL
        ): _secs(1),
        vol.Optional(
            SZ_HEALTH_CHECK_INTERVAL, default=DEFAULT_HEALTH_CHECK_INTERVAL
        ): _secs(1),
        vol.Optional(SZ_MAX_SILENCE, default=DEFAULT_MAX_SILENCE): _secs(1),
        vol.Optional(SZ_SETTLE_DELAY, default=DEFAULT_SETTLE_DELAY): _secs(),
        vol.Optional(SZ_RESET_DELAY, default=DEFAULT_RESET_DELAY): _secs(),
        vol.Optional(SZ_READ_TIMEOUT, default=DEFAULT_READ_TIMEOUT): _secs(0.1),
        vol.Optional(SZ_PUBLISH_DELAY, default=DEFAULT_PUBLISH_DELAY): _secs(),
        vol.Optional(SZ_PUBLISH_INTERVAL, default=DEFAULT_PUBLISH_INTERVAL): _secs(1),
        vol.Optional(SZ_SUMMARY_INTERVAL, default=DEFAULT_SUMMARY_INTERVAL): _secs(1),
        vol.Optional(SZ_PUBLISH_JITTER, default=DEFAULT_PUBLISH_JITTER): vol.All(
            vol.Coerce(float), vol.Range(min=0, max=50)
        ),
    },
    extra=vol.PREVENT_EXTRA,
)


#
# 4/4: Gateway configuration
SZ_CONTROLLER_ID: Final = "controller_id"
SZ_STATE_FILE: Final = "state_file"
SZ_MEASUREMENT_LOG: Final = "measurement_log"
SZ_SUMMARY_LOG: Final = "summary_log"
SZ_QUEUE_SIZE: Final = "queue_size"
SZ_MAX_REPAIRS: Final = "max_repairs"

SCH_DEVICE_ID_CTL = vol.Match(DEVICE_ID_REGEX.CTL)

SCH_CONFIG_DICT = (
    sch_serial_port_dict_factory()
    | sch_packet_log_dict_factory(default_backups=7)
    | {
        vol.Optional(SZ_CONTROLLER_ID, default=None): vol.Any(None, SCH_DEVICE_ID_CTL),
        vol.Optional(SZ_STATE_FILE, default=None): vol.Any(None, str),
        vol.Optional(SZ_MEASUREMENT_LOG, default=None): vol.Any(None, str),
        vol.Optional(SZ_SUMMARY_LOG, default=None): vol.Any(None, str),
        vol.Optional(SZ_TIMERS, default={}): vol.All(
            vol.Any(None, dict), lambda v: SCH_TIMERS(v or {})
        ),
        vol.Optional(SZ_QUEUE_SIZE, default=DEFAULT_QUEUE_SIZE): vol.All(
            vol.Coerce(int), vol.Range(min=MAX_ZONES * 2)
        ),
        vol.Optional(SZ_MAX_REPAIRS, default=DEFAULT_MAX_REPAIRS): vol.All(
            vol.Coerce(int), vol.Range(min=1)
        ),
    }
)

SCH_CONFIG = vol.Schema(SCH_CONFIG_DICT, extra=vol.PREVENT_EXTRA)
