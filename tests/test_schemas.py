#!/usr/bin/env python3
"""evohome_listener - Test the configuration schemas."""

from typing import Any

import pytest
import voluptuous as vol
import yaml

from evohome_listener.schemas import (
    SCH_CONFIG,
    SCH_TIMERS,
    extract_serial_port,
    sch_packet_log_dict_factory,
    sch_serial_port_dict_factory,
)

SCH_PACKET_LOG = vol.Schema(
    sch_packet_log_dict_factory(default_backups=7), extra=vol.PREVENT_EXTRA
)
SCH_SERIAL_PORT = vol.Schema(sch_serial_port_dict_factory(), extra=vol.PREVENT_EXTRA)


def _test_schema(validator: vol.Schema, config: str) -> dict[str, Any]:
    return validator(yaml.safe_load(config) or {})  # type: ignore[no-any-return]


CONFIG_BAD = (
    """
    other_key: null  # extra keys not allowed @ data['other_key']
    """,
    """
    controller_id: 04:123456  # not a controller
    """,
    """
    controller_id: 01:12345
    """,
    """
    queue_size: 23  # less than two refresh bursts
    """,
    """
    max_repairs: 0
    """,
    """
    timers:
      refresh_jitter: 51
    """,
    """
    timers:
      settle_delay: -1
    """,
    """
    timers:
      poll_interval: 60
    """,
    """
    serial_port:
      port_name: /dev/ttyUSB0
      baudrate: 9600
    """,
)
CONFIG_GOOD = (
    """
    {}
    """,
    """
    controller_id: 01:145038
    state_file: zones.json
    measurement_log: measurements.jsonl
    summary_log: summaries.jsonl
    """,
    """
    serial_port: /dev/ttyUSB0
    packet_log: packet.log
    """,
    """
    serial_port:
      port_name: /dev/ttyACM0
      baudrate: 57600
    packet_log:
      file_name: packet.log
      rotate_backups: 3
    """,
    """
    timers:
      refresh_interval: 600
      settle_delay: 0.5
    queue_size: 24
    max_repairs: 1
    """,
    """
    timers: null
    """,
)


@pytest.mark.parametrize("index", range(len(CONFIG_BAD)))
def test_config_bad(index: int) -> None:
    with pytest.raises(vol.Invalid):
        _test_schema(SCH_CONFIG, CONFIG_BAD[index])


@pytest.mark.parametrize("index", range(len(CONFIG_GOOD)))
def test_config_good(index: int) -> None:
    config = _test_schema(SCH_CONFIG, CONFIG_GOOD[index])
    assert SCH_CONFIG(config) == config  # idempotent


def test_config_defaults() -> None:
    config = SCH_CONFIG({})

    assert "serial_port" not in config
    assert config["controller_id"] is None
    assert config["packet_log"] is None
    assert config["queue_size"] == 100
    assert config["max_repairs"] == 3
    assert config["timers"] == SCH_TIMERS({})
    assert config["timers"]["refresh_interval"] == 900
    assert config["timers"]["settle_delay"] == 2.0


def test_packet_log() -> None:
    assert _test_schema(SCH_PACKET_LOG, "packet_log: packet.log") == {
        "packet_log": {
            "file_name": "packet.log",
            "rotate_backups": 7,
            "rotate_bytes": None,
        }
    }
    assert _test_schema(SCH_PACKET_LOG, "{}") == {"packet_log": None}


def test_serial_port() -> None:
    config = _test_schema(SCH_SERIAL_PORT, "serial_port: /dev/ttyUSB0")
    port_name, port_config = extract_serial_port(config["serial_port"])

    assert port_name == "/dev/ttyUSB0"
    assert port_config == {
        "baudrate": 115200,
        "dsrdtr": False,
        "rtscts": False,
        "timeout": 0,
        "xonxoff": True,
    }
