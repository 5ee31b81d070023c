#!/usr/bin/env python3
"""evohome_listener - Test the payload parsers (via the message processor)."""

from typing import Any

import pytest

from evohome_listener.const import CommandName
from evohome_listener.parsers import PAYLOAD_PARSERS, parser_unknown

from .helpers import CTL_ID, ListSink, make_processor, queued

NAME_LIVING_ROOM = "4C6976696E6720526F6F6D"  # "Living Room"


def test_parsers_table_is_total() -> None:
    assert set(PAYLOAD_PARSERS) == set(CommandName)
    assert PAYLOAD_PARSERS[CommandName.UNKNOWN] is parser_unknown
    assert PAYLOAD_PARSERS[CommandName.SYNC] is parser_unknown


def test_zone_temperature_array() -> None:
    sink = ListSink()
    proc = make_processor(sink=sink)

    proc.process_line("045  I --- 01:145038 --:------ 01:145038 30C9 006 0008020B0834")

    assert proc.store.get(0).temperature == 20.5
    assert proc.store.get(11).temperature == 21.0

    assert [(r["zone_id"], r["temperature"]) for r in sink.rows] == [
        (0, 20.5),
        (11, 21.0),
    ]
    assert sink.rows[0] == {
        "message_type": "I",
        "command_type": "zone_temperature",
        "source_type": "CTL",
        "source_id": CTL_ID,
        "destination_type": "CTL",
        "destination_id": CTL_ID,
        "broadcast": True,
        "zone_id": 0,
        "zone_name": None,
        "demand_percentage": None,
        "temperature": 20.5,
        "setpoint": None,
        "inserted_at": sink.rows[0]["inserted_at"],
    }


def test_zone_temperature_pseudo_zones() -> None:
    sink = ListSink()
    proc = make_processor(sink=sink)
    proc.store.upsert(252, name="Opentherm")

    proc.process_line("045  I --- 01:145038 --:------ 01:145038 30C9 006 0C0802FC1770")

    assert proc.store.get(12).temperature == 20.5  # unnamed, so updated but not emitted
    assert [(r["zone_id"], r["zone_name"]) for r in sink.rows] == [(252, "Opentherm")]


def test_zone_temperature_not_available() -> None:
    proc = make_processor()

    proc.process_line("045  I --- 01:145038 --:------ 01:145038 30C9 006 007FFF010834")

    assert 0 not in proc.store
    assert proc.store.get(1).temperature == 21.0


def test_zone_temperature_from_other_device() -> None:
    sink = ListSink()
    proc = make_processor(sink=sink)

    tgm = proc.process_line(
        "045  I --- 04:136513 --:------ 04:136513 30C9 003 0007D0"
    )

    assert tgm is not None
    assert len(proc.store) == 0
    assert sink.rows == []


def test_heat_demand() -> None:
    sink = ListSink()
    proc = make_processor(sink=sink)

    proc.process_line("053  I --- 04:136513 --:------ 01:145038 3150 002 00C8")

    assert proc.store.get(0).heat_demand == 100.0
    assert sink.rows[0]["demand_percentage"] == 100.0
    assert sink.rows[0]["source_type"] == "TRV"
    assert sink.rows[0]["broadcast"] is False

    proc.process_line("053  I --- 04:136513 --:------ 01:145038 3150 002 0164")
    assert proc.store.get(1).heat_demand == 50.0


def test_heat_demand_too_high() -> None:
    sink = ListSink()
    proc = make_processor(sink=sink)

    proc.process_line("053  I --- 04:136513 --:------ 01:145038 3150 002 00C9")

    assert 0 not in proc.store
    assert sink.rows == []


def test_relay_heat_demand() -> None:
    sink = ListSink()
    proc = make_processor(sink=sink)

    proc.process_line("045  I --- 13:237335 --:------ 13:237335 0008 002 FCC8")
    assert proc.store.get(252).heat_demand == 100.0
    assert sink.rows == []  # the zone is not (yet) named

    proc.store.upsert(252, name="Opentherm")
    proc.process_line("045  I --- 13:237335 --:------ 13:237335 0008 002 FC64")
    assert [(r["zone_name"], r["demand_percentage"]) for r in sink.rows] == [
        ("Opentherm", 50.0)
    ]


def test_zone_name() -> None:
    proc = make_processor()

    proc.process_line(
        "045 RP --- 01:145038 18:000730 --:------ 0004 022 "
        f"0000{NAME_LIVING_ROOM}{'00' * 9}"
    )

    assert proc.store.get(0).name == "Living Room"
    assert queued(proc) == []


def test_zone_name_unconfigured() -> None:
    proc = make_processor()

    proc.process_line(
        f"045 RP --- 01:145038 18:000730 --:------ 0004 022 0500{'7F' * 20}"
    )

    assert 5 not in proc.store
    assert queued(proc) == []


def test_zone_name_undecodable() -> None:
    sink = ListSink()
    proc = make_processor(sink=sink)

    proc.process_line(
        f"045 RP --- 01:145038 18:000730 --:------ 0004 022 0100{'ZZ' * 20}"
    )

    assert len(proc.store) == 0
    assert sink.rows == []
    assert queued(proc) == ["RQ|01:145038|zone_name|0100"]


def test_zone_name_repairs_are_capped() -> None:
    proc = make_processor()
    line = f"045 RP --- 01:145038 18:000730 --:------ 0004 022 0100{'ZZ' * 20}"

    for _ in range(5):
        proc.process_line(line)

    assert len(queued(proc)) == 3
    assert proc.queue.repairs((CommandName.ZONE_NAME, 1)) == 3

    proc.process_line(
        "045 RP --- 01:145038 18:000730 --:------ 0004 022 "
        f"0100{NAME_LIVING_ROOM}{'00' * 9}"
    )
    assert proc.queue.repairs((CommandName.ZONE_NAME, 1)) == 0
    assert proc.store.get(1).name == "Living Room"


def test_zone_name_is_a_response() -> None:
    proc = make_processor()

    proc.process_line(
        "045 RQ --- 01:145038 18:000730 --:------ 0004 022 "
        f"0000{NAME_LIVING_ROOM}{'00' * 9}"
    )

    assert len(proc.store) == 0


def test_zone_info() -> None:
    proc = make_processor()

    proc.process_line(
        "045  I --- 01:145038 --:------ 01:145038 000A 012 001001F40DAC011001F40BB8"
    )

    assert (proc.store.get(0).min_temp, proc.store.get(0).max_temp) == (5.0, 35.0)
    assert (proc.store.get(1).min_temp, proc.store.get(1).max_temp) == (5.0, 30.0)


def test_setpoint() -> None:
    sink = ListSink()
    proc = make_processor(sink=sink)
    proc.store.upsert(1, min_temp=5.0, max_temp=20.0)

    proc.process_line("045  I --- 01:145038 --:------ 01:145038 2309 006 0007D0010834")

    assert proc.store.get(0).setpoint == 20.0
    assert proc.store.get(1).setpoint is None  # 21.0 is out of bounds
    assert [(r["zone_id"], r["setpoint"]) for r in sink.rows] == [(0, 20.0)]


@pytest.mark.parametrize(
    "line",
    (
        "045  I --- 01:145038 --:------ 01:145038 30C9 006 0008020B08",  # truncated
        "045  I --- 01:145038 --:------ 01:145038 30C9 004 0008020B",  # not a block
        "045  I --- 01:145038 --:------ 01:145038 30C9 0X6 0008020B0834",  # length
        "045  I --- 01:145038 --:------ 01:145038 30C9 003 00XXXX",  # not hex
        "053  I --- 04:136513 --:------ 01:145038 3150 003 00C800",  # not 2 bytes
        "045  I --- 01:145038 --:------ 01:145038 000A 006 001001F4",  # truncated
    ),
)
def test_malformed_payloads(line: str) -> None:
    sink = ListSink()
    proc = make_processor(sink=sink)

    assert proc.process_line(line) is not None  # a valid telegram, with a bad payload
    assert len(proc.store) == 0
    assert sink.rows == []

    proc.process_line("045  I --- 01:145038 --:------ 01:145038 30C9 003 0007D0")
    assert proc.store.get(0).temperature == 20.0


def test_device_walk() -> None:
    proc = make_processor()

    proc.process_line(
        "045 RP --- 01:145038 18:000730 --:------ 0418 022 "
        "004000B0061C040000008F14B0DB7FFFFF7000367F95"
    )

    assert proc.devices == {0: "13:163733"}
    assert queued(proc) == ["RQ|01:145038|device_info|000001"]

    proc.process_line(  # the end of the list
        "045 RP --- 01:145038 18:000730 --:------ 0418 022 "
        "000001B0061C040000008F14B0DB7FFFFF7000000000"
    )

    assert proc.devices == {0: "13:163733"}
    assert queued(proc) == []


def test_device_walk_is_bounded() -> None:
    proc = make_processor()

    proc.process_line(
        "045 RP --- 01:145038 18:000730 --:------ 0418 022 "
        "0000FFB0061C040000008F14B0DB7FFFFF7000367F95"
    )

    assert proc.devices == {255: "13:163733"}
    assert queued(proc) == []


def test_controller_discovery() -> None:
    proc = make_processor(controller_id=None)

    proc.process_line("053  I --- 04:136513 --:------ 01:145038 3150 002 00C8")
    assert proc.controller_id is None

    proc.process_line("045  I --- 01:145038 --:------ 01:145038 30C9 003 0007D0")
    assert proc.controller_id == CTL_ID


@pytest.mark.parametrize(
    "line",
    (
        "045  I --- 01:145038 --:------ 01:1450",  # 38 characters
        "045  I --- 01:145038 --:------ 01:145038 30C9",  # too short to parse
        "045  I --- 01:145038 --:------ 01:145038 30C9 003 0007D0 ERR",
        "# evofw3 0.7.1 _ENC mode enabled, a line of more than forty chars",
    ),
)
def test_dropped_lines(monkeypatch: pytest.MonkeyPatch, line: str) -> None:
    calls: list[Any] = []

    class _Parsers(dict):
        def __getitem__(self, key: CommandName) -> Any:
            calls.append(key)
            return super().__getitem__(key)

    monkeypatch.setattr(
        "evohome_listener.processor.PAYLOAD_PARSERS", _Parsers(PAYLOAD_PARSERS)
    )

    sink = ListSink()
    proc = make_processor(sink=sink)

    assert proc.process_line(line) is None
    assert calls == []
    assert len(proc.store) == 0
    assert sink.rows == []


def test_msg_handlers() -> None:
    proc = make_processor()
    received = []
    proc.add_handler(received.append)

    proc.process_line("045  I --- 01:145038 --:------ 01:145038 30C9 003 0007D0")
    proc.process_line("045  I --- 01:145038 --:------ 01:1450")

    assert [repr(t) for t in received] == ["30C9|I|01:145038|zone_temperature"]


def test_msg_handler_failure() -> None:
    proc = make_processor()
    received = []

    def broken_handler(tgm: Any) -> None:
        raise TypeError("broken handler")

    proc.add_handler(broken_handler)
    proc.add_handler(received.append)

    proc.process_line("045  I --- 01:145038 --:------ 01:145038 30C9 003 0007D0")
    proc.process_line("045  I --- 01:145038 --:------ 01:145038 30C9 003 000834")

    assert len(received) == 2
    assert proc.store.get(0).temperature == 21.0


def test_no_follow_ups_when_sending_disabled() -> None:
    proc = make_processor(disable_sending=True)
    line = f"045 RP --- 01:145038 18:000730 --:------ 0004 022 0100{'ZZ' * 20}"

    for _ in range(5):
        proc.process_line(line)

    proc.process_line(
        "045 RP --- 01:145038 18:000730 --:------ 0418 022 "
        "004000B0061C040000008F14B0DB7FFFFF7000367F95"
    )

    assert proc.devices == {0: "13:163733"}  # the device is still recorded
    assert proc.queue.repairs((CommandName.ZONE_NAME, 1)) == 0
    assert queued(proc) == []
