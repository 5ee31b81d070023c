#!/usr/bin/env python3
"""evohome_listener - Test the outbound queue & its dispatcher."""

import pytest

from evohome_listener.catalog import CommandCatalog
from evohome_listener.command import Command
from evohome_listener.const import CommandName
from evohome_listener.dispatcher import CommandQueue, Dispatcher

from .helpers import CTL_ID, FailingTransport, FakeTransport, assert_raises

pytestmark = pytest.mark.asyncio()


async def test_queue_is_fifo() -> None:
    que = CommandQueue()

    for idx in range(3):
        await que.put(Command.get_zone_name(CTL_ID, idx))

    assert len(que) == 3
    assert [repr(que.get_nowait()) for _ in range(3)] == [
        "RQ|01:145038|zone_name|0000",
        "RQ|01:145038|zone_name|0100",
        "RQ|01:145038|zone_name|0200",
    ]
    assert que.get_nowait() is None


async def test_queue_is_bounded() -> None:
    assert_raises(ValueError, CommandQueue, 23)

    que = CommandQueue(maxsize=24)
    for idx in range(24):
        assert que.put_nowait(Command.get_zone_info(CTL_ID, idx))

    assert not que.put_nowait(Command.get_heartbeat(CTL_ID))
    assert len(que) == que.maxsize == 24


async def test_repairs_are_capped() -> None:
    que = CommandQueue(max_repairs=2)
    key = (CommandName.ZONE_NAME, 1)
    cmd = Command.get_zone_name(CTL_ID, 1)

    assert que.put_repair(cmd, key)
    assert que.put_repair(cmd, key)
    assert not que.put_repair(cmd, key)
    assert que.repairs(key) == 2
    assert len(que) == 2

    assert que.put_repair(cmd, (CommandName.ZONE_NAME, 2))  # another zone

    que.reset_repairs(key)
    assert que.repairs(key) == 0
    assert que.put_repair(cmd, key)


async def test_send_next() -> None:
    que = CommandQueue()
    dispatcher = Dispatcher(que, CommandCatalog(), settle_delay=0)
    transport = FakeTransport()

    assert await dispatcher.send_next(transport) is None  # queue is empty
    assert transport.written == []

    que.put_nowait(Command.get_zone_name(CTL_ID, 1))
    que.put_nowait(Command.get_heartbeat(CTL_ID))

    cmd = await dispatcher.send_next(transport)  # one command per call
    assert cmd == Command.get_zone_name(CTL_ID, 1)
    assert transport.written == [
        "RQ --- 18:000730 01:145038 --:------ 0004 002 0100\r\n"
    ]
    assert len(que) == 1


async def test_send_failure_drops_command() -> None:
    que = CommandQueue()
    dispatcher = Dispatcher(que, CommandCatalog(), settle_delay=0)

    que.put_nowait(Command.get_zone_name(CTL_ID, 1))

    assert await dispatcher.send_next(FailingTransport()) is not None
    assert len(que) == 0  # dropped, not retried


async def test_encode_failure_drops_command() -> None:
    que = CommandQueue()
    catalog = CommandCatalog(commands={"30C9": CommandName.ZONE_TEMPERATURE})
    dispatcher = Dispatcher(que, catalog, settle_delay=0)
    transport = FakeTransport()

    que.put_nowait(Command.get_zone_name(CTL_ID, 1))  # not in this catalog

    assert await dispatcher.send_next(transport) is None
    assert transport.written == []
    assert len(que) == 0
