#!/usr/bin/env python3
"""evohome_listener - helpers for testing."""

import asyncio
import logging
import warnings
from collections import deque
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

from evohome_listener import exceptions as exc
from evohome_listener.catalog import CommandCatalog
from evohome_listener.dispatcher import CommandQueue
from evohome_listener.processor import MessageProcessor
from evohome_listener.zones import ZoneStore

warnings.filterwarnings("ignore", category=DeprecationWarning)

logging.disable(logging.WARNING)  # usu. WARNING


TEST_DIR = Path(__file__).resolve().parent  # TEST_DIR = f"{os.path.dirname(__file__)}"

CTL_ID = "01:145038"


def assert_raises(
    exception: type[Exception], fnc: Callable, *args: Any, **kwargs: Any
) -> None:
    try:
        fnc(*args, **kwargs)
    except exception:  # as err:
        pass  # or: assert True
    else:
        assert False


class ListSink:
    """A measurement sink that keeps its rows in memory."""

    def __init__(self, fail: bool = False) -> None:
        self.rows: list[dict[str, Any]] = []
        self.fail = fail

    def insert(self, rows: list[dict[str, Any]]) -> None:
        if self.fail:
            raise exc.SinkError("sink is unavailable")
        self.rows.extend(rows)


class FakeTransport:
    """A transport that replays lines, and records what is written to it."""

    def __init__(self, lines: Iterable[str] = ()) -> None:
        self._lines = deque(lines)
        self.written: list[str] = []
        self.is_open = False
        self.open_count = 0

    async def open(self) -> None:
        self.is_open = True
        self.open_count += 1

    async def read_line(self) -> tuple[bytes, bool]:
        await asyncio.sleep(0)
        if not self._lines:
            raise exc.TransportEof("no more lines")
        return self._lines.popleft().encode("ascii"), False

    async def write(self, data: bytes) -> None:
        self.written.append(data.decode("ascii"))

    def close(self) -> None:
        self.is_open = False


class FailingTransport(FakeTransport):
    """A transport that can't be written to."""

    async def write(self, data: bytes) -> None:
        raise exc.TransportSerialError("write failed")


class FlakyTransport(FakeTransport):
    """A transport that faults on its first read, then replays its lines."""

    def __init__(self, lines: Iterable[str] = ()) -> None:
        super().__init__(lines)
        self.faults = 1

    async def read_line(self) -> tuple[bytes, bool]:
        if self.faults:
            self.faults -= 1
            raise exc.TransportSerialError("device reports readiness to read")
        return await super().read_line()


class SilentTransport(FakeTransport):
    """A transport that never receives a line (each read times out)."""

    async def read_line(self) -> tuple[bytes, bool]:
        await asyncio.sleep(0.01)
        return b"", False


def make_processor(
    controller_id: str | None = CTL_ID,
    sink: ListSink | None = None,
    disable_sending: bool = False,
) -> MessageProcessor:
    """Return a processor with an empty store, and an empty queue."""
    return MessageProcessor(
        CommandCatalog(),
        ZoneStore(),
        CommandQueue(),
        controller_id=controller_id,
        sink=sink,
        disable_sending=disable_sending,
    )


def queued(proc: MessageProcessor) -> list[str]:
    """Drain the processor's queue, returning the commands (as reprs)."""
    result = []
    while (cmd := proc.queue.get_nowait()) is not None:
        result.append(repr(cmd))
    return result
