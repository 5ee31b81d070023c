#!/usr/bin/env python3
"""evohome_listener - the outbound queue & its dispatcher.

Producers (the periodic refresh, the decode-time repairs) put commands on a bounded
queue; a single consumer takes at most one command per loop iteration, sends it and
then waits for the bridge to settle.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Hashable
from typing import TYPE_CHECKING, Protocol

from . import exceptions as exc
from .const import DEFAULT_MAX_REPAIRS, DEFAULT_QUEUE_SIZE, DEFAULT_SETTLE_DELAY, MAX_ZONES

if TYPE_CHECKING:
    from .catalog import CommandCatalog
    from .command import Command


_LOGGER = logging.getLogger(__name__)


class _WritableT(Protocol):
    async def write(self, data: bytes) -> None: ...


class CommandQueue:
    """A bounded FIFO of pending commands, each consumed exactly once."""

    def __init__(
        self,
        maxsize: int = DEFAULT_QUEUE_SIZE,
        max_repairs: int = DEFAULT_MAX_REPAIRS,
    ) -> None:
        if maxsize < MAX_ZONES * 2:  # must absorb a full refresh burst
            raise ValueError(f"Queue size must be at least {MAX_ZONES * 2}: {maxsize}")

        self._que: asyncio.Queue[Command] = asyncio.Queue(maxsize=maxsize)
        self._max_repairs = max_repairs
        self._repairs: dict[Hashable, int] = {}

    def __len__(self) -> int:
        return self._que.qsize()

    @property
    def maxsize(self) -> int:
        return self._que.maxsize

    async def put(self, cmd: Command) -> None:
        """Add a command to the queue, waiting for space if required."""
        await self._que.put(cmd)

    def put_nowait(self, cmd: Command) -> bool:
        """Add a command to the queue, return False (and drop it) if the queue is full."""

        try:
            self._que.put_nowait(cmd)
        except asyncio.QueueFull:
            _LOGGER.warning("%s: dropped, the outbound queue is full", cmd)
            return False
        return True

    def put_repair(self, cmd: Command, key: Hashable) -> bool:
        """Add a repair command, unless too many are outstanding for this key."""

        if (count := self._repairs.get(key, 0)) >= self._max_repairs:
            _LOGGER.warning(
                "%s: dropped, too many repairs (%s) outstanding for %s",
                cmd,
                count,
                key,
            )
            return False

        if not self.put_nowait(cmd):
            return False

        self._repairs[key] = count + 1
        return True

    def repairs(self, key: Hashable) -> int:
        """Return the number of repairs made for this key."""
        return self._repairs.get(key, 0)

    def reset_repairs(self, key: Hashable) -> None:
        """Clear the repair counter of a key (e.g. after a successful decode)."""
        self._repairs.pop(key, None)

    def get_nowait(self) -> Command | None:
        """Return the next command, or None if the queue is empty."""

        try:
            return self._que.get_nowait()
        except asyncio.QueueEmpty:
            return None


class Dispatcher:
    """The (only) consumer of the outbound queue."""

    def __init__(
        self,
        queue: CommandQueue,
        catalog: CommandCatalog,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
    ) -> None:
        self._queue = queue
        self._catalog = catalog
        self.settle_delay = settle_delay

    async def send_next(self, transport: _WritableT) -> Command | None:
        """Send (at most) one command, then wait for the bridge to settle.

        A command that fails to send is dropped, not retried.
        """

        if (cmd := self._queue.get_nowait()) is None:
            return None

        try:
            frame = cmd.encode(self._catalog)
            await transport.write(f"{frame}\r\n".encode("ascii"))

        except exc.CommandInvalid as err:
            _LOGGER.error("%s: dropped, failed to encode: %s", cmd, err)
            return None
        except exc.TransportError as err:
            _LOGGER.warning("%s: dropped, failed to send: %s", cmd, err)
        else:
            _LOGGER.info("Sent: %s", frame)

        await asyncio.sleep(self.settle_delay)
        return cmd
