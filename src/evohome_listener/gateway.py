#!/usr/bin/env python3
"""evohome_listener - the gateway (the serial to RF bridge, e.g. an HGI80).

A single loop owns the transport: each iteration sends (at most) one queued command,
then reads one line. Periodic tasks only ever add commands to the queue, except the
health check which, holding the port lock, may reset the transport.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from io import TextIOWrapper
from string import printable
from typing import TYPE_CHECKING, Any

from . import exceptions as exc
from .catalog import CommandCatalog
from .command import Command
from .const import MAX_ZONES, OPENTHERM_ZONE_IDX, OPENTHERM_ZONE_NAME
from .dispatcher import CommandQueue, Dispatcher
from .helpers import apply_jitter, timestamp
from .logger import set_pkt_logging
from .packet import PKT_LOGGER
from .processor import MessageProcessor
from .schemas import (
    SCH_CONFIG,
    SZ_CONTROLLER_ID,
    SZ_HEALTH_CHECK_INTERVAL,
    SZ_HEARTBEAT_INTERVAL,
    SZ_MAX_REPAIRS,
    SZ_MAX_SILENCE,
    SZ_MEASUREMENT_LOG,
    SZ_PACKET_LOG,
    SZ_PUBLISH_DELAY,
    SZ_PUBLISH_INTERVAL,
    SZ_PUBLISH_JITTER,
    SZ_QUEUE_SIZE,
    SZ_READ_TIMEOUT,
    SZ_REFRESH_INTERVAL,
    SZ_REFRESH_JITTER,
    SZ_RESET_DELAY,
    SZ_SETTLE_DELAY,
    SZ_STATE_FILE,
    SZ_SUMMARY_INTERVAL,
    SZ_SUMMARY_LOG,
    SZ_TIMERS,
    PortConfigT,
)
from .sinks import BufferedSink, JsonLinesSink, SnapshotStore
from .transport import transport_factory
from .zones import ZoneStore

if TYPE_CHECKING:
    from .packet import Telegram
    from .sinks import MeasurementSinkT
    from .transport import TransportT

_MsgHandlerT = Callable[["Telegram"], None]


_LOGGER = logging.getLogger(__name__)


class Gateway:
    """The gateway class."""

    def __init__(
        self,
        port_name: str | None,
        input_file: TextIOWrapper | None = None,
        port_config: PortConfigT | None = None,
        *,
        transport: TransportT | None = None,
        disable_sending: bool | None = None,
        **kwargs: Any,
    ) -> None:
        if port_name and input_file:
            _LOGGER.warning(
                "Port (%s) specified, so file (%s) ignored", port_name, input_file
            )
            input_file = None

        if not (port_name or input_file or transport):
            raise TypeError("Either a port_name or an input_file must be specified")

        self._config: dict[str, Any] = SCH_CONFIG(kwargs)
        self._timers: dict[str, float] = self._config[SZ_TIMERS]

        self.ser_name = port_name
        self._input_file = input_file
        self._port_config = port_config or {}
        self._disable_sending = bool(disable_sending or input_file)

        self.catalog = CommandCatalog()
        self.store = ZoneStore()
        self.queue = CommandQueue(
            maxsize=self._config[SZ_QUEUE_SIZE],
            max_repairs=self._config[SZ_MAX_REPAIRS],
        )
        self.dispatcher = Dispatcher(
            self.queue, self.catalog, settle_delay=self._timers[SZ_SETTLE_DELAY]
        )

        self._sink: MeasurementSinkT | None = None
        if file_name := self._config[SZ_MEASUREMENT_LOG]:
            self._sink = BufferedSink(JsonLinesSink(file_name))
        self._summary_sink: MeasurementSinkT | None = None
        if file_name := self._config[SZ_SUMMARY_LOG]:
            self._summary_sink = BufferedSink(JsonLinesSink(file_name))
        self._snapshots: SnapshotStore | None = None
        if file_name := self._config[SZ_STATE_FILE]:
            self._snapshots = SnapshotStore(file_name)

        self.processor = MessageProcessor(
            self.catalog,
            self.store,
            self.queue,
            controller_id=self._config[SZ_CONTROLLER_ID],
            sink=self._sink,
            disable_sending=self._disable_sending,
        )

        self._transport: TransportT | None = transport
        self._port_lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        self._exception: BaseException | None = None
        self._last_line_at: float = 0

        self._tasks: list[asyncio.Task] = []  # type: ignore[type-arg]

    def __str__(self) -> str:
        return f"{self.__class__.__name__} ({self.ser_name or self._transport})"

    @property
    def controller_id(self) -> str | None:
        return self.processor.controller_id

    @property
    def status(self) -> dict[str, Any]:
        """Return the state of the zones, and of the controller's device list."""
        return {
            "controller_id": self.controller_id,
            "zones": [z.as_dict() for z in self.store.snapshot()],
            "devices": dict(sorted(self.processor.devices.items())),
            "queue_length": len(self.queue),
        }

    def add_msg_handler(self, msg_handler: _MsgHandlerT) -> None:
        """Add a callback, to be invoked with each (valid) telegram."""
        self.processor.add_handler(msg_handler)

    def add_task(self, coro: Coroutine[Any, Any, None], name: str) -> asyncio.Task:  # type: ignore[type-arg]
        """Create a task, to be cancelled when the gateway is stopped."""

        task = asyncio.create_task(coro, name=name)
        task.add_done_callback(self._handle_task_done)

        self._tasks = [t for t in self._tasks if not t.done()]
        self._tasks.append(task)
        return task

    def _handle_task_done(self, task: asyncio.Task) -> None:  # type: ignore[type-arg]
        if task.cancelled():
            return

        if (err := task.exception()) is not None:
            _LOGGER.error("%s: task %s failed: %s", self, task.get_name(), err)
            if self._exception is None:
                self._exception = err
            self._stop_event.set()

        elif task.get_name() == "main_loop":
            self._stop_event.set()

    async def start(self) -> None:
        """Create a suitable transport for the packet source, and start the tasks.

        Initiate receiving (telegrams) and sending (commands).
        """

        if self._snapshots and (snapshot := self._snapshots.load()):
            self.store.load(snapshot)

        zone = self.store.get(OPENTHERM_ZONE_IDX)
        if zone is None or not zone.name:
            self.store.upsert(OPENTHERM_ZONE_IDX, name=OPENTHERM_ZONE_NAME)

        if packet_log := self._config[SZ_PACKET_LOG]:
            set_pkt_logging(PKT_LOGGER, **packet_log)

        if self._transport is None:
            self._transport = transport_factory(
                port_name=self.ser_name,
                port_config=self._port_config,
                input_file=self._input_file,
                read_timeout=self._timers[SZ_READ_TIMEOUT],
            )
        await self._transport.open()
        self._last_line_at = asyncio.get_running_loop().time()

        if not self._disable_sending:
            if ctl_id := self.controller_id:
                for cmd in (
                    Command.get_heartbeat(ctl_id),
                    Command.get_controller_mode(ctl_id),
                    Command.get_device_info(ctl_id, 0),
                ):
                    self.queue.put_nowait(cmd)

            self.add_task(self._refresh_loop(), name="refresh")
            self.add_task(self._heartbeat_loop(), name="heartbeat")

        if not self._input_file:  # a packet log can't be reset
            self.add_task(self._health_check_loop(), name="health_check")

        if self._snapshots:
            self.add_task(self._publish_loop(), name="publish")
        if self._summary_sink:
            self.add_task(self._summary_loop(), name="summary")

        self.add_task(self._main_loop(), name="main_loop")

        if self._input_file:  # wait until the file is exhausted
            await self.wait_closed()

    async def wait_closed(self) -> None:
        """Wait until the gateway stops, re-raising any error that stopped it."""

        await self._stop_event.wait()
        if self._exception is not None:
            raise self._exception

    async def stop(self) -> None:
        """Stop all tasks, save state & close the transport."""

        self._stop_event.set()

        tasks = [t for t in self._tasks if not t.done()]
        _ = [t.cancel() for t in tasks]
        await asyncio.gather(*tasks, return_exceptions=True)

        try:
            if self._snapshots:
                self._snapshots.publish(self.store.snapshot())
        except exc.SinkError as err:
            _LOGGER.error("%s: failed to save state: %s", self, err)

        for sink in (self._sink, self._summary_sink):
            if not isinstance(sink, BufferedSink):
                continue
            try:
                sink.flush()
            except exc.SinkError as err:
                _LOGGER.error("%s: failed to flush %s: %s", self, sink, err)

        if self._transport:
            self._transport.close()

    async def _sleep(self, delay: float) -> bool:
        """Sleep for a delay, return False (early) if the gateway is stopping."""

        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return True
        return False

    async def _main_loop(self) -> None:
        assert self._transport is not None  # mypy

        while not self._stop_event.is_set():
            async with self._port_lock:
                try:
                    if not self._disable_sending:
                        await self.dispatcher.send_next(self._transport)
                    raw_line, truncated = await self._transport.read_line()

                except exc.TransportEof as err:
                    _LOGGER.info("%s: %s", self, err)
                    return

                except exc.TransportError as err:
                    _LOGGER.warning("%s: transport fault: %s", self, err)
                    await self._reset_transport()
                    continue

            if not raw_line:
                continue

            self._last_line_at = asyncio.get_running_loop().time()

            if truncated:
                _LOGGER.debug("Line ignored (truncated): %s", raw_line)
                continue

            line = "".join(
                c for c in raw_line.decode("ascii", errors="ignore") if c in printable
            )
            self.processor.process_line(line)  # may raise a SinkError

    async def _reset_transport(self) -> None:
        """Close, then reopen, the transport (the port lock must be held)."""
        assert self._transport is not None  # mypy
        assert self._port_lock.locked()

        _LOGGER.warning("%s: resetting the transport", self)

        self._transport.close()
        if not await self._sleep(self._timers[SZ_RESET_DELAY]):
            return

        try:
            await self._transport.open()
        except exc.TransportError as err:
            _LOGGER.warning("%s: failed to reopen the transport: %s", self, err)

        self._last_line_at = asyncio.get_running_loop().time()

    async def _refresh_loop(self) -> None:
        """Periodically ask the controller for the name & bounds of every zone."""

        while True:
            if ctl_id := self.controller_id:
                for zone_idx in range(MAX_ZONES):
                    await self.queue.put(Command.get_zone_name(ctl_id, zone_idx))
                    await self.queue.put(Command.get_zone_info(ctl_id, zone_idx))
            else:
                _LOGGER.debug("%s: refresh skipped, no controller (yet)", self)

            if not await self._sleep(
                apply_jitter(
                    self._timers[SZ_REFRESH_INTERVAL], self._timers[SZ_REFRESH_JITTER]
                )
            ):
                return

    async def _heartbeat_loop(self) -> None:
        while await self._sleep(
            apply_jitter(
                self._timers[SZ_HEARTBEAT_INTERVAL], self._timers[SZ_REFRESH_JITTER]
            )
        ):
            if ctl_id := self.controller_id:
                await self.queue.put(Command.get_heartbeat(ctl_id))

    async def _health_check_loop(self) -> None:
        """Reset the transport if no line has been received for too long."""

        loop = asyncio.get_running_loop()

        while await self._sleep(
            apply_jitter(
                self._timers[SZ_HEALTH_CHECK_INTERVAL], self._timers[SZ_REFRESH_JITTER]
            )
        ):
            if (silence := loop.time() - self._last_line_at) <= self._timers[
                SZ_MAX_SILENCE
            ]:
                continue

            _LOGGER.warning("%s: no lines received for %.0f secs", self, silence)
            async with self._port_lock:
                await self._reset_transport()

    async def _publish_loop(self) -> None:
        assert self._snapshots is not None  # mypy

        jitter = self._timers[SZ_PUBLISH_JITTER]
        delay = apply_jitter(self._timers[SZ_PUBLISH_DELAY], jitter)

        while await self._sleep(delay):
            self._snapshots.publish(self.store.snapshot())  # may raise a SinkError
            delay = apply_jitter(self._timers[SZ_PUBLISH_INTERVAL], jitter)

    async def _summary_loop(self) -> None:
        assert self._summary_sink is not None  # mypy

        while await self._sleep(
            apply_jitter(
                self._timers[SZ_SUMMARY_INTERVAL], self._timers[SZ_PUBLISH_JITTER]
            )
        ):
            if rows := self.store.summary_rows(timestamp()):
                self._summary_sink.insert(rows)  # may raise a SinkError
