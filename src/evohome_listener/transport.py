#!/usr/bin/env python3
"""evohome_listener - the transport layer.

Read lines from (and write lines to) the bridge, via a serial port, or read lines
from a packet log (a file).

Operations:
 - read_line() -> (line, truncated), raises TransportError (e.g. TransportEof)
 - write(data), raises TransportError
 - open() & close(), the caller is responsible for reconnecting after an error
"""

from __future__ import annotations

import asyncio
import logging
import re
from io import TextIOWrapper
from typing import TYPE_CHECKING, Any, TextIO

import serial_asyncio  # type: ignore[import-untyped]
from serial import SerialException, serial_for_url  # type: ignore[import-untyped]

from . import exceptions as exc
from .const import DEFAULT_READ_TIMEOUT
from .schemas import SZ_BAUDRATE, SZ_DSRDTR, SZ_RTSCTS, SZ_XONXOFF

if TYPE_CHECKING:
    from .schemas import PortConfigT


DEFAULT_LINE_LIMIT = 512  # bytes, a line is < 200

DTM_LONG_REGEX = re.compile(
    r"^\d{4}-[01]\d-[0-3]\d(T| )[0-2]\d:[0-5]\d:[0-5]\d\.\d{6} ?"
)  # 2020-11-30T13:15:00.123456

_LOGGER = logging.getLogger(__name__)


def is_valid_port(port_name: str) -> bool:
    """Return True if the port name is valid (it need not exist yet).

    Raise TransportSerialError if the port name can't be used.
    """

    try:
        serial_for_url(port_name, do_not_open=True)
    except (SerialException, ValueError) as err:
        raise exc.TransportSerialError(f"Unable to use {port_name}: {err}") from err
    return True


class SerialTransport:
    """A transport for a serial port (e.g. an HGI80, or evofw3)."""

    def __init__(
        self,
        port_name: str,
        port_config: PortConfigT | dict[str, Any] | None = None,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
    ) -> None:
        self.port_name = port_name
        self._port_config = port_config or {}
        self.read_timeout = read_timeout

        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.port_name})"

    @property
    def is_open(self) -> bool:
        return self._reader is not None

    async def open(self) -> None:
        try:
            self._reader, self._writer = await serial_asyncio.open_serial_connection(
                url=self.port_name,
                baudrate=self._port_config.get(SZ_BAUDRATE, 115200),
                dsrdtr=self._port_config.get(SZ_DSRDTR, False),
                rtscts=self._port_config.get(SZ_RTSCTS, False),
                xonxoff=self._port_config.get(SZ_XONXOFF, True),
                limit=DEFAULT_LINE_LIMIT,
            )
        except (SerialException, ValueError) as err:
            raise exc.TransportSerialError(
                f"Unable to open {self.port_name}: {err}"
            ) from err

        _LOGGER.info("%s: opened", self)

    async def read_line(self) -> tuple[bytes, bool]:
        """Return the next line (b"" if none within the timeout), and if truncated."""

        if self._reader is None:
            raise exc.TransportSerialError(f"{self}: is not open")

        try:
            line = await asyncio.wait_for(
                self._reader.readline(), timeout=self.read_timeout
            )
        except asyncio.TimeoutError:
            return b"", False
        except ValueError:  # the line exceeded the limit, and was discarded
            _LOGGER.warning("%s: line is too long (truncated)", self)
            return b"", True
        except SerialException as err:
            raise exc.TransportSerialError(f"{self}: read failed: {err}") from err

        if not line and self._reader.at_eof():
            raise exc.TransportSerialError(f"{self}: connection lost (EOF)")

        return line, not line.endswith(b"\n")

    async def write(self, data: bytes) -> None:
        if self._writer is None:
            raise exc.TransportSerialError(f"{self}: is not open")

        try:
            self._writer.write(data)
            await self._writer.drain()
        except (SerialException, ConnectionError) as err:
            raise exc.TransportSerialError(f"{self}: write failed: {err}") from err

    def close(self) -> None:
        if self._writer is not None:
            self._writer.close()
        self._reader = self._writer = None
        _LOGGER.info("%s: closed", self)


class FileTransport:
    """A read-only transport for a packet log (sending is disabled).

    Any leading timestamp, and trailing comment, is removed from each line.
    """

    def __init__(self, input_file: TextIO | TextIOWrapper) -> None:
        self._input_file = input_file
        self._is_open = False

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({getattr(self._input_file, 'name', '-')})"

    @property
    def is_open(self) -> bool:
        return self._is_open

    async def open(self) -> None:
        self._is_open = True

    async def read_line(self) -> tuple[bytes, bool]:
        if not self._is_open:
            raise exc.TransportEof(f"{self}: is closed")

        await asyncio.sleep(0)  # allow other tasks to run
        if not (line := self._input_file.readline()):
            raise exc.TransportEof(f"{self}: end of file")

        line, _, _ = line.partition("#")  # remove any comment
        line = DTM_LONG_REGEX.sub("", line.strip())
        return line.encode("ascii", errors="replace"), False

    async def write(self, data: bytes) -> None:
        raise exc.TransportError(f"{self}: sending is disabled")

    def close(self) -> None:
        self._is_open = False


TransportT = SerialTransport | FileTransport


def transport_factory(
    *,
    port_name: str | None = None,
    port_config: PortConfigT | dict[str, Any] | None = None,
    input_file: TextIO | None = None,
    read_timeout: float = DEFAULT_READ_TIMEOUT,
) -> TransportT:
    """Create a transport for the packet source (it is opened later)."""

    if port_name and input_file:
        _LOGGER.warning(
            "Port (%s) specified, so file (%s) ignored", port_name, input_file
        )

    if port_name:
        is_valid_port(port_name)
        return SerialTransport(port_name, port_config, read_timeout=read_timeout)

    if input_file:
        return FileTransport(input_file)

    raise exc.TransportError("Either a port_name or an input_file must be specified")
