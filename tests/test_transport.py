#!/usr/bin/env python3
"""evohome_listener - Test the transports."""

import io

import pytest

from evohome_listener import exceptions as exc
from evohome_listener.transport import (
    FileTransport,
    SerialTransport,
    is_valid_port,
    transport_factory,
)

from .helpers import assert_raises

pytestmark = pytest.mark.asyncio()


PACKET_LOG = """\
2022-02-10T21:37:29.406584 045  I --- 01:145038 --:------ 01:145038 30C9 003 0007D0
# a comment line
053  I --- 04:136513 --:------ 01:145038 3150 002 00C8  # a trailing comment
"""


async def test_file_transport() -> None:
    transport = FileTransport(io.StringIO(PACKET_LOG))
    await transport.open()

    assert await transport.read_line() == (
        b"045  I --- 01:145038 --:------ 01:145038 30C9 003 0007D0",
        False,
    )
    assert await transport.read_line() == (b"", False)
    assert await transport.read_line() == (
        b"053  I --- 04:136513 --:------ 01:145038 3150 002 00C8",
        False,
    )

    with pytest.raises(exc.TransportEof):
        await transport.read_line()

    with pytest.raises(exc.TransportError):
        await transport.write(b"RQ --- 18:000730 01:145038 --:------ 10E0 001 00\r\n")


async def test_file_transport_closed() -> None:
    transport = FileTransport(io.StringIO(PACKET_LOG))

    with pytest.raises(exc.TransportEof):
        await transport.read_line()


async def test_serial_transport_not_open() -> None:
    transport = SerialTransport("/dev/ttyUSB0")
    assert not transport.is_open

    with pytest.raises(exc.TransportSerialError):
        await transport.read_line()

    with pytest.raises(exc.TransportSerialError):
        await transport.write(b"\r\n")


async def test_transport_factory() -> None:
    assert isinstance(
        transport_factory(input_file=io.StringIO(PACKET_LOG)), FileTransport
    )
    assert isinstance(transport_factory(port_name="/dev/ttyUSB0"), SerialTransport)

    with pytest.raises(exc.TransportError):
        transport_factory()


async def test_is_valid_port() -> None:
    assert is_valid_port("/dev/ttyUSB0")  # need not exist
    assert_raises(exc.TransportSerialError, is_valid_port, "rubbish://localhost")
