#!/usr/bin/env python3
"""evohome_listener - exceptions within the telegram/transport/sink layers."""

from __future__ import annotations


class _EvohomeBaseException(Exception):
    """Base class for all evohome_listener exceptions."""

    pass


class EvohomeException(_EvohomeBaseException):
    """Base class for all evohome_listener exceptions."""

    HINT: None | str = None

    def __init__(self, *args: object):
        super().__init__(*args)
        self.message: str | None = args[0] if args else None  # type: ignore[assignment]

    def __str__(self) -> str:
        if self.message and self.HINT:
            return f"{self.message} (hint: {self.HINT})"
        if self.message:
            return self.message
        if self.HINT:
            return f"Hint: {self.HINT}"
        return ""


########################################################################################
# Errors when parsing telegrams (inbound) or building commands (outbound)


class ParserBaseError(EvohomeException):
    """The telegram is corrupt/not internally consistent, or cannot be parsed."""


class PacketInvalid(ParserBaseError):
    """The telegram is corrupt/not internally consistent."""


class PacketAddrSetInvalid(PacketInvalid):
    """The telegram's address set is inconsistent."""

    HINT = "exactly one of the trailing address slots must be null"


class PacketPayloadInvalid(PacketInvalid):
    """The telegram's payload is inconsistent."""


class CommandInvalid(ParserBaseError):
    """The command is corrupt/not internally consistent."""


########################################################################################
# Errors at the transport layer


class TransportError(EvohomeException):
    """An error when sending or receiving lines (bytes)."""


class TransportSerialError(TransportError):
    """The transport's serial port has thrown an error."""

    HINT = "check the bridge is connected, the port will be reset"


class TransportEof(TransportError):
    """The transport's packet source (a file) is exhausted."""


########################################################################################
# Errors at the measurement sink


class SinkError(EvohomeException):
    """The measurement sink failed to accept rows."""

    HINT = "check the measurement log (or snapshot file) is writable"
