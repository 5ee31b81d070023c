#!/usr/bin/env python3
"""evohome_listener - the catalog of command codes & device types.

Bidirectional lookups between command codes and their names, and from device
type codes to their names. The reverse map is derived from the forward one.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from .const import (
    COMMANDS_MAP,
    DEVICE_TYPE_MAP,
    DEVICE_TYPE_UNKNOWN,
    CommandName,
)


class CommandCatalog:
    """A read-only catalog of command codes, command names & device types."""

    def __init__(
        self,
        commands: Mapping[str, CommandName] | None = None,
        device_types: Mapping[str, str] | None = None,
    ) -> None:
        commands = COMMANDS_MAP if commands is None else commands
        device_types = DEVICE_TYPE_MAP if device_types is None else device_types

        if CommandName.UNKNOWN in commands.values():
            raise ValueError(f"{CommandName.UNKNOWN} is not a catalogable name")

        lookup = {v: k for k, v in commands.items()}
        if len(lookup) != len(commands):
            raise ValueError("Command names must be unique (the map must be invertible)")

        self._commands: Mapping[str, CommandName] = MappingProxyType(
            {k.upper(): CommandName(v) for k, v in commands.items()}
        )
        self._lookup: Mapping[CommandName, str] = MappingProxyType(
            {v: k for k, v in self._commands.items()}
        )
        self._device_types: Mapping[str, str] = MappingProxyType(dict(device_types))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(commands={len(self._commands)})"

    @property
    def command_names(self) -> tuple[CommandName, ...]:
        """Return the (known) command names, in code order."""
        return tuple(self._commands[k] for k in sorted(self._commands))

    def name_for_code(self, code: str) -> CommandName:
        """Return the name of a command code, or 'unknown'."""
        return self._commands.get(code.upper(), CommandName.UNKNOWN)

    def code_for_name(self, name: CommandName | str) -> str:
        """Return the code of a command name (raises a KeyError if not known)."""
        return self._lookup[CommandName(name)]

    def name_for_device_type(self, dev_type: str) -> str:
        """Return the name of a device type code (e.g. '01' is 'CTL'), or 'NA'."""
        return self._device_types.get(dev_type, DEVICE_TYPE_UNKNOWN)
