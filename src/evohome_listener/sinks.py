#!/usr/bin/env python3
"""evohome_listener - measurement sinks & the zone snapshot store."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from . import exceptions as exc

if TYPE_CHECKING:
    from .zones import Zone


DEFAULT_MAX_BUFFER = 10_000  # rows

_LOGGER = logging.getLogger(__name__)


class MeasurementSinkT(Protocol):
    def insert(self, rows: list[dict[str, Any]]) -> None: ...


class JsonLinesSink:
    """A measurement sink that appends each row to a file, as a line of JSON."""

    def __init__(self, file_name: str | Path) -> None:
        self.file_name = Path(file_name)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.file_name})"

    def insert(self, rows: list[dict[str, Any]]) -> None:
        try:
            with self.file_name.open("a", encoding="utf-8") as f:
                for row in rows:
                    f.write(json.dumps(row) + "\n")
        except OSError as err:
            raise exc.SinkError(f"{self}: failed to insert rows: {err}") from err


class BufferedSink:
    """A wrapper that keeps rows that failed to insert, and retries them first.

    Rows are delivered at least once. If the buffer grows beyond its limit, the
    failure is treated as fatal (a SinkError is raised).
    """

    def __init__(
        self, sink: MeasurementSinkT, max_buffer: int = DEFAULT_MAX_BUFFER
    ) -> None:
        self._sink = sink
        self._buffer: list[dict[str, Any]] = []
        self.max_buffer = max_buffer

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._sink!r})"

    def __len__(self) -> int:
        return len(self._buffer)

    def insert(self, rows: list[dict[str, Any]]) -> None:
        self._buffer.extend(rows)
        self.flush()

    def flush(self) -> None:
        """Try to insert all buffered rows (will raise a SinkError if too many)."""

        if not self._buffer:
            return

        try:
            self._sink.insert(self._buffer)
        except exc.SinkError as err:
            if len(self._buffer) > self.max_buffer:
                raise exc.SinkError(
                    f"{len(self._buffer)} rows are buffered (> {self.max_buffer}): {err}"
                ) from err
            _LOGGER.warning("%s rows are buffered, will retry: %s", len(self._buffer), err)
        else:
            self._buffer = []


class SnapshotStore:
    """The durable store of the zone snapshot (a JSON file)."""

    def __init__(self, file_name: str | Path) -> None:
        self.file_name = Path(file_name)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.file_name})"

    def load(self) -> list[dict[str, Any]] | None:
        """Return the most recent snapshot, or None if there isn't a (valid) one."""

        try:
            with self.file_name.open(encoding="utf-8") as f:
                snapshot = json.load(f)
        except FileNotFoundError:
            _LOGGER.info("%s: no snapshot to load", self)
            return None
        except (OSError, json.JSONDecodeError) as err:
            _LOGGER.warning("%s: snapshot not loaded: %s", self, err)
            return None

        if not isinstance(snapshot, list) or not all(
            isinstance(z, dict) and isinstance(z.get("idx"), int) for z in snapshot
        ):
            _LOGGER.warning("%s: snapshot not loaded: invalid structure", self)
            return None

        return snapshot

    def publish(self, zones: Iterable[Zone]) -> None:
        """Save a snapshot, replacing the previous one."""

        tmp_name = self.file_name.with_name(f"{self.file_name.name}.tmp")
        try:
            with tmp_name.open("w", encoding="utf-8") as f:
                json.dump([z.as_dict() for z in zones], f, indent=2)
            os.replace(tmp_name, self.file_name)
        except OSError as err:
            raise exc.SinkError(f"{self}: failed to publish snapshot: {err}") from err

        _LOGGER.debug("%s: snapshot published", self)
