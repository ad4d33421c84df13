"""Error taxonomy raised by a flush."""
from __future__ import annotations

from typing import Iterable, Tuple

from .streams import StreamIdentity


class FlushError(Exception):
    """Base class for failures surfaced by a single flush call."""


class BufferWriteError(FlushError):
    """Local storage could not accept a record."""


class InvalidStateError(BufferWriteError):
    """A buffer operation was called outside its allowed lifecycle."""


class ConfigurationError(FlushError):
    """A stream has no write target; fatal for the whole sync."""

    def __init__(self, stream: StreamIdentity, known_streams: Iterable[StreamIdentity]) -> None:
        self.stream = stream
        self.known_streams: Tuple[StreamIdentity, ...] = tuple(known_streams)
        known = ", ".join(str(item) for item in self.known_streams) or "<none>"
        super().__init__(
            f"Record from stream {stream} that is not in the catalog. Known streams: {known}"
        )


class TransportError(FlushError):
    """Upload or commit of a staged batch failed."""

    def __init__(self, table: str, message: str) -> None:
        self.table = table
        super().__init__(f"{message} (destination table: {table})")


__all__ = [
    "FlushError",
    "BufferWriteError",
    "InvalidStateError",
    "ConfigurationError",
    "TransportError",
]
