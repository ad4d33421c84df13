"""Size-tracked CSV batch buffer backed by a temporary file.

Rows are written as ``(raw_id, extracted_at, data)`` without a header. The
container is write-only while open; readers only see it once sealed.
"""
from __future__ import annotations

import csv
import gzip
import io
import logging
import os
import tempfile
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Tuple

from .errors import BufferWriteError, InvalidStateError

logger = logging.getLogger(__name__)

CSV_SUFFIX = ".csv"
CSV_GZ_SUFFIX = ".csv.gz"


class BufferState(Enum):
    OPEN = "open"
    SEALED = "sealed"
    RELEASED = "released"


@dataclass(frozen=True)
class StagedRow:
    """One row of a staged batch as read back from the container."""

    raw_id: str
    extracted_at: str
    data: str

    def as_tuple(self) -> Tuple[str, str, str]:
        return (self.raw_id, self.extracted_at, self.data)


@dataclass(frozen=True)
class SealedBatch:
    """Immutable view of a finalized buffer."""

    path: Path
    byte_count: int
    record_count: int
    compressed: bool

    @property
    def suffix(self) -> str:
        return CSV_GZ_SUFFIX if self.compressed else CSV_SUFFIX

    def iter_rows(self) -> Iterator[StagedRow]:
        """Yield rows in the order they were appended."""
        with self.path.open("rb") as handle:
            yield from read_staged_rows(handle, self.compressed)


def format_emitted_at(emitted_at: int) -> str:
    """Render epoch milliseconds as ISO-8601 UTC with millisecond precision."""
    seconds, millis = divmod(int(emitted_at), 1000)
    moment = datetime.fromtimestamp(seconds, tz=timezone.utc) + timedelta(milliseconds=millis)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def read_staged_rows(fileobj: BinaryIO, compressed: bool) -> Iterator[StagedRow]:
    """Parse a staged container from a binary stream.

    The caller keeps ownership of ``fileobj``; it is not closed here.
    """
    stream = gzip.GzipFile(fileobj=fileobj, mode="rb") if compressed else fileobj
    text = io.TextIOWrapper(stream, encoding="utf-8", newline="")
    try:
        for line_number, row in enumerate(csv.reader(text), start=1):
            if not row:
                continue
            if len(row) != 3:
                raise ValueError(
                    f"Malformed staged row {line_number}: expected 3 columns, got {len(row)}"
                )
            yield StagedRow(*row)
    finally:
        text.detach()


class _CountingSink(io.RawIOBase):
    """Raw stream that counts the bytes it hands to the backing file."""

    def __init__(self, raw: BinaryIO) -> None:
        super().__init__()
        self._raw = raw
        self._discard = False
        self.count = 0

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:
        size = len(data)
        if self._discard:
            return size
        self._raw.write(data)
        self.count += size
        return size

    def discard(self) -> None:
        """Drop any bytes still pending in upstream buffers."""
        self._discard = True


class SerializedBatchBuffer:
    """Accumulates serialized records into one compressed on-disk container.

    Lifecycle is open -> sealed -> released. Use as a context manager so the
    temporary file is removed on every exit path.
    """

    def __init__(self, compression: bool = True, directory: Optional[str | Path] = None) -> None:
        self.compression = compression
        suffix = CSV_GZ_SUFFIX if compression else CSV_SUFFIX
        try:
            self._file = tempfile.NamedTemporaryFile(
                mode="wb", suffix=suffix, dir=directory, delete=False
            )
        except OSError as exc:
            raise BufferWriteError(f"Unable to allocate buffer file: {exc}") from exc
        self._path = Path(self._file.name)
        self._sink = _CountingSink(self._file)
        if compression:
            stream: io.BufferedIOBase = gzip.GzipFile(fileobj=self._sink, mode="wb")
        else:
            stream = io.BufferedWriter(self._sink)
        self._text = io.TextIOWrapper(stream, encoding="utf-8", newline="")
        self._writer = csv.writer(self._text)
        self._state = BufferState.OPEN
        self._record_count = 0
        self._sealed_bytes = 0
        self._batch: Optional[SealedBatch] = None

    def __enter__(self) -> "SerializedBatchBuffer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def state(self) -> BufferState:
        return self._state

    @property
    def record_count(self) -> int:
        return self._record_count

    @property
    def byte_count(self) -> int:
        """Bytes written to the container so far (compressed when enabled)."""
        if self._state is BufferState.OPEN:
            return self._sink.count
        return self._sealed_bytes

    @property
    def batch(self) -> SealedBatch:
        if self._batch is None or self._state is not BufferState.SEALED:
            raise InvalidStateError(f"Buffer is {self._state.value}; no sealed batch available")
        return self._batch

    def append(self, payload: bytes, emitted_at: int) -> None:
        if self._state is not BufferState.OPEN:
            raise InvalidStateError(f"Cannot append to a {self._state.value} buffer")
        try:
            data = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise BufferWriteError("Record payload is not valid UTF-8") from exc
        try:
            self._writer.writerow((str(uuid.uuid4()), format_emitted_at(emitted_at), data))
        except OSError as exc:
            raise BufferWriteError(f"Failed to write record to {self._path}: {exc}") from exc
        self._record_count += 1

    def seal(self) -> None:
        if self._state is not BufferState.OPEN:
            raise InvalidStateError(f"Cannot seal a {self._state.value} buffer")
        try:
            self._text.close()
            self._file.flush()
            os.fsync(self._file.fileno())
            self._file.close()
        except OSError as exc:
            raise BufferWriteError(f"Failed to finalize buffer {self._path}: {exc}") from exc
        self._sealed_bytes = self._sink.count
        self._state = BufferState.SEALED
        self._batch = SealedBatch(
            path=self._path,
            byte_count=self._sealed_bytes,
            record_count=self._record_count,
            compressed=self.compression,
        )
        logger.debug(
            "Sealed buffer %s records=%s bytes=%s",
            self._path,
            self._record_count,
            self._sealed_bytes,
        )

    def release(self) -> None:
        if self._state is BufferState.RELEASED:
            return
        try:
            if self._state is BufferState.OPEN:
                self._sealed_bytes = self._sink.count
                self._sink.discard()
                self._text.close()
        finally:
            try:
                self._file.close()
            finally:
                self._path.unlink(missing_ok=True)
                self._state = BufferState.RELEASED
                self._batch = None


__all__ = [
    "BufferState",
    "SealedBatch",
    "SerializedBatchBuffer",
    "StagedRow",
    "format_emitted_at",
    "read_staged_rows",
]
