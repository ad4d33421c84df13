"""Flush orchestration: buffer, stage and commit one batch per call."""
from __future__ import annotations

import logging
from typing import Callable, Iterable

from .buffer import SerializedBatchBuffer
from .config import FlushSettings
from .errors import BufferWriteError, ConfigurationError, TransportError
from .registry import StreamWriteTargetRegistry
from .staging.base import StagingTransport
from .streams import SerializedRecord, StreamIdentity

logger = logging.getLogger(__name__)

BufferFactory = Callable[[], SerializedBatchBuffer]


def display_size(byte_count: int) -> str:
    """Human readable size, truncated to whole units."""
    size = float(byte_count)
    for unit in ("bytes", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            return f"{int(size)} {unit}"
        size /= 1024
    return f"{byte_count} bytes"  # pragma: no cover


class FlushOrchestrator:
    """Stages and commits batches of serialized records for a stream.

    Callers must not run two flushes for the same stream concurrently;
    flushes for different streams may run in parallel.
    """

    def __init__(
        self,
        registry: StreamWriteTargetRegistry,
        transport: StagingTransport,
        settings: FlushSettings | None = None,
        buffer_factory: BufferFactory | None = None,
    ) -> None:
        self.registry = registry
        self.transport = transport
        self.settings = settings or FlushSettings()
        self._buffer_factory = buffer_factory or self._default_buffer

    def _default_buffer(self) -> SerializedBatchBuffer:
        return SerializedBatchBuffer(
            compression=self.settings.compression,
            directory=self.settings.buffer_dir,
        )

    def flush(self, stream: StreamIdentity, records: Iterable[SerializedRecord]) -> None:
        with self._buffer_factory() as buffer:
            self._fill(buffer, records)
            buffer.seal()
            logger.info(
                "Flushing CSV buffer for stream %s (%s) to staging",
                stream,
                display_size(buffer.byte_count),
            )

            write_target = self.registry.resolve(stream)
            if write_target is None:
                raise ConfigurationError(stream, self.registry.known_streams())

            table = str(write_target.target_table_id)
            try:
                handle = self.transport.upload(
                    write_target.dataset_id,
                    write_target.stream_name,
                    buffer.batch,
                )
                self.transport.commit(
                    write_target.dataset_id,
                    write_target.stream_name,
                    write_target.target_table_id,
                    write_target.table_schema,
                    handle,
                )
            except Exception as exc:
                logger.exception("Failed to flush and commit buffer data into %s", table)
                raise TransportError(
                    table, "Failed to upload buffer to stage and commit to destination"
                ) from exc

            logger.info(
                "Committed %s records (%s) for stream %s into %s",
                buffer.record_count,
                display_size(buffer.byte_count),
                stream,
                table,
            )

    def _fill(self, buffer: SerializedBatchBuffer, records: Iterable[SerializedRecord]) -> None:
        """Append every record in order; the first failure aborts the batch."""
        for index, record in enumerate(records):
            try:
                buffer.append(record.payload, record.emitted_at)
            except BufferWriteError as exc:
                raise type(exc)(f"Record {index} could not be buffered: {exc}") from exc

    def optimal_batch_size_bytes(self) -> int:
        """Size hint the scheduler uses to cut batches before calling flush."""
        return self.settings.optimal_batch_size_bytes


__all__ = ["FlushOrchestrator", "display_size"]
