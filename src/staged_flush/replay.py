"""Replay JSONL record dumps through the flush engine."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, Iterator, List

from .streams import SerializedRecord


def iter_jsonl_records(path: str | Path) -> Iterator[SerializedRecord]:
    """Yield one record per non-blank line of ``{"data": ..., "emitted_at": ms}``."""
    with Path(path).open("r", encoding="utf-8") as handle:
        for line_number, line in enumerate(handle, start=1):
            if not line.strip():
                continue
            try:
                message = json.loads(line)
                payload = json.dumps(message["data"], separators=(",", ":"))
                emitted_at = int(message["emitted_at"])
            except (ValueError, KeyError, TypeError) as exc:
                raise ValueError(f"{path}:{line_number}: invalid record line: {exc}") from exc
            yield SerializedRecord(payload=payload.encode("utf-8"), emitted_at=emitted_at)


def chunk_by_size(
    records: Iterable[SerializedRecord], max_bytes: int
) -> Iterator[List[SerializedRecord]]:
    """Group records so each chunk's payload total stays near ``max_bytes``.

    A single record larger than the limit still forms its own chunk.
    """
    chunk: List[SerializedRecord] = []
    size = 0
    for record in records:
        record_size = len(record.payload)
        if chunk and size + record_size > max_bytes:
            yield chunk
            chunk, size = [], 0
        chunk.append(record)
        size += record_size
    if chunk:
        yield chunk


__all__ = ["chunk_by_size", "iter_jsonl_records"]
