"""Vendor-neutral interface for staging transports."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence

from ..buffer import SealedBatch
from ..registry import FieldSpec, TableId


@dataclass(frozen=True)
class StagingHandle:
    """Where a sealed batch now resides; consumed once by ``commit``."""

    location: str
    key: str
    compressed: bool
    record_count: int


class StagingTransport(Protocol):
    """Uploads sealed batches and commits them into destination tables."""

    def upload(self, namespace: str, object_name: str, batch: SealedBatch) -> StagingHandle:
        """Copy the sealed batch to the staging area."""

    def commit(
        self,
        namespace: str,
        object_name: str,
        target_table: TableId,
        schema: Sequence[FieldSpec],
        handle: StagingHandle,
    ) -> None:
        """Load the staged batch into ``target_table`` atomically."""


__all__ = ["StagingHandle", "StagingTransport"]
