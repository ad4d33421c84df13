"""Read-only lookup from stream identity to its destination write target."""
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Mapping, Optional, Tuple

from .streams import StreamIdentity

if TYPE_CHECKING:
    from .config import CatalogConfig


@dataclass(frozen=True)
class TableId:
    """Fully qualified destination table."""

    dataset: str
    table: str

    def __str__(self) -> str:
        return f"{self.dataset}.{self.table}"


@dataclass(frozen=True)
class FieldSpec:
    name: str
    type: str


@dataclass(frozen=True)
class WriteTarget:
    """Destination configuration for a single stream."""

    dataset_id: str  # staging namespace
    stream_name: str  # staging object name base
    target_table_id: TableId
    table_schema: Tuple[FieldSpec, ...]


class StreamWriteTargetRegistry:
    """Immutable stream -> WriteTarget mapping shared across flushes."""

    def __init__(self, targets: Mapping[StreamIdentity, WriteTarget]) -> None:
        self._targets = MappingProxyType(dict(targets))

    @classmethod
    def from_catalog(cls, catalog: "CatalogConfig") -> "StreamWriteTargetRegistry":
        targets = {}
        for stream in catalog.streams:
            identity = StreamIdentity(name=stream.name, namespace=stream.namespace)
            if identity in targets:
                raise ValueError(f"Stream {identity} is defined more than once in the catalog")
            targets[identity] = WriteTarget(
                dataset_id=stream.dataset_id,
                stream_name=stream.object_name or stream.name,
                target_table_id=TableId(dataset=stream.dataset_id, table=stream.table),
                table_schema=tuple(FieldSpec(name=f.name, type=f.type) for f in stream.fields),
            )
        return cls(targets)

    def resolve(self, stream: StreamIdentity) -> Optional[WriteTarget]:
        """Return the write target for ``stream`` or None when it is unknown."""
        return self._targets.get(stream)

    def known_streams(self) -> Tuple[StreamIdentity, ...]:
        return tuple(self._targets)

    def __len__(self) -> int:
        return len(self._targets)

    def __contains__(self, stream: object) -> bool:
        return stream in self._targets


__all__ = [
    "FieldSpec",
    "StreamWriteTargetRegistry",
    "TableId",
    "WriteTarget",
]
