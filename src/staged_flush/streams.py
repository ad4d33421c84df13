"""Value types describing streams and the records flowing through them."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class StreamIdentity:
    """Identity of a logical data stream."""

    name: str
    namespace: Optional[str] = None

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.namespace}.{self.name}"
        return self.name


@dataclass(frozen=True)
class SerializedRecord:
    """One record already serialized in the destination's encoding."""

    payload: bytes
    emitted_at: int  # epoch milliseconds


__all__ = ["StreamIdentity", "SerializedRecord"]
