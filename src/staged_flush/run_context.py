"""Identifiers for one sync attempt."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone


def _current_run_id() -> str:
    """Return ISO-8601 UTC timestamp with millisecond precision."""
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


@dataclass(frozen=True)
class RunContext:
    """Carries the run id used to partition staged objects of a sync."""

    run_id: str

    @classmethod
    def create(cls) -> "RunContext":
        return cls(run_id=_current_run_id())

    @property
    def staging_segment(self) -> str:
        """Path segment for staged objects; colons are not portable in keys."""
        return f"run_id={self.run_id.replace(':', '-')}"


__all__ = ["RunContext"]
