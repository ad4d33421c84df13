"""Filesystem-backed StagingTransport implementation."""
from __future__ import annotations

import logging
import shutil
import uuid
from pathlib import Path
from typing import Sequence

from ..buffer import SealedBatch, read_staged_rows
from ..registry import FieldSpec, TableId
from ..run_context import RunContext
from ..warehouse import SQLiteWarehouse
from .base import StagingHandle, StagingTransport

logger = logging.getLogger(__name__)


def _stage_dir(root: Path, namespace: str, object_name: str) -> Path:
    return root / namespace / object_name


class LocalStagingTransport(StagingTransport):
    """Stages batches under a local directory layout."""

    def __init__(
        self,
        warehouse: SQLiteWarehouse,
        root: Path | str = Path("data/staging"),
        run_context: RunContext | None = None,
    ) -> None:
        self._root = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)
        self._warehouse = warehouse
        self._run_context = run_context or RunContext.create()

    def upload(self, namespace: str, object_name: str, batch: SealedBatch) -> StagingHandle:
        directory = _stage_dir(self._root, namespace, object_name) / self._run_context.staging_segment
        directory.mkdir(parents=True, exist_ok=True)
        destination = directory / f"{uuid.uuid4()}{batch.suffix}"
        shutil.copyfile(batch.path, destination)
        logger.debug("Staged %s records at %s", batch.record_count, destination)
        return StagingHandle(
            location=destination.resolve().as_uri(),
            key=str(destination),
            compressed=batch.compressed,
            record_count=batch.record_count,
        )

    def commit(
        self,
        namespace: str,
        object_name: str,
        target_table: TableId,
        schema: Sequence[FieldSpec],
        handle: StagingHandle,
    ) -> None:
        staged_path = Path(handle.key)
        if not staged_path.exists():
            raise FileNotFoundError(f"Staged file not found: {staged_path}")
        with staged_path.open("rb") as fp:
            rows = (row.as_tuple() for row in read_staged_rows(fp, handle.compressed))
            inserted = self._warehouse.commit_rows(target_table, schema, rows)
        logger.info("Committed %s rows from %s into %s", inserted, handle.location, target_table)

    def clean_up_stage(self, namespace: str, object_name: str) -> None:
        """Remove every staged file for the stream."""
        directory = _stage_dir(self._root, namespace, object_name)
        if directory.exists():
            shutil.rmtree(directory)


__all__ = ["LocalStagingTransport"]
