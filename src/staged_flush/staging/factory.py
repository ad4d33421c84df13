"""Factory for selecting the staging backend."""
from __future__ import annotations

import os

from pathlib import Path

from ..run_context import RunContext
from ..warehouse import SQLiteWarehouse
from .base import StagingTransport
from .local import LocalStagingTransport
from .object_store import ObjectStorageStagingTransport, S3Config


def create_staging_transport(
    warehouse: SQLiteWarehouse, run_context: RunContext | None = None
) -> StagingTransport:
    backend = os.getenv("STAGING_BACKEND", "filesystem").lower()
    if backend == "filesystem":
        root = os.getenv("STAGING_ROOT", "data/staging")
        return LocalStagingTransport(warehouse, root=Path(root), run_context=run_context)
    if backend == "object":
        bucket = os.getenv("STAGING_BUCKET")
        prefix = os.getenv("STAGING_PREFIX", "staging")
        if not bucket:
            raise RuntimeError("STAGING_BUCKET is required for object storage")
        return ObjectStorageStagingTransport(
            S3Config(
                bucket=bucket,
                prefix=prefix,
                endpoint_url=os.getenv("STAGING_ENDPOINT_URL"),
                region=os.getenv("STAGING_REGION"),
                access_key=os.getenv("STAGING_ACCESS_KEY_ID"),
                secret_key=os.getenv("STAGING_SECRET_ACCESS_KEY"),
            ),
            warehouse,
            run_context=run_context,
        )
    raise RuntimeError(f"Unsupported STAGING_BACKEND: {backend}")
