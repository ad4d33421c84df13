"""S3-compatible StagingTransport implementation."""
from __future__ import annotations

import logging
import tempfile
import uuid
from dataclasses import dataclass
from typing import Sequence

import boto3
from botocore.client import BaseClient

from ..buffer import SealedBatch, read_staged_rows
from ..registry import FieldSpec, TableId
from ..run_context import RunContext
from ..warehouse import SQLiteWarehouse
from .base import StagingHandle, StagingTransport

logger = logging.getLogger(__name__)


@dataclass
class S3Config:
    bucket: str
    prefix: str
    endpoint_url: str | None = None
    region: str | None = None
    access_key: str | None = None
    secret_key: str | None = None


def _stage_prefix(prefix: str, namespace: str, object_name: str) -> str:
    return "/".join([prefix.rstrip("/"), namespace, object_name]).strip("/")


def _object_key(prefix: str, run_segment: str, filename: str) -> str:
    return f"{prefix}/{run_segment}/{filename}"


class ObjectStorageStagingTransport(StagingTransport):
    def __init__(
        self,
        config: S3Config,
        warehouse: SQLiteWarehouse,
        run_context: RunContext | None = None,
        client: BaseClient | None = None,
    ) -> None:
        if client is None:
            session = boto3.session.Session()
            client = session.client(
                "s3",
                endpoint_url=config.endpoint_url,
                region_name=config.region,
                aws_access_key_id=config.access_key,
                aws_secret_access_key=config.secret_key,
            )
        self.client: BaseClient = client
        self.bucket = config.bucket
        self.prefix = config.prefix.strip("/")
        self._warehouse = warehouse
        self._run_context = run_context or RunContext.create()

    def upload(self, namespace: str, object_name: str, batch: SealedBatch) -> StagingHandle:
        prefix = _stage_prefix(self.prefix, namespace, object_name)
        key = _object_key(prefix, self._run_context.staging_segment, f"{uuid.uuid4()}{batch.suffix}")
        self.client.upload_file(str(batch.path), self.bucket, key)
        logger.debug("Uploaded %s bytes to s3://%s/%s", batch.byte_count, self.bucket, key)
        return StagingHandle(
            location=f"s3://{self.bucket}/{key}",
            key=key,
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
        with tempfile.TemporaryFile() as spool:
            self.client.download_fileobj(self.bucket, handle.key, spool)
            spool.seek(0)
            rows = (row.as_tuple() for row in read_staged_rows(spool, handle.compressed))
            inserted = self._warehouse.commit_rows(target_table, schema, rows)
        logger.info("Committed %s rows from %s into %s", inserted, handle.location, target_table)

    def clean_up_stage(self, namespace: str, object_name: str) -> None:
        """Delete every staged object for the stream."""
        prefix = _stage_prefix(self.prefix, namespace, object_name)
        paginator = self.client.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=self.bucket, Prefix=f"{prefix}/"):
            keys = [{"Key": item["Key"]} for item in page.get("Contents", []) or []]
            if keys:
                self.client.delete_objects(Bucket=self.bucket, Delete={"Objects": keys})


__all__ = ["ObjectStorageStagingTransport", "S3Config"]
