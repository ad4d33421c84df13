"""Staging transports: upload sealed batches, commit them into tables."""
from .base import StagingHandle, StagingTransport
from .factory import create_staging_transport
from .local import LocalStagingTransport
from .object_store import ObjectStorageStagingTransport, S3Config

__all__ = [
    "LocalStagingTransport",
    "ObjectStorageStagingTransport",
    "S3Config",
    "StagingHandle",
    "StagingTransport",
    "create_staging_transport",
]
