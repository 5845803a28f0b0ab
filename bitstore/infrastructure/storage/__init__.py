"""
Object storage integration for bitstreams.

Supports S3 (AWS) and R2 (Cloudflare) via the S3-compatible API.
Includes a transient in-memory store for local development without credentials.
"""

from .backend import ObjectStoreBitStoreService, default_container_name
from .client import (
    BlobMetadata,
    ContainerNotFoundError,
    ObjectStoreClient,
    ObjectStoreConfig,
    ObjectStoreError,
    S3ObjectStoreClient,
    TransientObjectStoreClient,
    create_object_store_client,
)
from .staging import staging_file

__all__ = [
    "BlobMetadata",
    "ContainerNotFoundError",
    "ObjectStoreBitStoreService",
    "ObjectStoreClient",
    "ObjectStoreConfig",
    "ObjectStoreError",
    "S3ObjectStoreClient",
    "TransientObjectStoreClient",
    "create_object_store_client",
    "default_container_name",
    "staging_file",
]
