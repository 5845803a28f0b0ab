"""
Object storage clients for bitstream backends.

Supports S3-compatible stores (AWS S3, Cloudflare R2, MinIO) through boto3,
plus a transient in-memory store for local development and tests.

The backend identifier in settings picks the implementation:
- "s3", "aws-s3", "r2": S3ObjectStoreClient
- "transient": TransientObjectStoreClient

Bitstream backends only see the ObjectStoreClient protocol, so nothing
above this module knows about buckets, boto3 or HTTP status codes.
"""

import hashlib
import io
import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import BinaryIO, Optional, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

S3_BACKENDS = frozenset({"s3", "aws-s3", "r2"})
R2_BACKEND = "r2"
R2_REGION = "auto"
TRANSIENT_BACKEND = "transient"

# S3 reports a missing object or bucket through several codes depending on
# the operation (HEAD requests have no body, so only the status survives)
_KEY_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})
_BUCKET_NOT_FOUND_CODES = frozenset({"NoSuchBucket"})


class ObjectStoreError(Exception):
    """Raised when an object store operation fails."""
    pass


class ContainerNotFoundError(ObjectStoreError):
    """Raised when the addressed container does not exist."""
    pass


@dataclass
class ObjectStoreConfig:
    """Connection settings for an S3-compatible store."""
    access_key: str
    secret_key: str
    endpoint_url: Optional[str] = None
    region: Optional[str] = None  # R2 uses 'auto', AWS resolves its own default


@dataclass(frozen=True)
class BlobMetadata:
    """What the store knows about an object without reading its content."""
    size: int
    etag: str
    last_modified: datetime


class ObjectStoreClient(Protocol):
    """
    Protocol for the object store operations bitstream backends rely on.

    Missing objects are reported as None, never as an exception. A
    missing container raises ContainerNotFoundError.
    """

    def container_exists(self, container: str) -> bool:
        """Check whether the container exists."""
        ...

    def create_container(self, container: str) -> None:
        """Create the container. No-op if it already exists."""
        ...

    def get_blob(self, container: str, key: str) -> Optional[BinaryIO]:
        """Open an object's content, or return None if it is absent."""
        ...

    def put_blob(
        self,
        container: str,
        key: str,
        payload: BinaryIO,
        content_length: int,
    ) -> str:
        """Upload content_length bytes from payload. Returns the store's etag."""
        ...

    def blob_metadata(self, container: str, key: str) -> Optional[BlobMetadata]:
        """Return object metadata, or None if the object is absent."""
        ...

    def remove_blob(self, container: str, key: str) -> None:
        """Delete an object. Deleting an absent object succeeds."""
        ...


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


def _region_name(config: ObjectStoreConfig) -> Optional[str]:
    """
    Region to hand to boto3.

    'auto' only means something to R2, which always has an explicit
    endpoint. Without one boto3 would build s3.auto.amazonaws.com.
    """
    if config.region == R2_REGION and not config.endpoint_url:
        return None
    return config.region or None


class S3ObjectStoreClient:
    """
    S3-compatible object store client.

    Uses boto3 because R2, MinIO and AWS all speak the S3 API. The boto3
    client is thread-safe, so one instance is shared by every backend call.
    """

    def __init__(self, config: ObjectStoreConfig, s3_client=None) -> None:
        """
        Build the boto3 client from config.

        An already-built s3_client can be passed instead, which is how
        tests substitute a fake.
        """
        self._config = config

        if s3_client is None:
            # R2 requires v4 signatures and path-style addressing
            boto_config = Config(
                signature_version='s3v4',
                s3={'addressing_style': 'path'},
            )

            s3_client = boto3.client(
                's3',
                endpoint_url=config.endpoint_url,
                aws_access_key_id=config.access_key or None,
                aws_secret_access_key=config.secret_key or None,
                region_name=_region_name(config),
                config=boto_config,
            )

        self._s3_client = s3_client

        logger.info(
            "Initialized S3 object store client",
            extra={"endpoint": config.endpoint_url, "region": config.region}
        )

    def container_exists(self, container: str) -> bool:
        try:
            self._s3_client.head_bucket(Bucket=container)
            return True
        except ClientError as e:
            if _error_code(e) in _KEY_NOT_FOUND_CODES | _BUCKET_NOT_FOUND_CODES:
                return False
            raise ObjectStoreError(f"Bucket check failed: {e}") from e
        except BotoCoreError as e:
            raise ObjectStoreError(f"Bucket check failed: {e}") from e

    def create_container(self, container: str) -> None:
        """
        Create the bucket.

        Outside us-east-1 S3 wants an explicit location constraint; R2's
        'auto' region must not send one.
        """
        params = {"Bucket": container}
        if self._config.region not in (None, "", "auto", "us-east-1"):
            params["CreateBucketConfiguration"] = {
                "LocationConstraint": self._config.region,
            }

        try:
            self._s3_client.create_bucket(**params)
        except ClientError as e:
            if _error_code(e) == "BucketAlreadyOwnedByYou":
                return
            raise ObjectStoreError(f"Bucket creation failed: {e}") from e
        except BotoCoreError as e:
            raise ObjectStoreError(f"Bucket creation failed: {e}") from e

    def get_blob(self, container: str, key: str) -> Optional[BinaryIO]:
        try:
            response = self._s3_client.get_object(Bucket=container, Key=key)
        except ClientError as e:
            code = _error_code(e)
            if code in _KEY_NOT_FOUND_CODES:
                return None
            if code in _BUCKET_NOT_FOUND_CODES:
                raise ContainerNotFoundError(f"Bucket not found: {container}") from e
            raise ObjectStoreError(f"Download failed: {e}") from e
        except BotoCoreError as e:
            raise ObjectStoreError(f"Download failed: {e}") from e

        return response['Body']

    def put_blob(
        self,
        container: str,
        key: str,
        payload: BinaryIO,
        content_length: int,
    ) -> str:
        try:
            response = self._s3_client.put_object(
                Bucket=container,
                Key=key,
                Body=payload,
                ContentLength=content_length,
                ContentType='application/octet-stream',
            )
        except ClientError as e:
            if _error_code(e) in _BUCKET_NOT_FOUND_CODES:
                raise ContainerNotFoundError(f"Bucket not found: {container}") from e
            raise ObjectStoreError(f"Upload failed: {e}") from e
        except BotoCoreError as e:
            raise ObjectStoreError(f"Upload failed: {e}") from e

        return response['ETag'].strip('"')

    def blob_metadata(self, container: str, key: str) -> Optional[BlobMetadata]:
        try:
            response = self._s3_client.head_object(Bucket=container, Key=key)
        except ClientError as e:
            code = _error_code(e)
            if code in _KEY_NOT_FOUND_CODES:
                return None
            if code in _BUCKET_NOT_FOUND_CODES:
                raise ContainerNotFoundError(f"Bucket not found: {container}") from e
            raise ObjectStoreError(f"Metadata lookup failed: {e}") from e
        except BotoCoreError as e:
            raise ObjectStoreError(f"Metadata lookup failed: {e}") from e

        return BlobMetadata(
            size=response['ContentLength'],
            etag=response['ETag'].strip('"'),
            last_modified=response['LastModified'],
        )

    def remove_blob(self, container: str, key: str) -> None:
        try:
            self._s3_client.delete_object(Bucket=container, Key=key)
        except ClientError as e:
            code = _error_code(e)
            if code in _KEY_NOT_FOUND_CODES:
                return
            if code in _BUCKET_NOT_FOUND_CODES:
                raise ContainerNotFoundError(f"Bucket not found: {container}") from e
            raise ObjectStoreError(f"Delete failed: {e}") from e
        except BotoCoreError as e:
            raise ObjectStoreError(f"Delete failed: {e}") from e


# ---------------------------------------------------------------------------
# Transient Store for Local Development
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class _StoredBlob:
    data: bytes
    etag: str
    last_modified: datetime


class TransientObjectStoreClient:
    """
    In-memory object store.

    Behaves like a real store as far as the backends can tell: containers
    must be created first, etags are the MD5 of the content, and uploads
    shorter or longer than the declared length are rejected.

    Contents vanish with the process. Not suitable for production.
    """

    def __init__(self) -> None:
        # {container: {key: _StoredBlob}}
        self._containers: dict[str, dict[str, _StoredBlob]] = {}
        self._lock = threading.Lock()
        logger.info("Initialized transient object store (in-memory)")

    def _container(self, container: str) -> dict[str, _StoredBlob]:
        try:
            return self._containers[container]
        except KeyError:
            raise ContainerNotFoundError(f"Container not found: {container}")

    def container_exists(self, container: str) -> bool:
        with self._lock:
            return container in self._containers

    def create_container(self, container: str) -> None:
        with self._lock:
            self._containers.setdefault(container, {})

    def get_blob(self, container: str, key: str) -> Optional[BinaryIO]:
        with self._lock:
            blob = self._container(container).get(key)

        if blob is None:
            return None
        return io.BytesIO(blob.data)

    def put_blob(
        self,
        container: str,
        key: str,
        payload: BinaryIO,
        content_length: int,
    ) -> str:
        data = payload.read()
        if len(data) != content_length:
            raise ObjectStoreError(
                f"Content length mismatch for {key}: "
                f"declared {content_length}, received {len(data)}"
            )

        blob = _StoredBlob(
            data=data,
            etag=hashlib.md5(data).hexdigest(),
            last_modified=datetime.now(timezone.utc),
        )

        with self._lock:
            self._container(container)[key] = blob

        return blob.etag

    def blob_metadata(self, container: str, key: str) -> Optional[BlobMetadata]:
        with self._lock:
            blob = self._container(container).get(key)

        if blob is None:
            return None
        return BlobMetadata(
            size=len(blob.data),
            etag=blob.etag,
            last_modified=blob.last_modified,
        )

    def remove_blob(self, container: str, key: str) -> None:
        with self._lock:
            self._container(container).pop(key, None)


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_object_store_client(
    backend: str,
    config: Optional[ObjectStoreConfig] = None,
) -> ObjectStoreClient:
    """
    Create an object store client for a backend identifier.

    Args:
        backend: Provider name ("s3", "aws-s3", "r2" or "transient")
        config: Connection settings (required for S3-compatible providers)

    Returns:
        ObjectStoreClient implementation (S3 or transient)
    """
    name = (backend or "").strip().lower()

    if name == TRANSIENT_BACKEND:
        return TransientObjectStoreClient()

    if name in S3_BACKENDS:
        if config is None:
            raise ValueError(f"config is required for backend '{backend}'")
        if name == R2_BACKEND and not config.region:
            config = replace(config, region=R2_REGION)
        return S3ObjectStoreClient(config)

    raise ValueError(f"Unknown object store backend: '{backend}'")
