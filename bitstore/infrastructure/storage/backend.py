"""
Object-store-backed bitstream storage.

Maps the BitStoreService contract onto any ObjectStoreClient. One instance
is bound to one container for its whole life and keeps no per-call state,
so it is safe to share between threads without locking. Per-object
atomicity is left to the store: concurrent puts to one key race and the
last write wins.
"""

import logging
import shutil
from typing import Any, BinaryIO, Optional

from ...core.keys import KeyBuilder
from ...core.models import (
    ATTR_CHECKSUM,
    ATTR_CHECKSUM_ALGORITHM,
    ATTR_MODIFIED,
    ATTR_SIZE_BYTES,
    CHECKSUM_ALGORITHM,
    Bitstream,
    generate_id,
)
from ...core.service import BitStoreError, RequestedAttributes
from .client import ContainerNotFoundError, ObjectStoreClient
from .staging import staging_file

logger = logging.getLogger(__name__)

DEFAULT_CONTAINER_PREFIX = "dspace-asset-"

# ids can be far longer than a file name may be, so they stay out of it
STAGING_PREFIX = "bitstore-"


def default_container_name(hostname: str) -> str:
    """Container used when none is configured: one per site."""
    return f"{DEFAULT_CONTAINER_PREFIX}{hostname}"


def requested_attributes(attrs: RequestedAttributes) -> dict[str, Any]:
    """Copy the caller's requested attribute names into a fresh result map."""
    if isinstance(attrs, str):
        return {attrs: None}
    if hasattr(attrs, "keys"):
        return dict(attrs)
    return dict.fromkeys(attrs)


class ObjectStoreBitStoreService:
    """
    Stores bitstreams as objects in a single container.
    
    The checksum of record is the etag the store returns, not a digest we
    compute ourselves, so later integrity checks compare against exactly
    what the store reports.
    """
    
    checksum_algorithm = CHECKSUM_ALGORITHM
    
    def __init__(
        self,
        client: ObjectStoreClient,
        container: Optional[str] = None,
        subfolder: Optional[str] = None,
        hostname: str = "localhost",
        access_key: str = "",
        secret_key: str = "",
        staging_dir: Optional[str] = None,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self._client = client
        self._container = container
        self._keys = KeyBuilder(subfolder)
        self._hostname = hostname
        self._access_key = access_key
        self._secret_key = secret_key
        self._staging_dir = staging_dir
        self._log = log or logger
    
    @property
    def container(self) -> Optional[str]:
        return self._container
    
    def full_key(self, internal_id: str) -> str:
        return self._keys.full_key(internal_id)
    
    def init(self) -> None:
        """
        Prepare the container.
        
        Blank credentials only produce a warning: anonymous or public
        stores are still usable. Failing to check or create the container
        is fatal.
        """
        if not (self._access_key or "").strip() or not (self._secret_key or "").strip():
            self._log.warning("Empty access or secret key")
        
        if not self._container:
            self._container = default_container_name(self._hostname)
            self._log.warning(
                "Bucket name is not configured, using default",
                extra={"bucket": self._container}
            )
        
        try:
            if not self._client.container_exists(self._container):
                self._client.create_container(self._container)
                self._log.info(
                    "Created new bucket",
                    extra={"bucket": self._container}
                )
        except Exception as e:
            self._log.error(
                "Failed to provision bucket",
                extra={"bucket": self._container, "error": str(e)}
            )
            raise BitStoreError(f"Bucket provisioning failed: {e}") from e
    
    def generate_id(self) -> str:
        return generate_id()
    
    def get(self, bitstream: Bitstream) -> Optional[BinaryIO]:
        key = self.full_key(bitstream.internal_id)
        
        try:
            stream = self._client.get_blob(self._container, key)
        except Exception as e:
            self._log.error(
                "Failed to get bitstream",
                extra={"key": key, "error": str(e)}
            )
            raise BitStoreError(f"Get failed for {key}: {e}") from e
        
        if stream is None:
            self._log.debug("Bitstream not found", extra={"key": key})
        else:
            self._log.debug("Opened bitstream", extra={"key": key})
        
        return stream
    
    def put(self, bitstream: Bitstream, stream: BinaryIO) -> None:
        """
        Upload a stream of unknown length.
        
        The stream is spooled to a staging file to learn its length, and
        the upload reads from that file. The staging file is removed on
        every exit path, and the bitstream is only updated once the store
        has accepted the content.
        """
        key = self.full_key(bitstream.internal_id)
        
        try:
            with staging_file(prefix=STAGING_PREFIX, directory=self._staging_dir) as scratch:
                shutil.copyfileobj(stream, scratch)
                content_length = scratch.tell()
                scratch.seek(0)
                
                etag = self._client.put_blob(self._container, key, scratch, content_length)
        except Exception as e:
            self._log.error(
                "Failed to put bitstream",
                extra={"key": key, "error": str(e)}
            )
            raise BitStoreError(f"Put failed for {key}: {e}") from e
        
        bitstream.size_bytes = content_length
        bitstream.checksum = etag
        bitstream.checksum_algorithm = self.checksum_algorithm
        
        self._log.debug(
            "Stored bitstream",
            extra={"key": key, "size_bytes": content_length, "checksum": etag}
        )
    
    def about(
        self,
        bitstream: Bitstream,
        attrs: RequestedAttributes,
    ) -> Optional[dict[str, Any]]:
        """
        Fetch fresh metadata for the requested attributes.
        
        Recognised names are size_bytes, checksum, checksum_algorithm and
        modified (epoch milliseconds, as a string). Asking for checksum
        also fills in checksum_algorithm. Other names are returned as given.
        """
        key = self.full_key(bitstream.internal_id)
        
        try:
            metadata = self._client.blob_metadata(self._container, key)
        except ContainerNotFoundError:
            return None
        except Exception as e:
            self._log.error(
                "Failed to describe bitstream",
                extra={"key": key, "error": str(e)}
            )
            raise BitStoreError(f"About failed for {key}: {e}") from e
        
        if metadata is None:
            self._log.debug("Bitstream not found", extra={"key": key})
            return None
        
        result = requested_attributes(attrs)
        
        if ATTR_SIZE_BYTES in result:
            result[ATTR_SIZE_BYTES] = metadata.size
        if ATTR_CHECKSUM in result:
            result[ATTR_CHECKSUM] = metadata.etag
            result[ATTR_CHECKSUM_ALGORITHM] = self.checksum_algorithm
        if ATTR_CHECKSUM_ALGORITHM in result:
            result[ATTR_CHECKSUM_ALGORITHM] = self.checksum_algorithm
        if ATTR_MODIFIED in result:
            result[ATTR_MODIFIED] = str(int(metadata.last_modified.timestamp() * 1000))
        
        self._log.debug(
            "Described bitstream",
            extra={"key": key, "attributes": sorted(result)}
        )
        
        return result
    
    def remove(self, bitstream: Bitstream) -> None:
        key = self.full_key(bitstream.internal_id)
        
        try:
            self._client.remove_blob(self._container, key)
        except Exception as e:
            self._log.error(
                "Failed to remove bitstream",
                extra={"key": key, "error": str(e)}
            )
            raise BitStoreError(f"Remove failed for {key}: {e}") from e
        
        self._log.debug("Removed bitstream", extra={"key": key})
