"""
Filesystem-backed bitstream storage.

Each bitstream lives at <asset_dir>/<key>; a subfolder in the key becomes
a directory. Uploads are staged next to their destination and renamed into
place, so readers never see a half-written file.
"""

import hashlib
import logging
import os
from pathlib import Path
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
from ..storage.backend import STAGING_PREFIX, requested_attributes
from ..storage.staging import staging_file

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


def _file_md5(path: Path) -> str:
    digest = hashlib.md5()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


class FileSystemBitStoreService:
    """
    Stores bitstreams in a local directory tree.
    
    There is no store-side digest here, so the checksum of record is an
    MD5 computed while the bytes are written (and recomputed by about()).
    """
    
    checksum_algorithm = CHECKSUM_ALGORITHM
    
    def __init__(
        self,
        asset_dir: str,
        subfolder: Optional[str] = None,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self._root = Path(asset_dir).resolve()
        self._keys = KeyBuilder(subfolder)
        self._log = log or logger
    
    def _path(self, bitstream: Bitstream) -> Path:
        key = self._keys.full_key(bitstream.internal_id)
        path = (self._root / key).resolve()
        if self._root not in path.parents:
            raise BitStoreError(f"Key escapes asset directory: {key}")
        return path
    
    def init(self) -> None:
        try:
            self._root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            self._log.error(
                "Failed to create asset directory",
                extra={"asset_dir": str(self._root), "error": str(e)}
            )
            raise BitStoreError(f"Asset directory provisioning failed: {e}") from e
        
        self._log.info("Using asset directory", extra={"asset_dir": str(self._root)})
    
    def generate_id(self) -> str:
        return generate_id()
    
    def get(self, bitstream: Bitstream) -> Optional[BinaryIO]:
        path = self._path(bitstream)
        
        try:
            stream = open(path, "rb")
        except FileNotFoundError:
            self._log.debug("Bitstream not found", extra={"path": str(path)})
            return None
        except OSError as e:
            self._log.error(
                "Failed to get bitstream",
                extra={"path": str(path), "error": str(e)}
            )
            raise BitStoreError(f"Get failed for {path}: {e}") from e
        
        self._log.debug("Opened bitstream", extra={"path": str(path)})
        return stream
    
    def put(self, bitstream: Bitstream, stream: BinaryIO) -> None:
        path = self._path(bitstream)
        digest = hashlib.md5()
        size = 0
        
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with staging_file(prefix=f".{STAGING_PREFIX}", directory=str(path.parent)) as scratch:
                for chunk in iter(lambda: stream.read(_CHUNK_SIZE), b""):
                    scratch.write(chunk)
                    digest.update(chunk)
                    size += len(chunk)
                scratch.flush()
                os.fsync(scratch.fileno())
                scratch.close()
                os.replace(scratch.name, path)
        except Exception as e:
            self._log.error(
                "Failed to put bitstream",
                extra={"path": str(path), "error": str(e)}
            )
            raise BitStoreError(f"Put failed for {path}: {e}") from e
        
        bitstream.size_bytes = size
        bitstream.checksum = digest.hexdigest()
        bitstream.checksum_algorithm = self.checksum_algorithm
        
        self._log.debug(
            "Stored bitstream",
            extra={"path": str(path), "size_bytes": size}
        )
    
    def about(
        self,
        bitstream: Bitstream,
        attrs: RequestedAttributes,
    ) -> Optional[dict[str, Any]]:
        path = self._path(bitstream)
        
        try:
            stat = path.stat()
            result = requested_attributes(attrs)
            
            if ATTR_SIZE_BYTES in result:
                result[ATTR_SIZE_BYTES] = stat.st_size
            if ATTR_CHECKSUM in result:
                result[ATTR_CHECKSUM] = _file_md5(path)
                result[ATTR_CHECKSUM_ALGORITHM] = self.checksum_algorithm
            if ATTR_CHECKSUM_ALGORITHM in result:
                result[ATTR_CHECKSUM_ALGORITHM] = self.checksum_algorithm
            if ATTR_MODIFIED in result:
                result[ATTR_MODIFIED] = str(int(stat.st_mtime * 1000))
        except FileNotFoundError:
            self._log.debug("Bitstream not found", extra={"path": str(path)})
            return None
        except OSError as e:
            self._log.error(
                "Failed to describe bitstream",
                extra={"path": str(path), "error": str(e)}
            )
            raise BitStoreError(f"About failed for {path}: {e}") from e
        
        self._log.debug(
            "Described bitstream",
            extra={"path": str(path), "attributes": sorted(result)}
        )
        
        return result
    
    def remove(self, bitstream: Bitstream) -> None:
        path = self._path(bitstream)
        
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            self._log.error(
                "Failed to remove bitstream",
                extra={"path": str(path), "error": str(e)}
            )
            raise BitStoreError(f"Remove failed for {path}: {e}") from e
        
        self._log.debug("Removed bitstream", extra={"path": str(path)})
