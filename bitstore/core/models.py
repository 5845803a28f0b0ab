"""
Domain model for stored bitstreams.

A bitstream is owned by the content layer; storage backends only read its
identifier and write back the technical metadata (size, checksum) that the
store reports after an upload.
"""

import uuid
from dataclasses import dataclass
from typing import Optional


# Attribute names understood by BitStoreService.about()
ATTR_SIZE_BYTES = "size_bytes"
ATTR_CHECKSUM = "checksum"
ATTR_CHECKSUM_ALGORITHM = "checksum_algorithm"
ATTR_MODIFIED = "modified"

KNOWN_ATTRIBUTES = frozenset({
    ATTR_SIZE_BYTES,
    ATTR_CHECKSUM,
    ATTR_CHECKSUM_ALGORITHM,
    ATTR_MODIFIED,
})

# Object stores report a hex MD5 of the content as the entity tag
CHECKSUM_ALGORITHM = "MD5"


@dataclass
class Bitstream:
    """
    A unit of binary content plus its technical metadata.
    
    Not frozen: `put` fills in size_bytes, checksum and checksum_algorithm
    from what the store actually recorded. Until then they are None.
    """
    internal_id: str
    size_bytes: Optional[int] = None
    checksum: Optional[str] = None
    checksum_algorithm: Optional[str] = None
    
    def __post_init__(self) -> None:
        if not self.internal_id or not self.internal_id.strip():
            raise ValueError("Bitstream internal_id cannot be empty")


def generate_id() -> str:
    """
    Return a fresh identifier for a new bitstream.
    
    128 random bits rendered as a decimal string: unique across processes
    and safe to use as an object key or a file name.
    """
    return str(uuid.uuid4().int)
