"""
Core bitstream storage concepts.

This module is framework-agnostic - it doesn't import boto3 or any
infrastructure concerns. Backends in `bitstore.infrastructure` implement
the contract defined here.
"""

from .keys import KeyBuilder
from .models import (
    ATTR_CHECKSUM,
    ATTR_CHECKSUM_ALGORITHM,
    ATTR_MODIFIED,
    ATTR_SIZE_BYTES,
    CHECKSUM_ALGORITHM,
    KNOWN_ATTRIBUTES,
    Bitstream,
    generate_id,
)
from .service import BitStoreError, BitStoreService

__all__ = [
    "ATTR_CHECKSUM",
    "ATTR_CHECKSUM_ALGORITHM",
    "ATTR_MODIFIED",
    "ATTR_SIZE_BYTES",
    "CHECKSUM_ALGORITHM",
    "KNOWN_ATTRIBUTES",
    "Bitstream",
    "BitStoreError",
    "BitStoreService",
    "KeyBuilder",
    "generate_id",
]
