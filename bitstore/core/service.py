"""
Storage backend contract for bitstreams.

The content layer talks to storage only through BitStoreService. Which
implementation it gets (object store, local filesystem) is decided once at
composition time in `bitstore.dependencies`.
"""

from typing import Any, BinaryIO, Iterable, Mapping, Optional, Protocol, Union

from .models import Bitstream


class BitStoreError(IOError):
    """
    Raised when a storage operation fails.
    
    This is the only failure type callers see. The backend-specific
    exception is always chained as __cause__.
    """
    pass


RequestedAttributes = Union[Mapping[str, Any], Iterable[str]]


class BitStoreService(Protocol):
    """
    Protocol for bitstream storage backends.
    
    Implementations hold no mutable state beyond their configuration, so a
    single instance can be shared by any number of threads. Every call
    blocks until the store has answered.
    """
    
    def init(self) -> None:
        """Connect to the store and make sure the container exists."""
        ...
    
    def generate_id(self) -> str:
        """Return a fresh internal id for a new bitstream."""
        ...
    
    def get(self, bitstream: Bitstream) -> Optional[BinaryIO]:
        """
        Open the stored bytes for reading.
        
        Returns None if nothing was ever stored under this bitstream.
        The caller owns the returned stream and must close it.
        """
        ...
    
    def put(self, bitstream: Bitstream, stream: BinaryIO) -> None:
        """
        Store the stream's bytes, then record size and checksum on the bitstream.
        
        The bitstream is left untouched if the upload fails.
        """
        ...
    
    def about(
        self,
        bitstream: Bitstream,
        attrs: RequestedAttributes,
    ) -> Optional[dict[str, Any]]:
        """
        Describe a stored bitstream.
        
        Only the requested attribute names are filled in. Returns None if
        the object does not exist.
        """
        ...
    
    def remove(self, bitstream: Bitstream) -> None:
        """Delete the stored bytes. Deleting a missing object succeeds."""
        ...
