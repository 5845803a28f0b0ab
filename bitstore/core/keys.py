"""Mapping from bitstream identifiers to storage keys."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class KeyBuilder:
    """
    Resolves the storage key for a bitstream.
    
    Every backend operation goes through the same builder so get, put,
    about and remove always address the same object for an internal id.
    """
    subfolder: Optional[str] = None
    
    def full_key(self, internal_id: str) -> str:
        """Prefix the id with the subfolder, if one is configured."""
        if self.subfolder and self.subfolder.strip():
            return f"{self.subfolder}/{internal_id}"
        return internal_id
