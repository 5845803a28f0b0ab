"""
Local filesystem bitstream storage.

Keeps bitstreams as plain files under an asset directory. Useful for
single-node deployments and development without object storage.
"""

from .backend import FileSystemBitStoreService

__all__ = ["FileSystemBitStoreService"]
