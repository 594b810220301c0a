"""
Storage abstractions.

- MetadataStorage → relational database (identities, tokens, books)
- CacheStorage → Redis (token denylist)
"""

from booknet.storage.base import (
    CacheStorage,
    Collections,
    MetadataStorage,
    StorageProvider,
)
from booknet.storage.local import create_local_storage

__all__ = [
    "CacheStorage",
    "Collections",
    "MetadataStorage",
    "StorageProvider",
    "create_local_storage",
]
