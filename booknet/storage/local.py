"""
Local storage implementations for development and tests.

In-memory implementations that work without any external services.
"""

from __future__ import annotations

import copy
from datetime import datetime, timezone
from typing import Any

from booknet.core.utils import Clock, utc_now
from booknet.storage.base import (
    CacheStorage,
    MetadataStorage,
    StorageProvider,
)


# =============================================================================
# In-Memory Metadata Storage
# =============================================================================


class InMemoryMetadataStorage(MetadataStorage):
    """In-memory document storage for development."""
    
    def __init__(self):
        self._data: dict[str, dict[str, dict[str, Any]]] = {}
    
    async def save(self, collection: str, id: str, data: dict[str, Any]) -> None:
        if collection not in self._data:
            self._data[collection] = {}
        self._data[collection][id] = {
            **copy.deepcopy(data),
            "_id": id,
            "_updated_at": datetime.now(timezone.utc).isoformat(),
        }
    
    async def get(self, collection: str, id: str) -> dict[str, Any] | None:
        doc = self._data.get(collection, {}).get(id)
        return copy.deepcopy(doc) if doc is not None else None
    
    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        limit: int | None = 100,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        if collection not in self._data:
            return []
        
        results = list(self._data[collection].values())
        
        # Apply filters
        if filters:
            results = [
                doc for doc in results
                if all(doc.get(key) == value for key, value in filters.items())
            ]
        
        # Apply pagination
        end = None if limit is None else offset + limit
        return copy.deepcopy(results[offset:end])


# =============================================================================
# In-Memory Cache Storage
# =============================================================================


class InMemoryCacheStorage(CacheStorage):
    """
    In-memory cache for development.
    
    Expired keys are dropped lazily on read, and every write sweeps out
    whatever has expired since, so keys that are never read again do not
    pile up.
    """
    
    def __init__(self, clock: Clock = utc_now):
        self._cache: dict[str, tuple[Any, float | None]] = {}
        self._clock = clock
    
    def _now(self) -> float:
        return self._clock().timestamp()
    
    def _purge_expired(self) -> None:
        now = self._now()
        expired = [
            key for key, (_, expires_at) in self._cache.items()
            if expires_at is not None and now >= expires_at
        ]
        for key in expired:
            del self._cache[key]
    
    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        self._purge_expired()
        expires_at = None
        if ttl:
            expires_at = self._now() + ttl
        self._cache[key] = (value, expires_at)
    
    async def get(self, key: str) -> Any | None:
        if key not in self._cache:
            return None
        
        value, expires_at = self._cache[key]
        if expires_at is not None and self._now() >= expires_at:
            del self._cache[key]
            return None
        
        return value
    
    async def exists(self, key: str) -> bool:
        return await self.get(key) is not None


# =============================================================================
# Factory
# =============================================================================


def create_local_storage(clock: Clock = utc_now) -> StorageProvider:
    """Create a StorageProvider with in-memory implementations."""
    return StorageProvider(
        metadata=InMemoryMetadataStorage(),
        cache=InMemoryCacheStorage(clock=clock),
    )
