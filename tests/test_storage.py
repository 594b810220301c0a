"""
Tests for the in-memory storage backends.
"""

import pytest

from booknet.storage import CacheStorage, MetadataStorage
from booknet.storage.local import InMemoryCacheStorage, InMemoryMetadataStorage


# =============================================================================
# Interfaces
# =============================================================================


class TestInterfaces:
    def test_metadata_storage_is_append_and_read(self):
        # Records are replaced whole with save(); nothing is ever removed
        assert MetadataStorage.__abstractmethods__ == {"save", "get", "query"}
        assert not hasattr(InMemoryMetadataStorage, "delete")
        assert not hasattr(InMemoryMetadataStorage, "update")

    def test_cache_storage_entries_only_expire(self):
        assert CacheStorage.__abstractmethods__ == {"set", "get", "exists"}
        assert not hasattr(InMemoryCacheStorage, "delete")


# =============================================================================
# Metadata
# =============================================================================


class TestMetadata:
    @pytest.mark.asyncio
    async def test_query_filters_and_unbounded_limit(self):
        metadata = InMemoryMetadataStorage()
        for i in range(150):
            await metadata.save("books", f"b{i}", {"owner_id": "u1" if i % 2 else "u2"})
        
        assert len(await metadata.query("books")) == 100
        assert len(await metadata.query("books", limit=None)) == 150
        assert len(await metadata.query("books", {"owner_id": "u1"}, limit=None)) == 75

    @pytest.mark.asyncio
    async def test_returned_documents_are_copies(self):
        metadata = InMemoryMetadataStorage()
        await metadata.save("books", "b1", {"title": "Dune"})
        
        doc = await metadata.get("books", "b1")
        doc["title"] = "Changed"
        
        assert (await metadata.get("books", "b1"))["title"] == "Dune"


# =============================================================================
# Cache
# =============================================================================


class TestCache:
    @pytest.mark.asyncio
    async def test_entry_without_ttl_never_expires(self, clock):
        cache = InMemoryCacheStorage(clock=clock)
        await cache.set("k", "v")
        
        clock.advance(days=365)
        
        assert await cache.get("k") == "v"

    @pytest.mark.asyncio
    async def test_entry_expires_at_ttl(self, clock):
        cache = InMemoryCacheStorage(clock=clock)
        await cache.set("k", "v", ttl=10)
        
        clock.advance(seconds=9)
        assert await cache.exists("k")
        
        clock.advance(seconds=1)
        assert not await cache.exists("k")

    @pytest.mark.asyncio
    async def test_write_sweeps_expired_keys(self, clock):
        cache = InMemoryCacheStorage(clock=clock)
        await cache.set("short", 1, ttl=1)
        await cache.set("long", 2, ttl=60)
        await cache.set("forever", 3)
        
        clock.advance(seconds=5)
        await cache.set("fresh", 4, ttl=1)
        
        assert set(cache._cache) == {"long", "forever", "fresh"}
