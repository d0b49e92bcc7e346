"""
Cache store tests: prefix semantics of invalidation and clearing, the
hit/miss counters, and graceful degradation of the Redis store when no
connection is available.
"""
import pytest

from flashtrend.cache import (
    CacheEntry,
    MemoryCacheStore,
    RedisCacheStore,
    create_cache_store,
    key_matches,
)


def test_key_matches_whole_segments_only():
    assert key_matches("shared:articles", "shared:articles")
    assert key_matches("shared:articles:page:0", "shared:articles")
    assert not key_matches("shared:articlesX:page:0", "shared:articles")
    assert not key_matches("principal:bob:profile", "principal:bo")


@pytest.mark.asyncio
async def test_mark_stale_keeps_values():
    store = MemoryCacheStore()
    await store.set("shared:articles:page:0", [1, 2])
    await store.set("shared:articles:category:viral", [3])
    await store.set("principal:a:profile", {"name": "A"})

    assert await store.mark_stale("shared:articles") == 2

    entry = await store.get("shared:articles:page:0")
    assert entry.stale is True
    assert entry.value == [1, 2]
    assert (await store.get("principal:a:profile")).stale is False


@pytest.mark.asyncio
async def test_set_replaces_stale_entry_with_fresh_one():
    store = MemoryCacheStore()
    await store.set("k", 1)
    await store.mark_stale("k")
    await store.set("k", 2)
    entry = await store.get("k")
    assert entry.value == 2
    assert entry.stale is False


@pytest.mark.asyncio
async def test_clear_by_prefix_and_everything():
    store = MemoryCacheStore()
    await store.set("principal:a:profile", None)
    await store.set("principal:a:isAdmin", True)
    await store.set("principal:b:isAdmin", False)

    assert await store.clear("principal:a") == 2
    assert len(store) == 1
    assert await store.clear() == 1
    assert len(store) == 0


def test_stats_hit_rate():
    store = MemoryCacheStore()
    assert store.stats["hit_rate"] == 0.0
    store.record(hit=True)
    store.record(hit=True)
    store.record(hit=False)
    stats = store.stats
    assert stats["backend"] == "memory"
    assert stats["hits"] == 2
    assert stats["misses"] == 1
    assert stats["hit_rate"] == 66.7


def test_entry_json_keeps_stale_flag():
    entry = CacheEntry(value={"name": "Ada"}, stale=True, fetched_at=12.5)
    restored = CacheEntry.from_json(entry.to_json())
    assert restored == entry


@pytest.mark.asyncio
async def test_redis_store_without_connection_degrades():
    store = RedisCacheStore("redis://localhost:1/0")
    await store.set("shared:articles:page:0", [])
    assert await store.get("shared:articles:page:0") is None
    assert await store.mark_stale("shared:articles") == 0
    assert await store.clear() == 0
    assert store.stats["backend"] == "redis"


def test_create_cache_store_selects_backend():
    assert isinstance(create_cache_store("memory"), MemoryCacheStore)
    assert isinstance(create_cache_store("redis"), RedisCacheStore)
    with pytest.raises(ValueError):
        create_cache_store("memcached")
