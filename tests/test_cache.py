"""
Cache abstraction tests: the in-memory stand-in, the Redis variant
against a stub client, and the bootstrap fallback.
"""
from datetime import datetime

import pytest
import redis.asyncio as redis

from article_api.cache import (
    InMemoryCacheService,
    RedisCacheService,
    create_cache_service,
)
from article_api.config import Settings
from article_api.errors import CacheDecodeError, CacheError, CacheMiss
from article_api.schemas import Article, Author

UNREACHABLE_REDIS = "redis://127.0.0.1:1/0"


def _article() -> Article:
    return Article(
        id="x1",
        author_id="a1",
        title="Hello",
        body="World",
        created_at=datetime(2025, 1, 1, 12, 30),
        author=Author(id="a1", name="Ada"),
    )


class _StubRedis:
    """Just enough of ``redis.asyncio.Redis`` for RedisCacheService."""

    def __init__(self, fail: bool = False):
        self.data = {}
        self.ttls = {}
        self.closed = 0
        self.fail = fail

    def _check(self):
        if self.fail:
            raise redis.ConnectionError("connection refused")

    async def get(self, key):
        self._check()
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self._check()
        self.data[key] = value
        self.ttls[key] = ex

    async def delete(self, *keys):
        self._check()
        for key in keys:
            self.data.pop(key, None)

    async def aclose(self):
        self.closed += 1


# ---------------------------------------------------------------------------
# In-memory stand-in
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_memory_round_trip_model():
    cache = InMemoryCacheService()
    await cache.set("article:x1", _article())
    assert await cache.get("article:x1", Article) == _article()


@pytest.mark.asyncio
async def test_memory_round_trip_plain_values():
    cache = InMemoryCacheService()
    await cache.set_with_ttl("ids", ["a", "b"], 5)
    assert await cache.get("ids", list[str]) == ["a", "b"]


@pytest.mark.asyncio
async def test_memory_set_overwrites():
    cache = InMemoryCacheService()
    await cache.set("k", {"v": 1})
    await cache.set("k", {"v": 2})
    assert await cache.get("k", dict) == {"v": 2}


@pytest.mark.asyncio
async def test_memory_missing_key_raises_miss():
    cache = InMemoryCacheService()
    with pytest.raises(CacheMiss):
        await cache.get("absent", Article)


@pytest.mark.asyncio
async def test_memory_decode_error_for_wrong_shape():
    cache = InMemoryCacheService()
    await cache.set("k", {"unexpected": "shape"})
    with pytest.raises(CacheDecodeError):
        await cache.get("k", Article)


@pytest.mark.asyncio
async def test_memory_delete_is_idempotent():
    cache = InMemoryCacheService()
    await cache.set("k", 1)
    await cache.delete("k")
    await cache.delete("k")
    with pytest.raises(CacheMiss):
        await cache.get("k", int)


@pytest.mark.asyncio
async def test_memory_close_is_idempotent():
    cache = InMemoryCacheService()
    await cache.set("k", 1)
    await cache.close()
    await cache.close()
    assert "k" not in cache


@pytest.mark.asyncio
async def test_unserialisable_value_raises_cache_error():
    cache = InMemoryCacheService()
    circular = {}
    circular["self"] = circular
    with pytest.raises(CacheError):
        await cache.set("k", circular)


@pytest.mark.asyncio
async def test_stats_count_hits_and_misses():
    cache = InMemoryCacheService()
    await cache.set("k", 1)
    await cache.get("k", int)
    with pytest.raises(CacheMiss):
        await cache.get("nope", int)
    stats = cache.stats
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["hit_rate"] == 50.0
    assert stats["backend"] == "InMemoryCacheService"


@pytest.mark.asyncio
async def test_stats_count_writes_and_invalidations():
    cache = InMemoryCacheService()
    await cache.set("a", 1)
    await cache.set_with_ttl("b", 2, 30)
    await cache.delete("a")
    await cache.delete("absent")
    stats = cache.stats
    assert stats["writes"] == 2
    assert stats["invalidations"] == 2
    assert stats["hits"] == 0
    assert stats["misses"] == 0


@pytest.mark.asyncio
async def test_failed_operations_are_not_counted():
    cache = RedisCacheService(_StubRedis(fail=True))
    with pytest.raises(CacheError):
        await cache.set("k", 1)
    with pytest.raises(CacheError):
        await cache.delete("k")
    assert cache.stats["writes"] == 0
    assert cache.stats["invalidations"] == 0


# ---------------------------------------------------------------------------
# Redis variant
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_redis_set_uses_default_ttl():
    client = _StubRedis()
    cache = RedisCacheService(client)
    await cache.set("article:x1", _article())
    assert client.ttls["article:x1"] == 600
    assert await cache.get("article:x1", Article) == _article()


@pytest.mark.asyncio
async def test_redis_set_with_ttl():
    client = _StubRedis()
    cache = RedisCacheService(client)
    await cache.set_with_ttl("k", {"v": 1}, 42)
    assert client.ttls["k"] == 42


@pytest.mark.asyncio
async def test_redis_missing_key_raises_miss():
    cache = RedisCacheService(_StubRedis())
    with pytest.raises(CacheMiss):
        await cache.get("absent", dict)


@pytest.mark.asyncio
async def test_redis_failures_become_cache_errors():
    cache = RedisCacheService(_StubRedis(fail=True))
    with pytest.raises(CacheError):
        await cache.set("k", 1)
    with pytest.raises(CacheError):
        await cache.get("k", int)
    with pytest.raises(CacheError):
        await cache.delete("k")


@pytest.mark.asyncio
async def test_redis_close_is_idempotent():
    client = _StubRedis()
    cache = RedisCacheService(client)
    await cache.close()
    await cache.close()
    assert client.closed == 1
    with pytest.raises(CacheError):
        await cache.get("k", int)


@pytest.mark.asyncio
async def test_redis_connect_fails_fast_when_unreachable():
    with pytest.raises(CacheError, match="failed to connect to Redis"):
        await RedisCacheService.connect(UNREACHABLE_REDIS, timeout=1)


@pytest.mark.asyncio
async def test_create_cache_service_falls_back_to_memory():
    cache = await create_cache_service(
        Settings(REDIS_URL=UNREACHABLE_REDIS, REDIS_INIT_TIMEOUT=1)
    )
    assert isinstance(cache, InMemoryCacheService)
    await cache.close()
