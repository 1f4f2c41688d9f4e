import json
import logging
from abc import ABC, abstractmethod
from typing import Any, TypeVar

import redis.asyncio as redis
from pydantic import BaseModel, TypeAdapter, ValidationError

from article_api.config import Settings
from article_api.errors import CacheDecodeError, CacheError, CacheMiss

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 600

T = TypeVar("T")


class CacheService(ABC):
    """
    Key/value cache capability used by the repository layer.

    Values are serialised to JSON on the way in and validated into the
    caller-supplied shape on the way out; callers never see raw payloads.
    Every failure is raised as a ``CacheError`` subclass.  Subclasses only
    move strings in and out of their backing store.
    """

    def __init__(self, default_ttl: int = DEFAULT_TTL_SECONDS) -> None:
        self._default_ttl = default_ttl
        self._hits: int = 0
        self._misses: int = 0
        self._writes: int = 0
        self._invalidations: int = 0

    # ------------------------------------------------------------------
    # Public contract
    # ------------------------------------------------------------------

    async def set(self, key: str, value: Any) -> None:
        """Store *value* under *key* with the default expiry."""
        await self.set_with_ttl(key, value, self._default_ttl)

    async def set_with_ttl(self, key: str, value: Any, ttl_seconds: int) -> None:
        """Store *value* under *key*, overwriting, expiring after *ttl_seconds*."""
        await self._write(key, _encode(key, value), ttl_seconds)
        self._writes += 1

    async def get(self, key: str, shape: type[T]) -> T:
        """
        Return the value stored under *key* decoded into *shape*.

        Raises ``CacheMiss`` when the key is absent or expired and
        ``CacheDecodeError`` when the payload does not fit *shape*.
        """
        payload = await self._read(key)
        if payload is None:
            self._misses += 1
            raise CacheMiss(key)
        self._hits += 1
        return _decode(key, payload, shape)

    async def delete(self, key: str) -> None:
        """Remove *key*; a missing key is not an error."""
        await self._remove(key)
        self._invalidations += 1

    @abstractmethod
    async def close(self) -> None:
        """Release backing resources.  Safe to call more than once."""

    # ------------------------------------------------------------------
    # Storage primitives
    # ------------------------------------------------------------------

    @abstractmethod
    async def _read(self, key: str) -> str | None: ...

    @abstractmethod
    async def _write(self, key: str, payload: str, ttl_seconds: int) -> None: ...

    @abstractmethod
    async def _remove(self, key: str) -> None: ...

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    @property
    def stats(self) -> dict:
        """
        Return a snapshot of the counters for the metrics endpoint.

        ``writes`` and ``invalidations`` count successful stores and deletes;
        ``hits`` and ``misses`` only move when something reads through ``get``.
        """
        total = self._hits + self._misses
        return {
            "backend": type(self).__name__,
            "hits": self._hits,
            "misses": self._misses,
            "writes": self._writes,
            "invalidations": self._invalidations,
            "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
        }


def _encode(key: str, value: Any) -> str:
    try:
        if isinstance(value, BaseModel):
            return value.model_dump_json()
        return json.dumps(value, default=str)
    except (TypeError, ValueError) as exc:
        raise CacheError(f"failed to serialise value for key {key!r}: {exc}") from exc


def _decode(key: str, payload: str, shape: type[T]) -> T:
    try:
        return TypeAdapter(shape).validate_json(payload)
    except ValidationError as exc:
        raise CacheDecodeError(
            f"failed to decode value for key {key!r} as {getattr(shape, '__name__', shape)}: {exc}"
        ) from exc


# ---------------------------------------------------------------------------
# Redis
# ---------------------------------------------------------------------------

class RedisCacheService(CacheService):
    """Cache backed by Redis; entries expire server-side via ``SET ... EX``."""

    def __init__(self, client: redis.Redis, default_ttl: int = DEFAULT_TTL_SECONDS) -> None:
        super().__init__(default_ttl)
        self._redis: redis.Redis | None = client

    @classmethod
    async def connect(
        cls,
        url: str,
        timeout: int = 5,
        default_ttl: int = DEFAULT_TTL_SECONDS,
    ) -> "RedisCacheService":
        """
        Open a connection pool to *url* and ping it.

        Raises ``CacheError`` immediately if the server is unreachable so
        that bootstrap can decide what to do instead of failing on the
        first request.
        """
        client = redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=timeout,
            socket_timeout=timeout,
        )
        try:
            await client.ping()
        except (redis.RedisError, OSError) as exc:
            await client.aclose()
            raise CacheError(f"failed to connect to Redis at {url}: {exc}") from exc
        logger.info("Redis connected: %s", url)
        return cls(client, default_ttl)

    def _client(self) -> redis.Redis:
        if self._redis is None:
            raise CacheError("Redis cache is closed")
        return self._redis

    async def _read(self, key: str) -> str | None:
        try:
            return await self._client().get(key)
        except redis.RedisError as exc:
            raise CacheError(f"failed to get {key!r} from cache: {exc}") from exc

    async def _write(self, key: str, payload: str, ttl_seconds: int) -> None:
        try:
            await self._client().set(key, payload, ex=ttl_seconds)
        except redis.RedisError as exc:
            raise CacheError(f"failed to set {key!r} in cache: {exc}") from exc

    async def _remove(self, key: str) -> None:
        try:
            await self._client().delete(key)
        except redis.RedisError as exc:
            raise CacheError(f"failed to delete {key!r} from cache: {exc}") from exc

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


# ---------------------------------------------------------------------------
# In-process stand-in
# ---------------------------------------------------------------------------

class InMemoryCacheService(CacheService):
    """
    Dict-backed cache for tests and for running without Redis.

    TTL arguments are accepted and ignored: entries live until deleted or
    until ``close()``.  Payloads are still serialised so decoding behaves
    exactly as it does against Redis.
    """

    def __init__(self, default_ttl: int = DEFAULT_TTL_SECONDS) -> None:
        super().__init__(default_ttl)
        self._data: dict[str, str] = {}

    async def _read(self, key: str) -> str | None:
        return self._data.get(key)

    async def _write(self, key: str, payload: str, ttl_seconds: int) -> None:
        self._data[key] = payload

    async def _remove(self, key: str) -> None:
        self._data.pop(key, None)

    async def close(self) -> None:
        self._data.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._data


async def create_cache_service(settings: Settings) -> CacheService:
    """
    Build the cache used by the running app.

    Redis is preferred; when it cannot be reached the app keeps serving
    with the in-process cache instead.
    """
    try:
        return await RedisCacheService.connect(
            settings.REDIS_URL,
            timeout=settings.REDIS_INIT_TIMEOUT,
            default_ttl=settings.CACHE_DEFAULT_TTL,
        )
    except CacheError as exc:
        logger.warning("%s; falling back to in-memory cache", exc)
        return InMemoryCacheService(default_ttl=settings.CACHE_DEFAULT_TTL)
