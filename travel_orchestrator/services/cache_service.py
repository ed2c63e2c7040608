"""
Cache store with per-entry expiry and capped lists.

Values are stored as JSON. Reads degrade gracefully: a deserialization or
connectivity failure is logged and reported as a miss. Writes of single
values raise ``CacheUnavailableError`` so callers can decide whether the
write was on their critical path; list pushes and deletes only log.

Two backends share the ``CacheStore`` interface: ``RedisCacheStore`` for
deployments and ``InMemoryCacheStore`` for development and tests.
"""

import json
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

import redis.asyncio as redis
from pydantic_core import to_jsonable_python
from redis.exceptions import RedisError

from travel_orchestrator.config import CacheBackend, CacheConfig, config
from travel_orchestrator.utils.error_handling import CacheUnavailableError
from travel_orchestrator.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TTL = 86_400
DEFAULT_LIST_LIMIT = 50


def serialize(value: Any) -> str:
    """JSON-encode a value; pydantic models and dates are dumped in JSON mode."""
    return json.dumps(value, default=to_jsonable_python)


def deserialize(raw: str | None, key: str) -> Any | None:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.warning(f"Discarding undecodable cache value at {key}: {e!s}")
        return None


class CacheStore(ABC):
    """Key/value store with TTL and newest-first capped lists."""

    def __init__(self, ttl: int = DEFAULT_TTL, list_limit: int = DEFAULT_LIST_LIMIT):
        self.ttl = ttl
        self.list_limit = list_limit

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Store a value. Raises CacheUnavailableError when the write fails."""

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the stored value, or None when absent, expired or unreadable."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        pass

    @abstractmethod
    async def push_to_list(self, key: str, value: Any) -> None:
        """Prepend a value and trim the list to ``list_limit`` items."""

    @abstractmethod
    async def get_list(self, key: str, start: int = 0, end: int = -1) -> list[Any]:
        """Return list items newest first; ``end`` is inclusive, -1 means last."""

    @abstractmethod
    async def test_connection(self) -> bool:
        pass

    async def close(self) -> None:
        return None


class InMemoryCacheStore(CacheStore):
    """
    Process-local store. Expiry is checked lazily on access.

    Args:
        ttl: Default retention in seconds
        list_limit: Items kept per list
        clock: Monotonic clock in seconds, injectable for tests
    """

    def __init__(
        self,
        ttl: int = DEFAULT_TTL,
        list_limit: int = DEFAULT_LIST_LIMIT,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(ttl, list_limit)
        self._clock = clock
        self._values: dict[str, tuple[str, float]] = {}
        self._lists: dict[str, tuple[list[str], float]] = {}

    def _expired(self, expires_at: float) -> bool:
        return self._clock() >= expires_at

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        self._values[key] = (serialize(value), self._clock() + (ttl or self.ttl))
        logger.debug(f"Cache set: {key}")

    async def get(self, key: str) -> Any | None:
        entry = self._values.get(key)
        if entry is None:
            logger.debug(f"Cache miss: {key}")
            return None
        raw, expires_at = entry
        if self._expired(expires_at):
            del self._values[key]
            return None
        return deserialize(raw, key)

    async def delete(self, key: str) -> None:
        self._values.pop(key, None)
        self._lists.pop(key, None)

    async def exists(self, key: str) -> bool:
        if key in self._lists:
            return not self._expired(self._lists[key][1])
        entry = self._values.get(key)
        return entry is not None and not self._expired(entry[1])

    async def push_to_list(self, key: str, value: Any) -> None:
        items, expires_at = self._lists.get(key, ([], 0.0))
        if self._expired(expires_at):
            items = []
        items = [serialize(value), *items][: self.list_limit]
        # Each push extends the list lifetime by a full TTL
        self._lists[key] = (items, self._clock() + self.ttl)

    async def get_list(self, key: str, start: int = 0, end: int = -1) -> list[Any]:
        entry = self._lists.get(key)
        if entry is None or self._expired(entry[1]):
            return []
        items = entry[0]
        stop = len(items) if end == -1 else end + 1
        decoded = (deserialize(raw, key) for raw in items[start:stop])
        return [item for item in decoded if item is not None]

    async def test_connection(self) -> bool:
        return True


class RedisCacheStore(CacheStore):
    """
    Redis-backed store using ``redis.asyncio``.

    The connection is created lazily on first use.
    """

    def __init__(
        self,
        url: str,
        ttl: int = DEFAULT_TTL,
        list_limit: int = DEFAULT_LIST_LIMIT,
        client: Any | None = None,
    ):
        super().__init__(ttl, list_limit)
        self.url = url
        self._redis = client

    @property
    def client(self) -> Any:
        if self._redis is None:
            self._redis = redis.from_url(
                self.url,
                decode_responses=True,
                socket_connect_timeout=10,
                health_check_interval=30,
            )
        return self._redis

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        try:
            await self.client.setex(key, ttl or self.ttl, serialize(value))
        except (RedisError, OSError) as e:
            logger.error(f"Cache set error for {key}: {e!s}")
            raise CacheUnavailableError(f"Could not write {key}", original_error=e) from e
        logger.debug(f"Cache set: {key}")

    async def get(self, key: str) -> Any | None:
        try:
            raw = await self.client.get(key)
        except (RedisError, OSError) as e:
            logger.error(f"Cache get error for {key}: {e!s}")
            return None
        if raw is None:
            logger.debug(f"Cache miss: {key}")
        return deserialize(raw, key)

    async def delete(self, key: str) -> None:
        try:
            await self.client.delete(key)
        except (RedisError, OSError) as e:
            logger.error(f"Cache delete error for {key}: {e!s}")

    async def exists(self, key: str) -> bool:
        try:
            return await self.client.exists(key) == 1
        except (RedisError, OSError) as e:
            logger.error(f"Cache exists error for {key}: {e!s}")
            return False

    async def push_to_list(self, key: str, value: Any) -> None:
        try:
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.lpush(key, serialize(value))
                pipe.ltrim(key, 0, self.list_limit - 1)
                pipe.expire(key, self.ttl)
                await pipe.execute()
        except (RedisError, OSError) as e:
            logger.error(f"Cache list push error for {key}: {e!s}")

    async def get_list(self, key: str, start: int = 0, end: int = -1) -> list[Any]:
        try:
            raw_items = await self.client.lrange(key, start, end)
        except (RedisError, OSError) as e:
            logger.error(f"Cache list get error for {key}: {e!s}")
            return []
        decoded = (deserialize(raw, key) for raw in raw_items)
        return [item for item in decoded if item is not None]

    async def test_connection(self) -> bool:
        try:
            return bool(await self.client.ping())
        except (RedisError, OSError) as e:
            logger.warning(f"Redis connection test failed: {e!s}")
            return False

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


def create_cache_store(cache_config: CacheConfig | None = None) -> CacheStore:
    """Build a store for the configured backend."""
    cache_config = cache_config or config.cache
    if cache_config.backend == CacheBackend.MEMORY:
        return InMemoryCacheStore(ttl=cache_config.ttl, list_limit=cache_config.list_limit)
    return RedisCacheStore(
        cache_config.redis_url, ttl=cache_config.ttl, list_limit=cache_config.list_limit
    )


_cache_store: CacheStore | None = None


def get_cache_store() -> CacheStore:
    """Process-wide cache store, created on first call."""
    global _cache_store
    if _cache_store is None:
        _cache_store = create_cache_store()
        logger.info(f"Cache store initialized ({type(_cache_store).__name__})")
    return _cache_store


async def close_cache_store() -> None:
    global _cache_store
    if _cache_store is not None:
        await _cache_store.close()
        _cache_store = None
