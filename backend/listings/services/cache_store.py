"""
Cache store adapters for property results.

This module provides the key-value stores the property service caches pages in:
a Redis-backed store for deployments, an in-process LRU store with TTL support
for local runs and tests, and a null store for when caching is disabled.

Reads return an explicit CacheResult (hit, miss or unavailable). Store failures
are logged and reported through the result, never raised to the caller.
"""
import fnmatch
import logging
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

from redis.asyncio import Redis
from redis.exceptions import RedisError

from ..core.config import Settings

logger = logging.getLogger(__name__)


class CacheStatus(str, Enum):
    """Outcome of a cache read."""
    HIT = "hit"
    MISS = "miss"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class CacheResult:
    """
    Result of a cache read.

    Attributes:
        status: Hit, miss or unavailable
        payload: Stored payload on a hit
        error: Description of the failure when unavailable
    """
    status: CacheStatus
    payload: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def hit(cls, payload: str) -> "CacheResult":
        return cls(CacheStatus.HIT, payload=payload)

    @classmethod
    def miss(cls) -> "CacheResult":
        return cls(CacheStatus.MISS)

    @classmethod
    def unavailable(cls, error: str) -> "CacheResult":
        return cls(CacheStatus.UNAVAILABLE, error=error)

    @property
    def is_hit(self) -> bool:
        return self.status is CacheStatus.HIT


class CacheStore(ABC):
    """
    Interface shared by every cache store.

    Implementations never raise from get/set/delete; failures surface as an
    UNAVAILABLE result or a False/0 return value.
    """

    backend: str = "abstract"

    @abstractmethod
    async def get(self, key: str) -> CacheResult:
        """Read a payload."""

    @abstractmethod
    async def set(self, key: str, payload: str, ttl: int) -> bool:
        """Store a payload for ``ttl`` seconds. Returns False on failure."""

    @abstractmethod
    async def delete(self, key: str) -> int:
        """
        Delete exactly one key, taken literally.

        Deleting an absent key is a no-op. Returns the number of keys removed.
        """

    @abstractmethod
    async def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern. Returns the number removed."""

    @abstractmethod
    async def ping(self) -> Dict[str, Any]:
        """Probe the store and report status and latency."""

    async def close(self) -> None:
        """Release any connection held by the store."""


class InMemoryCacheStore(CacheStore):
    """
    In-process cache with LRU eviction and per-entry TTL.

    Attributes:
        cache: OrderedDict of key -> (payload, expires_at)
        max_size: Maximum number of entries
        clock: Monotonic time source, injectable for tests
    """

    backend = "memory"

    def __init__(self, max_size: int = 1000, clock: Callable[[], float] = time.monotonic) -> None:
        self.cache: "OrderedDict[str, Tuple[str, float]]" = OrderedDict()
        self.max_size = max_size
        self.clock = clock
        logger.info(f"Initialized InMemoryCacheStore with max_size={max_size}")

    async def get(self, key: str) -> CacheResult:
        if key not in self.cache:
            return CacheResult.miss()

        payload, expires_at = self.cache[key]
        if self.clock() >= expires_at:
            logger.debug(f"Cache entry expired for key: {key}")
            del self.cache[key]
            return CacheResult.miss()

        # Move to end of OrderedDict to mark as recently used
        self.cache.move_to_end(key)
        return CacheResult.hit(payload)

    async def set(self, key: str, payload: str, ttl: int) -> bool:
        if key in self.cache:
            del self.cache[key]
        elif len(self.cache) >= self.max_size:
            oldest_key, _ = self.cache.popitem(last=False)
            logger.debug(f"Cache full, evicted oldest key: {oldest_key}")

        self.cache[key] = (payload, self.clock() + ttl)
        logger.debug(f"Cached value for key: {key} (ttl={ttl}s)")
        return True

    async def delete(self, key: str) -> int:
        return 1 if self.cache.pop(key, None) is not None else 0

    async def delete_pattern(self, pattern: str) -> int:
        matching = [key for key in self.cache if fnmatch.fnmatchcase(key, pattern)]
        for key in matching:
            del self.cache[key]
        return len(matching)

    async def ping(self) -> Dict[str, Any]:
        return {
            "status": "healthy",
            "backend": self.backend,
            "latency_ms": 0.0,
            "size": len(self.cache),
            "max_size": self.max_size,
        }


class RedisCacheStore(CacheStore):
    """
    Cache store backed by a remote Redis server.

    The client is constructed once at startup and shared; every call is
    independently fallible and failures are logged as warnings.
    """

    backend = "redis"

    def __init__(self, redis: Redis) -> None:
        self.redis = redis

    @classmethod
    def from_url(cls, url: str) -> "RedisCacheStore":
        return cls(Redis.from_url(url, encoding="utf-8", decode_responses=True))

    async def get(self, key: str) -> CacheResult:
        try:
            raw = await self.redis.get(key)
        except RedisError as e:
            logger.warning(f"Cache read failed for key {key}: {e}")
            return CacheResult.unavailable(str(e))
        if raw is None:
            return CacheResult.miss()
        return CacheResult.hit(raw)

    async def set(self, key: str, payload: str, ttl: int) -> bool:
        try:
            await self.redis.set(key, payload, ex=ttl)
            return True
        except RedisError as e:
            logger.warning(f"Cache write failed for key {key}: {e}")
            return False

    async def delete(self, key: str) -> int:
        try:
            return int(await self.redis.delete(key))
        except RedisError as e:
            logger.warning(f"Cache delete failed for key {key}: {e}")
            return 0

    async def delete_pattern(self, pattern: str) -> int:
        try:
            # SCAN rather than KEYS so a large keyspace never blocks the server
            deleted = 0
            async for key in self.redis.scan_iter(match=pattern, count=100):
                deleted += int(await self.redis.delete(key))
            return deleted
        except RedisError as e:
            logger.warning(f"Cache delete failed for pattern {pattern}: {e}")
            return 0

    async def ping(self) -> Dict[str, Any]:
        start = time.perf_counter()
        try:
            await self.redis.ping()
        except RedisError as e:
            return {"status": "unhealthy", "backend": self.backend, "latency_ms": None, "error": str(e)}
        latency_ms = round((time.perf_counter() - start) * 1000, 2)
        return {"status": "healthy", "backend": self.backend, "latency_ms": latency_ms}

    async def close(self) -> None:
        try:
            await self.redis.aclose()
        except RedisError as e:
            logger.warning(f"Error closing Redis connection: {e}")


class NullCacheStore(CacheStore):
    """Store used when caching is disabled: every read misses, writes are dropped."""

    backend = "disabled"

    async def get(self, key: str) -> CacheResult:
        return CacheResult.miss()

    async def set(self, key: str, payload: str, ttl: int) -> bool:
        return False

    async def delete(self, key: str) -> int:
        return 0

    async def delete_pattern(self, pattern: str) -> int:
        return 0

    async def ping(self) -> Dict[str, Any]:
        return {"status": "disabled", "backend": self.backend, "latency_ms": None}


def build_cache_store(settings: Settings) -> CacheStore:
    """
    Construct the cache store selected by the settings.

    Args:
        settings: Application settings

    Returns:
        CacheStore: Redis when REDIS_URL is set, the in-process store otherwise,
        or the null store when caching is disabled
    """
    if not settings.CACHE_ENABLED:
        logger.info("Caching disabled")
        return NullCacheStore()
    if settings.REDIS_URL:
        logger.info("Using Redis cache store")
        return RedisCacheStore.from_url(settings.REDIS_URL)
    logger.info("Using in-process cache store")
    return InMemoryCacheStore(max_size=settings.LOCAL_CACHE_MAX_SIZE)
