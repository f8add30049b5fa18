"""
Cache strategies using Strategy Pattern.
Allows switching between different cache backends (Redis, In-Memory, Null).

These are raw key/value clients. Link specific policy (expiry checks,
TTL computation) lives in LinkCache.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Tuple

from redis.exceptions import RedisError

from .exceptions import CacheError


class CacheStrategy(ABC):
    """
    Abstract base class for cache strategies.

    This is the Strategy Pattern interface - allows multiple cache implementations
    without changing the service layer code.

    All methods are async because cache operations involve I/O (network for Redis).
    Failures raise CacheError instead of pretending to be a miss.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Get value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl: timedelta) -> bool:
        """
        Set value in cache with TTL (Time To Live).

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time to live, must be positive

        Returns:
            True if stored
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """
        Delete key from cache.

        Args:
            key: Cache key

        Returns:
            True if deleted, False if key didn't exist
        """
        pass

    async def ping(self) -> bool:
        """Check the backend is reachable"""
        return True

    async def close(self) -> None:
        """Release connections held by the backend"""
        return None


class RedisCache(CacheStrategy):
    """
    Redis cache implementation on top of redis.asyncio.

    Production-ready cache with:
    - Distributed caching (multiple servers can share cache)
    - Millisecond TTL precision (SET ... PX)
    - Non-blocking I/O (async)

    Every call is bounded by the client's socket timeout.
    """

    def __init__(self, redis_client):
        """
        Initialize Redis cache.

        Args:
            redis_client: Async Redis client instance (redis.asyncio.Redis)
        """
        self.redis = redis_client

    async def get(self, key: str) -> Optional[str]:
        try:
            value = await self.redis.get(key)
        except RedisError as e:
            raise CacheError(f"Redis get {key!r} failed: {e}") from e
        if value is None:
            return None
        return value.decode("utf-8") if isinstance(value, bytes) else value

    async def set(self, key: str, value: str, ttl: timedelta) -> bool:
        # PX is whole milliseconds and must be positive
        if ttl < timedelta(milliseconds=1):
            return False
        try:
            return bool(await self.redis.set(key, value, px=ttl))
        except RedisError as e:
            raise CacheError(f"Redis set {key!r} failed: {e}") from e

    async def delete(self, key: str) -> bool:
        try:
            return bool(await self.redis.delete(key))
        except RedisError as e:
            raise CacheError(f"Redis delete {key!r} failed: {e}") from e

    async def ping(self) -> bool:
        try:
            return bool(await self.redis.ping())
        except RedisError as e:
            raise CacheError(f"Redis ping failed: {e}") from e

    async def close(self) -> None:
        await self.redis.aclose()


class InMemoryCache(CacheStrategy):
    """
    In-memory cache implementation using Python dict.

    Pros:
    - Very fast (no network overhead)
    - Simple (no external dependencies)
    - Good for development and testing

    Cons:
    - Not distributed (each server has its own cache)
    - Lost on restart

    TTL is enforced lazily: an expired entry is dropped when read, and
    every write sweeps out the ones nobody read again.
    """

    def __init__(self):
        """Initialize in-memory cache"""
        self._cache: Dict[str, Tuple[str, datetime]] = {}

    def _live_entry(self, key: str) -> Optional[str]:
        entry = self._cache.get(key)
        if entry is None:
            return None
        value, deadline = entry
        if datetime.now(timezone.utc) >= deadline:
            del self._cache[key]
            return None
        return value

    def _prune_expired(self, now: datetime) -> None:
        expired = [key for key, (_, deadline) in self._cache.items() if now >= deadline]
        for key in expired:
            del self._cache[key]

    async def get(self, key: str) -> Optional[str]:
        return self._live_entry(key)

    async def set(self, key: str, value: str, ttl: timedelta) -> bool:
        if ttl <= timedelta(0):
            return False
        now = datetime.now(timezone.utc)
        self._prune_expired(now)
        self._cache[key] = (value, now + ttl)
        return True

    async def delete(self, key: str) -> bool:
        return self._cache.pop(key, None) is not None


class NullCache(CacheStrategy):
    """
    Null Object Pattern - cache that does nothing.

    Used for:
    - Testing (when you want to test without cache)
    - Disabling cache in certain environments

    Every read is a miss, so every lookup goes to the store.
    """

    async def get(self, key: str) -> Optional[str]:
        """Always returns None (cache miss)"""
        return None

    async def set(self, key: str, value: str, ttl: timedelta) -> bool:
        """Pretends to set but does nothing"""
        return True

    async def delete(self, key: str) -> bool:
        """Pretends to delete but does nothing"""
        return True
