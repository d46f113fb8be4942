"""
Redis caching layer for read-only event lookups.

Nothing on the booking or cancellation path reads from this cache; capacity
decisions are always taken against the locked database row. Cached reads are
dropped after every committed change to an event.
"""

import json
import logging
from typing import Any, Optional

import redis.asyncio as redis
from redis.asyncio import Redis
from redis.exceptions import RedisError, WatchError

from .config import Settings, get_settings

logger = logging.getLogger(__name__)


class CacheKeyBuilder:
    """Helper class for building consistent cache keys."""

    @staticmethod
    def event_list(limit: int, offset: int) -> str:
        """Build cache key for event listings."""
        return f"events:list:{limit}:{offset}"

    @staticmethod
    def event_detail(event_id: int) -> str:
        """Build cache key for event details."""
        return f"event:detail:{event_id}"

    @staticmethod
    def event_generation() -> str:
        """Build the key counting event cache invalidations."""
        return "events:generation"


class RedisCache:
    """Redis cache manager with connection handling and operations."""

    def __init__(self):
        self.client: Optional[Redis] = None
        self.pool: Optional[redis.ConnectionPool] = None

    async def initialize(self, settings: Optional[Settings] = None) -> None:
        """Initialize Redis connection pool and client."""
        settings = settings or get_settings()

        if not settings.cache_enabled:
            logger.info("Redis cache disabled by configuration")
            return

        try:
            self.pool = redis.ConnectionPool.from_url(
                settings.redis_url,
                max_connections=settings.redis_max_connections,
                retry_on_timeout=True,
                health_check_interval=30
            )
            self.client = Redis(connection_pool=self.pool)

            # Test connection
            await self.client.ping()
            logger.info("Redis cache initialized successfully")

        except RedisError as e:
            # Reads fall through to the database
            logger.warning("Redis unavailable, running without cache: %s", e)
            await self.close()

    def use_client(self, client: Optional[Redis]) -> None:
        """Attach an already constructed client (or detach with None)."""
        self.client = client

    async def close(self) -> None:
        """Close Redis connections."""
        if self.client:
            await self.client.aclose()
        if self.pool:
            await self.pool.disconnect()
        self.client = None
        self.pool = None

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found
        """
        if not self.client:
            return None

        try:
            value = await self.client.get(key)
            if value:
                if isinstance(value, bytes):
                    value = value.decode("utf-8")
                return json.loads(value)
            return None
        except (RedisError, ValueError) as e:
            logger.warning("Failed to get cache key %s: %s", key, e)
            return None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """
        Set value in cache.

        Args:
            key: Cache key
            value: Value to cache, must be JSON serializable
            ttl: Time to live in seconds

        Returns:
            True if successful, False otherwise
        """
        if not self.client:
            return False

        try:
            serialized_value = json.dumps(value, default=str)
            if ttl:
                await self.client.setex(key, ttl, serialized_value)
            else:
                await self.client.set(key, serialized_value)
            return True
        except (RedisError, TypeError) as e:
            logger.warning("Failed to set cache key %s: %s", key, e)
            return False

    async def get_generation(self, key: str) -> Optional[int]:
        """Read an invalidation counter; None when the cache is unusable."""
        if not self.client:
            return None

        try:
            value = await self.client.get(key)
            return int(value) if value else 0
        except (RedisError, ValueError) as e:
            logger.warning("Failed to read generation %s: %s", key, e)
            return None

    async def bump_generation(self, key: str) -> None:
        """Advance an invalidation counter."""
        if not self.client:
            return

        try:
            await self.client.incr(key)
        except RedisError as e:
            logger.warning("Failed to bump generation %s: %s", key, e)

    async def set_if_generation(
        self,
        key: str,
        value: Any,
        ttl: int,
        generation_key: str,
        generation: Optional[int]
    ) -> bool:
        """
        Set value only if ``generation_key`` still holds ``generation``.

        Callers read the generation before loading ``value`` from the
        database. An invalidation in between bumps the counter, and the
        possibly stale value is not written.

        Returns:
            True if the value was written, False otherwise
        """
        if not self.client or generation is None:
            return False

        try:
            serialized_value = json.dumps(value, default=str)
            async with self.client.pipeline(transaction=True) as pipe:
                await pipe.watch(generation_key)
                current = await pipe.get(generation_key)
                if (int(current) if current else 0) != generation:
                    logger.debug("Skipped stale cache fill for %s", key)
                    return False
                pipe.multi()
                pipe.setex(key, ttl, serialized_value)
                await pipe.execute()
            return True
        except WatchError:
            logger.debug("Skipped stale cache fill for %s", key)
            return False
        except (RedisError, TypeError, ValueError) as e:
            logger.warning("Failed to set cache key %s: %s", key, e)
            return False

    async def delete(self, key: str) -> bool:
        """Delete key from cache."""
        if not self.client:
            return False

        try:
            await self.client.delete(key)
            return True
        except RedisError as e:
            logger.warning("Failed to delete cache key %s: %s", key, e)
            return False

    async def delete_pattern(self, pattern: str) -> int:
        """
        Delete all keys matching a pattern.

        Args:
            pattern: Pattern to match (e.g., "events:*")

        Returns:
            Number of keys deleted
        """
        if not self.client:
            return 0

        try:
            keys = [key async for key in self.client.scan_iter(match=pattern)]
            if keys:
                await self.client.delete(*keys)
            return len(keys)
        except RedisError as e:
            logger.warning("Failed to delete keys with pattern %s: %s", pattern, e)
            return 0


# Global cache instance
cache = RedisCache()


async def init_cache(settings: Optional[Settings] = None) -> None:
    """Initialize the global cache instance."""
    await cache.initialize(settings)


async def close_cache() -> None:
    """Close the global cache instance."""
    await cache.close()


def get_cache() -> RedisCache:
    """Get the global cache instance."""
    return cache


class CacheInvalidator:
    """Helper class for cache invalidation strategies."""

    @staticmethod
    async def invalidate_event_caches(event_id: int) -> None:
        """Invalidate all caches related to a specific event."""
        # Bump first so reads already in flight cannot refill old rows
        await cache.bump_generation(CacheKeyBuilder.event_generation())
        await cache.delete(CacheKeyBuilder.event_detail(event_id))
        await cache.delete_pattern("events:list:*")
        logger.debug("Invalidated caches for event %s", event_id)

    @staticmethod
    async def invalidate_event_list_caches() -> None:
        """Invalidate all event listing caches."""
        await cache.bump_generation(CacheKeyBuilder.event_generation())
        await cache.delete_pattern("events:list:*")
        logger.debug("Invalidated event list caches")


class CacheTTL:
    """Cache TTL constants (in seconds)."""

    EVENT_LIST = 30
    EVENT_DETAIL = 30
