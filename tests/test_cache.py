"""
Tests for the Redis read cache and its degraded mode.
"""

import fakeredis
import fakeredis.aioredis

from seat_booking_service.cache import CacheInvalidator, CacheKeyBuilder, RedisCache, cache
from seat_booking_service.config import Settings


class TestRedisCache:
    """Cache operations against fake Redis."""

    async def test_ttl_is_applied(self, fake_cache):
        await cache.set("events:list:10:0", [[], 0], ttl=30)

        assert 0 < await fake_cache.ttl("events:list:10:0") <= 30
        assert await cache.get("events:list:10:0") == [[], 0]

    async def test_invalidate_event_caches(self, fake_cache):
        await cache.set(CacheKeyBuilder.event_detail(1), {"id": 1})
        await cache.set(CacheKeyBuilder.event_detail(2), {"id": 2})
        await cache.set(CacheKeyBuilder.event_list(10, 0), [[], 0])
        await cache.set(CacheKeyBuilder.event_list(10, 10), [[], 0])

        await CacheInvalidator.invalidate_event_caches(1)

        assert await cache.get(CacheKeyBuilder.event_detail(1)) is None
        assert await cache.get(CacheKeyBuilder.event_detail(2)) == {"id": 2}
        assert await fake_cache.keys("events:list:*") == []

    async def test_fill_after_invalidation_is_skipped(self, fake_cache):
        key = CacheKeyBuilder.event_detail(1)
        generation_key = CacheKeyBuilder.event_generation()
        generation = await cache.get_generation(generation_key)

        await CacheInvalidator.invalidate_event_caches(1)

        assert not await cache.set_if_generation(key, {"id": 1}, 30, generation_key, generation)
        assert await cache.get(key) is None

        fresh = await cache.get_generation(generation_key)
        assert fresh == generation + 1
        assert await cache.set_if_generation(key, {"id": 1}, 30, generation_key, fresh)
        assert await cache.get(key) == {"id": 1}


class TestDegradedCache:
    """Without Redis every operation is a harmless miss."""

    async def test_disabled_cache(self):
        disabled = RedisCache()
        await disabled.initialize(Settings(cache_enabled=False))

        assert not disabled.enabled
        assert await disabled.get("anything") is None
        assert await disabled.set("anything", 1) is False
        assert await disabled.delete_pattern("*") == 0

    async def test_unreachable_redis(self):
        server = fakeredis.FakeServer()
        server.connected = False
        broken = RedisCache()
        broken.use_client(fakeredis.aioredis.FakeRedis(server=server))

        assert await broken.get("event:detail:1") is None
        assert await broken.set("event:detail:1", {"id": 1}) is False
        assert await broken.delete("event:detail:1") is False
        assert await broken.delete_pattern("events:list:*") == 0
        assert await broken.get_generation("events:generation") is None
        assert not await broken.set_if_generation("event:detail:1", {"id": 1}, 30, "events:generation", 0)

    async def test_service_reads_work_without_cache(self, session, settings, make_event):
        from seat_booking_service.services.event_service import EventService

        cache.use_client(None)
        event_id = await make_event(total_seats=3, name="Uncached")

        event = await EventService(session, settings).get_event(event_id)

        assert event.name == "Uncached"
