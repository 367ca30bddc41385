"""Tests for the comp search cache backends."""

from unittest.mock import AsyncMock

import pytest

from cma.data.cache import (
    MemorySearchCache,
    RedisSearchCache,
    build_cache,
    comp_result_from_json,
    comp_result_to_json,
)
from cma.models.comps import CompResult, SourceFailure


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestMemorySearchCache:
    async def test_miss(self):
        cache = MemorySearchCache()
        assert await cache.get("nope") is None

    async def test_set_and_get(self, comp_result):
        cache = MemorySearchCache()
        await cache.set("k", comp_result, 3600)
        assert await cache.get("k") == comp_result

    async def test_expired_entry_is_miss_and_evicted(self, comp_result):
        clock = FakeClock()
        cache = MemorySearchCache(clock=clock)
        await cache.set("k", comp_result, 3600)
        clock.now += 3599
        assert await cache.get("k") is not None
        clock.now += 1
        assert await cache.get("k") is None
        assert len(cache) == 0

    async def test_last_writer_wins(self, comp_result):
        cache = MemorySearchCache()
        await cache.set("k", CompResult(), 60)
        await cache.set("k", comp_result, 60)
        assert (await cache.get("k")).total == 5


class TestRedisSearchCache:
    async def test_round_trip_through_client(self, comp_result):
        client = AsyncMock()
        cache = RedisSearchCache(client=client)
        await cache.set("k", comp_result, 3600)
        key, ttl, raw = client.setex.call_args.args
        assert (key, ttl) == ("k", 3600)

        client.get.return_value = raw
        restored = await cache.get("k")
        assert restored == comp_result

    async def test_miss(self):
        client = AsyncMock()
        client.get.return_value = None
        assert await RedisSearchCache(client=client).get("k") is None

    async def test_redis_down_reads_as_miss(self):
        client = AsyncMock()
        client.get.side_effect = ConnectionError("refused")
        assert await RedisSearchCache(client=client).get("k") is None

    @pytest.mark.parametrize("raw", ["not json", "{}", '{"active": [{"id": "x"}]}'])
    async def test_unreadable_entry_reads_as_miss(self, raw):
        client = AsyncMock()
        client.get.return_value = raw
        assert await RedisSearchCache(client=client).get("k") is None

    async def test_write_failure_is_swallowed(self, comp_result):
        client = AsyncMock()
        client.setex.side_effect = ConnectionError("refused")
        await RedisSearchCache(client=client).set("k", comp_result, 60)


class TestCodec:
    def test_preserves_degraded_and_failures(self, sold_comps):
        result = CompResult(
            sold=tuple(sold_comps),
            degraded=True,
            failures=(SourceFailure("attom", "timeout"),),
        )
        restored = comp_result_from_json(comp_result_to_json(result))
        assert restored.degraded is True
        assert restored.failures == (SourceFailure("attom", "timeout"),)
        assert restored.sold[0].price == sold_comps[0].price


class TestBuildCache:
    def test_backends(self):
        assert isinstance(build_cache("memory"), MemorySearchCache)
        assert isinstance(build_cache("redis"), RedisSearchCache)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            build_cache("memcached")
