"""Tests for the cache façade, the memory backend and key building."""

from __future__ import annotations

import asyncio

import pytest

from feed_aggregator.cache import Cache, MemoryBackend, RedisBackend, build_cache, build_cache_key
from feed_aggregator.config import CacheConfig


class BrokenBackend(MemoryBackend):
    async def get(self, key):
        raise ConnectionError("cache down")

    async def set(self, key, value, ttl):
        raise ConnectionError("cache down")

    async def keys(self, pattern):
        raise ConnectionError("cache down")

    async def ping(self):
        raise ConnectionError("cache down")


def _clocked_cache():
    now = [1000.0]
    backend = MemoryBackend(clock=lambda: now[0])
    return Cache(backend, prefix="test:", default_ttl=60), now


def test_build_cache_key_ignores_parameter_order():
    first = build_cache_key("live_news", {"category": "tech", "query": "", "limit": 10})
    second = build_cache_key("live_news", {"limit": 10, "query": "", "category": "tech"})

    assert first == second
    assert first.startswith("live_news:")
    assert build_cache_key("live_news", {"category": "sports"}) != first


def test_set_get_and_ttl_expiry():
    cache, now = _clocked_cache()

    async def scenario():
        await cache.set("a", {"value": 1}, ttl=30)
        before = await cache.get("a")
        remaining = await cache.ttl("a")
        now[0] += 31
        after = await cache.get("a")
        return before, remaining, after

    before, remaining, after = asyncio.run(scenario())

    assert before == {"value": 1}
    assert remaining == 30
    assert after is None


def test_extend_ttl_and_delete():
    cache, now = _clocked_cache()

    async def scenario():
        await cache.set("a", "x", ttl=10)
        extended = await cache.extend_ttl("a", 100)
        now[0] += 50
        alive = await cache.exists("a")
        deleted = await cache.delete("a")
        missing_ttl = await cache.ttl("a")
        return extended, alive, deleted, missing_ttl

    assert asyncio.run(scenario()) == (True, True, True, -2)


def test_invalidate_pattern_counts_deleted_keys():
    cache, _ = _clocked_cache()

    async def scenario():
        await cache.mset({"live_news:a": 1, "live_news:b": 2, "articles:c": 3, "trending:d": 4})
        live = await cache.invalidate_pattern("live_news:*")
        rest = await cache.invalidate_pattern(["articles:*", "trending:*", "missing:*"])
        remaining = await cache.mget(["live_news:a", "articles:c"])
        return live, rest, remaining

    assert asyncio.run(scenario()) == (2, 2, {})


def test_remember_invokes_producer_once():
    cache, _ = _clocked_cache()
    calls = 0

    async def produce():
        nonlocal calls
        calls += 1
        return ["computed"]

    async def scenario():
        first = await cache.remember("k", produce)
        second = await cache.remember("k", produce)
        return first, second

    assert asyncio.run(scenario()) == (["computed"], ["computed"])
    assert calls == 1


def test_backend_failures_degrade_to_miss_and_noop():
    cache = Cache(BrokenBackend())

    async def scenario():
        value = await cache.get("a")
        stored = await cache.set("a", 1)
        invalidated = await cache.invalidate_pattern("a*")
        remembered = await cache.remember("a", lambda: "fresh")
        health = await cache.health_check()
        return value, stored, invalidated, remembered, health

    value, stored, invalidated, remembered, health = asyncio.run(scenario())

    assert value is None
    assert stored is False
    assert invalidated == 0
    assert remembered == "fresh"
    assert health["status"] == "error"


def test_get_stats_reports_prefixed_keys():
    cache, _ = _clocked_cache()

    async def scenario():
        await cache.set("a", 1)
        await cache.set("b", 2)
        return await cache.get_stats()

    stats = asyncio.run(scenario())

    assert stats["connected"] is True
    assert stats["keys"] == 2
    assert stats["backend"] == "MemoryBackend"


def test_build_cache_selects_backend():
    assert isinstance(build_cache(CacheConfig()).backend, MemoryBackend)
    assert isinstance(build_cache(CacheConfig(backend="redis")).backend, RedisBackend)
    with pytest.raises(ValueError, match="Unsupported cache backend"):
        build_cache(CacheConfig(backend="memcached"))
