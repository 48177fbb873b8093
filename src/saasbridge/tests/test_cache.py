"""Tests for the TTL cache."""

import pytest

from saasbridge.io.cache import CacheBackend, MemoryCache


class Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def cache(clock: Clock) -> MemoryCache:
    return MemoryCache(default_ttl=300, clock=clock)


def test_set_and_get(cache: MemoryCache) -> None:
    cache.set("bugsnag_org", {"id": "o1"})
    assert cache.get("bugsnag_org") == {"id": "o1"}
    assert "bugsnag_org" in cache
    assert cache.get("missing") is None


def test_default_ttl_expiry(cache: MemoryCache, clock: Clock) -> None:
    cache.set("k", "v")
    clock.now += 299.9
    assert cache.get("k") == "v"
    clock.now += 0.1
    assert cache.get("k") is None
    # Expired entries are evicted on read.
    assert cache.size == 0


def test_reads_do_not_extend_life(cache: MemoryCache, clock: Clock) -> None:
    cache.set("k", "v", ttl=10)
    for _ in range(5):
        clock.now += 2
        cache.get("k")
    assert cache.get("k") is None


def test_rewrite_restarts_ttl(cache: MemoryCache, clock: Clock) -> None:
    cache.set("k", 1, ttl=10)
    clock.now += 9
    cache.set("k", 2, ttl=10)
    clock.now += 9
    assert cache.get("k") == 2


def test_none_ttl_never_expires(cache: MemoryCache, clock: Clock) -> None:
    cache.set("org", "o1", ttl=None)
    clock.now += 10**9
    assert cache.get("org") == "o1"


def test_falsy_values_are_hits(cache: MemoryCache) -> None:
    cache.set("projects", [])
    assert cache.get("projects") == []


def test_delete_and_clear(cache: MemoryCache) -> None:
    cache.set("a", 1)
    cache.set("b", 2)
    assert cache.delete("a") is True
    assert cache.delete("a") is False
    cache.clear()
    assert cache.size == 0


def test_disabled_cache_always_misses(clock: Clock) -> None:
    cache = MemoryCache(enabled=False, clock=clock)
    cache.set("k", "v")
    assert cache.get("k") is None
    assert cache.size == 0


def test_stats(cache: MemoryCache, clock: Clock) -> None:
    cache.set("short", 1, ttl=5)
    cache.set("long", 2)
    clock.now += 10
    stats = cache.stats()
    assert stats["total_entries"] == 2
    assert stats["expired_entries"] == 1
    assert stats["active_entries"] == 1
    assert stats["default_ttl"] == 300


def test_satisfies_backend_protocol(cache: MemoryCache) -> None:
    assert isinstance(cache, CacheBackend)
