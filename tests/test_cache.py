"""Tests for the bounded TTL cache."""

import pytest

from learnbot.cache import TTLCache


def test_get_and_set(clock):
    cache = TTLCache(maxsize=10, ttl=60, clock=clock)
    cache.set("a", 1)

    assert cache.get("a") == 1
    assert cache.get("missing") is None
    assert cache.get("missing", "default") == "default"


def test_entries_expire(clock):
    cache = TTLCache(maxsize=10, ttl=60, clock=clock)
    cache.set("a", 1)

    clock.advance(59)
    assert "a" in cache

    clock.advance(1)
    assert "a" not in cache
    assert len(cache) == 0


def test_write_resets_expiry(clock):
    cache = TTLCache(maxsize=10, ttl=60, clock=clock)
    cache.set("a", 1)
    clock.advance(50)
    cache.set("a", 2)
    clock.advance(50)

    assert cache.get("a") == 2


def test_refresh_on_read_slides_expiry(clock):
    cache = TTLCache(maxsize=10, ttl=60, clock=clock)
    cache.set("a", 1)
    clock.advance(50)
    cache.get("a", refresh=True)
    clock.advance(50)

    assert cache.get("a") == 1

    clock.advance(61)
    assert cache.get("a") is None


def test_least_recently_used_is_evicted(clock):
    cache = TTLCache(maxsize=2, ttl=60, clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.get("a")
    cache.set("c", 3)

    assert "a" in cache
    assert "b" not in cache
    assert "c" in cache


def test_expired_entries_are_evicted_before_live_ones(clock):
    cache = TTLCache(maxsize=2, ttl=60, clock=clock)
    cache.set("old", 1)
    clock.advance(30)
    cache.set("fresh", 2)
    clock.advance(31)
    cache.set("new", 3)

    assert "fresh" in cache
    assert "new" in cache


def test_expire_returns_removed_count(clock):
    cache = TTLCache(maxsize=10, ttl=60, clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)
    clock.advance(61)
    cache.set("c", 3)

    assert cache.expire() == 2
    assert len(cache) == 1


def test_delete_and_clear(clock):
    cache = TTLCache(maxsize=10, ttl=60, clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)

    assert cache.delete("a") is True
    assert cache.delete("a") is False

    cache.clear()
    assert len(cache) == 0


def test_falsy_values_are_stored(clock):
    cache = TTLCache(maxsize=10, ttl=60, clock=clock)
    cache.set("empty", [])

    assert "empty" in cache
    assert cache.get("empty", "default") == []


def test_invalid_maxsize():
    with pytest.raises(ValueError):
        TTLCache(maxsize=0)
