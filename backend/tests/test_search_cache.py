"""Search response cache tests."""

import pytest

from recollect.search.cache import SearchCache


class ManualClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return ManualClock()


async def test_set_and_get(clock):
    cache = SearchCache(ttl_seconds=10, clock=clock)

    await cache.set_json("u1:q", {"results": [1, 2]})

    assert await cache.get_json("u1:q") == {"results": [1, 2]}
    assert await cache.get_json("missing") is None


async def test_entries_expire(clock):
    cache = SearchCache(ttl_seconds=10, clock=clock)
    await cache.set_json("k", {"v": 1})

    clock.now += 10

    assert await cache.get_json("k") is None


async def test_returned_values_are_copies(clock):
    cache = SearchCache(ttl_seconds=10, clock=clock)
    await cache.set_json("k", {"items": []})

    value = await cache.get_json("k")
    value["items"].append("mutated")

    assert await cache.get_json("k") == {"items": []}


async def test_least_recently_used_entry_is_evicted(clock):
    cache = SearchCache(ttl_seconds=10, max_entries=2, clock=clock)
    await cache.set_json("a", 1)
    await cache.set_json("b", 2)
    await cache.get_json("a")

    await cache.set_json("c", 3)

    assert await cache.get_json("b") is None
    assert await cache.get_json("a") == 1
    assert await cache.get_json("c") == 3


async def test_invalidate_prefix(clock):
    cache = SearchCache(ttl_seconds=10, clock=clock)
    await cache.set_json("u1:tax", 1)
    await cache.set_json("u1:garden", 2)
    await cache.set_json("u10:tax", 3)

    removed = await cache.invalidate_prefix("u1:")

    assert removed == 2
    assert await cache.get_json("u10:tax") == 3


async def test_zero_ttl_disables_caching(clock):
    cache = SearchCache(ttl_seconds=0, clock=clock)

    await cache.set_json("k", 1)

    assert not cache.enabled
    assert await cache.get_json("k") is None


async def test_unserializable_value_raises(clock):
    cache = SearchCache(ttl_seconds=10, clock=clock)

    with pytest.raises(TypeError):
        await cache.set_json("k", object())


async def test_cleanup_expired(clock):
    cache = SearchCache(ttl_seconds=10, clock=clock)
    await cache.set_json("old", 1)
    clock.now += 20
    await cache.set_json("new", 2)

    assert cache.cleanup_expired() == 1
    assert await cache.get_json("new") == 2
