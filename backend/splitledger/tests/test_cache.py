"""
Tests for the cache port.
"""
from splitledger.core.cache import MemoryCache, NullCache, RedisCache, build_cache, cache_keys
from splitledger.services import team_service


def test_memory_cache_hands_out_copies():
    cache = MemoryCache()
    value = [{"id": 1, "name": "Ana"}]
    cache.set("members:1", value, 60)

    value.append({"id": 2, "name": "Ben"})
    read = cache.get("members:1")
    assert read == [{"id": 1, "name": "Ana"}]

    read[0]["name"] = "Changed"
    assert cache.get("members:1") == [{"id": 1, "name": "Ana"}]


def test_cached_member_list_survives_caller_mutation(db, team, members, cache):
    names = [m["name"] for m in team_service.list_members(db, team.id, cache=cache)]
    assert names == ["Ana", "Ben", "Cai"]

    listed = team_service.list_members(db, team.id, cache=cache)
    listed.clear()

    again = team_service.list_members(db, team.id, cache=cache)
    assert [m["name"] for m in again] == ["Ana", "Ben", "Cai"]
    assert cache.get(cache_keys.team_members(team.id)) == again


def test_cached_runs_fetcher_once_per_key():
    cache = MemoryCache()
    calls = []

    def fetch():
        calls.append(1)
        return {"you_owe": "150.00"}

    assert cache.cached("balance:1:2", fetch, 30) == {"you_owe": "150.00"}
    assert cache.cached("balance:1:2", fetch, 30) == {"you_owe": "150.00"}
    assert len(calls) == 1

    cache.invalidate_team(1, [2])
    cache.cached("balance:1:2", fetch, 30)
    assert len(calls) == 2


def test_null_cache_always_fetches():
    cache = NullCache()
    assert cache.cached("balance:1:2", lambda: {"n": 1}) == {"n": 1}
    assert cache.get("balance:1:2") is None


def test_build_cache_selects_backend():
    assert isinstance(build_cache("memory"), MemoryCache)
    assert isinstance(build_cache("none"), NullCache)
    redis_cache = build_cache("redis")
    assert isinstance(redis_cache, RedisCache)
    # Not connected yet: reads miss and writes are dropped
    assert redis_cache.get("balance:1:2") is None
    redis_cache.set("balance:1:2", {"n": 1}, 30)
    redis_cache.delete("balance:1:2")
