from app.services.cache_service import CacheService, CandidateCache
from tests.factories import BrokenRedis, make_candidate, make_query, make_window


async def test_candidates_round_trip_through_cache(candidate_cache, fake_redis):
    candidate = make_candidate("DXB", "689.40", windows=[make_window(300, airport="DXB")], trending=True)
    query = make_query(destination="BKK")

    assert await candidate_cache.set(query, [candidate]) is True
    restored = await candidate_cache.get(query)

    assert restored[0].price == candidate.price
    assert restored[0].windows == candidate.windows
    assert restored[0].trending is True
    assert fake_redis.ttls[CandidateCache.key(query)] == 900


def test_key_depends_on_search_shape():
    base = CandidateCache.key(make_query())

    assert base.startswith("candidates:JFK:")
    assert CandidateCache.key(make_query()) == base
    assert CandidateCache.key(make_query(budget="luxury")) != base
    assert CandidateCache.key(make_query(adults=2)) != base


async def test_unreadable_entry_is_dropped(candidate_cache, fake_redis):
    query = make_query()
    fake_redis.store[CandidateCache.key(query)] = '[{"code": "DXB"}]'

    assert await candidate_cache.get(query) is None
    assert fake_redis.store == {}


async def test_no_redis_configured_is_a_miss():
    cache = CacheService(redis_url=None)

    assert await cache.get("anything") is None
    assert await cache.set("anything", {"a": 1}) is False


async def test_redis_errors_degrade_to_miss():
    cache = CandidateCache(CacheService(client=BrokenRedis()))

    assert await cache.get(make_query()) is None
    assert await cache.set(make_query(), [make_candidate("DXB")]) is False
