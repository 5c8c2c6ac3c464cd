import fakeredis
import pytest

from app.core.cache import Cache
from app.core.errors import AppError, ErrorKind
from app.core.rate_limit import RateLimiter


@pytest.fixture
def redis_cache() -> Cache:
    return Cache(fakeredis.FakeRedis(decode_responses=True))


def test_values_round_trip_as_json_or_plain_text(redis_cache: Cache):
    redis_cache.set("course:python", {"id": "c1", "price": "49.99"}, ttl_seconds=300)
    redis_cache.set("blacklist:token", "1")
    redis_cache.client.set("raw", "not json {")

    assert redis_cache.get("course:python") == {"id": "c1", "price": "49.99"}
    assert redis_cache.get("blacklist:token") == 1
    assert redis_cache.get("raw") == "not json {"
    assert redis_cache.get("missing") is None
    assert 0 < redis_cache.client.ttl("course:python") <= 300


def test_delete_pattern_removes_only_matching_keys(redis_cache: Cache):
    for key in ("courses:list:page=1", "courses:list:page=2", "course:python", "categories"):
        redis_cache.set(key, [1])

    assert redis_cache.delete_pattern("courses:*") == 2
    assert not redis_cache.exists("courses:list:page=1")
    assert redis_cache.exists("course:python")
    assert redis_cache.exists("categories")

    redis_cache.delete("course:python", "categories")
    assert redis_cache.delete_pattern("course*") == 0


def test_counter_with_window(redis_cache: Cache):
    limiter = RateLimiter("login", max_requests=2, window_seconds=900)

    assert limiter.hit(redis_cache, "127.0.0.1-a@example.com") == 1
    assert limiter.hit(redis_cache, "127.0.0.1-a@example.com") == 2
    key = limiter.key("127.0.0.1-a@example.com")
    assert 0 < redis_cache.client.ttl(key) <= 900
    with pytest.raises(AppError) as exc_info:
        limiter.hit(redis_cache, "127.0.0.1-a@example.com")
    assert exc_info.value.kind is ErrorKind.TOO_MANY_REQUESTS
