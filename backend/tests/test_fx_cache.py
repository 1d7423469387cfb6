import asyncio
from decimal import Decimal

import fakeredis
import httpx
import redis

from app.services import fx_cache
from app.services.currency import CurrencyService
from app.services.fx_cache import InMemoryRateCache, RedisRateCache, build_rate_cache
from app.utils import redis_cache


def test_in_memory_cache_round_trip():
    cache = InMemoryRateCache()
    assert cache.get("EUR_GBP") is None
    cache.set("EUR_GBP", Decimal("0.86"), 100.0)
    entry = cache.get("EUR_GBP")
    assert entry.rate == Decimal("0.86")
    assert entry.fetched_at == 100.0
    cache.clear()
    assert len(cache) == 0


def test_redis_cache_stores_rate_with_ttl():
    fake = fakeredis.FakeStrictRedis(decode_responses=True)
    cache = RedisRateCache(client=fake, ttl_seconds=300)
    cache.set("EUR_GBP", Decimal("0.86"), 1234.5)

    assert fake.get("fx:rate:EUR_GBP") == "0.86|1234.5"
    assert 0 < fake.ttl("fx:rate:EUR_GBP") <= 300
    entry = cache.get("EUR_GBP")
    assert entry.rate == Decimal("0.86")
    assert entry.fetched_at == 1234.5


def test_redis_cache_reads_bytes_values():
    fake = fakeredis.FakeStrictRedis()
    cache = RedisRateCache(client=fake)
    cache.set("USD_GBP", Decimal("0.79"), 10.0)
    assert cache.get("USD_GBP").rate == Decimal("0.79")


def test_redis_cache_ignores_malformed_entries():
    fake = fakeredis.FakeStrictRedis(decode_responses=True)
    fake.set("fx:rate:EUR_GBP", "not-a-rate")
    assert RedisRateCache(client=fake).get("EUR_GBP") is None


def test_redis_cache_clear_only_touches_fx_keys():
    fake = fakeredis.FakeStrictRedis(decode_responses=True)
    fake.set("other:key", "keep")
    cache = RedisRateCache(client=fake)
    cache.set("EUR_GBP", Decimal("0.86"), 1.0)
    cache.set("USD_GBP", Decimal("0.79"), 1.0)
    cache.clear()
    assert cache.get("EUR_GBP") is None
    assert fake.get("other:key") == "keep"


class BrokenRedis:
    def get(self, key):
        raise redis.exceptions.ConnectionError("down")

    def setex(self, key, ttl, value):
        raise redis.exceptions.ConnectionError("down")


def test_redis_errors_read_as_miss():
    cache = RedisRateCache(client=BrokenRedis())
    cache.set("EUR_GBP", Decimal("0.86"), 1.0)
    assert cache.get("EUR_GBP") is None


def test_redis_cache_uses_shared_client(monkeypatch):
    fake = fakeredis.FakeStrictRedis(decode_responses=True)
    monkeypatch.setattr(fx_cache, "get_redis_client", lambda: fake)
    RedisRateCache().set("CHF_GBP", Decimal("0.88"), 1.0)
    assert fake.get(redis_cache.fx_rate_key("CHF_GBP")) == "0.88|1.0"


def test_rate_shared_between_services_through_redis(clock):
    fake = fakeredis.FakeStrictRedis(decode_responses=True)
    calls = []

    def handler(request):
        calls.append(request.url.path)
        return httpx.Response(200, json={"rates": {"GBP": 0.86}})

    def make_service():
        return CurrencyService(
            RedisRateCache(client=fake),
            api_url="https://rates.test/latest/{currency}",
            transport=httpx.MockTransport(handler),
            clock=clock,
        )

    assert asyncio.run(make_service().rate_to_gbp("EUR")) == Decimal("0.86")
    assert asyncio.run(make_service().rate_to_gbp("EUR")) == Decimal("0.86")
    assert calls == ["/latest/EUR"]


def test_build_rate_cache_backends(monkeypatch):
    fake = fakeredis.FakeStrictRedis(decode_responses=True)
    monkeypatch.setattr(fx_cache, "get_redis_client", lambda: fake)
    assert isinstance(build_rate_cache("memory"), InMemoryRateCache)
    assert isinstance(build_rate_cache("redis"), RedisRateCache)
    assert isinstance(build_rate_cache("memcached"), InMemoryRateCache)


def test_null_redis_when_disabled(monkeypatch):
    monkeypatch.setattr(redis_cache, "_redis_client", None)
    monkeypatch.setattr(redis_cache.settings, "REDIS_URL", "disabled")
    client = redis_cache.get_redis_client()
    assert client.get("anything") is None
    assert RedisRateCache(client=client).get("EUR_GBP") is None
    redis_cache.close_redis_client()


def test_redis_backend_without_redis_keeps_rates_in_process(monkeypatch, rate_source, clock):
    monkeypatch.setattr(redis_cache, "_redis_client", None)
    monkeypatch.setattr(redis_cache.settings, "REDIS_URL", "")
    cache = build_rate_cache("redis")
    assert isinstance(cache, InMemoryRateCache)

    service = CurrencyService(
        cache,
        api_url="https://rates.test/v4/latest/{currency}",
        transport=rate_source.transport,
        clock=clock,
    )
    asyncio.run(service.rate_to_gbp("EUR"))
    clock.advance(120)
    assert asyncio.run(service.rate_to_gbp("EUR")) == Decimal("0.86")
    assert rate_source.calls == ["EUR"]
    redis_cache.close_redis_client()
