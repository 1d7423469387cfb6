import asyncio
import logging
from decimal import Decimal

import httpx
import pytest

from app.services import currency as currency_module
from app.services.currency import (
    FALLBACK_RATES_TO_GBP,
    SUPPORTED_CURRENCIES,
    CurrencyService,
    format_currency,
    normalize_currency,
)


def test_gbp_is_identity_without_lookup(currency_service, rate_source, rate_cache):
    assert asyncio.run(currency_service.rate_to_gbp("GBP")) == Decimal("1")
    assert asyncio.run(currency_service.convert_to_gbp(Decimal("123.456"), "gbp")) == Decimal("123.456")
    assert rate_source.calls == []
    assert len(rate_cache) == 0


def test_live_rate_is_fetched_and_cached(currency_service, rate_source, rate_cache):
    assert asyncio.run(currency_service.rate_to_gbp("EUR")) == Decimal("0.86")
    assert rate_source.calls == ["EUR"]
    cached = rate_cache.get("EUR_GBP")
    assert cached is not None and cached.rate == Decimal("0.86")


def test_fresh_cache_entry_skips_network(currency_service, rate_source, clock):
    asyncio.run(currency_service.rate_to_gbp("EUR"))
    rate_source.rates["EUR"] = 0.9
    clock.advance(299)
    assert asyncio.run(currency_service.rate_to_gbp("EUR")) == Decimal("0.86")
    assert rate_source.calls == ["EUR"]


def test_stale_cache_entry_is_refreshed(currency_service, rate_source, clock):
    asyncio.run(currency_service.rate_to_gbp("EUR"))
    rate_source.rates["EUR"] = 0.9
    clock.advance(300)
    assert asyncio.run(currency_service.rate_to_gbp("EUR")) == Decimal("0.9")
    assert rate_source.calls == ["EUR", "EUR"]


def test_lowercase_code_shares_cache_key(currency_service, rate_source):
    asyncio.run(currency_service.rate_to_gbp("usd"))
    asyncio.run(currency_service.rate_to_gbp("USD"))
    assert rate_source.calls == ["USD"]


def test_network_error_uses_fallback(currency_service, rate_source, caplog):
    rate_source.error = httpx.ConnectError("connection refused")
    caplog.set_level(logging.WARNING, logger="app.services.currency")
    assert asyncio.run(currency_service.rate_to_gbp("EUR")) == Decimal("0.85")
    assert any("EUR" in r.getMessage() and "fallback" in r.getMessage() for r in caplog.records)


def test_timeout_uses_fallback(currency_service, rate_source):
    rate_source.error = httpx.ReadTimeout("timed out")
    assert asyncio.run(currency_service.rate_to_gbp("USD")) == Decimal("0.79")


def test_error_status_uses_fallback(currency_service, rate_source):
    rate_source.status_code = 503
    assert asyncio.run(currency_service.rate_to_gbp("CHF")) == Decimal("0.88")


@pytest.mark.parametrize("bad_rate", [0, -1.2, "0.85", None, True])
def test_invalid_rate_uses_fallback(currency_service, rate_source, bad_rate):
    rate_source.rates["EUR"] = bad_rate
    assert asyncio.run(currency_service.rate_to_gbp("EUR")) == Decimal("0.85")


@pytest.mark.parametrize("literal", ["NaN", "Infinity", "-Infinity"])
def test_non_finite_rate_uses_fallback(rate_cache, clock, literal):
    # json= cannot encode these, so the body is written by hand
    body = '{"rates": {"GBP": ' + literal + '}}'
    source = httpx.MockTransport(
        lambda request: httpx.Response(200, content=body, headers={"content-type": "application/json"})
    )
    service = CurrencyService(rate_cache, api_url="https://rates.test/{currency}", transport=source, clock=clock)
    assert asyncio.run(service.convert_to_gbp(Decimal("100"), "EUR")) == Decimal("85.00")
    assert rate_cache.get("EUR_GBP") is None


def test_missing_gbp_rate_uses_fallback(currency_service, rate_source):
    # The fake source has no JPY entry, so the payload carries no GBP rate.
    assert asyncio.run(currency_service.rate_to_gbp("JPY")) == Decimal("0.0052")


def test_fallback_is_not_cached(currency_service, rate_source, rate_cache):
    rate_source.error = httpx.ConnectError("down")
    asyncio.run(currency_service.rate_to_gbp("EUR"))
    assert rate_cache.get("EUR_GBP") is None

    rate_source.error = None
    assert asyncio.run(currency_service.rate_to_gbp("EUR")) == Decimal("0.86")
    assert rate_source.calls == ["EUR", "EUR"]


def test_unlisted_currency_falls_back_to_one(currency_service, rate_source):
    rate_source.error = httpx.ConnectError("down")
    assert asyncio.run(currency_service.rate_to_gbp("XYZ")) == Decimal("1")


def test_fallback_counts_metric(monkeypatch, currency_service, rate_source):
    seen = []
    monkeypatch.setattr(currency_module, "incr", lambda name, value=1, tags=None: seen.append((name, tags)))
    rate_source.error = httpx.ConnectError("down")
    asyncio.run(currency_service.rate_to_gbp("SEK"))
    assert seen == [("fx.rate.fallback", {"currency": "SEK"})]


def test_convert_with_fallback_rate(currency_service, rate_source):
    rate_source.error = httpx.ConnectError("down")
    assert asyncio.run(currency_service.convert_to_gbp(Decimal("100"), "EUR")) == Decimal("85.00")


def test_convert_rounds_half_up_to_pence(rate_cache, clock):
    source = httpx.MockTransport(lambda request: httpx.Response(200, json={"rates": {"GBP": 0.125}}))
    service = CurrencyService(rate_cache, api_url="https://rates.test/{currency}", transport=source, clock=clock)
    assert asyncio.run(service.convert_to_gbp(1, "EUR")) == Decimal("0.13")
    assert asyncio.run(service.convert_to_gbp("3", "EUR")) == Decimal("0.38")


def test_custom_fallback_table(rate_cache):
    def boom(request):
        raise httpx.ConnectError("down", request=request)

    service = CurrencyService(
        rate_cache,
        api_url="https://rates.test/{currency}",
        fallback_rates={"EUR": Decimal("0.5")},
        transport=httpx.MockTransport(boom),
    )
    assert asyncio.run(service.convert_to_gbp(10, "EUR")) == Decimal("5.00")
    assert asyncio.run(service.rate_to_gbp("USD")) == Decimal("1")


def test_fallback_table_covers_supported_currencies():
    assert set(FALLBACK_RATES_TO_GBP) == set(SUPPORTED_CURRENCIES) - {"GBP"}
    assert all(rate > 0 for rate in FALLBACK_RATES_TO_GBP.values())


def test_normalize_currency():
    assert normalize_currency(" eur ") == "EUR"
    assert normalize_currency("") == "GBP"
    assert normalize_currency(None) == "GBP"


def test_format_currency():
    assert format_currency(Decimal("85")) == "£85.00"
    assert format_currency(Decimal("12.345"), "EUR") == "€12.35"
    assert format_currency(3, "XYZ") == "XYZ3.00"
