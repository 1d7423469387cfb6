import asyncio

import httpx
import pytest

from app.main import app
from app.api import dependencies
from app.services.currency import CurrencyService
from app.services.fx_cache import InMemoryRateCache


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRateSource:
    """Stand-in for the exchange-rate API, served through httpx.MockTransport."""

    def __init__(self, rates=None):
        self.rates = dict(rates or {"EUR": 0.86, "USD": 0.78})
        self.calls: list[str] = []
        self.error: Exception | None = None
        self.status_code = 200
        self.delay = 0.0
        self.in_flight = 0
        self.max_in_flight = 0

    async def handler(self, request: httpx.Request) -> httpx.Response:
        code = request.url.path.rsplit("/", 1)[-1]
        self.calls.append(code)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.error is not None:
                raise self.error
            rates = {"GBP": self.rates[code]} if code in self.rates else {}
            return httpx.Response(self.status_code, json={"base": code, "rates": rates})
        finally:
            self.in_flight -= 1

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rate_source():
    return FakeRateSource()


@pytest.fixture
def rate_cache():
    return InMemoryRateCache()


@pytest.fixture
def currency_service(rate_source, rate_cache, clock):
    return CurrencyService(
        rate_cache,
        api_url="https://rates.test/v4/latest/{currency}",
        transport=rate_source.transport,
        clock=clock,
    )


@pytest.fixture(autouse=True)
def reset_app_state():
    """Keep dependency overrides and the shared FX service test-local."""
    dependencies.reset_currency_service()
    yield
    app.dependency_overrides.clear()
    dependencies.reset_currency_service()
