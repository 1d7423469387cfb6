"""Normalize quote amounts to GBP.

Single entrypoints `CurrencyService.rate_to_gbp(currency)` and
`CurrencyService.convert_to_gbp(amount, currency)`.

- GBP is returned as-is without touching the cache or the network.
- Live rates come from an ExchangeRate-API style endpoint
  (``GET .../latest/{currency}`` returning ``{"rates": {"GBP": 0.85, ...}}``)
  and are cached for ``FX_CACHE_TTL_SECONDS`` (5 minutes by default).
- Never raises on a failed lookup. Network errors, timeouts, non-2xx
  responses and missing or non-positive rates all fall back to
  `FALLBACK_RATES_TO_GBP` (unlisted currencies use 1). Fallback values are
  not cached, so the next call retries the live source.
"""

from __future__ import annotations

import logging
import math
import time
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Dict, Optional, Union

import httpx

from app.core.config import settings
from app.services.fx_cache import InMemoryRateCache, RateCache
from app.utils.metrics import Timer, incr

logger = logging.getLogger(__name__)

REFERENCE_CURRENCY = "GBP"

SUPPORTED_CURRENCIES = (
    "GBP", "EUR", "USD", "CHF", "CAD", "AUD", "JPY",
    "SEK", "NOK", "DKK", "PLN", "CZK", "HUF",
)

CURRENCY_SYMBOLS: Dict[str, str] = {
    "GBP": "£",
    "EUR": "€",
    "USD": "$",
    "CHF": "CHF",
    "CAD": "C$",
    "AUD": "A$",
    "JPY": "¥",
    "SEK": "kr",
    "NOK": "kr",
    "DKK": "kr",
    "PLN": "zł",
    "CZK": "Kč",
    "HUF": "Ft",
}

# Approximate rates used only when the live source is unavailable.
FALLBACK_RATES_TO_GBP: Dict[str, Decimal] = {
    "EUR": Decimal("0.85"),
    "USD": Decimal("0.79"),
    "CHF": Decimal("0.88"),
    "CAD": Decimal("0.58"),
    "AUD": Decimal("0.52"),
    "JPY": Decimal("0.0052"),
    "SEK": Decimal("0.075"),
    "NOK": Decimal("0.075"),
    "DKK": Decimal("0.11"),
    "PLN": Decimal("0.20"),
    "CZK": Decimal("0.034"),
    "HUF": Decimal("0.0021"),
}

_CENT = Decimal("0.01")
_ONE = Decimal("1")

Amount = Union[Decimal, int, float, str]


class FxRateError(Exception):
    """The live rate source returned something unusable."""


def normalize_currency(code: Optional[str]) -> str:
    """Upper-case a currency code; blank means the reference currency."""
    return (code or "").strip().upper() or REFERENCE_CURRENCY


def _to_decimal(value: Amount) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def format_currency(amount: Amount, currency: str = REFERENCE_CURRENCY) -> str:
    """Return ``amount`` with the currency symbol and two decimals, e.g. ``£85.00``."""
    code = normalize_currency(currency)
    symbol = CURRENCY_SYMBOLS.get(code, code)
    value = _to_decimal(amount).quantize(_CENT, rounding=ROUND_HALF_UP)
    return f"{symbol}{value}"


class CurrencyService:
    """Convert amounts into GBP using a cached live rate with a static fallback.

    The rate cache is injected so tests (and multi-worker deployments using
    :class:`~app.services.fx_cache.RedisRateCache`) control its lifetime.
    """

    def __init__(
        self,
        cache: Optional[RateCache] = None,
        *,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        ttl_seconds: Optional[float] = None,
        fallback_rates: Optional[Dict[str, Decimal]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.cache: RateCache = cache if cache is not None else InMemoryRateCache()
        self.api_url = api_url or settings.FX_API_URL
        self.timeout = float(timeout if timeout is not None else settings.FX_TIMEOUT_SECONDS)
        self.ttl_seconds = float(ttl_seconds if ttl_seconds is not None else settings.FX_CACHE_TTL_SECONDS)
        self.fallback_rates = dict(FALLBACK_RATES_TO_GBP if fallback_rates is None else fallback_rates)
        self._transport = transport
        self._clock = clock

    @staticmethod
    def cache_key(currency: str) -> str:
        return f"{currency}_{REFERENCE_CURRENCY}"

    def fallback_rate(self, currency: str) -> Decimal:
        return self.fallback_rates.get(normalize_currency(currency), _ONE)

    async def _fetch_rate(self, currency: str) -> Decimal:
        url = self.api_url.format(currency=currency)
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            transport=self._transport,
        ) as http:
            res = await http.get(url, headers={"accept": "application/json"})
            res.raise_for_status()
            data = res.json()
        if not isinstance(data, dict):
            raise FxRateError("Unexpected exchange rate payload")
        rates = data.get("rates")
        rate = rates.get(REFERENCE_CURRENCY) if isinstance(rates, dict) else None
        if (
            isinstance(rate, bool)
            or not isinstance(rate, (int, float))
            or not math.isfinite(rate)
            or rate <= 0
        ):
            raise FxRateError(f"Invalid exchange rate received: {rate!r}")
        return Decimal(str(rate))

    async def rate_to_gbp(self, currency: str) -> Decimal:
        """Return how many GBP one unit of ``currency`` is worth."""
        code = normalize_currency(currency)
        if code == REFERENCE_CURRENCY:
            return _ONE

        key = self.cache_key(code)
        cached = self.cache.get(key)
        if cached is not None and self._clock() - cached.fetched_at < self.ttl_seconds:
            return cached.rate

        try:
            with Timer("fx.rate.fetch.ms", tags={"currency": code}):
                rate = await self._fetch_rate(code)
        except Exception as exc:
            fallback = self.fallback_rate(code)
            logger.warning(
                "Failed to fetch exchange rate for %s (%s); using fallback rate %s",
                code,
                exc,
                fallback,
            )
            incr("fx.rate.fallback", tags={"currency": code})
            return fallback

        self.cache.set(key, rate, self._clock())
        logger.info("Fetched exchange rate: 1 %s = %s %s", code, rate, REFERENCE_CURRENCY)
        return rate

    async def convert_to_gbp(self, amount: Amount, currency: str) -> Decimal:
        """Convert ``amount`` to GBP, rounded half-up to pence.

        GBP amounts are returned unchanged (no rounding).
        """
        value = _to_decimal(amount)
        code = normalize_currency(currency)
        if code == REFERENCE_CURRENCY:
            return value
        rate = await self.rate_to_gbp(code)
        converted = (value * rate).quantize(_CENT, rounding=ROUND_HALF_UP)
        logger.debug("Converted %s %s = %s %s (rate: %s)", value, code, converted, REFERENCE_CURRENCY, rate)
        return converted
