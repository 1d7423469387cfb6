"""Caches for live FX rates.

Both caches expose the same small surface (``get``/``set``/``clear``) and
store the fetch timestamp next to the rate, so freshness is decided by the
caller (:class:`app.services.currency.CurrencyService`) rather than by the
backend. The Redis variant additionally expires keys with the TTL so stale
entries do not pile up in a shared instance.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional, Protocol

import redis

from app.core.config import settings
from app.utils.redis_cache import FX_RATE_KEY_PREFIX, NullRedis, fx_rate_key, get_redis_client

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachedRate:
    rate: Decimal
    fetched_at: float  # epoch seconds


class RateCache(Protocol):
    def get(self, key: str) -> Optional[CachedRate]: ...

    def set(self, key: str, rate: Decimal, fetched_at: float) -> None: ...

    def clear(self) -> None: ...


class InMemoryRateCache:
    """Process-local cache keyed by ``"{currency}_GBP"``."""

    def __init__(self) -> None:
        self._entries: Dict[str, CachedRate] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[CachedRate]:
        with self._lock:
            return self._entries.get(key)

    def set(self, key: str, rate: Decimal, fetched_at: float) -> None:
        with self._lock:
            self._entries[key] = CachedRate(rate=rate, fetched_at=fetched_at)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RedisRateCache:
    """Rate cache shared between workers through Redis.

    Values are stored as ``"<rate>|<fetched_at>"``. Any Redis failure reads
    as a miss so the caller falls through to a live lookup.
    """

    def __init__(self, client: Optional[redis.Redis] = None, ttl_seconds: Optional[int] = None) -> None:
        self._client = client
        self.ttl_seconds = int(ttl_seconds or settings.FX_CACHE_TTL_SECONDS)

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            self._client = get_redis_client()
        return self._client

    def get(self, key: str) -> Optional[CachedRate]:
        try:
            raw = self.client.get(fx_rate_key(key))
        except redis.exceptions.RedisError as exc:
            logger.warning("FX cache read failed for %s: %s", key, exc)
            return None
        if not raw:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        try:
            rate_s, ts_s = raw.split("|", 1)
            return CachedRate(rate=Decimal(rate_s), fetched_at=float(ts_s))
        except (ValueError, InvalidOperation):
            # Ignore malformed cache entries and fall through to live lookup
            logger.warning("Ignoring malformed FX cache entry %s=%r", key, raw)
            return None

    def set(self, key: str, rate: Decimal, fetched_at: float) -> None:
        try:
            self.client.setex(fx_rate_key(key), self.ttl_seconds, f"{rate}|{fetched_at}")
        except redis.exceptions.RedisError as exc:
            logger.warning("FX cache write failed for %s: %s", key, exc)

    def clear(self) -> None:
        try:
            for key in self.client.scan_iter(f"{FX_RATE_KEY_PREFIX}:*"):
                self.client.delete(key)
        except redis.exceptions.RedisError as exc:
            logger.warning("FX cache clear failed: %s", exc)


def build_rate_cache(backend: Optional[str] = None) -> RateCache:
    """Return the cache configured by ``FX_CACHE_BACKEND`` (memory|redis)."""
    kind = (backend or settings.FX_CACHE_BACKEND or "memory").strip().lower()
    if kind == "redis":
        client = get_redis_client()
        if isinstance(client, NullRedis):
            logger.warning("FX_CACHE_BACKEND=redis but Redis is disabled; using in-memory cache")
            return InMemoryRateCache()
        return RedisRateCache(client=client)
    if kind != "memory":
        logger.warning("Unknown FX_CACHE_BACKEND %r; using in-memory cache", kind)
    return InMemoryRateCache()
