import logging
import os
from typing import Optional

import redis

from app.core.config import settings

_redis_client: Optional[redis.Redis] = None

FX_RATE_KEY_PREFIX = "fx:rate"


class NullRedis:
    """No-op Redis client used when Redis is disabled or unavailable.

    Methods mirror the minimal surface used by the FX rate cache so callers
    can proceed without needing try/except around get_redis_client().
    """

    def get(self, key: str):
        return None

    def setex(self, key: str, expire: int, value: str):
        return None

    def scan_iter(self, pattern: str):
        return iter(())

    def delete(self, key: str):
        return 0

    def close(self):
        return None


def get_redis_client() -> redis.Redis:
    global _redis_client
    if _redis_client is None:
        url = (getattr(settings, "REDIS_URL", "") or "").strip()
        # Allow disabling via empty/none/disabled/false
        if not url or url.lower() in {"none", "disabled", "false", "0"}:
            _redis_client = NullRedis()  # type: ignore[assignment]
            return _redis_client
        try:
            # Conservative socket timeouts so a slow Redis never stalls a
            # quote recomputation for longer than a live FX lookup would.
            try:
                conn_to = float(os.getenv("REDIS_CONNECT_TIMEOUT", "0.5"))
            except ValueError:
                conn_to = 0.5
            try:
                read_to = float(os.getenv("REDIS_SOCKET_TIMEOUT", "0.5"))
            except ValueError:
                read_to = 0.5
            _redis_client = redis.from_url(
                url,
                decode_responses=True,
                socket_connect_timeout=conn_to,
                socket_timeout=read_to,
            )
        except (redis.exceptions.RedisError, ValueError) as exc:
            logging.warning("Redis unavailable, using no-op client: %s", exc)
            _redis_client = NullRedis()  # type: ignore[assignment]
    return _redis_client


def fx_rate_key(cache_key: str) -> str:
    """Return the Redis key for an FX cache entry such as ``EUR_GBP``."""
    return f"{FX_RATE_KEY_PREFIX}:{cache_key}"


def close_redis_client() -> None:
    """Close the global Redis client if it exists."""
    global _redis_client
    if _redis_client is not None:
        try:
            _redis_client.close()
        except redis.exceptions.RedisError as exc:  # pragma: no cover - best effort
            logging.warning("Error closing Redis client: %s", exc)
        finally:
            _redis_client = None
