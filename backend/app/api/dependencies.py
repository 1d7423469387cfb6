from typing import Optional

from fastapi import status

from ..services.currency import SUPPORTED_CURRENCIES, CurrencyService, normalize_currency
from ..services.fx_cache import build_rate_cache
from ..utils.errors import error_response

_currency_service: Optional[CurrencyService] = None


def get_currency_service() -> CurrencyService:
    """Process-wide currency service so the FX cache is shared across requests."""
    global _currency_service
    if _currency_service is None:
        _currency_service = CurrencyService(build_rate_cache())
    return _currency_service


def reset_currency_service() -> None:
    global _currency_service
    _currency_service = None


def require_supported_currency(code: str, field: str = "currency") -> str:
    currency = normalize_currency(code)
    if currency not in SUPPORTED_CURRENCIES:
        raise error_response(
            "Unsupported currency",
            {field: f"{currency} is not supported"},
            status.HTTP_422_UNPROCESSABLE_ENTITY,
        )
    return currency
