from typing import List

from fastapi import APIRouter, Depends

from ..schemas.currency import CurrencyConvertIn, CurrencyConvertOut, CurrencyOut, FxRateOut
from ..services.currency import (
    CURRENCY_SYMBOLS,
    REFERENCE_CURRENCY,
    SUPPORTED_CURRENCIES,
    CurrencyService,
    format_currency,
)
from .dependencies import get_currency_service, require_supported_currency

router = APIRouter(tags=["currencies"])


@router.get("/currencies", response_model=List[CurrencyOut])
def list_currencies():
    return [CurrencyOut(code=code, symbol=CURRENCY_SYMBOLS.get(code, code)) for code in SUPPORTED_CURRENCIES]


@router.get("/currencies/{code}/rate", response_model=FxRateOut)
async def currency_rate(code: str, service: CurrencyService = Depends(get_currency_service)):
    """Current rate to GBP; falls back to the static table when the live source is down."""
    currency = require_supported_currency(code)
    return FxRateOut(currency=currency, rate_to_gbp=await service.rate_to_gbp(currency))


@router.post("/currencies/convert", response_model=CurrencyConvertOut)
async def convert_currency(
    body: CurrencyConvertIn,
    service: CurrencyService = Depends(get_currency_service),
):
    currency = require_supported_currency(body.currency)
    amount_gbp = await service.convert_to_gbp(body.amount, currency)
    return CurrencyConvertOut(
        amount=body.amount,
        currency=currency,
        amount_gbp=amount_gbp,
        formatted=format_currency(amount_gbp, REFERENCE_CURRENCY),
    )
