from decimal import Decimal

from pydantic import BaseModel, Field


class CurrencyOut(BaseModel):
    code: str
    symbol: str


class FxRateOut(BaseModel):
    currency: str
    rate_to_gbp: Decimal


class CurrencyConvertIn(BaseModel):
    amount: Decimal = Field(ge=0)
    currency: str = Field(min_length=3, max_length=3)


class CurrencyConvertOut(BaseModel):
    amount: Decimal
    currency: str
    amount_gbp: Decimal
    formatted: str
