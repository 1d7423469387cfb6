"""Rate profiles, booking quantities and computed pricing breakdowns.

Rate components and tax rules are tagged variants: the ``rate_type`` /
``tax_type`` literal selects the concrete model, so an incoming JSON payload
is routed to exactly one shape and the engine dispatches on that tag.
"""

from decimal import Decimal
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

ComponentRateType = Literal["fixed", "per_person_per_night", "per_room_per_night"]
TaxType = Literal["percentage", "per_person_per_night", "per_room_per_night", "fixed"]


def _upper_code(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    code = str(v).strip().upper()
    return code or None


def _profile_currency(v: Optional[str]) -> str:
    return _upper_code(v) or "GBP"


CurrencyCode = Annotated[Optional[str], BeforeValidator(_upper_code)]


# --- Rate components ---

class _RateComponentBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = ""
    type: str = ""
    amount: Optional[Decimal] = None
    is_percentage: bool = False
    # Carried for display; tax allocation never reads it.
    is_taxable: bool = False
    currency: CurrencyCode = None  # defaults to the profile currency

    @property
    def is_complete(self) -> bool:
        """A component counts only once it has a name, a type and an amount."""
        return (
            bool((self.name or "").strip())
            and bool((self.type or "").strip())
            and self.amount is not None
            and self.amount >= 0
        )


class FixedComponent(_RateComponentBase):
    rate_type: Literal["fixed"] = "fixed"


class PerPersonPerNightComponent(_RateComponentBase):
    rate_type: Literal["per_person_per_night"] = "per_person_per_night"


class PerRoomPerNightComponent(_RateComponentBase):
    rate_type: Literal["per_room_per_night"] = "per_room_per_night"


RateComponent = Annotated[
    Union[FixedComponent, PerPersonPerNightComponent, PerRoomPerNightComponent],
    Field(discriminator="rate_type"),
]


# --- Tax rules ---

class _TaxRuleBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    tax_rate: Decimal = Field(ge=0)
    applies_to: List[str] = Field(default_factory=list)  # informational tag


class PercentageTax(_TaxRuleBase):
    tax_type: Literal["percentage"] = "percentage"
    tax_rate: Decimal = Field(ge=0, le=100)


class _AmountTaxBase(_TaxRuleBase):
    tax_currency: CurrencyCode = None  # defaults to the profile currency


class PerPersonPerNightTax(_AmountTaxBase):
    tax_type: Literal["per_person_per_night"] = "per_person_per_night"


class PerRoomPerNightTax(_AmountTaxBase):
    tax_type: Literal["per_room_per_night"] = "per_room_per_night"


class FixedTax(_AmountTaxBase):
    tax_type: Literal["fixed"] = "fixed"


TaxRule = Annotated[
    Union[PercentageTax, PerPersonPerNightTax, PerRoomPerNightTax, FixedTax],
    Field(discriminator="tax_type"),
]


# --- Inputs ---

class RateProfile(BaseModel):
    """Per-line pricing configuration. Every amount is in ``currency``."""

    model_config = ConfigDict(frozen=True)

    currency: Annotated[str, BeforeValidator(_profile_currency)] = "GBP"
    base_rate_per_room_per_night: Decimal = Field(ge=0)
    extra_night_rate_before: Optional[Decimal] = Field(default=None, ge=0)
    extra_night_rate_after: Optional[Decimal] = Field(default=None, ge=0)
    base_markup_percentage: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    extra_night_markup_percentage: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    rate_components: List[RateComponent] = Field(default_factory=list)
    taxes: List[TaxRule] = Field(default_factory=list)

    @property
    def effective_extra_rate_before(self) -> Decimal:
        if self.extra_night_rate_before is None:
            return self.base_rate_per_room_per_night
        return self.extra_night_rate_before

    @property
    def effective_extra_rate_after(self) -> Decimal:
        if self.extra_night_rate_after is None:
            return self.base_rate_per_room_per_night
        return self.extra_night_rate_after


class BookingQuantities(BaseModel):
    model_config = ConfigDict(frozen=True)

    nights: int = Field(0, ge=0)
    extra_nights_before: int = Field(0, ge=0)
    extra_nights_after: int = Field(0, ge=0)
    number_of_guests: int = Field(1, ge=1, le=8)
    quantity_of_rooms: int = Field(1, ge=1)

    @property
    def extra_nights(self) -> int:
        return self.extra_nights_before + self.extra_nights_after

    @property
    def total_nights(self) -> int:
        return self.nights + self.extra_nights


# --- Output ---

class ComponentCharge(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    type: str
    rate_type: ComponentRateType
    is_percentage: bool
    amount: Decimal


class TaxCharge(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    tax_type: TaxType
    base_tour: Decimal
    extra_nights: Decimal


class PricingCalculation(BaseModel):
    """Cost breakdown for one quote line, in the profile currency."""

    model_config = ConfigDict(frozen=True)

    currency: str
    tour_cost: Decimal
    extra_cost: Decimal
    components_total: Decimal
    subtotal: Decimal
    base_tour_taxes: Decimal
    extra_night_taxes: Decimal
    total_taxes: Decimal
    base_tour_total: Decimal
    base_markup_amount: Decimal
    base_tour_final: Decimal
    extra_night_total: Decimal
    extra_markup_amount: Decimal
    extra_night_final: Decimal
    total_markup: Decimal
    total_per_room: Decimal
    grand_total: Decimal
    component_charges: List[ComponentCharge] = Field(default_factory=list)
    tax_charges: List[TaxCharge] = Field(default_factory=list)


class PricingRequest(BaseModel):
    profile: RateProfile
    quantities: BookingQuantities
