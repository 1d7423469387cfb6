"""Per-line quote pricing.

Takes a :class:`~app.schemas.pricing.RateProfile` (all amounts in one
currency) plus :class:`~app.schemas.pricing.BookingQuantities` and returns a
:class:`~app.schemas.pricing.PricingCalculation`.

The line is priced as two segments that are marked up independently:

* the base tour (tour nights + rate components + taxes on the tour nights)
* the extra nights before/after the tour (extra nights + their taxes; rate
  components are never added to this segment)

The function is pure: no I/O, no rounding. Normalizing foreign-currency
profiles to GBP happens before this is called (see
:mod:`app.services.currency`); rounding happens only there.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable, List, Tuple

from app.schemas.pricing import (
    BookingQuantities,
    ComponentCharge,
    PricingCalculation,
    RateProfile,
    TaxCharge,
)
from app.services.rate_profiles import complete_components

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


def _pct(value: Decimal, percentage: Decimal) -> Decimal:
    return value * (percentage / _HUNDRED)


def _component_cost(
    component,
    *,
    tour_cost: Decimal,
    extra_cost: Decimal,
    guests: int,
    total_nights: int,
) -> Decimal:
    if component.is_percentage:
        return _pct(tour_cost + extra_cost, component.amount)
    if component.rate_type == "fixed":
        return component.amount
    if component.rate_type == "per_person_per_night":
        return component.amount * guests * total_nights
    if component.rate_type == "per_room_per_night":
        return component.amount * total_nights
    raise ValueError(f"Unknown component rate_type: {component.rate_type!r}")


def _allocate_tax(
    tax,
    *,
    tour_cost: Decimal,
    extra_cost: Decimal,
    quantities: BookingQuantities,
) -> Tuple[Decimal, Decimal]:
    """Return ``(base_tour, extra_nights)`` shares of one tax rule."""
    if tax.tax_type == "percentage":
        return _pct(tour_cost, tax.tax_rate), _pct(extra_cost, tax.tax_rate)
    if tax.tax_type == "per_person_per_night":
        guests = quantities.number_of_guests
        return (
            tax.tax_rate * guests * quantities.nights,
            tax.tax_rate * guests * quantities.extra_nights,
        )
    # Fixed and per-room-per-night taxes are accepted on a rate but do not
    # contribute to the computed totals.
    if tax.tax_type in ("fixed", "per_room_per_night"):
        return _ZERO, _ZERO
    raise ValueError(f"Unknown tax_type: {tax.tax_type!r}")


def price_components(
    components: Iterable,
    *,
    tour_cost: Decimal,
    extra_cost: Decimal,
    quantities: BookingQuantities,
) -> List[ComponentCharge]:
    """Cost every complete rate component; incomplete ones are skipped."""
    charges: List[ComponentCharge] = []
    for component in complete_components(components):
        amount = _component_cost(
            component,
            tour_cost=tour_cost,
            extra_cost=extra_cost,
            guests=quantities.number_of_guests,
            total_nights=quantities.total_nights,
        )
        charges.append(
            ComponentCharge(
                name=component.name,
                type=component.type,
                rate_type=component.rate_type,
                is_percentage=component.is_percentage,
                amount=amount,
            )
        )
    return charges


def calculate_pricing(profile: RateProfile, quantities: BookingQuantities) -> PricingCalculation:
    """Return the full cost breakdown for one quote line.

    Business rules (guest bounds, non-zero nights, percentage ranges) are
    enforced by the schemas, not here: zero nights simply produce zeroed
    sub-totals.
    """
    tour_cost = quantities.nights * profile.base_rate_per_room_per_night
    extra_cost = (
        quantities.extra_nights_before * profile.effective_extra_rate_before
        + quantities.extra_nights_after * profile.effective_extra_rate_after
    )

    component_charges = price_components(
        profile.rate_components,
        tour_cost=tour_cost,
        extra_cost=extra_cost,
        quantities=quantities,
    )
    components_total = sum((c.amount for c in component_charges), _ZERO)
    subtotal = tour_cost + extra_cost + components_total

    # Taxes are split per segment so each segment can carry its own markup.
    base_tour_taxes = _ZERO
    extra_night_taxes = _ZERO
    tax_charges: List[TaxCharge] = []
    for tax in profile.taxes:
        base_share, extra_share = _allocate_tax(
            tax, tour_cost=tour_cost, extra_cost=extra_cost, quantities=quantities
        )
        base_tour_taxes += base_share
        extra_night_taxes += extra_share
        tax_charges.append(
            TaxCharge(
                name=tax.name,
                tax_type=tax.tax_type,
                base_tour=base_share,
                extra_nights=extra_share,
            )
        )
    total_taxes = base_tour_taxes + extra_night_taxes

    base_tour_total = tour_cost + components_total + base_tour_taxes
    base_markup_amount = _pct(base_tour_total, profile.base_markup_percentage)
    base_tour_final = base_tour_total + base_markup_amount

    extra_night_total = _ZERO
    extra_markup_amount = _ZERO
    extra_night_final = _ZERO
    if quantities.extra_nights_before > 0 or quantities.extra_nights_after > 0:
        extra_night_total = extra_cost + extra_night_taxes
        extra_markup_amount = _pct(extra_night_total, profile.extra_night_markup_percentage)
        extra_night_final = extra_night_total + extra_markup_amount

    total_markup = base_markup_amount + extra_markup_amount
    total_per_room = base_tour_final + extra_night_final
    grand_total = total_per_room * quantities.quantity_of_rooms

    logger.debug(
        "Pricing calculated",
        extra={
            "currency": profile.currency,
            "base_tour_total": str(base_tour_total),
            "base_markup_amount": str(base_markup_amount),
            "extra_night_final": str(extra_night_final),
            "total_per_room": str(total_per_room),
            "quantity_of_rooms": quantities.quantity_of_rooms,
            "grand_total": str(grand_total),
        },
    )

    return PricingCalculation(
        currency=profile.currency,
        tour_cost=tour_cost,
        extra_cost=extra_cost,
        components_total=components_total,
        subtotal=subtotal,
        base_tour_taxes=base_tour_taxes,
        extra_night_taxes=extra_night_taxes,
        total_taxes=total_taxes,
        base_tour_total=base_tour_total,
        base_markup_amount=base_markup_amount,
        base_tour_final=base_tour_final,
        extra_night_total=extra_night_total,
        extra_markup_amount=extra_markup_amount,
        extra_night_final=extra_night_final,
        total_markup=total_markup,
        total_per_room=total_per_room,
        grand_total=grand_total,
        component_charges=component_charges,
        tax_charges=tax_charges,
    )
