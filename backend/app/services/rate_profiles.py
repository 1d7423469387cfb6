"""Seed pricing inputs from the contracted room-rate records."""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, List, Optional

from app.schemas.inventory import RoomRate, TourRoomInventory
from app.schemas.pricing import BookingQuantities, RateProfile


def complete_components(components: Iterable) -> List:
    """Drop components that are still being filled in (no name/type/amount)."""
    return [c for c in components or [] if c.is_complete]


def _rate_or_base(value: Optional[Decimal], base: Decimal) -> Decimal:
    # Zero is treated like "not set": a zero extra-night rate on a contract
    # means the hotel did not quote one.
    if value is None or value == 0:
        return base
    return value


def profile_from_room_rate(rate: RoomRate) -> RateProfile:
    """Build the pricing profile for one occupancy of an inventory block."""
    base = rate.rate_per_room_per_night
    return RateProfile(
        currency=rate.rate_currency,
        base_rate_per_room_per_night=base,
        extra_night_rate_before=_rate_or_base(rate.extra_night_before_rate, base),
        extra_night_rate_after=_rate_or_base(rate.extra_night_after_rate, base),
        base_markup_percentage=rate.base_markup_percentage or Decimal("0"),
        extra_night_markup_percentage=rate.extra_night_markup_percentage or Decimal("0"),
        rate_components=complete_components(rate.rate_components),
        taxes=list(rate.taxes or []),
    )


def quantities_from_inventory(
    inventory: TourRoomInventory,
    rate: RoomRate,
    *,
    quantity_of_rooms: int = 1,
    extra_nights_before: int = 0,
    extra_nights_after: int = 0,
) -> BookingQuantities:
    """Default quantities for a freshly added quote line."""
    return BookingQuantities(
        nights=inventory.number_of_nights,
        extra_nights_before=extra_nights_before,
        extra_nights_after=extra_nights_after,
        number_of_guests=rate.number_of_guests,
        quantity_of_rooms=quantity_of_rooms,
    )
