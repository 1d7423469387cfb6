"""Working quote: the set of priced lines a consultant is assembling.

Lines live only in memory. Every change to a line's quantities re-runs the
pricing engine for that line immediately, so ``item.pricing`` is never stale.
Converting to GBP produces a separate set of converted lines; totals read
that set until the quote is mutated again.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from app.schemas.inventory import Hotel, RoomRate, Tour, TourRoomInventory
from app.schemas.pricing import BookingQuantities, PricingCalculation, RateProfile
from app.schemas.quote import QuoteSummary
from app.services.currency import REFERENCE_CURRENCY, CurrencyService, normalize_currency
from app.services.pricing_engine import calculate_pricing
from app.services.rate_profiles import profile_from_room_rate, quantities_from_inventory

logger = logging.getLogger(__name__)

QUOTABLE_TOUR_STATUSES = ("planning", "confirmed")

_QUANTITY_FIELDS = frozenset(BookingQuantities.model_fields)


def quotable_tours(tours: Iterable[Tour]) -> List[Tour]:
    """Tours that can still be quoted (planning or confirmed)."""
    return [t for t in tours if t.status in QUOTABLE_TOUR_STATUSES]


@dataclass
class QuoteItem:
    inventory_id: str
    occupancy_type: str
    profile: RateProfile
    quantities: BookingQuantities
    hotel_name: str = "Unknown Hotel"
    room_type_name: str = ""
    check_in_date: Optional[date] = None
    check_out_date: Optional[date] = None
    pricing: PricingCalculation = field(init=False)

    def __post_init__(self) -> None:
        self.recalculate()

    @property
    def key(self) -> Tuple[str, str]:
        return (self.inventory_id, self.occupancy_type)

    @property
    def currency(self) -> str:
        return self.profile.currency

    def recalculate(self) -> PricingCalculation:
        self.pricing = calculate_pricing(self.profile, self.quantities)
        return self.pricing

    def update(self, **changes) -> PricingCalculation:
        """Change quantity fields (nights, extra nights, guests, rooms) and reprice."""
        unknown = set(changes) - _QUANTITY_FIELDS
        if unknown:
            raise ValueError(f"Unknown quantity fields: {', '.join(sorted(unknown))}")
        self.quantities = BookingQuantities(**{**self.quantities.model_dump(), **changes})
        return self.recalculate()


def summarize(items: Iterable[QuoteItem]) -> QuoteSummary:
    """Total rooms, guests and grand total over a set of lines."""
    items = list(items)
    currencies = {item.pricing.currency for item in items}
    return QuoteSummary(
        currency=currencies.pop() if len(currencies) == 1 else None,
        total_rooms=sum(item.quantities.quantity_of_rooms for item in items),
        total_guests=sum(
            item.quantities.number_of_guests * item.quantities.quantity_of_rooms for item in items
        ),
        grand_total=sum((item.pricing.grand_total for item in items), Decimal("0")),
    )


async def _convert_profile(profile: RateProfile, service: CurrencyService) -> RateProfile:
    source = profile.currency

    async def _maybe(amount: Optional[Decimal]) -> Optional[Decimal]:
        if amount is None:
            return None
        return await service.convert_to_gbp(amount, source)

    async def _component(component):
        code = normalize_currency(component.currency or source)
        if component.is_percentage or component.amount is None or code == REFERENCE_CURRENCY:
            return component
        amount = await service.convert_to_gbp(component.amount, code)
        return component.model_copy(update={"amount": amount, "currency": REFERENCE_CURRENCY})

    async def _tax(tax):
        # Only per-person taxes carry an amount that reaches the totals.
        if tax.tax_type != "per_person_per_night":
            return tax
        code = normalize_currency(tax.tax_currency or source)
        rate = await service.convert_to_gbp(tax.tax_rate, code)
        return tax.model_copy(update={"tax_rate": rate, "tax_currency": REFERENCE_CURRENCY})

    base, before, after, components, taxes = await asyncio.gather(
        service.convert_to_gbp(profile.base_rate_per_room_per_night, source),
        _maybe(profile.extra_night_rate_before),
        _maybe(profile.extra_night_rate_after),
        asyncio.gather(*(_component(c) for c in profile.rate_components)),
        asyncio.gather(*(_tax(t) for t in profile.taxes)),
    )
    return profile.model_copy(
        update={
            "currency": REFERENCE_CURRENCY,
            "base_rate_per_room_per_night": base,
            "extra_night_rate_before": before,
            "extra_night_rate_after": after,
            "rate_components": list(components),
            "taxes": list(taxes),
        }
    )


async def convert_item_to_gbp(item: QuoteItem, service: CurrencyService) -> QuoteItem:
    """Return a copy of ``item`` with every monetary input in GBP, repriced."""
    profile = await _convert_profile(item.profile, service)
    return QuoteItem(
        inventory_id=item.inventory_id,
        occupancy_type=item.occupancy_type,
        profile=profile,
        quantities=item.quantities,
        hotel_name=item.hotel_name,
        room_type_name=item.room_type_name,
        check_in_date=item.check_in_date,
        check_out_date=item.check_out_date,
    )


class Quote:
    """An ephemeral multi-line quote."""

    def __init__(self, items: Optional[Iterable[QuoteItem]] = None) -> None:
        self.items: List[QuoteItem] = list(items or [])
        self.converted_items: Optional[List[QuoteItem]] = None

    def __len__(self) -> int:
        return len(self.items)

    def _touch(self) -> None:
        # Converted lines describe the previous state of the quote.
        self.converted_items = None

    def find(self, inventory_id: str, occupancy_type: str) -> Optional[QuoteItem]:
        for item in self.items:
            if item.key == (inventory_id, occupancy_type):
                return item
        return None

    def add_item(self, item: QuoteItem) -> QuoteItem:
        self.items.append(item)
        self._touch()
        return item

    def add_rate(
        self,
        inventory: TourRoomInventory,
        rate: RoomRate,
        hotel: Optional[Hotel] = None,
    ) -> QuoteItem:
        """Add one room at ``rate``; repeats bump the room count of the existing line."""
        existing = self.find(inventory.inventory_id, rate.occupancy_type)
        if existing is not None:
            existing.update(quantity_of_rooms=existing.quantities.quantity_of_rooms + 1)
            self._touch()
            return existing

        hotel = hotel or inventory.hotel
        item = QuoteItem(
            inventory_id=inventory.inventory_id,
            occupancy_type=rate.occupancy_type,
            profile=profile_from_room_rate(rate),
            quantities=quantities_from_inventory(inventory, rate),
            hotel_name=hotel.name if hotel else "Unknown Hotel",
            room_type_name=inventory.room_type_name,
            check_in_date=inventory.check_in_date,
            check_out_date=inventory.check_out_date,
        )
        logger.info(
            "Quote line added",
            extra={"inventory_id": item.inventory_id, "occupancy_type": item.occupancy_type},
        )
        return self.add_item(item)

    def update_item(self, inventory_id: str, occupancy_type: str, **changes) -> QuoteItem:
        item = self.find(inventory_id, occupancy_type)
        if item is None:
            raise KeyError((inventory_id, occupancy_type))
        item.update(**changes)
        self._touch()
        return item

    def remove_item(self, inventory_id: str, occupancy_type: str) -> bool:
        before = len(self.items)
        self.items = [i for i in self.items if i.key != (inventory_id, occupancy_type)]
        removed = len(self.items) != before
        if removed:
            self._touch()
        return removed

    def clear(self) -> None:
        self.items = []
        self._touch()

    @property
    def display_items(self) -> List[QuoteItem]:
        if self.converted_items:
            return self.converted_items
        return self.items

    def total_rooms(self) -> int:
        return sum(item.quantities.quantity_of_rooms for item in self.display_items)

    def total_guests(self) -> int:
        return sum(
            item.quantities.number_of_guests * item.quantities.quantity_of_rooms
            for item in self.display_items
        )

    def grand_total(self) -> Decimal:
        return sum((item.pricing.grand_total for item in self.display_items), Decimal("0"))

    def summary(self) -> QuoteSummary:
        return summarize(self.display_items)

    async def convert_to_gbp(self, service: CurrencyService) -> List[QuoteItem]:
        """Convert every line concurrently; publish only once all are done."""
        if not self.items:
            return []
        converted = await asyncio.gather(*(convert_item_to_gbp(i, service) for i in self.items))
        self.converted_items = list(converted)
        return self.converted_items
