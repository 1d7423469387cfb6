from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from .inventory import RoomRate, TourRoomInventory
from .pricing import BookingQuantities, PricingCalculation, RateProfile


class QuoteSummary(BaseModel):
    currency: Optional[str] = None  # None when lines are in different currencies
    total_rooms: int = 0
    total_guests: int = 0
    grand_total: Decimal = Decimal("0")


class QuoteItemIn(BaseModel):
    inventory_id: str
    occupancy_type: str
    hotel_name: str = "Unknown Hotel"
    room_type_name: str = ""
    check_in_date: Optional[date] = None
    check_out_date: Optional[date] = None
    profile: RateProfile
    quantities: BookingQuantities


class QuoteItemOut(QuoteItemIn):
    pricing: PricingCalculation

    model_config = {
        "from_attributes": True
    }


class QuoteSummaryIn(BaseModel):
    items: List[QuoteItemIn] = Field(default_factory=list)
    convert_to_gbp: bool = False


class QuoteSummaryOut(BaseModel):
    items: List[QuoteItemOut]
    summary: QuoteSummary
    converted: bool = False


class RoomRateQuoteIn(BaseModel):
    inventory: TourRoomInventory
    rate: RoomRate
    quantities: Optional[BookingQuantities] = None


class RoomRateQuoteOut(BaseModel):
    profile: RateProfile
    quantities: BookingQuantities
    pricing: PricingCalculation
