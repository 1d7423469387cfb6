"""Read-only records supplied by the hotel/tour/contract management layer.

The pricing side never creates or mutates these; it only reads the fields
needed to seed a quote line.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from .pricing import RateComponent, TaxRule

TourStatus = Literal["planning", "confirmed", "completed", "cancelled"]
ContractStatus = Literal["draft", "active", "expired", "cancelled"]
OccupancyType = Literal["single", "double", "triple", "quad"]


class Hotel(BaseModel):
    id: str
    name: str
    city: str
    country: str
    address: Optional[str] = None
    star_rating: Optional[int] = Field(default=None, ge=1, le=5)
    hotel_chain: Optional[str] = None
    check_in_time: Optional[str] = None
    check_out_time: Optional[str] = None
    show_on_frontend: bool = True
    is_closed: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ContractDates(BaseModel):
    start_date: date
    end_date: date


class ContractPayment(BaseModel):
    deposit_percentage: Optional[Decimal] = None
    deposit_amount: Optional[Decimal] = None
    payment_terms: Optional[str] = None
    currency: Optional[str] = None


class PenaltyTier(BaseModel):
    days_before: int
    penalty_percentage: Decimal


class ContractCancellation(BaseModel):
    policy_text: Optional[str] = None
    penalty_tiers: List[PenaltyTier] = Field(default_factory=list)


class ContractAttrition(BaseModel):
    threshold_percentage: Optional[Decimal] = None
    penalty_per_room: Optional[Decimal] = None


class ContractTerms(BaseModel):
    contract_dates: Optional[ContractDates] = None
    payment: Optional[ContractPayment] = None
    cancellation: Optional[ContractCancellation] = None
    attrition: Optional[ContractAttrition] = None
    cutoff_date: Optional[date] = None
    special_terms: List[str] = Field(default_factory=list)


class HotelContract(BaseModel):
    contract_id: str
    hotel_id: str
    contract_reference_number: Optional[str] = None
    contract_status: ContractStatus = "draft"
    terms: Optional[ContractTerms] = None
    notes: Optional[str] = None


class Tour(BaseModel):
    tour_id: str
    tour_code: str
    tour_name: str
    tour_description: Optional[str] = None
    start_date: date
    end_date: date
    status: TourStatus = "planning"


class TourRoomInventory(BaseModel):
    inventory_id: str
    tour_id: str
    hotel_id: str
    contract_id: Optional[str] = None
    check_in_date: date
    check_out_date: date
    number_of_nights: int = Field(ge=0)
    room_type_id: str
    room_type_name: str
    quantity_allocated: int = 0
    quantity_sold: int = 0
    quantity_available: int = 0
    hotel: Optional[Hotel] = None


class RoomRate(BaseModel):
    rate_id: str
    inventory_id: str
    occupancy_type: OccupancyType
    number_of_guests: int = Field(ge=1, le=8)
    rate_per_room_per_night: Decimal = Field(ge=0)
    rate_currency: str = "GBP"
    is_commissionable: bool = False
    commission_percentage: Optional[Decimal] = None
    base_markup_percentage: Optional[Decimal] = None
    extra_night_markup_percentage: Optional[Decimal] = None
    rate_components: List[RateComponent] = Field(default_factory=list)
    extra_night_before_rate: Optional[Decimal] = None
    extra_night_after_rate: Optional[Decimal] = None
    taxes: List[TaxRule] = Field(default_factory=list)
    notes: Optional[str] = None
