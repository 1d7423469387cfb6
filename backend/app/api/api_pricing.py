from fastapi import APIRouter

from ..schemas.pricing import PricingCalculation, PricingRequest
from ..schemas.quote import RoomRateQuoteIn, RoomRateQuoteOut
from ..services.pricing_engine import calculate_pricing
from ..services.rate_profiles import profile_from_room_rate, quantities_from_inventory
from .dependencies import require_supported_currency

router = APIRouter(tags=["pricing"])


@router.post("/pricing/calculate", response_model=PricingCalculation)
def calculate(body: PricingRequest):
    """Price one quote line from an explicit rate profile and quantities."""
    require_supported_currency(body.profile.currency, field="profile.currency")
    return calculate_pricing(body.profile, body.quantities)


@router.post("/pricing/room-rate", response_model=RoomRateQuoteOut)
def price_room_rate(body: RoomRateQuoteIn):
    """Seed a quote line from a contracted room rate and price it.

    Without explicit quantities the line covers the inventory's nights, the
    rate's occupancy and a single room.
    """
    require_supported_currency(body.rate.rate_currency, field="rate.rate_currency")
    profile = profile_from_room_rate(body.rate)
    quantities = body.quantities or quantities_from_inventory(body.inventory, body.rate)
    return RoomRateQuoteOut(
        profile=profile,
        quantities=quantities,
        pricing=calculate_pricing(profile, quantities),
    )
