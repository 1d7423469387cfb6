import logging

from fastapi import APIRouter, Depends

from ..schemas.quote import QuoteItemOut, QuoteSummaryIn, QuoteSummaryOut
from ..services.currency import CurrencyService
from ..services.quote_builder import Quote, QuoteItem
from .dependencies import get_currency_service, require_supported_currency

router = APIRouter(tags=["quotes"])
logger = logging.getLogger(__name__)


@router.post("/quotes/summary", response_model=QuoteSummaryOut)
async def quote_summary(
    payload: QuoteSummaryIn,
    service: CurrencyService = Depends(get_currency_service),
):
    """Price every line of a working quote and total it.

    With ``convert_to_gbp`` every line is normalized to GBP first (all lines
    concurrently) and the totals are taken over the converted lines.
    """
    quote = Quote()
    for idx, line in enumerate(payload.items):
        require_supported_currency(line.profile.currency, field=f"items.{idx}.profile.currency")
        quote.add_item(
            QuoteItem(
                inventory_id=line.inventory_id,
                occupancy_type=line.occupancy_type,
                profile=line.profile,
                quantities=line.quantities,
                hotel_name=line.hotel_name,
                room_type_name=line.room_type_name,
                check_in_date=line.check_in_date,
                check_out_date=line.check_out_date,
            )
        )

    converted = False
    if payload.convert_to_gbp and len(quote):
        await quote.convert_to_gbp(service)
        converted = True
        logger.info("Quote converted to GBP", extra={"lines": len(quote)})

    return QuoteSummaryOut(
        items=[QuoteItemOut.model_validate(item) for item in quote.display_items],
        summary=quote.summary(),
        converted=converted,
    )
