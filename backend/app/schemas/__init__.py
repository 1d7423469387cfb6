from .pricing import (
    RateProfile,
    BookingQuantities,
    RateComponent,
    FixedComponent,
    PerPersonPerNightComponent,
    PerRoomPerNightComponent,
    TaxRule,
    PercentageTax,
    PerPersonPerNightTax,
    PerRoomPerNightTax,
    FixedTax,
    ComponentCharge,
    TaxCharge,
    PricingCalculation,
    PricingRequest,
)
from .inventory import (
    Hotel,
    HotelContract,
    ContractTerms,
    Tour,
    TourRoomInventory,
    RoomRate,
)
from .quote import (
    QuoteSummary,
    QuoteItemIn,
    QuoteItemOut,
    QuoteSummaryIn,
    QuoteSummaryOut,
    RoomRateQuoteIn,
    RoomRateQuoteOut,
)
from .currency import CurrencyOut, FxRateOut, CurrencyConvertIn, CurrencyConvertOut
