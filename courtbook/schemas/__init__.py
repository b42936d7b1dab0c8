"""Schema exports."""

from courtbook.schemas.availability import (
    AvailabilityRead,
    AvailabilityRequest,
    BatchAvailabilityRequest,
    BatchSlotRead,
    ConflictRead,
    TimeSlot,
)
from courtbook.schemas.pricing import (
    PriceQuoteRead,
    PriceQuoteRequest,
    PriceSegmentRead,
    PricingRuleRead,
    PricingRuleUpsert,
)
from courtbook.schemas.promo_code import (
    PromoCodeCreate,
    PromoCodeRead,
    PromoCodeToggle,
    PromoValidateRead,
    PromoValidateRequest,
)
from courtbook.schemas.reservation import (
    AdminReservationCreate,
    BlockCreate,
    CustomerIn,
    CustomerRead,
    PaymentUpdate,
    ReservationCancelRequest,
    ReservationCreate,
    ReservationCreateRead,
    ReservationRead,
    ReservationStatusUpdate,
)

__all__ = [
    "AdminReservationCreate",
    "AvailabilityRead",
    "AvailabilityRequest",
    "BatchAvailabilityRequest",
    "BatchSlotRead",
    "BlockCreate",
    "ConflictRead",
    "CustomerIn",
    "CustomerRead",
    "PaymentUpdate",
    "PriceQuoteRead",
    "PriceQuoteRequest",
    "PriceSegmentRead",
    "PricingRuleRead",
    "PricingRuleUpsert",
    "PromoCodeCreate",
    "PromoCodeRead",
    "PromoCodeToggle",
    "PromoValidateRead",
    "PromoValidateRequest",
    "ReservationCancelRequest",
    "ReservationCreate",
    "ReservationCreateRead",
    "ReservationRead",
    "ReservationStatusUpdate",
    "TimeSlot",
]
