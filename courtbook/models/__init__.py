"""ORM models package export."""

from courtbook.models.court import Court, CourtDayLock, CourtStatus
from courtbook.models.customer import Customer
from courtbook.models.pricing import (
    DayBucket,
    DiscountType,
    PricingCategory,
    PricingRule,
    PromoCode,
    PromoCodeRedemption,
    TimeBucket,
    category_for,
)
from courtbook.models.reservation import (
    CreatedBy,
    PaymentStatus,
    Reservation,
    ReservationStatus,
)

__all__ = [
    "Court",
    "CourtDayLock",
    "CourtStatus",
    "Customer",
    "DayBucket",
    "DiscountType",
    "PricingCategory",
    "PricingRule",
    "PromoCode",
    "PromoCodeRedemption",
    "TimeBucket",
    "category_for",
    "CreatedBy",
    "PaymentStatus",
    "Reservation",
    "ReservationStatus",
]
