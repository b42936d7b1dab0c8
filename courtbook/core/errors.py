"""Typed failures raised by the booking engine.

Every error carries the HTTP status the API layer should answer with and a
``retryable`` flag. Only store failures are worth retrying; everything else is
a property of the request itself.
"""

from __future__ import annotations


class BookingError(Exception):
    """Base class for booking engine failures."""

    status_code: int = 400
    retryable: bool = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInterval(BookingError):
    """Bad time format, duration, granularity, operating hours or past date."""


class SlotConflict(BookingError):
    """The requested interval overlaps an existing reservation."""

    status_code = 409

    def __init__(self, message: str, conflicts: list | None = None) -> None:
        super().__init__(message)
        self.conflicts = conflicts or []


class PricingConfigurationMissing(BookingError):
    """No active pricing rule exists for a computed bucket pair."""

    status_code = 500

    def __init__(self, day_bucket: str, time_bucket: str) -> None:
        super().__init__(f"Pricing rule not found for {day_bucket} {time_bucket}")
        self.day_bucket = day_bucket
        self.time_bucket = time_bucket


class PricingRuleError(BookingError):
    """Rule table administration was rejected."""


class PromoInvalid(BookingError):
    """A promo code cannot be applied (unknown, inactive, expired, reused, capped)."""


class PromoAlreadyConsumed(PromoInvalid):
    """The customer already holds a redemption for this code."""

    status_code = 409


class PromoUsageLimitReached(PromoInvalid):
    """The code reached its total usage cap between validation and consumption."""

    status_code = 409


class PromoCodeNotFound(BookingError):
    """The referenced promo code does not exist."""

    status_code = 404


class CourtNotFound(BookingError):
    """The referenced court does not exist."""

    status_code = 404


class CourtUnavailable(BookingError):
    """The court exists but is not open for booking."""


class CustomerRequired(BookingError):
    """Only administrative holds may omit the customer."""


class ReservationNotFound(BookingError):
    """The referenced reservation does not exist."""

    status_code = 404


class InvalidStatusTransition(BookingError):
    """The reservation lifecycle does not allow the requested change."""


class PaymentReferenceInUse(BookingError):
    """The payment reference already belongs to another reservation."""

    status_code = 409


class StoreUnavailable(BookingError):
    """The store timed out or failed; nothing was written."""

    status_code = 503
    retryable = True


__all__ = [
    "BookingError",
    "CourtNotFound",
    "CourtUnavailable",
    "CustomerRequired",
    "InvalidInterval",
    "InvalidStatusTransition",
    "PaymentReferenceInUse",
    "PricingConfigurationMissing",
    "PricingRuleError",
    "PromoAlreadyConsumed",
    "PromoCodeNotFound",
    "PromoInvalid",
    "PromoUsageLimitReached",
    "ReservationNotFound",
    "SlotConflict",
    "StoreUnavailable",
]
