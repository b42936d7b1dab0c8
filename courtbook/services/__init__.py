"""Service layer exports."""
from courtbook.services import (
    availability_service,
    pricing_service,
    promo_code_service,
    reservation_service,
)

__all__ = [
    "availability_service",
    "pricing_service",
    "promo_code_service",
    "reservation_service",
]
