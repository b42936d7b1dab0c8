"""Versioned API router."""

from fastapi import APIRouter

from . import (
    availability,
    health,
    pricing,
    promo_codes,
    reservations,
)

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(availability.router)
router.include_router(pricing.router)
router.include_router(promo_codes.router)
router.include_router(reservations.router)

__all__ = ["router"]
