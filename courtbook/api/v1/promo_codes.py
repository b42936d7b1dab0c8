"""Promo code endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, status

from courtbook.api import deps
from courtbook.core.config import get_settings
from courtbook.core.errors import BookingError
from courtbook.schemas.promo_code import (
    PromoCodeCreate,
    PromoCodeRead,
    PromoCodeToggle,
    PromoValidateRead,
    PromoValidateRequest,
)
from courtbook.services import promo_code_service

router = APIRouter(prefix="/promo-codes", tags=["promo-codes"])


def _to_read(promo) -> PromoCodeRead:
    return PromoCodeRead.from_model(
        promo, is_expired=promo_code_service.is_expired(promo)
    )


@router.post(
    "/validate",
    response_model=PromoValidateRead,
    summary="Check a promo code for a booking amount",
    dependencies=[deps.BOOKING_RATE_DEP],
)
async def validate_promo_code(
    payload: PromoValidateRequest, engine: deps.EngineDep
) -> PromoValidateRead:
    try:
        result = await engine.validate_promo(
            code=payload.code,
            customer_phone=payload.customer_phone,
            amount=payload.amount,
        )
    except BookingError as exc:
        raise deps.as_http_exception(exc) from exc
    return PromoValidateRead(
        valid=result.valid,
        message=result.reason,
        discount=result.discount,
        final_amount=result.final_amount,
        promo_code_id=result.promo_code_id,
    )


@router.get("", response_model=list[PromoCodeRead], summary="List promo codes")
async def list_promo_codes(session: deps.SessionDep) -> list[PromoCodeRead]:
    promos = await promo_code_service.list_promo_codes(session)
    return [_to_read(promo) for promo in promos]


@router.post(
    "",
    response_model=PromoCodeRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create promo code",
)
async def create_promo_code(
    payload: PromoCodeCreate, session: deps.SessionDep
) -> PromoCodeRead:
    try:
        promo = await promo_code_service.create_promo_code(
            session,
            code=payload.code,
            discount_type=payload.discount_type,
            discount_value=payload.discount_value,
            max_total_uses=payload.max_total_uses,
            expires_at=payload.expires_at,
            default_expiry_days=get_settings().promo_default_expiry_days,
        )
    except BookingError as exc:
        raise deps.as_http_exception(exc) from exc
    return _to_read(promo)


@router.patch(
    "/{promo_code_id}", response_model=PromoCodeRead, summary="Activate or deactivate"
)
async def toggle_promo_code(
    promo_code_id: uuid.UUID, payload: PromoCodeToggle, session: deps.SessionDep
) -> PromoCodeRead:
    try:
        promo = await promo_code_service.set_promo_code_active(
            session, promo_code_id=promo_code_id, active=payload.active
        )
    except BookingError as exc:
        raise deps.as_http_exception(exc) from exc
    return _to_read(promo)
