"""Pricing-related API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from courtbook.api import deps
from courtbook.core.config import get_settings
from courtbook.core.errors import BookingError
from courtbook.core.intervals import TimeInterval
from courtbook.schemas.pricing import (
    PriceQuoteRead,
    PriceQuoteRequest,
    PricingRuleRead,
    PricingRuleUpsert,
)
from courtbook.services import pricing_service

router = APIRouter(prefix="/pricing", tags=["pricing"])


@router.post(
    "/quote",
    response_model=PriceQuoteRead,
    summary="Price an interval without booking it",
    dependencies=[deps.DEFAULT_RATE_DEP],
)
async def quote_interval(
    payload: PriceQuoteRequest, engine: deps.EngineDep
) -> PriceQuoteRead:
    try:
        interval = TimeInterval.parse(
            payload.booking_date, payload.start_time, payload.end_time
        )
        quote = await engine.quote(interval)
    except BookingError as exc:
        raise deps.as_http_exception(exc) from exc
    return PriceQuoteRead.model_validate(
        {**quote.to_dict(), "currency": get_settings().currency}
    )


@router.get("/rules", response_model=list[PricingRuleRead], summary="List pricing rules")
async def list_rules(session: deps.SessionDep) -> list[PricingRuleRead]:
    rules = await pricing_service.list_pricing_rules(session)
    return [PricingRuleRead.model_validate(rule) for rule in rules]


@router.put(
    "/rules", response_model=PricingRuleRead, summary="Create or replace a pricing rule"
)
async def upsert_rule(
    payload: PricingRuleUpsert, session: deps.SessionDep
) -> PricingRuleRead:
    try:
        rule = await pricing_service.upsert_pricing_rule(
            session,
            day_bucket=payload.day_bucket,
            time_bucket=payload.time_bucket,
            price_per_hour=payload.price_per_hour,
            active=payload.active,
            max_rules=get_settings().max_pricing_rules,
        )
    except BookingError as exc:
        raise deps.as_http_exception(exc) from exc
    return PricingRuleRead.model_validate(rule)


@router.post(
    "/rules/seed",
    response_model=list[PricingRuleRead],
    status_code=status.HTTP_201_CREATED,
    summary="Install the default rate table",
)
async def seed_rules(session: deps.SessionDep) -> list[PricingRuleRead]:
    try:
        rules = await pricing_service.seed_default_rules(session)
    except BookingError as exc:
        raise deps.as_http_exception(exc) from exc
    return [PricingRuleRead.model_validate(rule) for rule in rules]
