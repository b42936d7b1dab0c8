"""Promo code ledger: validation, discounting, single-use consumption."""

from __future__ import annotations

import datetime
import logging
import uuid
from dataclasses import dataclass
from datetime import UTC
from decimal import Decimal, ROUND_HALF_UP
from typing import Any

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from courtbook.core.errors import (
    PromoAlreadyConsumed,
    PromoCodeNotFound,
    PromoInvalid,
    PromoUsageLimitReached,
)
from courtbook.models import Customer, DiscountType, PromoCode, PromoCodeRedemption

logger = logging.getLogger(__name__)

MONEY_PLACES = Decimal("0.01")


@dataclass(slots=True)
class PromoValidation:
    """Outcome of validating a code against a booking amount."""

    valid: bool
    reason: str
    discount: Decimal | None = None
    final_amount: Decimal | None = None
    promo_code: PromoCode | None = None

    @property
    def promo_code_id(self) -> uuid.UUID | None:
        return self.promo_code.id if self.promo_code is not None else None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"valid": self.valid, "message": self.reason}
        if self.valid:
            payload.update(
                discount=f"{self.discount:.2f}",
                final_amount=f"{self.final_amount:.2f}",
                promo_code_id=str(self.promo_code_id),
            )
        return payload


def _coerce_utc(dt: datetime.datetime) -> datetime.datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def normalize_code(code: str) -> str:
    return code.strip().upper()


def is_expired(promo: PromoCode, *, now: datetime.datetime | None = None) -> bool:
    current = _coerce_utc(now or datetime.datetime.now(UTC))
    return current > _coerce_utc(promo.expires_at)


def compute_discount(
    amount: Decimal, discount_type: DiscountType, discount_value: Decimal
) -> tuple[Decimal, Decimal]:
    """Return ``(discount, final_amount)`` for an amount.

    Percentage discounts round half up to whole currency units. The discount
    never exceeds the amount.
    """
    amount = Decimal(amount).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)
    if discount_type == DiscountType.PERCENTAGE:
        discount = (amount * Decimal(discount_value) / Decimal(100)).quantize(
            Decimal("1"), rounding=ROUND_HALF_UP
        )
    else:
        discount = Decimal(discount_value)
    discount = min(discount, amount).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)
    return discount, amount - discount


async def get_promo_code(
    session: AsyncSession, *, promo_code_id: uuid.UUID
) -> PromoCode | None:
    result = await session.execute(
        select(PromoCode)
        .options(selectinload(PromoCode.redemptions))
        .execution_options(populate_existing=True)
        .where(PromoCode.id == promo_code_id)
    )
    return result.scalar_one_or_none()


async def get_promo_code_by_code(session: AsyncSession, *, code: str) -> PromoCode | None:
    result = await session.execute(
        select(PromoCode)
        .options(selectinload(PromoCode.redemptions))
        .execution_options(populate_existing=True)
        .where(PromoCode.code == normalize_code(code))
    )
    return result.scalar_one_or_none()


async def _phone_has_redeemed(
    session: AsyncSession, *, promo_code_id: uuid.UUID, phone: str
) -> bool:
    result = await session.execute(
        select(func.count(PromoCodeRedemption.id))
        .join(Customer, Customer.id == PromoCodeRedemption.customer_id)
        .where(
            PromoCodeRedemption.promo_code_id == promo_code_id,
            Customer.phone == phone,
        )
    )
    return bool(result.scalar_one())


async def validate_promo_code(
    session: AsyncSession,
    *,
    code: str,
    customer_phone: str,
    amount: Decimal,
    now: datetime.datetime | None = None,
) -> PromoValidation:
    """Check a code for a guest identified by phone. Never raises for a bad code."""
    promo = await get_promo_code_by_code(session, code=code)
    if promo is None:
        return PromoValidation(valid=False, reason="Invalid promo code")
    if not promo.active:
        return PromoValidation(valid=False, reason="This promo code is no longer active")
    if is_expired(promo, now=now):
        return PromoValidation(valid=False, reason="This promo code has expired")
    if await _phone_has_redeemed(session, promo_code_id=promo.id, phone=customer_phone):
        return PromoValidation(valid=False, reason="You have already used this promo code")
    if promo.max_total_uses is not None and promo.redemption_count >= promo.max_total_uses:
        return PromoValidation(
            valid=False, reason="This promo code usage limit has been reached"
        )

    discount, final_amount = compute_discount(
        amount, promo.discount_type, promo.discount_value
    )
    return PromoValidation(
        valid=True,
        reason=f"Promo code applied! You saved {discount:.2f}",
        discount=discount,
        final_amount=final_amount,
        promo_code=promo,
    )


async def _adjust_count(session: AsyncSession, promo_code_id: uuid.UUID, delta: int) -> int:
    stmt = (
        update(PromoCode)
        .where(PromoCode.id == promo_code_id)
        .values(redemption_count=PromoCode.redemption_count + delta)
        .execution_options(synchronize_session=False)
    )
    if delta > 0:
        stmt = stmt.where(
            or_(
                PromoCode.max_total_uses.is_(None),
                PromoCode.redemption_count < PromoCode.max_total_uses,
            )
        )
    else:
        stmt = stmt.where(PromoCode.redemption_count > 0)
    result = await session.execute(stmt)
    return result.rowcount


async def consume_promo_code(
    session: AsyncSession,
    *,
    promo_code_id: uuid.UUID,
    customer_id: uuid.UUID,
    customer_phone: str | None = None,
) -> None:
    """Record one use of a code inside the caller's transaction.

    The counter update is conditional on the usage cap and row-locks the code,
    so the phone re-check that follows sees every committed redemption.
    """
    held = await session.execute(
        select(PromoCodeRedemption.id).where(
            PromoCodeRedemption.promo_code_id == promo_code_id,
            PromoCodeRedemption.customer_id == customer_id,
        )
    )
    if held.first() is not None:
        raise PromoAlreadyConsumed("Promo code already used by this customer")

    if not await _adjust_count(session, promo_code_id, 1):
        if await session.get(PromoCode, promo_code_id) is None:
            raise PromoInvalid("Invalid promo code")
        raise PromoUsageLimitReached("This promo code usage limit has been reached")

    if customer_phone is not None and await _phone_has_redeemed(
        session, promo_code_id=promo_code_id, phone=customer_phone
    ):
        await _adjust_count(session, promo_code_id, -1)
        raise PromoAlreadyConsumed("Promo code already used by this customer")

    try:
        async with session.begin_nested():
            session.add(
                PromoCodeRedemption(promo_code_id=promo_code_id, customer_id=customer_id)
            )
    except IntegrityError:
        await _adjust_count(session, promo_code_id, -1)
        raise PromoAlreadyConsumed("Promo code already used by this customer") from None


async def release_promo_code(
    session: AsyncSession,
    *,
    promo_code_id: uuid.UUID,
    customer_id: uuid.UUID,
) -> bool:
    """Remove a customer's use of a code. Returns False when nothing was held."""
    result = await session.execute(
        delete(PromoCodeRedemption)
        .where(
            PromoCodeRedemption.promo_code_id == promo_code_id,
            PromoCodeRedemption.customer_id == customer_id,
        )
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        return False
    await _adjust_count(session, promo_code_id, -1)
    return True


async def list_promo_codes(session: AsyncSession) -> list[PromoCode]:
    result = await session.execute(
        select(PromoCode)
        .options(selectinload(PromoCode.redemptions))
        .execution_options(populate_existing=True)
        .order_by(PromoCode.created_at.desc())
    )
    return list(result.scalars().all())


async def create_promo_code(
    session: AsyncSession,
    *,
    code: str,
    discount_type: DiscountType,
    discount_value: Decimal,
    max_total_uses: int | None = None,
    expires_at: datetime.datetime | None = None,
    default_expiry_days: int = 7,
    active: bool = True,
) -> PromoCode:
    normalized = normalize_code(code)
    if not normalized:
        raise PromoInvalid("Promo code is required")
    if discount_value <= 0:
        raise PromoInvalid("Discount value must be greater than 0")
    if discount_type == DiscountType.PERCENTAGE and discount_value > 100:
        raise PromoInvalid("Percentage discount cannot exceed 100")
    if max_total_uses is not None and max_total_uses < 1:
        raise PromoInvalid("Maximum uses must be at least 1")

    if expires_at is None:
        expires_at = datetime.datetime.now(UTC) + datetime.timedelta(
            days=default_expiry_days
        )

    promo = PromoCode(
        code=normalized,
        discount_type=discount_type,
        discount_value=Decimal(discount_value),
        max_total_uses=max_total_uses,
        redemption_count=0,
        active=active,
        expires_at=_coerce_utc(expires_at),
    )
    session.add(promo)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise PromoInvalid("Promo code already exists") from None
    logger.info("Promo code %s created", normalized)
    return await get_promo_code(session, promo_code_id=promo.id)  # type: ignore[return-value]


async def set_promo_code_active(
    session: AsyncSession, *, promo_code_id: uuid.UUID, active: bool
) -> PromoCode:
    promo = await get_promo_code(session, promo_code_id=promo_code_id)
    if promo is None:
        raise PromoCodeNotFound("Promo code not found")
    promo.active = active
    await session.commit()
    logger.info("Promo code %s active=%s", promo.code, active)
    return promo
