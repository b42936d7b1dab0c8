"""Promo code validation and ledger tests."""

from __future__ import annotations

import datetime
import uuid
from datetime import UTC
from decimal import Decimal

import pytest

from courtbook.core.errors import (
    PromoAlreadyConsumed,
    PromoCodeNotFound,
    PromoInvalid,
    PromoUsageLimitReached,
)
from courtbook.db.session import get_sessionmaker
from courtbook.models import Customer, DiscountType, PromoCodeRedemption
from courtbook.services import promo_code_service

NOW = datetime.datetime(2026, 2, 1, 8, 0, tzinfo=UTC)
NEXT_WEEK = NOW + datetime.timedelta(days=7)


async def _customer(session, phone: str = "+966500000001", name: str = "Sara") -> Customer:
    customer = Customer(name=name, phone=phone, total_bookings=0)
    session.add(customer)
    await session.commit()
    return customer


async def _redemption_count(session, promo_code_id) -> int:
    promo = await promo_code_service.get_promo_code(session, promo_code_id=promo_code_id)
    return promo.redemption_count


def test_percentage_discount_rounds_to_whole_units() -> None:
    assert promo_code_service.compute_discount(
        Decimal("200"), DiscountType.PERCENTAGE, Decimal("20")
    ) == (Decimal("40.00"), Decimal("160.00"))
    assert promo_code_service.compute_discount(
        Decimal("165"), DiscountType.PERCENTAGE, Decimal("15")
    ) == (Decimal("25.00"), Decimal("140.00"))


def test_fixed_discount_never_exceeds_amount() -> None:
    assert promo_code_service.compute_discount(
        Decimal("90"), DiscountType.FIXED, Decimal("25")
    ) == (Decimal("25.00"), Decimal("65.00"))
    assert promo_code_service.compute_discount(
        Decimal("40"), DiscountType.FIXED, Decimal("50")
    ) == (Decimal("40.00"), Decimal("0.00"))


@pytest.mark.asyncio
async def test_valid_code_reports_discount(reset_database, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        await promo_code_service.create_promo_code(
            session,
            code=" save20 ",
            discount_type=DiscountType.PERCENTAGE,
            discount_value=Decimal("20"),
            expires_at=NEXT_WEEK,
        )
        result = await promo_code_service.validate_promo_code(
            session,
            code="SAVE20",
            customer_phone="+966500000001",
            amount=Decimal("200"),
            now=NOW,
        )
    assert result.valid is True
    assert result.discount == Decimal("40.00")
    assert result.final_amount == Decimal("160.00")
    assert result.promo_code.code == "SAVE20"
    assert result.reason == "Promo code applied! You saved 40.00"


@pytest.mark.asyncio
async def test_invalid_codes_carry_a_reason(reset_database, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        await promo_code_service.create_promo_code(
            session,
            code="OLD",
            discount_type=DiscountType.FIXED,
            discount_value=Decimal("10"),
            expires_at=NOW - datetime.timedelta(minutes=1),
        )
        paused = await promo_code_service.create_promo_code(
            session,
            code="PAUSED",
            discount_type=DiscountType.FIXED,
            discount_value=Decimal("10"),
            expires_at=NEXT_WEEK,
        )
        await promo_code_service.set_promo_code_active(
            session, promo_code_id=paused.id, active=False
        )

        async def check(code: str):
            return await promo_code_service.validate_promo_code(
                session,
                code=code,
                customer_phone="+966500000001",
                amount=Decimal("100"),
                now=NOW,
            )

        unknown = await check("NOPE")
        expired = await check("old")
        inactive = await check("PAUSED")

    assert (unknown.valid, unknown.reason) == (False, "Invalid promo code")
    assert (expired.valid, expired.reason) == (False, "This promo code has expired")
    assert (inactive.valid, inactive.reason) == (
        False,
        "This promo code is no longer active",
    )
    assert unknown.to_dict() == {"valid": False, "message": "Invalid promo code"}


@pytest.mark.asyncio
async def test_phone_cannot_reuse_a_consumed_code(reset_database, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        promo = await promo_code_service.create_promo_code(
            session,
            code="ONCE",
            discount_type=DiscountType.FIXED,
            discount_value=Decimal("15"),
            expires_at=NEXT_WEEK,
        )
        promo_id = promo.id
        first = await _customer(session)
        await promo_code_service.consume_promo_code(
            session,
            promo_code_id=promo_id,
            customer_id=first.id,
            customer_phone=first.phone,
        )
        await session.commit()

        again = await promo_code_service.validate_promo_code(
            session,
            code="ONCE",
            customer_phone=first.phone,
            amount=Decimal("100"),
            now=NOW,
        )
        assert again.valid is False
        assert again.reason == "You have already used this promo code"

        # A second guest record with the same phone is still the same person.
        second = await _customer(session, phone=first.phone, name="Sara B")
        with pytest.raises(PromoAlreadyConsumed):
            await promo_code_service.consume_promo_code(
                session,
                promo_code_id=promo_id,
                customer_id=second.id,
                customer_phone=second.phone,
            )
        await session.rollback()
        assert await _redemption_count(session, promo_id) == 1


@pytest.mark.asyncio
async def test_double_consume_by_customer_is_rejected(reset_database, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        promo = await promo_code_service.create_promo_code(
            session,
            code="TWICE",
            discount_type=DiscountType.FIXED,
            discount_value=Decimal("15"),
            max_total_uses=1,
            expires_at=NEXT_WEEK,
        )
        promo_id = promo.id
        customer = await _customer(session)
        await promo_code_service.consume_promo_code(
            session, promo_code_id=promo_id, customer_id=customer.id
        )
        await session.commit()
        with pytest.raises(PromoAlreadyConsumed):
            await promo_code_service.consume_promo_code(
                session, promo_code_id=promo_id, customer_id=customer.id
            )
        await session.rollback()
        assert await _redemption_count(session, promo_id) == 1


@pytest.mark.asyncio
async def test_release_makes_the_code_usable_again(reset_database, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        promo = await promo_code_service.create_promo_code(
            session,
            code="COMEBACK",
            discount_type=DiscountType.PERCENTAGE,
            discount_value=Decimal("10"),
            expires_at=NEXT_WEEK,
        )
        promo_id = promo.id
        customer = await _customer(session)
        kwargs = {"promo_code_id": promo_id, "customer_id": customer.id}

        await promo_code_service.consume_promo_code(session, **kwargs)
        await session.commit()
        assert await promo_code_service.release_promo_code(session, **kwargs) is True
        await session.commit()
        assert await _redemption_count(session, promo_id) == 0
        assert await promo_code_service.release_promo_code(session, **kwargs) is False

        await promo_code_service.consume_promo_code(session, **kwargs)
        await session.commit()
        assert await _redemption_count(session, promo_id) == 1


@pytest.mark.asyncio
async def test_usage_cap_is_enforced(reset_database, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        promo = await promo_code_service.create_promo_code(
            session,
            code="FIRST2",
            discount_type=DiscountType.FIXED,
            discount_value=Decimal("5"),
            max_total_uses=2,
            expires_at=NEXT_WEEK,
        )
        promo_id = promo.id
        guests = [
            await _customer(session, phone=f"+96650000000{index}") for index in range(3)
        ]
        for guest in guests[:2]:
            await promo_code_service.consume_promo_code(
                session, promo_code_id=promo_id, customer_id=guest.id
            )
            await session.commit()

        capped = await promo_code_service.validate_promo_code(
            session,
            code="FIRST2",
            customer_phone=guests[2].phone,
            amount=Decimal("100"),
            now=NOW,
        )
        assert capped.valid is False
        assert capped.reason == "This promo code usage limit has been reached"
        with pytest.raises(PromoUsageLimitReached):
            await promo_code_service.consume_promo_code(
                session, promo_code_id=promo_id, customer_id=guests[2].id
            )
        await session.rollback()

        stored = await promo_code_service.get_promo_code(session, promo_code_id=promo_id)
        assert stored.redemption_count == 2
        assert len(stored.redemptions) == 2
        assert all(isinstance(item, PromoCodeRedemption) for item in stored.redemptions)


@pytest.mark.asyncio
async def test_create_rejects_bad_input_and_duplicates(reset_database, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        promo = await promo_code_service.create_promo_code(
            session,
            code="welcome",
            discount_type=DiscountType.PERCENTAGE,
            discount_value=Decimal("10"),
            default_expiry_days=3,
        )
        assert promo.code == "WELCOME"
        assert promo.active is True
        assert promo_code_service.is_expired(promo) is False
        assert promo_code_service.is_expired(
            promo, now=datetime.datetime.now(UTC) + datetime.timedelta(days=4)
        )

        with pytest.raises(PromoInvalid, match="already exists"):
            await promo_code_service.create_promo_code(
                session,
                code="WELCOME",
                discount_type=DiscountType.FIXED,
                discount_value=Decimal("5"),
            )
        with pytest.raises(PromoInvalid, match="cannot exceed 100"):
            await promo_code_service.create_promo_code(
                session,
                code="TOOMUCH",
                discount_type=DiscountType.PERCENTAGE,
                discount_value=Decimal("120"),
            )
        with pytest.raises(PromoInvalid, match="greater than 0"):
            await promo_code_service.create_promo_code(
                session,
                code="FREE",
                discount_type=DiscountType.FIXED,
                discount_value=Decimal("0"),
            )
        with pytest.raises(PromoCodeNotFound):
            await promo_code_service.set_promo_code_active(
                session, promo_code_id=uuid.uuid4(), active=False
            )

        codes = [item.code for item in await promo_code_service.list_promo_codes(session)]
    assert codes == ["WELCOME"]
