"""Seed the default rate table, demo courts and a welcome promo code."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from decimal import Decimal

from sqlalchemy import select

from courtbook.db.session import get_sessionmaker
from courtbook.models import Court, CourtStatus, DiscountType, PromoCode
from courtbook.services import pricing_service

COURT_NAMES = ("Court 1", "Court 2", "Court 3")
PROMO_CODE = "WELCOME10"


async def seed_pricing() -> None:
    sessionmaker = get_sessionmaker()
    async with sessionmaker() as session:
        rules_created = 0
        if not await pricing_service.list_pricing_rules(session):
            rules = await pricing_service.seed_default_rules(session)
            rules_created = len(rules)

        existing_courts = set(
            (await session.execute(select(Court.name))).scalars().all()
        )
        courts_created = 0
        for name in COURT_NAMES:
            if name in existing_courts:
                continue
            session.add(
                Court(name=name, description="Outdoor padel court", status=CourtStatus.ACTIVE)
            )
            courts_created += 1

        promo_exists = (
            await session.execute(select(PromoCode).where(PromoCode.code == PROMO_CODE))
        ).scalar_one_or_none()
        promos_created = 0
        if promo_exists is None:
            session.add(
                PromoCode(
                    code=PROMO_CODE,
                    discount_type=DiscountType.PERCENTAGE,
                    discount_value=Decimal("10"),
                    max_total_uses=None,
                    redemption_count=0,
                    active=True,
                    expires_at=datetime.now(UTC) + timedelta(days=365),
                )
            )
            promos_created += 1

        if courts_created or promos_created:
            await session.commit()

        print(
            f"Seeded {rules_created} pricing rule(s), {courts_created} court(s) "
            f"and {promos_created} promo code(s)."
        )


def main() -> None:
    asyncio.run(seed_pricing())


if __name__ == "__main__":
    main()
