"""Tests for the pricing engine and rule administration."""

from __future__ import annotations

import datetime
from decimal import Decimal

import pytest

from courtbook.core.errors import PricingConfigurationMissing, PricingRuleError
from courtbook.core.intervals import MINUTES_PER_DAY, TimeInterval
from courtbook.db.session import get_sessionmaker
from courtbook.models import DayBucket, PricingCategory, TimeBucket
from courtbook.services import pricing_service
from courtbook.services.pricing_service import (
    DEFAULT_RATES,
    DatabaseRuleSource,
    RateTable,
    price_interval,
)

THURSDAY = datetime.date(2026, 2, 12)
FRIDAY = datetime.date(2026, 2, 13)
SATURDAY = datetime.date(2026, 2, 14)
SUNDAY = datetime.date(2026, 2, 15)

RATES = RateTable(DEFAULT_RATES)


def _price(day: datetime.date, start: str, end: str, table: RateTable = RATES):
    return price_interval(table, TimeInterval.parse(day, start, end))


def test_thursday_daytime_two_hours() -> None:
    quote = _price(THURSDAY, "09:00", "11:00")
    assert quote.total_price == Decimal("180.00")
    assert [segment.rate for segment in quote.segments] == [Decimal("90.00")] * 2
    assert all(segment.minutes == 60 for segment in quote.segments)
    assert quote.segments[0].label == "09:00-10:00"
    assert quote.segments[0].category is PricingCategory.WEEKDAY_DAY


def test_evening_switches_to_night_rate_at_seven() -> None:
    quote = _price(THURSDAY, "18:00", "20:00")
    assert [(s.time_bucket, s.rate) for s in quote.segments] == [
        (TimeBucket.DAY, Decimal("90.00")),
        (TimeBucket.NIGHT, Decimal("135.00")),
    ]
    assert quote.segments[1].category is PricingCategory.WEEKEND_NIGHT
    assert quote.total_price == Decimal("225.00")


def test_trailing_half_hour_is_prorated() -> None:
    quote = _price(SATURDAY, "09:00", "10:30")
    assert [s.minutes for s in quote.segments] == [60, 30]
    assert quote.segments[1].amount == Decimal("55.00")
    assert quote.total_price == Decimal("165.00")
    assert quote.to_dict()["total_hours"] == "1.5"


def test_after_midnight_segments_keep_the_booking_day() -> None:
    quote = _price(THURSDAY, "23:00", "02:00")
    assert [s.day_bucket for s in quote.segments] == [DayBucket.THU] * 3
    assert quote.total_price == Decimal("405.00")


def test_early_hours_booking_uses_its_own_date() -> None:
    quote = _price(FRIDAY, "01:00", "03:00")
    assert [s.day_bucket for s in quote.segments] == [DayBucket.FRI] * 2
    assert [s.time_bucket for s in quote.segments] == [TimeBucket.NIGHT] * 2
    assert quote.total_price == Decimal("270.00")


def test_saturday_night_rolls_into_sunday_at_saturday_rate() -> None:
    quote = _price(SATURDAY, "23:00", "01:00")
    assert [s.day_bucket for s in quote.segments] == [DayBucket.SAT, DayBucket.SAT]
    assert quote.total_price == Decimal("220.00")


@pytest.mark.parametrize(
    ("day", "start", "end"),
    [
        (THURSDAY, "09:00", "13:00"),
        (THURSDAY, "17:00", "21:30"),
        (THURSDAY, "22:00", "02:30"),
        (FRIDAY, "20:00", "04:00"),
        (SATURDAY, "10:30", "14:30"),
        (SUNDAY, "18:00", "23:00"),
    ],
)
def test_price_is_additive_across_hour_splits(
    day: datetime.date, start: str, end: str
) -> None:
    whole = TimeInterval.parse(day, start, end)
    total = price_interval(RATES, whole).total_price
    for offset in range(60, whole.duration_minutes, 60):
        split = (whole.start_minute + offset) % MINUTES_PER_DAY
        head = TimeInterval(day, whole.start_minute, split)
        tail = TimeInterval(day, split, whole.end_minute)
        combined = price_interval(RATES, head).total_price + price_interval(
            RATES, tail
        ).total_price
        assert combined == total, (start, end, offset)


def test_missing_rule_is_reported_not_defaulted() -> None:
    rates = dict(DEFAULT_RATES)
    del rates[(DayBucket.THU, TimeBucket.NIGHT)]
    with pytest.raises(PricingConfigurationMissing) as excinfo:
        _price(THURSDAY, "18:00", "20:00", RateTable(rates))
    assert excinfo.value.day_bucket == "thu"
    assert excinfo.value.time_bucket == "night"
    assert excinfo.value.status_code == 500


@pytest.mark.asyncio
async def test_seed_and_list_rules(reset_database, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        rules = await pricing_service.seed_default_rules(session)
        assert len(rules) == 8
        by_pair = {(rule.day_bucket, rule.time_bucket): rule for rule in rules}
        assert by_pair[(DayBucket.FRI, TimeBucket.DAY)].price_per_hour == Decimal("110.00")
        assert by_pair[(DayBucket.SAT, TimeBucket.NIGHT)].category is (
            PricingCategory.WEEKDAY_NIGHT
        )
        with pytest.raises(PricingRuleError):
            await pricing_service.seed_default_rules(session)


@pytest.mark.asyncio
async def test_upsert_replaces_rule_and_enforces_limit(reset_database, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        rule = await pricing_service.upsert_pricing_rule(
            session,
            day_bucket=DayBucket.THU,
            time_bucket=TimeBucket.DAY,
            price_per_hour=Decimal("95"),
            max_rules=1,
        )
        updated = await pricing_service.upsert_pricing_rule(
            session,
            day_bucket=DayBucket.THU,
            time_bucket=TimeBucket.DAY,
            price_per_hour=Decimal("100"),
            max_rules=1,
        )
        assert updated.id == rule.id
        assert updated.price_per_hour == Decimal("100.00")

        with pytest.raises(PricingRuleError, match="Maximum of 1"):
            await pricing_service.upsert_pricing_rule(
                session,
                day_bucket=DayBucket.FRI,
                time_bucket=TimeBucket.DAY,
                price_per_hour=Decimal("110"),
                max_rules=1,
            )
        with pytest.raises(PricingRuleError):
            await pricing_service.upsert_pricing_rule(
                session,
                day_bucket=DayBucket.THU,
                time_bucket=TimeBucket.DAY,
                price_per_hour=Decimal("0"),
            )


@pytest.mark.asyncio
async def test_inactive_rule_is_missing_configuration(reset_database, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        await pricing_service.seed_default_rules(session)
        await pricing_service.upsert_pricing_rule(
            session,
            day_bucket=DayBucket.THU,
            time_bucket=TimeBucket.DAY,
            price_per_hour=Decimal("90"),
            active=False,
        )
        interval = TimeInterval.parse(THURSDAY, "09:00", "10:00")
        with pytest.raises(PricingConfigurationMissing):
            await pricing_service.quote_interval(
                session, interval=interval, rule_source=DatabaseRuleSource()
            )
        friday = await pricing_service.quote_interval(
            session, interval=TimeInterval.parse(FRIDAY, "09:00", "10:00")
        )
        assert friday.total_price == Decimal("110.00")
