"""Pricing engine service for court reservations."""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, Mapping, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from courtbook.core.errors import PricingConfigurationMissing, PricingRuleError
from courtbook.core.intervals import TimeInterval, format_minute
from courtbook.models import (
    DayBucket,
    PricingCategory,
    PricingRule,
    TimeBucket,
    category_for,
)

logger = logging.getLogger(__name__)

MONEY_PLACES = Decimal("0.01")

NIGHT_STARTS_AT = 19 * 60
NIGHT_ENDS_AT = 9 * 60
# Segments starting before this minute belong to the booking's nominal date.
EARLY_HOURS_END = 4 * 60
SEGMENT_MINUTES = 60

DEFAULT_RATES: dict[tuple[DayBucket, TimeBucket], Decimal] = {
    (DayBucket.SUN_WED, TimeBucket.DAY): Decimal("90"),
    (DayBucket.SUN_WED, TimeBucket.NIGHT): Decimal("110"),
    (DayBucket.THU, TimeBucket.DAY): Decimal("90"),
    (DayBucket.THU, TimeBucket.NIGHT): Decimal("135"),
    (DayBucket.FRI, TimeBucket.DAY): Decimal("110"),
    (DayBucket.FRI, TimeBucket.NIGHT): Decimal("135"),
    (DayBucket.SAT, TimeBucket.DAY): Decimal("110"),
    (DayBucket.SAT, TimeBucket.NIGHT): Decimal("110"),
}

# datetime.weekday(): Monday == 0 ... Sunday == 6
_DAY_BUCKET_BY_WEEKDAY = {
    6: DayBucket.SUN_WED,
    0: DayBucket.SUN_WED,
    1: DayBucket.SUN_WED,
    2: DayBucket.SUN_WED,
    3: DayBucket.THU,
    4: DayBucket.FRI,
    5: DayBucket.SAT,
}


@dataclass(slots=True, frozen=True)
class PriceSegment:
    """One hour (or the trailing half hour) of a booking and its rate."""

    label: str
    rate: Decimal
    day_bucket: DayBucket
    time_bucket: TimeBucket
    category: PricingCategory
    minutes: int
    amount: Decimal

    @property
    def hours(self) -> Decimal:
        return Decimal(self.minutes) / Decimal(60)

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "rate": _to_str(self.rate),
            "day_bucket": self.day_bucket.value,
            "time_bucket": self.time_bucket.value,
            "category": self.category.value,
            "hours": format(self.hours.normalize(), "f"),
            "amount": _to_str(self.amount),
        }


@dataclass(slots=True)
class PriceQuote:
    """Aggregate pricing output for an interval."""

    interval: TimeInterval
    segments: list[PriceSegment]
    total_price: Decimal

    @property
    def total_hours(self) -> Decimal:
        return Decimal(self.interval.duration_minutes) / Decimal(60)

    def breakdown(self) -> list[dict[str, Any]]:
        return [segment.to_dict() for segment in self.segments]

    def to_dict(self) -> dict[str, Any]:
        """Serialize the quote to plain types for responses."""
        return {
            "booking_date": self.interval.booking_date.isoformat(),
            "start_time": self.interval.start_time,
            "end_time": self.interval.end_time,
            "total_hours": format(self.total_hours.normalize(), "f"),
            "segments": self.breakdown(),
            "total_price": _to_str(self.total_price),
        }


def _to_money(value: Decimal | float | str) -> Decimal:
    return Decimal(value).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def _to_str(value: Decimal) -> str:
    return f"{value.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP):.2f}"


class RateTable:
    """Immutable lookup of active hourly rates by bucket pair."""

    __slots__ = ("_rates",)

    def __init__(self, rates: Mapping[tuple[DayBucket, TimeBucket], Decimal]) -> None:
        self._rates = {
            (DayBucket(day), TimeBucket(slot)): _to_money(rate)
            for (day, slot), rate in rates.items()
        }

    @classmethod
    def from_rules(cls, rules: Iterable[PricingRule]) -> RateTable:
        return cls(
            {
                (rule.day_bucket, rule.time_bucket): rule.price_per_hour
                for rule in rules
                if rule.active
            }
        )

    def rate_for(self, day_bucket: DayBucket, time_bucket: TimeBucket) -> Decimal:
        try:
            return self._rates[(day_bucket, time_bucket)]
        except KeyError:
            raise PricingConfigurationMissing(day_bucket.value, time_bucket.value) from None

    def __len__(self) -> int:
        return len(self._rates)


class PricingRuleSource(Protocol):
    """Read-only provider of the active rate table."""

    async def load(self, session: AsyncSession) -> RateTable: ...


class DatabaseRuleSource:
    """Loads active rules from the ``pricing_rules`` table on every call."""

    async def load(self, session: AsyncSession) -> RateTable:
        return RateTable.from_rules(await list_pricing_rules(session, active_only=True))


class StaticRuleSource:
    """Fixed rate table, independent of the store."""

    def __init__(
        self, rates: Mapping[tuple[DayBucket, TimeBucket], Decimal] | None = None
    ) -> None:
        self._table = RateTable(DEFAULT_RATES if rates is None else rates)

    async def load(self, session: AsyncSession) -> RateTable:
        return self._table


def day_bucket_for(day: datetime.date) -> DayBucket:
    return _DAY_BUCKET_BY_WEEKDAY[day.weekday()]


def time_bucket_for(minute_of_day: int) -> TimeBucket:
    if minute_of_day >= NIGHT_STARTS_AT or minute_of_day < NIGHT_ENDS_AT:
        return TimeBucket.NIGHT
    return TimeBucket.DAY


def effective_pricing_date(
    segment_start: datetime.datetime, booking_date: datetime.date
) -> datetime.date:
    """Return the calendar date whose day bucket prices a segment.

    Early-hours segments (00:00-04:00) belong to the evening before. A segment
    that starts on the nominal booking date itself was picked directly by the
    customer, so it keeps that date rather than being rewound.
    """
    minute = segment_start.hour * 60 + segment_start.minute
    if minute >= EARLY_HOURS_END:
        return segment_start.date()
    if segment_start.date() == booking_date:
        return booking_date
    return segment_start.date() - datetime.timedelta(days=1)


def price_interval(rate_table: RateTable, interval: TimeInterval) -> PriceQuote:
    """Split an interval into hourly segments and price each against the table."""
    current = interval.start_datetime()
    end = interval.end_datetime()
    segments: list[PriceSegment] = []
    total = Decimal("0.00")

    while current < end:
        segment_end = min(current + datetime.timedelta(minutes=SEGMENT_MINUTES), end)
        minutes = int((segment_end - current).total_seconds() // 60)
        minute_of_day = current.hour * 60 + current.minute

        day_bucket = day_bucket_for(
            effective_pricing_date(current, interval.booking_date)
        )
        time_bucket = time_bucket_for(minute_of_day)
        rate = rate_table.rate_for(day_bucket, time_bucket)
        amount = _to_money(rate * minutes / Decimal(60))

        end_minute = segment_end.hour * 60 + segment_end.minute
        segments.append(
            PriceSegment(
                label=f"{format_minute(minute_of_day)}-{format_minute(end_minute)}",
                rate=rate,
                day_bucket=day_bucket,
                time_bucket=time_bucket,
                category=category_for(day_bucket, time_bucket),
                minutes=minutes,
                amount=amount,
            )
        )
        total += amount
        current = segment_end

    return PriceQuote(interval=interval, segments=segments, total_price=_to_money(total))


async def quote_interval(
    session: AsyncSession,
    *,
    interval: TimeInterval,
    rule_source: PricingRuleSource | None = None,
) -> PriceQuote:
    """Load the active rate table and price the interval."""
    source = rule_source or DatabaseRuleSource()
    rate_table = await source.load(session)
    return price_interval(rate_table, interval)


async def list_pricing_rules(
    session: AsyncSession, *, active_only: bool = False
) -> list[PricingRule]:
    stmt = select(PricingRule).order_by(PricingRule.day_bucket, PricingRule.time_bucket)
    if active_only:
        stmt = stmt.where(PricingRule.active.is_(True))
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def upsert_pricing_rule(
    session: AsyncSession,
    *,
    day_bucket: DayBucket,
    time_bucket: TimeBucket,
    price_per_hour: Decimal,
    active: bool = True,
    max_rules: int = 8,
) -> PricingRule:
    """Create or replace the single rule for a bucket pair."""
    if price_per_hour <= 0:
        raise PricingRuleError("Price per hour must be greater than 0")

    result = await session.execute(
        select(PricingRule).where(
            PricingRule.day_bucket == day_bucket,
            PricingRule.time_bucket == time_bucket,
        )
    )
    rule = result.scalar_one_or_none()
    if rule is None:
        existing = await list_pricing_rules(session)
        if len(existing) >= max_rules:
            raise PricingRuleError(f"Maximum of {max_rules} pricing rules allowed")
        rule = PricingRule(day_bucket=day_bucket, time_bucket=time_bucket)
        session.add(rule)

    rule.price_per_hour = _to_money(price_per_hour)
    rule.active = active
    await session.commit()
    await session.refresh(rule)
    logger.info(
        "Pricing rule %s/%s set to %s (active=%s)",
        day_bucket.value,
        time_bucket.value,
        rule.price_per_hour,
        active,
    )
    return rule


async def seed_default_rules(session: AsyncSession) -> list[PricingRule]:
    """Insert the default rate table when no rules exist yet."""
    if await list_pricing_rules(session):
        raise PricingRuleError("Pricing rules already initialized")
    rules = [
        PricingRule(day_bucket=day, time_bucket=slot, price_per_hour=rate, active=True)
        for (day, slot), rate in DEFAULT_RATES.items()
    ]
    session.add_all(rules)
    await session.commit()
    return await list_pricing_rules(session)
