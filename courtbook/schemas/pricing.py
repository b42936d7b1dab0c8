"""Pricing schema definitions."""

from __future__ import annotations

import datetime
import uuid
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from courtbook.core.intervals import TIME_PATTERN
from courtbook.models import DayBucket, PricingCategory, TimeBucket


class PriceQuoteRequest(BaseModel):
    """Input payload for pricing an interval without booking it."""

    booking_date: datetime.date
    start_time: str = Field(pattern=TIME_PATTERN)
    end_time: str = Field(pattern=TIME_PATTERN)


class PriceSegmentRead(BaseModel):
    """One priced hour of an interval."""

    label: str
    rate: Decimal
    day_bucket: DayBucket
    time_bucket: TimeBucket
    category: PricingCategory
    hours: Decimal
    amount: Decimal


class PriceQuoteRead(BaseModel):
    """Aggregated pricing response."""

    booking_date: datetime.date
    start_time: str
    end_time: str
    total_hours: Decimal
    segments: list[PriceSegmentRead]
    total_price: Decimal
    currency: str


class PricingRuleUpsert(BaseModel):
    day_bucket: DayBucket
    time_bucket: TimeBucket
    price_per_hour: Decimal = Field(gt=Decimal("0"))
    active: bool = True


class PricingRuleRead(BaseModel):
    id: uuid.UUID
    day_bucket: DayBucket
    time_bucket: TimeBucket
    category: PricingCategory
    price_per_hour: Decimal
    active: bool
    updated_at: datetime.datetime

    model_config = ConfigDict(from_attributes=True)
