"""Pricing rules and promo code models."""

from __future__ import annotations

import datetime
import enum
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from courtbook.db.base import Base
from courtbook.models.mixins import TimestampMixin

if TYPE_CHECKING:  # pragma: no cover - typing helpers
    from courtbook.models.customer import Customer


class DayBucket(str, enum.Enum):
    """Groups of weekdays that share a rate."""

    SUN_WED = "sun_wed"
    THU = "thu"
    FRI = "fri"
    SAT = "sat"


class TimeBucket(str, enum.Enum):
    """Day or night rate band."""

    DAY = "day"
    NIGHT = "night"


class PricingCategory(str, enum.Enum):
    """Customer-facing label for a (day, time) bucket pair."""

    WEEKDAY_DAY = "weekday-day"
    WEEKDAY_NIGHT = "weekday-night"
    WEEKEND_DAY = "weekend-day"
    WEEKEND_NIGHT = "weekend-night"


_CATEGORY_BY_BUCKETS: dict[tuple[DayBucket, TimeBucket], PricingCategory] = {
    (DayBucket.SUN_WED, TimeBucket.DAY): PricingCategory.WEEKDAY_DAY,
    (DayBucket.SUN_WED, TimeBucket.NIGHT): PricingCategory.WEEKDAY_NIGHT,
    (DayBucket.THU, TimeBucket.DAY): PricingCategory.WEEKDAY_DAY,
    # Thursday night is the start of the weekend.
    (DayBucket.THU, TimeBucket.NIGHT): PricingCategory.WEEKEND_NIGHT,
    (DayBucket.FRI, TimeBucket.DAY): PricingCategory.WEEKEND_DAY,
    (DayBucket.FRI, TimeBucket.NIGHT): PricingCategory.WEEKEND_NIGHT,
    (DayBucket.SAT, TimeBucket.DAY): PricingCategory.WEEKEND_DAY,
    (DayBucket.SAT, TimeBucket.NIGHT): PricingCategory.WEEKDAY_NIGHT,
}


def category_for(day_bucket: DayBucket, time_bucket: TimeBucket) -> PricingCategory:
    """Return the derived category label for a bucket pair."""
    return _CATEGORY_BY_BUCKETS[(DayBucket(day_bucket), TimeBucket(time_bucket))]


class DiscountType(str, enum.Enum):
    """Kinds of promo code discounts."""

    PERCENTAGE = "percentage"
    FIXED = "fixed"


class PricingRule(TimestampMixin, Base):
    """Hourly rate for one (day bucket, time bucket) pair."""

    __tablename__ = "pricing_rules"
    __table_args__ = (
        UniqueConstraint("day_bucket", "time_bucket", name="uq_pricing_rule_buckets"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    day_bucket: Mapped[DayBucket] = mapped_column(Enum(DayBucket), nullable=False)
    time_bucket: Mapped[TimeBucket] = mapped_column(Enum(TimeBucket), nullable=False)
    price_per_hour: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    @property
    def category(self) -> PricingCategory:
        return category_for(self.day_bucket, self.time_bucket)


class PromoCode(TimestampMixin, Base):
    """Discount code redeemable once per customer."""

    __tablename__ = "promo_codes"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    discount_type: Mapped[DiscountType] = mapped_column(
        Enum(DiscountType), nullable=False
    )
    discount_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    max_total_uses: Mapped[int | None] = mapped_column(Integer(), nullable=True)
    redemption_count: Mapped[int] = mapped_column(
        Integer(), default=0, nullable=False
    )
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    expires_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    redemptions: Mapped[list["PromoCodeRedemption"]] = relationship(
        "PromoCodeRedemption",
        back_populates="promo_code",
        cascade="all, delete-orphan",
    )

    @property
    def used_by_customers(self) -> list[uuid.UUID]:
        return [redemption.customer_id for redemption in self.redemptions]

    @property
    def remaining_uses(self) -> int | None:
        if self.max_total_uses is None:
            return None
        return max(self.max_total_uses - self.redemption_count, 0)


class PromoCodeRedemption(Base):
    """One customer's use of a promo code."""

    __tablename__ = "promo_code_redemptions"
    __table_args__ = (
        UniqueConstraint(
            "promo_code_id", "customer_id", name="uq_promo_redemption_customer"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    promo_code_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("promo_codes.id", ondelete="CASCADE"), nullable=False
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    redeemed_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.datetime.now(datetime.UTC),
    )

    promo_code: Mapped[PromoCode] = relationship(
        "PromoCode", back_populates="redemptions"
    )
    customer: Mapped["Customer"] = relationship("Customer")
