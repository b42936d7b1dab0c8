"""Reservation models."""
from __future__ import annotations

import datetime
import enum
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlalchemy import Date, Enum, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import JSON

from courtbook.core.intervals import TimeInterval, format_minute
from courtbook.db.base import Base
from courtbook.models.mixins import TimestampMixin

if TYPE_CHECKING:  # pragma: no cover - typing only imports
    from courtbook.models.court import Court
    from courtbook.models.customer import Customer
    from courtbook.models.pricing import PromoCode

JSONB_TYPE = JSONB().with_variant(JSON(), "sqlite")


class ReservationStatus(str, enum.Enum):
    """Lifecycle states for reservations."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"
    BLOCKED = "blocked"


class PaymentStatus(str, enum.Enum):
    """Settlement state reported by the payment authority."""

    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    REFUNDED = "refunded"


class CreatedBy(str, enum.Enum):
    """Who created the reservation."""

    CUSTOMER = "customer"
    ADMIN = "admin"


class Reservation(TimestampMixin, Base):
    """A court held for one interval on one booking date."""

    __tablename__ = "reservations"
    __table_args__ = (
        Index("ix_reservations_court_date_status", "court_id", "booking_date", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    court_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("courts.id", ondelete="CASCADE"), nullable=False
    )
    customer_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True
    )
    booking_date: Mapped[datetime.date] = mapped_column(
        Date(), nullable=False, index=True
    )
    start_minute: Mapped[int] = mapped_column(Integer(), nullable=False)
    end_minute: Mapped[int] = mapped_column(Integer(), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer(), nullable=False)
    status: Mapped[ReservationStatus] = mapped_column(
        Enum(ReservationStatus), default=ReservationStatus.PENDING, nullable=False
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False
    )
    base_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    discount_amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), default=Decimal("0"), nullable=False
    )
    final_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    amount_paid: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), default=Decimal("0"), nullable=False
    )
    pricing_breakdown: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB_TYPE, default=list, nullable=False
    )
    promo_code_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("promo_codes.id", ondelete="SET NULL"), nullable=True
    )
    payment_reference: Mapped[str | None] = mapped_column(
        String(128), unique=True, nullable=True
    )
    payment_method: Mapped[str | None] = mapped_column(String(64))
    notes: Mapped[str | None] = mapped_column(String(2048))
    created_by: Mapped[CreatedBy] = mapped_column(
        Enum(CreatedBy), default=CreatedBy.CUSTOMER, nullable=False
    )

    court: Mapped["Court"] = relationship("Court", back_populates="reservations")
    customer: Mapped["Customer | None"] = relationship("Customer")
    promo_code: Mapped["PromoCode | None"] = relationship("PromoCode")

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval(self.booking_date, self.start_minute, self.end_minute)

    @property
    def start_time(self) -> str:
        return format_minute(self.start_minute)

    @property
    def end_time(self) -> str:
        return format_minute(self.end_minute)

    @property
    def duration_hours(self) -> Decimal:
        return Decimal(self.duration_minutes) / Decimal(60)
