"""Pydantic schemas for reservations."""
from __future__ import annotations

import datetime
import uuid
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from courtbook.core.intervals import TIME_PATTERN
from courtbook.models import CreatedBy, PaymentStatus, ReservationStatus
from courtbook.schemas.pricing import PriceSegmentRead


class CustomerIn(BaseModel):
    """Guest contact details supplied with a booking."""

    name: str = Field(min_length=1, max_length=200)
    phone: str = Field(min_length=3, max_length=32)
    email: EmailStr | None = None


class CustomerRead(BaseModel):
    id: uuid.UUID
    name: str
    phone: str
    email: str | None = None
    total_bookings: int

    model_config = ConfigDict(from_attributes=True)


class ReservationBase(BaseModel):
    """Shared reservation fields."""

    court_id: uuid.UUID
    booking_date: datetime.date
    start_time: str = Field(pattern=TIME_PATTERN)
    end_time: str = Field(pattern=TIME_PATTERN)
    notes: str | None = Field(default=None, max_length=1024)


class ReservationCreate(ReservationBase):
    """Public booking payload."""

    customer: CustomerIn
    promo_code: str | None = None
    payment_reference: str | None = Field(default=None, max_length=128)
    payment_method: str | None = Field(default=None, max_length=64)


class AdminReservationCreate(ReservationBase):
    """Staff booking on behalf of a new or existing customer."""

    customer: CustomerIn | None = None
    customer_id: uuid.UUID | None = None
    promo_code: str | None = None
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_method: str | None = Field(default=None, max_length=64)
    payment_reference: str | None = Field(default=None, max_length=128)
    amount_paid: Decimal | None = Field(default=None, ge=Decimal("0"))


class BlockCreate(ReservationBase):
    """Administrative hold with no customer."""


class ReservationRead(BaseModel):
    """Serialized reservation representation."""

    id: uuid.UUID
    court_id: uuid.UUID
    customer: CustomerRead | None = None
    booking_date: datetime.date
    start_time: str
    end_time: str
    duration_minutes: int
    status: ReservationStatus
    payment_status: PaymentStatus
    base_price: Decimal
    discount_amount: Decimal
    final_price: Decimal
    amount_paid: Decimal
    pricing_breakdown: list[PriceSegmentRead] = Field(default_factory=list)
    promo_code_id: uuid.UUID | None = None
    payment_reference: str | None = None
    payment_method: str | None = None
    notes: str | None = None
    created_by: CreatedBy
    created_at: datetime.datetime
    updated_at: datetime.datetime

    model_config = ConfigDict(from_attributes=True)


class ReservationCreateRead(BaseModel):
    """Result of a booking request, including replays of a known payment."""

    reservation: ReservationRead
    replayed: bool = False
    promo_applied: bool = False
    promo_message: str | None = None


class ReservationStatusUpdate(BaseModel):
    status: ReservationStatus
    reason: str | None = Field(default=None, max_length=500)


class ReservationCancelRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class PaymentUpdate(BaseModel):
    """Settlement details reported by the payment authority."""

    payment_status: PaymentStatus
    amount_paid: Decimal | None = Field(default=None, ge=Decimal("0"))
    payment_method: str | None = Field(default=None, max_length=64)
    payment_reference: str | None = Field(default=None, max_length=128)
