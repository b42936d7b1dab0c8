"""Customer contact records."""

from __future__ import annotations

import uuid

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from courtbook.db.base import Base
from courtbook.models.mixins import TimestampMixin


class Customer(TimestampMixin, Base):
    """Guest contact details captured with a booking.

    Guests do not log in, so the same phone number may appear on several
    records. The phone is the identity used for promo reuse checks.
    """

    __tablename__ = "customers"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    email: Mapped[str | None] = mapped_column(String(320))
    total_bookings: Mapped[int] = mapped_column(Integer(), default=0, nullable=False)
