"""Bookable court models."""

from __future__ import annotations

import datetime
import enum
import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Date, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from courtbook.db.base import Base
from courtbook.models.mixins import TimestampMixin

if TYPE_CHECKING:  # pragma: no cover - typing only imports
    from courtbook.models.reservation import Reservation


class CourtStatus(str, enum.Enum):
    """Operational state of a court."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"


class Court(TimestampMixin, Base):
    """A physical court that can be reserved by the hour."""

    __tablename__ = "courts"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    name: Mapped[str] = mapped_column(String(120), unique=True, nullable=False)
    description: Mapped[str] = mapped_column(String(1024), default="", nullable=False)
    status: Mapped[CourtStatus] = mapped_column(
        Enum(CourtStatus), default=CourtStatus.ACTIVE, nullable=False
    )

    reservations: Mapped[list["Reservation"]] = relationship(
        "Reservation", back_populates="court"
    )


class CourtDayLock(Base):
    """Per court and date row that booking writers lock before re-checking availability."""

    __tablename__ = "court_day_locks"

    court_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("courts.id", ondelete="CASCADE"), primary_key=True
    )
    booking_date: Mapped[datetime.date] = mapped_column(Date(), primary_key=True)
    version: Mapped[int] = mapped_column(Integer(), default=0, nullable=False)
