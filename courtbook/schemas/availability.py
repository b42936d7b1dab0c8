"""Availability schema definitions."""

from __future__ import annotations

import datetime
import uuid

from pydantic import BaseModel, Field

from courtbook.core.intervals import TIME_PATTERN


class TimeSlot(BaseModel):
    """A requested ``HH:MM`` start and end pair."""

    start_time: str = Field(pattern=TIME_PATTERN)
    end_time: str = Field(pattern=TIME_PATTERN)


class AvailabilityRequest(TimeSlot):
    court_id: uuid.UUID
    booking_date: datetime.date
    exclude_reservation_id: uuid.UUID | None = None


class ConflictRead(BaseModel):
    id: uuid.UUID
    start_time: str
    end_time: str
    status: str


class AvailabilityRead(BaseModel):
    available: bool
    conflicts: list[ConflictRead] = Field(default_factory=list)


class BatchAvailabilityRequest(BaseModel):
    """Several slots checked on one date, optionally limited to some courts."""

    booking_date: datetime.date
    time_slots: list[TimeSlot] = Field(min_length=1)
    court_ids: list[uuid.UUID] | None = None


class BatchSlotRead(BaseModel):
    available: bool
    start_time: str
    end_time: str
