"""Time interval value type and the slot overlap detector.

Times arrive from clients as ``HH:MM`` strings. They are parsed once into
minute offsets from local midnight and everything downstream works on
``TimeInterval``. An end at or before the start means the booking runs past
midnight into the next calendar day.
"""

from __future__ import annotations

import datetime
import re
from dataclasses import dataclass

from courtbook.core.errors import InvalidInterval

MINUTES_PER_DAY = 24 * 60

TIME_PATTERN = r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$"
_TIME_RE = re.compile(TIME_PATTERN)


def parse_time(value: str) -> int:
    """Parse an ``HH:MM`` string into minutes since midnight."""
    if not isinstance(value, str) or not _TIME_RE.match(value):
        raise InvalidInterval(f"Invalid time format: {value}. Expected HH:MM")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def format_minute(minute: int) -> str:
    return f"{minute // 60:02d}:{minute % 60:02d}"


@dataclass(frozen=True, slots=True)
class TimeInterval:
    """A booking window on one nominal calendar date."""

    booking_date: datetime.date
    start_minute: int
    end_minute: int

    def __post_init__(self) -> None:
        for minute in (self.start_minute, self.end_minute):
            if not 0 <= minute < MINUTES_PER_DAY:
                raise InvalidInterval(f"Minute offset out of range: {minute}")

    @classmethod
    def parse(
        cls, booking_date: datetime.date, start_time: str, end_time: str
    ) -> TimeInterval:
        return cls(booking_date, parse_time(start_time), parse_time(end_time))

    @property
    def crosses_midnight(self) -> bool:
        return self.end_minute <= self.start_minute

    @property
    def duration_minutes(self) -> int:
        if self.crosses_midnight:
            return MINUTES_PER_DAY - self.start_minute + self.end_minute
        return self.end_minute - self.start_minute

    @property
    def start_time(self) -> str:
        return format_minute(self.start_minute)

    @property
    def end_time(self) -> str:
        return format_minute(self.end_minute)

    @property
    def key(self) -> str:
        """Stable ``HH:MM-HH:MM`` key used in batch availability results."""
        return f"{self.start_time}-{self.end_time}"

    def ranges(self) -> tuple[tuple[int, int], ...]:
        """Half-open minute ranges this interval occupies on its date's clock."""
        if self.crosses_midnight:
            return ((self.start_minute, MINUTES_PER_DAY), (0, self.end_minute))
        return ((self.start_minute, self.end_minute),)

    def start_datetime(self) -> datetime.datetime:
        return datetime.datetime.combine(
            self.booking_date, datetime.time(self.start_minute // 60, self.start_minute % 60)
        )

    def end_datetime(self) -> datetime.datetime:
        return self.start_datetime() + datetime.timedelta(minutes=self.duration_minutes)


def overlaps(a: TimeInterval, b: TimeInterval) -> bool:
    """Return True when two intervals on the same date share any minute.

    A midnight-crossing interval is split into ``[start, 1440)`` and
    ``[0, end)``. Two crossing intervals always meet at midnight.
    """
    return any(
        start1 < end2 and end1 > start2
        for start1, end1 in a.ranges()
        for start2, end2 in b.ranges()
    )


@dataclass(frozen=True, slots=True)
class OperatingWindow:
    """Venue opening hours and booking granularity."""

    open_minute: int = 9 * 60
    close_minute: int = 4 * 60
    min_duration: int = 60
    increment: int = 30

    @classmethod
    def from_settings(cls, settings) -> OperatingWindow:
        return cls(
            open_minute=parse_time(settings.operating_open),
            close_minute=parse_time(settings.operating_close),
            min_duration=settings.min_booking_minutes,
            increment=settings.booking_increment_minutes,
        )

    @property
    def wraps_midnight(self) -> bool:
        return self.close_minute <= self.open_minute

    @property
    def open_minutes(self) -> int:
        """Length of the trading day; equal open and close means round the clock."""
        return (self.close_minute - self.open_minute) % MINUTES_PER_DAY or MINUTES_PER_DAY

    def contains_start(self, minute: int) -> bool:
        if self.wraps_midnight:
            return minute >= self.open_minute or minute < self.close_minute
        return self.open_minute <= minute < self.close_minute

    def validate(
        self, interval: TimeInterval, *, today: datetime.date | None = None
    ) -> None:
        """Raise ``InvalidInterval`` unless the interval is bookable."""
        duration = interval.duration_minutes
        if duration < self.min_duration:
            raise InvalidInterval(
                f"Booking duration must be at least {self.min_duration} minutes"
            )
        if duration % self.increment:
            raise InvalidInterval(
                f"Booking duration must be in {self.increment}-minute increments"
            )
        if not self.contains_start(interval.start_minute):
            raise InvalidInterval(
                f"Booking start time must be between "
                f"{format_minute(self.open_minute)} and {format_minute(self.close_minute)}"
            )
        # Offsets are measured from opening so a window running past midnight
        # is one straight line and the closed hours sit beyond its end.
        start_offset = (interval.start_minute - self.open_minute) % MINUTES_PER_DAY
        if start_offset + duration > self.open_minutes:
            raise InvalidInterval(
                f"Booking cannot end after {format_minute(self.close_minute)}"
            )
        if today is not None and interval.booking_date < today:
            raise InvalidInterval("Cannot book in the past")
