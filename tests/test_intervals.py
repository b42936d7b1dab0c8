"""Tests for time parsing, the overlap detector and the operating window."""

from __future__ import annotations

import datetime
import itertools

import pytest

from courtbook.core.errors import InvalidInterval
from courtbook.core.intervals import (
    OperatingWindow,
    TimeInterval,
    format_minute,
    overlaps,
    parse_time,
)

DAY = datetime.date(2026, 2, 12)


def _interval(start: str, end: str, day: datetime.date = DAY) -> TimeInterval:
    return TimeInterval.parse(day, start, end)


def _grid(step: int) -> list[TimeInterval]:
    minutes = range(0, 24 * 60, step)
    return [TimeInterval(DAY, start, end) for start in minutes for end in minutes]


@pytest.mark.parametrize(
    ("value", "expected"),
    [("00:00", 0), ("9:30", 570), ("09:30", 570), ("19:00", 1140), ("23:59", 1439)],
)
def test_parse_time_accepts_clock_values(value: str, expected: int) -> None:
    assert parse_time(value) == expected
    assert format_minute(expected) == f"{expected // 60:02d}:{expected % 60:02d}"


@pytest.mark.parametrize("value", ["24:00", "12:60", "noon", "1230", "", "12:5"])
def test_parse_time_rejects_malformed_values(value: str) -> None:
    with pytest.raises(InvalidInterval):
        parse_time(value)


def test_midnight_crossing_is_derived_from_end_before_start() -> None:
    late = _interval("23:00", "02:00")
    assert late.crosses_midnight
    assert late.duration_minutes == 180
    assert late.ranges() == ((1380, 1440), (0, 120))
    assert late.end_datetime() == datetime.datetime(2026, 2, 13, 2, 0)

    evening = _interval("18:00", "20:00")
    assert not evening.crosses_midnight
    assert evening.duration_minutes == 120
    assert evening.key == "18:00-20:00"


def test_overlap_matches_formula_for_same_day_intervals() -> None:
    intervals = [item for item in _grid(60) if not item.crosses_midnight]
    for a, b in itertools.product(intervals, repeat=2):
        expected = a.start_minute < b.end_minute and a.end_minute > b.start_minute
        assert overlaps(a, b) is expected, (a.key, b.key)


def test_overlap_is_symmetric_and_reflexive() -> None:
    intervals = _grid(120)
    for a in intervals:
        assert overlaps(a, a), a.key
    for a, b in itertools.combinations(intervals, 2):
        assert overlaps(a, b) == overlaps(b, a), (a.key, b.key)


def test_two_crossing_intervals_always_overlap() -> None:
    assert overlaps(_interval("22:00", "00:30"), _interval("23:30", "01:00"))
    assert overlaps(_interval("23:00", "00:00"), _interval("23:59", "00:01"))


def test_crossing_interval_conflicts_with_early_hours() -> None:
    existing = _interval("23:00", "02:00")
    assert overlaps(existing, _interval("01:00", "03:00"))
    assert not overlaps(existing, _interval("02:00", "04:00"))
    assert not overlaps(existing, _interval("21:00", "23:00"))


def test_adjacent_intervals_do_not_overlap() -> None:
    assert not overlaps(_interval("18:00", "20:00"), _interval("20:00", "22:00"))
    assert overlaps(_interval("18:00", "20:00"), _interval("19:00", "21:00"))


@pytest.mark.parametrize(
    ("start", "end"),
    [
        ("09:00", "10:00"),
        ("09:00", "10:30"),
        ("22:00", "00:00"),
        ("23:00", "02:00"),
        ("02:00", "04:00"),
        ("01:30", "03:00"),
    ],
)
def test_window_accepts_bookable_intervals(start: str, end: str) -> None:
    OperatingWindow().validate(_interval(start, end))


@pytest.mark.parametrize(
    ("start", "end", "message"),
    [
        ("09:00", "09:30", "at least 60 minutes"),
        ("09:00", "10:15", "30-minute increments"),
        ("08:00", "09:00", "start time"),
        ("04:00", "05:00", "start time"),
        ("23:00", "05:00", "cannot end after"),
        ("03:00", "05:00", "cannot end after"),
        ("02:00", "02:00", "cannot end after"),
        ("01:00", "00:30", "cannot end after"),
        ("10:00", "09:30", "cannot end after"),
    ],
)
def test_window_rejects_out_of_policy_intervals(start: str, end: str, message: str) -> None:
    with pytest.raises(InvalidInterval, match=message):
        OperatingWindow().validate(_interval(start, end))


def test_window_rejects_past_dates() -> None:
    with pytest.raises(InvalidInterval, match="past"):
        OperatingWindow().validate(
            _interval("10:00", "11:00"), today=DAY + datetime.timedelta(days=1)
        )
    OperatingWindow().validate(_interval("10:00", "11:00"), today=DAY)


def test_daytime_window_keeps_bookings_before_closing() -> None:
    window = OperatingWindow(open_minute=8 * 60, close_minute=22 * 60)
    window.validate(_interval("20:00", "22:00"))
    for start, end in [("21:00", "01:00"), ("21:00", "22:30"), ("08:00", "08:00")]:
        with pytest.raises(InvalidInterval, match="cannot end after 22:00"):
            window.validate(_interval(start, end))
