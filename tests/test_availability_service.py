"""Tests for single and batch availability checks."""

from __future__ import annotations

import datetime
import uuid
from decimal import Decimal

import pytest

from courtbook.core.errors import CourtNotFound, CourtUnavailable, InvalidInterval
from courtbook.core.intervals import TimeInterval
from courtbook.db.session import get_sessionmaker
from courtbook.models import CourtDayLock, Reservation, ReservationStatus
from courtbook.services import availability_service

pytestmark = pytest.mark.asyncio

THURSDAY = datetime.date(2026, 2, 12)


async def _store(
    session,
    *,
    court_id: uuid.UUID,
    start: str,
    end: str,
    day: datetime.date = THURSDAY,
    status: ReservationStatus = ReservationStatus.CONFIRMED,
) -> Reservation:
    interval = TimeInterval.parse(day, start, end)
    reservation = Reservation(
        court_id=court_id,
        booking_date=day,
        start_minute=interval.start_minute,
        end_minute=interval.end_minute,
        duration_minutes=interval.duration_minutes,
        status=status,
        base_price=Decimal("0"),
        final_price=Decimal("0"),
    )
    session.add(reservation)
    await session.commit()
    return reservation


async def test_overlapping_request_reports_the_conflict(venue, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        existing = await _store(session, court_id=venue["court_a"], start="18:00", end="20:00")
        result = await availability_service.check_availability(
            session,
            court_id=venue["court_a"],
            interval=TimeInterval.parse(THURSDAY, "19:00", "21:00"),
        )
    assert result.available is False
    assert [item.id for item in result.conflicts] == [existing.id]
    assert result.to_dict()["conflicts"][0]["start_time"] == "18:00"


async def test_midnight_crossing_reservation_blocks_early_hours(venue, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        await _store(session, court_id=venue["court_a"], start="23:00", end="02:00")
        blocked = await availability_service.check_availability(
            session,
            court_id=venue["court_a"],
            interval=TimeInterval.parse(THURSDAY, "01:00", "03:00"),
        )
        free = await availability_service.check_availability(
            session,
            court_id=venue["court_a"],
            interval=TimeInterval.parse(THURSDAY, "02:00", "04:00"),
        )
    assert blocked.available is False
    assert free.available is True


async def test_scope_is_court_date_and_live_statuses(venue, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        await _store(session, court_id=venue["court_b"], start="10:00", end="12:00")
        await _store(
            session,
            court_id=venue["court_a"],
            start="10:00",
            end="12:00",
            day=THURSDAY + datetime.timedelta(days=1),
        )
        await _store(
            session,
            court_id=venue["court_a"],
            start="10:00",
            end="12:00",
            status=ReservationStatus.CANCELLED,
        )
        held = await _store(
            session,
            court_id=venue["court_a"],
            start="13:00",
            end="14:00",
            status=ReservationStatus.BLOCKED,
        )
        morning = await availability_service.check_availability(
            session,
            court_id=venue["court_a"],
            interval=TimeInterval.parse(THURSDAY, "10:00", "12:00"),
        )
        afternoon = await availability_service.check_availability(
            session,
            court_id=venue["court_a"],
            interval=TimeInterval.parse(THURSDAY, "12:30", "13:30"),
        )
        excluded = await availability_service.check_availability(
            session,
            court_id=venue["court_a"],
            interval=TimeInterval.parse(THURSDAY, "12:30", "13:30"),
            exclude_reservation_id=held.id,
        )
    assert morning.available is True
    assert afternoon.available is False
    assert excluded.available is True


async def test_invalid_interval_is_rejected_before_querying(venue, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        with pytest.raises(InvalidInterval):
            await availability_service.check_availability(
                session,
                court_id=venue["court_a"],
                interval=TimeInterval.parse(THURSDAY, "10:00", "10:30"),
            )
        with pytest.raises(InvalidInterval):
            await availability_service.check_batch_availability(
                session,
                booking_date=THURSDAY,
                intervals=[TimeInterval.parse(THURSDAY, "07:00", "08:00")],
            )


async def test_batch_matches_individual_checks(venue, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    slots = [
        ("09:00", "10:00"),
        ("17:00", "19:00"),
        ("18:30", "20:00"),
        ("22:00", "00:00"),
        ("23:30", "01:30"),
        ("01:00", "02:00"),
        ("02:00", "04:00"),
    ]
    intervals = [TimeInterval.parse(THURSDAY, start, end) for start, end in slots]
    async with sessionmaker() as session:
        await _store(session, court_id=venue["court_a"], start="18:00", end="20:00")
        await _store(session, court_id=venue["court_a"], start="23:00", end="02:00")
        await _store(session, court_id=venue["court_b"], start="09:00", end="11:00")

        batch = await availability_service.check_batch_availability(
            session, booking_date=THURSDAY, intervals=intervals
        )
        assert set(batch) == {venue["court_a"], venue["court_b"]}
        for court_id, results in batch.items():
            assert set(results) == {interval.key for interval in intervals}
            for interval in intervals:
                single = await availability_service.check_availability(
                    session, court_id=court_id, interval=interval
                )
                assert results[interval.key].available == single.available, (
                    court_id,
                    interval.key,
                )

    assert batch[venue["court_a"]]["17:00-19:00"].available is False
    assert batch[venue["court_a"]]["02:00-04:00"].available is True
    assert batch[venue["court_b"]]["09:00-10:00"].available is False


async def test_batch_court_filter_is_validated(venue, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    interval = TimeInterval.parse(THURSDAY, "10:00", "11:00")
    async with sessionmaker() as session:
        only_b = await availability_service.check_batch_availability(
            session,
            booking_date=THURSDAY,
            intervals=[interval],
            court_ids=[venue["court_b"]],
        )
        assert list(only_b) == [venue["court_b"]]

        with pytest.raises(CourtNotFound):
            await availability_service.check_batch_availability(
                session,
                booking_date=THURSDAY,
                intervals=[interval],
                court_ids=[uuid.uuid4()],
            )
        with pytest.raises(CourtUnavailable):
            await availability_service.check_batch_availability(
                session,
                booking_date=THURSDAY,
                intervals=[interval],
                court_ids=[venue["closed_court"]],
            )


async def test_lock_court_day_creates_then_bumps_the_row(venue, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        await availability_service.lock_court_day(
            session, court_id=venue["court_a"], booking_date=THURSDAY
        )
        await session.commit()
        await availability_service.lock_court_day(
            session, court_id=venue["court_a"], booking_date=THURSDAY
        )
        await session.commit()
        lock = await session.get(
            CourtDayLock, (venue["court_a"], THURSDAY), populate_existing=True
        )
    assert lock is not None
    assert lock.version == 2


async def test_single_check_rejects_unknown_and_inactive_courts(venue, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    interval = TimeInterval.parse(THURSDAY, "10:00", "11:00")
    async with sessionmaker() as session:
        with pytest.raises(CourtNotFound):
            await availability_service.check_availability(
                session, court_id=uuid.uuid4(), interval=interval
            )
        with pytest.raises(CourtUnavailable):
            await availability_service.check_availability(
                session, court_id=venue["closed_court"], interval=interval
            )
