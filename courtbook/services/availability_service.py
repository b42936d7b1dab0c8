"""Availability checks against stored reservations."""

from __future__ import annotations

import datetime
import logging
import uuid
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from courtbook.core.errors import CourtNotFound, CourtUnavailable
from courtbook.core.intervals import OperatingWindow, TimeInterval, overlaps
from courtbook.models import (
    Court,
    CourtDayLock,
    CourtStatus,
    Reservation,
    ReservationStatus,
)

logger = logging.getLogger(__name__)

# Cancelled reservations release their slot; every other status holds it.
_NON_BLOCKING_STATUSES = (ReservationStatus.CANCELLED,)


@dataclass(slots=True)
class AvailabilityResult:
    available: bool
    conflicts: list[Reservation] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "available": self.available,
            "conflicts": [
                {
                    "id": str(item.id),
                    "start_time": item.start_time,
                    "end_time": item.end_time,
                    "status": item.status.value,
                }
                for item in self.conflicts
            ],
        }


def find_conflicts(
    interval: TimeInterval,
    reservations: Sequence[Reservation],
    *,
    exclude_reservation_id: uuid.UUID | None = None,
) -> list[Reservation]:
    """Return every reservation whose interval overlaps the requested one."""
    return [
        reservation
        for reservation in reservations
        if reservation.id != exclude_reservation_id
        and reservation.status not in _NON_BLOCKING_STATUSES
        and overlaps(interval, reservation.interval)
    ]


async def _load_day_reservations(
    session: AsyncSession,
    *,
    booking_date: datetime.date,
    court_ids: Sequence[uuid.UUID] | None = None,
) -> list[Reservation]:
    stmt = select(Reservation).where(
        Reservation.booking_date == booking_date,
        Reservation.status.not_in(_NON_BLOCKING_STATUSES),
    )
    if court_ids is not None:
        stmt = stmt.where(Reservation.court_id.in_(list(court_ids)))
    result = await session.execute(stmt.order_by(Reservation.start_minute))
    return list(result.scalars().all())


async def find_court_conflicts(
    session: AsyncSession,
    *,
    court_id: uuid.UUID,
    interval: TimeInterval,
    exclude_reservation_id: uuid.UUID | None = None,
) -> list[Reservation]:
    reservations = await _load_day_reservations(
        session, booking_date=interval.booking_date, court_ids=[court_id]
    )
    return find_conflicts(
        interval, reservations, exclude_reservation_id=exclude_reservation_id
    )


async def get_bookable_court(session: AsyncSession, *, court_id: uuid.UUID) -> Court:
    """Return the court or raise when it is unknown or inactive."""
    court = await session.get(Court, court_id)
    if court is None:
        raise CourtNotFound("Court not found")
    if court.status == CourtStatus.INACTIVE:
        raise CourtUnavailable("Court is not available for booking")
    return court


async def check_availability(
    session: AsyncSession,
    *,
    court_id: uuid.UUID,
    interval: TimeInterval,
    exclude_reservation_id: uuid.UUID | None = None,
    window: OperatingWindow | None = None,
) -> AvailabilityResult:
    """Check one interval on one court.

    The interval is validated against the operating window before the store
    is touched. Unknown and inactive courts are rejected the same way the
    batch check rejects them. Only reservations on the same booking date are
    considered.
    """
    (window or OperatingWindow()).validate(interval)
    await get_bookable_court(session, court_id=court_id)
    conflicts = await find_court_conflicts(
        session,
        court_id=court_id,
        interval=interval,
        exclude_reservation_id=exclude_reservation_id,
    )
    return AvailabilityResult(available=not conflicts, conflicts=conflicts)


async def _resolve_batch_courts(
    session: AsyncSession, court_ids: Sequence[uuid.UUID] | None
) -> list[uuid.UUID]:
    if court_ids is None:
        result = await session.execute(
            select(Court.id)
            .where(Court.status != CourtStatus.INACTIVE)
            .order_by(Court.name)
        )
        return list(result.scalars().all())

    requested = list(dict.fromkeys(court_ids))
    result = await session.execute(select(Court).where(Court.id.in_(requested)))
    courts = {court.id: court for court in result.scalars().all()}
    for court_id in requested:
        court = courts.get(court_id)
        if court is None:
            raise CourtNotFound(f"Court {court_id} not found")
        if court.status == CourtStatus.INACTIVE:
            raise CourtUnavailable(f"Court {court_id} is not available for booking")
    return requested


async def check_batch_availability(
    session: AsyncSession,
    *,
    booking_date: datetime.date,
    intervals: Sequence[TimeInterval],
    court_ids: Sequence[uuid.UUID] | None = None,
    window: OperatingWindow | None = None,
) -> dict[uuid.UUID, dict[str, AvailabilityResult]]:
    """Check many intervals across many courts with one reservation query.

    Without a court filter every court that is not inactive is checked.
    """
    window = window or OperatingWindow()
    for interval in intervals:
        if interval.booking_date != booking_date:
            raise ValueError("All intervals must share the batch booking date")
        window.validate(interval)

    courts = await _resolve_batch_courts(session, court_ids)
    reservations = await _load_day_reservations(
        session, booking_date=booking_date, court_ids=courts
    )
    by_court: dict[uuid.UUID, list[Reservation]] = defaultdict(list)
    for reservation in reservations:
        by_court[reservation.court_id].append(reservation)

    results: dict[uuid.UUID, dict[str, AvailabilityResult]] = {}
    for court_id in courts:
        court_reservations = by_court.get(court_id, [])
        results[court_id] = {}
        for interval in intervals:
            conflicts = find_conflicts(interval, court_reservations)
            results[court_id][interval.key] = AvailabilityResult(
                available=not conflicts, conflicts=conflicts
            )
    return results


async def lock_court_day(
    session: AsyncSession,
    *,
    court_id: uuid.UUID,
    booking_date: datetime.date,
) -> None:
    """Take the write lock for one court and date inside the current transaction.

    Bumping the lock row's version holds a row lock on PostgreSQL and the
    database write lock on SQLite until the transaction ends, so concurrent
    writers for the same court and date run one after the other.
    """
    bump = (
        update(CourtDayLock)
        .where(
            CourtDayLock.court_id == court_id,
            CourtDayLock.booking_date == booking_date,
        )
        .values(version=CourtDayLock.version + 1)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(bump)
    if result.rowcount:
        return

    try:
        async with session.begin_nested():
            session.add(
                CourtDayLock(court_id=court_id, booking_date=booking_date, version=1)
            )
    except IntegrityError:
        # Another writer created the row first; wait on its lock instead.
        logger.debug("Lock row for %s on %s created concurrently", court_id, booking_date)
        await session.execute(bump)
