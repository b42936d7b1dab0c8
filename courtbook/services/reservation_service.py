"""Reservation transaction and lifecycle service helpers."""
from __future__ import annotations

import datetime
import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from courtbook.core.errors import (
    CustomerRequired,
    InvalidInterval,
    InvalidStatusTransition,
    PaymentReferenceInUse,
    PromoInvalid,
    ReservationNotFound,
    SlotConflict,
)
from courtbook.core.intervals import OperatingWindow, TimeInterval
from courtbook.models import (
    CreatedBy,
    Customer,
    PaymentStatus,
    Reservation,
    ReservationStatus,
)
from courtbook.services import availability_service, promo_code_service
from courtbook.services.pricing_service import (
    DatabaseRuleSource,
    PriceQuote,
    PricingRuleSource,
    price_interval,
)
from courtbook.services.promo_code_service import PromoValidation

logger = logging.getLogger(__name__)

_ALLOWED_STATUS_TRANSITIONS: dict[ReservationStatus, set[ReservationStatus]] = {
    ReservationStatus.PENDING: {ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED},
    ReservationStatus.CONFIRMED: {
        ReservationStatus.COMPLETED,
        ReservationStatus.CANCELLED,
        ReservationStatus.NO_SHOW,
    },
    ReservationStatus.BLOCKED: {ReservationStatus.CANCELLED},
    ReservationStatus.COMPLETED: set(),
    ReservationStatus.CANCELLED: set(),
    ReservationStatus.NO_SHOW: set(),
}

_SETTLED_PAYMENT_STATUSES = {PaymentStatus.PAID, PaymentStatus.PARTIAL}

ZERO = Decimal("0.00")


@dataclass(slots=True)
class CustomerDetails:
    """Guest contact captured with a booking."""

    name: str
    phone: str
    email: str | None = None


@dataclass(slots=True)
class ReservationOutcome:
    """A stored reservation plus what happened while creating it."""

    reservation: Reservation
    replayed: bool = False
    quote: PriceQuote | None = None
    promo_applied: bool = False
    promo_message: str | None = None


def _base_reservation_query():
    return (
        select(Reservation)
        .options(
            selectinload(Reservation.court),
            selectinload(Reservation.customer),
            selectinload(Reservation.promo_code),
        )
        .execution_options(populate_existing=True)
    )


async def get_reservation(
    session: AsyncSession, *, reservation_id: uuid.UUID
) -> Reservation | None:
    result = await session.execute(
        _base_reservation_query().where(Reservation.id == reservation_id)
    )
    return result.scalars().unique().one_or_none()


async def get_reservation_by_payment_reference(
    session: AsyncSession, *, payment_reference: str
) -> Reservation | None:
    result = await session.execute(
        _base_reservation_query().where(
            Reservation.payment_reference == payment_reference
        )
    )
    return result.scalars().unique().one_or_none()


async def list_reservations(
    session: AsyncSession,
    *,
    booking_date: datetime.date | None = None,
    start_date: datetime.date | None = None,
    end_date: datetime.date | None = None,
    court_id: uuid.UUID | None = None,
    status: ReservationStatus | None = None,
    include_cancelled: bool = False,
    skip: int = 0,
    limit: int = 50,
) -> Sequence[Reservation]:
    """List reservations for the calendar, earliest first.

    ``start_date`` and ``end_date`` bound the booking date inclusively.
    Cancelled rows are left out unless asked for or named by ``status``.
    """
    if start_date is not None and end_date is not None and end_date < start_date:
        raise InvalidInterval("end_date cannot be before start_date")

    stmt = _base_reservation_query()
    if booking_date is not None:
        stmt = stmt.where(Reservation.booking_date == booking_date)
    if start_date is not None:
        stmt = stmt.where(Reservation.booking_date >= start_date)
    if end_date is not None:
        stmt = stmt.where(Reservation.booking_date <= end_date)
    if court_id is not None:
        stmt = stmt.where(Reservation.court_id == court_id)
    if status is not None:
        stmt = stmt.where(Reservation.status == status)
    elif not include_cancelled:
        stmt = stmt.where(Reservation.status != ReservationStatus.CANCELLED)
    stmt = stmt.order_by(
        Reservation.booking_date, Reservation.start_minute
    ).offset(skip).limit(limit)
    result = await session.execute(stmt)
    return result.scalars().unique().all()


async def _require_reservation(
    session: AsyncSession, reservation_id: uuid.UUID
) -> Reservation:
    reservation = await get_reservation(session, reservation_id=reservation_id)
    if reservation is None:
        raise ReservationNotFound("Reservation not found")
    return reservation


async def _ensure_slot_free(
    session: AsyncSession,
    *,
    court_id: uuid.UUID,
    interval: TimeInterval,
    exclude_reservation_id: uuid.UUID | None = None,
) -> None:
    """Lock the court day, then re-read its reservations as the final check."""
    await availability_service.lock_court_day(
        session, court_id=court_id, booking_date=interval.booking_date
    )
    conflicts = await availability_service.find_court_conflicts(
        session,
        court_id=court_id,
        interval=interval,
        exclude_reservation_id=exclude_reservation_id,
    )
    if conflicts:
        raise SlotConflict(
            "Court is already booked for this time slot",
            conflicts=[item.id for item in conflicts],
        )


async def _resolve_customer(
    session: AsyncSession,
    *,
    customer: CustomerDetails | None,
    customer_id: uuid.UUID | None,
) -> Customer:
    if customer_id is not None:
        existing = await session.get(Customer, customer_id)
        if existing is None:
            raise CustomerRequired("Customer not found")
        existing.total_bookings += 1
        return existing
    if customer is None:
        raise CustomerRequired("Customer details are required")
    record = Customer(
        name=customer.name.strip(),
        phone=customer.phone.strip(),
        email=customer.email,
        total_bookings=1,
    )
    session.add(record)
    return record


async def reserve(
    session: AsyncSession,
    *,
    court_id: uuid.UUID,
    interval: TimeInterval,
    customer: CustomerDetails | None = None,
    customer_id: uuid.UUID | None = None,
    promo_code: str | None = None,
    payment_reference: str | None = None,
    payment_status: PaymentStatus = PaymentStatus.PENDING,
    payment_method: str | None = None,
    amount_paid: Decimal | None = None,
    notes: str | None = None,
    created_by: CreatedBy = CreatedBy.CUSTOMER,
    window: OperatingWindow | None = None,
    rule_source: PricingRuleSource | None = None,
    today: datetime.date | None = None,
    now: datetime.datetime | None = None,
) -> ReservationOutcome:
    """Validate, price, discount and persist one reservation atomically.

    A known ``payment_reference`` short-circuits to the stored reservation
    without touching availability, pricing or promo codes. The promo code is
    consumed in the same transaction as the insert; losing the race for it
    books the slot at full price and reports why.
    """
    if payment_reference:
        existing = await get_reservation_by_payment_reference(
            session, payment_reference=payment_reference
        )
        if existing is not None:
            logger.info("Replaying reservation %s for payment reference", existing.id)
            return ReservationOutcome(reservation=existing, replayed=True)

    if customer is None and customer_id is None:
        raise CustomerRequired("Customer details are required")

    (window or OperatingWindow()).validate(interval, today=today)
    await availability_service.get_bookable_court(session, court_id=court_id)
    await _ensure_slot_free(session, court_id=court_id, interval=interval)

    rate_table = await (rule_source or DatabaseRuleSource()).load(session)
    quote = price_interval(rate_table, interval)

    record = await _resolve_customer(session, customer=customer, customer_id=customer_id)

    validation: PromoValidation | None = None
    promo_message: str | None = None
    if promo_code:
        validation = await promo_code_service.validate_promo_code(
            session,
            code=promo_code,
            customer_phone=record.phone,
            amount=quote.total_price,
            now=now,
        )
        promo_message = validation.reason
        if not validation.valid:
            logger.info("Promo code %s rejected: %s", promo_code, validation.reason)

    discount = validation.discount if validation and validation.valid else ZERO
    final_price = quote.total_price - discount
    status = (
        ReservationStatus.CONFIRMED
        if payment_status == PaymentStatus.PAID
        else ReservationStatus.PENDING
    )
    amount_paid_defaulted = amount_paid is None
    if amount_paid is None:
        amount_paid = final_price if payment_status == PaymentStatus.PAID else ZERO

    reservation = Reservation(
        court_id=court_id,
        customer=record,
        booking_date=interval.booking_date,
        start_minute=interval.start_minute,
        end_minute=interval.end_minute,
        duration_minutes=interval.duration_minutes,
        status=status,
        payment_status=payment_status,
        base_price=quote.total_price,
        discount_amount=discount,
        final_price=final_price,
        amount_paid=amount_paid,
        pricing_breakdown=quote.breakdown(),
        promo_code_id=(
            validation.promo_code_id if validation and validation.valid else None
        ),
        payment_reference=payment_reference or None,
        payment_method=payment_method,
        notes=notes,
        created_by=created_by,
    )
    session.add(reservation)

    promo_applied = False
    try:
        await session.flush()
        if validation is not None and validation.valid:
            try:
                await promo_code_service.consume_promo_code(
                    session,
                    promo_code_id=validation.promo_code_id,  # type: ignore[arg-type]
                    customer_id=record.id,
                    customer_phone=record.phone,
                )
                promo_applied = True
            except PromoInvalid as exc:
                logger.warning(
                    "Promo code %s lost to a concurrent booking: %s", promo_code, exc.message
                )
                reservation.discount_amount = ZERO
                reservation.final_price = quote.total_price
                reservation.promo_code_id = None
                if amount_paid_defaulted and payment_status == PaymentStatus.PAID:
                    reservation.amount_paid = quote.total_price
                promo_message = exc.message
        await session.commit()
    except IntegrityError:
        await session.rollback()
        if payment_reference:
            existing = await get_reservation_by_payment_reference(
                session, payment_reference=payment_reference
            )
            if existing is not None:
                return ReservationOutcome(reservation=existing, replayed=True)
        raise

    logger.info(
        "Reservation %s created for court %s on %s %s",
        reservation.id,
        court_id,
        interval.booking_date,
        interval.key,
    )
    stored = await _require_reservation(session, reservation.id)
    return ReservationOutcome(
        reservation=stored,
        quote=quote,
        promo_applied=promo_applied,
        promo_message=promo_message,
    )


async def block_slot(
    session: AsyncSession,
    *,
    court_id: uuid.UUID,
    interval: TimeInterval,
    notes: str | None = None,
    window: OperatingWindow | None = None,
    today: datetime.date | None = None,
) -> Reservation:
    """Hold an interval for staff use with no customer and no price."""
    (window or OperatingWindow()).validate(interval, today=today)
    await availability_service.get_bookable_court(session, court_id=court_id)
    await _ensure_slot_free(session, court_id=court_id, interval=interval)

    reservation = Reservation(
        court_id=court_id,
        customer_id=None,
        booking_date=interval.booking_date,
        start_minute=interval.start_minute,
        end_minute=interval.end_minute,
        duration_minutes=interval.duration_minutes,
        status=ReservationStatus.BLOCKED,
        payment_status=PaymentStatus.PENDING,
        base_price=ZERO,
        discount_amount=ZERO,
        final_price=ZERO,
        amount_paid=ZERO,
        pricing_breakdown=[],
        notes=notes,
        created_by=CreatedBy.ADMIN,
    )
    session.add(reservation)
    await session.commit()
    logger.info("Court %s blocked on %s %s", court_id, interval.booking_date, interval.key)
    return await _require_reservation(session, reservation.id)


def _validate_status_transition(current: ReservationStatus, target: ReservationStatus) -> None:
    if target == current:
        return
    allowed = _ALLOWED_STATUS_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise InvalidStatusTransition(
            f"Invalid status transition from {current.value} to {target.value}"
        )


def _append_note(existing: str | None, line: str) -> str:
    return f"{existing}\n{line}" if existing else line


async def cancel_reservation(
    session: AsyncSession,
    *,
    reservation_id: uuid.UUID,
    reason: str | None = None,
) -> ReservationOutcome:
    """Cancel a reservation and hand back any promo code it consumed.

    Cancelling an already cancelled reservation changes nothing and comes back
    flagged as ``replayed``.
    """
    reservation = await _require_reservation(session, reservation_id)
    if reservation.status == ReservationStatus.CANCELLED:
        return ReservationOutcome(reservation=reservation, replayed=True)
    _validate_status_transition(reservation.status, ReservationStatus.CANCELLED)

    await availability_service.lock_court_day(
        session, court_id=reservation.court_id, booking_date=reservation.booking_date
    )
    if reservation.promo_code_id is not None and reservation.customer_id is not None:
        released = await promo_code_service.release_promo_code(
            session,
            promo_code_id=reservation.promo_code_id,
            customer_id=reservation.customer_id,
        )
        if released:
            logger.info("Promo code released by reservation %s", reservation.id)

    reservation.status = ReservationStatus.CANCELLED
    if reason:
        reservation.notes = _append_note(reservation.notes, f"Cancellation reason: {reason}")
    await session.commit()
    logger.info("Reservation %s cancelled", reservation.id)
    stored = await _require_reservation(session, reservation.id)
    return ReservationOutcome(reservation=stored)


async def update_status(
    session: AsyncSession,
    *,
    reservation_id: uuid.UUID,
    status: ReservationStatus,
    reason: str | None = None,
) -> Reservation:
    if status == ReservationStatus.CANCELLED:
        outcome = await cancel_reservation(
            session, reservation_id=reservation_id, reason=reason
        )
        return outcome.reservation

    reservation = await _require_reservation(session, reservation_id)
    if reservation.status == status:
        return reservation
    _validate_status_transition(reservation.status, status)
    reservation.status = status
    await session.commit()
    logger.info("Reservation %s moved to %s", reservation.id, status.value)
    return await _require_reservation(session, reservation.id)


async def record_payment(
    session: AsyncSession,
    *,
    reservation_id: uuid.UUID,
    payment_status: PaymentStatus,
    amount_paid: Decimal | None = None,
    payment_method: str | None = None,
    payment_reference: str | None = None,
) -> Reservation:
    """Store a settlement update reported by the payment authority."""
    reservation = await _require_reservation(session, reservation_id)
    if reservation.status in {ReservationStatus.CANCELLED, ReservationStatus.BLOCKED}:
        if payment_status in _SETTLED_PAYMENT_STATUSES:
            raise InvalidStatusTransition(
                f"Cannot record payment for a {reservation.status.value} reservation"
            )

    reservation.payment_status = payment_status
    if amount_paid is not None:
        if amount_paid < 0:
            raise InvalidStatusTransition("Amount paid cannot be negative")
        reservation.amount_paid = amount_paid
    elif payment_status == PaymentStatus.PAID:
        reservation.amount_paid = reservation.final_price
    if payment_method is not None:
        reservation.payment_method = payment_method
    if payment_reference is not None:
        reservation.payment_reference = payment_reference
    if (
        payment_status in _SETTLED_PAYMENT_STATUSES
        and reservation.status == ReservationStatus.PENDING
    ):
        reservation.status = ReservationStatus.CONFIRMED

    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise PaymentReferenceInUse("Payment reference already in use") from None
    logger.info(
        "Payment %s recorded for reservation %s", payment_status.value, reservation_id
    )
    return await _require_reservation(session, reservation_id)
