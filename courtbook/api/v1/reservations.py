"""Reservation management API."""

from __future__ import annotations

import datetime
import uuid
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Query, status

from courtbook.api import deps
from courtbook.core.errors import BookingError
from courtbook.core.intervals import TimeInterval
from courtbook.models import CreatedBy, ReservationStatus
from courtbook.schemas.reservation import (
    AdminReservationCreate,
    BlockCreate,
    PaymentUpdate,
    ReservationCancelRequest,
    ReservationCreate,
    ReservationCreateRead,
    ReservationRead,
    ReservationStatusUpdate,
)
from courtbook.services import notification_service, reservation_service
from courtbook.services.reservation_service import CustomerDetails, ReservationOutcome

router = APIRouter(prefix="/reservations", tags=["reservations"])


def _customer_details(payload) -> CustomerDetails | None:
    if payload is None:
        return None
    return CustomerDetails(name=payload.name, phone=payload.phone, email=payload.email)


def _outcome_read(outcome: ReservationOutcome) -> ReservationCreateRead:
    return ReservationCreateRead(
        reservation=ReservationRead.model_validate(outcome.reservation),
        replayed=outcome.replayed,
        promo_applied=outcome.promo_applied,
        promo_message=outcome.promo_message,
    )


@router.post(
    "",
    response_model=ReservationCreateRead,
    status_code=status.HTTP_201_CREATED,
    summary="Book a court",
    dependencies=[deps.BOOKING_RATE_DEP],
)
async def create_reservation(
    payload: ReservationCreate,
    engine: deps.EngineDep,
    background_tasks: BackgroundTasks,
) -> ReservationCreateRead:
    try:
        interval = TimeInterval.parse(
            payload.booking_date, payload.start_time, payload.end_time
        )
        outcome = await engine.reserve(
            court_id=payload.court_id,
            interval=interval,
            customer=_customer_details(payload.customer),
            promo_code=payload.promo_code,
            payment_reference=payload.payment_reference,
            payment_method=payload.payment_method,
            notes=payload.notes,
        )
    except BookingError as exc:
        raise deps.as_http_exception(exc) from exc
    if not outcome.replayed:
        notification_service.notify_booking_confirmation(
            outcome.reservation, background_tasks
        )
    return _outcome_read(outcome)


@router.post(
    "/admin",
    response_model=ReservationCreateRead,
    status_code=status.HTTP_201_CREATED,
    summary="Book a court on behalf of a customer",
)
async def create_admin_reservation(
    payload: AdminReservationCreate, engine: deps.EngineDep
) -> ReservationCreateRead:
    try:
        interval = TimeInterval.parse(
            payload.booking_date, payload.start_time, payload.end_time
        )
        outcome = await engine.reserve(
            court_id=payload.court_id,
            interval=interval,
            customer=_customer_details(payload.customer),
            customer_id=payload.customer_id,
            promo_code=payload.promo_code,
            payment_reference=payload.payment_reference,
            payment_status=payload.payment_status,
            payment_method=payload.payment_method,
            amount_paid=payload.amount_paid,
            notes=payload.notes,
            created_by=CreatedBy.ADMIN,
        )
    except BookingError as exc:
        raise deps.as_http_exception(exc) from exc
    return _outcome_read(outcome)


@router.post(
    "/blocks",
    response_model=ReservationRead,
    status_code=status.HTTP_201_CREATED,
    summary="Hold a slot for staff use",
)
async def create_block(payload: BlockCreate, engine: deps.EngineDep) -> ReservationRead:
    try:
        interval = TimeInterval.parse(
            payload.booking_date, payload.start_time, payload.end_time
        )
        reservation = await engine.block(
            court_id=payload.court_id, interval=interval, notes=payload.notes
        )
    except BookingError as exc:
        raise deps.as_http_exception(exc) from exc
    return ReservationRead.model_validate(reservation)


@router.get("", response_model=list[ReservationRead], summary="List reservations")
async def list_reservations(
    session: deps.SessionDep,
    booking_date: datetime.date | None = None,
    start_date: datetime.date | None = None,
    end_date: datetime.date | None = None,
    court_id: uuid.UUID | None = None,
    status_filter: Annotated[ReservationStatus | None, Query(alias="status")] = None,
    include_cancelled: bool = False,
    skip: int = 0,
    limit: int = 50,
) -> list[ReservationRead]:
    try:
        reservations = await reservation_service.list_reservations(
            session,
            booking_date=booking_date,
            start_date=start_date,
            end_date=end_date,
            court_id=court_id,
            status=status_filter,
            include_cancelled=include_cancelled,
            skip=skip,
            limit=min(limit, 100),
        )
    except BookingError as exc:
        raise deps.as_http_exception(exc) from exc
    return [ReservationRead.model_validate(obj) for obj in reservations]


@router.get(
    "/by-payment-reference/{payment_reference}",
    response_model=ReservationRead,
    summary="Find the reservation for a payment",
)
async def get_by_payment_reference(
    payment_reference: str, engine: deps.EngineDep
) -> ReservationRead:
    try:
        reservation = await engine.get_by_payment_reference(payment_reference)
    except BookingError as exc:
        raise deps.as_http_exception(exc) from exc
    return ReservationRead.model_validate(reservation)


@router.get("/{reservation_id}", response_model=ReservationRead, summary="Get reservation")
async def get_reservation(
    reservation_id: uuid.UUID, engine: deps.EngineDep
) -> ReservationRead:
    try:
        reservation = await engine.get_reservation(reservation_id)
    except BookingError as exc:
        raise deps.as_http_exception(exc) from exc
    return ReservationRead.model_validate(reservation)


@router.post(
    "/{reservation_id}/cancel",
    response_model=ReservationRead,
    summary="Cancel reservation",
)
async def cancel_reservation(
    reservation_id: uuid.UUID,
    engine: deps.EngineDep,
    background_tasks: BackgroundTasks,
    payload: ReservationCancelRequest | None = None,
) -> ReservationRead:
    try:
        outcome = await engine.cancel(
            reservation_id=reservation_id,
            reason=payload.reason if payload else None,
        )
    except BookingError as exc:
        raise deps.as_http_exception(exc) from exc
    if not outcome.replayed:
        notification_service.notify_cancellation(outcome.reservation, background_tasks)
    return ReservationRead.model_validate(outcome.reservation)


@router.patch(
    "/{reservation_id}/status",
    response_model=ReservationRead,
    summary="Move a reservation through its lifecycle",
)
async def update_status(
    reservation_id: uuid.UUID, payload: ReservationStatusUpdate, engine: deps.EngineDep
) -> ReservationRead:
    try:
        reservation = await engine.update_status(
            reservation_id=reservation_id, status=payload.status, reason=payload.reason
        )
    except BookingError as exc:
        raise deps.as_http_exception(exc) from exc
    return ReservationRead.model_validate(reservation)


@router.post(
    "/{reservation_id}/payment",
    response_model=ReservationRead,
    summary="Record a payment update",
)
async def record_payment(
    reservation_id: uuid.UUID, payload: PaymentUpdate, engine: deps.EngineDep
) -> ReservationRead:
    try:
        reservation = await engine.record_payment(
            reservation_id=reservation_id,
            payment_status=payload.payment_status,
            amount_paid=payload.amount_paid,
            payment_method=payload.payment_method,
            payment_reference=payload.payment_reference,
        )
    except BookingError as exc:
        raise deps.as_http_exception(exc) from exc
    return ReservationRead.model_validate(reservation)
