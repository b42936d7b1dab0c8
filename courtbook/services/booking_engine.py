"""Booking engine: runs each booking operation in its own bounded transaction."""

from __future__ import annotations

import asyncio
import datetime
import logging
import uuid
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC
from decimal import Decimal
from typing import Any, TypeVar
from zoneinfo import ZoneInfo

from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from courtbook.core.config import Settings
from courtbook.core.errors import (
    BookingError,
    PricingConfigurationMissing,
    ReservationNotFound,
    StoreUnavailable,
)
from courtbook.core.intervals import OperatingWindow, TimeInterval
from courtbook.models import CreatedBy, PaymentStatus, Reservation, ReservationStatus
from courtbook.services import (
    availability_service,
    promo_code_service,
    reservation_service,
)
from courtbook.services.availability_service import AvailabilityResult
from courtbook.services.pricing_service import (
    DatabaseRuleSource,
    PriceQuote,
    PricingRuleSource,
    price_interval,
)
from courtbook.services.promo_code_service import PromoValidation
from courtbook.services.reservation_service import CustomerDetails, ReservationOutcome

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(UTC)


@dataclass(slots=True)
class BookingEngine:
    """Entry point for every booking operation exposed to the API.

    Each call opens a session, runs under ``store_timeout`` seconds and turns
    store failures into ``StoreUnavailable`` so callers can retry.
    """

    sessionmaker: async_sessionmaker[AsyncSession]
    window: OperatingWindow = field(default_factory=OperatingWindow)
    rule_source: PricingRuleSource = field(default_factory=DatabaseRuleSource)
    store_timeout: float = 5.0
    venue_timezone: str = "Asia/Riyadh"
    clock: Callable[[], datetime.datetime] = _utcnow

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        sessionmaker: async_sessionmaker[AsyncSession],
        **overrides: Any,
    ) -> BookingEngine:
        options: dict[str, Any] = {
            "window": OperatingWindow.from_settings(settings),
            "store_timeout": settings.store_timeout_seconds,
            "venue_timezone": settings.venue_timezone,
        }
        options.update(overrides)
        return cls(sessionmaker=sessionmaker, **options)

    def today(self) -> datetime.date:
        """Current date at the venue."""
        return self.clock().astimezone(ZoneInfo(self.venue_timezone)).date()

    async def _run(
        self, operation: str, work: Callable[[AsyncSession], Awaitable[T]]
    ) -> T:
        async with self.sessionmaker() as session:
            try:
                return await asyncio.wait_for(work(session), timeout=self.store_timeout)
            except PricingConfigurationMissing as exc:
                logger.error(
                    "Pricing configuration missing during %s: %s/%s",
                    operation,
                    exc.day_bucket,
                    exc.time_bucket,
                )
                raise
            except BookingError:
                raise
            except TimeoutError:
                logger.exception("Store timed out during %s", operation)
                raise StoreUnavailable(
                    "The booking store did not respond in time; please retry"
                ) from None
            except IntegrityError:
                raise
            except DBAPIError as exc:
                await session.rollback()
                logger.exception("Store failure during %s: %s", operation, exc)
                raise StoreUnavailable(
                    "The booking store is unavailable; please retry"
                ) from exc

    async def quote(self, interval: TimeInterval) -> PriceQuote:
        self.window.validate(interval)

        async def work(session: AsyncSession) -> PriceQuote:
            return price_interval(await self.rule_source.load(session), interval)

        return await self._run("quote", work)

    async def check_availability(
        self,
        *,
        court_id: uuid.UUID,
        interval: TimeInterval,
        exclude_reservation_id: uuid.UUID | None = None,
    ) -> AvailabilityResult:
        return await self._run(
            "check_availability",
            lambda session: availability_service.check_availability(
                session,
                court_id=court_id,
                interval=interval,
                exclude_reservation_id=exclude_reservation_id,
                window=self.window,
            ),
        )

    async def check_batch_availability(
        self,
        *,
        booking_date: datetime.date,
        intervals: Sequence[TimeInterval],
        court_ids: Sequence[uuid.UUID] | None = None,
    ) -> dict[uuid.UUID, dict[str, AvailabilityResult]]:
        return await self._run(
            "check_batch_availability",
            lambda session: availability_service.check_batch_availability(
                session,
                booking_date=booking_date,
                intervals=intervals,
                court_ids=court_ids,
                window=self.window,
            ),
        )

    async def validate_promo(
        self, *, code: str, customer_phone: str, amount: Decimal
    ) -> PromoValidation:
        return await self._run(
            "validate_promo",
            lambda session: promo_code_service.validate_promo_code(
                session,
                code=code,
                customer_phone=customer_phone,
                amount=amount,
                now=self.clock(),
            ),
        )

    async def reserve(
        self,
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
    ) -> ReservationOutcome:
        today = self.today()
        return await self._run(
            "reserve",
            lambda session: reservation_service.reserve(
                session,
                court_id=court_id,
                interval=interval,
                customer=customer,
                customer_id=customer_id,
                promo_code=promo_code,
                payment_reference=payment_reference,
                payment_status=payment_status,
                payment_method=payment_method,
                amount_paid=amount_paid,
                notes=notes,
                created_by=created_by,
                window=self.window,
                rule_source=self.rule_source,
                today=today,
                now=self.clock(),
            ),
        )

    async def block(
        self, *, court_id: uuid.UUID, interval: TimeInterval, notes: str | None = None
    ) -> ReservationOutcome:
        today = self.today()
        return await self._run(
            "block",
            lambda session: reservation_service.block_slot(
                session,
                court_id=court_id,
                interval=interval,
                notes=notes,
                window=self.window,
                today=today,
            ),
        )

    async def cancel(
        self, *, reservation_id: uuid.UUID, reason: str | None = None
    ) -> ReservationOutcome:
        return await self._run(
            "cancel",
            lambda session: reservation_service.cancel_reservation(
                session, reservation_id=reservation_id, reason=reason
            ),
        )

    async def update_status(
        self,
        *,
        reservation_id: uuid.UUID,
        status: ReservationStatus,
        reason: str | None = None,
    ) -> Reservation:
        return await self._run(
            "update_status",
            lambda session: reservation_service.update_status(
                session, reservation_id=reservation_id, status=status, reason=reason
            ),
        )

    async def record_payment(
        self,
        *,
        reservation_id: uuid.UUID,
        payment_status: PaymentStatus,
        amount_paid: Decimal | None = None,
        payment_method: str | None = None,
        payment_reference: str | None = None,
    ) -> Reservation:
        return await self._run(
            "record_payment",
            lambda session: reservation_service.record_payment(
                session,
                reservation_id=reservation_id,
                payment_status=payment_status,
                amount_paid=amount_paid,
                payment_method=payment_method,
                payment_reference=payment_reference,
            ),
        )

    async def get_reservation(self, reservation_id: uuid.UUID) -> Reservation:
        async def work(session: AsyncSession) -> Reservation:
            reservation = await reservation_service.get_reservation(
                session, reservation_id=reservation_id
            )
            if reservation is None:
                raise ReservationNotFound("Reservation not found")
            return reservation

        return await self._run("get_reservation", work)

    async def get_by_payment_reference(self, payment_reference: str) -> Reservation:
        async def work(session: AsyncSession) -> Reservation:
            reservation = await reservation_service.get_reservation_by_payment_reference(
                session, payment_reference=payment_reference
            )
            if reservation is None:
                raise ReservationNotFound("Reservation not found")
            return reservation

        return await self._run("get_by_payment_reference", work)
