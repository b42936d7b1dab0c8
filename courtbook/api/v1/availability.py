"""Court availability endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from courtbook.api import deps
from courtbook.core.errors import BookingError
from courtbook.core.intervals import TimeInterval
from courtbook.schemas.availability import (
    AvailabilityRead,
    AvailabilityRequest,
    BatchAvailabilityRequest,
    BatchSlotRead,
)

router = APIRouter(
    prefix="/availability", tags=["availability"], dependencies=[deps.DEFAULT_RATE_DEP]
)


@router.post("/check", response_model=AvailabilityRead, summary="Check one slot")
async def check_availability(
    payload: AvailabilityRequest, engine: deps.EngineDep
) -> AvailabilityRead:
    try:
        interval = TimeInterval.parse(
            payload.booking_date, payload.start_time, payload.end_time
        )
        result = await engine.check_availability(
            court_id=payload.court_id,
            interval=interval,
            exclude_reservation_id=payload.exclude_reservation_id,
        )
    except BookingError as exc:
        raise deps.as_http_exception(exc) from exc
    return AvailabilityRead.model_validate(result.to_dict())


@router.post(
    "/batch",
    response_model=dict[str, dict[str, BatchSlotRead]],
    summary="Check many slots across courts",
)
async def check_batch_availability(
    payload: BatchAvailabilityRequest, engine: deps.EngineDep
) -> dict[str, dict[str, BatchSlotRead]]:
    try:
        intervals = [
            TimeInterval.parse(payload.booking_date, slot.start_time, slot.end_time)
            for slot in payload.time_slots
        ]
        results = await engine.check_batch_availability(
            booking_date=payload.booking_date,
            intervals=intervals,
            court_ids=payload.court_ids,
        )
    except BookingError as exc:
        raise deps.as_http_exception(exc) from exc

    by_key = {interval.key: interval for interval in intervals}
    return {
        str(court_id): {
            key: BatchSlotRead(
                available=result.available,
                start_time=by_key[key].start_time,
                end_time=by_key[key].end_time,
            )
            for key, result in slots.items()
        }
        for court_id, slots in results.items()
    }
