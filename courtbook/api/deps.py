"""Common API dependencies."""

from __future__ import annotations

from typing import Annotated
from collections.abc import AsyncGenerator

from fastapi import Depends, HTTPException, Request, Response
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter
from sqlalchemy.ext.asyncio import AsyncSession

from courtbook.core.config import get_settings
from courtbook.core.errors import BookingError, SlotConflict
from courtbook.db.session import get_session, get_sessionmaker
from courtbook.services.booking_engine import BookingEngine

RETRY_AFTER_SECONDS = 1


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide an async database session."""
    async for session in get_session():
        yield session


def get_booking_engine() -> BookingEngine:
    """Build the booking engine bound to the configured database."""
    settings = get_settings()
    return BookingEngine.from_settings(settings, get_sessionmaker())


SessionDep = Annotated[AsyncSession, Depends(get_db_session)]
EngineDep = Annotated[BookingEngine, Depends(get_booking_engine)]


def as_http_exception(exc: BookingError) -> HTTPException:
    """Translate a booking failure into the matching HTTP error."""
    headers = None
    if exc.retryable:
        headers = {"Retry-After": str(RETRY_AFTER_SECONDS)}
    detail: str | dict = exc.message
    if isinstance(exc, SlotConflict) and exc.conflicts:
        detail = {
            "message": exc.message,
            "conflicts": [str(item) for item in exc.conflicts],
        }
    return HTTPException(status_code=exc.status_code, detail=detail, headers=headers)


def _parse_rate(value: str, *, fallback: tuple[int, int]) -> tuple[int, int]:
    try:
        count_str, window_str = value.split("/", 1)
        count = int(count_str.strip())
    except ValueError:
        return fallback
    window = window_str.strip().lower()
    seconds_map = {
        "second": 1,
        "seconds": 1,
        "minute": 60,
        "minutes": 60,
        "hour": 3600,
        "hours": 3600,
        "day": 86400,
        "days": 86400,
    }
    seconds = seconds_map.get(window, fallback[1])
    return count, seconds


def rate_dependency(value: str, *, fallback: tuple[int, int] = (100, 60)):
    """Rate limit an endpoint; a no-op when the limiter has no Redis."""
    limit = _parse_rate(value, fallback=fallback)

    async def _dependency(request: Request, response: Response) -> None:
        if FastAPILimiter.redis is None:
            return None
        limiter = RateLimiter(times=limit[0], seconds=limit[1])
        await limiter(request, response)

    return Depends(_dependency)


_settings = get_settings()

DEFAULT_RATE_DEP = rate_dependency(_settings.rate_limit_default)
BOOKING_RATE_DEP = rate_dependency(_settings.rate_limit_booking, fallback=(20, 60))
