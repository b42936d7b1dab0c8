"""FastAPI application entrypoint."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from secure import Secure
from asgi_correlation_id import CorrelationIdMiddleware
from fastapi_limiter import FastAPILimiter
import redis.asyncio as redis  # type: ignore[import-untyped]

from courtbook.api import api_router
from courtbook.api.deps import as_http_exception
from courtbook.core.config import Settings, get_settings
from courtbook.core.errors import BookingError
from courtbook.db.session import dispose_engine
from courtbook.security.logging_filters import SensitiveFilter

logger = logging.getLogger(__name__)

settings = get_settings()


def _allowed_origins(config: Settings) -> list[str]:
    for candidates in (config.cors_allowlist, config.cors_allow_origins):
        origins = [origin for origin in candidates if origin]
        if origins:
            return origins
    return ["http://localhost:5173"]


async def _start_rate_limiter(redis_url: str | None):
    if not redis_url:
        logger.info("REDIS_URL not set; rate limiting disabled")
        return None
    try:
        pool = redis.from_url(redis_url, encoding="utf-8", decode_responses=True)
        await FastAPILimiter.init(pool)
    except Exception:  # pragma: no cover - limiter startup is best effort
        logger.exception("Failed to initialize rate limiter")
        return None
    return pool


@asynccontextmanager
async def lifespan(_: FastAPI):
    logger.info(
        "Starting %s for %s (open %s-%s %s)",
        settings.app_name,
        settings.venue_name,
        settings.operating_open,
        settings.operating_close,
        settings.venue_timezone,
    )
    redis_pool = await _start_rate_limiter(settings.redis_url)
    try:
        yield
    finally:
        if redis_pool is not None:
            try:
                await FastAPILimiter.close()
                await redis_pool.aclose()
            except Exception:  # pragma: no cover - limiter shutdown
                logger.exception("Failed to close rate limiter")
        await dispose_engine()


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins(settings),
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["GET", "POST", "PUT", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "X-Request-ID"],
    expose_headers=["X-Request-ID", "Retry-After"],
)
app.add_middleware(CorrelationIdMiddleware, header_name="X-Request-ID")

_secure_headers = Secure()


@app.middleware("http")
async def _apply_security_headers(request, call_next):
    response = await call_next(request)
    _secure_headers.set_headers(response)
    correlation_id = getattr(request.state, "correlation_id", None)
    if correlation_id:
        response.headers.setdefault("X-Request-ID", str(correlation_id))
    return response


@app.exception_handler(BookingError)
async def _booking_error_handler(_: Request, exc: BookingError) -> JSONResponse:
    """Answer booking failures that escaped a router with their mapped status."""
    http_exc = as_http_exception(exc)
    return JSONResponse(
        status_code=http_exc.status_code,
        content={"detail": http_exc.detail},
        headers=http_exc.headers,
    )


for _logger_name in ("uvicorn", "uvicorn.access", "uvicorn.error", ""):
    _logger = logging.getLogger(_logger_name)
    if not any(isinstance(flt, SensitiveFilter) for flt in _logger.filters):
        _logger.addFilter(SensitiveFilter())

app.include_router(api_router)


@app.get("/", include_in_schema=False)
async def root() -> dict[str, str]:
    """Return a simple welcome message."""
    return {"message": f"{settings.venue_name} booking API"}
