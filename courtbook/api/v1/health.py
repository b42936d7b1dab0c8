"""Health check endpoints."""

import asyncio
import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Response, status
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError

from courtbook.api import deps
from courtbook.core.config import get_settings

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", summary="Service health status")
async def healthcheck(session: deps.SessionDep, response: Response) -> dict[str, str]:
    """Report service metadata and whether the booking store answers."""
    settings = get_settings()
    database = "ok"
    try:
        await asyncio.wait_for(
            session.execute(text("SELECT 1")), timeout=settings.store_timeout_seconds
        )
    except (DBAPIError, TimeoutError):
        logger.exception("Health check could not reach the booking store")
        database = "unavailable"
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return {
        "status": "ok" if database == "ok" else "degraded",
        "service": settings.app_name,
        "venue": settings.venue_name,
        "database": database,
        "timestamp": datetime.now(UTC).isoformat(),
        "environment": settings.app_env,
    }
