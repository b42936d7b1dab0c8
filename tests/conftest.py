"""Test fixtures for the court booking backend."""
from __future__ import annotations

import datetime
import os
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")

from courtbook.api import deps
from courtbook.core.config import get_settings
from courtbook.db.base import Base
from courtbook.db.session import dispose_engine, get_sessionmaker
from courtbook.main import app
from courtbook.models import Court, CourtStatus
from courtbook.services import pricing_service
from courtbook.services.booking_engine import BookingEngine

# Every booking date used in the tests lies after this instant.
FROZEN_NOW = datetime.datetime(2026, 2, 1, 8, 0, tzinfo=datetime.UTC)


@pytest.fixture(scope="session")
def db_url(tmp_path_factory: pytest.TempPathFactory) -> str:
    """Provide a temporary SQLite database URL for the test session."""
    db_path = tmp_path_factory.mktemp("db") / "test.db"
    return f"sqlite+aiosqlite:///{db_path}"


@pytest_asyncio.fixture()
async def reset_database(db_url: str) -> AsyncIterator[None]:
    """Drop and recreate the database schema for an isolated test."""
    os.environ["DATABASE_URL"] = db_url
    get_settings.cache_clear()
    get_settings()

    await dispose_engine(db_url)
    engine = create_async_engine(db_url, future=True)
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.drop_all)
        await connection.run_sync(Base.metadata.create_all)
    await engine.dispose()
    yield
    await dispose_engine(db_url)


@pytest_asyncio.fixture()
async def venue(reset_database: None, db_url: str) -> dict[str, object]:
    """Seed two active courts, one inactive court and the default rate table."""
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        court_a = Court(name="Court A", status=CourtStatus.ACTIVE)
        court_b = Court(name="Court B", status=CourtStatus.ACTIVE)
        closed = Court(name="Court C", status=CourtStatus.INACTIVE)
        session.add_all([court_a, court_b, closed])
        await session.commit()
        await pricing_service.seed_default_rules(session)
        return {
            "court_a": court_a.id,
            "court_b": court_b.id,
            "closed_court": closed.id,
        }


@pytest.fixture()
def booking_engine(venue: dict[str, object], db_url: str) -> BookingEngine:
    """Engine bound to the test database with a frozen clock."""
    return BookingEngine.from_settings(
        get_settings(), get_sessionmaker(db_url), clock=lambda: FROZEN_NOW
    )


@pytest_asyncio.fixture()
async def app_context(
    venue: dict[str, object], booking_engine: BookingEngine
) -> AsyncIterator[dict[str, object]]:
    """Yield an async client wired to the frozen-clock engine plus seeded ids."""
    app.dependency_overrides[deps.get_booking_engine] = lambda: booking_engine
    context = dict(venue)
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            context["client"] = client
            yield context
    finally:
        app.dependency_overrides.pop(deps.get_booking_engine, None)
