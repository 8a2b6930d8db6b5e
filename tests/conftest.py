"""
Shared test fixtures for the CleanTrack test suite.

Async throughout (aiosqlite + AsyncSession).  Every test gets its own
in-memory database and a clock frozen at 2025-03-15 12:00 local time.
"""

import os
import sys
from datetime import datetime, timezone
from typing import AsyncGenerator

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
# CORS fix (JSON format)
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["RATE_LIMIT_ENABLED"] = "false"

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from cleantrack.api.v1.deps import get_clock, get_current_active_user, get_db
from cleantrack.core.clock import LocalClock
from cleantrack.core.config import Settings
from cleantrack.db.base import Base
from cleantrack.db.session import build_engine, build_session_factory
from cleantrack.main import app
from cleantrack.models.user import ROLE_ADMIN, ROLE_CLEANER, User

# 12:00 local (UTC+9)
FIXED_NOW = datetime(2025, 3, 15, 3, 0, tzinfo=timezone.utc)


@pytest.fixture
def config() -> Settings:
    return Settings()


@pytest.fixture
def clock() -> LocalClock:
    return LocalClock(9, now=lambda: FIXED_NOW)


@pytest.fixture
async def session_factory(config) -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh in-memory database with all tables created."""
    engine = build_engine(config, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield build_session_factory(engine)

    await engine.dispose()


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def async_client(session_factory, clock) -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app and the test database."""

    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_clock] = lambda: clock

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# ── Users ───────────────────────────────────────────────────────────
async def _add_user(session: AsyncSession, **fields) -> User:
    fields.setdefault("hashed_password", "not-a-real-hash")
    user = User(**fields)
    session.add(user)
    await session.commit()
    return user


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await _add_user(
        db_session, phone_number="010-0000-0000", name="관리자", area="관리실", role=ROLE_ADMIN
    )


@pytest.fixture
async def worker(db_session: AsyncSession) -> User:
    return await _add_user(
        db_session, phone_number="010-1111-1111", name="Kim", area="Building 1", role=ROLE_CLEANER
    )


@pytest.fixture
async def other_worker(db_session: AsyncSession) -> User:
    return await _add_user(
        db_session, phone_number="010-2222-2222", name="Lee", area="Building 2", role=ROLE_CLEANER
    )


@pytest.fixture
def login_as():
    """Authenticate every following request as *user*."""

    def _login(user: User) -> User:
        async def _override_get_current_active_user():
            return user

        app.dependency_overrides[get_current_active_user] = _override_get_current_active_user
        return user

    return _login
