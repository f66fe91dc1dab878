"""
Shared test fixtures for the GeoClock test suite.

Each test gets its own in-memory aiosqlite database (StaticPool, foreign
keys on) and an httpx AsyncClient wired to the app.
"""

import os
import sys
from datetime import datetime, timezone
from typing import AsyncGenerator
from zoneinfo import ZoneInfo

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["TIMEZONE"] = "Europe/Paris"
os.environ["RATE_LIMIT_ENABLED"] = "false"

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from geoclock.api.v1.deps import get_db
from geoclock.core.security import create_access_token
from geoclock.db.base import Base
from geoclock.db.session import enable_sqlite_foreign_keys
from geoclock.main import app
from geoclock.models.attendance import AttendanceRecord
from geoclock.models.location import Location
from geoclock.models.user import ROLE_ADMIN, ROLE_USER, User

PARIS = ZoneInfo("Europe/Paris")

# Paris city hall, used as the HQ geofence throughout the suite
HQ = {"name": "HQ", "latitude": 48.8566, "longitude": 2.3522, "radius": 100}


@pytest.fixture
async def test_engine():
    """Create a fresh database with all tables for one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def async_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""

    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


# ── Identity ────────────────────────────────────────────────────────
async def create_user(
    db: AsyncSession, email: str, name: str | None = None, role: str = ROLE_USER
) -> User:
    user = User(email=email, name=name, role=role, photo=f"/uploads/{email}.png")
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
async def employee(db_session: AsyncSession) -> User:
    return await create_user(db_session, "alice@example.com", "Alice Martin")


@pytest.fixture
async def admin(db_session: AsyncSession) -> User:
    return await create_user(db_session, "admin@example.com", "Admin", role=ROLE_ADMIN)


@pytest.fixture
def employee_headers(employee: User) -> dict[str, str]:
    return auth_headers(employee)


@pytest.fixture
def admin_headers(admin: User) -> dict[str, str]:
    return auth_headers(admin)


# ── Data helpers ────────────────────────────────────────────────────
async def create_location(db: AsyncSession, **overrides) -> Location:
    location = Location(**{**HQ, **overrides})
    db.add(location)
    await db.commit()
    await db.refresh(location)
    return location


@pytest.fixture
async def hq(db_session: AsyncSession) -> Location:
    return await create_location(db_session)


async def add_record(
    db: AsyncSession,
    user: User,
    clock_in: datetime,
    clock_out: datetime | None = None,
    location: Location | None = None,
) -> AttendanceRecord:
    """Insert a record directly; naive datetimes are read as Paris local time."""

    def _utc(dt: datetime | None) -> datetime | None:
        if dt is None:
            return None
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=PARIS)
        return dt.astimezone(timezone.utc)

    record = AttendanceRecord(
        user_id=user.id,
        clock_in=_utc(clock_in),
        clock_out=_utc(clock_out),
        clock_in_latitude=HQ["latitude"],
        clock_in_longitude=HQ["longitude"],
        clock_out_latitude=HQ["latitude"] if clock_out else None,
        clock_out_longitude=HQ["longitude"] if clock_out else None,
        location_id=location.id if location else None,
    )
    db.add(record)
    await db.commit()
    return record
