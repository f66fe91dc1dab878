"""
FastAPI dependencies — database session, propagated identity and services.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Optional

from fastapi import Cookie, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from geoclock.core.security import decode_access_token
from geoclock.db.session import async_session_factory
from geoclock.models.user import ROLE_ADMIN, User
from geoclock.services.clock import AttendanceStateMachine
from geoclock.services.locations import LocationRegistry
from geoclock.services.reports import AttendanceReportAggregator

# auto_error=False so we can fall back to the cookie when the header is missing
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── Identity ────────────────────────────────────────────────────────
async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    access_token: Optional[str] = Cookie(default=None),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Decode the JWT from header or cookie and load the matching user."""
    final_token = token
    if not final_token and access_token:
        # Cookie is formatted as "Bearer <token>" or just "<token>"
        if access_token.startswith("Bearer "):
            final_token = access_token.split(" ", 1)[1]
        else:
            final_token = access_token

    credentials_exc = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not final_token:
        raise credentials_exc

    payload = decode_access_token(final_token)
    if payload is None:
        raise credentials_exc

    user_id: str | None = payload.get("sub")
    if user_id is None:
        raise credentials_exc

    user = await db.get(User, user_id)
    if user is None:
        raise credentials_exc
    return user


async def require_admin(
    current_user: User = Depends(get_current_user),
) -> User:
    """Only allow the ADMIN role to proceed."""
    if current_user.role != ROLE_ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return current_user


# ── Engine services ─────────────────────────────────────────────────
def get_location_registry(db: AsyncSession = Depends(get_db)) -> LocationRegistry:
    return LocationRegistry(db)


def get_state_machine(db: AsyncSession = Depends(get_db)) -> AttendanceStateMachine:
    return AttendanceStateMachine(db)


def get_report_aggregator(db: AsyncSession = Depends(get_db)) -> AttendanceReportAggregator:
    return AttendanceReportAggregator(db)
