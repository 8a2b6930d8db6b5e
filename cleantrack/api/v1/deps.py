"""
FastAPI dependencies: auth guards, database session and engine services.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Optional

from fastapi import Cookie, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cleantrack.core.clock import LocalClock
from cleantrack.core.config import Settings, settings
from cleantrack.core.security import decode_access_token
from cleantrack.db.session import async_session_factory
from cleantrack.models.user import User
from cleantrack.services.attendance import AttendanceService
from cleantrack.services.leave import LeaveService
from cleantrack.services.usage import UsageDeltaEngine

# auto_error=False so we can fall back to the cookie when the header is missing
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── Configuration ───────────────────────────────────────────────────
def get_settings() -> Settings:
    return settings


def get_clock(config: Settings = Depends(get_settings)) -> LocalClock:
    return LocalClock.from_settings(config)


# ── Auth dependencies ───────────────────────────────────────────────
async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    access_token: Optional[str] = Cookie(default=None),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Decode JWT from Header OR Cookie, look up user."""

    # Priority: Header > Cookie
    final_token = token
    if not final_token and access_token:
        # Cookie is stored as "Bearer <token>"
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
    if user_id is None or not user_id.isdigit():
        raise credentials_exc

    result = await db.execute(select(User).where(User.id == int(user_id)))
    user = result.scalar_one_or_none()
    if user is None:
        raise credentials_exc
    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """Reject inactive accounts."""
    if not current_user.is_active:
        raise HTTPException(status_code=400, detail="Inactive user account")
    return current_user


async def require_admin(
    current_user: User = Depends(get_current_active_user),
) -> User:
    """Only allow admin role to proceed."""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return current_user


# ── Engine services ─────────────────────────────────────────────────
def get_usage_engine(
    db: AsyncSession = Depends(get_db),
    config: Settings = Depends(get_settings),
    clock: LocalClock = Depends(get_clock),
) -> UsageDeltaEngine:
    return UsageDeltaEngine(db, config, clock)


def get_attendance_service(
    db: AsyncSession = Depends(get_db),
    config: Settings = Depends(get_settings),
    clock: LocalClock = Depends(get_clock),
) -> AttendanceService:
    return AttendanceService(db, config, clock)


def get_leave_service(
    db: AsyncSession = Depends(get_db),
    config: Settings = Depends(get_settings),
    clock: LocalClock = Depends(get_clock),
) -> LeaveService:
    return LeaveService(db, config, clock)
