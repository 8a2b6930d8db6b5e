"""
User model: the owner directory and authentication.

Owners are workers (``cleaner``) or administrators (``admin``).  The
reporting engine only reads ``id``, ``name`` and ``area``.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from cleantrack.db.base import Base

ROLE_ADMIN = "admin"
ROLE_CLEANER = "cleaner"


class User(Base):
    __tablename__ = "users"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    phone_number: str = Column(String(30), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    hashed_password: str = Column(String(128), nullable=False)  # type: ignore[assignment]
    name: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    area: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    role: str = Column(  # type: ignore[assignment]
        String(20),
        nullable=False,
        default=ROLE_CLEANER,
        server_default=ROLE_CLEANER,
    )  # admin | cleaner
    is_active: bool = Column(Boolean, default=True, server_default="true")  # type: ignore[assignment]
    # Leave allowance in days; NULL falls back to DEFAULT_TOTAL_LEAVES.
    total_leaves: int | None = Column(Integer, nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN
