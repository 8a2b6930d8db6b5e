"""
Leave request model: an owner asks for a span of local days off and an
administrator approves or rejects it.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, Text

from cleantrack.db.base import Base

STATUS_PENDING = "PENDING"
STATUS_APPROVED = "APPROVED"
STATUS_REJECTED = "REJECTED"
LEAVE_STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED)


class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    owner_id: int = Column(  # type: ignore[assignment]
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    start_day: date = Column(Date, nullable=False)  # type: ignore[assignment]
    end_day: date = Column(Date, nullable=False)  # type: ignore[assignment]  # inclusive
    reason: str | None = Column(Text, nullable=True)  # type: ignore[assignment]
    status: str = Column(  # type: ignore[assignment]
        String(10),
        nullable=False,
        default=STATUS_PENDING,
        server_default=STATUS_PENDING,
    )  # PENDING | APPROVED | REJECTED
    processed_by: int | None = Column(Integer, nullable=True)  # type: ignore[assignment]
    processed_at: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    @property
    def days(self) -> int:
        return (self.end_day - self.start_day).days + 1
