"""
Attendance event model: raw check-in / check-out taps.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String

from cleantrack.db.base import Base

EVENT_IN = "IN"
EVENT_OUT = "OUT"
EVENT_TYPES = (EVENT_IN, EVENT_OUT)


class AttendanceEvent(Base):
    __tablename__ = "attendance_events"
    __table_args__ = (Index("ix_attendance_owner_instant", "owner_id", "instant"),)

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    owner_id: int = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)  # type: ignore[assignment]
    event_type: str = Column(String(10), nullable=False)  # type: ignore[assignment]  # IN | OUT
    instant: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
