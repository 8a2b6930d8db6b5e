"""
DailyOverride model: admin corrections to one owner/day/category cell.

``value`` holds either a number (replaces the computed count) or a
free-text label (an explained absence, counted as zero).
"""

from __future__ import annotations

import re
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint

from cleantrack.db.base import Base

_NUMERIC_RE = re.compile(r"^[+-]?\d+(\.\d+)?$")


def parse_override_value(raw: str) -> int | float | str:
    """Return the numeric value of *raw*, or *raw* itself for a label."""
    text = raw.strip()
    if not _NUMERIC_RE.match(text):
        return raw
    number = float(text)
    return int(number) if number.is_integer() else number


class DailyOverride(Base):
    __tablename__ = "daily_overrides"
    __table_args__ = (
        UniqueConstraint("day", "owner_id", "category", name="uq_override_day_owner_category"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    day: str = Column(String(10), nullable=False, index=True)  # type: ignore[assignment]  # YYYY-MM-DD
    owner_id: int = Column(Integer, nullable=False)  # type: ignore[assignment]
    category: str = Column(String(20), nullable=False)  # type: ignore[assignment]
    value: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    updated_by: int | None = Column(Integer, nullable=True)  # type: ignore[assignment]
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    @property
    def parsed_value(self) -> int | float | str:
        return parse_override_value(self.value)
