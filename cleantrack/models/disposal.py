"""
Disposal event model: the usage ledger.

One row per bag disposed.  Rows are never edited; they are only
inserted, removed by a decrement, or swept when their owner is gone.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Column, DateTime, Index, Integer, String

from cleantrack.db.base import Base


class Category(str, Enum):
    A = "A"
    B = "B"
    # Retired size class folded into A for reporting.  Read and
    # decrement only; nothing writes new rows under it.
    # TODO: drop once historical events and overrides are migrated to A.
    LEGACY_A = "LEGACY_A"


WRITABLE_CATEGORIES = (Category.A, Category.B)

# Lookup order per reporting category: current key first, then legacy.
CATEGORY_CHAIN: dict[Category, tuple[Category, ...]] = {
    Category.A: (Category.A, Category.LEGACY_A),
    Category.B: (Category.B,),
}


def reporting_category(value: str) -> Category | None:
    """Fold a stored category into A or B; ``None`` for unknown values."""
    for reported, chain in CATEGORY_CHAIN.items():
        if value in {c.value for c in chain}:
            return reported
    return None


class DisposalEvent(Base):
    __tablename__ = "disposal_events"
    __table_args__ = (Index("ix_disposal_owner_instant", "owner_id", "instant"),)

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    category: str = Column(String(20), nullable=False)  # type: ignore[assignment]
    # No FK: events outlive deleted owners until the orphan sweep runs.
    owner_id: int | None = Column(Integer, nullable=True, index=True)  # type: ignore[assignment]
    owner_label: str | None = Column(String(200), nullable=True)  # type: ignore[assignment]
    instant: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
