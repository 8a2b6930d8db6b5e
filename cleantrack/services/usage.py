"""
Usage delta engine: turns "add N / remove N" requests into ledger rows.

Both categories of one request are applied in a single transaction.
If anything fails the whole request is rolled back and surfaced as a
``UsageUpdateError``; re-issuing the same request is safe.

``set_daily_count`` reads the current count, computes the delta and
applies it without any lock or compare-and-swap.  Two concurrent
callers targeting the same owner/day can therefore over- or undershoot
the target.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cleantrack.core.clock import LocalClock
from cleantrack.core.config import Settings
from cleantrack.core.exceptions import InvalidRequestError, UsageUpdateError
from cleantrack.models.disposal import CATEGORY_CHAIN, WRITABLE_CATEGORIES, Category, DisposalEvent
from cleantrack.services.aggregation import Counts, usage_totals
from cleantrack.services.ledger import Ledger

logger = logging.getLogger(__name__)


@dataclass
class DeltaResult:
    day: date
    added_a: int = 0
    removed_a: int = 0
    added_b: int = 0
    removed_b: int = 0
    count_a: int = 0
    count_b: int = 0

    def record(self, category: Category, added: int, removed: int) -> None:
        if category is Category.A:
            self.added_a += added
            self.removed_a += removed
        else:
            self.added_b += added
            self.removed_b += removed


class UsageDeltaEngine:
    def __init__(self, session: AsyncSession, config: Settings, clock: LocalClock | None = None) -> None:
        self._session = session
        self._ledger = Ledger(session)
        self._clock = clock or LocalClock.from_settings(config)

    @property
    def clock(self) -> LocalClock:
        return self._clock

    # ── Reads ───────────────────────────────────────────────────────
    async def day_events(self, owner_id: int, day: date) -> list[DisposalEvent]:
        start, end = self._clock.day_bounds(day)
        return await self._ledger.query(owner_id=owner_id, start=start, end=end)

    async def day_counts(self, owner_id: int, day: date | None = None) -> Counts:
        """The owner's A/B counts for a local day (legacy rows count as A)."""
        return usage_totals(await self.day_events(owner_id, day or self._clock.today()))

    # ── Per-category steps ──────────────────────────────────────────
    async def _add(self, category: Category, owner_id: int, owner_label: str | None, day: date, n: int) -> int:
        instant = self._clock.local_noon(day)
        for _ in range(n):
            await self._ledger.insert(category, owner_id, owner_label, instant)
        return n

    async def _remove(self, category: Category, owner_id: int, day: date, n: int) -> int:
        """Remove up to *n* events newest first, spilling into the legacy chain."""
        start, end = self._clock.day_bounds(day)
        removed = 0
        for stored in CATEGORY_CHAIN[category]:
            victims = await self._ledger.latest(owner_id, stored, start, end, n - removed)
            removed += await self._ledger.delete_many(victims)
            if removed >= n:
                break
        if removed < n:
            logger.info(
                "Decrement of %s for owner %s on %s truncated: %d of %d removed",
                category.value, owner_id, day, removed, n,
            )
        return removed

    # ── Public operations ───────────────────────────────────────────
    async def apply_delta(
        self,
        owner_id: int,
        owner_label: str | None,
        delta_a: int,
        delta_b: int,
        target_day: date | None = None,
    ) -> DeltaResult:
        """Apply signed adjustments to both categories in one transaction.

        Removing more events than exist is not an error: whatever is
        available is removed.
        """
        day = target_day or self._clock.today()
        result = DeltaResult(day=day)
        try:
            for category, delta in ((Category.A, delta_a), (Category.B, delta_b)):
                if delta > 0:
                    result.record(category, await self._add(category, owner_id, owner_label, day, delta), 0)
                elif delta < 0:
                    result.record(category, 0, await self._remove(category, owner_id, day, -delta))
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            logger.error("Usage delta for owner %s on %s rolled back: %s", owner_id, day, exc)
            raise UsageUpdateError(
                "Failed to update usage; no changes were saved. Please retry."
            ) from exc

        counts = await self.day_counts(owner_id, day)
        result.count_a, result.count_b = counts.count_a, counts.count_b
        logger.info(
            "Usage delta owner=%s day=%s A:+%d/-%d B:+%d/-%d",
            owner_id, day, result.added_a, result.removed_a, result.added_b, result.removed_b,
        )
        return result

    async def set_daily_count(
        self,
        owner_id: int,
        owner_label: str | None,
        target_a: int,
        target_b: int,
        target_day: date | None = None,
    ) -> DeltaResult:
        """Make the owner's day count equal the targets by applying the difference."""
        if target_a < 0 or target_b < 0:
            raise InvalidRequestError("Counts must not be negative")
        day = target_day or self._clock.today()
        current = await self.day_counts(owner_id, day)
        return await self.apply_delta(
            owner_id,
            owner_label,
            target_a - current.count_a,
            target_b - current.count_b,
            day,
        )

    async def record_event(
        self,
        owner_id: int | None,
        owner_label: str | None,
        category: Category,
    ) -> DisposalEvent:
        """Record one disposal stamped now."""
        if category not in WRITABLE_CATEGORIES:
            raise InvalidRequestError(f"Category {category.value} cannot be recorded")
        try:
            event = await self._ledger.insert(category, owner_id, owner_label, self._clock.now())
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            raise UsageUpdateError("Failed to record usage") from exc
        logger.info("Recorded %s for owner %s", category.value, owner_id)
        return event

    async def purge_orphans(self) -> int:
        """Delete events whose owner no longer exists."""
        try:
            removed = await self._ledger.delete_orphans()
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            raise UsageUpdateError("Failed to purge orphaned usage records") from exc
        logger.warning("Purged %d orphaned disposal events", removed)
        return removed
