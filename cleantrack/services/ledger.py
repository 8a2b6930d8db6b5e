"""
Usage ledger store: read/write primitives over ``disposal_events``.

The store never commits; the caller owns the unit of work.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete as sa_delete
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cleantrack.core.exceptions import NotFoundError
from cleantrack.models.disposal import Category, DisposalEvent
from cleantrack.models.user import User


class Ledger:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def insert(
        self,
        category: Category,
        owner_id: int | None,
        owner_label: str | None,
        instant: datetime,
    ) -> DisposalEvent:
        event = DisposalEvent(
            category=category.value,
            owner_id=owner_id,
            owner_label=owner_label,
            instant=instant,
        )
        self._session.add(event)
        await self._session.flush()
        return event

    async def delete(self, event_id: int) -> None:
        event = await self._session.get(DisposalEvent, event_id)
        if event is None:
            raise NotFoundError(f"Disposal event {event_id} not found")
        await self._session.delete(event)
        await self._session.flush()

    async def query(
        self,
        owner_id: int | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[DisposalEvent]:
        """Events ascending by instant, optionally for one owner in ``[start, end)``."""
        stmt = select(DisposalEvent).order_by(DisposalEvent.instant.asc(), DisposalEvent.id.asc())
        if owner_id is not None:
            stmt = stmt.where(DisposalEvent.owner_id == owner_id)
        if start is not None:
            stmt = stmt.where(DisposalEvent.instant >= start)
        if end is not None:
            stmt = stmt.where(DisposalEvent.instant < end)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def latest(
        self,
        owner_id: int,
        category: Category,
        start: datetime,
        end: datetime,
        limit: int,
    ) -> list[DisposalEvent]:
        """Up to *limit* of the owner's events in ``[start, end)``, newest first."""
        if limit <= 0:
            return []
        result = await self._session.execute(
            select(DisposalEvent)
            .where(
                DisposalEvent.owner_id == owner_id,
                DisposalEvent.category == category.value,
                DisposalEvent.instant >= start,
                DisposalEvent.instant < end,
            )
            .order_by(DisposalEvent.instant.desc(), DisposalEvent.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def delete_many(self, events: list[DisposalEvent]) -> int:
        if not events:
            return 0
        await self._session.execute(
            sa_delete(DisposalEvent).where(DisposalEvent.id.in_([e.id for e in events]))
        )
        return len(events)

    async def delete_orphans(self) -> int:
        """Remove events whose owner id no longer resolves to a user."""
        known = select(User.id)
        result = await self._session.execute(
            sa_delete(DisposalEvent).where(
                DisposalEvent.owner_id.is_not(None),
                DisposalEvent.owner_id.not_in(known),
            )
        )
        return result.rowcount or 0
