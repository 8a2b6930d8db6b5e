"""
Override table store.

``upsert`` is a single ``INSERT ... ON CONFLICT DO UPDATE`` on the
(day, owner_id, category) unique key, so concurrent writers can never
produce two rows for the same cell.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from cleantrack.core.exceptions import InvalidRequestError, NotFoundError
from cleantrack.models.disposal import Category
from cleantrack.models.override import DailyOverride


_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class OverrideTable:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    def _insert(self):
        dialect = self._session.bind.dialect.name
        try:
            return _INSERTS[dialect]
        except KeyError:
            raise InvalidRequestError(f"Override upsert is not supported on {dialect}") from None

    async def query(
        self,
        start_day: date | None = None,
        end_day: date | None = None,
        owner_id: int | None = None,
    ) -> list[DailyOverride]:
        """Overrides with ``start_day <= day <= end_day``, oldest day first."""
        stmt = select(DailyOverride).order_by(DailyOverride.day, DailyOverride.owner_id)
        if start_day is not None:
            stmt = stmt.where(DailyOverride.day >= start_day.isoformat())
        if end_day is not None:
            stmt = stmt.where(DailyOverride.day <= end_day.isoformat())
        if owner_id is not None:
            stmt = stmt.where(DailyOverride.owner_id == owner_id)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def upsert(
        self,
        day: date,
        owner_id: int,
        category: Category,
        value: str,
        updated_by: int | None = None,
    ) -> DailyOverride:
        now = datetime.now(timezone.utc)
        insert = self._insert()
        stmt = insert(DailyOverride).values(
            day=day.isoformat(),
            owner_id=owner_id,
            category=category.value,
            value=value,
            updated_by=updated_by,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["day", "owner_id", "category"],
            set_={
                "value": stmt.excluded.value,
                "updated_by": stmt.excluded.updated_by,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        await self._session.execute(stmt)

        result = await self._session.execute(
            select(DailyOverride)
            .where(
                DailyOverride.day == day.isoformat(),
                DailyOverride.owner_id == owner_id,
                DailyOverride.category == category.value,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def delete(self, override_id: int) -> None:
        override = await self._session.get(DailyOverride, override_id)
        if override is None:
            raise NotFoundError(f"Override {override_id} not found")
        await self._session.delete(override)
        await self._session.flush()
