"""
Read-only owner directory used for grouping and labelling.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cleantrack.core.exceptions import NotFoundError
from cleantrack.models.user import User


class OwnerDirectory:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_owners(self) -> list[User]:
        """Every known owner, including deactivated ones (their history still counts)."""
        result = await self._session.execute(select(User).order_by(User.area, User.name))
        return list(result.scalars().all())

    async def get(self, owner_id: int) -> User:
        owner = await self._session.get(User, owner_id)
        if owner is None:
            raise NotFoundError(f"Owner {owner_id} not found")
        return owner
