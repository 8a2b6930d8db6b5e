"""
Leave requests: owners ask for days off, administrators decide.

The balance counts every approved request's inclusive day span against
the owner's allowance.  Rejected and pending requests use nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cleantrack.core.clock import LocalClock
from cleantrack.core.config import Settings
from cleantrack.core.exceptions import InvalidRequestError, LeaveUpdateError, NotFoundError
from cleantrack.models.leave import (LEAVE_STATUSES, STATUS_APPROVED,
                                     STATUS_REJECTED, LeaveRequest)
from cleantrack.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LeaveBalance:
    total: int
    used: int
    remaining: int


class LeaveStore:
    """Read/write primitives over ``leave_requests``.  Never commits."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def insert(self, owner_id: int, start_day: date, end_day: date, reason: str | None) -> LeaveRequest:
        request = LeaveRequest(owner_id=owner_id, start_day=start_day, end_day=end_day, reason=reason)
        self._session.add(request)
        await self._session.flush()
        return request

    async def get(self, request_id: int) -> LeaveRequest:
        request = await self._session.get(LeaveRequest, request_id)
        if request is None:
            raise NotFoundError(f"Leave request {request_id} not found")
        return request

    async def query(
        self,
        owner_id: int | None = None,
        status: str | None = None,
        covering: date | None = None,
    ) -> list[LeaveRequest]:
        """Requests by start day, latest first."""
        stmt = select(LeaveRequest).order_by(LeaveRequest.start_day.desc(), LeaveRequest.id.desc())
        if owner_id is not None:
            stmt = stmt.where(LeaveRequest.owner_id == owner_id)
        if status is not None:
            stmt = stmt.where(LeaveRequest.status == status)
        if covering is not None:
            stmt = stmt.where(LeaveRequest.start_day <= covering, LeaveRequest.end_day >= covering)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())


class LeaveService:
    def __init__(self, session: AsyncSession, config: Settings, clock: LocalClock | None = None) -> None:
        self._session = session
        self._store = LeaveStore(session)
        self._clock = clock or LocalClock.from_settings(config)
        self._default_total = config.DEFAULT_TOTAL_LEAVES

    async def _commit(self, action: str) -> None:
        try:
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            logger.error("Leave %s rolled back: %s", action, exc)
            raise LeaveUpdateError(f"Failed to {action}; no changes were saved. Please retry.") from exc

    async def request(
        self,
        owner_id: int,
        start_day: date,
        end_day: date,
        reason: str | None = None,
    ) -> LeaveRequest:
        """File a pending request for ``start_day``..``end_day`` inclusive.

        A span overlapping one of the owner's pending or approved
        requests is rejected so no day is counted twice.
        """
        if end_day < start_day:
            raise InvalidRequestError("Leave must end on or after its first day")
        for existing in await self._store.query(owner_id=owner_id):
            if existing.status == STATUS_REJECTED:
                continue
            if existing.start_day <= end_day and start_day <= existing.end_day:
                raise InvalidRequestError(
                    f"Overlaps leave request {existing.id} "
                    f"({existing.start_day.isoformat()} to {existing.end_day.isoformat()})"
                )
        request = await self._store.insert(owner_id, start_day, end_day, (reason or "").strip() or None)
        await self._commit("request leave")
        logger.info("Leave requested by owner %s: %s to %s", owner_id, start_day, end_day)
        return request

    async def list_requests(self, owner_id: int | None = None, status: str | None = None) -> list[LeaveRequest]:
        if status is not None and status not in LEAVE_STATUSES:
            raise InvalidRequestError(f"Unknown leave status: {status}")
        return await self._store.query(owner_id=owner_id, status=status)

    async def decide(self, request_id: int, approved: bool, admin_id: int) -> LeaveRequest:
        """Approve or reject.  A decided request may be decided again."""
        request = await self._store.get(request_id)
        request.status = STATUS_APPROVED if approved else STATUS_REJECTED
        request.processed_by = admin_id
        request.processed_at = self._clock.now()
        await self._commit("process leave request")
        logger.info("Leave request %d %s by admin %s", request_id, request.status, admin_id)
        return request

    async def balance(self, owner: User) -> LeaveBalance:
        total = owner.total_leaves if owner.total_leaves is not None else self._default_total
        approved = await self._store.query(owner_id=owner.id, status=STATUS_APPROVED)
        used = sum(r.days for r in approved)
        return LeaveBalance(total=total, used=used, remaining=total - used)

    async def on_leave(self, day: date | None = None) -> list[LeaveRequest]:
        """Approved requests covering *day* (default: today)."""
        return await self._store.query(status=STATUS_APPROVED, covering=day or self._clock.today())
