"""
Attendance: state derivation from raw IN/OUT events, plus the store
and the administrative day-level upsert.

The current state is never tracked incrementally.  It is recomputed
from the full ordered set of the local day's events every time, so
admin edits and deletions are reflected without replaying transitions.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cleantrack.core.clock import LocalClock, days_in_month, ensure_utc, parse_hhmm
from cleantrack.core.config import Settings
from cleantrack.core.exceptions import AttendanceUpdateError, InvalidRequestError, NotFoundError
from cleantrack.models.attendance import EVENT_IN, EVENT_OUT, EVENT_TYPES, AttendanceEvent

logger = logging.getLogger(__name__)


class AttendanceStatus(str, Enum):
    IDLE = "IDLE"
    WORKING = "WORKING"
    DONE = "DONE"


@dataclass(frozen=True)
class AttendanceState:
    status: AttendanceStatus
    start_time: datetime | None = None
    end_time: datetime | None = None


@dataclass
class DaySummary:
    first_in: datetime | None = None
    last_out: datetime | None = None


def _chronological(events: Iterable[Any]) -> list[Any]:
    return sorted(events, key=lambda e: (ensure_utc(e.instant), e.id or 0))


def derive_state(day_events: Iterable[Any]) -> AttendanceState:
    """Fold one owner's events for a single local day into a state.

    * no IN at all            -> IDLE
    * last event is an IN     -> WORKING since the *first* IN
    * last event is an OUT    -> DONE, first IN to that OUT
    """
    events = _chronological(day_events)
    first_in = next((e for e in events if e.event_type == EVENT_IN), None)
    if first_in is None:
        return AttendanceState(AttendanceStatus.IDLE)

    start = ensure_utc(first_in.instant)
    last = events[-1]
    if last.event_type == EVENT_IN:
        return AttendanceState(AttendanceStatus.WORKING, start_time=start)
    return AttendanceState(AttendanceStatus.DONE, start_time=start, end_time=ensure_utc(last.instant))


def summarize_day(day_events: Iterable[Any]) -> DaySummary:
    """Earliest IN and latest OUT of the day."""
    events = _chronological(day_events)
    ins = [e for e in events if e.event_type == EVENT_IN]
    outs = [e for e in events if e.event_type == EVENT_OUT]
    return DaySummary(
        first_in=ensure_utc(ins[0].instant) if ins else None,
        last_out=ensure_utc(outs[-1].instant) if outs else None,
    )


def is_late(first_in: datetime | None, clock: LocalClock, cutoff: time) -> bool:
    if first_in is None:
        return False
    return clock.local_datetime(first_in).time() > cutoff


# ── Views ───────────────────────────────────────────────────────────
@dataclass
class OwnerStatus:
    owner_id: int
    owner_name: str
    area: str | None
    status: AttendanceStatus
    start_time: datetime | None = None
    end_time: datetime | None = None
    first_in: datetime | None = None
    last_out: datetime | None = None


@dataclass
class HistoryDay:
    date: str
    check_ins: list[str] = field(default_factory=list)
    check_outs: list[str] = field(default_factory=list)


@dataclass
class MatrixCell:
    check_in: str | None = None
    check_out: str | None = None
    is_late: bool = False


@dataclass
class MatrixRow:
    owner_id: int
    owner_name: str
    area: str | None
    days: list[MatrixCell] = field(default_factory=list)


@dataclass
class UpsertResult:
    day: date
    actions: dict[str, str] = field(default_factory=dict)  # IN/OUT -> created|updated|deleted|unchanged


# ── Store ───────────────────────────────────────────────────────────
class AttendanceStore:
    """Read/write primitives over ``attendance_events``.  Never commits."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def insert(self, owner_id: int, event_type: str, instant: datetime) -> AttendanceEvent:
        event = AttendanceEvent(owner_id=owner_id, event_type=event_type, instant=instant)
        self._session.add(event)
        await self._session.flush()
        return event

    async def get(self, event_id: int) -> AttendanceEvent:
        event = await self._session.get(AttendanceEvent, event_id)
        if event is None:
            raise NotFoundError(f"Attendance record {event_id} not found")
        return event

    async def delete(self, event: AttendanceEvent) -> None:
        await self._session.delete(event)
        await self._session.flush()

    async def query(
        self,
        owner_id: int | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
    ) -> list[AttendanceEvent]:
        """Events newest first."""
        stmt = select(AttendanceEvent).order_by(
            AttendanceEvent.instant.desc(), AttendanceEvent.id.desc()
        )
        if owner_id is not None:
            stmt = stmt.where(AttendanceEvent.owner_id == owner_id)
        if start is not None:
            stmt = stmt.where(AttendanceEvent.instant >= start)
        if end is not None:
            stmt = stmt.where(AttendanceEvent.instant < end)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())


# ── Service ─────────────────────────────────────────────────────────
class AttendanceService:
    def __init__(self, session: AsyncSession, config: Settings, clock: LocalClock | None = None) -> None:
        self._session = session
        self._store = AttendanceStore(session)
        self._clock = clock or LocalClock.from_settings(config)
        self._late_cutoff = parse_hhmm(config.LATE_CUTOFF)

    @property
    def clock(self) -> LocalClock:
        return self._clock

    async def _commit(self, action: str) -> None:
        try:
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            logger.error("Attendance %s rolled back: %s", action, exc)
            raise AttendanceUpdateError(
                f"Failed to {action}; no changes were saved. Please retry."
            ) from exc

    # ── Owner actions ───────────────────────────────────────────────
    async def record(self, owner_id: int, event_type: str, instant: datetime | None = None) -> AttendanceEvent:
        if event_type not in EVENT_TYPES:
            raise InvalidRequestError(f"Unknown attendance type: {event_type}")
        try:
            event = await self._store.insert(owner_id, event_type, ensure_utc(instant) if instant else self._clock.now())
        except SQLAlchemyError as exc:
            await self._session.rollback()
            raise AttendanceUpdateError("Failed to record attendance") from exc
        await self._commit("record attendance")
        logger.info("Attendance %s for owner %s", event_type, owner_id)
        return event

    async def day_events(self, owner_id: int, day: date) -> list[AttendanceEvent]:
        start, end = self._clock.day_bounds(day)
        return await self._store.query(owner_id=owner_id, start=start, end=end)

    async def current_state(self, owner_id: int) -> AttendanceState:
        return derive_state(await self.day_events(owner_id, self._clock.today()))

    async def latest(self, owner_id: int) -> AttendanceEvent | None:
        rows = await self._store.query(owner_id=owner_id, limit=1)
        return rows[0] if rows else None

    async def history(self, owner_id: int, days: int = 7) -> list[HistoryDay]:
        """The owner's taps grouped by local day, newest day first."""
        today = self._clock.today()
        start = self._clock.day_start(date.fromordinal(today.toordinal() - days + 1))
        events = await self._store.query(owner_id=owner_id, start=start)

        grouped: dict[str, HistoryDay] = {}
        for event in _chronological(events):
            key = self._clock.to_local_date_string(event.instant)
            entry = grouped.setdefault(key, HistoryDay(date=key))
            stamp = self._clock.local_time_string(event.instant)
            if event.event_type == EVENT_IN:
                entry.check_ins.append(stamp)
            else:
                entry.check_outs.append(stamp)
        return [grouped[k] for k in sorted(grouped, reverse=True)]

    # ── Admin raw-record operations ─────────────────────────────────
    async def list_records(self, owner_id: int | None = None, limit: int = 200) -> list[AttendanceEvent]:
        return await self._store.query(owner_id=owner_id, limit=limit)

    async def update_record(
        self,
        event_id: int,
        event_type: str | None = None,
        instant: datetime | None = None,
    ) -> AttendanceEvent:
        event = await self._store.get(event_id)
        if event_type is not None:
            if event_type not in EVENT_TYPES:
                raise InvalidRequestError(f"Unknown attendance type: {event_type}")
            event.event_type = event_type
        if instant is not None:
            event.instant = ensure_utc(instant)
        await self._commit("update attendance record")
        await self._session.refresh(event)
        logger.info("Attendance record %d updated", event_id)
        return event

    async def delete_record(self, event_id: int) -> None:
        event = await self._store.get(event_id)
        await self._store.delete(event)
        await self._commit("delete attendance record")
        logger.warning("Attendance record %d deleted", event_id)

    # ── Admin day-level upsert ──────────────────────────────────────
    async def _reconcile(
        self,
        owner_id: int,
        day: date,
        event_type: str,
        desired: str | None,
        existing: AttendanceEvent | None,
    ) -> str:
        if desired is None:
            if existing is None:
                return "unchanged"
            await self._store.delete(existing)
            return "deleted"

        target = self._clock.at_local_time(day, desired)
        if existing is None:
            await self._store.insert(owner_id, event_type, target)
            return "created"
        if ensure_utc(existing.instant) == target:
            return "unchanged"
        existing.instant = target
        return "updated"

    async def upsert_daily(
        self,
        owner_id: int,
        day: date,
        check_in: str | None,
        check_out: str | None,
    ) -> UpsertResult:
        """Make the day hold one IN at *check_in* and one OUT at *check_out*.

        Only the earliest existing record of each type is touched; days
        with several sessions must be edited record by record.  ``None``
        removes that record.  Both types are written in one transaction.
        """
        events = _chronological(await self.day_events(owner_id, day))
        result = UpsertResult(day=day)
        try:
            for event_type, desired in ((EVENT_IN, check_in), (EVENT_OUT, check_out)):
                existing = next((e for e in events if e.event_type == event_type), None)
                result.actions[event_type] = await self._reconcile(owner_id, day, event_type, desired, existing)
            await self._session.flush()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            raise AttendanceUpdateError(
                "Failed to save daily attendance; no changes were saved. Please retry."
            ) from exc
        await self._commit("save daily attendance")
        logger.info("Daily attendance owner=%s day=%s %s", owner_id, day, result.actions)
        return result

    # ── Admin views ─────────────────────────────────────────────────
    async def board(self, owners: Sequence[Any]) -> list[OwnerStatus]:
        """Every owner's state today, working owners first, then by name."""
        start, end = self._clock.day_bounds(self._clock.today())
        by_owner: dict[int, list[AttendanceEvent]] = defaultdict(list)
        for event in await self._store.query(start=start, end=end):
            by_owner[event.owner_id].append(event)

        rows = []
        for owner in owners:
            events = by_owner.get(owner.id, [])
            state = derive_state(events)
            summary = summarize_day(events)
            rows.append(
                OwnerStatus(
                    owner_id=owner.id,
                    owner_name=owner.name,
                    area=owner.area,
                    status=state.status,
                    start_time=state.start_time,
                    end_time=state.end_time,
                    first_in=summary.first_in,
                    last_out=summary.last_out,
                )
            )
        rows.sort(key=lambda r: (r.status is not AttendanceStatus.WORKING, r.owner_name))
        return rows

    async def monthly_matrix(self, owners: Sequence[Any], year: int, month: int) -> list[MatrixRow]:
        """Per owner, per day: first IN, last OUT and the late flag."""
        start, end = self._clock.month_bounds(year, month)
        grouped: dict[tuple[int, int], list[AttendanceEvent]] = defaultdict(list)
        for event in await self._store.query(start=start, end=end):
            grouped[(event.owner_id, self._clock.local_date(event.instant).day)].append(event)

        rows = []
        for owner in owners:
            row = MatrixRow(owner_id=owner.id, owner_name=owner.name, area=owner.area)
            for day_no in range(1, days_in_month(year, month) + 1):
                summary = summarize_day(grouped.get((owner.id, day_no), []))
                row.days.append(
                    MatrixCell(
                        check_in=self._clock.local_time_string(summary.first_in) if summary.first_in else None,
                        check_out=self._clock.local_time_string(summary.last_out) if summary.last_out else None,
                        is_late=is_late(summary.first_in, self._clock, self._late_cutoff),
                    )
                )
            rows.append(row)
        return rows
