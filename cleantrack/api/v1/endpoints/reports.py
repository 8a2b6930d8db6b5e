"""
Reporting endpoints.

Each report loads the events it needs in one query and hands them to
the pure reducers in ``services.aggregation``.
"""

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cleantrack.api.v1.deps import (get_clock, get_current_active_user, get_db,
                                    get_settings, require_admin)
from cleantrack.core.clock import LocalClock, days_in_month
from cleantrack.core.config import Settings
from cleantrack.models.attendance import AttendanceEvent
from cleantrack.models.disposal import Category, DisposalEvent
from cleantrack.models.user import User
from cleantrack.schemas.reports import (AreaReportResponse,
                                        DailyUserStatsResponse, HealthResponse,
                                        MonthlyUserStatsResponse, OverrideRead,
                                        OverrideUpsert, OverrideUpsertResponse,
                                        PeriodReportResponse, StatusResponse)
from cleantrack.schemas.attendance import DeleteResponse
from cleantrack.services.aggregation import (AreaRules, Granularity,
                                             aggregate_by_area,
                                             aggregate_by_period,
                                             daily_user_stats,
                                             monthly_user_stats)
from cleantrack.services.ledger import Ledger
from cleantrack.services.overrides import OverrideTable
from cleantrack.services.owners import OwnerDirectory

router = APIRouter(tags=["reports"])
logger = logging.getLogger(__name__)


def _check_month(month: int) -> None:
    if month < 1 or month > 12:
        raise HTTPException(status_code=400, detail="Month must be 1-12")


def _parse_month(value: str) -> tuple[int, int]:
    try:
        year, month = (int(part) for part in value.split("-"))
    except ValueError:
        raise HTTPException(status_code=400, detail="Month must be YYYY-MM") from None
    if year < 1 or year > 9999:
        raise HTTPException(status_code=400, detail="Year must be 1-9999")
    _check_month(month)
    return year, month


# ── Period / area ───────────────────────────────────────────────────
@router.get("/reports/period", response_model=PeriodReportResponse)
async def period_report(
    granularity: Granularity = Query(Granularity.DAY),
    start: date | None = Query(None),
    end: date | None = Query(None),
    db: AsyncSession = Depends(get_db),
    clock: LocalClock = Depends(get_clock),
    _admin: User = Depends(require_admin),
) -> PeriodReportResponse:
    """Usage bucketed by local day, ISO week, month or year."""
    events = await Ledger(db).query(
        start=clock.day_start(start) if start else None,
        end=clock.day_bounds(end)[1] if end else None,
    )
    return PeriodReportResponse(
        granularity=granularity.value,
        entries=aggregate_by_period(events, granularity, clock),
    )


@router.get("/reports/area", response_model=AreaReportResponse)
async def area_report(
    start: date | None = Query(None),
    end: date | None = Query(None),
    db: AsyncSession = Depends(get_db),
    clock: LocalClock = Depends(get_clock),
    config: Settings = Depends(get_settings),
    _admin: User = Depends(require_admin),
) -> AreaReportResponse:
    """Usage per owner area, busiest first."""
    events = await Ledger(db).query(
        start=clock.day_start(start) if start else None,
        end=clock.day_bounds(end)[1] if end else None,
    )
    owners = await OwnerDirectory(db).list_owners()
    return AreaReportResponse(
        entries=aggregate_by_area(events, owners, AreaRules.from_settings(config)),
    )


# ── Per-owner matrices ──────────────────────────────────────────────
@router.get("/reports/daily/{year}/{month}", response_model=DailyUserStatsResponse)
async def daily_user_report(
    month: int,
    year: int = Path(..., ge=1, le=9999),
    db: AsyncSession = Depends(get_db),
    clock: LocalClock = Depends(get_clock),
    config: Settings = Depends(get_settings),
    _admin: User = Depends(require_admin),
) -> DailyUserStatsResponse:
    """Per owner, per day of the month, with overrides applied."""
    _check_month(month)
    start, end = clock.month_bounds(year, month)
    n_days = days_in_month(year, month)

    events = await Ledger(db).query(start=start, end=end)
    overrides = await OverrideTable(db).query(
        start_day=date(year, month, 1), end_day=date(year, month, n_days)
    )
    owners = await OwnerDirectory(db).list_owners()

    rows = daily_user_stats(
        events, overrides, owners, year, month, clock, AreaRules.from_settings(config)
    )
    return DailyUserStatsResponse(year=year, month=month, days_in_month=n_days, rows=rows)


@router.get("/reports/monthly/{year}", response_model=MonthlyUserStatsResponse)
async def monthly_user_report(
    year: int = Path(..., ge=1, le=9999),
    db: AsyncSession = Depends(get_db),
    clock: LocalClock = Depends(get_clock),
    config: Settings = Depends(get_settings),
    _admin: User = Depends(require_admin),
) -> MonthlyUserStatsResponse:
    """Per owner, per month of the year."""
    start, end = clock.year_bounds(year)
    events = await Ledger(db).query(start=start, end=end)
    owners = await OwnerDirectory(db).list_owners()
    rows = monthly_user_stats(events, owners, year, clock, AreaRules.from_settings(config))
    return MonthlyUserStatsResponse(year=year, rows=rows)


# ── Overrides ───────────────────────────────────────────────────────
@router.get("/reports/overrides", response_model=list[OverrideRead])
async def list_overrides(
    month: str | None = Query(None, description="YYYY-MM"),
    owner_id: int | None = Query(None),
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> list[OverrideRead]:
    start_day = end_day = None
    if month:
        year, month_no = _parse_month(month)
        start_day = date(year, month_no, 1)
        end_day = date(year, month_no, days_in_month(year, month_no))
    return await OverrideTable(db).query(start_day=start_day, end_day=end_day, owner_id=owner_id)


@router.put("/reports/overrides", response_model=OverrideUpsertResponse)
async def upsert_override(
    body: OverrideUpsert,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> OverrideUpsertResponse:
    """Create or replace the override for one owner/day/category cell."""
    await OwnerDirectory(db).get(body.owner_id)
    override = await OverrideTable(db).upsert(
        body.day, body.owner_id, Category(body.category), body.value, updated_by=admin.id
    )
    await db.commit()
    logger.info(
        "Override %s owner=%s %s set to %r by %s",
        override.day, override.owner_id, override.category, override.value, admin.id,
    )
    return OverrideUpsertResponse(override=override)


@router.delete("/reports/overrides/{override_id}", response_model=DeleteResponse)
async def delete_override(
    override_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> DeleteResponse:
    await OverrideTable(db).delete(override_id)
    await db.commit()
    logger.warning("Override %d deleted by %s", override_id, admin.id)
    return DeleteResponse(success=True, message=f"Override {override_id} deleted")


# ── Health / Status ─────────────────────────────────────────────────
@router.get("/health", response_model=HealthResponse)
async def health(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """Public health check: database connectivity."""
    result = HealthResponse(db=False)
    try:
        await db.execute(select(1))
        result.db = True
    except Exception as e:
        logger.error("Health check DB failure: %s", e)
    return result


@router.get("/status", response_model=StatusResponse)
async def system_status(
    db: AsyncSession = Depends(get_db),
    clock: LocalClock = Depends(get_clock),
    _user: User = Depends(get_current_active_user),
) -> StatusResponse:
    """Owner count and today's activity."""
    start, end = clock.day_bounds(clock.today())

    owner_count = await db.execute(select(func.count(User.id)).where(User.is_active.is_(True)))
    disposal_count = await db.execute(
        select(func.count(DisposalEvent.id)).where(
            DisposalEvent.instant >= start, DisposalEvent.instant < end
        )
    )
    attendance_count = await db.execute(
        select(func.count(AttendanceEvent.id)).where(
            AttendanceEvent.instant >= start, AttendanceEvent.instant < end
        )
    )

    return StatusResponse(
        total_owners=owner_count.scalar() or 0,
        today_disposals=disposal_count.scalar() or 0,
        today_attendance_events=attendance_count.scalar() or 0,
        status="operational",
    )
