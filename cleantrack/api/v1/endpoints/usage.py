"""
Usage endpoints: record a disposal, adjust or set a day's count, and
read today's / overall totals.

Owners act on themselves for the current local day.  Administrators may
target any owner and backfill past days, but never a future day.
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from cleantrack.api.v1.deps import (get_current_active_user, get_db,
                                    get_usage_engine, require_admin)
from cleantrack.core.exceptions import AuthorizationError, InvalidRequestError
from cleantrack.models.disposal import Category
from cleantrack.models.user import User
from cleantrack.schemas.usage import (DailyCountRequest, PurgeResponse,
                                      RecordUsageRequest, RecordUsageResponse,
                                      TodayUsageResponse, UsageDeltaRequest,
                                      UsageDeltaResponse, UsageTotalsResponse)
from cleantrack.services.aggregation import usage_totals
from cleantrack.services.ledger import Ledger
from cleantrack.services.owners import OwnerDirectory
from cleantrack.services.usage import DeltaResult, UsageDeltaEngine

router = APIRouter(prefix="/usage", tags=["usage"])


# ── Helpers ─────────────────────────────────────────────────────────
async def _resolve_target(
    db: AsyncSession,
    engine: UsageDeltaEngine,
    user: User,
    owner_id: int | None,
    day: date | None,
) -> tuple[User, date]:
    """Pick the owner and local day a count change applies to."""
    today = engine.clock.today()
    if not user.is_admin:
        if owner_id is not None and owner_id != user.id:
            raise AuthorizationError("You can only adjust your own usage")
        if day is not None and day != today:
            raise AuthorizationError("You can only adjust today's usage")
        return user, today

    target_day = day or today
    if target_day > today:
        raise InvalidRequestError("Cannot adjust usage for a future day")
    if owner_id is None or owner_id == user.id:
        return user, target_day
    return await OwnerDirectory(db).get(owner_id), target_day


def _delta_response(owner_id: int, result: DeltaResult) -> UsageDeltaResponse:
    return UsageDeltaResponse(
        owner_id=owner_id,
        day=result.day,
        added_a=result.added_a,
        removed_a=result.removed_a,
        added_b=result.added_b,
        removed_b=result.removed_b,
        count_a=result.count_a,
        count_b=result.count_b,
    )


# ── Mutations ───────────────────────────────────────────────────────
@router.post("/records", response_model=RecordUsageResponse)
async def record_usage(
    body: RecordUsageRequest,
    engine: UsageDeltaEngine = Depends(get_usage_engine),
    current_user: User = Depends(get_current_active_user),
) -> RecordUsageResponse:
    """Record one bag disposed by the caller, stamped now."""
    event = await engine.record_event(current_user.id, current_user.name, Category(body.category))
    return RecordUsageResponse(event=event)


@router.post("/delta", response_model=UsageDeltaResponse)
async def apply_usage_delta(
    body: UsageDeltaRequest,
    db: AsyncSession = Depends(get_db),
    engine: UsageDeltaEngine = Depends(get_usage_engine),
    current_user: User = Depends(get_current_active_user),
) -> UsageDeltaResponse:
    """Add or remove bags for one owner and day.

    Removing more than exist removes what is there; check ``removed_*``.
    """
    owner, day = await _resolve_target(db, engine, current_user, body.owner_id, body.day)
    result = await engine.apply_delta(owner.id, owner.name, body.delta_a, body.delta_b, day)
    return _delta_response(owner.id, result)


@router.put("/daily-count", response_model=UsageDeltaResponse)
async def set_daily_count(
    body: DailyCountRequest,
    db: AsyncSession = Depends(get_db),
    engine: UsageDeltaEngine = Depends(get_usage_engine),
    current_user: User = Depends(get_current_active_user),
) -> UsageDeltaResponse:
    """Set one owner's day count to exact values."""
    owner, day = await _resolve_target(db, engine, current_user, body.owner_id, body.day)
    result = await engine.set_daily_count(owner.id, owner.name, body.count_a, body.count_b, day)
    return _delta_response(owner.id, result)


@router.delete("/orphans", response_model=PurgeResponse)
async def purge_orphans(
    engine: UsageDeltaEngine = Depends(get_usage_engine),
    _admin: User = Depends(require_admin),
) -> PurgeResponse:
    """Delete usage events whose owner no longer exists."""
    return PurgeResponse(deleted=await engine.purge_orphans())


# ── Reads ───────────────────────────────────────────────────────────
@router.get("/today", response_model=TodayUsageResponse)
async def today_usage(
    owner_id: int | None = Query(None),
    db: AsyncSession = Depends(get_db),
    engine: UsageDeltaEngine = Depends(get_usage_engine),
    current_user: User = Depends(get_current_active_user),
) -> TodayUsageResponse:
    owner, day = await _resolve_target(db, engine, current_user, owner_id, None)
    counts = await engine.day_counts(owner.id, day)
    return TodayUsageResponse(owner_id=owner.id, day=day, count_a=counts.count_a, count_b=counts.count_b)


@router.get("/summary", response_model=UsageTotalsResponse)
async def usage_summary(
    start: date | None = Query(None),
    end: date | None = Query(None),
    db: AsyncSession = Depends(get_db),
    engine: UsageDeltaEngine = Depends(get_usage_engine),
    _admin: User = Depends(require_admin),
) -> UsageTotalsResponse:
    """All-time (or ``start``..``end`` inclusive) A/B totals."""
    clock = engine.clock
    events = await Ledger(db).query(
        start=clock.day_start(start) if start else None,
        end=clock.day_bounds(end)[1] if end else None,
    )
    counts = usage_totals(events)
    return UsageTotalsResponse(count_a=counts.count_a, count_b=counts.count_b, total=counts.total)
