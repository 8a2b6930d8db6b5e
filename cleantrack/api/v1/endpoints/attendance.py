"""
Attendance endpoints: owner check-in / check-out and status, plus the
administrator board, monthly matrix and record editing.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from cleantrack.api.v1.deps import (get_attendance_service,
                                    get_current_active_user, get_db,
                                    require_admin)
from cleantrack.models.attendance import EVENT_IN, EVENT_OUT
from cleantrack.models.user import User
from cleantrack.schemas.attendance import (AttendanceActionResponse,
                                           AttendanceEventRead,
                                           AttendanceMatrixResponse,
                                           AttendanceRecordCreate,
                                           AttendanceRecordUpdate,
                                           AttendanceStatusResponse,
                                           BoardEntry, DailyAttendanceResponse,
                                           DailyAttendanceUpsert,
                                           DeleteResponse, HistoryDayRead)
from cleantrack.services.attendance import AttendanceService
from cleantrack.services.owners import OwnerDirectory

router = APIRouter(prefix="/attendance", tags=["attendance"])
logger = logging.getLogger(__name__)


# ── Owner ───────────────────────────────────────────────────────────
@router.post("/check-in", response_model=AttendanceActionResponse)
async def check_in(
    service: AttendanceService = Depends(get_attendance_service),
    current_user: User = Depends(get_current_active_user),
) -> AttendanceActionResponse:
    """Record an IN for the caller, stamped now.

    No sequence check: a second IN the same day is stored as-is.
    """
    event = await service.record(current_user.id, EVENT_IN)
    return AttendanceActionResponse(record=event)


@router.post("/check-out", response_model=AttendanceActionResponse)
async def check_out(
    service: AttendanceService = Depends(get_attendance_service),
    current_user: User = Depends(get_current_active_user),
) -> AttendanceActionResponse:
    event = await service.record(current_user.id, EVENT_OUT)
    return AttendanceActionResponse(record=event)


@router.get("/me/status", response_model=AttendanceStatusResponse)
async def my_status(
    service: AttendanceService = Depends(get_attendance_service),
    current_user: User = Depends(get_current_active_user),
) -> AttendanceStatusResponse:
    """Today's derived state and the most recent record."""
    state = await service.current_state(current_user.id)
    return AttendanceStatusResponse(
        owner_id=current_user.id,
        status=state.status.value,
        start_time=state.start_time,
        end_time=state.end_time,
        latest=await service.latest(current_user.id),
    )


@router.get("/me/history", response_model=list[HistoryDayRead])
async def my_history(
    days: int = Query(7, ge=1, le=92),
    service: AttendanceService = Depends(get_attendance_service),
    current_user: User = Depends(get_current_active_user),
) -> list[HistoryDayRead]:
    return await service.history(current_user.id, days)


# ── Admin views ─────────────────────────────────────────────────────
@router.get("/board", response_model=list[BoardEntry])
async def attendance_board(
    db: AsyncSession = Depends(get_db),
    service: AttendanceService = Depends(get_attendance_service),
    _admin: User = Depends(require_admin),
) -> list[BoardEntry]:
    """Every owner's state today, working owners first."""
    owners = await OwnerDirectory(db).list_owners()
    return await service.board(owners)


@router.get("/matrix/{year}/{month}", response_model=AttendanceMatrixResponse)
async def attendance_matrix(
    month: int,
    year: int = Path(..., ge=1, le=9999),
    db: AsyncSession = Depends(get_db),
    service: AttendanceService = Depends(get_attendance_service),
    _admin: User = Depends(require_admin),
) -> AttendanceMatrixResponse:
    """First IN / last OUT per owner per day, with the late flag."""
    if month < 1 or month > 12:
        raise HTTPException(status_code=400, detail="Month must be 1-12")
    owners = await OwnerDirectory(db).list_owners()
    rows = await service.monthly_matrix(owners, year, month)
    return AttendanceMatrixResponse(year=year, month=month, rows=rows)


# ── Admin record editing ────────────────────────────────────────────
@router.get("/records", response_model=list[AttendanceEventRead])
async def list_records(
    owner_id: int | None = Query(None),
    limit: int = Query(200, ge=1, le=1000),
    service: AttendanceService = Depends(get_attendance_service),
    _admin: User = Depends(require_admin),
) -> list[AttendanceEventRead]:
    return await service.list_records(owner_id=owner_id, limit=limit)


@router.post("/records", response_model=AttendanceActionResponse, status_code=201)
async def create_record(
    body: AttendanceRecordCreate,
    db: AsyncSession = Depends(get_db),
    service: AttendanceService = Depends(get_attendance_service),
    admin: User = Depends(require_admin),
) -> AttendanceActionResponse:
    await OwnerDirectory(db).get(body.owner_id)
    event = await service.record(body.owner_id, body.event_type, body.instant)
    logger.info("Attendance record %d added by admin %s", event.id, admin.id)
    return AttendanceActionResponse(record=event)


@router.patch("/records/{record_id}", response_model=AttendanceActionResponse)
async def update_record(
    record_id: int,
    body: AttendanceRecordUpdate,
    service: AttendanceService = Depends(get_attendance_service),
    _admin: User = Depends(require_admin),
) -> AttendanceActionResponse:
    event = await service.update_record(record_id, event_type=body.event_type, instant=body.instant)
    return AttendanceActionResponse(record=event)


@router.delete("/records/{record_id}", response_model=DeleteResponse)
async def delete_record(
    record_id: int,
    service: AttendanceService = Depends(get_attendance_service),
    _admin: User = Depends(require_admin),
) -> DeleteResponse:
    await service.delete_record(record_id)
    return DeleteResponse(success=True, message=f"Attendance record {record_id} deleted")


@router.put("/daily", response_model=DailyAttendanceResponse)
async def upsert_daily_attendance(
    body: DailyAttendanceUpsert,
    db: AsyncSession = Depends(get_db),
    service: AttendanceService = Depends(get_attendance_service),
    _admin: User = Depends(require_admin),
) -> DailyAttendanceResponse:
    """Set one owner's check-in / check-out for a day.

    ``null`` removes that record; unchanged times are left alone.
    """
    await OwnerDirectory(db).get(body.owner_id)
    result = await service.upsert_daily(body.owner_id, body.day, body.check_in, body.check_out)
    return DailyAttendanceResponse(owner_id=body.owner_id, day=result.day, actions=result.actions)
