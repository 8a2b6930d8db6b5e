"""
Leave endpoints: owners file requests and read their balance;
administrators list, approve or reject requests and see who is off.
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from cleantrack.api.v1.deps import (get_current_active_user, get_db,
                                    get_leave_service, require_admin)
from cleantrack.models.user import User
from cleantrack.schemas.leave import (LeaveBalanceResponse, LeaveDecision,
                                      LeaveRequestCreate, LeaveRequestRead)
from cleantrack.services.leave import LeaveService
from cleantrack.services.owners import OwnerDirectory

router = APIRouter(prefix="/vacations", tags=["vacations"])


# ── Owner ───────────────────────────────────────────────────────────
@router.post("", response_model=LeaveRequestRead, status_code=201)
async def request_leave(
    body: LeaveRequestCreate,
    service: LeaveService = Depends(get_leave_service),
    current_user: User = Depends(get_current_active_user),
) -> LeaveRequestRead:
    return await service.request(current_user.id, body.start_day, body.end_day, body.reason)


@router.get("/me", response_model=list[LeaveRequestRead])
async def my_requests(
    service: LeaveService = Depends(get_leave_service),
    current_user: User = Depends(get_current_active_user),
) -> list[LeaveRequestRead]:
    return await service.list_requests(owner_id=current_user.id)


@router.get("/me/balance", response_model=LeaveBalanceResponse)
async def my_balance(
    service: LeaveService = Depends(get_leave_service),
    current_user: User = Depends(get_current_active_user),
) -> LeaveBalanceResponse:
    """Allowance, approved days used and what is left."""
    balance = await service.balance(current_user)
    return LeaveBalanceResponse(
        owner_id=current_user.id,
        total=balance.total,
        used=balance.used,
        remaining=balance.remaining,
    )


# ── Admin ───────────────────────────────────────────────────────────
@router.get("", response_model=list[LeaveRequestRead])
async def list_requests(
    status: str | None = Query(None, description="PENDING | APPROVED | REJECTED"),
    owner_id: int | None = Query(None),
    service: LeaveService = Depends(get_leave_service),
    _admin: User = Depends(require_admin),
) -> list[LeaveRequestRead]:
    return await service.list_requests(owner_id=owner_id, status=status.upper() if status else None)


@router.get("/on-leave", response_model=list[LeaveRequestRead])
async def on_leave(
    day: date | None = Query(None, description="Local day; defaults to today"),
    service: LeaveService = Depends(get_leave_service),
    _admin: User = Depends(require_admin),
) -> list[LeaveRequestRead]:
    return await service.on_leave(day)


@router.post("/{request_id}/decision", response_model=LeaveRequestRead)
async def decide_request(
    request_id: int,
    body: LeaveDecision,
    service: LeaveService = Depends(get_leave_service),
    admin: User = Depends(require_admin),
) -> LeaveRequestRead:
    return await service.decide(request_id, body.approved, admin.id)


@router.get("/balance/{owner_id}", response_model=LeaveBalanceResponse)
async def owner_balance(
    owner_id: int,
    db: AsyncSession = Depends(get_db),
    service: LeaveService = Depends(get_leave_service),
    _admin: User = Depends(require_admin),
) -> LeaveBalanceResponse:
    owner = await OwnerDirectory(db).get(owner_id)
    balance = await service.balance(owner)
    return LeaveBalanceResponse(
        owner_id=owner.id,
        total=balance.total,
        used=balance.used,
        remaining=balance.remaining,
    )
