"""Pydantic schemas for usage recording and count adjustment."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator

from cleantrack.models.disposal import WRITABLE_CATEGORIES

_MAX_DELTA = 500


def _writable(v: str) -> str:
    v = v.strip().upper()
    if v not in {c.value for c in WRITABLE_CATEGORIES}:
        raise ValueError("Category must be one of: A, B")
    return v


# ── Single event ────────────────────────────────────────────────────
class RecordUsageRequest(BaseModel):
    category: str

    @field_validator("category")
    @classmethod
    def _category(cls, v: str) -> str:
        return _writable(v)


class DisposalEventRead(BaseModel):
    id: int
    category: str
    owner_id: int | None
    owner_label: str | None
    instant: datetime

    model_config = {"from_attributes": True}


class RecordUsageResponse(BaseModel):
    success: bool = True
    event: DisposalEventRead


# ── Delta / target count ────────────────────────────────────────────
class UsageDeltaRequest(BaseModel):
    delta_a: int = Field(default=0, ge=-_MAX_DELTA, le=_MAX_DELTA)
    delta_b: int = Field(default=0, ge=-_MAX_DELTA, le=_MAX_DELTA)
    owner_id: int | None = None  # admin only
    day: date | None = None  # admin only; defaults to today


class DailyCountRequest(BaseModel):
    count_a: int = Field(ge=0, le=_MAX_DELTA)
    count_b: int = Field(ge=0, le=_MAX_DELTA)
    owner_id: int | None = None  # admin only
    day: date | None = None  # admin only; defaults to today


class UsageDeltaResponse(BaseModel):
    success: bool = True
    owner_id: int
    day: date
    added_a: int
    removed_a: int
    added_b: int
    removed_b: int
    count_a: int
    count_b: int


# ── Reads ───────────────────────────────────────────────────────────
class TodayUsageResponse(BaseModel):
    owner_id: int
    day: date
    count_a: int
    count_b: int


class UsageTotalsResponse(BaseModel):
    count_a: int
    count_b: int
    total: int


class PurgeResponse(BaseModel):
    success: bool = True
    deleted: int
