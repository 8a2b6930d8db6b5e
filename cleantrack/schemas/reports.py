"""Pydantic schemas for usage reports and overrides."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, field_validator

from cleantrack.models.disposal import WRITABLE_CATEGORIES

Number = int | float


# ── Period / area ──────────────────────────────────────────────────
class PeriodEntry(BaseModel):
    key: str
    count_a: int
    count_b: int
    total: int

    model_config = {"from_attributes": True}


class PeriodReportResponse(BaseModel):
    granularity: str
    entries: list[PeriodEntry]


class AreaEntry(BaseModel):
    area: str
    count_a: int
    count_b: int
    total: int

    model_config = {"from_attributes": True}


class AreaReportResponse(BaseModel):
    entries: list[AreaEntry]


# ── Per-owner matrices ─────────────────────────────────────────────
class DayCellRead(BaseModel):
    count_a: Number
    count_b: Number
    display_a: Number | str
    display_b: Number | str

    model_config = {"from_attributes": True}


class DailyUserRowRead(BaseModel):
    owner_id: int | None
    owner_name: str
    area: str
    daily: list[DayCellRead]
    total_a: Number
    total_b: Number

    model_config = {"from_attributes": True}


class DailyUserStatsResponse(BaseModel):
    year: int
    month: int
    days_in_month: int
    rows: list[DailyUserRowRead]


class MonthCellRead(BaseModel):
    count_a: int
    count_b: int

    model_config = {"from_attributes": True}


class MonthlyUserRowRead(BaseModel):
    owner_id: int | None
    owner_name: str
    area: str
    monthly: list[MonthCellRead]
    total_a: int
    total_b: int

    model_config = {"from_attributes": True}


class MonthlyUserStatsResponse(BaseModel):
    year: int
    rows: list[MonthlyUserRowRead]


# ── Overrides ──────────────────────────────────────────────────────
class OverrideUpsert(BaseModel):
    day: date
    owner_id: int
    category: str
    value: str | int | float

    @field_validator("category")
    @classmethod
    def _category(cls, v: str) -> str:
        v = v.strip().upper()
        if v not in {c.value for c in WRITABLE_CATEGORIES}:
            raise ValueError("Category must be one of: A, B")
        return v

    @field_validator("value")
    @classmethod
    def _value(cls, v: str | int | float) -> str:
        text = str(v).strip()
        if not text:
            raise ValueError("Value must not be empty")
        if len(text) > 100:
            raise ValueError("Value must not exceed 100 characters")
        return text


class OverrideRead(BaseModel):
    id: int
    day: str
    owner_id: int
    category: str
    value: str
    parsed_value: Number | str
    updated_by: int | None
    updated_at: datetime | None

    model_config = {"from_attributes": True}


class OverrideUpsertResponse(BaseModel):
    success: bool = True
    override: OverrideRead


# ── Health / Status ────────────────────────────────────────────────
class HealthResponse(BaseModel):
    db: bool


class StatusResponse(BaseModel):
    total_owners: int
    today_disposals: int
    today_attendance_events: int
    status: str
