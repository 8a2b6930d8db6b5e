"""Pydantic schemas for attendance."""

from __future__ import annotations

import re
from datetime import date, datetime

from pydantic import BaseModel, field_validator

from cleantrack.models.attendance import EVENT_TYPES

_HHMM_RE = re.compile(r"^([01]?\d|2[0-3]):[0-5]\d$")


def _event_type(v: str) -> str:
    v = v.strip().upper()
    if v not in EVENT_TYPES:
        raise ValueError("Type must be IN or OUT")
    return v


class AttendanceEventRead(BaseModel):
    id: int
    owner_id: int
    event_type: str
    instant: datetime

    model_config = {"from_attributes": True}


class AttendanceActionResponse(BaseModel):
    success: bool = True
    record: AttendanceEventRead


# ── Status ─────────────────────────────────────────────────────────
class AttendanceStatusResponse(BaseModel):
    owner_id: int
    status: str
    start_time: datetime | None = None
    end_time: datetime | None = None
    latest: AttendanceEventRead | None = None


class HistoryDayRead(BaseModel):
    date: str
    check_ins: list[str]
    check_outs: list[str]

    model_config = {"from_attributes": True}


class BoardEntry(BaseModel):
    owner_id: int
    owner_name: str
    area: str | None
    status: str
    start_time: datetime | None
    end_time: datetime | None
    first_in: datetime | None
    last_out: datetime | None

    model_config = {"from_attributes": True}


class MatrixCellRead(BaseModel):
    check_in: str | None
    check_out: str | None
    is_late: bool

    model_config = {"from_attributes": True}


class MatrixRowRead(BaseModel):
    owner_id: int
    owner_name: str
    area: str | None
    days: list[MatrixCellRead]

    model_config = {"from_attributes": True}


class AttendanceMatrixResponse(BaseModel):
    year: int
    month: int
    rows: list[MatrixRowRead]


# ── Admin edits ────────────────────────────────────────────────────
class AttendanceRecordCreate(BaseModel):
    owner_id: int
    event_type: str
    instant: datetime | None = None  # defaults to now

    @field_validator("event_type")
    @classmethod
    def _type(cls, v: str) -> str:
        return _event_type(v)


class AttendanceRecordUpdate(BaseModel):
    event_type: str | None = None
    instant: datetime | None = None

    @field_validator("event_type")
    @classmethod
    def _type(cls, v: str | None) -> str | None:
        return _event_type(v) if v is not None else None


class DailyAttendanceUpsert(BaseModel):
    owner_id: int
    day: date
    check_in: str | None = None  # HH:MM local; null removes the record
    check_out: str | None = None

    @field_validator("check_in", "check_out")
    @classmethod
    def _hhmm(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if not _HHMM_RE.match(v):
            raise ValueError("Time must be HH:MM (24h)")
        return v


class DailyAttendanceResponse(BaseModel):
    success: bool = True
    owner_id: int
    day: date
    actions: dict[str, str]


class DeleteResponse(BaseModel):
    success: bool
    message: str
