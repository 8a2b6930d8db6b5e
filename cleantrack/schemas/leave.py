"""Pydantic schemas for leave requests."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field, model_validator


class LeaveRequestCreate(BaseModel):
    start_day: date
    end_day: date  # inclusive
    reason: str | None = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def _span(self) -> LeaveRequestCreate:
        if self.end_day < self.start_day:
            raise ValueError("end_day must be on or after start_day")
        return self


class LeaveRequestRead(BaseModel):
    id: int
    owner_id: int
    start_day: date
    end_day: date
    days: int
    reason: str | None
    status: str
    processed_by: int | None
    processed_at: datetime | None
    created_at: datetime | None

    model_config = {"from_attributes": True}


class LeaveDecision(BaseModel):
    approved: bool


class LeaveBalanceResponse(BaseModel):
    owner_id: int
    total: int
    used: int
    remaining: int
