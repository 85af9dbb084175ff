"""
Availability compute / read-back schemas.

POST /availability/daily/compute   DailyComputeRequest  -> ComputeResponse
GET  /availability/daily                                -> DailyListResponse
POST /availability/weekly/compute  WeeklyComputeRequest -> ComputeResponse
GET  /availability/weekly                               -> WeeklyListResponse
"""
from __future__ import annotations

import datetime as dt
from typing import Literal, Optional

from pydantic import BaseModel, Field


class DailyComputeRequest(BaseModel):
    date: dt.date = Field(description="Day to evaluate (UTC).", examples=["2025-03-04"])
    week_start: Optional[dt.date] = Field(
        default=None,
        description="Week used for policy resolution. Defaults to the Monday of `date`.",
    )
    policy_id: Optional[int] = Field(
        default=None, ge=1,
        description="Explicit policy. Omit to use the week lock or the active policy.",
    )


class WeeklyComputeRequest(BaseModel):
    week_start: dt.date = Field(description="First day of the 7-day window.", examples=["2025-03-03"])
    policy_id: Optional[int] = Field(default=None, ge=1)
    auto: bool = Field(
        default=False,
        description="Recompute the 7 daily results before aggregating.",
    )


class ComputeResponse(BaseModel):
    ok: bool = True
    count: int = Field(description="Rows written.")
    policy_id: int
    policy_version: int
    policy_source: Literal["explicit", "week_lock", "active"]
    message: Optional[str] = None
    skipped_days: list[str] = Field(
        default_factory=list,
        description="Weekly auto mode: days whose daily recomputation failed and was skipped.",
    )


class DailyResultOut(BaseModel):
    date: str
    terminal_sn: str
    policy_id: int
    policy_version: int
    day_ok: bool
    slot_ok_count: int
    slot_fail_count: int
    failed_slots: list[str] = Field(description="UTC slot starts, e.g. 2025-03-04T12:00:00.000Z, ascending")
    failed_reasons: list[str]
    computed_at: Optional[str] = None


class DailyMeta(BaseModel):
    total: int
    page: int
    page_size: int
    available_count: int
    unavailable_count: int
    available_pct: float
    unavailable_pct: float


class DailyListResponse(BaseModel):
    data: list[DailyResultOut]
    meta: DailyMeta


class WeeklyResultOut(BaseModel):
    week_start: str
    terminal_sn: str
    policy_id: int
    policy_version: int
    decision: Literal["available", "unavailable"]
    days_ok: int
    days_fail: int
    slots_ok_total: int
    slots_fail_total: int
    fail_dates: list[str]
    week_reasons: dict[str, int]
    computed_at: Optional[str] = None


class WeeklyMeta(BaseModel):
    total: int
    page: int
    page_size: int
    available_count: int
    unavailable_count: int


class WeeklyListResponse(BaseModel):
    data: list[WeeklyResultOut]
    meta: WeeklyMeta
