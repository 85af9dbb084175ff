"""
Metrics / BI schemas.

GET /metrics/summary        -> SummaryResponse
GET /bi/daily/unavailable   -> DailyUnavailableResponse
GET /bi/weekly/unavailable  -> WeeklyUnavailableResponse
"""
from typing import Optional
from pydantic import BaseModel, Field


class SummaryResponse(BaseModel):
    tpe_day_total: int
    tpe_day_ok: int
    tpe_day_fail: int
    daily_available_pct: float = Field(description="0-100, not rounded.", examples=[87.5])
    slots_ok_day: int
    slots_fail_day: int
    last_daily_computed_at: Optional[str]
    tpe_week_total: int
    tpe_week_ok: int
    tpe_week_fail: int
    weekly_available_pct: float
    last_weekly_computed_at: Optional[str]


class DailyUnavailableItem(BaseModel):
    terminal_sn: str
    reasons: list[str]
    failed_slots: list[str] = Field(description="UTC slot starts, e.g. 2025-03-04T12:00:00.000Z, ascending")
    slot_ok_count: int
    slot_fail_count: int


class DailyUnavailableResponse(BaseModel):
    data: list[DailyUnavailableItem]


class WeeklyUnavailableItem(BaseModel):
    terminal_sn: str
    fail_dates: list[str]
    reasons: dict[str, int]
    days_ok: int
    days_fail: int
    slots_ok_total: int
    slots_fail_total: int


class WeeklyUnavailableResponse(BaseModel):
    data: list[WeeklyUnavailableItem]
