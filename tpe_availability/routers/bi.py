"""
BI router — flat lists of unavailable terminals for external dashboards.

GET /bi/daily/unavailable
GET /bi/weekly/unavailable

Only results computed with the policy's current version are returned.
"""
from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from tpe_availability.db.base import get_db
from tpe_availability.schemas.common import ErrorResponse
from tpe_availability.schemas.metrics import (
    DailyUnavailableItem,
    DailyUnavailableResponse,
    WeeklyUnavailableItem,
    WeeklyUnavailableResponse,
)
from tpe_availability.services.metrics import daily_unavailable, weekly_unavailable

router = APIRouter(prefix="/bi", tags=["bi"])


@router.get(
    "/daily/unavailable",
    response_model=DailyUnavailableResponse,
    summary="Terminals unavailable on a day",
    responses={404: {"model": ErrorResponse, "description": "Policy not found."}},
)
def daily_unavailable_endpoint(
    day: date = Query(alias="date"),
    policy_id: int = Query(ge=1),
    db: Session = Depends(get_db),
):
    return DailyUnavailableResponse(data=[
        DailyUnavailableItem(
            terminal_sn=r.terminal_sn,
            reasons=list(r.failed_reasons or []),
            failed_slots=list(r.failed_slots or []),
            slot_ok_count=r.slot_ok_count,
            slot_fail_count=r.slot_fail_count,
        )
        for r in daily_unavailable(db, day, policy_id)
    ])


@router.get(
    "/weekly/unavailable",
    response_model=WeeklyUnavailableResponse,
    summary="Terminals unavailable over a week",
    responses={404: {"model": ErrorResponse, "description": "Policy not found."}},
)
def weekly_unavailable_endpoint(
    week_start: date = Query(),
    policy_id: int = Query(ge=1),
    db: Session = Depends(get_db),
):
    return WeeklyUnavailableResponse(data=[
        WeeklyUnavailableItem(
            terminal_sn=r.terminal_sn,
            fail_dates=list(r.fail_dates or []),
            reasons=dict(r.week_reasons or {}),
            days_ok=r.days_ok,
            days_fail=r.days_fail,
            slots_ok_total=r.slots_ok_total,
            slots_fail_total=r.slots_fail_total,
        )
        for r in weekly_unavailable(db, week_start, policy_id)
    ])
