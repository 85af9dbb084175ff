"""
Availability router — daily and weekly computation plus read-back.

POST /availability/daily/compute    — evaluate one day for every terminal
GET  /availability/daily            — paged daily results of a policy
POST /availability/weekly/compute   — fold a week of daily results
GET  /availability/weekly           — paged weekly results of a policy
"""
from __future__ import annotations

from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from tpe_availability.db.base import get_db
from tpe_availability.models.daily_result import DailyResult
from tpe_availability.models.weekly_result import WeeklyResult
from tpe_availability.schemas.availability import (
    ComputeResponse,
    DailyComputeRequest,
    DailyListResponse,
    DailyMeta,
    DailyResultOut,
    WeeklyComputeRequest,
    WeeklyListResponse,
    WeeklyMeta,
    WeeklyResultOut,
)
from tpe_availability.schemas.common import ErrorResponse, StatusFilter
from tpe_availability.services.daily import (
    DAILY_PAGE_SIZE_DEFAULT,
    PAGE_SIZE_MAX,
    ComputeSummary,
    compute_daily,
    get_daily,
)
from tpe_availability.services.weekly import WEEKLY_PAGE_SIZE_DEFAULT, compute_weekly, get_weekly

router = APIRouter(prefix="/availability", tags=["availability"])


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def _ev(v) -> str:
    return v.value if hasattr(v, "value") else str(v)


def _summary_to_response(s: ComputeSummary) -> ComputeResponse:
    return ComputeResponse(
        ok=True,
        count=s.count,
        policy_id=s.policy_id,
        policy_version=s.policy_version,
        policy_source=_ev(s.policy_source),
        message=s.message,
        skipped_days=[str(d) for d in s.skipped_days],
    )


def _daily_to_response(r: DailyResult) -> DailyResultOut:
    return DailyResultOut(
        date=str(r.day),
        terminal_sn=r.terminal_sn,
        policy_id=r.policy_id,
        policy_version=r.policy_version,
        day_ok=r.day_ok,
        slot_ok_count=r.slot_ok_count,
        slot_fail_count=r.slot_fail_count,
        failed_slots=list(r.failed_slots or []),
        failed_reasons=list(r.failed_reasons or []),
        computed_at=r.computed_at.isoformat() if r.computed_at else None,
    )


def _weekly_to_response(r: WeeklyResult) -> WeeklyResultOut:
    return WeeklyResultOut(
        week_start=str(r.week_start),
        terminal_sn=r.terminal_sn,
        policy_id=r.policy_id,
        policy_version=r.policy_version,
        decision="available" if r.available else "unavailable",
        days_ok=r.days_ok,
        days_fail=r.days_fail,
        slots_ok_total=r.slots_ok_total,
        slots_fail_total=r.slots_fail_total,
        fail_dates=list(r.fail_dates or []),
        week_reasons=dict(r.week_reasons or {}),
        computed_at=r.computed_at.isoformat() if r.computed_at else None,
    )


# ---------------------------------------------------------------------------
# Daily
# ---------------------------------------------------------------------------

@router.post(
    "/daily/compute",
    response_model=ComputeResponse,
    summary="Compute daily availability",
    responses={
        404: {"model": ErrorResponse, "description": "Explicit policy not found, or no lock and no active policy."},
        503: {"model": ErrorResponse, "description": "Results could not be persisted; nothing was written."},
    },
)
def compute_daily_endpoint(payload: DailyComputeRequest, db: Session = Depends(get_db)):
    """
    Evaluate every terminal that reported on `date` against the resolved
    policy and upsert one row per terminal.

    ### Policy resolution
    1. `policy_id` when given.
    2. The week lock of the ISO week containing `week_start` (default: Monday of `date`).
    3. The active policy with the highest id.

    A day without telemetry returns `count = 0` and a `message`.
    """
    summary = compute_daily(db, payload.date, payload.week_start, payload.policy_id)
    return _summary_to_response(summary)


@router.get("/daily", response_model=DailyListResponse, summary="List daily results")
def list_daily_endpoint(
    day: date = Query(alias="date", description="Evaluated day.", examples=["2025-03-04"]),
    policy_id: int = Query(ge=1),
    status: StatusFilter = Query(default="all"),
    search: Optional[str] = Query(default=None, description="Substring of the terminal serial."),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=DAILY_PAGE_SIZE_DEFAULT, ge=1, le=PAGE_SIZE_MAX),
    db: Session = Depends(get_db),
):
    rows, totals = get_daily(db, day, policy_id, status, search, page, page_size)
    return DailyListResponse(
        data=[_daily_to_response(r) for r in rows],
        meta=DailyMeta(**totals),
    )


# ---------------------------------------------------------------------------
# Weekly
# ---------------------------------------------------------------------------

@router.post(
    "/weekly/compute",
    response_model=ComputeResponse,
    summary="Compute weekly availability",
    responses={
        404: {"model": ErrorResponse, "description": "Explicit policy not found, or no lock and no active policy."},
        409: {"model": ErrorResponse, "description": "Auto mode: a daily recomputation failed and the policy aborts."},
        503: {"model": ErrorResponse, "description": "Results could not be persisted; nothing was written."},
    },
)
def compute_weekly_endpoint(payload: WeeklyComputeRequest, db: Session = Depends(get_db)):
    """
    Aggregate the daily results of `[week_start, week_start + 7 days)`.

    A terminal is **unavailable** for the week when
    `days_fail >= weekly_fail_days` or `slots_fail_total >= weekly_fail_slots`
    (a threshold of 0 or null is ignored).

    With `auto = true` the 7 daily results are recomputed first. Days that
    fail are listed in `skipped_days`, unless the policy's
    `auto_failure_mode` is `abort`, in which case the call returns 409.
    """
    summary = compute_weekly(db, payload.week_start, payload.policy_id, payload.auto)
    return _summary_to_response(summary)


@router.get("/weekly", response_model=WeeklyListResponse, summary="List weekly results")
def list_weekly_endpoint(
    week_start: date = Query(examples=["2025-03-03"]),
    policy_id: int = Query(ge=1),
    status: StatusFilter = Query(default="all"),
    search: Optional[str] = Query(default=None),
    sort_by: Optional[Literal["days_fail", "slots_fail_total", "slots_ok_total"]] = Query(
        default=None, description="Defaults to terminal serial ascending."
    ),
    order: Literal["asc", "desc"] = Query(default="desc"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=WEEKLY_PAGE_SIZE_DEFAULT, ge=1, le=PAGE_SIZE_MAX),
    db: Session = Depends(get_db),
):
    rows, totals = get_weekly(
        db, week_start, policy_id, status, search, sort_by, order, page, page_size
    )
    return WeeklyListResponse(
        data=[_weekly_to_response(r) for r in rows],
        meta=WeeklyMeta(**totals),
    )
