"""
Metrics router — KPI summary for one day and one week of a policy.

GET /metrics/summary
"""
from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from tpe_availability.db.base import get_db
from tpe_availability.schemas.metrics import SummaryResponse
from tpe_availability.services.metrics import get_summary

router = APIRouter(prefix="/metrics", tags=["metrics"])


@router.get("/summary", response_model=SummaryResponse, summary="Daily and weekly KPIs")
def summary_endpoint(
    day: date = Query(alias="date", examples=["2025-03-04"]),
    week_start: date = Query(examples=["2025-03-03"]),
    policy_id: int = Query(ge=1),
    db: Session = Depends(get_db),
):
    """
    Counts and availability percentages (0-100) over the stored results of
    `policy_id`. Empty sets report 0 % and null timestamps.
    """
    return SummaryResponse(**get_summary(db, day, week_start, policy_id))
