"""
Reporting helpers on top of the stored results.

get_summary(db, day, week_start, policy_id)   -> dict   (day + week KPIs)
daily_unavailable(db, day, policy_id)         -> list[DailyResult]
weekly_unavailable(db, week_start, policy_id) -> list[WeeklyResult]

The *_unavailable helpers only return rows computed with the policy's
current version, so results of superseded shapes never leak into BI feeds.
"""
from __future__ import annotations

from datetime import date

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from tpe_availability.models.daily_result import DailyResult
from tpe_availability.models.weekly_result import WeeklyResult
from tpe_availability.services.policy_service import get_policy


def _pct(part: int, total: int) -> float:
    return (part * 100.0 / total) if total else 0.0


def _iso(ts) -> str | None:
    return ts.isoformat() if ts else None


def get_summary(db: Session, day: date, week_start: date, policy_id: int) -> dict:
    day_total, day_ok, slots_ok, slots_fail, last_daily = (
        db.query(
            func.count(DailyResult.id),
            func.coalesce(func.sum(case((DailyResult.day_ok.is_(True), 1), else_=0)), 0),
            func.coalesce(func.sum(DailyResult.slot_ok_count), 0),
            func.coalesce(func.sum(DailyResult.slot_fail_count), 0),
            func.max(DailyResult.computed_at),
        )
        .filter(DailyResult.day == day, DailyResult.policy_id == policy_id)
        .one()
    )
    week_total, week_ok, last_weekly = (
        db.query(
            func.count(WeeklyResult.id),
            func.coalesce(func.sum(case((WeeklyResult.available.is_(True), 1), else_=0)), 0),
            func.max(WeeklyResult.computed_at),
        )
        .filter(WeeklyResult.week_start == week_start, WeeklyResult.policy_id == policy_id)
        .one()
    )
    day_total, day_ok = int(day_total or 0), int(day_ok or 0)
    week_total, week_ok = int(week_total or 0), int(week_ok or 0)

    return {
        "tpe_day_total": day_total,
        "tpe_day_ok": day_ok,
        "tpe_day_fail": max(0, day_total - day_ok),
        "daily_available_pct": _pct(day_ok, day_total),
        "slots_ok_day": int(slots_ok or 0),
        "slots_fail_day": int(slots_fail or 0),
        "last_daily_computed_at": _iso(last_daily),
        "tpe_week_total": week_total,
        "tpe_week_ok": week_ok,
        "tpe_week_fail": max(0, week_total - week_ok),
        "weekly_available_pct": _pct(week_ok, week_total),
        "last_weekly_computed_at": _iso(last_weekly),
    }


def daily_unavailable(db: Session, day: date, policy_id: int) -> list[DailyResult]:
    policy = get_policy(db, policy_id)
    return (
        db.query(DailyResult)
        .filter(
            DailyResult.day == day,
            DailyResult.policy_id == policy_id,
            DailyResult.policy_version == policy.current_version,
            DailyResult.day_ok.is_(False),
        )
        .order_by(DailyResult.terminal_sn.asc())
        .all()
    )


def weekly_unavailable(db: Session, week_start: date, policy_id: int) -> list[WeeklyResult]:
    policy = get_policy(db, policy_id)
    return (
        db.query(WeeklyResult)
        .filter(
            WeeklyResult.week_start == week_start,
            WeeklyResult.policy_id == policy_id,
            WeeklyResult.policy_version == policy.current_version,
            WeeklyResult.available.is_(False),
        )
        .order_by(WeeklyResult.terminal_sn.asc())
        .all()
    )
