"""
Weekly aggregator: folds the Daily Results of one policy over
[week_start, week_start + 7 days) into one decision per terminal.

A week is unavailable when either threshold is reached (inclusive):
  weekly_fail_days  > 0 and days_fail        >= weekly_fail_days
  weekly_fail_slots > 0 and slots_fail_total >= weekly_fail_slots
A threshold of 0 / None disables its branch.

Only Daily Results stamped with the resolved policy version are folded;
rows left over from an earlier version are ignored until recomputed.
Terminals without any such Daily Result in the window get no weekly row.

Auto mode recomputes the 7 daily results first with the same resolved
policy. What happens when one day fails is a policy-level choice
(`auto_failure_mode`): "skip" logs and continues, "abort" raises
PartialComputationError before anything weekly is written.

Public API
----------
is_week_unavailable(shape, days_fail, slots_fail_total) -> bool          (pure)
aggregate_weekly(week_start, shape, daily_rows)         -> list[WeeklyOutcome]  (pure)
compute_weekly(db, week_start, policy_id, auto)         -> ComputeSummary
get_weekly(db, week_start, policy_id, ...)              -> (rows, totals)
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Iterable, Optional

import structlog
from sqlalchemy import case, func
from sqlalchemy.orm import Session

from tpe_availability.core.errors import PartialComputationError
from tpe_availability.db.base import commit_upsert
from tpe_availability.models.daily_result import DailyResult
from tpe_availability.models.weekly_result import WeeklyResult
from tpe_availability.services.daily import (
    PAGE_SIZE_MAX,
    ComputeSummary,
    compute_daily_for_policy,
)
from tpe_availability.services.policy_resolver import ResolvedPolicy, resolve_policy
from tpe_availability.services.policy_shape import PolicyShape

logger = structlog.get_logger(__name__)

WEEK_DAYS = 7
WEEKLY_PAGE_SIZE_DEFAULT = 50
SORTABLE_COLUMNS = ("days_fail", "slots_fail_total", "slots_ok_total")


# ---------------------------------------------------------------------------
# Result type
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WeeklyOutcome:
    week_start: date
    terminal_serial: str
    available: bool
    days_ok: int
    days_fail: int
    slots_ok_total: int
    slots_fail_total: int
    fail_dates: tuple[date, ...]
    week_reasons: dict[str, int]


# ---------------------------------------------------------------------------
# Pure aggregation
# ---------------------------------------------------------------------------

def week_window(week_start: date) -> tuple[date, date]:
    """Half-open [start, end) window of the week."""
    return week_start, week_start + timedelta(days=WEEK_DAYS)


def is_week_unavailable(shape: PolicyShape, days_fail: int, slots_fail_total: int) -> bool:
    fail_days = shape.weekly_fail_days or 0
    fail_slots = shape.weekly_fail_slots or 0
    return (fail_days > 0 and days_fail >= fail_days) or (
        fail_slots > 0 and slots_fail_total >= fail_slots
    )


def aggregate_weekly(
    week_start: date,
    shape: PolicyShape,
    daily_rows: Iterable[Any],
) -> list[WeeklyOutcome]:
    """
    `daily_rows` items need: day, terminal_sn, day_ok, slot_ok_count,
    slot_fail_count, failed_reasons (DailyResult rows qualify).
    Rows outside the week window are ignored. Ordered by terminal serial.
    """
    start, end = week_window(week_start)
    by_terminal: dict[str, list[Any]] = {}
    for row in daily_rows:
        if start <= row.day < end:
            by_terminal.setdefault(row.terminal_sn, []).append(row)

    outcomes: list[WeeklyOutcome] = []
    for sn in sorted(by_terminal):
        rows = sorted(by_terminal[sn], key=lambda r: r.day)
        days_ok = sum(1 for r in rows if r.day_ok)
        days_fail = len(rows) - days_ok
        slots_ok = sum(r.slot_ok_count for r in rows)
        slots_fail = sum(r.slot_fail_count for r in rows)

        reasons: Counter[str] = Counter()
        for r in rows:
            # each day's reasons are a set: one occurrence per day
            reasons.update(set(r.failed_reasons or ()))

        outcomes.append(WeeklyOutcome(
            week_start=week_start,
            terminal_serial=sn,
            available=not is_week_unavailable(shape, days_fail, slots_fail),
            days_ok=days_ok,
            days_fail=days_fail,
            slots_ok_total=slots_ok,
            slots_fail_total=slots_fail,
            fail_dates=tuple(r.day for r in rows if not r.day_ok),
            week_reasons=dict(sorted(reasons.items())),
        ))
    return outcomes


# ---------------------------------------------------------------------------
# Auto mode
# ---------------------------------------------------------------------------

def _recompute_week_days(db: Session, week_start: date, resolved: ResolvedPolicy) -> list[date]:
    """Recompute the 7 daily results; returns the days that failed."""
    failed: list[date] = []
    for offset in range(WEEK_DAYS):
        day = week_start + timedelta(days=offset)
        try:
            compute_daily_for_policy(db, day, resolved)
        except Exception as exc:
            db.rollback()
            logger.warning(
                "weekly_auto_day_failed",
                day=str(day),
                week_start=str(week_start),
                policy_id=resolved.policy_id,
                error=str(exc),
            )
            failed.append(day)
    return failed


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

def _upsert_weekly(
    db: Session,
    week_start: date,
    outcomes: list[WeeklyOutcome],
    resolved: ResolvedPolicy,
) -> None:
    """Full replace of each (week_start, terminal, policy) row. Does not commit."""
    existing = {
        row.terminal_sn: row
        for row in db.query(WeeklyResult)
        .filter(WeeklyResult.week_start == week_start, WeeklyResult.policy_id == resolved.policy_id)
        .all()
    }
    now = datetime.now(tz=timezone.utc)
    for o in outcomes:
        row = existing.get(o.terminal_serial)
        if row is None:
            row = WeeklyResult(
                week_start=week_start, terminal_sn=o.terminal_serial, policy_id=resolved.policy_id
            )
            db.add(row)
        row.policy_version = resolved.version
        row.available = o.available
        row.days_ok = o.days_ok
        row.days_fail = o.days_fail
        row.slots_ok_total = o.slots_ok_total
        row.slots_fail_total = o.slots_fail_total
        row.fail_dates = [str(d) for d in o.fail_dates]
        row.week_reasons = dict(o.week_reasons)
        row.computed_at = now


# ---------------------------------------------------------------------------
# Public: compute
# ---------------------------------------------------------------------------

def compute_weekly(
    db: Session,
    week_start: date,
    policy_id: Optional[int] = None,
    auto: bool = False,
) -> ComputeSummary:
    """Aggregate the week's Daily Results into Weekly Results (upsert)."""
    resolved = resolve_policy(db, week_start, policy_id)

    skipped: list[date] = []
    if auto:
        skipped = _recompute_week_days(db, week_start, resolved)
        if skipped and resolved.auto_failure_mode == "abort":
            raise PartialComputationError(week_start=week_start, failed_days=skipped)

    start, end = week_window(week_start)
    daily_rows = (
        db.query(DailyResult)
        .filter(
            DailyResult.day >= start,
            DailyResult.day < end,
            DailyResult.policy_id == resolved.policy_id,
            DailyResult.policy_version == resolved.version,
        )
        .all()
    )
    outcomes = aggregate_weekly(week_start, resolved.shape, daily_rows)
    if not outcomes:
        logger.info("weekly_no_daily_results", week_start=str(week_start), policy_id=resolved.policy_id)
        return ComputeSummary(
            count=0,
            policy_id=resolved.policy_id,
            policy_version=resolved.version,
            policy_source=resolved.source,
            message="No daily results for this week.",
            skipped_days=skipped,
        )

    commit_upsert(
        db, lambda: _upsert_weekly(db, week_start, outcomes, resolved), operation="compute_weekly"
    )

    logger.info(
        "weekly_computed",
        week_start=str(week_start),
        policy_id=resolved.policy_id,
        policy_version=resolved.version,
        policy_source=resolved.source,
        count=len(outcomes),
        unavailable=sum(1 for o in outcomes if not o.available),
        skipped_days=[str(d) for d in skipped],
    )
    return ComputeSummary(
        count=len(outcomes),
        policy_id=resolved.policy_id,
        policy_version=resolved.version,
        policy_source=resolved.source,
        skipped_days=skipped,
    )


# ---------------------------------------------------------------------------
# Public: read back
# ---------------------------------------------------------------------------

def get_weekly(
    db: Session,
    week_start: date,
    policy_id: int,
    status: str = "all",
    search: Optional[str] = None,
    sort_by: Optional[str] = None,
    order: str = "desc",
    page: int = 1,
    page_size: int = WEEKLY_PAGE_SIZE_DEFAULT,
) -> tuple[list[WeeklyResult], dict]:
    """
    Return (page of rows, totals). `sort_by` outside SORTABLE_COLUMNS falls
    back to terminal serial ascending.
    """
    page = max(1, page)
    page_size = min(PAGE_SIZE_MAX, max(1, page_size))

    q = db.query(WeeklyResult).filter(
        WeeklyResult.week_start == week_start, WeeklyResult.policy_id == policy_id
    )
    if search and search.strip():
        q = q.filter(WeeklyResult.terminal_sn.contains(search.strip(), autoescape=True))
    if status == "available":
        q = q.filter(WeeklyResult.available.is_(True))
    elif status == "unavailable":
        q = q.filter(WeeklyResult.available.is_(False))

    total, available_count = q.with_entities(
        func.count(WeeklyResult.id),
        func.coalesce(func.sum(case((WeeklyResult.available.is_(True), 1), else_=0)), 0),
    ).one()
    total = int(total or 0)
    available_count = int(available_count or 0)

    if sort_by in SORTABLE_COLUMNS:
        column = getattr(WeeklyResult, sort_by)
        ordering = [column.asc() if order == "asc" else column.desc(), WeeklyResult.terminal_sn.asc()]
    else:
        ordering = [WeeklyResult.terminal_sn.asc()]

    rows = (
        q.order_by(*ordering)
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    totals = {
        "total": total,
        "page": page,
        "page_size": page_size,
        "available_count": available_count,
        "unavailable_count": total - available_count,
    }
    return rows, totals
