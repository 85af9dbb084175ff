"""
Daily aggregator: one availability verdict per terminal per day.

For each terminal of the day and each configured slot hour, the latest
reading of that hour is evaluated; the day is available while
slot_fail_count < daily_fail_n (strict less-than: daily_fail_n = 0 makes
every day unavailable).

Public API
----------
build_daily_results(day, terminals, snapshots, shape, vocabulary) -> list[DailyOutcome]   (pure)
compute_daily(db, day, week_start, policy_id)                     -> ComputeSummary
compute_daily_for_policy(db, day, resolved)                       -> ComputeSummary
get_daily(db, day, policy_id, ...)                                -> (rows, totals)
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import Iterable, Mapping, Optional

import structlog
from sqlalchemy import case, func
from sqlalchemy.orm import Session

from tpe_availability.core.config import settings
from tpe_availability.db.base import commit_upsert
from tpe_availability.models.daily_result import DailyResult
from tpe_availability.services.policy_resolver import ResolvedPolicy, monday_of, resolve_policy
from tpe_availability.services.policy_shape import PolicyShape
from tpe_availability.services.slot_evaluator import (
    DEFAULT_VOCABULARY,
    ReasonCode,
    StatusVocabulary,
    TelemetrySnapshot,
    evaluate_slot,
    sort_reasons,
)
from tpe_availability.services.telemetry import fetch_latest_by_hour, list_terminals_on_date

logger = structlog.get_logger(__name__)

DAILY_PAGE_SIZE_DEFAULT = 200
PAGE_SIZE_MAX = 1000


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DailyOutcome:
    day: date
    terminal_serial: str
    day_ok: bool
    slot_ok_count: int
    slot_fail_count: int
    failed_slots: tuple[str, ...]    # slot_timestamp() strings, ascending by hour
    failed_reasons: tuple[str, ...]  # ReasonCode declaration order


@dataclass
class ComputeSummary:
    """What a daily or weekly computation wrote."""
    count: int
    policy_id: int
    policy_version: int
    policy_source: str
    message: Optional[str] = None
    skipped_days: list[date] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Pure aggregation
# ---------------------------------------------------------------------------

def slot_timestamp(day: date, hour: int) -> str:
    """Slot start as ISO-8601 UTC with milliseconds and a Z suffix, e.g. 2025-03-04T12:00:00.000Z."""
    start = datetime.combine(day, time(hour=hour), tzinfo=timezone.utc)
    return start.strftime("%Y-%m-%dT%H:%M:%S.000Z")


def evaluate_terminal_day(
    day: date,
    terminal_serial: str,
    snapshots_by_hour: Mapping[int, TelemetrySnapshot],
    shape: PolicyShape,
    vocabulary: StatusVocabulary = DEFAULT_VOCABULARY,
) -> DailyOutcome:
    ok_count = 0
    fail_count = 0
    failed_slots: list[str] = []
    reasons: set[ReasonCode] = set()

    for hour in shape.slot_hours:
        verdict = evaluate_slot(snapshots_by_hour.get(hour), shape, vocabulary)
        if verdict.ok:
            ok_count += 1
            continue
        fail_count += 1
        failed_slots.append(slot_timestamp(day, hour))
        reasons.update(verdict.reasons)

    return DailyOutcome(
        day=day,
        terminal_serial=terminal_serial,
        day_ok=fail_count < shape.daily_fail_n,
        slot_ok_count=ok_count,
        slot_fail_count=fail_count,
        failed_slots=tuple(failed_slots),
        failed_reasons=tuple(sort_reasons(reasons)),
    )


def build_daily_results(
    day: date,
    terminal_serials: Iterable[str],
    snapshots: Mapping[str, Mapping[int, TelemetrySnapshot]],
    shape: PolicyShape,
    vocabulary: StatusVocabulary = DEFAULT_VOCABULARY,
) -> list[DailyOutcome]:
    """
    Evaluate every terminal of the day's universe, including terminals with
    no reading in any slot hour (all slots NO_DATA). Ordered by serial.
    """
    return [
        evaluate_terminal_day(day, sn, snapshots.get(sn, {}), shape, vocabulary)
        for sn in sorted(set(terminal_serials))
    ]


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

def _upsert_daily(
    db: Session,
    outcomes: list[DailyOutcome],
    resolved: ResolvedPolicy,
) -> None:
    """Full replace of each (date, terminal, policy) row. Does not commit."""
    if not outcomes:
        return
    day = outcomes[0].day
    existing = {
        row.terminal_sn: row
        for row in db.query(DailyResult)
        .filter(DailyResult.day == day, DailyResult.policy_id == resolved.policy_id)
        .all()
    }
    now = datetime.now(tz=timezone.utc)
    for o in outcomes:
        row = existing.get(o.terminal_serial)
        if row is None:
            row = DailyResult(day=o.day, terminal_sn=o.terminal_serial, policy_id=resolved.policy_id)
            db.add(row)
        row.policy_version = resolved.version
        row.day_ok = o.day_ok
        row.slot_ok_count = o.slot_ok_count
        row.slot_fail_count = o.slot_fail_count
        row.failed_slots = list(o.failed_slots)
        row.failed_reasons = list(o.failed_reasons)
        row.computed_at = now


# ---------------------------------------------------------------------------
# Public: compute
# ---------------------------------------------------------------------------

def compute_daily_for_policy(
    db: Session,
    day: date,
    resolved: ResolvedPolicy,
) -> ComputeSummary:
    """Evaluate `day` with an already resolved policy and upsert the results."""
    terminals = list_terminals_on_date(db, day)
    if not terminals:
        logger.info("daily_no_terminals", day=str(day), policy_id=resolved.policy_id)
        return ComputeSummary(
            count=0,
            policy_id=resolved.policy_id,
            policy_version=resolved.version,
            policy_source=resolved.source,
            message="No terminal reported on this day.",
        )

    snapshots = fetch_latest_by_hour(db, day)
    outcomes = build_daily_results(
        day, terminals, snapshots, resolved.shape, settings.status_vocabulary
    )
    commit_upsert(db, lambda: _upsert_daily(db, outcomes, resolved), operation="compute_daily")

    logger.info(
        "daily_computed",
        day=str(day),
        policy_id=resolved.policy_id,
        policy_version=resolved.version,
        policy_source=resolved.source,
        count=len(outcomes),
        unavailable=sum(1 for o in outcomes if not o.day_ok),
    )
    return ComputeSummary(
        count=len(outcomes),
        policy_id=resolved.policy_id,
        policy_version=resolved.version,
        policy_source=resolved.source,
    )


def compute_daily(
    db: Session,
    day: date,
    week_start: Optional[date] = None,
    policy_id: Optional[int] = None,
) -> ComputeSummary:
    """
    Resolve the policy for the week containing `day` (or `week_start` when
    given) and recompute every terminal's verdict for that day.
    """
    resolved = resolve_policy(db, week_start or monday_of(day), policy_id)
    return compute_daily_for_policy(db, day, resolved)


# ---------------------------------------------------------------------------
# Public: read back
# ---------------------------------------------------------------------------

def _pct(part: int, total: int) -> float:
    return (part * 100.0 / total) if total else 0.0


def get_daily(
    db: Session,
    day: date,
    policy_id: int,
    status: str = "all",
    search: Optional[str] = None,
    page: int = 1,
    page_size: int = DAILY_PAGE_SIZE_DEFAULT,
) -> tuple[list[DailyResult], dict]:
    """
    Return (page of rows ordered by terminal serial, totals).
    Totals are computed over the filtered set, before pagination.
    """
    page = max(1, page)
    page_size = min(PAGE_SIZE_MAX, max(1, page_size))

    q = db.query(DailyResult).filter(DailyResult.day == day, DailyResult.policy_id == policy_id)
    if search and search.strip():
        q = q.filter(DailyResult.terminal_sn.contains(search.strip(), autoescape=True))
    if status == "available":
        q = q.filter(DailyResult.day_ok.is_(True))
    elif status == "unavailable":
        q = q.filter(DailyResult.day_ok.is_(False))

    total, ok_count = q.with_entities(
        func.count(DailyResult.id),
        func.coalesce(func.sum(case((DailyResult.day_ok.is_(True), 1), else_=0)), 0),
    ).one()
    total = int(total or 0)
    ok_count = int(ok_count or 0)
    ko_count = total - ok_count

    rows = (
        q.order_by(DailyResult.terminal_sn.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    totals = {
        "total": total,
        "page": page,
        "page_size": page_size,
        "available_count": ok_count,
        "unavailable_count": ko_count,
        "available_pct": _pct(ok_count, total),
        "unavailable_pct": _pct(ko_count, total),
    }
    return rows, totals
