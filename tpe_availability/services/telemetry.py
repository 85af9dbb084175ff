"""
Telemetry store reads: the terminal universe of a day and the latest reading
per (terminal, hour).

Day window is UTC: [day 00:00, day+1 00:00).
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy.orm import Session

from tpe_availability.models.telemetry import TerminalTelemetry
from tpe_availability.services.slot_evaluator import TelemetrySnapshot

# terminal serial -> hour of day -> latest snapshot
SnapshotIndex = dict[str, dict[int, TelemetrySnapshot]]


def day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def list_terminals_on_date(db: Session, day: date) -> list[str]:
    """Distinct terminal serials with at least one reading on `day`, sorted."""
    start, end = day_bounds(day)
    rows = (
        db.query(TerminalTelemetry.terminal_sn)
        .filter(TerminalTelemetry.event_time >= start, TerminalTelemetry.event_time < end)
        .distinct()
        .all()
    )
    return sorted(r.terminal_sn for r in rows)


def _utc_hour(ts: datetime) -> int:
    """Naive timestamps (SQLite) are already UTC."""
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    return ts.hour


def _to_snapshot(row: TerminalTelemetry) -> TelemetrySnapshot:
    return TelemetrySnapshot(
        terminal_serial=row.terminal_sn,
        event_time=row.event_time,
        status=row.status,
        offline_duration=row.offline_duration,
        signal=row.signal,
        geofence=row.geofence,
        battery_rate_avg=row.battery_rate_avg,
        printer=row.printer,
        is_charging=row.is_charging,
    )


def fetch_latest_by_hour(db: Session, day: date) -> SnapshotIndex:
    """
    Latest reading per (terminal, hour) within `day`.
    Rows are scanned oldest first so the last writer of each hour bucket wins;
    equal timestamps fall back to insertion order (id).
    """
    start, end = day_bounds(day)
    rows = (
        db.query(TerminalTelemetry)
        .filter(TerminalTelemetry.event_time >= start, TerminalTelemetry.event_time < end)
        .order_by(TerminalTelemetry.event_time.asc(), TerminalTelemetry.id.asc())
        .all()
    )
    index: SnapshotIndex = {}
    for row in rows:
        index.setdefault(row.terminal_sn, {})[_utc_hour(row.event_time)] = _to_snapshot(row)
    return index
