"""
Slot evaluator: decides whether one terminal was available during one
hourly slot, given the latest telemetry reading of that hour.

Pure module — no DB, no settings import. Vendor wording is matched through a
StatusVocabulary so the lookup table can be tuned from configuration without
touching the rules. The heuristics are intentionally coarse and pinned by
tests (e.g. any ">" in the offline duration counts as a prolonged outage,
"inactive" contains "active").

Public API
----------
evaluate_slot(snapshot | None, shape, vocabulary) -> SlotVerdict
is_offline_duration_bad / is_status_active / is_geofence_ok
parse_printer_status / parse_signal / parse_battery_pct
"""
from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from tpe_availability.services.policy_shape import PolicyShape, SIGNAL_MIN


# ---------------------------------------------------------------------------
# Reason codes (wire contract, do not rename)
# ---------------------------------------------------------------------------

class ReasonCode(str, enum.Enum):
    OFFLINE_DURATION = "OFFLINE_DURATION"
    STATUS_INACTIVE = "STATUS_INACTIVE"
    SIGNAL_LOW = "SIGNAL_LOW"
    GEOFENCE_OUT = "GEOFENCE_OUT"
    BATTERY_LOW = "BATTERY_LOW"
    PAPER_OUT = "PAPER_OUT"
    PAPER_UNKNOWN = "PAPER_UNKNOWN"
    PAPER_UNKNOWN_WARN = "PAPER_UNKNOWN_WARN"
    NO_DATA = "NO_DATA"


_REASON_ORDER = {code: i for i, code in enumerate(ReasonCode)}


def sort_reasons(reasons) -> list[str]:
    """Stable wire ordering: declaration order of ReasonCode."""
    return [r.value for r in sorted(reasons, key=_REASON_ORDER.__getitem__)]


# ---------------------------------------------------------------------------
# Inputs / outputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TelemetrySnapshot:
    """Latest reading of one terminal within one hour."""
    terminal_serial: str
    event_time: datetime
    status: Optional[str] = None
    offline_duration: Optional[str] = None
    signal: Any = None
    geofence: Optional[str] = None
    battery_rate_avg: Any = None
    printer: Optional[str] = None
    is_charging: Optional[bool] = None


@dataclass(frozen=True)
class SlotVerdict:
    ok: bool
    reasons: frozenset[ReasonCode]


@dataclass(frozen=True)
class StatusVocabulary:
    """Vendor wording recognised by the classifiers (lower-case)."""
    offline_prolonged_markers: tuple[str, ...] = (">", "days")
    status_active_markers: tuple[str, ...] = ("active", "online")
    geofence_in_markers: tuple[str, ...] = ("in geofence",)
    # exact matches on the whole printer status
    paper_ok_values: tuple[str, ...] = ("available",)
    paper_out_values: tuple[str, ...] = ("out of paper",)
    # substring match; battery concern, paper considered fine
    low_voltage_markers: tuple[str, ...] = ("low voltage",)


DEFAULT_VOCABULARY = StatusVocabulary()


class PaperState(str, enum.Enum):
    ok = "ok"
    out = "out"
    unknown = "unknown"


@dataclass(frozen=True)
class PrinterState:
    paper: PaperState
    battery_low_hint: bool


# ---------------------------------------------------------------------------
# Classifiers
# ---------------------------------------------------------------------------

def _text(value: Any) -> str:
    return "" if value is None else str(value).strip().lower()


def _contains_any(text: str, markers: tuple[str, ...]) -> bool:
    return any(m.lower() in text for m in markers)


def is_offline_duration_bad(
    offline_duration: Any, vocabulary: StatusVocabulary = DEFAULT_VOCABULARY
) -> bool:
    text = _text(offline_duration)
    if not text:
        return False
    return _contains_any(text, vocabulary.offline_prolonged_markers)


def is_status_active(status: Any, vocabulary: StatusVocabulary = DEFAULT_VOCABULARY) -> bool:
    text = _text(status)
    if not text:
        return False
    return _contains_any(text, vocabulary.status_active_markers)


def is_geofence_ok(geofence: Any, vocabulary: StatusVocabulary = DEFAULT_VOCABULARY) -> bool:
    text = _text(geofence)
    if not text:
        return False
    return _contains_any(text, vocabulary.geofence_in_markers)


def parse_printer_status(
    printer: Any, vocabulary: StatusVocabulary = DEFAULT_VOCABULARY
) -> PrinterState:
    text = _text(printer)
    if not text:
        return PrinterState(PaperState.unknown, battery_low_hint=False)
    if text in (v.lower() for v in vocabulary.paper_ok_values):
        return PrinterState(PaperState.ok, battery_low_hint=False)
    if text in (v.lower() for v in vocabulary.paper_out_values):
        return PrinterState(PaperState.out, battery_low_hint=False)
    if _contains_any(text, vocabulary.low_voltage_markers):
        return PrinterState(PaperState.ok, battery_low_hint=True)
    return PrinterState(PaperState.unknown, battery_low_hint=False)


def _finite_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def parse_signal(signal: Any) -> float:
    """Missing or non-numeric signal counts as 0."""
    number = _finite_number(signal)
    return 0.0 if number is None else number


def parse_battery_pct(battery_rate_avg: Any) -> int:
    """Battery ratio (0.18) -> percentage (18), half-up rounding; unusable -> 0."""
    number = _finite_number(battery_rate_avg)
    if number is None:
        return 0
    return math.floor(number * 100 + 0.5)


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------

def evaluate_slot(
    snapshot: Optional[TelemetrySnapshot],
    shape: PolicyShape,
    vocabulary: StatusVocabulary = DEFAULT_VOCABULARY,
) -> SlotVerdict:
    """
    Evaluate one slot. A missing snapshot always fails with NO_DATA.
    Every enabled check runs; all failure reasons are collected.
    PAPER_UNKNOWN_WARN is recorded without failing the slot.
    """
    if snapshot is None:
        return SlotVerdict(ok=False, reasons=frozenset({ReasonCode.NO_DATA}))

    failures: set[ReasonCode] = set()
    warnings: set[ReasonCode] = set()

    if shape.use_tpe_on:
        if is_offline_duration_bad(snapshot.offline_duration, vocabulary):
            failures.add(ReasonCode.OFFLINE_DURATION)
        if not is_status_active(snapshot.status, vocabulary):
            failures.add(ReasonCode.STATUS_INACTIVE)

    if shape.use_internet and parse_signal(snapshot.signal) < SIGNAL_MIN:
        failures.add(ReasonCode.SIGNAL_LOW)

    if shape.use_geofence and not is_geofence_ok(snapshot.geofence, vocabulary):
        failures.add(ReasonCode.GEOFENCE_OUT)

    printer = parse_printer_status(snapshot.printer, vocabulary)

    if shape.use_battery:
        if printer.battery_low_hint:
            failures.add(ReasonCode.BATTERY_LOW)
        elif parse_battery_pct(snapshot.battery_rate_avg) < shape.battery_min_pct:
            failures.add(ReasonCode.BATTERY_LOW)

    if shape.use_paper:
        if printer.paper is PaperState.out:
            failures.add(ReasonCode.PAPER_OUT)
        elif printer.paper is PaperState.unknown:
            if shape.is_strict_paper:
                failures.add(ReasonCode.PAPER_UNKNOWN)
            else:
                warnings.add(ReasonCode.PAPER_UNKNOWN_WARN)

    return SlotVerdict(ok=not failures, reasons=frozenset(failures | warnings))
