"""
Policy shape — the subset of policy fields that changes evaluation outcomes.

A PolicyShape is an immutable value compared by structural equality. The
policy service bumps the version and writes a snapshot exactly when
`shape_changed(before, after)` is True; display fields (name, status,
auto_failure_mode) are not part of the shape and never trigger it.

Public API
----------
PolicyShape.normalize(mapping)  -> PolicyShape   (coerce + validate)
PolicyShape.from_row(row)       -> PolicyShape   (Policy or PolicyVersion ORM row)
PolicyShape.merge(patch)        -> PolicyShape   (apply a partial update)
shape_changed(before, after)    -> bool
"""
from __future__ import annotations

import math
from dataclasses import dataclass, asdict
from typing import Any, Iterable, Mapping

from tpe_availability.core.errors import InvalidInputError


# Minimum signal level for the internet check. Fixed, not part of the shape.
SIGNAL_MIN = 2

DEFAULT_SLOT_HOURS: tuple[int, ...] = (12, 13, 14, 15, 17, 18, 19)

PAPER_MODES = ("strict", "lenient")

SHAPE_FIELDS: tuple[str, ...] = (
    "use_tpe_on",
    "use_internet",
    "use_geofence",
    "use_battery",
    "use_paper",
    "battery_min_pct",
    "daily_fail_n",
    "weekly_fail_days",
    "weekly_fail_slots",
    "paper_mode",
    "slot_hours",
)

# Shape fields where None is meaningful (threshold disabled)
NULLABLE_FIELDS = ("weekly_fail_days", "weekly_fail_slots")


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------

def _ev(v) -> str:
    return v.value if hasattr(v, "value") else str(v)


def _to_bool(value: Any, default: bool) -> bool:
    if value is True or value in (1, "1", "true", "True"):
        return True
    if value is False or value in (0, "0", "false", "False"):
        return False
    return default


def _to_int(value: Any, field: str) -> int:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"{field} must be a number, got {value!r}.", field=field)
    if not math.isfinite(number):
        raise InvalidInputError(f"{field} must be finite.", field=field)
    if not number.is_integer():
        raise InvalidInputError(f"{field} must be a whole number, got {value!r}.", field=field)
    return int(number)


def _to_optional_threshold(value: Any, field: str) -> int | None:
    if value is None:
        return None
    n = _to_int(value, field)
    if n < 0:
        raise InvalidInputError(f"{field} must be >= 0.", field=field)
    return n


def parse_slot_hours(values: Iterable[Any] | None) -> tuple[int, ...]:
    """
    De-duplicate and sort hours of day. Entries that are not whole numbers
    in 0..23 are dropped; an empty result is rejected.
    """
    hours: set[int] = set()
    for v in values or ():
        try:
            number = float(v)
        except (TypeError, ValueError):
            continue
        if not math.isfinite(number) or number != int(number):
            continue
        if 0 <= number <= 23:
            hours.add(int(number))
    if not hours:
        raise InvalidInputError(
            "slot_hours must contain at least one hour between 0 and 23.",
            field="slot_hours",
        )
    return tuple(sorted(hours))


# ---------------------------------------------------------------------------
# Value type
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PolicyShape:
    use_tpe_on: bool = True
    use_internet: bool = True
    use_geofence: bool = True
    use_battery: bool = True
    use_paper: bool = True
    battery_min_pct: int = 20
    daily_fail_n: int = 1
    weekly_fail_days: int | None = 1
    weekly_fail_slots: int | None = 6
    paper_mode: str = "strict"
    slot_hours: tuple[int, ...] = DEFAULT_SLOT_HOURS

    @property
    def is_strict_paper(self) -> bool:
        return self.paper_mode == "strict"

    @classmethod
    def normalize(cls, data: Mapping[str, Any]) -> "PolicyShape":
        """Build a validated shape from loosely-typed input; missing keys take defaults."""
        defaults = cls()

        battery_min_pct = _to_int(data.get("battery_min_pct", defaults.battery_min_pct), "battery_min_pct")
        if not 0 <= battery_min_pct <= 100:
            raise InvalidInputError("battery_min_pct must be between 0 and 100.", field="battery_min_pct")

        daily_fail_n = _to_int(data.get("daily_fail_n", defaults.daily_fail_n), "daily_fail_n")
        if daily_fail_n < 0:
            raise InvalidInputError("daily_fail_n must be >= 0.", field="daily_fail_n")

        paper_mode = _ev(data.get("paper_mode") or defaults.paper_mode)
        if paper_mode not in PAPER_MODES:
            raise InvalidInputError(
                f"paper_mode must be one of {', '.join(PAPER_MODES)}.", field="paper_mode"
            )

        return cls(
            use_tpe_on=_to_bool(data.get("use_tpe_on"), defaults.use_tpe_on),
            use_internet=_to_bool(data.get("use_internet"), defaults.use_internet),
            use_geofence=_to_bool(data.get("use_geofence"), defaults.use_geofence),
            use_battery=_to_bool(data.get("use_battery"), defaults.use_battery),
            use_paper=_to_bool(data.get("use_paper"), defaults.use_paper),
            battery_min_pct=battery_min_pct,
            daily_fail_n=daily_fail_n,
            weekly_fail_days=_to_optional_threshold(
                data.get("weekly_fail_days", defaults.weekly_fail_days), "weekly_fail_days"
            ),
            weekly_fail_slots=_to_optional_threshold(
                data.get("weekly_fail_slots", defaults.weekly_fail_slots), "weekly_fail_slots"
            ),
            paper_mode=paper_mode,
            slot_hours=parse_slot_hours(data.get("slot_hours", defaults.slot_hours)),
        )

    @classmethod
    def from_row(cls, row: Any) -> "PolicyShape":
        """Read the shape columns shared by Policy and PolicyVersion rows."""
        return cls.normalize({f: getattr(row, f) for f in SHAPE_FIELDS})

    def to_columns(self) -> dict[str, Any]:
        """Column values for a Policy / PolicyVersion row (JSON-friendly)."""
        cols = asdict(self)
        cols["slot_hours"] = list(self.slot_hours)
        return cols

    def merge(self, patch: Mapping[str, Any]) -> "PolicyShape":
        """Return the shape that results from applying the shape keys of `patch`."""
        merged = self.to_columns()
        merged.update({
            k: v for k, v in patch.items()
            if k in SHAPE_FIELDS and (v is not None or k in NULLABLE_FIELDS)
        })
        return PolicyShape.normalize(merged)


def shape_changed(before: PolicyShape, after: PolicyShape) -> bool:
    """True when evaluation semantics differ, i.e. a new version is required."""
    return before != after
