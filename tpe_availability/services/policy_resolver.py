"""
Policy resolver: which policy (and which version of its shape) applies to a week.

Order of precedence
-------------------
  1. explicit policy id          -> that policy's current shape
  2. week lock for the ISO week  -> the locked policy; pinned version if any
  3. active policy, highest id   -> its current shape

Deterministic for the same inputs and the same stored locks/policies.
Long-term reproducibility of a week is only guaranteed through week locks.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from tpe_availability.core.errors import NoActivePolicyError, PolicyNotFoundError
from tpe_availability.models.policy import Policy, PolicyStatus
from tpe_availability.models.policy_version import PolicyVersion
from tpe_availability.models.week_lock import PolicyWeekLock
from tpe_availability.services.policy_shape import PolicyShape


class ResolutionSource:
    EXPLICIT = "explicit"
    WEEK_LOCK = "week_lock"
    ACTIVE = "active"


@dataclass(frozen=True)
class ResolvedPolicy:
    policy_id: int
    version: int
    name: str
    shape: PolicyShape
    source: str
    auto_failure_mode: str = "skip"


def _ev(v) -> str:
    return v.value if hasattr(v, "value") else str(v)


def iso_week(day: date) -> tuple[int, int]:
    """(ISO week-year, ISO week number) of `day`."""
    year, week, _ = day.isocalendar()
    return year, week


def monday_of(day: date) -> date:
    return day - timedelta(days=day.weekday())


def _from_current(policy: Policy, source: str) -> ResolvedPolicy:
    return ResolvedPolicy(
        policy_id=policy.id,
        version=policy.current_version,
        name=policy.name,
        shape=PolicyShape.from_row(policy),
        source=source,
        auto_failure_mode=_ev(policy.auto_failure_mode),
    )


def _from_lock(db: Session, lock: PolicyWeekLock) -> ResolvedPolicy:
    policy = db.get(Policy, lock.policy_id)
    if policy is None:
        raise PolicyNotFoundError(lock.policy_id)
    if lock.policy_version is None or lock.policy_version == policy.current_version:
        return _from_current(policy, ResolutionSource.WEEK_LOCK)

    snapshot: Optional[PolicyVersion] = (
        db.query(PolicyVersion)
        .filter(
            PolicyVersion.policy_id == lock.policy_id,
            PolicyVersion.version == lock.policy_version,
        )
        .first()
    )
    if snapshot is None:
        raise PolicyNotFoundError(lock.policy_id, version=lock.policy_version)
    return ResolvedPolicy(
        policy_id=policy.id,
        version=snapshot.version,
        name=policy.name,
        shape=PolicyShape.from_row(snapshot),
        source=ResolutionSource.WEEK_LOCK,
        auto_failure_mode=_ev(policy.auto_failure_mode),
    )


def resolve_policy(
    db: Session,
    week_start: date,
    policy_id: Optional[int] = None,
) -> ResolvedPolicy:
    """Return the policy that governs the week starting `week_start`."""
    if policy_id is not None:
        policy = db.get(Policy, policy_id)
        if policy is None:
            raise PolicyNotFoundError(policy_id)
        return _from_current(policy, ResolutionSource.EXPLICIT)

    week_year, week_number = iso_week(week_start)
    lock = (
        db.query(PolicyWeekLock)
        .filter(
            PolicyWeekLock.week_year == week_year,
            PolicyWeekLock.week_number == week_number,
        )
        .first()
    )
    if lock is not None:
        return _from_lock(db, lock)

    # Highest id == most recently created
    active = (
        db.query(Policy)
        .filter(Policy.status == PolicyStatus.active)
        .order_by(Policy.id.desc())
        .first()
    )
    if active is None:
        raise NoActivePolicyError()
    return _from_current(active, ResolutionSource.ACTIVE)
