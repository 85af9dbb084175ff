"""
Policy service: CRUD with shape versioning, plus week locks.

Versioning rule
---------------
A policy starts at version 1 with a snapshot of its shape. An update whose
merged shape differs from the stored one (shape_changed) writes the new
shape, increments current_version by exactly 1 and inserts exactly one
PolicyVersion snapshot. Updates that only touch display fields (name,
status, auto_failure_mode) leave the version and the snapshots alone.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

import structlog
from sqlalchemy.orm import Session

from tpe_availability.core.errors import (
    InvalidInputError,
    PolicyNotFoundError,
    WeekLockNotFoundError,
)
from tpe_availability.db.base import commit_or_raise
from tpe_availability.models.policy import AutoFailureMode, Policy, PolicyStatus
from tpe_availability.models.policy_version import PolicyVersion
from tpe_availability.models.week_lock import PolicyWeekLock
from tpe_availability.services.policy_shape import PolicyShape, shape_changed

logger = structlog.get_logger(__name__)


@dataclass
class UpdateResult:
    policy: Policy
    bumped_version: Optional[int]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _ev(v) -> str:
    return v.value if hasattr(v, "value") else str(v)


def _check_choice(value: Any, choices: type, field: str) -> str:
    text = _ev(value)
    allowed = [c.value for c in choices]
    if text not in allowed:
        raise InvalidInputError(f"{field} must be one of {', '.join(allowed)}.", field=field)
    return text


def _apply_display_fields(policy: Policy, data: Mapping[str, Any]) -> None:
    if data.get("name") is not None:
        policy.name = str(data["name"])
    if data.get("status") is not None:
        policy.status = _check_choice(data["status"], PolicyStatus, "status")
    if data.get("auto_failure_mode") is not None:
        policy.auto_failure_mode = _check_choice(
            data["auto_failure_mode"], AutoFailureMode, "auto_failure_mode"
        )


def _apply_shape(policy: Policy, shape: PolicyShape) -> None:
    for column, value in shape.to_columns().items():
        setattr(policy, column, value)


def _add_snapshot(db: Session, policy: Policy, shape: PolicyShape) -> PolicyVersion:
    snapshot = PolicyVersion(
        policy_id=policy.id,
        version=policy.current_version,
        name=policy.name,
        status=_ev(policy.status),
        **shape.to_columns(),
    )
    db.add(snapshot)
    return snapshot


# ---------------------------------------------------------------------------
# Policies
# ---------------------------------------------------------------------------

def list_policies(db: Session) -> list[Policy]:
    return db.query(Policy).order_by(Policy.id.desc()).all()


def get_policy(db: Session, policy_id: int) -> Policy:
    policy = db.get(Policy, policy_id)
    if policy is None:
        raise PolicyNotFoundError(policy_id)
    return policy


def list_versions(db: Session, policy_id: int) -> list[PolicyVersion]:
    return (
        db.query(PolicyVersion)
        .filter(PolicyVersion.policy_id == policy_id)
        .order_by(PolicyVersion.version.desc())
        .all()
    )


def create_policy(db: Session, data: Mapping[str, Any]) -> Policy:
    """Insert a policy at version 1 together with its first snapshot."""
    shape = PolicyShape.normalize(data)
    policy = Policy(
        name="",
        status=PolicyStatus.draft.value,
        auto_failure_mode=AutoFailureMode.skip.value,
        current_version=1,
    )
    _apply_display_fields(policy, data)
    _apply_shape(policy, shape)
    db.add(policy)
    db.flush()  # get policy.id for the snapshot

    _add_snapshot(db, policy, shape)
    commit_or_raise(db, operation="create_policy")
    db.refresh(policy)
    logger.info("policy_created", policy_id=policy.id, version=policy.current_version)
    return policy


def update_policy(db: Session, policy_id: int, patch: Mapping[str, Any]) -> UpdateResult:
    """Apply a partial update; bump the version only when the shape changes."""
    policy = get_policy(db, policy_id)
    before = PolicyShape.from_row(policy)
    after = before.merge(patch)

    _apply_display_fields(policy, patch)

    bumped: Optional[int] = None
    if shape_changed(before, after):
        _apply_shape(policy, after)
        policy.current_version = policy.current_version + 1
        _add_snapshot(db, policy, after)
        bumped = policy.current_version

    commit_or_raise(db, operation="update_policy")
    db.refresh(policy)
    if bumped is not None:
        logger.info("policy_version_bumped", policy_id=policy.id, version=bumped)
    return UpdateResult(policy=policy, bumped_version=bumped)


def delete_policy(db: Session, policy_id: int) -> None:
    """Delete a policy with its snapshots and week locks; computed results stay."""
    policy = get_policy(db, policy_id)
    db.query(PolicyVersion).filter(PolicyVersion.policy_id == policy_id).delete()
    db.query(PolicyWeekLock).filter(PolicyWeekLock.policy_id == policy_id).delete()
    db.delete(policy)
    commit_or_raise(db, operation="delete_policy")
    logger.info("policy_deleted", policy_id=policy_id)


# ---------------------------------------------------------------------------
# Week locks
# ---------------------------------------------------------------------------

def list_week_locks(db: Session) -> list[PolicyWeekLock]:
    return (
        db.query(PolicyWeekLock)
        .order_by(PolicyWeekLock.week_year.desc(), PolicyWeekLock.week_number.desc())
        .all()
    )


def set_week_lock(
    db: Session,
    week_year: int,
    week_number: int,
    policy_id: int,
    policy_version: Optional[int] = None,
) -> PolicyWeekLock:
    """
    Pin `policy_id` to an ISO week (upsert). The pinned version defaults to
    the policy's current version and must exist as a snapshot.
    """
    if not 1 <= week_number <= 53:
        raise InvalidInputError("week_number must be between 1 and 53.", field="week_number")
    policy = get_policy(db, policy_id)
    version = policy_version if policy_version is not None else policy.current_version

    snapshot_exists = (
        db.query(PolicyVersion.id)
        .filter(PolicyVersion.policy_id == policy_id, PolicyVersion.version == version)
        .first()
        is not None
    )
    if not snapshot_exists:
        raise PolicyNotFoundError(policy_id, version=version)

    lock = (
        db.query(PolicyWeekLock)
        .filter(PolicyWeekLock.week_year == week_year, PolicyWeekLock.week_number == week_number)
        .first()
    )
    if lock is None:
        lock = PolicyWeekLock(week_year=week_year, week_number=week_number)
        db.add(lock)
    lock.policy_id = policy_id
    lock.policy_version = version

    commit_or_raise(db, operation="set_week_lock")
    db.refresh(lock)
    logger.info(
        "week_lock_set",
        week_year=week_year,
        week_number=week_number,
        policy_id=policy_id,
        policy_version=version,
    )
    return lock


def delete_week_lock(db: Session, week_year: int, week_number: int) -> None:
    lock = (
        db.query(PolicyWeekLock)
        .filter(PolicyWeekLock.week_year == week_year, PolicyWeekLock.week_number == week_number)
        .first()
    )
    if lock is None:
        raise WeekLockNotFoundError(week_year, week_number)
    db.delete(lock)
    commit_or_raise(db, operation="delete_week_lock")
