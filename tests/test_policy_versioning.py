"""
Tests for policy CRUD and shape versioning.

Rule under test: a shape change bumps current_version by exactly one and
writes exactly one snapshot; display-only changes never do.
"""
from __future__ import annotations

from datetime import date

import pytest

from tpe_availability.core.errors import (
    InvalidInputError,
    PolicyNotFoundError,
    WeekLockNotFoundError,
)
from tpe_availability.models.daily_result import DailyResult
from tpe_availability.models.policy_version import PolicyVersion
from tpe_availability.models.week_lock import PolicyWeekLock
from tpe_availability.services.policy_service import (
    create_policy,
    delete_policy,
    delete_week_lock,
    list_policies,
    list_versions,
    set_week_lock,
    update_policy,
)


def _snapshot_count(db, policy_id):
    return db.query(PolicyVersion).filter(PolicyVersion.policy_id == policy_id).count()


class TestCreate:
    def test_defaults_and_first_snapshot(self, db):
        policy = create_policy(db, {"name": "Retail"})
        assert policy.current_version == 1
        assert policy.battery_min_pct == 20
        assert policy.daily_fail_n == 1
        assert policy.weekly_fail_days == 1
        assert policy.weekly_fail_slots == 6
        assert policy.slot_hours == [12, 13, 14, 15, 17, 18, 19]
        assert policy.status.value == "draft"
        assert policy.paper_mode.value == "strict"

        [snapshot] = list_versions(db, policy.id)
        assert snapshot.version == 1
        assert snapshot.slot_hours == policy.slot_hours

    def test_invalid_shape_rejected(self, db):
        with pytest.raises(InvalidInputError):
            create_policy(db, {"name": "bad", "slot_hours": [25, 30]})
        assert list_policies(db) == []

    def test_invalid_status_rejected(self, db):
        with pytest.raises(InvalidInputError):
            create_policy(db, {"name": "bad", "status": "enabled"})


class TestUpdate:
    def test_name_change_does_not_bump(self, db, make_policy):
        policy = make_policy()
        result = update_policy(db, policy.id, {"name": "Renamed", "status": "archived"})
        assert result.bumped_version is None
        assert result.policy.current_version == 1
        assert result.policy.name == "Renamed"
        assert _snapshot_count(db, policy.id) == 1

    def test_auto_failure_mode_does_not_bump(self, db, make_policy):
        policy = make_policy()
        result = update_policy(db, policy.id, {"auto_failure_mode": "abort"})
        assert result.bumped_version is None
        assert result.policy.auto_failure_mode.value == "abort"

    def test_shape_change_bumps_once(self, db, make_policy):
        policy = make_policy()
        result = update_policy(db, policy.id, {"battery_min_pct": 35})
        assert result.bumped_version == 2
        assert result.policy.current_version == 2
        assert result.policy.battery_min_pct == 35
        assert _snapshot_count(db, policy.id) == 2

        versions = list_versions(db, policy.id)
        assert [v.version for v in versions] == [2, 1]
        assert versions[0].battery_min_pct == 35
        assert versions[1].battery_min_pct == 20

    def test_several_shape_fields_still_one_bump(self, db, make_policy):
        policy = make_policy()
        result = update_policy(db, policy.id, {
            "use_paper": False, "paper_mode": "lenient", "slot_hours": [9, 10],
        })
        assert result.bumped_version == 2
        assert _snapshot_count(db, policy.id) == 2

    def test_same_values_do_not_bump(self, db, make_policy):
        policy = make_policy()
        result = update_policy(db, policy.id, {"battery_min_pct": 20, "slot_hours": [19, 12, 13, 14, 15, 17, 18]})
        assert result.bumped_version is None
        assert _snapshot_count(db, policy.id) == 1

    def test_disable_weekly_threshold(self, db, make_policy):
        policy = make_policy()
        result = update_policy(db, policy.id, {"weekly_fail_days": None})
        assert result.bumped_version == 2
        assert result.policy.weekly_fail_days is None

    def test_invalid_update_leaves_policy_untouched(self, db, make_policy):
        policy = make_policy()
        with pytest.raises(InvalidInputError):
            update_policy(db, policy.id, {"battery_min_pct": 150})
        db.expire_all()
        assert list_policies(db)[0].current_version == 1
        assert _snapshot_count(db, policy.id) == 1

    def test_unknown_policy(self, db):
        with pytest.raises(PolicyNotFoundError):
            update_policy(db, 404, {"name": "x"})


class TestDelete:
    def test_removes_snapshots_and_locks_keeps_results(self, db, make_policy):
        policy = make_policy()
        set_week_lock(db, 2025, 10, policy.id)
        db.add(DailyResult(
            day=date(2025, 3, 4), terminal_sn="T1", policy_id=policy.id, policy_version=1,
            day_ok=True, slot_ok_count=7, slot_fail_count=0, failed_slots=[], failed_reasons=[],
        ))
        db.commit()

        delete_policy(db, policy.id)
        assert list_policies(db) == []
        assert _snapshot_count(db, policy.id) == 0
        assert db.query(PolicyWeekLock).count() == 0
        assert db.query(DailyResult).count() == 1


class TestWeekLocks:
    def test_lock_defaults_to_current_version(self, db, make_policy):
        policy = make_policy()
        update_policy(db, policy.id, {"daily_fail_n": 2})
        lock = set_week_lock(db, 2025, 10, policy.id)
        assert lock.policy_version == 2

    def test_relock_replaces(self, db, make_policy):
        first = make_policy(name="first")
        second = make_policy(name="second")
        set_week_lock(db, 2025, 10, first.id)
        lock = set_week_lock(db, 2025, 10, second.id)
        assert lock.policy_id == second.id
        assert db.query(PolicyWeekLock).count() == 1

    def test_unknown_version_rejected(self, db, make_policy):
        policy = make_policy()
        with pytest.raises(PolicyNotFoundError):
            set_week_lock(db, 2025, 10, policy.id, policy_version=7)

    def test_invalid_week_number(self, db, make_policy):
        policy = make_policy()
        with pytest.raises(InvalidInputError):
            set_week_lock(db, 2025, 54, policy.id)

    def test_delete_missing_lock(self, db):
        with pytest.raises(WeekLockNotFoundError):
            delete_week_lock(db, 2025, 10)
