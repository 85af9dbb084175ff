"""
Tests for policy resolution: explicit id > week lock > active policy.
"""
from __future__ import annotations

from datetime import date

import pytest

from tpe_availability.core.errors import NoActivePolicyError, PolicyNotFoundError
from tpe_availability.services.policy_resolver import iso_week, monday_of, resolve_policy
from tpe_availability.services.policy_service import set_week_lock, update_policy

WEEK = date(2025, 3, 3)   # ISO 2025-W10


class TestCalendarHelpers:
    def test_iso_week(self):
        assert iso_week(WEEK) == (2025, 10)

    def test_iso_week_year_boundary(self):
        # Monday 2024-12-30 belongs to 2025-W01
        assert iso_week(date(2024, 12, 30)) == (2025, 1)

    def test_monday_of(self):
        assert monday_of(date(2025, 3, 9)) == WEEK
        assert monday_of(WEEK) == WEEK


class TestResolvePolicy:
    def test_explicit_wins(self, db, make_policy):
        make_policy(name="active")
        other = make_policy(name="explicit", status="draft")
        resolved = resolve_policy(db, WEEK, policy_id=other.id)
        assert resolved.policy_id == other.id
        assert resolved.source == "explicit"

    def test_explicit_unknown_raises(self, db, make_policy):
        make_policy()
        with pytest.raises(PolicyNotFoundError):
            resolve_policy(db, WEEK, policy_id=12345)

    def test_week_lock_beats_active(self, db, make_policy):
        locked = make_policy(name="locked", status="archived")
        make_policy(name="newer active")
        set_week_lock(db, 2025, 10, locked.id)

        resolved = resolve_policy(db, WEEK)
        assert resolved.policy_id == locked.id
        assert resolved.source == "week_lock"

    def test_lock_only_applies_to_its_week(self, db, make_policy):
        locked = make_policy(name="locked")
        active = make_policy(name="active")
        set_week_lock(db, 2025, 11, locked.id)
        assert resolve_policy(db, WEEK).policy_id == active.id

    def test_pinned_version_uses_snapshot_shape(self, db, make_policy):
        policy = make_policy(battery_min_pct=20)
        set_week_lock(db, 2025, 10, policy.id, policy_version=1)
        update_policy(db, policy.id, {"battery_min_pct": 50})

        resolved = resolve_policy(db, WEEK)
        assert resolved.version == 1
        assert resolved.shape.battery_min_pct == 20

        # the active fallback would have used the current shape
        assert resolve_policy(db, date(2025, 3, 10)).shape.battery_min_pct == 50

    def test_unpinned_lock_follows_current_version(self, db, make_policy):
        policy = make_policy()
        lock = set_week_lock(db, 2025, 10, policy.id)
        lock.policy_version = None
        db.commit()
        update_policy(db, policy.id, {"daily_fail_n": 3})

        resolved = resolve_policy(db, WEEK)
        assert resolved.version == 2
        assert resolved.shape.daily_fail_n == 3

    def test_active_fallback_picks_highest_id(self, db, make_policy):
        make_policy(name="first")
        second = make_policy(name="second")
        make_policy(name="draft", status="draft")
        resolved = resolve_policy(db, WEEK)
        assert resolved.policy_id == second.id
        assert resolved.source == "active"

    def test_no_active_policy(self, db, make_policy):
        make_policy(status="draft")
        make_policy(status="archived")
        with pytest.raises(NoActivePolicyError):
            resolve_policy(db, WEEK)

    def test_carries_auto_failure_mode(self, db, make_policy):
        make_policy(auto_failure_mode="abort")
        assert resolve_policy(db, WEEK).auto_failure_mode == "abort"
