"""
Tests for the error envelope: every 4xx/5xx body is {code, message, details?}.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from tpe_availability.core.errors import PersistenceError
from tpe_availability.db.base import commit_or_raise, commit_upsert
from tpe_availability.main import app
from tpe_availability.services import weekly as weekly_module
from tpe_availability.services.daily import compute_daily_for_policy

WEEK = date(2025, 3, 3)
DAY = date(2025, 3, 4)


def _at(day: date, hour: int) -> datetime:
    return datetime(day.year, day.month, day.day, hour, 0, tzinfo=timezone.utc)


class TestNotFound:
    def test_unknown_policy(self, client):
        r = client.get("/policies/9999")
        assert r.status_code == 404
        body = r.json()
        assert body["code"] == "POLICY_NOT_FOUND"
        assert body["details"] == {"policy_id": 9999}

    def test_compute_with_unknown_policy(self, client):
        r = client.post("/availability/daily/compute", json={"date": str(DAY), "policy_id": 77})
        assert r.status_code == 404
        assert r.json()["code"] == "POLICY_NOT_FOUND"

    def test_no_active_policy(self, client):
        r = client.post("/availability/daily/compute", json={"date": str(DAY)})
        assert r.status_code == 404
        assert r.json()["code"] == "NO_ACTIVE_POLICY"

    def test_unknown_week_lock(self, client):
        r = client.delete("/week-locks/2025/10")
        assert r.status_code == 404
        assert r.json()["code"] == "WEEK_LOCK_NOT_FOUND"

    def test_lock_on_missing_version(self, client, make_policy):
        policy = make_policy()
        r = client.put("/week-locks", json={
            "week_year": 2025, "week_number": 10, "policy_id": policy.id, "policy_version": 3,
        })
        assert r.status_code == 404
        assert r.json()["details"] == {"policy_id": policy.id, "version": 3}


class TestValidation:
    def test_missing_date(self, client):
        r = client.post("/availability/daily/compute", json={})
        assert r.status_code == 422
        body = r.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert any(e["field"] == "date" for e in body["details"]["errors"])

    def test_bad_query_param(self, client):
        r = client.get("/availability/daily", params={"date": "not-a-date", "policy_id": 1})
        assert r.status_code == 422
        assert r.json()["code"] == "VALIDATION_ERROR"

    def test_out_of_range_battery(self, client):
        r = client.post("/policies", json={"name": "x", "battery_min_pct": 120})
        assert r.status_code == 422

    def test_no_valid_slot_hour(self, client):
        r = client.post("/policies", json={"name": "x", "slot_hours": [24, 25]})
        assert r.status_code == 422
        body = r.json()
        assert body["code"] == "INVALID_INPUT"
        assert body["details"] == {"field": "slot_hours"}


class TestPartialComputation:
    def test_abort_returns_409(self, client, make_policy, add_reading, monkeypatch):
        make_policy(slot_hours=[12], auto_failure_mode="abort")
        add_reading("T1", _at(DAY, 12))
        broken_day = WEEK + timedelta(days=6)

        def flaky(db_, day, resolved):
            if day == broken_day:
                raise RuntimeError("boom")
            return compute_daily_for_policy(db_, day, resolved)

        monkeypatch.setattr(weekly_module, "compute_daily_for_policy", flaky)
        r = client.post("/availability/weekly/compute", json={"week_start": str(WEEK), "auto": True})
        assert r.status_code == 409
        body = r.json()
        assert body["code"] == "PARTIAL_COMPUTATION_FAILURE"
        assert body["details"]["failed_days"] == ["2025-03-09"]


class TestPersistence:
    def test_commit_or_raise_rolls_back(self):
        calls = []

        class FailingSession:
            def commit(self):
                raise OperationalError("COMMIT", {}, Exception("disk full"))

            def rollback(self):
                calls.append("rollback")

        with pytest.raises(PersistenceError) as exc_info:
            commit_or_raise(FailingSession(), operation="compute_daily")
        assert calls == ["rollback"]
        assert exc_info.value.details == {"operation": "compute_daily", "reason": "OperationalError"}

    def test_commit_upsert_replays_once_then_gives_up(self):
        calls = []

        class ConflictingSession:
            def commit(self):
                calls.append("commit")
                raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

            def rollback(self):
                calls.append("rollback")

        def write():
            calls.append("write")

        with pytest.raises(PersistenceError) as exc_info:
            commit_upsert(ConflictingSession(), write, operation="compute_weekly")
        assert calls == ["write", "commit", "rollback", "write", "commit", "rollback"]
        assert exc_info.value.details == {"operation": "compute_weekly", "reason": "IntegrityError"}

    def test_store_failure_returns_503(self, client, make_policy, add_reading, monkeypatch):
        make_policy(slot_hours=[12])
        add_reading("T1", _at(DAY, 12))

        def broken_commit(self):
            raise SQLAlchemyError("store unavailable")

        monkeypatch.setattr(Session, "commit", broken_commit)
        r = client.post("/availability/daily/compute", json={"date": str(DAY)})
        assert r.status_code == 503
        assert r.json()["code"] == "PERSISTENCE_FAILURE"


def test_unhandled_error_envelope(client, monkeypatch):
    def explode(*args, **kwargs):
        raise RuntimeError("unexpected")

    monkeypatch.setattr("tpe_availability.routers.policies.list_policies", explode)
    # the client fixture already installed the test DB override on `app`
    with TestClient(app, raise_server_exceptions=False) as c:
        r = c.get("/policies")
    assert r.status_code == 500
    assert r.json() == {"code": "INTERNAL_ERROR", "message": "An unexpected error occurred."}
