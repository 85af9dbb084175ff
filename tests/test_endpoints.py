"""
Integration tests for API endpoints using a SQLite test DB.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

WEEK = date(2025, 3, 3)
DAY = date(2025, 3, 4)


def _at(day: date, hour: int) -> datetime:
    return datetime(day.year, day.month, day.day, hour, 20, tzinfo=timezone.utc)


def _create_policy(client, **fields) -> dict:
    body = {"name": "API policy", "status": "active", "slot_hours": [12, 13]}
    body.update(fields)
    r = client.post("/policies", json=body)
    assert r.status_code == 201, r.text
    return r.json()


class TestHealth:
    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"


class TestPolicies:
    def test_create_with_defaults(self, client):
        body = _create_policy(client)
        assert body["id"] > 0
        assert body["current_version"] == 1
        assert body["status"] == "active"
        assert body["battery_min_pct"] == 20
        assert body["weekly_fail_slots"] == 6
        assert body["slot_hours"] == [12, 13]
        assert body["auto_failure_mode"] == "skip"

    def test_hours_are_normalized(self, client):
        body = _create_policy(client, slot_hours=[19, 12, 12, 30])
        assert body["slot_hours"] == [12, 19]

    def test_list_newest_first(self, client):
        first = _create_policy(client, name="first")
        second = _create_policy(client, name="second")
        r = client.get("/policies")
        assert r.status_code == 200
        ids = [p["id"] for p in r.json()["data"]]
        assert ids == [second["id"], first["id"]]

    def test_detail_has_versions(self, client):
        policy = _create_policy(client)
        client.put(f"/policies/{policy['id']}", json={"battery_min_pct": 40})
        r = client.get(f"/policies/{policy['id']}")
        assert r.status_code == 200
        body = r.json()
        assert body["data"]["current_version"] == 2
        assert [v["version"] for v in body["versions"]] == [2, 1]

    def test_update_bumps_only_on_shape_change(self, client):
        policy = _create_policy(client)
        r = client.put(f"/policies/{policy['id']}", json={"name": "Renamed"})
        assert r.status_code == 200
        assert r.json()["bumped_version"] is None
        assert r.json()["data"]["current_version"] == 1

        r = client.put(f"/policies/{policy['id']}", json={"use_geofence": False})
        assert r.json()["bumped_version"] == 2
        assert r.json()["data"]["use_geofence"] is False

    def test_update_null_disables_weekly_threshold(self, client):
        policy = _create_policy(client)
        r = client.put(f"/policies/{policy['id']}", json={"weekly_fail_slots": None})
        assert r.status_code == 200
        assert r.json()["data"]["weekly_fail_slots"] is None
        assert r.json()["bumped_version"] == 2

    def test_delete(self, client):
        policy = _create_policy(client)
        r = client.delete(f"/policies/{policy['id']}")
        assert r.status_code == 200
        assert r.json() == {"ok": True}
        assert client.get(f"/policies/{policy['id']}").status_code == 404


class TestWeekLocks:
    def test_put_list_delete(self, client):
        policy = _create_policy(client)
        r = client.put("/week-locks", json={
            "week_year": 2025, "week_number": 10, "policy_id": policy["id"],
        })
        assert r.status_code == 200
        assert r.json()["policy_version"] == 1

        r = client.get("/week-locks")
        assert [(lk["week_year"], lk["week_number"]) for lk in r.json()["data"]] == [(2025, 10)]

        r = client.delete("/week-locks/2025/10")
        assert r.status_code == 200
        assert client.get("/week-locks").json()["data"] == []

    def test_locked_policy_used_for_compute(self, client, add_reading):
        locked = _create_policy(client, name="locked", status="draft")
        _create_policy(client, name="active")
        client.put("/week-locks", json={
            "week_year": 2025, "week_number": 10, "policy_id": locked["id"],
        })
        add_reading("T1", _at(DAY, 12))
        r = client.post("/availability/daily/compute", json={"date": str(DAY)})
        assert r.json()["policy_id"] == locked["id"]
        assert r.json()["policy_source"] == "week_lock"


class TestDailyAvailability:
    def test_compute_then_list(self, client, add_reading):
        policy = _create_policy(client)
        add_reading("T1", _at(DAY, 12))
        add_reading("T1", _at(DAY, 13))
        add_reading("T2", _at(DAY, 12), geofence="Out of geofence")

        r = client.post("/availability/daily/compute", json={"date": str(DAY)})
        assert r.status_code == 200
        body = r.json()
        assert body["ok"] is True
        assert body["count"] == 2
        assert body["policy_id"] == policy["id"]
        assert body["policy_source"] == "active"

        r = client.get("/availability/daily", params={"date": str(DAY), "policy_id": policy["id"]})
        assert r.status_code == 200
        body = r.json()
        assert body["meta"]["total"] == 2
        assert body["meta"]["available_pct"] == 50.0
        t2 = body["data"][1]
        assert t2["terminal_sn"] == "T2"
        assert t2["date"] == "2025-03-04"
        assert t2["day_ok"] is False
        assert t2["failed_reasons"] == ["GEOFENCE_OUT", "NO_DATA"]
        assert t2["failed_slots"] == ["2025-03-04T12:00:00.000Z", "2025-03-04T13:00:00.000Z"]

    def test_no_telemetry_message(self, client):
        _create_policy(client)
        r = client.post("/availability/daily/compute", json={"date": str(DAY)})
        assert r.status_code == 200
        assert r.json()["count"] == 0
        assert r.json()["message"]

    def test_list_filters(self, client, add_reading):
        policy = _create_policy(client, slot_hours=[12])
        add_reading("AA-1", _at(DAY, 12))
        add_reading("BB-1", _at(DAY, 12), printer="Out of paper")
        client.post("/availability/daily/compute", json={"date": str(DAY)})

        params = {"date": str(DAY), "policy_id": policy["id"], "status": "unavailable"}
        r = client.get("/availability/daily", params=params)
        assert [d["terminal_sn"] for d in r.json()["data"]] == ["BB-1"]

        params = {"date": str(DAY), "policy_id": policy["id"], "search": "AA"}
        r = client.get("/availability/daily", params=params)
        assert [d["terminal_sn"] for d in r.json()["data"]] == ["AA-1"]


class TestWeeklyAvailability:
    def _seed(self, add_reading):
        for offset in range(7):
            day = WEEK + timedelta(days=offset)
            add_reading("T1", _at(day, 12))
            add_reading("T2", _at(day, 12), signal="0" if offset < 2 else "4")

    def test_auto_compute_then_list(self, client, add_reading):
        policy = _create_policy(client, slot_hours=[12], weekly_fail_days=2, weekly_fail_slots=0)
        self._seed(add_reading)

        r = client.post("/availability/weekly/compute", json={"week_start": str(WEEK), "auto": True})
        assert r.status_code == 200
        assert r.json()["count"] == 2
        assert r.json()["skipped_days"] == []

        r = client.get("/availability/weekly", params={
            "week_start": str(WEEK), "policy_id": policy["id"],
            "sort_by": "days_fail", "order": "desc",
        })
        assert r.status_code == 200
        body = r.json()
        assert body["meta"]["unavailable_count"] == 1
        first = body["data"][0]
        assert first["terminal_sn"] == "T2"
        assert first["decision"] == "unavailable"
        assert first["days_fail"] == 2
        assert first["fail_dates"] == ["2025-03-03", "2025-03-04"]
        assert first["week_reasons"] == {"SIGNAL_LOW": 2}
        assert body["data"][1]["decision"] == "available"

    def test_invalid_sort_by_rejected(self, client):
        r = client.get("/availability/weekly", params={
            "week_start": str(WEEK), "policy_id": 1, "sort_by": "terminal_sn",
        })
        assert r.status_code == 422


class TestMetricsAndBI:
    def _seed(self, client, add_reading):
        policy = _create_policy(client, slot_hours=[12], weekly_fail_days=1, weekly_fail_slots=0)
        add_reading("T1", _at(DAY, 12))
        add_reading("T2", _at(DAY, 12), battery_rate_avg=0.1)
        client.post("/availability/weekly/compute", json={"week_start": str(WEEK), "auto": True})
        return policy

    def test_summary(self, client, add_reading):
        policy = self._seed(client, add_reading)
        r = client.get("/metrics/summary", params={
            "date": str(DAY), "week_start": str(WEEK), "policy_id": policy["id"],
        })
        assert r.status_code == 200
        body = r.json()
        assert body["tpe_day_total"] == 2
        assert body["tpe_day_ok"] == 1
        assert body["tpe_day_fail"] == 1
        assert body["daily_available_pct"] == 50.0
        assert body["slots_ok_day"] == 1
        assert body["slots_fail_day"] == 1
        assert body["last_daily_computed_at"] is not None
        assert body["tpe_week_total"] == 2
        assert body["tpe_week_fail"] == 1

    def test_summary_empty(self, client):
        policy = _create_policy(client)
        r = client.get("/metrics/summary", params={
            "date": str(DAY), "week_start": str(WEEK), "policy_id": policy["id"],
        })
        body = r.json()
        assert body["tpe_day_total"] == 0
        assert body["daily_available_pct"] == 0.0
        assert body["last_weekly_computed_at"] is None

    def test_bi_lists(self, client, add_reading):
        policy = self._seed(client, add_reading)
        r = client.get("/bi/daily/unavailable", params={"date": str(DAY), "policy_id": policy["id"]})
        assert r.status_code == 200
        [item] = r.json()["data"]
        assert item["terminal_sn"] == "T2"
        assert item["reasons"] == ["BATTERY_LOW"]

        r = client.get("/bi/weekly/unavailable", params={"week_start": str(WEEK), "policy_id": policy["id"]})
        [item] = r.json()["data"]
        assert item["terminal_sn"] == "T2"
        assert item["reasons"] == {"BATTERY_LOW": 1}

    def test_bi_hides_superseded_versions(self, client, add_reading):
        policy = self._seed(client, add_reading)
        client.put(f"/policies/{policy['id']}", json={"battery_min_pct": 5})
        r = client.get("/bi/daily/unavailable", params={"date": str(DAY), "policy_id": policy["id"]})
        assert r.json()["data"] == []
