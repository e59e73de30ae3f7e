"""
End-to-end checks of the check-in routes through FastAPI's TestClient.
"""

import pytest

from conftest import METER_LAT

YARD_LAT, YARD_LNG = 40.7128, -74.0060


def _body(lat=YARD_LAT, lng=YARD_LNG, accuracy=8.0, timestamp="2025-06-02T08:00:00Z", **extra):
    body = {
        "site_id": extra.pop("site_id", "YARD"),
        "reading": {"latitude": lat, "longitude": lng, "accuracy": accuracy, "timestamp": timestamp},
    }
    body.update(extra)
    return body


@pytest.fixture
def shift_id(shift):
    return shift.id


def test_check_in_and_out(client, sites, shift_id):
    response = client.post(f"/shifts/{shift_id}/check-in", json=_body(device_id="tablet-3"))
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "success"
    record = payload["data"]
    assert record["subject_id"] == "emp-1"
    assert record["check_in_type"] == "check_in"
    assert record["device_id"] == "tablet-3"
    assert record["verdict"]["within_geofence"] is True
    assert record["verdict"]["accuracy_class"] == "precise"
    assert record["reading"]["captured_at"] == "2025-06-02T08:00:00Z"
    assert record["created_at"].endswith("Z")
    assert "warning" not in payload
    assert "violation_id" not in payload

    response = client.post(
        f"/shifts/{shift_id}/check-out", json=_body(timestamp="2025-06-02T16:00:00Z")
    )
    assert response.status_code == 200
    assert response.json()["data"]["check_in_type"] == "check_out"


def test_duplicate_check_in_is_a_conflict(client, sites, shift_id):
    first = client.post(f"/shifts/{shift_id}/check-in", json=_body()).json()["data"]

    response = client.post(f"/shifts/{shift_id}/check-in", json=_body())

    assert response.status_code == 409
    assert response.json()["error"] == "duplicate_check_in"
    assert response.json()["existing_record_id"] == first["id"]


def test_orphan_check_out_is_a_conflict(client, sites, shift_id):
    response = client.post(f"/shifts/{shift_id}/check-out", json=_body())

    assert response.status_code == 409
    assert response.json()["error"] == "orphan_check_out"


def test_outside_geofence_still_records_with_warning(client, sites, shift_id):
    response = client.post(
        f"/shifts/{shift_id}/check-in", json=_body(lat=YARD_LAT + 300 * METER_LAT, accuracy=80)
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["data"]["verdict"]["within_geofence"] is False
    assert payload["data"]["verdict"]["accuracy_class"] == "unreliable"
    assert "outside the geofence" in payload["warning"]

    violations = client.get("/admin/violations", params={"subject_id": "emp-1"}).json()
    assert len(violations) == 1
    assert violations[0]["check_in_record_id"] == payload["data"]["id"]
    assert payload["violation_id"] == violations[0]["id"]
    assert violations[0]["severity"] == "warning"


@pytest.mark.parametrize(
    "body, error",
    [
        ({"site_id": "YARD", "reading_error": "permission_denied"}, "reading_unavailable"),
        ({"site_id": "YARD", "reading": None}, "reading_unavailable"),
        (_body(lat=100.0), "invalid_coordinate"),
        (_body(accuracy=-1), "invalid_reading"),
    ],
)
def test_bad_or_missing_readings(client, sites, shift_id, body, error):
    response = client.post(f"/shifts/{shift_id}/check-in", json=body)

    assert response.status_code == 400
    assert response.json()["error"] == error


def test_site_errors(client, sites, shift_id):
    missing = client.post(f"/shifts/{shift_id}/check-in", json=_body(site_id="NOPE"))
    inactive = client.post(f"/shifts/{shift_id}/check-in", json=_body(site_id="CLOSED"))

    assert missing.status_code == 404
    assert missing.json()["error"] == "site_not_found"
    assert inactive.status_code == 409
    assert inactive.json()["error"] == "site_inactive"


def test_unknown_shift(client, sites):
    response = client.post("/shifts/4242/check-in", json=_body())
    assert response.status_code == 404
    assert response.json()["error"] == "shift_not_found"

    response = client.get("/shifts/4242/session")
    assert response.status_code == 404


def test_session_and_records(client, sites, shift_id):
    client.post(f"/shifts/{shift_id}/check-in", json=_body(site_id="NORTH", lat=40.0, lng=-74.0))
    client.post(
        f"/shifts/{shift_id}/check-out",
        json=_body(site_id="NORTH", lat=41.0, lng=-74.0, timestamp="2025-06-02T08:01:00Z"),
    )

    response = client.get(f"/shifts/{shift_id}/session")
    assert response.status_code == 200
    work_session = response.json()
    assert work_session["subject_id"] == "emp-1"
    assert work_session["is_open"] is False
    assert work_session["anomalies"] == ["ImpossibleTravel"]
    assert len(work_session["segments"]) == 1

    records = client.get(f"/shifts/{shift_id}/records").json()
    assert [r["check_in_type"] for r in records] == ["check_in", "check_out"]

    history = client.get("/check-ins/history", params={"subject_id": "emp-1"}).json()
    assert [r["check_in_type"] for r in history] == ["check_out", "check_in"]


def test_empty_session_for_known_shift(client, sites, shift_id):
    response = client.get(f"/shifts/{shift_id}/session")

    assert response.status_code == 200
    assert response.json()["check_in"] is None
    assert response.json()["segments"] == []


def test_site_lookup(client, sites):
    geofence = client.get("/sites/YARD/geofence").json()
    assert geofence["radius_meters"] == 100.0

    # Unset radius reports the default
    assert client.get("/sites/NORADIUS/geofence").json()["radius_meters"] == 50.0
    assert client.get("/sites/CLOSED/geofence").status_code == 409

    active = [site["site_id"] for site in client.get("/sites").json()]
    assert active == ["NORADIUS", "NORTH", "YARD"]


def test_resolve_violation(client, sites, shift_id):
    client.post(f"/shifts/{shift_id}/check-in", json=_body(lat=YARD_LAT + 2000 * METER_LAT))
    violation = client.get("/admin/violations").json()[0]
    assert violation["severity"] == "violation"

    response = client.post(
        f"/admin/violations/{violation['id']}/resolve",
        json={"resolved_by": "manager-9", "notes": "Parked at the overflow lot"},
    )
    assert response.status_code == 200
    assert response.json()["is_resolved"] is True
    assert response.json()["resolved_by"] == "manager-9"

    assert client.get("/admin/violations", params={"resolved": False}).json() == []
    assert client.post("/admin/violations/999/resolve", json={"resolved_by": "x"}).status_code == 404


def test_missed_checkouts(client, sites, shift_id):
    # The fixture shift ended in the past, so an open check-in is overdue
    client.post(f"/shifts/{shift_id}/check-in", json=_body())

    missed = client.get("/admin/missed-checkouts").json()

    assert [s["shift_id"] for s in missed] == [shift_id]
    assert "MissingCheckout" in missed[0]["anomalies"]
