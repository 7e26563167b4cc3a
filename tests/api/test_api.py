from __future__ import annotations

from datetime import date, timedelta

import pytest

from worktime.main import create_app


@pytest.fixture
def app():
    app = create_app(
        SECRET_KEY="test-secret",
        TESTING=True,
        STORAGE_BACKEND="memory",
        AUTO_INIT_DB=False,
        AUTO_CHECKOUT_SCHEDULER=False,
        NOTIFICATION_WORKERS=0,
        WORK_HOUR_DEFAULTS={},
        REGULARIZATION_LEVELS=None,
        REGULARIZATION_APPROVALS_REQUIRED=1,
    )
    return app


def client_as(app, user_id, role):
    client = app.test_client()
    with client.session_transaction() as sess:
        sess["user_id"] = user_id
        sess["role"] = role
    return client


def test_login_required(app):
    resp = app.test_client().get("/api/attendance/today")

    assert resp.status_code == 401
    assert resp.get_json()["success"] is False


def test_unknown_role_is_forbidden(app):
    resp = client_as(app, 1, "Janitor").get("/api/attendance/today")

    assert resp.status_code == 403


def test_check_in_and_out(app):
    client = client_as(app, 1, "Employee")

    resp = client.post("/api/attendance/checkin", json={"location": "Remote"})
    assert resp.status_code == 201
    assert resp.get_json()["attendance"]["location"] == "Remote"

    assert client.post("/api/attendance/checkin", json={}).status_code == 409
    assert client.post("/api/attendance/activity").status_code == 200

    resp = client.post("/api/attendance/checkout", json={"notes": "xong"})
    assert resp.status_code == 200
    assert resp.get_json()["attendance"]["check_out"] is not None

    today = client.get("/api/attendance/today").get_json()["attendance"]
    assert today["notes"] == "xong"
    assert len(client.get("/api/attendance/my").get_json()["attendance"]) == 1
    assert client.get("/api/attendance/summary").get_json()["summary"]["total_days"] == 1


def test_bad_location_and_bad_dates(app):
    client = client_as(app, 1, "Employee")

    assert client.post("/api/attendance/checkin", json={"location": "Moon"}).status_code == 400
    assert client.get("/api/attendance/my?start=2025-13-01&end=2025-12-31").status_code == 400
    assert client.get("/api/attendance/summary?month=abc").status_code == 400


def test_regularization_flow(app):
    yesterday = (date.today() - timedelta(days=1)).isoformat()
    employee = client_as(app, 1, "Employee")
    manager = client_as(app, 10, "Manager")
    colleague = client_as(app, 2, "Employee")

    resp = employee.post(
        "/api/regularizations",
        json={"attendance_date": yesterday, "request_type": "Missed Both", "reason": "Máy chấm công hỏng"},
    )
    assert resp.status_code == 201
    reg = resp.get_json()["regularization"]
    assert reg["request_id"] == "REG000001"
    assert reg["current_level"] == "Team Manager"

    assert colleague.get(f"/api/regularizations/{reg['id']}").status_code == 403
    assert employee.get("/api/regularizations/999").status_code == 404
    assert [r["id"] for r in manager.get("/api/regularizations/pending").get_json()["regularizations"]] == [reg["id"]]

    resp = manager.post(f"/api/regularizations/{reg['id']}/approve", json={"comments": "ok"})
    assert resp.status_code == 200
    body = resp.get_json()["regularization"]
    assert body["status"] == "Approved"
    assert body["attendance_updated"] is True
    assert body["updated_attendance"]["status"] == "Present"

    again = manager.post(f"/api/regularizations/{reg['id']}/approve", json={})
    assert again.status_code == 409

    history = employee.get(f"/api/attendance/my?start={yesterday}&end={yesterday}").get_json()["attendance"]
    assert history[0]["is_regularized"] is True


def test_regularization_validation_and_reject(app):
    employee = client_as(app, 1, "Employee")
    manager = client_as(app, 10, "Team Manager")
    future = (date.today() + timedelta(days=2)).isoformat()

    assert employee.post(
        "/api/regularizations", json={"attendance_date": future, "request_type": "Other", "reason": "x"}
    ).status_code == 400
    assert employee.post("/api/regularizations", json={"attendance_date": "03/03/2025"}).status_code == 400

    reg = employee.post(
        "/api/regularizations",
        json={"attendance_date": date.today().isoformat(), "request_type": "Other", "reason": "x"},
    ).get_json()["regularization"]

    assert manager.post(f"/api/regularizations/{reg['id']}/reject", json={}).status_code == 400
    resp = manager.post(f"/api/regularizations/{reg['id']}/reject", json={"reason": "Thiếu minh chứng"})
    assert resp.get_json()["regularization"]["status"] == "Rejected"

    stats = client_as(app, 20, "HR").get("/api/regularizations/statistics").get_json()["statistics"]
    assert stats["total"] == 1 and stats["by_status"]["Rejected"] == 1
    assert len(employee.get("/api/regularizations/config").get_json()["config"]["request_types"]) == 13


def test_permission_flow(app):
    employee = client_as(app, 1, "Employee")
    leader = client_as(app, 30, "Team Lead")

    resp = employee.post(
        "/api/permissions",
        json={
            "start_date": "2025-03-03",
            "start_time": "14:00",
            "end_date": "2025-03-03",
            "end_time": "15:30",
            "duration": "1.5 giờ",
            "reason": "Việc gia đình",
            "work_description": "Đã bàn giao",
            "assigned_by": 5,
            "responsible_person": 6,
        },
    )
    assert resp.status_code == 201
    pid = resp.get_json()["permission"]["id"]

    resp = leader.post(f"/api/permissions/{pid}/approve", json={})
    assert resp.get_json()["permission"]["status_label"] == "Team Leader Approved"
    assert employee.post(f"/api/permissions/{pid}/cancel").status_code == 409
    assert len(employee.get("/api/permissions").get_json()["permissions"]) == 1


def test_work_hour_settings(app):
    assert client_as(app, 1, "Employee").put("/api/settings/work-hours", json={"breakMinutes": 30}).status_code == 403

    hr = client_as(app, 20, "HR Manager")
    resp = hr.put("/api/settings/work-hours", json={"breakMinutes": 30, "lateThresholdMinutes": 15})
    assert resp.status_code == 200
    assert resp.get_json()["work_hours"]["breakMinutes"] == 30

    current = client_as(app, 1, "Employee").get("/api/settings/work-hours").get_json()["work_hours"]
    assert current["lateThresholdMinutes"] == 15
    assert hr.put("/api/settings/work-hours", json={"nope": 1}).status_code == 400


def test_auto_checkout_endpoints(app):
    assert client_as(app, 1, "Employee").post("/api/attendance/auto-checkout/run").status_code == 403

    admin = client_as(app, 99, "Admin")
    resp = admin.post("/api/attendance/auto-checkout/run")
    assert resp.status_code == 200
    assert resp.get_json()["result"]["status"] == "success"

    status = admin.get("/api/attendance/auto-checkout/status").get_json()
    assert status["scheduler"]["running"] is False
    assert status["policy"]["autoCheckoutEnabled"] is True
