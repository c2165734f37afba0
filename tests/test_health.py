from __future__ import annotations

from datetime import datetime

from fastapi.testclient import TestClient

from app.main import app


client = TestClient(app)


def test_health_reports_ok_with_service_name():
    resp = client.get("/health")

    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "OK"
    assert data["service"] == "Habit Tracker API"
    assert datetime.fromisoformat(data["timestamp"]).tzinfo is not None


def test_unknown_route_returns_not_found_message():
    resp = client.get("/api/does-not-exist")

    assert resp.status_code == 404
    error = resp.json()["error"]
    assert error["code"] == "not_found"
    assert error["message"] == "Not found - /api/does-not-exist"
    assert error["request_id"] == resp.headers["X-Request-ID"]
