"""Tests for the /api/health endpoint."""

from app import db


def test_health_returns_ok(unauthed_client):
    resp = unauthed_client.get("/api/health")
    assert resp.status_code == 200

    data = resp.json()
    assert data["status"] == "ok"
    assert data["version"] == "0.1.0"
    assert data["database"] == "ok"
    assert data["maintenance"]["running"] is False
    assert data["maintenance"]["failures"] == 0
    assert "timestamp" in data


def test_health_degraded_without_database(unauthed_client, monkeypatch):
    with monkeypatch.context() as m:
        m.setattr(db, "_db", None)
        resp = unauthed_client.get("/api/health")

    assert resp.status_code == 200
    assert resp.json()["status"] == "degraded"
    assert resp.json()["database"] == "unavailable"


def test_openapi_lists_booking_routes(unauthed_client):
    resp = unauthed_client.get("/openapi.json")
    assert resp.status_code == 200
    paths = resp.json()["paths"]
    assert "/api/bookings" in paths
    assert "/api/facilities/{ground_id}/slots" in paths
    assert "/api/admin/reports/{report_type}" in paths
