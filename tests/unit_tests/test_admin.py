"""Tests for the staff endpoints under /api/admin."""

import pytest

from app import db
from tests.mocks.models import (
    BADMINTON_GROUND,
    FOOTBALL_GROUND,
    MOCK_ADMIN,
    MOCK_MANAGER,
    MOCK_USER,
    next_weekday,
)


def _book(client, start: str = "09:00", ground_id: int = FOOTBALL_GROUND) -> dict:
    day = next_weekday(2)
    resp = client.post(
        "/api/bookings",
        json={
            "ground_id": ground_id,
            "booking_type": "full-ground",
            "slots": [{"date": day.isoformat(), "start_time": start, "end_time": f"{int(start[:2]) + 1:02d}:00"}],
        },
    )
    assert resp.status_code == 201
    return resp.json()


@pytest.fixture()
async def manager(client):
    await db.create_user(MOCK_MANAGER.email, None, role="manager", user_id=MOCK_MANAGER.id)
    return MOCK_MANAGER


class TestAccess:
    @pytest.mark.parametrize(
        "path",
        ["/api/admin/bookings", "/api/admin/users", "/api/admin/stats", "/api/admin/sports"],
    )
    def test_clients_are_forbidden(self, client, path):
        assert client.get(path).status_code == 403

    def test_unauthenticated(self, unauthed_client):
        assert unauthed_client.get("/api/admin/bookings").status_code == 401


class TestAdminBookings:
    def test_list_all_with_filters(self, client, act_as):
        first = _book(client, "09:00")
        _book(client, "11:00", ground_id=BADMINTON_GROUND)

        act_as(MOCK_ADMIN)
        resp = client.get("/api/admin/bookings")
        assert resp.status_code == 200
        assert resp.json()["meta"]["total_items"] == 2

        resp = client.get("/api/admin/bookings", params={"ground_id": FOOTBALL_GROUND})
        assert [b["id"] for b in resp.json()["items"]] == [first["id"]]

        resp = client.get("/api/admin/bookings", params={"user_id": MOCK_USER.id, "status": "pending"})
        assert resp.json()["meta"]["total_items"] == 2

    def test_status_lifecycle(self, client, act_as):
        booking = _book(client)
        act_as(MOCK_ADMIN)

        resp = client.patch(f"/api/admin/bookings/{booking['id']}/status", json={"status": "confirmed"})
        assert resp.status_code == 200
        assert resp.json()["status"] == "confirmed"

        resp = client.patch(
            f"/api/admin/bookings/{booking['id']}/status",
            json={"status": "completed", "notes": "Played"},
        )
        assert resp.json()["status"] == "completed"
        assert resp.json()["notes"] == "Played"

    def test_invalid_transition(self, client, act_as):
        booking = _book(client)
        act_as(MOCK_ADMIN)

        resp = client.patch(f"/api/admin/bookings/{booking['id']}/status", json={"status": "completed"})
        assert resp.status_code == 400
        assert "Cannot change booking from pending to completed" in resp.json()["detail"]

    def test_admin_cancel_applies_policy(self, client, act_as):
        booking = _book(client)
        act_as(MOCK_ADMIN)

        resp = client.patch(
            f"/api/admin/bookings/{booking['id']}/status",
            json={"status": "cancelled", "notes": "Ground flooded"},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "cancelled"
        assert data["notes"] == "Ground flooded"

        act_as(MOCK_USER)
        types = [n["type"] for n in client.get("/api/notifications").json()["items"]]
        assert "booking_cancelled" in types

    def test_missing_booking(self, admin_client):
        resp = admin_client.patch("/api/admin/bookings/9999/status", json={"status": "confirmed"})
        assert resp.status_code == 404


class TestAdminUsers:
    def test_list_and_search(self, admin_client):
        resp = admin_client.get("/api/admin/users")
        assert resp.status_code == 200
        assert resp.json()["meta"]["total_items"] == 2

        resp = admin_client.get("/api/admin/users", params={"search": "doe"})
        assert [u["email"] for u in resp.json()["items"]] == ["client@demo.com"]

        resp = admin_client.get("/api/admin/users", params={"role": "admin"})
        assert [u["id"] for u in resp.json()["items"]] == [MOCK_ADMIN.id]

    def test_promote_to_manager(self, admin_client):
        resp = admin_client.patch(f"/api/admin/users/{MOCK_USER.id}", json={"role": "manager"})
        assert resp.status_code == 200
        assert resp.json()["role"] == "manager"

    def test_cannot_deactivate_self(self, admin_client):
        resp = admin_client.patch(f"/api/admin/users/{MOCK_ADMIN.id}", json={"is_active": False})
        assert resp.status_code == 400

    def test_unknown_user(self, admin_client):
        assert admin_client.patch("/api/admin/users/nobody", json={"phone": "1"}).status_code == 404

    def test_user_removed_during_update(self, admin_client, monkeypatch):
        async def _gone(user_id, fields):
            return None

        monkeypatch.setattr(db, "update_user", _gone)
        resp = admin_client.patch(f"/api/admin/users/{MOCK_USER.id}", json={"phone": "1"})
        assert resp.status_code == 404

    async def test_manager_limits(self, client, act_as, manager):
        act_as(manager)

        resp = client.patch(f"/api/admin/users/{MOCK_ADMIN.id}", json={"first_name": "X"})
        assert resp.status_code == 403

        resp = client.patch(f"/api/admin/users/{MOCK_USER.id}", json={"role": "admin"})
        assert resp.status_code == 403

        resp = client.patch(f"/api/admin/users/{MOCK_USER.id}", json={"is_active": False})
        assert resp.status_code == 200
        assert resp.json()["is_active"] is False


class TestDashboard:
    def test_stats(self, client, act_as):
        booking = _book(client)
        act_as(MOCK_ADMIN)
        client.post(f"/api/admin/bookings/{booking['id']}/payments", json={"amount": 100})

        resp = client.get("/api/admin/stats")
        assert resp.status_code == 200
        data = resp.json()
        assert data["total_bookings"] == 1
        assert data["confirmed_bookings"] == 1
        assert data["total_revenue"] == 100.0
        assert data["active_grounds"] == 6

    def test_facility_stats(self, client, act_as):
        _book(client)
        act_as(MOCK_ADMIN)

        resp = client.get("/api/admin/facility-stats")
        assert resp.status_code == 200
        rows = {r["ground_id"]: r for r in resp.json()}
        assert rows[FOOTBALL_GROUND]["total_bookings"] == 1
        assert rows[FOOTBALL_GROUND]["bookings_last_30_days"] == 1
        assert rows[FOOTBALL_GROUND]["booking_trend"] == 100.0
        assert rows[BADMINTON_GROUND]["total_bookings"] == 0
