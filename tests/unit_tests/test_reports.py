"""Tests for the dashboard trend helper and the grouped staff reports."""

import os
import time
from datetime import date, datetime, timedelta

import pytest

from app import db
from app.services import reports
from app.services.reports import booking_trend
from tests.mocks.models import FOOTBALL_GROUND, MOCK_ADMIN, MOCK_USER, next_weekday


@pytest.fixture
def india_time():
    """Run the server clock at UTC+05:30 for the duration of a test."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    previous = os.environ.get("TZ")
    os.environ["TZ"] = "IST-5:30"
    time.tzset()
    yield
    if previous is None:
        os.environ.pop("TZ", None)
    else:
        os.environ["TZ"] = previous
    time.tzset()


def _paid_football_booking(client, act_as, method: str = "upi") -> dict:
    day = next_weekday(2)
    booking = client.post(
        "/api/bookings",
        json={
            "ground_id": FOOTBALL_GROUND,
            "booking_type": "full-ground",
            "slots": [{"date": day.isoformat(), "start_time": "09:00", "end_time": "10:00"}],
        },
    ).json()
    act_as(MOCK_ADMIN)
    resp = client.post(
        f"/api/admin/bookings/{booking['id']}/payments",
        json={"amount": 100, "payment_method": method},
    )
    assert resp.status_code == 201
    return booking


class TestBookingTrend:
    @pytest.mark.parametrize(
        "recent, previous, expected",
        [
            (0, 0, 0.0),
            (3, 0, 100.0),
            (6, 4, 50.0),
            (1, 4, -75.0),
            (2, 3, -33.3),
        ],
    )
    def test_percentage_change(self, recent, previous, expected):
        assert booking_trend(recent, previous) == expected


class TestReports:
    def test_revenue(self, client, act_as):
        _paid_football_booking(client, act_as)

        resp = client.get("/api/admin/reports/revenue", params={"group_by": "month"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["report_type"] == "revenue"
        assert data["group_by"] == "month"
        assert len(data["rows"]) == 1
        assert data["rows"][0]["revenue"] == 100.0
        assert data["rows"][0]["payments"] == 1

    def test_revenue_by_sport(self, client, act_as):
        _paid_football_booking(client, act_as)

        rows = client.get("/api/admin/reports/revenue-by-sport").json()["rows"]
        assert rows == [{"sport_id": 2, "sport_name": "Football", "revenue": 100.0, "bookings": 1}]

    def test_facility_usage(self, client, act_as):
        _paid_football_booking(client, act_as)

        rows = client.get("/api/admin/reports/facility-usage").json()["rows"]
        assert len(rows) == 6
        football = next(r for r in rows if r["ground_id"] == FOOTBALL_GROUND)
        assert football["total_bookings"] == 1
        assert football["used_bookings"] == 1
        assert football["utilization_rate"] == 100.0
        idle = next(r for r in rows if r["ground_id"] != FOOTBALL_GROUND)
        assert idle["utilization_rate"] == 0.0

    def test_member_bookings(self, client, act_as):
        _paid_football_booking(client, act_as)

        rows = client.get("/api/admin/reports/member-bookings").json()["rows"]
        assert rows[0]["user_id"] == MOCK_USER.id
        assert rows[0]["name"] == "John Doe"
        assert rows[0]["bookings"] == 1
        assert rows[0]["paid_amount"] == 100.0

    def test_member_payments_split_by_method(self, client, act_as):
        _paid_football_booking(client, act_as, method="card")

        rows = client.get("/api/admin/reports/member-payments").json()["rows"]
        assert rows[0]["total_paid"] == 100.0
        assert rows[0]["card"] == 100.0
        assert rows[0]["cash"] == 0.0

    def test_date_range_excludes_bookings(self, client, act_as):
        _paid_football_booking(client, act_as)

        past = date.today() - timedelta(days=30)
        resp = client.get(
            "/api/admin/reports/member-bookings",
            params={"start_date": past.isoformat(), "end_date": (past + timedelta(days=1)).isoformat()},
        )
        assert resp.json()["rows"] == []

    def test_unknown_report(self, admin_client):
        resp = admin_client.get("/api/admin/reports/weather")
        assert resp.status_code == 404
        assert "revenue" in resp.json()["detail"]

    def test_reversed_range(self, admin_client):
        resp = admin_client.get(
            "/api/admin/reports/revenue",
            params={"start_date": "2026-03-10", "end_date": "2026-03-01"},
        )
        assert resp.status_code == 400

    def test_bad_group_by(self, admin_client):
        resp = admin_client.get("/api/admin/reports/revenue", params={"group_by": "year"})
        assert resp.status_code == 422

    def test_clients_forbidden(self, client):
        assert client.get("/api/admin/reports/revenue").status_code == 403


class TestLocalDayBoundaries:
    async def _payment_at(self, processed_at: str):
        booking = await db.create_booking(
            MOCK_USER.id,
            2,
            FOOTBALL_GROUND,
            "full-ground",
            "hourly",
            1,
            100.0,
            [
                {
                    "booking_date": date(2026, 10, 19),
                    "start_time": "09:00",
                    "end_time": "10:00",
                    "duration_minutes": 60,
                    "amount": 100.0,
                }
            ],
        )
        payment = await db.create_payment(booking.id, MOCK_USER.id, 100.0, "upi")
        await db._write(
            "UPDATE payments SET processed_at = ?, created_at = ? WHERE id = ?",
            (processed_at, processed_at, payment.id),
        )

    async def test_today_revenue_uses_local_day(self, client, india_time):
        # 19:30 UTC on the 18th is already 01:00 on the 19th at UTC+05:30
        await self._payment_at("2026-10-18T19:30:00+00:00")

        stats = await reports.dashboard_stats(now=datetime(2026, 10, 19, 9, 0))
        assert stats.today_revenue == 100.0

    async def test_revenue_buckets_by_local_day(self, client, india_time):
        await self._payment_at("2026-10-18T19:30:00+00:00")

        rows = await reports.revenue_report("day", date(2026, 10, 19), date(2026, 10, 19))
        assert [r["period"] for r in rows] == ["2026-10-19"]
        assert await reports.revenue_report("day", date(2026, 10, 18), date(2026, 10, 18)) == []
