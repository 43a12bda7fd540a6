"""Tests for payment recording and booking payment-state sync."""

import pytest

from app.services.payments import (
    derive_payment_state,
    gateway_details,
    generate_transaction_id,
)
from tests.mocks.models import (
    BADMINTON_GROUND,
    FOOTBALL_GROUND,
    MOCK_ADMIN,
    make_booking,
    next_weekday,
)


def _book(client, *, ground_id=FOOTBALL_GROUND, booking_type="full-ground", start="09:00") -> dict:
    """Weekday off-peak football booking: total 100."""
    day = next_weekday(2)
    resp = client.post(
        "/api/bookings",
        json={
            "ground_id": ground_id,
            "booking_type": booking_type,
            "slots": [{"date": day.isoformat(), "start_time": start, "end_time": f"{int(start[:2]) + 1:02d}:00"}],
        },
    )
    assert resp.status_code == 201
    return resp.json()


class TestDerivePaymentState:
    def test_fully_paid_confirms(self):
        fields = derive_payment_state(make_booking(status="pending"), 100.0)
        assert fields == {"paid_amount": 100.0, "payment_status": "completed", "status": "confirmed"}

    def test_partial_confirms_pending(self):
        fields = derive_payment_state(make_booking(status="pending"), 40.0)
        assert fields["payment_status"] == "partial"
        assert fields["status"] == "confirmed"

    def test_nothing_paid_reverts_to_pending(self):
        fields = derive_payment_state(make_booking(status="confirmed", payment_status="partial"), 0.0)
        assert fields["payment_status"] == "pending"
        assert fields["status"] == "pending"

    def test_discount_lowers_amount_due(self):
        booking = make_booking(status="pending", total_amount=100.0, discount_amount=20.0)
        fields = derive_payment_state(booking, 80.0)
        assert fields["payment_status"] == "completed"

    def test_refunded_cancellation_left_alone(self):
        booking = make_booking(status="cancelled", payment_status="refunded", paid_amount=100.0)
        assert derive_payment_state(booking, 100.0) == {"paid_amount": 100.0}

    def test_completed_booking_keeps_status(self):
        fields = derive_payment_state(make_booking(status="completed", payment_status="partial"), 100.0)
        assert fields["payment_status"] == "completed"
        assert "status" not in fields


class TestTransactionIds:
    @pytest.mark.parametrize(
        "method, prefix",
        [("cash", "CASH"), ("upi", "UPI"), ("card", "CARD"), ("bank_transfer", "BANK"), ("admin", "ADMIN")],
    )
    def test_prefixes(self, method, prefix):
        assert generate_transaction_id(method, now_ms=1700000000000) == f"{prefix}-1700000000000"

    def test_gateway_details_per_method(self):
        assert gateway_details("cash", "CASH-1", "staff@x.com")["cash_received"] is True
        assert gateway_details("upi", "UPI-1", "staff@x.com")["upi_reference"] == "UPI-1"
        assert gateway_details("bank_transfer", "B-1", "staff@x.com")["bank_reference"] == "B-1"


class TestCollectPayment:
    def test_partial_then_full(self, client, act_as):
        booking = _book(client)
        act_as(MOCK_ADMIN)

        resp = client.post(
            f"/api/admin/bookings/{booking['id']}/payments",
            json={"amount": 40, "payment_method": "cash"},
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["payment"]["transaction_id"].startswith("CASH-")
        assert data["booking"]["payment_status"] == "partial"
        assert data["booking"]["status"] == "confirmed"
        assert data["remaining_balance"] == 60.0
        assert data["is_fully_paid"] is False

        resp = client.post(
            f"/api/admin/bookings/{booking['id']}/payments",
            json={"amount": 60, "payment_method": "upi", "transaction_id": "UPI-REF-9"},
        )
        data = resp.json()
        assert data["payment"]["transaction_id"] == "UPI-REF-9"
        assert data["booking"]["payment_status"] == "completed"
        assert data["booking"]["paid_amount"] == 100.0
        assert data["is_fully_paid"] is True

    def test_discount_only(self, client, act_as):
        booking = _book(client)
        act_as(MOCK_ADMIN)
        resp = client.post(
            f"/api/admin/bookings/{booking['id']}/payments",
            json={"amount": 0, "discount_amount": 100, "discount_reason": "Loyalty"},
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["payment"] is None
        assert data["booking"]["discount_amount"] == 100.0
        assert data["booking"]["payment_status"] == "completed"
        assert data["booking"]["status"] == "confirmed"

    def test_overpayment_rejected_without_side_effects(self, client, act_as):
        booking = _book(client)
        act_as(MOCK_ADMIN)
        resp = client.post(
            f"/api/admin/bookings/{booking['id']}/payments",
            json={"amount": 95, "discount_amount": 10},
        )
        assert resp.status_code == 400
        assert "exceeds the balance" in resp.json()["detail"]

        detail = client.get(f"/api/bookings/{booking['id']}").json()
        assert detail["discount_amount"] == 0.0

    def test_zero_amount_and_discount_invalid(self, client, act_as):
        booking = _book(client)
        act_as(MOCK_ADMIN)
        resp = client.post(f"/api/admin/bookings/{booking['id']}/payments", json={"amount": 0})
        assert resp.status_code == 422

    def test_cancelled_booking_not_payable(self, client, act_as):
        booking = _book(client)
        client.post(f"/api/bookings/{booking['id']}/cancel")
        act_as(MOCK_ADMIN)
        resp = client.post(
            f"/api/admin/bookings/{booking['id']}/payments", json={"amount": 10}
        )
        assert resp.status_code == 400

    def test_client_cannot_collect(self, client):
        booking = _book(client)
        resp = client.post(f"/api/admin/bookings/{booking['id']}/payments", json={"amount": 10})
        assert resp.status_code == 403

    def test_unknown_booking(self, admin_client):
        resp = admin_client.post("/api/admin/bookings/9999/payments", json={"amount": 10})
        assert resp.status_code == 404


class TestCustomerPayments:
    def test_record_and_history(self, client):
        booking = _book(client)
        resp = client.post(
            f"/api/bookings/{booking['id']}/payments",
            json={"amount": 30, "payment_method": "upi"},
        )
        assert resp.status_code == 201
        assert resp.json()["status"] == "completed"

        history = client.get(f"/api/bookings/{booking['id']}/payments").json()
        assert history["paid_amount"] == 30.0
        assert history["balance_due"] == 70.0
        assert len(history["payments"]) == 1

        summary = client.get(f"/api/bookings/{booking['id']}/payment-status").json()
        assert summary["status"] == "confirmed"
        assert summary["payment_status"] == "partial"
        assert summary["is_fully_paid"] is False

    def test_customer_overpayment(self, client):
        booking = _book(client)
        resp = client.post(
            f"/api/bookings/{booking['id']}/payments",
            json={"amount": 101, "payment_method": "card"},
        )
        assert resp.status_code == 400

    def test_payment_notification(self, client):
        booking = _book(client, ground_id=BADMINTON_GROUND, booking_type="per-person")
        client.post(f"/api/bookings/{booking['id']}/payments", json={"amount": 25, "payment_method": "cash"})

        items = client.get("/api/notifications").json()["items"]
        received = [n for n in items if n["type"] == "payment_received"]
        assert received
        assert "fully paid" in received[0]["message"]


class TestPaymentStatusChanges:
    def test_refunding_payment_resyncs_booking(self, client, act_as):
        booking = _book(client)
        act_as(MOCK_ADMIN)
        paid = client.post(
            f"/api/admin/bookings/{booking['id']}/payments", json={"amount": 100}
        ).json()

        resp = client.patch(
            f"/api/admin/payments/{paid['payment']['id']}/status", json={"status": "refunded"}
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "refunded"

        detail = client.get(f"/api/bookings/{booking['id']}").json()
        assert detail["paid_amount"] == 0.0
        assert detail["payment_status"] == "pending"
        assert detail["status"] == "pending"

    def test_unknown_payment(self, admin_client):
        resp = admin_client.patch("/api/admin/payments/9999/status", json={"status": "failed"})
        assert resp.status_code == 404

    def test_list_payments(self, client, act_as):
        booking = _book(client)
        act_as(MOCK_ADMIN)
        client.post(f"/api/admin/bookings/{booking['id']}/payments", json={"amount": 10})
        resp = client.get("/api/admin/payments", params={"booking_id": booking["id"]})
        assert resp.status_code == 200
        assert resp.json()["meta"]["total_items"] == 1
