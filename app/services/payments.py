"""
Payment recording and booking payment-state synchronisation.

A booking's paid amount and payment status are always derived from its
completed payments, never edited directly.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any

from app import db
from app.models import (
    Booking,
    Payment,
    PaymentCollect,
    PaymentCollectResponse,
    PaymentCreate,
    PaymentHistory,
    PaymentStatusSummary,
    UserInfo,
)
from app.services.bookings import BookingError
from app.services.notifier import money, notifier

logger = logging.getLogger(__name__)

TRANSACTION_PREFIXES = {
    "cash": "CASH",
    "upi": "UPI",
    "card": "CARD",
    "bank_transfer": "BANK",
    "admin": "ADMIN",
}


def generate_transaction_id(method: str, now_ms: int | None = None) -> str:
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{TRANSACTION_PREFIXES.get(method, 'ADMIN')}-{now_ms}"


def gateway_details(method: str, transaction_id: str, collected_by: str) -> dict[str, Any]:
    """Method-specific details stored with a manually recorded payment."""
    details: dict[str, Any] = {
        "method": method,
        "transaction_id": transaction_id,
        "collected_by": collected_by,
        "recorded_at": datetime.now(timezone.utc).isoformat(),
    }
    if method == "cash":
        details["cash_received"] = True
    elif method == "upi":
        details["upi_reference"] = transaction_id
    elif method == "card":
        details["card_terminal"] = "counter"
    elif method == "bank_transfer":
        details["bank_reference"] = transaction_id
    return details


def derive_payment_state(booking: Booking, paid: float) -> dict[str, Any]:
    """Fields to write on a booking given its completed payment total."""
    fields: dict[str, Any] = {"paid_amount": paid}
    active = booking.status in ("pending", "confirmed")

    if booking.payment_status == "refunded" and not active:
        return fields

    if paid >= booking.amount_due:
        fields["payment_status"] = "completed"
        if active:
            fields["status"] = "confirmed"
    elif paid > 0:
        fields["payment_status"] = "partial"
        if booking.status == "pending":
            fields["status"] = "confirmed"
    else:
        fields["payment_status"] = "pending"
        if active:
            fields["status"] = "pending"
    return fields


async def sync_booking_payment(booking_id: int) -> Booking:
    """Recompute paid amount, payment status and status from payments."""
    booking = await db.get_booking(booking_id)
    if booking is None:
        raise BookingError(f"Booking {booking_id} not found", 404)
    paid = await db.sum_completed_payments(booking_id)
    updated = await db.update_booking(booking_id, derive_payment_state(booking, paid))
    if updated is None:
        raise BookingError(f"Booking {booking_id} not found", 404)
    if (updated.status, updated.payment_status) != (booking.status, booking.payment_status):
        logger.info(
            "Booking %s synced: status %s→%s, payment %s→%s (paid %.2f)",
            booking_id, booking.status, updated.status,
            booking.payment_status, updated.payment_status, paid,
        )
    return updated


def _check_payable(booking: Booking) -> None:
    if booking.status == "cancelled":
        raise BookingError("Cannot take a payment for a cancelled booking")


async def collect_payment(
    booking: Booking, body: PaymentCollect, staff: UserInfo
) -> PaymentCollectResponse:
    """Record a counter payment (and optional discount) taken by staff."""
    _check_payable(booking)

    discount = round(booking.discount_amount + body.discount_amount, 2)
    if discount > booking.total_amount:
        raise BookingError("Discount cannot exceed the booking total")
    balance = round(max(0.0, booking.total_amount - discount - booking.paid_amount), 2)
    if body.amount > balance + 0.005:
        raise BookingError(
            f"Payment of {money(body.amount)} exceeds the balance due of {money(balance)}"
        )

    if body.discount_amount > 0:
        discounted = await db.update_booking(
            booking.id,
            {
                "discount_amount": discount,
                "discount_reason": body.discount_reason or booking.discount_reason,
            },
        )
        if discounted is None:
            raise BookingError(f"Booking {booking.id} not found", 404)
        booking = discounted

    payment: Payment | None = None
    if body.amount > 0:
        transaction_id = body.transaction_id or generate_transaction_id(body.payment_method)
        gateway = gateway_details(body.payment_method, transaction_id, staff.email)
        if body.notes:
            gateway["notes"] = body.notes
        payment = await db.create_payment(
            booking.id,
            booking.user_id,
            round(body.amount, 2),
            body.payment_method,
            transaction_id=transaction_id,
            gateway_response=gateway,
            discount_amount=body.discount_amount,
            discount_reason=body.discount_reason,
        )
        if booking.payment_method is None:
            await db.update_booking(booking.id, {"payment_method": body.payment_method})

    booking = await sync_booking_payment(booking.id)
    if payment is not None:
        await notifier.payment_received(booking, payment)

    remaining = booking.balance_due
    if remaining <= 0:
        message = "Payment collected, booking is fully paid"
    else:
        message = f"Payment collected, remaining balance {money(remaining)}"
    return PaymentCollectResponse(
        payment=payment,
        booking=booking,
        remaining_balance=remaining,
        is_fully_paid=remaining <= 0,
        message=message,
    )


async def record_customer_payment(
    booking: Booking, body: PaymentCreate, user: UserInfo
) -> Payment:
    """Record a settled payment reported by the booking's owner."""
    _check_payable(booking)
    if body.amount > booking.balance_due + 0.005:
        raise BookingError(
            f"Payment of {money(body.amount)} exceeds the balance due of "
            f"{money(booking.balance_due)}"
        )
    transaction_id = body.transaction_id or generate_transaction_id(body.payment_method)
    payment = await db.create_payment(
        booking.id,
        user.id,
        round(body.amount, 2),
        body.payment_method,
        transaction_id=transaction_id,
        gateway_response=gateway_details(body.payment_method, transaction_id, user.email),
    )
    booking = await sync_booking_payment(booking.id)
    await notifier.payment_received(booking, payment)
    return payment


async def set_payment_status(payment_id: int, status: str) -> Payment:
    payment = await db.update_payment_status(payment_id, status)
    if payment is None:
        raise BookingError(f"Payment {payment_id} not found", 404)
    await sync_booking_payment(payment.booking_id)
    return payment


async def payment_history(booking: Booking) -> PaymentHistory:
    payments, _ = await db.list_payments(booking_id=booking.id, limit=500)
    return PaymentHistory(
        booking_id=booking.id,
        total_amount=booking.total_amount,
        discount_amount=booking.discount_amount,
        amount_due=booking.amount_due,
        paid_amount=booking.paid_amount,
        balance_due=booking.balance_due,
        payment_status=booking.payment_status,
        payments=payments,
    )


def payment_summary(booking: Booking) -> PaymentStatusSummary:
    return PaymentStatusSummary(
        booking_id=booking.id,
        status=booking.status,
        payment_status=booking.payment_status,
        amount_due=booking.amount_due,
        paid_amount=booking.paid_amount,
        balance_due=booking.balance_due,
        is_fully_paid=booking.balance_due <= 0,
    )
