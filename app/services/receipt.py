"""
Payment receipts, rendered as JSON, SMS text and an HTML page.
"""

from __future__ import annotations

import secrets
import string
import time
from pathlib import Path

from fastapi.templating import Jinja2Templates

from app import db
from app.config import ARENA_NAME, CURRENCY_SYMBOL
from app.models import Booking, Payment, Receipt, User
from app.services.bookings import BookingError

_TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"
templates = Jinja2Templates(directory=str(_TEMPLATES_DIR))
templates.env.filters["money"] = lambda amount: f"{CURRENCY_SYMBOL}{amount:,.2f}"

_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


def generate_receipt_id(now_ms: int | None = None) -> str:
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(6))
    return f"RCP-{now_ms}-{suffix}"


def render_sms_text(receipt: Receipt) -> str:
    return (
        f"{ARENA_NAME} - Payment Receipt\n"
        f"Receipt ID: {receipt.receipt_id}\n"
        f"Booking: {receipt.facility_name}\n"
        f"Date: {receipt.booking_date.strftime('%d/%m/%Y')}\n"
        f"Time: {receipt.start_time}-{receipt.end_time}\n"
        f"Amount Paid: {CURRENCY_SYMBOL}{receipt.paid_amount:,.2f}\n"
        f"Balance: {CURRENCY_SYMBOL}{receipt.balance_amount:,.2f}\n"
        f"Status: {receipt.payment_status.upper()}\n"
        "Thank you for choosing us!"
    )


def compose_receipt(
    payment: Payment,
    booking: Booking,
    customer: User,
    *,
    total_paid_before: float,
    receipt_id: str | None = None,
) -> Receipt:
    """Assemble receipt data for one payment of a booking."""
    first = booking.slots[0] if booking.slots else None
    paid_after = round(total_paid_before + payment.amount, 2)
    receipt = Receipt(
        receipt_id=receipt_id or generate_receipt_id(),
        booking_id=booking.id,
        payment_id=payment.id,
        customer_name=customer.full_name,
        customer_email=customer.email,
        customer_phone=customer.phone,
        facility_name=booking.ground_name or f"Ground #{booking.ground_id}",
        sport_name=booking.sport_name or "",
        booking_date=first.booking_date if first else booking.start_date,
        start_time=first.start_time if first else "",
        end_time=booking.slots[-1].end_time if booking.slots else "",
        participants=booking.participant_count,
        total_booking_amount=booking.total_amount,
        discount_amount=booking.discount_amount,
        amount_due=booking.amount_due,
        paid_amount=payment.amount,
        total_paid_before_this=total_paid_before,
        balance_amount=round(max(0.0, booking.amount_due - paid_after), 2),
        payment_method=payment.payment_method,
        transaction_id=payment.transaction_id,
        payment_date=payment.processed_at or payment.created_at,
        payment_status=booking.payment_status,
        sms_text="",
    )
    receipt.sms_text = render_sms_text(receipt)
    return receipt


async def build_receipt(payment_id: int) -> tuple[Receipt, Booking, User]:
    """Load a payment with its booking and customer and compose the receipt."""
    payment = await db.get_payment(payment_id)
    if payment is None:
        raise BookingError(f"Payment {payment_id} not found", 404)
    if payment.status != "completed":
        raise BookingError(f"Payment {payment_id} is {payment.status}, no receipt available")
    booking = await db.get_booking(payment.booking_id)
    customer = await db.get_user(payment.user_id)
    if booking is None or customer is None:
        raise BookingError(f"Payment {payment_id} has no booking or customer", 404)
    before = await db.sum_completed_payments(booking.id, before_payment_id=payment.id)
    return compose_receipt(payment, booking, customer, total_paid_before=before), booking, customer


def render_receipt_html(receipt: Receipt) -> str:
    return templates.get_template("receipt.html").render(
        receipt=receipt, arena_name=ARENA_NAME
    )
