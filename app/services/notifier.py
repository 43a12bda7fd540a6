"""
Booking notifications.

Every notification is stored for the in-app notification centre. When the
email or sms channel is requested, and the user's preferences allow it,
it is also delivered through the email service. A failed delivery never
fails the request that triggered it; the outcome is recorded in the
notification metadata instead.
"""

from __future__ import annotations

import logging
from typing import Any

from app import db
from app.config import ARENA_NAME, CURRENCY_SYMBOL
from app.models import Booking, CancellationQuote, Notification, Payment, User
from app.services.email import send_email, send_sms

logger = logging.getLogger(__name__)


def money(amount: float) -> str:
    return f"{CURRENCY_SYMBOL}{amount:,.2f}"


def describe_booking(booking: Booking) -> str:
    """One-line summary: ground, first slot date and time."""
    where = booking.ground_name or f"ground #{booking.ground_id}"
    if not booking.slots:
        return f"{where} on {booking.start_date.isoformat()}"
    first = booking.slots[0]
    extra = f" (+{len(booking.slots) - 1} more)" if len(booking.slots) > 1 else ""
    return (
        f"{where} on {first.booking_date.isoformat()} "
        f"{first.start_time}-{first.end_time}{extra}"
    )


class BookingNotifier:
    """Creates notifications and fans them out to the requested channels."""

    async def notify(
        self,
        user_id: str,
        type: str,
        title: str,
        message: str,
        *,
        channels: tuple[str, ...] | list[str] = ("in_app",),
        booking_id: int | None = None,
        metadata: dict[str, Any] | None = None,
        user: User | None = None,
    ) -> Notification:
        channels = list(dict.fromkeys(["in_app", *channels]))
        delivery: dict[str, str] = {}

        if "email" in channels or "sms" in channels:
            user = user or await db.get_user(user_id)
            if user is not None:
                delivery = await self._deliver(user, title, message, channels)

        meta = dict(metadata or {})
        if delivery:
            meta["delivery"] = delivery

        notification = await db.create_notification(
            user_id,
            type,
            title,
            message,
            channels=channels,
            metadata=meta or None,
            related_booking_id=booking_id,
        )
        logger.info("Notification %s (%s) created for user %s", notification.id, type, user_id)
        return notification

    async def _deliver(
        self, user: User, title: str, message: str, channels: list[str]
    ) -> dict[str, str]:
        prefs = user.notification_preferences
        delivery: dict[str, str] = {}

        if "email" in channels:
            if not prefs.email:
                delivery["email"] = "opted_out"
            else:
                try:
                    await send_email(user.email, f"{title} | {ARENA_NAME}", message)
                    delivery["email"] = "sent"
                except Exception as exc:
                    logger.warning("Email to %s failed: %s", user.email, exc)
                    delivery["email"] = "failed"

        if "sms" in channels:
            if not prefs.sms or not user.phone:
                delivery["sms"] = "skipped"
            else:
                await send_sms(user.phone, f"{title}: {message}")
                delivery["sms"] = "sent"

        return delivery

    # ── Booking lifecycle ──────────────────────────────────────────────

    async def booking_created(self, booking: Booking) -> Notification:
        return await self.notify(
            booking.user_id,
            "booking_created",
            "Booking received",
            f"Your booking for {describe_booking(booking)} has been received. "
            f"Amount due: {money(booking.amount_due)}.",
            channels=("in_app", "email"),
            booking_id=booking.id,
        )

    async def booking_cancelled(
        self, booking: Booking, quote: CancellationQuote
    ) -> Notification:
        message = f"Your booking for {describe_booking(booking)} has been cancelled."
        if quote.paid_amount > 0:
            message += (
                f" Refund: {money(quote.refund_amount)}"
                f" (cancellation fee {money(quote.cancellation_fee)})."
            )
        return await self.notify(
            booking.user_id,
            "booking_cancelled",
            "Booking cancelled",
            message,
            channels=("in_app", "email"),
            booking_id=booking.id,
            metadata={
                "refund_amount": quote.refund_amount,
                "cancellation_fee": quote.cancellation_fee,
                "hours_until": quote.hours_until,
            },
        )

    async def booking_status_changed(
        self, booking: Booking, old_status: str
    ) -> Notification:
        return await self.notify(
            booking.user_id,
            f"booking_{booking.status}",
            f"Booking {booking.status}",
            f"Your booking for {describe_booking(booking)} is now {booking.status}.",
            channels=("in_app", "email"),
            booking_id=booking.id,
            metadata={"old_status": old_status, "new_status": booking.status},
        )

    async def payment_received(self, booking: Booking, payment: Payment) -> Notification:
        message = f"We received {money(payment.amount)} for {describe_booking(booking)}."
        if booking.balance_due > 0:
            message += f" Balance due: {money(booking.balance_due)}."
        else:
            message += " Your booking is fully paid."
        return await self.notify(
            booking.user_id,
            "payment_received",
            "Payment received",
            message,
            channels=("in_app", "email"),
            booking_id=booking.id,
            metadata={"payment_id": payment.id},
        )


# ── Module-level singleton ────────────────────────────────────────────────
notifier = BookingNotifier()
