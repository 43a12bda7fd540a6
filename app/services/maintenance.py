"""
Booking housekeeping jobs.

Each job scans the bookings it is responsible for, applies its rule and
returns a MaintenanceResult. Staff can trigger any job by name; the
MaintenanceWorker runs all of them on a fixed interval.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import date, datetime, time, timedelta, timezone

from app import db
from app.config import MAINTENANCE_INTERVAL
from app.models import Booking, MaintenanceResult
from app.services.background import BackgroundWorker
from app.services.cancellation import booking_start
from app.services.notifier import describe_booking, money, notifier

logger = logging.getLogger(__name__)


def _booking_end(booking: Booking) -> datetime:
    if booking.slots:
        last = max(booking.slots, key=lambda s: (s.booking_date, s.end_time))
        return datetime.combine(last.booking_date, time.fromisoformat(last.end_time))
    return datetime.combine(booking.end_date, time.max)


def _start_of_day(now: datetime) -> datetime:
    """Local midnight as an aware datetime, comparable with stored sent_at."""
    return datetime.combine(now.date(), time.min).astimezone().astimezone(timezone.utc)


async def update_past_bookings(now: datetime | None = None) -> MaintenanceResult:
    """Complete confirmed bookings that have ended and are fully paid."""
    now = now or datetime.now()
    result = MaintenanceResult(job="update-past-bookings", processed=0, updated=0)

    for booking in await db.list_bookings_by_status(("confirmed",)):
        if _booking_end(booking) > now:
            continue
        result.processed += 1
        if booking.balance_due > 0:
            result.skipped += 1
            result.issues.append(
                f"Booking {booking.id}: outstanding balance {money(booking.balance_due)}"
            )
            continue
        await db.update_booking(booking.id, {"status": "completed"})
        result.updated += 1

    return result


async def send_booking_reminders(now: datetime | None = None) -> MaintenanceResult:
    """Remind customers of confirmed bookings taking place tomorrow."""
    now = now or datetime.now()
    tomorrow = now.date() + timedelta(days=1)
    since = _start_of_day(now)
    result = MaintenanceResult(job="send-booking-reminders", processed=0, updated=0)

    for booking in await db.list_bookings_by_status(("confirmed",)):
        slots = [s for s in booking.slots if s.booking_date == tomorrow]
        if not slots:
            continue
        result.processed += 1
        if await db.notification_sent_since(booking.id, "booking_reminder", since):
            result.skipped += 1
            continue

        message = (
            f"Reminder: your booking for {booking.ground_name} is tomorrow "
            f"at {slots[0].start_time}."
        )
        if booking.balance_due > 0:
            message += f" Please note a balance of {money(booking.balance_due)} is pending."
        await notifier.notify(
            booking.user_id,
            "booking_reminder",
            "Booking reminder",
            message,
            channels=("in_app", "email", "sms"),
            booking_id=booking.id,
        )
        result.updated += 1

    return result


async def send_payment_reminders(now: datetime | None = None) -> MaintenanceResult:
    """Remind customers with confirmed but not fully paid bookings."""
    now = now or datetime.now()
    since = _start_of_day(now)
    result = MaintenanceResult(job="send-payment-reminders", processed=0, updated=0)

    bookings = await db.list_bookings_by_status(
        ("confirmed",), payment_statuses=("pending", "partial")
    )
    for booking in bookings:
        if booking.balance_due <= 0:
            continue
        result.processed += 1
        if await db.notification_sent_since(booking.id, "payment_reminder", since):
            result.skipped += 1
            continue
        await notifier.notify(
            booking.user_id,
            "payment_reminder",
            "Payment reminder",
            f"A balance of {money(booking.balance_due)} is due for your booking at "
            f"{describe_booking(booking)}.",
            channels=("in_app", "email"),
            booking_id=booking.id,
            metadata={"balance_due": booking.balance_due},
        )
        result.updated += 1

    return result


async def process_expired_bookings(now: datetime | None = None) -> MaintenanceResult:
    """Cancel confirmed bookings still unpaid once their slot time has passed."""
    now = now or datetime.now()
    result = MaintenanceResult(job="process-expired-bookings", processed=0, updated=0)

    bookings = await db.list_bookings_by_status(("confirmed",), payment_statuses=("pending",))
    for booking in bookings:
        if booking_start(booking) > now:
            continue
        result.processed += 1
        note = "Auto-cancelled: payment was not received before the booking time"
        await db.update_booking(
            booking.id,
            {
                "status": "cancelled",
                "cancelled_at": now.isoformat(),
                "notes": f"{booking.notes}\n{note}" if booking.notes else note,
            },
        )
        await notifier.notify(
            booking.user_id,
            "booking_expired",
            "Booking cancelled",
            f"Your booking for {describe_booking(booking)} was cancelled because "
            "payment was not received before the booking time.",
            channels=("in_app", "email"),
            booking_id=booking.id,
        )
        result.updated += 1

    return result


async def cancel_expired_bookings(now: datetime | None = None) -> MaintenanceResult:
    """Cancel pending bookings whose date is already behind us."""
    now = now or datetime.now()
    today: date = now.date()
    result = MaintenanceResult(job="cancel-expired-bookings", processed=0, updated=0)

    for booking in await db.list_bookings_by_status(("pending",)):
        if booking.start_date >= today:
            continue
        result.processed += 1
        await db.update_booking(
            booking.id,
            {"status": "cancelled", "cancelled_at": now.isoformat()},
        )
        await notifier.notify(
            booking.user_id,
            "booking_auto_cancelled",
            "Booking expired",
            f"Your pending booking for {describe_booking(booking)} expired and "
            "has been cancelled.",
            booking_id=booking.id,
        )
        result.updated += 1

    return result


JOBS: dict[str, Callable[..., Awaitable[MaintenanceResult]]] = {
    "update-past-bookings": update_past_bookings,
    "send-booking-reminders": send_booking_reminders,
    "send-payment-reminders": send_payment_reminders,
    "process-expired-bookings": process_expired_bookings,
    "cancel-expired-bookings": cancel_expired_bookings,
}


async def run_all(now: datetime | None = None) -> list[MaintenanceResult]:
    results = []
    for job in JOBS.values():
        results.append(await job(now))
    return results


class MaintenanceWorker(BackgroundWorker):
    """Runs every housekeeping job once per interval."""

    def __init__(self) -> None:
        super().__init__(interval=MAINTENANCE_INTERVAL, name="booking-maintenance")

    async def _tick(self) -> None:
        for result in await run_all():
            if result.updated or result.issues:
                logger.info(
                    "%s: %d processed, %d updated, %d skipped",
                    result.job, result.processed, result.updated, result.skipped,
                )


# ── Module-level singleton ────────────────────────────────────────────────
maintenance_worker = MaintenanceWorker()
