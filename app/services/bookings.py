"""
Booking workflow: validation, slot conflict checks, pricing, cancellation
and staff status transitions.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime, time

from app import db
from app.models import (
    Booking,
    BookingCreate,
    CancellationQuote,
    Ground,
    PriceBreakdown,
    PriceQuoteRequest,
    SlotSelection,
    Sport,
)
from app.services.availability import (
    allows_full_ground,
    allows_per_person,
    find_conflict,
    ground_capacity,
    overlaps,
)
from app.services.cancellation import quote_cancellation
from app.services.notifier import notifier
from app.services.pricing import calculate_price, peak_start_times

logger = logging.getLogger(__name__)

STATUS_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"confirmed", "cancelled"}),
    "confirmed": frozenset({"completed", "cancelled"}),
    "completed": frozenset(),
    "cancelled": frozenset(),
}


class BookingError(Exception):
    """A booking request that cannot be fulfilled; maps to an HTTP status."""

    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _minutes(hhmm: str) -> int:
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)


def duration_minutes(start: str, end: str) -> int:
    return _minutes(end) - _minutes(start)


async def load_ground(ground_id: int) -> tuple[Ground, Sport]:
    """Active ground and its sport, or a 404 BookingError."""
    ground = await db.get_ground(ground_id)
    if ground is None or not ground.is_active:
        raise BookingError(f"Ground {ground_id} not found", 404)
    sport = await db.get_sport(ground.sport_id)
    if sport is None:
        raise BookingError(f"Sport {ground.sport_id} not found", 404)
    return ground, sport


def _check_mode(sport: Sport, booking_type: str) -> None:
    if booking_type == "per-person" and not allows_per_person(sport):
        raise BookingError(f"{sport.sport_name} cannot be booked per person")
    if booking_type == "full-ground" and not allows_full_ground(sport):
        raise BookingError(f"{sport.sport_name} cannot be booked as a full ground")


def validate_selection(slots: list[SlotSelection], now: datetime | None = None) -> None:
    """Reject slots in the past and slots overlapping each other."""
    now = now or datetime.now()
    for slot in slots:
        start = datetime.combine(slot.date, time.fromisoformat(slot.start_time))
        if start <= now:
            raise BookingError(
                f"Cannot book a slot in the past ({slot.date.isoformat()} {slot.start_time})"
            )

    by_date: dict[date, list[SlotSelection]] = defaultdict(list)
    for slot in slots:
        for other in by_date[slot.date]:
            if overlaps(slot.start_time, slot.end_time, other.start_time, other.end_time):
                raise BookingError(
                    f"Selected slots overlap on {slot.date.isoformat()} at {slot.start_time}"
                )
        by_date[slot.date].append(slot)


async def quote_price(body: PriceQuoteRequest | BookingCreate) -> PriceBreakdown:
    ground, sport = await load_ground(body.ground_id)
    _check_mode(sport, body.booking_type)
    return await _price(ground, body)


async def _price(ground: Ground, body: PriceQuoteRequest | BookingCreate) -> PriceBreakdown:
    plan = await db.find_plan(ground.id, body.plan_type)
    if plan is None:
        raise BookingError(f"No active {body.plan_type} plan for {ground.ground_name}")
    peak_times = peak_start_times(await db.list_time_slots())
    return calculate_price(
        plan,
        body.slots,
        booking_type=body.booking_type,
        participant_count=body.participant_count,
        peak_times=peak_times,
    )


async def create_booking(
    user_id: str, body: BookingCreate, *, now: datetime | None = None
) -> Booking:
    """Validate, price and store a new booking."""
    ground, sport = await load_ground(body.ground_id)
    _check_mode(sport, body.booking_type)

    capacity = ground_capacity(ground)
    if body.booking_type == "per-person" and body.participant_count > capacity:
        raise BookingError(
            f"{ground.ground_name} holds at most {capacity} participants, "
            f"{body.participant_count} requested"
        )

    validate_selection(body.slots, now)
    breakdown = await _price(ground, body)

    async with db.write_lock():
        by_date: dict[date, list[SlotSelection]] = defaultdict(list)
        for slot in body.slots:
            by_date[slot.date].append(slot)

        for day, selections in by_date.items():
            held = await db.list_ground_slots(ground.id, day)
            for selection in selections:
                conflict = find_conflict(
                    selection,
                    held,
                    user_id=user_id,
                    booking_type=body.booking_type,
                    participant_count=body.participant_count,
                    max_capacity=capacity,
                    per_person_allowed=allows_per_person(sport),
                )
                if conflict:
                    raise BookingError(conflict, 409)

        booking = await db.create_booking(
            user_id,
            sport.id,
            ground.id,
            body.booking_type,
            body.plan_type,
            body.participant_count,
            breakdown.total,
            [
                {
                    "booking_date": line.date,
                    "start_time": line.start_time,
                    "end_time": line.end_time,
                    "duration_minutes": duration_minutes(line.start_time, line.end_time),
                    "amount": round(line.unit_price * breakdown.participants, 2),
                }
                for line in breakdown.lines
            ],
            payment_method=body.payment_method,
            notes=body.notes,
        )

    await notifier.booking_created(booking)
    return booking


async def cancel_booking(
    booking: Booking, *, now: datetime | None = None, reason: str | None = None
) -> tuple[Booking, CancellationQuote]:
    """Cancel under the refund policy and notify the customer."""
    quote = quote_cancellation(booking, now)
    if not quote.can_cancel:
        raise BookingError(quote.reason)

    fields: dict = {
        "status": "cancelled",
        "refund_amount": quote.refund_amount,
        "cancellation_fee": quote.cancellation_fee,
        "cancelled_at": (now or datetime.now()).isoformat(),
    }
    if quote.refund_amount > 0:
        fields["payment_status"] = "refunded"
    if reason:
        fields["notes"] = f"{booking.notes}\n{reason}" if booking.notes else reason

    updated = await db.update_booking(booking.id, fields)
    if updated is None:
        raise BookingError(f"Booking {booking.id} not found", 404)
    logger.info(
        "Booking %s cancelled (%.2fh before start, refund %.2f)",
        booking.id, quote.hours_until, quote.refund_amount,
    )
    await notifier.booking_cancelled(updated, quote)
    return updated, quote


async def change_status(
    booking: Booking, new_status: str, *, notes: str | None = None
) -> Booking:
    """Staff-driven status change along the allowed transitions."""
    if new_status == booking.status:
        raise BookingError(f"Booking is already {new_status}")
    if new_status not in STATUS_TRANSITIONS[booking.status]:
        raise BookingError(f"Cannot change booking from {booking.status} to {new_status}")

    if new_status == "cancelled":
        updated, _ = await cancel_booking(booking, reason=notes)
        return updated

    fields: dict = {"status": new_status}
    if notes:
        fields["notes"] = f"{booking.notes}\n{notes}" if booking.notes else notes
    updated = await db.update_booking(booking.id, fields)
    if updated is None:
        raise BookingError(f"Booking {booking.id} not found", 404)
    await notifier.booking_status_changed(updated, booking.status)
    return updated
