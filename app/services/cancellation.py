"""
Cancellation policy.

The refund depends on how long before the first booked slot the customer
cancels. Only the amount already paid is refundable; whatever is kept is
the cancellation fee.
"""

from __future__ import annotations

from datetime import datetime, time

from app.models import Booking, CancellationQuote

CANCELLABLE_STATUSES = ("pending", "confirmed")

# (minimum hours before start, refund percentage), checked top-down
REFUND_TIERS: tuple[tuple[float, int], ...] = (
    (24.0, 100),
    (2.0, 50),
)


def booking_start(booking: Booking) -> datetime:
    """Local start datetime of the earliest slot of a booking."""
    if booking.slots:
        first = min(booking.slots, key=lambda s: (s.booking_date, s.start_time))
        return datetime.combine(first.booking_date, time.fromisoformat(first.start_time))
    return datetime.combine(booking.start_date, time.min)


def refund_percentage(hours_until: float) -> int:
    for min_hours, percentage in REFUND_TIERS:
        if hours_until >= min_hours:
            return percentage
    return 0


def _tier_reason(percentage: int) -> str:
    if percentage == 100:
        return "Cancelled 24 hours or more before start: full refund"
    if percentage == 50:
        return "Cancelled between 2 and 24 hours before start: 50% cancellation fee"
    return "Cancelled less than 2 hours before start: no refund"


def quote_cancellation(booking: Booking, now: datetime | None = None) -> CancellationQuote:
    """Work out what cancelling the booking right now would refund."""
    now = now or datetime.now()
    remaining = (booking_start(booking) - now).total_seconds() / 3600
    hours_until = round(remaining, 2)
    paid = round(booking.paid_amount, 2)

    if booking.status not in CANCELLABLE_STATUSES:
        return CancellationQuote(
            booking_id=booking.id,
            can_cancel=False,
            hours_until=hours_until,
            refund_percentage=0,
            paid_amount=paid,
            refund_amount=0.0,
            cancellation_fee=0.0,
            reason=f"Booking is {booking.status} and can no longer be cancelled",
        )

    percentage = refund_percentage(remaining)
    refund = round(paid * percentage / 100, 2)
    reason = _tier_reason(percentage) if paid > 0 else "Nothing paid yet: free cancellation"

    return CancellationQuote(
        booking_id=booking.id,
        can_cancel=True,
        hours_until=hours_until,
        refund_percentage=percentage,
        paid_amount=paid,
        refund_amount=refund,
        cancellation_fee=round(paid - refund, 2),
        reason=reason,
    )
