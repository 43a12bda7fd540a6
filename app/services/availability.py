"""
Slot availability for grounds.

A ground is bookable in one-hour slots between OPENING_HOUR and
CLOSING_HOUR. A slot can be shared by several per-person bookings up to
the ground's capacity, or taken whole by a single full-ground booking.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, time
from typing import Any

from app import db
from app.config import CLOSING_HOUR, DEFAULT_MAX_CAPACITY, OPENING_HOUR
from app.models import FacilitySlot, FacilitySlotsResponse, Ground, SlotSelection, Sport
from app.services.pricing import peak_start_times


def allows_per_person(sport: Sport) -> bool:
    return sport.booking_type in ("per-person", "both")


def allows_full_ground(sport: Sport) -> bool:
    return sport.booking_type in ("full-ground", "both")


def ground_capacity(ground: Ground) -> int:
    return ground.max_capacity or DEFAULT_MAX_CAPACITY


def overlaps(start: str, end: str, other_start: str, other_end: str) -> bool:
    """Half-open interval overlap on HH:MM strings."""
    return start < other_end and end > other_start


def _is_exclusive(held: dict[str, Any], per_person_allowed: bool) -> bool:
    return held["booking_type"] == "full-ground" or not per_person_allowed


def _overlapping(held_slots: Iterable[dict[str, Any]], start: str, end: str) -> list[dict[str, Any]]:
    return [h for h in held_slots if overlaps(h["start_time"], h["end_time"], start, end)]


def build_day_slots(
    ground_id: int,
    day: date,
    held_slots: list[dict[str, Any]],
    *,
    max_capacity: int,
    per_person_allowed: bool,
    peak_times: set[str],
    now: datetime | None = None,
) -> list[FacilitySlot]:
    """Hourly slots for one ground and day, with live capacity."""
    now = now or datetime.now()
    result: list[FacilitySlot] = []

    for hour in range(OPENING_HOUR, CLOSING_HOUR):
        start = f"{hour:02d}:00"
        end = f"{hour + 1:02d}:00"
        holders = _overlapping(held_slots, start, end)

        full_ground = any(_is_exclusive(h, per_person_allowed) for h in holders)
        booked = sum(h["participant_count"] for h in holders)
        capacity = 0 if full_ground else max(0, max_capacity - booked)
        started = datetime.combine(day, time(hour)) <= now

        result.append(
            FacilitySlot(
                id=f"{ground_id}-{day.isoformat()}-{hour}",
                date=day,
                start_time=start,
                end_time=end,
                is_available=capacity > 0 and not started,
                is_peak_hour=start in peak_times,
                booked_count=booked,
                available_capacity=capacity,
                has_full_ground_booking=full_ground,
            )
        )
    return result


def find_conflict(
    selection: SlotSelection,
    held_slots: list[dict[str, Any]],
    *,
    user_id: str,
    booking_type: str,
    participant_count: int,
    max_capacity: int,
    per_person_allowed: bool,
) -> str | None:
    """
    Why the selected slot cannot be booked, or None when it can.

    ``held_slots`` are the active booking slots on the same ground and date.
    """
    label = f"{selection.date.isoformat()} {selection.start_time}-{selection.end_time}"
    holders = _overlapping(held_slots, selection.start_time, selection.end_time)

    if booking_type == "full-ground":
        if any(
            h["user_id"] == user_id and h["start_time"] == selection.start_time
            for h in holders
        ):
            return f"You already have a booking for {label}"
        if holders:
            return f"Slot {label} is already booked"
        return None

    if any(_is_exclusive(h, per_person_allowed) for h in holders):
        return f"Slot {label} is booked for the full ground"

    available = max(0, max_capacity - sum(h["participant_count"] for h in holders))
    if participant_count > available:
        return (
            f"Slot {label} has only {available} spot(s) left, "
            f"{participant_count} requested"
        )
    return None


async def get_facility_slots(
    ground: Ground, sport: Sport, day: date
) -> FacilitySlotsResponse:
    """Load bookings and master slots and build the day's availability."""
    held = await db.list_ground_slots(ground.id, day)
    peak_times = peak_start_times(await db.list_time_slots())
    capacity = ground_capacity(ground)
    return FacilitySlotsResponse(
        ground_id=ground.id,
        date=day,
        max_capacity=capacity,
        slots=build_day_slots(
            ground.id,
            day,
            held,
            max_capacity=capacity,
            per_person_allowed=allows_per_person(sport),
            peak_times=peak_times,
        ),
    )
