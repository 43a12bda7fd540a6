"""
Dynamic pricing for multi-slot bookings.

Each selected slot costs the plan's base price, scaled by the peak-hour
multiplier when the slot falls in a peak master time slot and by the
weekend multiplier on Saturdays and Sundays. Per-person bookings pay the
slot sum once per participant; full-ground bookings pay it once.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date

from app.models import Plan, PriceBreakdown, PriceLine, SlotSelection


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5


def peak_start_times(time_slots: Iterable) -> set[str]:
    """Start times (HH:MM) of the master slots flagged as peak hours."""
    return {ts.start_time for ts in time_slots if ts.is_peak_hour and ts.is_active}


def slot_unit_price(plan: Plan, day: date, *, is_peak: bool) -> float:
    price = plan.base_price
    if is_peak:
        price *= plan.peak_hour_multiplier
    if is_weekend(day):
        price *= plan.weekend_multiplier
    return round(price, 2)


def calculate_price(
    plan: Plan,
    slots: list[SlotSelection],
    *,
    booking_type: str,
    participant_count: int,
    peak_times: set[str],
) -> PriceBreakdown:
    """Price a selection of slots under one plan."""
    participants = participant_count if booking_type == "per-person" else 1

    lines: list[PriceLine] = []
    for slot in sorted(slots, key=lambda s: (s.date, s.start_time)):
        is_peak = slot.start_time in peak_times
        lines.append(
            PriceLine(
                date=slot.date,
                start_time=slot.start_time,
                end_time=slot.end_time,
                is_peak_hour=is_peak,
                is_weekend=is_weekend(slot.date),
                unit_price=slot_unit_price(plan, slot.date, is_peak=is_peak),
            )
        )

    subtotal = round(sum(line.unit_price for line in lines), 2)
    peak_slots = sum(1 for line in lines if line.is_peak_hour)

    return PriceBreakdown(
        base_price=plan.base_price,
        peak_hour_multiplier=plan.peak_hour_multiplier,
        weekend_multiplier=plan.weekend_multiplier,
        peak_slots=peak_slots,
        non_peak_slots=len(lines) - peak_slots,
        weekend_slots=sum(1 for line in lines if line.is_weekend),
        participants=participants,
        lines=lines,
        subtotal=subtotal,
        total=round(subtotal * participants, 2),
    )
