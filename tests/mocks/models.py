"""
Pre-built model instances for use in tests.

The demo seed creates the catalog below on every fresh test database, so
the ground ids are stable:

    from tests.mocks.models import MOCK_USER, BADMINTON_GROUND, make_booking
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

from app.models import Booking, BookingSlot, Plan, SlotSelection, UserInfo

# ── Users ──────────────────────────────────────────────────────────────────
# The first two are the seeded demo accounts.

MOCK_USER = UserInfo(id="demo-client-001", email="client@demo.com", role="client")

MOCK_ADMIN = UserInfo(id="demo-admin-001", email="admin@demo.com", role="admin")

MOCK_OTHER_USER = UserInfo(id="other-client-001", email="other@example.com", role="client")

MOCK_MANAGER = UserInfo(id="manager-001", email="manager@example.com", role="manager")

# ── Seeded catalog ─────────────────────────────────────────────────────────
# Badminton: both modes, capacity 4, 25/hour
# Football: full-ground only, 100/hour
# Swimming: per-person only, capacity 50, 15/hour

BADMINTON_GROUND = 1
FOOTBALL_GROUND = 2
BASKETBALL_GROUND = 3
SWIMMING_GROUND = 4

BADMINTON_HOURLY = 25.0
FOOTBALL_HOURLY = 100.0


# ── Dates ──────────────────────────────────────────────────────────────────

def next_weekday(weekday: int, *, min_days: int = 3) -> date:
    """The first date at least ``min_days`` ahead falling on ``weekday`` (Mon=0)."""
    day = date.today() + timedelta(days=min_days)
    while day.weekday() != weekday:
        day += timedelta(days=1)
    return day


# ── Factories ──────────────────────────────────────────────────────────────

_CREATED = datetime(2026, 1, 1, tzinfo=timezone.utc)


def make_plan(
    base_price: float = 100.0,
    peak: float = 1.5,
    weekend: float = 1.2,
    plan_type: str = "hourly",
) -> Plan:
    return Plan(
        id=1,
        ground_id=1,
        plan_name="Test Plan",
        plan_type=plan_type,
        duration_days=1,
        base_price=base_price,
        peak_hour_multiplier=peak,
        weekend_multiplier=weekend,
        created_at=_CREATED,
    )


def make_selection(day: date, start: str = "10:00", end: str | None = None) -> SlotSelection:
    if end is None:
        end = f"{int(start[:2]) + 1:02d}:{start[3:]}"
    return SlotSelection(date=day, start_time=start, end_time=end)


def make_booking(
    day: date | None = None,
    start: str = "10:00",
    *,
    status: str = "confirmed",
    payment_status: str = "pending",
    total_amount: float = 100.0,
    paid_amount: float = 0.0,
    discount_amount: float = 0.0,
    booking_id: int = 1,
) -> Booking:
    """Factory to create a single-slot Booking with sensible defaults."""
    day = day or date.today() + timedelta(days=3)
    end = (datetime.combine(day, time.fromisoformat(start)) + timedelta(hours=1)).strftime("%H:%M")
    return Booking(
        id=booking_id,
        user_id=MOCK_USER.id,
        sport_id=1,
        ground_id=BADMINTON_GROUND,
        ground_name="Badminton Court 1",
        sport_name="Badminton",
        booking_type="per-person",
        plan_type="hourly",
        start_date=day,
        end_date=day,
        participant_count=1,
        total_amount=total_amount,
        paid_amount=paid_amount,
        discount_amount=discount_amount,
        status=status,
        payment_status=payment_status,
        created_at=_CREATED,
        updated_at=_CREATED,
        slots=[
            BookingSlot(
                id=booking_id,
                booking_date=day,
                start_time=start,
                end_time=end,
                duration_minutes=60,
                amount=total_amount,
                participant_count=1,
            )
        ],
    )


def held(
    start: str,
    end: str,
    *,
    participants: int = 1,
    booking_type: str = "per-person",
    user_id: str = "someone-else",
) -> dict:
    """A held slot as returned by ``db.list_ground_slots``."""
    return {
        "start_time": start,
        "end_time": end,
        "participant_count": participants,
        "booking_id": 99,
        "user_id": user_id,
        "booking_type": booking_type,
    }
