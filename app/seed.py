"""
Demo data for a fresh database: sports, grounds, plans, master time
slots, and one admin and one client account.
"""

from __future__ import annotations

import logging

from app import db
from app.services.passwords import hash_password

logger = logging.getLogger(__name__)

DEMO_USERS = [
    {
        "user_id": "demo-admin-001",
        "email": "admin@demo.com",
        "password": "admin123",
        "first_name": "Admin",
        "last_name": "User",
        "phone": "+1234567891",
        "role": "admin",
    },
    {
        "user_id": "demo-client-001",
        "email": "client@demo.com",
        "password": "client123",
        "first_name": "John",
        "last_name": "Doe",
        "phone": "+1234567890",
        "role": "client",
    },
]

# sport_code, sport_name, booking_type, grounds: (name, code, capacity, amenities, hourly price)
DEMO_CATALOG = [
    ("BAD", "Badminton", "both", [
        ("Badminton Court 1", "BAD-01", 4, "Air Conditioning, Premium Flooring, Professional Net, Racket Rental", 25.0),
    ]),
    ("FTB", "Football", "full-ground", [
        ("Football Turf", "FTB-01", 22, "Artificial Turf, Floodlights, Goal Posts, Changing Rooms", 100.0),
    ]),
    ("BSK", "Basketball", "both", [
        ("Basketball Court", "BSK-01", 10, "Wooden Floor, Professional Hoops, Air Conditioning", 50.0),
    ]),
    ("SWM", "Swimming", "per-person", [
        ("Swimming Pool", "SWM-01", 50, "Olympic Size, Lane Dividers, Lifeguard, Lockers", 15.0),
    ]),
    ("TEN", "Tennis", "both", [
        ("Tennis Court", "TEN-01", 4, "Hard Court, Professional Net, Floodlights, Ball Machine", 40.0),
    ]),
    ("CRK", "Cricket", "full-ground", [
        ("Cricket Ground", "CRK-01", 30, "Natural Pitch, Boundary, Pavilion, Equipment Storage", 150.0),
    ]),
]

# Evening hours are peak
PEAK_HOURS = range(17, 21)


async def seed_demo_data(*, opening_hour: int = 6, closing_hour: int = 22) -> bool:
    """Insert demo data when the catalog is empty. Returns True if seeded."""
    if await db.count_sports() > 0:
        return False

    for user in DEMO_USERS:
        if await db.get_user_credentials(user["email"]) is None:
            await db.create_user(
                user["email"],
                hash_password(user["password"]),
                first_name=user["first_name"],
                last_name=user["last_name"],
                phone=user["phone"],
                role=user["role"],
                user_id=user["user_id"],
            )

    for code, name, booking_type, grounds in DEMO_CATALOG:
        sport = await db.create_sport(
            {"sport_code": code, "sport_name": name, "booking_type": booking_type}
        )
        for ground_name, ground_code, capacity, amenities, hourly in grounds:
            ground = await db.create_ground(
                {
                    "sport_id": sport.id,
                    "ground_name": ground_name,
                    "ground_code": ground_code,
                    "max_capacity": capacity,
                    "facilities": amenities,
                    "location": "Main Campus",
                }
            )
            for plan_type, days, price in (
                ("hourly", 1, hourly),
                ("monthly", 30, hourly * 24),
                ("yearly", 365, hourly * 240),
            ):
                await db.create_plan(
                    {
                        "ground_id": ground.id,
                        "plan_name": f"{ground_name} {plan_type.title()}",
                        "plan_type": plan_type,
                        "duration_days": days,
                        "base_price": price,
                        "peak_hour_multiplier": 1.5 if plan_type == "hourly" else 1.0,
                        "weekend_multiplier": 1.2 if plan_type == "hourly" else 1.0,
                    }
                )

    for hour in range(opening_hour, closing_hour):
        await db.create_time_slot(
            {
                "start_time": f"{hour:02d}:00",
                "end_time": f"{hour + 1:02d}:00",
                "slot_name": f"{hour:02d}:00 - {hour + 1:02d}:00",
                "is_peak_hour": hour in PEAK_HOURS,
            }
        )

    logger.info("Seeded demo catalog (%d sports)", len(DEMO_CATALOG))
    return True
