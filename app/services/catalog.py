"""
Customer-facing facility view: each active ground merged with its sport
and pricing plans.
"""

from __future__ import annotations

from collections import defaultdict

from app import db
from app.models import Facility, FacilityBookingTypes, Ground, Plan, Sport
from app.services.availability import allows_full_ground, allows_per_person, ground_capacity

POPULAR_LIMIT = 6


def split_amenities(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


def _plan_price(plans: list[Plan], plan_type: str) -> float | None:
    for plan in plans:
        if plan.plan_type == plan_type:
            return plan.base_price
    return None


def build_facility(ground: Ground, sport: Sport, plans: list[Plan]) -> Facility:
    hourly = _plan_price(plans, "hourly") or 0.0
    monthly = _plan_price(plans, "monthly")
    yearly = _plan_price(plans, "yearly")
    return Facility(
        id=ground.id,
        name=ground.ground_name,
        code=ground.ground_code,
        sport_id=sport.id,
        sport_name=sport.sport_name,
        sport_code=sport.sport_code,
        location=ground.location,
        description=ground.description or sport.description,
        image_url=ground.image_url or sport.image_url,
        capacity=ground_capacity(ground),
        amenities=split_amenities(ground.facilities),
        hourly_rate=hourly,
        monthly_rate=monthly if monthly is not None else round(hourly * 30, 2),
        yearly_rate=yearly if yearly is not None else round(hourly * 365, 2),
        booking_types=FacilityBookingTypes(
            per_person=allows_per_person(sport),
            full_ground=allows_full_ground(sport),
        ),
        plans=plans,
    )


async def list_facilities(*, sport_id: int | None = None) -> list[Facility]:
    sports = {s.id: s for s in await db.list_sports()}
    plans_by_ground: dict[int, list[Plan]] = defaultdict(list)
    for plan in await db.list_plans():
        plans_by_ground[plan.ground_id].append(plan)

    return [
        build_facility(ground, sports[ground.sport_id], plans_by_ground[ground.id])
        for ground in await db.list_grounds(sport_id=sport_id)
        if ground.sport_id in sports
    ]


async def get_facility(ground_id: int) -> Facility | None:
    ground = await db.get_ground(ground_id)
    if ground is None or not ground.is_active:
        return None
    sport = await db.get_sport(ground.sport_id)
    if sport is None or not sport.is_active:
        return None
    return build_facility(ground, sport, await db.list_plans(ground_id=ground_id))
