"""
Public catalog endpoints: sports, grounds, plans, time slots, facilities,
slot availability and price quotes.
"""

from datetime import date

from fastapi import APIRouter, HTTPException, Query, status

from app import db
from app.models import (
    Facility,
    FacilitySlotsResponse,
    Ground,
    Plan,
    PriceBreakdown,
    PriceQuoteRequest,
    Sport,
    TimeSlot,
)
from app.services import catalog
from app.services.availability import get_facility_slots
from app.services.bookings import load_ground, quote_price

router = APIRouter(prefix="/api", tags=["catalog"])


@router.get(
    "/sports",
    response_model=list[Sport],
    operation_id="listSports",
    summary="List active sports",
)
async def list_sports() -> list[Sport]:
    return await db.list_sports()


@router.get(
    "/grounds",
    response_model=list[Ground],
    operation_id="listGrounds",
    summary="List active grounds",
)
async def list_grounds(
    sport_id: int | None = Query(None, description="Filter by sport"),
) -> list[Ground]:
    return await db.list_grounds(sport_id=sport_id)


@router.get(
    "/plans",
    response_model=list[Plan],
    operation_id="listPlans",
    summary="List active pricing plans",
)
async def list_plans(
    ground_id: int | None = Query(None, description="Filter by ground"),
) -> list[Plan]:
    return await db.list_plans(ground_id=ground_id)


@router.get(
    "/time-slots",
    response_model=list[TimeSlot],
    operation_id="listTimeSlots",
    summary="List active master time slots",
)
async def list_time_slots() -> list[TimeSlot]:
    return await db.list_time_slots()


@router.get(
    "/facilities",
    response_model=list[Facility],
    operation_id="listFacilities",
    summary="List bookable facilities with rates and amenities",
)
async def list_facilities(
    sport_id: int | None = Query(None, description="Filter by sport"),
) -> list[Facility]:
    return await catalog.list_facilities(sport_id=sport_id)


@router.get(
    "/facilities/popular",
    response_model=list[Facility],
    operation_id="listPopularFacilities",
    summary="Featured facilities for the home page",
)
async def list_popular_facilities() -> list[Facility]:
    return (await catalog.list_facilities())[: catalog.POPULAR_LIMIT]


@router.get(
    "/facilities/{ground_id}",
    response_model=Facility,
    operation_id="getFacility",
    summary="Get one facility",
)
async def get_facility(ground_id: int) -> Facility:
    facility = await catalog.get_facility(ground_id)
    if facility is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Facility {ground_id} not found",
        )
    return facility


@router.get(
    "/facilities/{ground_id}/slots",
    response_model=FacilitySlotsResponse,
    operation_id="getFacilitySlots",
    summary="Hourly slot availability for a facility on a date",
)
async def get_slots(
    ground_id: int,
    day: date | None = Query(None, alias="date", description="Day to check (defaults to today)"),
) -> FacilitySlotsResponse:
    ground, sport = await load_ground(ground_id)
    return await get_facility_slots(ground, sport, day or date.today())


@router.post(
    "/pricing/quote",
    response_model=PriceBreakdown,
    operation_id="quotePrice",
    summary="Price a slot selection without booking it",
)
async def quote(body: PriceQuoteRequest) -> PriceBreakdown:
    return await quote_price(body)
