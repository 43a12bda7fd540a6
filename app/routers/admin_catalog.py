"""
Staff catalog management: sports, grounds, plans and master time slots.
"""

from fastapi import APIRouter, HTTPException, status

from app import db
from app.dependencies import StaffUser
from app.models import (
    Ground,
    GroundCreate,
    GroundUpdate,
    Plan,
    PlanCreate,
    PlanUpdate,
    Sport,
    SportCreate,
    SportUpdate,
    TimeSlot,
    TimeSlotCreate,
    TimeSlotUpdate,
)

router = APIRouter(prefix="/api/admin", tags=["admin-catalog"])

PLAN_DURATIONS = {"hourly": 1, "monthly": 30, "yearly": 365}


def _not_found(kind: str, item_id: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"{kind} {item_id} not found",
    )


def _conflict(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)


# ── Sports ─────────────────────────────────────────────────────────────────

@router.get(
    "/sports",
    response_model=list[Sport],
    operation_id="adminListSports",
    summary="List all sports including inactive ones",
)
async def list_sports(staff: StaffUser) -> list[Sport]:
    return await db.list_sports(active_only=False)


@router.post(
    "/sports",
    response_model=Sport,
    status_code=status.HTTP_201_CREATED,
    operation_id="createSport",
    summary="Create a sport",
)
async def create_sport(body: SportCreate, staff: StaffUser) -> Sport:
    try:
        return await db.create_sport(body.model_dump())
    except db.IntegrityError:
        raise _conflict(f"Sport code {body.sport_code} already exists") from None


@router.patch(
    "/sports/{sport_id}",
    response_model=Sport,
    operation_id="updateSport",
    summary="Update a sport",
)
async def update_sport(sport_id: int, body: SportUpdate, staff: StaffUser) -> Sport:
    try:
        sport = await db.update_sport(sport_id, body.model_dump(exclude_unset=True))
    except db.IntegrityError:
        raise _conflict(f"Sport code {body.sport_code} already exists") from None
    if sport is None:
        raise _not_found("Sport", sport_id)
    return sport


@router.delete(
    "/sports/{sport_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    operation_id="deleteSport",
    summary="Delete a sport without grounds",
)
async def delete_sport(sport_id: int, staff: StaffUser) -> None:
    try:
        deleted = await db.delete_sport(sport_id)
    except db.IntegrityError:
        raise _conflict(f"Sport {sport_id} still has grounds or bookings") from None
    if not deleted:
        raise _not_found("Sport", sport_id)


# ── Grounds ────────────────────────────────────────────────────────────────

@router.get(
    "/grounds",
    response_model=list[Ground],
    operation_id="adminListGrounds",
    summary="List all grounds including inactive ones",
)
async def list_grounds(staff: StaffUser) -> list[Ground]:
    return await db.list_grounds(active_only=False)


@router.post(
    "/grounds",
    response_model=Ground,
    status_code=status.HTTP_201_CREATED,
    operation_id="createGround",
    summary="Create a ground",
)
async def create_ground(body: GroundCreate, staff: StaffUser) -> Ground:
    if await db.get_sport(body.sport_id) is None:
        raise _not_found("Sport", body.sport_id)
    try:
        return await db.create_ground(body.model_dump())
    except db.IntegrityError:
        raise _conflict(f"Ground code {body.ground_code} already exists") from None


@router.patch(
    "/grounds/{ground_id}",
    response_model=Ground,
    operation_id="updateGround",
    summary="Update a ground",
)
async def update_ground(ground_id: int, body: GroundUpdate, staff: StaffUser) -> Ground:
    if body.sport_id is not None and await db.get_sport(body.sport_id) is None:
        raise _not_found("Sport", body.sport_id)
    try:
        ground = await db.update_ground(ground_id, body.model_dump(exclude_unset=True))
    except db.IntegrityError:
        raise _conflict(f"Ground code {body.ground_code} already exists") from None
    if ground is None:
        raise _not_found("Ground", ground_id)
    return ground


@router.delete(
    "/grounds/{ground_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    operation_id="deleteGround",
    summary="Delete a ground without bookings",
)
async def delete_ground(ground_id: int, staff: StaffUser) -> None:
    try:
        deleted = await db.delete_ground(ground_id)
    except db.IntegrityError:
        raise _conflict(
            f"Ground {ground_id} has bookings, deactivate it instead"
        ) from None
    if not deleted:
        raise _not_found("Ground", ground_id)


# ── Plans ──────────────────────────────────────────────────────────────────

@router.get(
    "/plans",
    response_model=list[Plan],
    operation_id="adminListPlans",
    summary="List all plans including inactive ones",
)
async def list_plans(staff: StaffUser) -> list[Plan]:
    return await db.list_plans(active_only=False)


@router.post(
    "/plans",
    response_model=Plan,
    status_code=status.HTTP_201_CREATED,
    operation_id="createPlan",
    summary="Create a pricing plan for a ground",
)
async def create_plan(body: PlanCreate, staff: StaffUser) -> Plan:
    if await db.get_ground(body.ground_id) is None:
        raise _not_found("Ground", body.ground_id)
    fields = body.model_dump()
    if fields["duration_days"] is None:
        fields["duration_days"] = PLAN_DURATIONS[body.plan_type]
    return await db.create_plan(fields)


@router.patch(
    "/plans/{plan_id}",
    response_model=Plan,
    operation_id="updatePlan",
    summary="Update a pricing plan",
)
async def update_plan(plan_id: int, body: PlanUpdate, staff: StaffUser) -> Plan:
    plan = await db.update_plan(plan_id, body.model_dump(exclude_unset=True))
    if plan is None:
        raise _not_found("Plan", plan_id)
    return plan


@router.delete(
    "/plans/{plan_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    operation_id="deletePlan",
    summary="Delete a pricing plan",
)
async def delete_plan(plan_id: int, staff: StaffUser) -> None:
    if not await db.delete_plan(plan_id):
        raise _not_found("Plan", plan_id)


# ── Time slots ─────────────────────────────────────────────────────────────

@router.get(
    "/time-slots",
    response_model=list[TimeSlot],
    operation_id="adminListTimeSlots",
    summary="List all master time slots including inactive ones",
)
async def list_time_slots(staff: StaffUser) -> list[TimeSlot]:
    return await db.list_time_slots(active_only=False)


@router.post(
    "/time-slots",
    response_model=TimeSlot,
    status_code=status.HTTP_201_CREATED,
    operation_id="createTimeSlot",
    summary="Create a master time slot",
)
async def create_time_slot(body: TimeSlotCreate, staff: StaffUser) -> TimeSlot:
    return await db.create_time_slot(body.model_dump())


@router.patch(
    "/time-slots/{slot_id}",
    response_model=TimeSlot,
    operation_id="updateTimeSlot",
    summary="Update a master time slot",
)
async def update_time_slot(slot_id: int, body: TimeSlotUpdate, staff: StaffUser) -> TimeSlot:
    existing = await db.get_time_slot(slot_id)
    if existing is None:
        raise _not_found("Time slot", slot_id)
    fields = body.model_dump(exclude_unset=True)
    start = fields.get("start_time", existing.start_time)
    end = fields.get("end_time", existing.end_time)
    if end <= start:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="end_time must be after start_time",
        )
    slot = await db.update_time_slot(slot_id, fields)
    if slot is None:
        raise _not_found("Time slot", slot_id)
    return slot


@router.delete(
    "/time-slots/{slot_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    operation_id="deleteTimeSlot",
    summary="Delete a master time slot",
)
async def delete_time_slot(slot_id: int, staff: StaffUser) -> None:
    if not await db.delete_time_slot(slot_id):
        raise _not_found("Time slot", slot_id)
