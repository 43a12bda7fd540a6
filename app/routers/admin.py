"""
Staff endpoints: bookings, payments, users, dashboard statistics,
notification broadcasts and maintenance jobs.
"""

from datetime import date

from fastapi import APIRouter, HTTPException, Query, status

from app import db
from app.dependencies import Pagination, StaffUser
from app.models import (
    Booking,
    BookingListResponse,
    BookingPaymentStatus,
    BookingStatus,
    BookingStatusUpdate,
    BroadcastRequest,
    BroadcastResponse,
    DashboardStats,
    FacilityStats,
    MaintenanceResult,
    Payment,
    PaymentCollect,
    PaymentCollectResponse,
    PaymentListResponse,
    PaymentStatus,
    PaymentStatusUpdate,
    Role,
    User,
    UserListResponse,
    UserUpdate,
)
from app.services import bookings as booking_service
from app.services import payments as payment_service
from app.services import reports
from app.services.maintenance import JOBS
from app.services.notifier import notifier

router = APIRouter(prefix="/api/admin", tags=["admin"])


async def _get_booking(booking_id: int) -> Booking:
    booking = await db.get_booking(booking_id)
    if booking is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Booking {booking_id} not found",
        )
    return booking


# ── Bookings ───────────────────────────────────────────────────────────────

@router.get(
    "/bookings",
    response_model=BookingListResponse,
    operation_id="adminListBookings",
    summary="List all bookings with filters",
)
async def list_bookings(
    staff: StaffUser,
    pagination: Pagination,
    status: BookingStatus | None = Query(None, description="Filter by booking status"),
    payment_status: BookingPaymentStatus | None = Query(None, description="Filter by payment status"),
    user_id: str | None = Query(None, description="Filter by customer"),
    ground_id: int | None = Query(None, description="Filter by ground"),
    date_from: date | None = Query(None, description="Bookings ending on or after this date"),
    date_to: date | None = Query(None, description="Bookings starting on or before this date"),
) -> BookingListResponse:
    items, total = await db.list_bookings(
        user_id=user_id,
        status=status,
        payment_status=payment_status,
        ground_id=ground_id,
        date_from=date_from,
        date_to=date_to,
        limit=pagination.page_size,
        offset=pagination.offset,
    )
    return BookingListResponse(items=items, meta=pagination.meta(total))


@router.patch(
    "/bookings/{booking_id}/status",
    response_model=Booking,
    operation_id="updateBookingStatus",
    summary="Move a booking along its status lifecycle",
)
async def update_booking_status(
    booking_id: int, body: BookingStatusUpdate, staff: StaffUser
) -> Booking:
    booking = await _get_booking(booking_id)
    return await booking_service.change_status(booking, body.status, notes=body.notes)


# ── Payments ───────────────────────────────────────────────────────────────

@router.get(
    "/payments",
    response_model=PaymentListResponse,
    operation_id="adminListPayments",
    summary="List payments",
)
async def list_payments(
    staff: StaffUser,
    pagination: Pagination,
    booking_id: int | None = Query(None, description="Filter by booking"),
    status: PaymentStatus | None = Query(None, description="Filter by payment status"),
) -> PaymentListResponse:
    items, total = await db.list_payments(
        booking_id=booking_id,
        status=status,
        limit=pagination.page_size,
        offset=pagination.offset,
    )
    return PaymentListResponse(items=items, meta=pagination.meta(total))


@router.post(
    "/bookings/{booking_id}/payments",
    response_model=PaymentCollectResponse,
    status_code=status.HTTP_201_CREATED,
    operation_id="collectPayment",
    summary="Record a counter payment and optional discount",
)
async def collect_payment(
    booking_id: int, body: PaymentCollect, staff: StaffUser
) -> PaymentCollectResponse:
    booking = await _get_booking(booking_id)
    return await payment_service.collect_payment(booking, body, staff)


@router.patch(
    "/payments/{payment_id}/status",
    response_model=Payment,
    operation_id="updatePaymentStatus",
    summary="Change a payment's status and resync its booking",
)
async def update_payment_status(
    payment_id: int, body: PaymentStatusUpdate, staff: StaffUser
) -> Payment:
    return await payment_service.set_payment_status(payment_id, body.status)


# ── Users ──────────────────────────────────────────────────────────────────

@router.get(
    "/users",
    response_model=UserListResponse,
    operation_id="adminListUsers",
    summary="List users",
)
async def list_users(
    staff: StaffUser,
    pagination: Pagination,
    role: Role | None = Query(None, description="Filter by role"),
    search: str | None = Query(None, max_length=100, description="Match name or email"),
) -> UserListResponse:
    items, total = await db.list_users(
        role=role,
        search=search,
        limit=pagination.page_size,
        offset=pagination.offset,
    )
    return UserListResponse(items=items, meta=pagination.meta(total))


@router.patch(
    "/users/{user_id}",
    response_model=User,
    operation_id="adminUpdateUser",
    summary="Update a user's profile, role or active flag",
)
async def update_user(user_id: str, body: UserUpdate, staff: StaffUser) -> User:
    target = await db.get_user(user_id)
    if target is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User {user_id} not found",
        )
    if staff.role == "manager":
        if target.role == "admin":
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Managers cannot modify admin users",
            )
        if body.role == "admin":
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Managers cannot grant the admin role",
            )
    if user_id == staff.id and body.is_active is False:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot deactivate your own account",
        )

    updated = await db.update_user(user_id, body.model_dump(exclude_unset=True))
    if updated is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User {user_id} not found",
        )
    return updated


# ── Statistics ─────────────────────────────────────────────────────────────

@router.get(
    "/stats",
    response_model=DashboardStats,
    operation_id="getDashboardStats",
    summary="Dashboard counters and revenue",
)
async def get_stats(staff: StaffUser) -> DashboardStats:
    return await reports.dashboard_stats()


@router.get(
    "/facility-stats",
    response_model=list[FacilityStats],
    operation_id="getFacilityStats",
    summary="Per-ground bookings, revenue and 30-day trend",
)
async def get_facility_stats(staff: StaffUser) -> list[FacilityStats]:
    return await reports.facility_stats()


# ── Notifications ──────────────────────────────────────────────────────────

@router.post(
    "/notifications",
    response_model=BroadcastResponse,
    status_code=status.HTTP_201_CREATED,
    operation_id="broadcastNotification",
    summary="Notify one user, or every active client",
)
async def broadcast(body: BroadcastRequest, staff: StaffUser) -> BroadcastResponse:
    if body.user_id is not None:
        user = await db.get_user(body.user_id)
        if user is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"User {body.user_id} not found",
            )
        recipients = [user]
    else:
        recipients = await db.list_active_clients()

    for user in recipients:
        await notifier.notify(
            user.id,
            body.type,
            body.title,
            body.message,
            channels=body.channels,
            metadata={"sent_by": staff.email},
            user=user,
        )
    return BroadcastResponse(sent=len(recipients))


# ── Maintenance ────────────────────────────────────────────────────────────

@router.post(
    "/maintenance/{job}",
    response_model=MaintenanceResult,
    operation_id="runMaintenanceJob",
    summary="Run one booking housekeeping job now",
)
async def run_maintenance_job(job: str, staff: StaffUser) -> MaintenanceResult:
    runner = JOBS.get(job)
    if runner is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown maintenance job {job}. Available: {', '.join(JOBS)}",
        )
    return await runner()
