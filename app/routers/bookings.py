"""
Customer booking endpoints (authenticated).
"""

from fastapi import APIRouter, HTTPException, Query, Request, status

from app import db
from app.dependencies import CurrentUser, Pagination
from app.models import (
    Booking,
    BookingCreate,
    BookingListResponse,
    BookingStatus,
    CancellationQuote,
    CancellationResult,
    Payment,
    PaymentCreate,
    PaymentHistory,
    PaymentStatusSummary,
    UserInfo,
)
from app.rate_limit import BOOKING, limiter
from app.services import bookings as booking_service
from app.services import payments as payment_service
from app.services.cancellation import quote_cancellation

router = APIRouter(prefix="/api/bookings", tags=["bookings"])


async def get_visible_booking(booking_id: int, user: UserInfo) -> Booking:
    """The booking if it exists and the user owns it (staff see all)."""
    booking = await db.get_booking(booking_id)
    if booking is None or (booking.user_id != user.id and not user.is_staff):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Booking {booking_id} not found",
        )
    return booking


@router.post(
    "",
    response_model=Booking,
    status_code=status.HTTP_201_CREATED,
    operation_id="createBooking",
    summary="Book one or more slots on a ground",
)
@limiter.limit(BOOKING)
async def create_booking(
    request: Request, body: BookingCreate, current_user: CurrentUser
) -> Booking:
    return await booking_service.create_booking(current_user.id, body)


@router.get(
    "",
    response_model=BookingListResponse,
    operation_id="listMyBookings",
    summary="List the authenticated user's bookings",
)
async def list_my_bookings(
    current_user: CurrentUser,
    pagination: Pagination,
    status: BookingStatus | None = Query(None, description="Filter by booking status"),
) -> BookingListResponse:
    items, total = await db.list_bookings(
        user_id=current_user.id,
        status=status,
        limit=pagination.page_size,
        offset=pagination.offset,
    )
    return BookingListResponse(items=items, meta=pagination.meta(total))


@router.get(
    "/{booking_id}",
    response_model=Booking,
    operation_id="getBooking",
    summary="Get a booking",
)
async def get_booking(booking_id: int, current_user: CurrentUser) -> Booking:
    return await get_visible_booking(booking_id, current_user)


@router.get(
    "/{booking_id}/cancellation-quote",
    response_model=CancellationQuote,
    operation_id="getCancellationQuote",
    summary="Preview the refund for cancelling a booking now",
)
async def get_cancellation_quote(booking_id: int, current_user: CurrentUser) -> CancellationQuote:
    booking = await get_visible_booking(booking_id, current_user)
    return quote_cancellation(booking)


@router.post(
    "/{booking_id}/cancel",
    response_model=CancellationResult,
    operation_id="cancelBooking",
    summary="Cancel a booking under the refund policy",
)
async def cancel_booking(booking_id: int, current_user: CurrentUser) -> CancellationResult:
    booking = await get_visible_booking(booking_id, current_user)
    updated, quote = await booking_service.cancel_booking(booking)
    return CancellationResult(
        message="Booking cancelled successfully",
        booking=updated,
        quote=quote,
    )


@router.get(
    "/{booking_id}/payments",
    response_model=PaymentHistory,
    operation_id="getBookingPayments",
    summary="Payment history and balance of a booking",
)
async def get_booking_payments(booking_id: int, current_user: CurrentUser) -> PaymentHistory:
    booking = await get_visible_booking(booking_id, current_user)
    return await payment_service.payment_history(booking)


@router.post(
    "/{booking_id}/payments",
    response_model=Payment,
    status_code=status.HTTP_201_CREATED,
    operation_id="recordBookingPayment",
    summary="Record a settled payment for one of your bookings",
)
@limiter.limit(BOOKING)
async def record_booking_payment(
    request: Request,
    booking_id: int,
    body: PaymentCreate,
    current_user: CurrentUser,
) -> Payment:
    booking = await get_visible_booking(booking_id, current_user)
    return await payment_service.record_customer_payment(booking, body, current_user)


@router.get(
    "/{booking_id}/payment-status",
    response_model=PaymentStatusSummary,
    operation_id="getBookingPaymentStatus",
    summary="Amount due, paid and outstanding for a booking",
)
async def get_payment_status(booking_id: int, current_user: CurrentUser) -> PaymentStatusSummary:
    booking = await get_visible_booking(booking_id, current_user)
    return payment_service.payment_summary(booking)
