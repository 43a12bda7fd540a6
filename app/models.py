"""Pydantic models for the Sports Arena Booking API."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, EmailStr, Field, model_validator

_HHMM = r"^([01]\d|2[0-3]):[0-5]\d$"

Role = Literal["client", "manager", "admin"]
SportBookingType = Literal["per-person", "full-ground", "both"]
BookingMode = Literal["per-person", "full-ground"]
PlanType = Literal["hourly", "monthly", "yearly"]
BookingStatus = Literal["pending", "confirmed", "cancelled", "completed"]
BookingPaymentStatus = Literal["pending", "partial", "completed", "failed", "refunded"]
PaymentMethod = Literal["cash", "upi", "card", "bank_transfer", "admin"]
PaymentStatus = Literal["pending", "completed", "failed", "refunded"]


# ── Common ─────────────────────────────────────────────────────────────────

class PaginationMeta(BaseModel):
    page: int
    page_size: int
    total_items: int
    total_pages: int


class MessageResponse(BaseModel):
    message: str


class WorkerHealth(BaseModel):
    running: bool
    last_run_at: datetime | None = None
    failures: int = 0


class HealthResponse(BaseModel):
    status: Literal["ok", "degraded"]
    version: str
    timestamp: datetime
    database: Literal["ok", "unavailable"]
    maintenance: WorkerHealth


# ── Users / auth ───────────────────────────────────────────────────────────

class NotificationPreferences(BaseModel):
    email: bool = True
    sms: bool = True
    marketing: bool = False


class UserInfo(BaseModel):
    """Identity carried in the session cookie."""
    id: str
    email: EmailStr
    role: Role = "client"
    first_name: str | None = None
    last_name: str | None = None

    @property
    def is_staff(self) -> bool:
        return self.role in ("admin", "manager")


class User(BaseModel):
    id: str
    email: EmailStr
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    role: Role = "client"
    is_active: bool = True
    notification_preferences: NotificationPreferences = Field(
        default_factory=NotificationPreferences
    )
    created_at: datetime
    updated_at: datetime

    @property
    def full_name(self) -> str:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) or self.email


class SignupRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    phone: str | None = Field(None, max_length=20)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)
    portal: Literal["client", "admin"] | None = Field(
        None, description="Admin portal logins are restricted to staff accounts"
    )


class AuthResponse(BaseModel):
    message: str
    user: User


class ProfileUpdate(BaseModel):
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    phone: str | None = Field(None, max_length=20)
    notification_preferences: NotificationPreferences | None = None


class UserUpdate(BaseModel):
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    phone: str | None = Field(None, max_length=20)
    role: Role | None = None
    is_active: bool | None = None


class UserListResponse(BaseModel):
    items: list[User]
    meta: PaginationMeta


# ── Catalog ────────────────────────────────────────────────────────────────

class Sport(BaseModel):
    id: int
    sport_code: str
    sport_name: str
    booking_type: SportBookingType
    description: str | None = None
    image_url: str | None = None
    is_active: bool = True
    created_at: datetime


class SportCreate(BaseModel):
    sport_code: str = Field(..., min_length=1, max_length=20)
    sport_name: str = Field(..., min_length=1, max_length=100)
    booking_type: SportBookingType = "both"
    description: str | None = None
    image_url: str | None = None
    is_active: bool = True


class SportUpdate(BaseModel):
    sport_code: str | None = Field(None, min_length=1, max_length=20)
    sport_name: str | None = Field(None, min_length=1, max_length=100)
    booking_type: SportBookingType | None = None
    description: str | None = None
    image_url: str | None = None
    is_active: bool | None = None


class Ground(BaseModel):
    id: int
    sport_id: int
    ground_name: str
    ground_code: str
    location: str | None = None
    description: str | None = None
    facilities: str | None = Field(None, description="Comma separated amenities")
    max_capacity: int | None = None
    image_url: str | None = None
    is_active: bool = True
    created_at: datetime


class GroundCreate(BaseModel):
    sport_id: int
    ground_name: str = Field(..., min_length=1, max_length=100)
    ground_code: str = Field(..., min_length=1, max_length=20)
    location: str | None = None
    description: str | None = None
    facilities: str | None = None
    max_capacity: int | None = Field(None, ge=1)
    image_url: str | None = None
    is_active: bool = True


class GroundUpdate(BaseModel):
    sport_id: int | None = None
    ground_name: str | None = Field(None, min_length=1, max_length=100)
    ground_code: str | None = Field(None, min_length=1, max_length=20)
    location: str | None = None
    description: str | None = None
    facilities: str | None = None
    max_capacity: int | None = Field(None, ge=1)
    image_url: str | None = None
    is_active: bool | None = None


class Plan(BaseModel):
    id: int
    ground_id: int
    plan_name: str
    plan_type: PlanType
    duration_days: int
    base_price: float
    peak_hour_multiplier: float = 1.0
    weekend_multiplier: float = 1.0
    description: str | None = None
    is_active: bool = True
    created_at: datetime


class PlanCreate(BaseModel):
    ground_id: int
    plan_name: str = Field(..., min_length=1, max_length=100)
    plan_type: PlanType
    duration_days: int | None = Field(
        None, ge=1, description="Defaults to 1 / 30 / 365 for hourly / monthly / yearly"
    )
    base_price: float = Field(..., ge=0)
    peak_hour_multiplier: float = Field(1.0, ge=0)
    weekend_multiplier: float = Field(1.0, ge=0)
    description: str | None = None
    is_active: bool = True


class PlanUpdate(BaseModel):
    plan_name: str | None = Field(None, min_length=1, max_length=100)
    plan_type: PlanType | None = None
    duration_days: int | None = Field(None, ge=1)
    base_price: float | None = Field(None, ge=0)
    peak_hour_multiplier: float | None = Field(None, ge=0)
    weekend_multiplier: float | None = Field(None, ge=0)
    description: str | None = None
    is_active: bool | None = None


class TimeSlot(BaseModel):
    id: int
    start_time: str
    end_time: str
    slot_name: str | None = None
    is_peak_hour: bool = False
    is_available: bool = True
    is_active: bool = True


class TimeSlotCreate(BaseModel):
    start_time: str = Field(..., pattern=_HHMM, description="HH:MM")
    end_time: str = Field(..., pattern=_HHMM, description="HH:MM")
    slot_name: str | None = None
    is_peak_hour: bool = False
    is_available: bool = True
    is_active: bool = True

    @model_validator(mode="after")
    def _check_order(self) -> TimeSlotCreate:
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class TimeSlotUpdate(BaseModel):
    start_time: str | None = Field(None, pattern=_HHMM)
    end_time: str | None = Field(None, pattern=_HHMM)
    slot_name: str | None = None
    is_peak_hour: bool | None = None
    is_available: bool | None = None
    is_active: bool | None = None


class FacilityBookingTypes(BaseModel):
    per_person: bool
    full_ground: bool


class Facility(BaseModel):
    """A ground as shown to customers, merged with its sport and plans."""
    id: int
    name: str
    code: str
    sport_id: int
    sport_name: str
    sport_code: str
    location: str | None = None
    description: str | None = None
    image_url: str | None = None
    capacity: int
    amenities: list[str]
    hourly_rate: float
    monthly_rate: float
    yearly_rate: float
    booking_types: FacilityBookingTypes
    plans: list[Plan]


class FacilitySlot(BaseModel):
    id: str
    date: date
    start_time: str
    end_time: str
    is_available: bool
    is_peak_hour: bool
    booked_count: int
    available_capacity: int
    has_full_ground_booking: bool


class FacilitySlotsResponse(BaseModel):
    ground_id: int
    date: date
    max_capacity: int
    slots: list[FacilitySlot]


# ── Pricing ────────────────────────────────────────────────────────────────

class SlotSelection(BaseModel):
    date: date
    start_time: str = Field(..., pattern=_HHMM)
    end_time: str = Field(..., pattern=_HHMM)

    @model_validator(mode="after")
    def _check_order(self) -> SlotSelection:
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class PriceQuoteRequest(BaseModel):
    ground_id: int
    booking_type: BookingMode
    plan_type: PlanType = "hourly"
    participant_count: int = Field(1, ge=1)
    slots: list[SlotSelection] = Field(..., min_length=1)


class PriceLine(BaseModel):
    date: date
    start_time: str
    end_time: str
    is_peak_hour: bool
    is_weekend: bool
    unit_price: float


class PriceBreakdown(BaseModel):
    base_price: float
    peak_hour_multiplier: float
    weekend_multiplier: float
    peak_slots: int
    non_peak_slots: int
    weekend_slots: int
    participants: int
    lines: list[PriceLine]
    subtotal: float
    total: float


# ── Bookings ───────────────────────────────────────────────────────────────

class BookingCreate(BaseModel):
    ground_id: int
    booking_type: BookingMode
    plan_type: PlanType = "hourly"
    participant_count: int = Field(1, ge=1)
    slots: list[SlotSelection] = Field(..., min_length=1)
    payment_method: PaymentMethod | None = None
    notes: str | None = Field(None, max_length=1000)


class BookingSlot(BaseModel):
    id: int
    booking_date: date
    start_time: str
    end_time: str
    duration_minutes: int
    amount: float
    participant_count: int


class Booking(BaseModel):
    id: int
    user_id: str
    sport_id: int
    ground_id: int
    ground_name: str | None = None
    sport_name: str | None = None
    booking_type: BookingMode
    plan_type: PlanType
    start_date: date
    end_date: date
    participant_count: int
    total_amount: float
    paid_amount: float = 0.0
    discount_amount: float = 0.0
    discount_reason: str | None = None
    status: BookingStatus
    payment_status: BookingPaymentStatus
    payment_method: str | None = None
    notes: str | None = None
    refund_amount: float = 0.0
    cancellation_fee: float = 0.0
    cancelled_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    slots: list[BookingSlot] = Field(default_factory=list)

    @property
    def amount_due(self) -> float:
        return round(max(0.0, self.total_amount - self.discount_amount), 2)

    @property
    def balance_due(self) -> float:
        return round(max(0.0, self.amount_due - self.paid_amount), 2)


class BookingListResponse(BaseModel):
    items: list[Booking]
    meta: PaginationMeta


class BookingStatusUpdate(BaseModel):
    status: BookingStatus
    notes: str | None = Field(None, max_length=1000)


class CancellationQuote(BaseModel):
    booking_id: int
    can_cancel: bool
    hours_until: float
    refund_percentage: int
    paid_amount: float
    refund_amount: float
    cancellation_fee: float
    reason: str


class CancellationResult(BaseModel):
    message: str
    booking: Booking
    quote: CancellationQuote


# ── Payments ───────────────────────────────────────────────────────────────

class Payment(BaseModel):
    id: int
    booking_id: int
    user_id: str
    amount: float
    payment_method: PaymentMethod
    transaction_id: str | None = None
    status: PaymentStatus
    gateway_response: dict[str, Any] | None = None
    discount_amount: float = 0.0
    discount_reason: str | None = None
    processed_at: datetime | None = None
    created_at: datetime


class PaymentCreate(BaseModel):
    """A settled payment reported by the customer (e.g. a UPI reference)."""
    amount: float = Field(..., gt=0)
    payment_method: PaymentMethod
    transaction_id: str | None = Field(None, max_length=100)


class PaymentCollect(BaseModel):
    """A payment taken at the counter by staff."""
    amount: float = Field(..., ge=0)
    payment_method: PaymentMethod = "cash"
    transaction_id: str | None = Field(None, max_length=100)
    discount_amount: float = Field(0.0, ge=0)
    discount_reason: str | None = Field(None, max_length=255)
    notes: str | None = Field(None, max_length=1000)

    @model_validator(mode="after")
    def _check_amounts(self) -> PaymentCollect:
        if self.amount <= 0 and self.discount_amount <= 0:
            raise ValueError("amount or discount_amount must be positive")
        return self


class PaymentCollectResponse(BaseModel):
    payment: Payment | None
    booking: Booking
    remaining_balance: float
    is_fully_paid: bool
    message: str


class PaymentStatusUpdate(BaseModel):
    status: PaymentStatus


class PaymentListResponse(BaseModel):
    items: list[Payment]
    meta: PaginationMeta


class PaymentHistory(BaseModel):
    booking_id: int
    total_amount: float
    discount_amount: float
    amount_due: float
    paid_amount: float
    balance_due: float
    payment_status: BookingPaymentStatus
    payments: list[Payment]


class PaymentStatusSummary(BaseModel):
    booking_id: int
    status: BookingStatus
    payment_status: BookingPaymentStatus
    amount_due: float
    paid_amount: float
    balance_due: float
    is_fully_paid: bool


# ── Receipts ───────────────────────────────────────────────────────────────

class Receipt(BaseModel):
    receipt_id: str
    booking_id: int
    payment_id: int
    customer_name: str
    customer_email: str
    customer_phone: str | None = None
    facility_name: str
    sport_name: str
    booking_date: date
    start_time: str
    end_time: str
    participants: int
    total_booking_amount: float
    discount_amount: float
    amount_due: float
    paid_amount: float
    total_paid_before_this: float
    balance_amount: float
    payment_method: str
    transaction_id: str | None = None
    payment_date: datetime
    payment_status: BookingPaymentStatus
    sms_text: str


class ReceiptSendResponse(BaseModel):
    receipt_id: str
    email_sent: bool
    sms_sent: bool


# ── Notifications ──────────────────────────────────────────────────────────

class Notification(BaseModel):
    id: int
    user_id: str
    type: str
    title: str
    message: str
    channels: list[str]
    is_read: bool
    sent_at: datetime
    metadata: dict[str, Any] | None = None
    related_booking_id: int | None = None


class NotificationListResponse(BaseModel):
    items: list[Notification]
    unread_count: int


class BroadcastRequest(BaseModel):
    user_id: str | None = Field(None, description="Omit to notify every active client")
    type: str = Field("announcement", max_length=50)
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=2000)
    channels: list[Literal["in_app", "email", "sms"]] = Field(
        default_factory=lambda: ["in_app"]
    )


class BroadcastResponse(BaseModel):
    sent: int


# ── Admin ──────────────────────────────────────────────────────────────────

class DashboardStats(BaseModel):
    today_bookings: int
    total_bookings: int
    today_revenue: float
    total_revenue: float
    active_users: int
    active_grounds: int
    pending_bookings: int
    confirmed_bookings: int
    completed_bookings: int
    cancelled_bookings: int
    live_sessions: int


class FacilityStats(BaseModel):
    ground_id: int
    ground_name: str
    sport_name: str
    total_bookings: int
    active_bookings: int
    revenue: float
    bookings_last_30_days: int
    bookings_previous_30_days: int
    booking_trend: float


class MaintenanceResult(BaseModel):
    job: str
    processed: int
    updated: int
    skipped: int = 0
    issues: list[str] = Field(default_factory=list)


class Report(BaseModel):
    report_type: str
    group_by: Literal["day", "week", "month"]
    start_date: date | None = None
    end_date: date | None = None
    rows: list[dict[str, Any]]
