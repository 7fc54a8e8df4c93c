"""Booking, service, and availability data models."""

from datetime import date as Date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from barbershop.scheduling.time_math import to_minutes


class BookingStatus(str, Enum):
    """Lifecycle status of a booking."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


# Only these statuses occupy a barber's time.
ACTIVE_STATUSES: frozenset[BookingStatus] = frozenset(
    {BookingStatus.PENDING, BookingStatus.CONFIRMED}
)


class RejectionReason(str, Enum):
    """Why a proposed booking was refused. All are user-correctable."""
    ADVANCE_NOTICE = "ADVANCE_NOTICE"
    SHOP_CLOSED = "SHOP_CLOSED"
    SLOT_TAKEN = "SLOT_TAKEN"


class Barber(BaseModel):
    """Barber identity; everything else about a barber lives elsewhere."""
    id: str
    name: str
    is_active: bool = True


class Service(BaseModel):
    """Bookable service with its duration and price."""
    id: str
    name: str
    duration_minutes: int = Field(gt=0)
    price: Decimal = Field(ge=0)
    category: str = "general"
    is_active: bool = True


class StatusChange(BaseModel):
    """One recorded status visit in a booking's history."""
    status: BookingStatus
    entered_at: datetime
    previous: Optional[BookingStatus] = None


class Booking(BaseModel):
    """A barber appointment occupying ``[appointment_time, +duration)``."""
    id: str
    barber_id: str
    appointment_date: Date
    appointment_time: str
    total_duration_minutes: int = Field(gt=0)
    status: BookingStatus = BookingStatus.PENDING
    customer_ref: str = ""
    service_ids: list[str] = Field(default_factory=list)
    total_price: Decimal = Decimal("0")
    confirmation_code: Optional[str] = None
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    status_history: list[StatusChange] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("appointment_time")
    @classmethod
    def _check_time(cls, value: str) -> str:
        to_minutes(value)
        return value.strip()

    @property
    def start_minutes(self) -> int:
        return to_minutes(self.appointment_time)

    @property
    def end_minutes(self) -> int:
        # May exceed 24:00 for a booking that runs past midnight.
        return self.start_minutes + self.total_duration_minutes

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES


class Slot(BaseModel):
    """Single candidate start time for a barber on a date."""
    start_time: str
    iso_timestamp: str
    available: bool


class AvailabilityResponse(BaseModel):
    """Slot listing for one barber, date, and service duration."""
    barber_id: str
    date: Date
    service_duration_minutes: int
    shop_open: bool
    slots: list[Slot] = Field(default_factory=list)

    @property
    def available_slots(self) -> list[Slot]:
        return [slot for slot in self.slots if slot.available]


class Rejection(BaseModel):
    """Refusal of a proposed booking with a message suitable for the customer."""
    reason: RejectionReason
    message: str


class OccupiedSlot(BaseModel):
    """Booked time range shown to staff when planning a barber's day."""
    booking_id: str
    confirmation_code: Optional[str] = None
    start_time: str
    end_time: str
    duration_minutes: int
    status: BookingStatus


class BookingTimeCheck(BaseModel):
    """Whether a specific instant can be booked right now."""
    booking_datetime: datetime
    can_book: bool
    is_shop_open: bool
    hours_until_booking: float
    min_advance_hours: float
    meets_advance_requirement: bool
    currency: str
