"""
Write-path validation for a single proposed appointment.

Runs the same rules as the availability listing (advance notice, opening
hours, barber conflicts) against fresh config and bookings. Callers run it
inside the store's transaction together with the insert or update, so the
decision and the write see the same bookings.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Callable, Optional, Union

from barbershop.errors import FormatError
from barbershop.logging_context import get_request_logger
from barbershop.schemas.booking_schema import Booking, Rejection, RejectionReason
from barbershop.scheduling.availability import earliest_bookable
from barbershop.scheduling.conflicts import BookingConflictChecker
from barbershop.scheduling.time_math import TimeLike, from_minutes, to_minutes
from barbershop.scheduling.working_hours import CLOSED_HOLIDAY, WorkingHoursResolver
from barbershop.tools.store import BookingStore
from barbershop.utils import parse_date, utc_now

logger = get_request_logger(__name__)


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one proposed appointment."""
    ok: bool
    reason: Optional[RejectionReason] = None
    message: str = ""
    conflict: Optional[Booking] = None

    @classmethod
    def accepted(cls) -> "ValidationResult":
        return cls(ok=True)

    @classmethod
    def rejected(
        cls, reason: RejectionReason, message: str, conflict: Optional[Booking] = None
    ) -> "ValidationResult":
        return cls(ok=False, reason=reason, message=message, conflict=conflict)

    def to_rejection(self) -> Rejection:
        if self.ok or self.reason is None:
            raise ValueError("An accepted result has no rejection")
        return Rejection(reason=self.reason, message=self.message)


class BookingValidator:
    """Checks advance notice, opening hours, and conflicts, in that order."""

    def __init__(
        self,
        store: BookingStore,
        resolver: Optional[WorkingHoursResolver] = None,
        checker: Optional[BookingConflictChecker] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._resolver = resolver or WorkingHoursResolver()
        self._checker = checker or BookingConflictChecker()
        self._clock = clock

    def validate(
        self,
        barber_id: str,
        day: Union[str, date],
        start_time: TimeLike,
        total_duration_minutes: int,
        exclude_booking_id: Optional[str] = None,
    ) -> ValidationResult:
        """
        Validate a proposed appointment.

        Args:
            barber_id: Barber who would take the appointment.
            day: Appointment date.
            start_time: Start time, ``HH:MM``.
            total_duration_minutes: Summed duration of all requested services.
            exclude_booking_id: On reschedule, the booking being moved; it may
                overlap its own current slot.

        Raises:
            FormatError: On malformed date, time, or duration.
            NotFoundError: If the barber is unknown.
        """
        parsed_day = parse_date(day)
        start = to_minutes(start_time)
        if (
            not isinstance(total_duration_minutes, int)
            or isinstance(total_duration_minutes, bool)
            or total_duration_minutes <= 0
        ):
            raise FormatError(
                f"Duration must be a positive number of minutes, got {total_duration_minutes!r}"
            )
        self._store.get_barber(barber_id)

        config = self._store.get_company_config()
        now = self._clock()
        end = start + total_duration_minutes

        appointment = datetime.combine(
            parsed_day, time(start // 60, start % 60), tzinfo=timezone.utc
        )
        if appointment < earliest_bookable(now, config.booking_advance_hours):
            return self._reject(
                RejectionReason.ADVANCE_NOTICE,
                f"Appointments must be booked at least {config.booking_advance_hours:g} "
                "hour(s) in advance. Please choose a later time.",
            )

        hours = self._resolver.resolve(parsed_day, config)
        if not hours.is_open:
            why = (
                f"for {hours.holiday}"
                if hours.closed_reason == CLOSED_HOLIDAY
                else "on that day"
            )
            return self._reject(
                RejectionReason.SHOP_CLOSED,
                f"The shop is closed {why} ({parsed_day.isoformat()}).",
            )
        if hours.shift_containing(start, end) is None:
            opening = ", ".join(f"{s.start}-{s.end}" for s in hours.shifts)
            return self._reject(
                RejectionReason.SHOP_CLOSED,
                f"{from_minutes(start)}-{from_minutes(end)} is outside opening hours "
                f"({opening}) on {parsed_day.isoformat()}.",
            )

        bookings = self._store.get_bookings_for_barber_on_date(barber_id, parsed_day)
        conflict = self._checker.find_conflict(start, total_duration_minutes, bookings, exclude_booking_id)
        if conflict is not None:
            return self._reject(
                RejectionReason.SLOT_TAKEN,
                f"The barber is already booked from {conflict.appointment_time} to "
                f"{from_minutes(conflict.end_minutes)}. Please pick a different time.",
                conflict,
            )

        return ValidationResult.accepted()

    def _reject(
        self, reason: RejectionReason, message: str, conflict: Optional[Booking] = None
    ) -> ValidationResult:
        logger.info("Booking rejected (%s): %s", reason.value, message)
        return ValidationResult.rejected(reason, message, conflict)
