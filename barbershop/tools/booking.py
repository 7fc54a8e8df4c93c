"""
Booking operations: the external interface of the availability engine.

Every operation fetches config and bookings fresh from the store. Writes run
validation and the insert/update inside the store's transaction, and the
store's own exclusion check is the safety net: a ConstraintViolation from a
concurrent writer is reported as SLOT_TAKEN, never as an internal error.

Store calls are blocking I/O, so each operation runs in a worker thread.
"""

import asyncio
import uuid
from datetime import date, datetime
from typing import Any, Callable, Optional, TypedDict, Union

from barbershop.errors import ConstraintViolation, FormatError
from barbershop.logging_context import get_request_logger
from barbershop.schemas.booking_schema import (
    Booking,
    BookingStatus,
    BookingTimeCheck,
    OccupiedSlot,
    Rejection,
    RejectionReason,
)
from barbershop.scheduling.availability import (
    AvailabilityEngine,
    earliest_bookable,
    earliest_start_minutes,
)
from barbershop.scheduling.status_machine import BookingStatusMachine, InvalidTransitionError
from barbershop.scheduling.time_math import MINUTES_PER_DAY, from_minutes, to_minutes
from barbershop.scheduling.validator import BookingValidator
from barbershop.scheduling.working_hours import WorkingHoursResolver
from barbershop.tools.services import summarize_services
from barbershop.tools.store import BookingStore
from barbershop.utils import make_confirmation_code, parse_date, parse_instant, utc_now

logger = get_request_logger(__name__)


class AvailabilityResult(TypedDict):
    """Result from get_availability."""

    barber_id: str
    date: str
    service_duration_minutes: int
    shop_open: bool
    slots: list[dict[str, Any]]


class BookingResult(TypedDict, total=False):
    """Result from validate_and_book, reschedule, cancel, or status updates."""

    success: bool
    message: str
    booking: dict[str, Any]
    rejection: dict[str, Any]


class BookingOperations:
    """Async façade over the availability engine, validator, and store."""

    def __init__(self, store: BookingStore, clock: Callable[[], datetime] = utc_now) -> None:
        self._store = store
        self._clock = clock
        self._resolver = WorkingHoursResolver()
        self._engine = AvailabilityEngine(store, resolver=self._resolver, clock=clock)
        self._validator = BookingValidator(store, resolver=self._resolver, clock=clock)

    # ------------------------------------------------------------------ #
    # Read path
    # ------------------------------------------------------------------ #

    async def get_availability(
        self, barber_id: str, day: Union[str, date], service_duration_minutes: int
    ) -> AvailabilityResult:
        """Tagged slot list for one barber and date, plus whether the shop is open."""
        response = await asyncio.to_thread(
            self._engine.get_availability, barber_id, day, service_duration_minutes
        )
        return response.model_dump(mode="json")  # type: ignore[return-value]

    async def get_availability_range(
        self,
        barber_id: str,
        start_day: Union[str, date],
        days: int,
        service_duration_minutes: int,
    ) -> list[AvailabilityResult]:
        responses = await asyncio.to_thread(
            self._engine.get_availability_range,
            barber_id, start_day, days, service_duration_minutes,
        )
        return [r.model_dump(mode="json") for r in responses]  # type: ignore[misc]

    async def get_occupied_slots(self, barber_id: str, day: Union[str, date]) -> dict[str, Any]:
        """Booked ranges for a barber's day and the earliest start still bookable."""
        return await asyncio.to_thread(self._occupied_slots, barber_id, day)

    async def check_booking_time(self, when: Union[str, datetime]) -> dict[str, Any]:
        """Whether the shop is open at ``when`` and it meets advance notice."""
        return await asyncio.to_thread(self._check_booking_time, when)

    async def get_shop_status(self, day: Union[str, date]) -> dict[str, Any]:
        hours = await asyncio.to_thread(self._engine.resolve_hours, day)
        return {
            "date": hours.day.isoformat(),
            "is_open": hours.is_open,
            "holiday": hours.holiday,
            "closed_reason": hours.closed_reason,
            "shifts": [{"start": s.start, "end": s.end} for s in hours.shifts],
        }

    async def find_booking_by_confirmation_code(self, code: str) -> Optional[dict[str, Any]]:
        booking = await asyncio.to_thread(self._store.find_booking_by_confirmation_code, code)
        return booking.model_dump(mode="json") if booking else None

    # ------------------------------------------------------------------ #
    # Write path
    # ------------------------------------------------------------------ #

    async def validate_and_book(
        self,
        barber_id: str,
        day: Union[str, date],
        start_time: str,
        service_ids: list[str],
        customer_ref: str,
        notes: Optional[str] = None,
    ) -> BookingResult:
        """Validate and create a booking in one critical section.

        Raises:
            FormatError: Malformed date/time or an empty service list.
            NotFoundError: Unknown barber or service.
        """
        return await asyncio.to_thread(
            self._book, barber_id, day, start_time, service_ids, customer_ref, notes
        )

    async def reschedule_booking(
        self, booking_id: str, new_day: Union[str, date], new_time: str
    ) -> BookingResult:
        """Move an active booking; it may overlap its own current slot."""
        return await asyncio.to_thread(self._reschedule, booking_id, new_day, new_time)

    async def update_booking_status(
        self, booking_id: str, status: Union[str, BookingStatus]
    ) -> BookingResult:
        return await asyncio.to_thread(self._update_status, booking_id, status)

    async def cancel_booking(self, booking_id: str, reason: Optional[str] = None) -> BookingResult:
        """Cancel a booking. The row is kept with its reason for the audit trail."""
        return await asyncio.to_thread(
            self._update_status, booking_id, BookingStatus.CANCELLED, reason
        )

    # ------------------------------------------------------------------ #
    # Synchronous bodies
    # ------------------------------------------------------------------ #

    def _book(
        self,
        barber_id: str,
        day: Union[str, date],
        start_time: str,
        service_ids: list[str],
        customer_ref: str,
        notes: Optional[str],
    ) -> BookingResult:
        parsed_day = parse_date(day)
        start_time = from_minutes(to_minutes(start_time))
        if not service_ids:
            raise FormatError("services must be a non-empty list of service IDs")

        services = [self._store.get_service_by_id(sid) for sid in service_ids]
        duration, price = summarize_services(services)

        with self._store.transaction():
            verdict = self._validator.validate(barber_id, parsed_day, start_time, duration)
            if not verdict.ok:
                return _rejected(verdict.to_rejection())

            booking = Booking(
                id=str(uuid.uuid4()),
                barber_id=barber_id,
                appointment_date=parsed_day,
                appointment_time=start_time,
                total_duration_minutes=duration,
                status=BookingStatus.PENDING,
                customer_ref=customer_ref,
                service_ids=list(service_ids),
                total_price=price,
                confirmation_code=make_confirmation_code(),
                notes=notes,
                status_history=BookingStatusMachine(clock=self._clock).get_history(),
            )
            try:
                stored = self._store.insert_booking(booking)
            except ConstraintViolation as exc:
                logger.warning("Insert lost a race for barber %s: %s", barber_id, exc)
                return _rejected(_slot_taken())

        logger.info(
            "Booking created: %s for barber %s on %s at %s (%d min)",
            stored.confirmation_code, barber_id, parsed_day, start_time, duration,
        )
        return {
            "success": True,
            "message": (
                f"Booking created for {parsed_day.isoformat()} at {start_time}. "
                f"Confirmation code: {stored.confirmation_code}."
            ),
            "booking": stored.model_dump(mode="json"),
        }

    def _reschedule(
        self, booking_id: str, new_day: Union[str, date], new_time: str
    ) -> BookingResult:
        parsed_day = parse_date(new_day)
        new_time = from_minutes(to_minutes(new_time))

        with self._store.transaction():
            current = self._store.get_booking(booking_id)
            if not current.is_active:
                return {
                    "success": False,
                    "message": (
                        f"Booking {booking_id} is {current.status.value} "
                        "and cannot be rescheduled."
                    ),
                }

            verdict = self._validator.validate(
                current.barber_id,
                parsed_day,
                new_time,
                current.total_duration_minutes,
                exclude_booking_id=current.id,
            )
            if not verdict.ok:
                return _rejected(verdict.to_rejection())

            moved = current.model_copy(
                update={"appointment_date": parsed_day, "appointment_time": new_time}
            )
            try:
                stored = self._store.update_booking(moved)
            except ConstraintViolation as exc:
                logger.warning("Reschedule lost a race for %s: %s", booking_id, exc)
                return _rejected(_slot_taken())

        logger.info("Booking rescheduled: %s to %s %s", booking_id, parsed_day, new_time)
        return {
            "success": True,
            "message": f"Booking rescheduled to {parsed_day.isoformat()} at {new_time}.",
            "booking": stored.model_dump(mode="json"),
        }

    def _update_status(
        self,
        booking_id: str,
        status: Union[str, BookingStatus],
        reason: Optional[str] = None,
    ) -> BookingResult:
        try:
            target = BookingStatus(status)
        except ValueError:
            valid = ", ".join(s.value for s in BookingStatus)
            raise FormatError(f"Status must be one of: {valid}") from None

        with self._store.transaction():
            current = self._store.get_booking(booking_id)
            machine = BookingStatusMachine(
                current.status, history=current.status_history, clock=self._clock
            )
            try:
                machine.transition(target)
            except InvalidTransitionError as exc:
                return {"success": False, "message": str(exc)}

            if target == BookingStatus.CANCELLED:
                stored = self._store.cancel_booking(
                    booking_id, reason, history=machine.get_history()
                )
            else:
                stored = self._store.update_booking_status(
                    booking_id, target, history=machine.get_history()
                )

        logger.info("Booking %s status: %s -> %s", booking_id, current.status.value, target.value)
        return {
            "success": True,
            "message": f"Booking {booking_id} is now {target.value}.",
            "booking": stored.model_dump(mode="json"),
        }

    def _occupied_slots(self, barber_id: str, day: Union[str, date]) -> dict[str, Any]:
        parsed_day = parse_date(day)
        self._store.get_barber(barber_id)
        config = self._store.get_company_config()
        now = self._clock()

        bookings = self._store.get_bookings_for_barber_on_date(barber_id, parsed_day)
        occupied = [
            OccupiedSlot(
                booking_id=b.id,
                confirmation_code=b.confirmation_code,
                start_time=b.appointment_time,
                end_time=from_minutes(min(b.end_minutes, MINUTES_PER_DAY)),
                duration_minutes=b.total_duration_minutes,
                status=b.status,
            ).model_dump(mode="json")
            for b in bookings
        ]

        floor = earliest_start_minutes(
            parsed_day, now, config.booking_advance_hours, config.time_slot_interval
        )
        hours = self._resolver.resolve(parsed_day, config)
        return {
            "date": parsed_day.isoformat(),
            "barber_id": barber_id,
            "occupied_slots": occupied,
            "total_occupied": len(occupied),
            "shop_open": hours.is_open,
            "min_booking_time": earliest_bookable(now, config.booking_advance_hours).isoformat(),
            "earliest_booking_time": (
                from_minutes(floor) if floor is not None and floor < MINUTES_PER_DAY else None
            ),
            "can_book_on_date": hours.is_open and floor != MINUTES_PER_DAY,
        }

    def _check_booking_time(self, when: Union[str, datetime]) -> dict[str, Any]:
        instant = parse_instant(when)
        config = self._store.get_company_config()
        now = self._clock()

        minute = from_minutes(instant.hour * 60 + instant.minute)
        is_open = self._resolver.is_open_at(instant.date(), minute, config)
        meets_advance = instant >= earliest_bookable(now, config.booking_advance_hours)
        hours_until = (instant - now).total_seconds() / 3600

        check = BookingTimeCheck(
            booking_datetime=instant,
            can_book=is_open and meets_advance,
            is_shop_open=is_open,
            hours_until_booking=round(hours_until, 2),
            min_advance_hours=config.booking_advance_hours,
            meets_advance_requirement=meets_advance,
            currency=config.currency,
        )
        return check.model_dump(mode="json")


def _slot_taken() -> Rejection:
    return Rejection(
        reason=RejectionReason.SLOT_TAKEN,
        message="That time was just booked by someone else. Please pick a different time.",
    )


def _rejected(rejection: Rejection) -> BookingResult:
    return {
        "success": False,
        "message": rejection.message,
        "rejection": rejection.model_dump(mode="json"),
    }
