"""
Collaborator interface for config, reference data, and booking persistence,
plus an in-memory implementation.

In production the interface is backed by a relational store with an
exclusion constraint on ``(barber_id, date, time range)`` for active
bookings. The in-memory store enforces the same constraint under a lock
so the engine's race-condition handling can be exercised without one.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import date, datetime
from typing import Callable, ContextManager, Iterator, Optional, Protocol

from barbershop.errors import ConstraintViolation, NotFoundError
from barbershop.schemas.booking_schema import (
    Barber,
    Booking,
    BookingStatus,
    Service,
    StatusChange,
)
from barbershop.schemas.company_schema import CompanyConfig, DaySchedule, Shift, Weekday
from barbershop.scheduling.time_math import from_minutes, ranges_overlap
from barbershop.tools.services import build_catalog
from barbershop.utils import utc_now

logger = logging.getLogger(__name__)


class BookingStore(Protocol):
    """Everything the engine reads from or writes to persistence."""

    def get_company_config(self) -> CompanyConfig: ...

    def get_barber(self, barber_id: str) -> Barber: ...

    def get_service_by_id(self, service_id: str) -> Service: ...

    def get_bookings_for_barber_on_date(self, barber_id: str, day: date) -> list[Booking]:
        """Active (pending/confirmed) bookings only, ordered by start time."""
        ...

    def get_booking(self, booking_id: str) -> Booking: ...

    def find_booking_by_confirmation_code(self, code: str) -> Optional[Booking]: ...

    def insert_booking(self, booking: Booking) -> Booking:
        """Persist a new booking; raises ConstraintViolation on overlap."""
        ...

    def update_booking(self, booking: Booking) -> Booking:
        """Replace a stored booking; raises ConstraintViolation on overlap."""
        ...

    def update_booking_status(
        self,
        booking_id: str,
        status: BookingStatus,
        history: Optional[list[StatusChange]] = None,
    ) -> Booking: ...

    def cancel_booking(
        self,
        booking_id: str,
        reason: Optional[str] = None,
        history: Optional[list[StatusChange]] = None,
    ) -> Booking: ...

    def transaction(self) -> ContextManager[None]:
        """Critical section spanning validation and the write that follows."""
        ...


def default_company_config() -> CompanyConfig:
    """Two shifts with a lunch break, short Friday, closed Sunday."""
    split_day = DaySchedule(
        is_open=True,
        shifts=[Shift(start="09:00", end="13:00"), Shift(start="14:00", end="20:00")],
    )
    return CompanyConfig(
        working_hours={
            Weekday.MONDAY: split_day,
            Weekday.TUESDAY: split_day,
            Weekday.WEDNESDAY: split_day,
            Weekday.THURSDAY: split_day,
            Weekday.FRIDAY: DaySchedule(
                is_open=True, shifts=[Shift(start="14:00", end="20:00")]
            ),
            Weekday.SATURDAY: split_day,
            Weekday.SUNDAY: DaySchedule(is_open=False),
        },
    )


class InMemoryBookingStore:
    """Dict-backed store; bookings are copied in and out so callers cannot mutate rows."""

    def __init__(
        self,
        config: Optional[CompanyConfig] = None,
        barbers: Optional[list[Barber]] = None,
        services: Optional[dict[str, Service]] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._config = config or default_company_config()
        self._barbers: dict[str, Barber] = {b.id: b for b in barbers or []}
        self._services: dict[str, Service] = services if services is not None else build_catalog()
        self._bookings: dict[str, Booking] = {}
        self._lock = threading.RLock()
        self._clock = clock

    # ------------------------------------------------------------------ #
    # Reference data
    # ------------------------------------------------------------------ #

    def set_company_config(self, config: CompanyConfig) -> None:
        self._config = config

    def add_barber(self, barber: Barber) -> None:
        self._barbers[barber.id] = barber

    def get_company_config(self) -> CompanyConfig:
        return self._config.model_copy(deep=True)

    def get_barber(self, barber_id: str) -> Barber:
        barber = self._barbers.get(barber_id)
        if barber is None or not barber.is_active:
            raise NotFoundError("barber", barber_id)
        return barber

    def get_service_by_id(self, service_id: str) -> Service:
        service = self._services.get(service_id)
        if service is None or not service.is_active:
            raise NotFoundError("service", service_id)
        return service

    # ------------------------------------------------------------------ #
    # Bookings
    # ------------------------------------------------------------------ #

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            yield

    def get_bookings_for_barber_on_date(self, barber_id: str, day: date) -> list[Booking]:
        with self._lock:
            rows = [
                b.model_copy()
                for b in self._bookings.values()
                if b.barber_id == barber_id and b.appointment_date == day and b.is_active
            ]
        return sorted(rows, key=lambda b: b.start_minutes)

    def get_booking(self, booking_id: str) -> Booking:
        with self._lock:
            booking = self._bookings.get(booking_id)
            if booking is None:
                raise NotFoundError("booking", booking_id)
            return booking.model_copy()

    def find_booking_by_confirmation_code(self, code: str) -> Optional[Booking]:
        normalized = code.strip().upper()
        with self._lock:
            for booking in self._bookings.values():
                if (booking.confirmation_code or "").upper() == normalized:
                    return booking.model_copy()
        return None

    def insert_booking(self, booking: Booking) -> Booking:
        with self._lock:
            if booking.id in self._bookings:
                raise ValueError(f"Booking id {booking.id} already exists")
            self._check_exclusion(booking)
            now = self._clock()
            stored = booking.model_copy(update={"created_at": now, "updated_at": now})
            self._bookings[stored.id] = stored
            logger.debug("Inserted booking %s", stored.id)
            return stored.model_copy()

    def update_booking(self, booking: Booking) -> Booking:
        with self._lock:
            if booking.id not in self._bookings:
                raise NotFoundError("booking", booking.id)
            self._check_exclusion(booking)
            stored = booking.model_copy(update={"updated_at": self._clock()})
            self._bookings[stored.id] = stored
            return stored.model_copy()

    def update_booking_status(
        self,
        booking_id: str,
        status: BookingStatus,
        history: Optional[list[StatusChange]] = None,
    ) -> Booking:
        return self._set_status(booking_id, {"status": status}, history)

    def cancel_booking(
        self,
        booking_id: str,
        reason: Optional[str] = None,
        history: Optional[list[StatusChange]] = None,
    ) -> Booking:
        return self._set_status(
            booking_id,
            {"status": BookingStatus.CANCELLED, "cancellation_reason": reason},
            history,
        )

    def _set_status(
        self,
        booking_id: str,
        changes: dict,
        history: Optional[list[StatusChange]],
    ) -> Booking:
        with self._lock:
            current = self.get_booking(booking_id)
            if history is not None:
                changes["status_history"] = list(history)
            return self.update_booking(current.model_copy(update=changes))

    def all_bookings(self) -> list[Booking]:
        with self._lock:
            return [b.model_copy() for b in self._bookings.values()]

    def _check_exclusion(self, booking: Booking) -> None:
        """Storage-level no-overlap rule for active bookings of one barber."""
        if not booking.is_active:
            return
        for other in self._bookings.values():
            if (
                other.id == booking.id
                or not other.is_active
                or other.barber_id != booking.barber_id
                or other.appointment_date != booking.appointment_date
            ):
                continue
            if ranges_overlap(
                booking.start_minutes, booking.end_minutes,
                other.start_minutes, other.end_minutes,
            ):
                logger.warning(
                    "Exclusion constraint rejected %s: overlaps %s (%s-%s)",
                    booking.id, other.id,
                    other.appointment_time, from_minutes(other.end_minutes),
                )
                raise ConstraintViolation(
                    booking.barber_id,
                    f"Barber {booking.barber_id} already has booking {other.id} "
                    f"at {other.appointment_time} on {other.appointment_date}",
                )
