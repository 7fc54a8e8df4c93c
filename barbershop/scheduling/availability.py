"""
Availability engine: the single implementation of "which slots can this
barber take on this date".

Pipeline per day:
1. Resolve the day's open shifts (holidays, weekly schedule).
2. Apply the advance-notice floor for the earliest bookable start.
3. Generate candidates on the configured slot interval.
4. Fetch the barber's active bookings for the day in one store call.
5. Tag each candidate available only if every interval-sized piece of the
   service is free.

Booked candidates are returned tagged unavailable rather than removed, so
callers can tell "booked" apart from "outside business hours" (which never
appears at all).
"""

import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Iterator, Optional, Sequence, Union

from barbershop.config import settings
from barbershop.errors import FormatError
from barbershop.logging_context import bind_request_context, get_request_logger
from barbershop.schemas.booking_schema import AvailabilityResponse, Booking, Slot
from barbershop.schemas.company_schema import CompanyConfig
from barbershop.scheduling.conflicts import BookingConflictChecker
from barbershop.scheduling.slot_generator import SlotGenerator
from barbershop.scheduling.time_math import (
    MINUTES_PER_DAY,
    round_up_to_interval,
    to_minutes,
)
from barbershop.scheduling.working_hours import DayHours, WorkingHoursResolver
from barbershop.tools.store import BookingStore
from barbershop.utils import parse_date, utc_now

logger = get_request_logger(__name__)


def earliest_bookable(now: datetime, advance_hours: float) -> datetime:
    """The first instant that satisfies the advance-notice rule."""
    return now.astimezone(timezone.utc) + timedelta(hours=advance_hours)


def earliest_start_minutes(
    day: date, now: datetime, advance_hours: float, interval: int
) -> Optional[int]:
    """Advance-notice floor for ``day`` in minutes since midnight.

    Returns None when the cutoff falls before ``day`` (no floor), and
    MINUTES_PER_DAY when it falls after ``day`` (nothing left to book).
    Otherwise the cutoff is rounded up to the next interval boundary.
    """
    cutoff = earliest_bookable(now, advance_hours)
    if cutoff.date() < day:
        return None
    if cutoff.date() > day:
        return MINUTES_PER_DAY
    midnight = datetime.combine(day, time(0, 0), tzinfo=timezone.utc)
    elapsed = (cutoff - midnight).total_seconds() / 60
    return min(round_up_to_interval(elapsed, interval), MINUTES_PER_DAY)


def service_sub_units(
    start: int, duration_minutes: int, interval: int
) -> Iterator[tuple[int, int]]:
    """Split ``[start, start + duration)`` into interval-sized pieces.

    The count is rounded up and the last piece is clipped to the end of the
    service, so a duration that is not a multiple of the interval is still
    covered in full.
    """
    end = start + duration_minutes
    for k in range(math.ceil(duration_minutes / interval)):
        unit_start = start + k * interval
        yield unit_start, min(unit_start + interval, end)


def slot_timestamp(day: date, start_time: str) -> str:
    minutes = to_minutes(start_time)
    instant = datetime.combine(
        day, time(minutes // 60, minutes % 60), tzinfo=timezone.utc
    )
    return instant.isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class DayAvailability:
    """Engine-internal result for one day before it is wrapped for callers."""
    hours: DayHours
    slots: list[Slot]


class AvailabilityEngine:
    """Computes tagged slot lists for a barber, date, and service duration."""

    def __init__(
        self,
        store: BookingStore,
        resolver: Optional[WorkingHoursResolver] = None,
        generator: Optional[SlotGenerator] = None,
        checker: Optional[BookingConflictChecker] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._resolver = resolver or WorkingHoursResolver()
        self._generator = generator or SlotGenerator()
        self._checker = checker or BookingConflictChecker()
        self._clock = clock

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def get_available_slots(
        self,
        barber_id: str,
        day: Union[str, date],
        service_duration_minutes: int,
    ) -> list[Slot]:
        """All candidate slots for the day, each tagged available or not."""
        return self.get_availability(barber_id, day, service_duration_minutes).slots

    def get_availability(
        self,
        barber_id: str,
        day: Union[str, date],
        service_duration_minutes: int,
    ) -> AvailabilityResponse:
        parsed = parse_date(day)
        _check_duration(service_duration_minutes)
        self._store.get_barber(barber_id)

        config = self._store.get_company_config()
        result = self._compute_day(
            barber_id, parsed, service_duration_minutes, config, self._clock()
        )
        return AvailabilityResponse(
            barber_id=barber_id,
            date=parsed,
            service_duration_minutes=service_duration_minutes,
            shop_open=result.hours.is_open,
            slots=result.slots,
        )

    def get_availability_range(
        self,
        barber_id: str,
        start_day: Union[str, date],
        days: int,
        service_duration_minutes: int,
    ) -> list[AvailabilityResponse]:
        """Availability for ``days`` consecutive dates, ascending by date.

        Each day only touches its own bookings, so days are computed
        concurrently; the output order is preserved.
        """
        first = parse_date(start_day)
        _check_duration(service_duration_minutes)
        max_days = settings.availability.max_days
        if not 1 <= days <= max_days:
            raise FormatError(f"days must be between 1 and {max_days}, got {days}")
        self._store.get_barber(barber_id)

        config = self._store.get_company_config()
        now = self._clock()
        dates = [first + timedelta(days=offset) for offset in range(days)]

        compute_day = bind_request_context(self._compute_day)
        with ThreadPoolExecutor(max_workers=settings.availability.workers) as pool:
            results = list(pool.map(
                lambda d: compute_day(barber_id, d, service_duration_minutes, config, now),
                dates,
            ))

        return [
            AvailabilityResponse(
                barber_id=barber_id,
                date=d,
                service_duration_minutes=service_duration_minutes,
                shop_open=result.hours.is_open,
                slots=result.slots,
            )
            for d, result in zip(dates, results)
        ]

    def resolve_hours(self, day: Union[str, date]) -> DayHours:
        """Resolved opening hours for a date, using fresh config."""
        return self._resolver.resolve(parse_date(day), self._store.get_company_config())

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _compute_day(
        self,
        barber_id: str,
        day: date,
        duration: int,
        config: CompanyConfig,
        now: datetime,
    ) -> DayAvailability:
        hours = self._resolver.resolve(day, config)
        if not hours.is_open:
            logger.debug("No slots for %s on %s: closed (%s)", barber_id, day, hours.closed_reason)
            return DayAvailability(hours=hours, slots=[])

        interval = config.time_slot_interval
        floor = earliest_start_minutes(day, now, config.booking_advance_hours, interval)
        candidates = self._generator.generate(hours.shifts, interval, duration, floor)
        if not candidates:
            return DayAvailability(hours=hours, slots=[])

        bookings = self._store.get_bookings_for_barber_on_date(barber_id, day)
        slots = [
            Slot(
                start_time=candidate,
                iso_timestamp=slot_timestamp(day, candidate),
                available=self._is_free(to_minutes(candidate), duration, interval, bookings),
            )
            for candidate in candidates
        ]
        logger.debug(
            "Barber %s on %s: %d candidates, %d available",
            barber_id, day, len(slots), sum(1 for s in slots if s.available),
        )
        return DayAvailability(hours=hours, slots=slots)

    def _is_free(
        self, start: int, duration: int, interval: int, bookings: Sequence[Booking]
    ) -> bool:
        return not any(
            self._checker.is_blocked(unit_start, unit_end - unit_start, bookings)
            for unit_start, unit_end in service_sub_units(start, duration, interval)
        )


def _check_duration(duration: int) -> None:
    if not isinstance(duration, int) or isinstance(duration, bool) or duration <= 0:
        raise FormatError(f"Service duration must be a positive number of minutes, got {duration!r}")
