"""Shared test fixtures and helpers."""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

import pytest

from barbershop.schemas.booking_schema import Barber, Booking, BookingStatus
from barbershop.schemas.company_schema import (
    CompanyConfig,
    DaySchedule,
    Holiday,
    Shift,
    Weekday,
)
from barbershop.scheduling.status_machine import BookingStatusMachine
from barbershop.tools.booking import BookingOperations
from barbershop.tools.store import InMemoryBookingStore

# Wednesday
NOW = datetime(2025, 9, 10, 10, 7, tzinfo=timezone.utc)
TODAY = NOW.date()
TOMORROW = date(2025, 9, 11)
BARBER_ID = "barber-1"
OTHER_BARBER_ID = "barber-2"


class FixedClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def make_config(
    shifts: Optional[list[tuple[str, str]]] = None,
    closed_days: tuple[Weekday, ...] = (),
    holidays: Optional[list[Holiday]] = None,
    interval: int = 30,
    advance_hours: float = 1,
) -> CompanyConfig:
    """Same shifts every weekday unless listed in ``closed_days``."""
    shift_models = [Shift(start=s, end=e) for s, e in (shifts or [("09:00", "12:00")])]
    working_hours = {
        day: (
            DaySchedule(is_open=False)
            if day in closed_days
            else DaySchedule(is_open=True, shifts=shift_models)
        )
        for day in Weekday
    }
    return CompanyConfig(
        working_hours=working_hours,
        holidays=holidays or [],
        time_slot_interval=interval,
        booking_advance_hours=advance_hours,
    )


def make_booking(
    start: str,
    duration: int = 30,
    booking_id: str = "bk-1",
    barber_id: str = BARBER_ID,
    day: date = TOMORROW,
    status: BookingStatus = BookingStatus.CONFIRMED,
) -> Booking:
    return Booking(
        id=booking_id,
        barber_id=barber_id,
        appointment_date=day,
        appointment_time=start,
        total_duration_minutes=duration,
        status=status,
        total_price=Decimal("5.000"),
    )


def make_store(
    config: Optional[CompanyConfig] = None,
    bookings: Optional[list[Booking]] = None,
    clock: Optional[FixedClock] = None,
) -> InMemoryBookingStore:
    store = InMemoryBookingStore(
        config=config or make_config(),
        barbers=[Barber(id=BARBER_ID, name="Ali"), Barber(id=OTHER_BARBER_ID, name="Sam")],
        clock=clock or FixedClock(),
    )
    for booking in bookings or []:
        store.insert_booking(booking)
    return store


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def store(clock):
    return make_store(clock=clock)


@pytest.fixture
def ops(store, clock):
    return BookingOperations(store, clock=clock)


@pytest.fixture
def status_machine():
    return BookingStatusMachine()
