"""Company configuration models: weekly working hours, shifts, and holidays."""

from datetime import date as Date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from barbershop.config import MAX_SLOT_INTERVAL_MINUTES, settings
from barbershop.scheduling.time_math import to_minutes


class Weekday(str, Enum):
    """Weekday keys of the working-hours mapping, Monday first."""
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def for_date(cls, day: Date) -> "Weekday":
        return list(cls)[day.weekday()]


class Shift(BaseModel):
    """A contiguous open interval within a single day."""

    model_config = ConfigDict(frozen=True)

    start: str
    end: str

    @field_validator("start")
    @classmethod
    def _check_start(cls, value: str) -> str:
        to_minutes(value)
        return value.strip()

    @field_validator("end")
    @classmethod
    def _check_end(cls, value: str) -> str:
        to_minutes(value, allow_end_of_day=True)
        return value.strip()

    @model_validator(mode="after")
    def _check_order(self) -> "Shift":
        if self.start_minutes >= self.end_minutes:
            raise ValueError(f"Shift start {self.start} must be before end {self.end}")
        return self

    @property
    def start_minutes(self) -> int:
        return to_minutes(self.start)

    @property
    def end_minutes(self) -> int:
        return to_minutes(self.end, allow_end_of_day=True)


def _sorted_disjoint(shifts: list[Shift]) -> list[Shift]:
    ordered = sorted(shifts, key=lambda s: s.start_minutes)
    for previous, current in zip(ordered, ordered[1:]):
        if current.start_minutes < previous.end_minutes:
            raise ValueError(
                f"Shifts {previous.start}-{previous.end} and "
                f"{current.start}-{current.end} overlap"
            )
    return ordered


class DaySchedule(BaseModel):
    """Opening state and ordered shifts for one weekday."""

    model_config = ConfigDict(populate_by_name=True)

    is_open: bool = Field(alias="isOpen")
    shifts: list[Shift] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_shifts(self) -> "DaySchedule":
        if not self.is_open and self.shifts:
            raise ValueError("A closed day must not define shifts")
        self.shifts = _sorted_disjoint(self.shifts)
        return self


class Holiday(BaseModel):
    """A closure or special-hours day; recurring holidays repeat every year."""

    model_config = ConfigDict(populate_by_name=True)

    date: Date
    name: str
    is_recurring: bool = Field(default=False, alias="isRecurring")
    custom_hours: Optional[list[Shift]] = Field(default=None, alias="customHours")

    @field_validator("custom_hours")
    @classmethod
    def _order_custom_hours(cls, value: Optional[list[Shift]]) -> Optional[list[Shift]]:
        if value is None:
            return None
        return _sorted_disjoint(value)

    def matches(self, day: Date) -> bool:
        if self.date == day:
            return True
        return self.is_recurring and (self.date.month, self.date.day) == (day.month, day.day)


class CompanyConfig(BaseModel):
    """Shop-wide scheduling configuration, fetched fresh for every request."""

    working_hours: dict[Weekday, DaySchedule]
    holidays: list[Holiday] = Field(default_factory=list)
    booking_advance_hours: float = Field(
        default_factory=lambda: settings.shop.booking_advance_hours, ge=0
    )
    time_slot_interval: int = Field(
        default_factory=lambda: settings.shop.time_slot_interval,
        ge=1,
        le=MAX_SLOT_INTERVAL_MINUTES,
    )
    currency: str = Field(default_factory=lambda: settings.shop.currency)
    default_service_duration: int = Field(
        default_factory=lambda: settings.shop.default_service_duration, ge=1
    )

    @field_validator("working_hours")
    @classmethod
    def _require_all_weekdays(
        cls, value: dict[Weekday, DaySchedule]
    ) -> dict[Weekday, DaySchedule]:
        missing = [day.value for day in Weekday if day not in value]
        if missing:
            raise ValueError(f"working_hours is missing weekdays: {', '.join(missing)}")
        return value

    def schedule_for(self, day: Date) -> DaySchedule:
        return self.working_hours[Weekday.for_date(day)]
