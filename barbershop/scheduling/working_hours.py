"""
Resolve which shifts the shop is open for on a calendar date.

Holidays take precedence over the weekly schedule: a holiday without
custom hours closes the shop, a holiday with custom hours replaces that
weekday's shifts for the one date. Recurring holidays match on month and
day in every year.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence

from barbershop.schemas.company_schema import CompanyConfig, Holiday, Shift
from barbershop.scheduling.time_math import TimeLike, to_minutes

logger = logging.getLogger(__name__)

CLOSED_HOLIDAY = "holiday"
CLOSED_WEEKLY = "weekly_schedule"


@dataclass(frozen=True)
class DayHours:
    """Resolved opening hours for one date. No shifts means closed."""
    day: date
    shifts: tuple[Shift, ...] = ()
    holiday: Optional[str] = None
    closed_reason: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return bool(self.shifts)

    def shift_containing(self, start: int, end: int) -> Optional[Shift]:
        """Return the shift that fully contains ``[start, end)``, if any."""
        for shift in self.shifts:
            if shift.start_minutes <= start and end <= shift.end_minutes:
                return shift
        return None


def find_holiday(day: date, holidays: Sequence[Holiday]) -> Optional[Holiday]:
    """Exact-date matches win over recurring matches from other years."""
    recurring: Optional[Holiday] = None
    for holiday in holidays:
        if holiday.date == day:
            return holiday
        if recurring is None and holiday.matches(day):
            recurring = holiday
    return recurring


class WorkingHoursResolver:
    """Maps a date to its open shifts using holidays and the weekly schedule."""

    def resolve(self, day: date, config: CompanyConfig) -> DayHours:
        holiday = find_holiday(day, config.holidays)
        if holiday is not None:
            if not holiday.custom_hours:
                logger.debug("%s closed for holiday '%s'", day, holiday.name)
                return DayHours(day=day, holiday=holiday.name, closed_reason=CLOSED_HOLIDAY)
            return DayHours(day=day, shifts=tuple(holiday.custom_hours), holiday=holiday.name)

        schedule = config.schedule_for(day)
        if not schedule.is_open or not schedule.shifts:
            return DayHours(day=day, closed_reason=CLOSED_WEEKLY)
        return DayHours(day=day, shifts=tuple(schedule.shifts))

    def is_open_at(
        self, day: date, time: TimeLike, config: CompanyConfig, duration_minutes: int = 0
    ) -> bool:
        """Whether ``[time, time + duration)`` falls inside one open shift.

        With a zero duration this answers "is the shop open at this minute",
        which excludes a shift's closing minute.
        """
        start = to_minutes(time)
        hours = self.resolve(day, config)
        if duration_minutes <= 0:
            return any(s.start_minutes <= start < s.end_minutes for s in hours.shifts)
        return hours.shift_containing(start, start + duration_minutes) is not None
