"""Enumerate candidate appointment start times within a day's shifts."""

import logging
from typing import Optional, Sequence, Union

from barbershop.schemas.company_schema import Shift
from barbershop.scheduling.time_math import TimeLike, from_minutes, to_minutes

logger = logging.getLogger(__name__)


class SlotGenerator:
    """
    Walks each shift on a fixed interval grid.

    A candidate is emitted only if the whole service fits before the shift
    ends, so trailing partial slots are dropped and a service never spans
    the gap between two shifts (e.g. a lunch break).
    """

    def generate(
        self,
        shifts: Sequence[Shift],
        slot_interval_minutes: int,
        service_duration_minutes: int,
        earliest_start: Optional[Union[int, TimeLike]] = None,
    ) -> list[str]:
        if slot_interval_minutes <= 0:
            raise ValueError(f"slot interval must be positive, got {slot_interval_minutes}")
        if service_duration_minutes <= 0:
            raise ValueError(
                f"service duration must be positive, got {service_duration_minutes}"
            )

        floor = None
        if earliest_start is not None:
            floor = (
                earliest_start
                if isinstance(earliest_start, int)
                else to_minutes(earliest_start, allow_end_of_day=True)
            )

        candidates: list[str] = []
        for shift in shifts:
            current = shift.start_minutes if floor is None else max(shift.start_minutes, floor)
            while current + service_duration_minutes <= shift.end_minutes:
                candidates.append(from_minutes(current))
                current += slot_interval_minutes

        logger.debug(
            "Generated %d candidates across %d shifts (interval=%d, duration=%d)",
            len(candidates), len(shifts), slot_interval_minutes, service_duration_minutes,
        )
        return candidates
