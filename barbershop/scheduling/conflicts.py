"""Overlap detection between a candidate time range and a barber's bookings.

Callers fetch the barber's bookings for the day once and pass the same
list for every candidate; nothing here touches the store.
"""

import logging
from typing import Iterable, Optional, Sequence

from barbershop.schemas.booking_schema import Booking
from barbershop.scheduling.time_math import ranges_overlap

logger = logging.getLogger(__name__)


class BookingConflictChecker:
    """Half-open overlap checks against active bookings only."""

    def find_conflict(
        self,
        candidate_start: int,
        duration_minutes: int,
        existing_bookings: Iterable[Booking],
        exclude_booking_id: Optional[str] = None,
    ) -> Optional[Booking]:
        """Return the first active booking overlapping the candidate, if any."""
        candidate_end = candidate_start + duration_minutes
        for booking in existing_bookings:
            if not booking.is_active or booking.id == exclude_booking_id:
                continue
            if ranges_overlap(
                candidate_start, candidate_end, booking.start_minutes, booking.end_minutes
            ):
                return booking
        return None

    def is_blocked(
        self,
        candidate_start: int,
        duration_minutes: int,
        existing_bookings: Iterable[Booking],
        exclude_booking_id: Optional[str] = None,
    ) -> bool:
        return (
            self.find_conflict(
                candidate_start, duration_minutes, existing_bookings, exclude_booking_id
            )
            is not None
        )

    def find_overlapping_pairs(
        self, bookings: Sequence[Booking]
    ) -> list[tuple[Booking, Booking]]:
        """Audit helper: every pair of active same-barber, same-date bookings that overlap."""
        active = sorted(
            (b for b in bookings if b.is_active),
            key=lambda b: (b.barber_id, b.appointment_date, b.start_minutes),
        )
        pairs: list[tuple[Booking, Booking]] = []
        for i, first in enumerate(active):
            for second in active[i + 1:]:
                if (second.barber_id, second.appointment_date) != (
                    first.barber_id, first.appointment_date
                ):
                    break
                if second.start_minutes >= first.end_minutes:
                    # sorted by start: later bookings cannot overlap `first` either
                    break
                pairs.append((first, second))
        if pairs:
            logger.warning("Found %d overlapping active booking pairs", len(pairs))
        return pairs
