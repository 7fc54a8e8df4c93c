"""
Finite state machine for booking status changes.

Bookings move pending -> confirmed -> completed, and may be cancelled or
marked as a no-show at any point before completion. Completed, cancelled,
and no-show are terminal. Bookings are never deleted: cancellation is a
status change, so the audit trail survives.

Usage:
    sm = BookingStatusMachine(BookingStatus.PENDING)
    sm.transition(BookingStatus.CONFIRMED)
    assert sm.current_status == BookingStatus.CONFIRMED
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from barbershop.schemas.booking_schema import BookingStatus, StatusChange
from barbershop.utils import utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transition:
    """A single valid status transition."""
    from_status: BookingStatus
    to_status: BookingStatus


class InvalidTransitionError(Exception):
    """Raised when a status change is not valid from the current status."""


class BookingStatusMachine:
    """
    Deterministic status machine for a single booking.

    Every transition must be explicitly defined; anything else is rejected
    with an error listing the statuses reachable from the current one.
    """

    TRANSITIONS: list[Transition] = [
        # --- Confirmation ---
        Transition(BookingStatus.PENDING, BookingStatus.CONFIRMED),

        # --- Completion ---
        Transition(BookingStatus.CONFIRMED, BookingStatus.COMPLETED),

        # --- Cancellation before completion ---
        Transition(BookingStatus.PENDING, BookingStatus.CANCELLED),
        Transition(BookingStatus.CONFIRMED, BookingStatus.CANCELLED),

        # --- No-show before completion ---
        Transition(BookingStatus.PENDING, BookingStatus.NO_SHOW),
        Transition(BookingStatus.CONFIRMED, BookingStatus.NO_SHOW),
    ]

    TERMINAL: frozenset[BookingStatus] = frozenset(
        {BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.NO_SHOW}
    )

    def __init__(
        self,
        initial: BookingStatus = BookingStatus.PENDING,
        history: Optional[list[StatusChange]] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Start at ``initial``, resuming from a stored ``history`` when given."""
        self._current_status = initial
        self._clock = clock
        self._history: list[StatusChange] = (
            list(history) if history
            else [StatusChange(status=initial, entered_at=clock())]
        )

    @property
    def current_status(self) -> BookingStatus:
        return self._current_status

    def can_transition(self, target: BookingStatus) -> bool:
        return target in self.get_valid_targets()

    def transition(self, target: BookingStatus) -> BookingStatus:
        """
        Move to a new status.

        Args:
            target: The status to move to.

        Returns:
            The new booking status.

        Raises:
            InvalidTransitionError: If no valid transition exists.
        """
        for t in self.TRANSITIONS:
            if t.from_status == self._current_status and t.to_status == target:
                old_status = self._current_status
                self._current_status = target
                self._history.append(StatusChange(
                    status=target,
                    entered_at=self._clock(),
                    previous=old_status,
                ))
                logger.debug(
                    "Status transition: %s -> %s", old_status.value, target.value,
                )
                return self._current_status

        valid = [s.value for s in self.get_valid_targets()]
        raise InvalidTransitionError(
            f"Cannot change booking status from '{self._current_status.value}' "
            f"to '{target.value}'. Valid targets: {valid}"
        )

    def get_valid_targets(self) -> list[BookingStatus]:
        """Return all statuses reachable from the current status."""
        return [t.to_status for t in self.TRANSITIONS if t.from_status == self._current_status]

    def get_history(self) -> list[StatusChange]:
        """Return the full status history."""
        return list(self._history)

    def is_terminal(self) -> bool:
        return self._current_status in self.TERMINAL
