"""Error taxonomy shared by the scheduling engine and its collaborators.

Booking rejections (advance notice, shop closed, slot taken) are decisions,
not failures, so they are returned as values. The exceptions here cover bad
input, unknown identifiers, and the storage-layer overlap safety net.
"""


class BookingEngineError(Exception):
    """Base class for all errors raised by the booking engine."""


class FormatError(BookingEngineError, ValueError):
    """Raised when a date, time, or duration input is malformed."""


class NotFoundError(BookingEngineError, LookupError):
    """Raised when a barber, service, or booking id is unknown."""

    def __init__(self, kind: str, identifier: str) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind.capitalize()} '{identifier}' not found.")


class ConstraintViolation(BookingEngineError):
    """Raised by a store when a write would overlap an active booking."""

    def __init__(self, barber_id: str, message: str) -> None:
        self.barber_id = barber_id
        super().__init__(message)
