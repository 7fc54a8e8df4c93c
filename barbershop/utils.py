"""Shared utilities used across the booking engine."""

import re
import uuid
from datetime import date, datetime, timezone
from typing import Union

from barbershop.errors import FormatError

_DATE_PATTERN = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$")


def utc_now() -> datetime:
    """Default clock for every component that needs the current instant."""
    return datetime.now(timezone.utc)


def parse_date(value: Union[str, date]) -> date:
    """Parse a ``YYYY-MM-DD`` string into a date.

    Examples:
        >>> parse_date("2025-09-10")
        datetime.date(2025, 9, 10)
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not _DATE_PATTERN.match(value.strip()):
        raise FormatError(f"Date must be in YYYY-MM-DD format, got {value!r}")
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise FormatError(f"Invalid calendar date: {value!r}") from None


def parse_instant(value: Union[str, datetime]) -> datetime:
    """Parse an ISO 8601 timestamp; naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    else:
        raw = str(value).strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            raise FormatError(
                f"Invalid datetime {value!r}. Use ISO 8601 (YYYY-MM-DDTHH:MM:SSZ)"
            ) from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def make_confirmation_code() -> str:
    """Short human-friendly booking reference, e.g. ``BK-3F9A1C``."""
    return f"BK-{uuid.uuid4().hex[:6].upper()}"
