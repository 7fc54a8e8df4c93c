"""Request ID logging context for tracing a booking request across modules.

Provides a request_id-aware logger that attaches a correlation ID to every
log message, so a single availability lookup or booking attempt can be
followed from the façade through the validator and the store.

Usage:
    from barbershop.logging_context import get_request_logger, set_request_id

    set_request_id("REQ-abc123")
    logger = get_request_logger(__name__)
    logger.info("Validating booking")  # → [REQ-abc123] Validating booking
"""

import functools
import logging
import uuid
from contextvars import ContextVar, copy_context
from typing import Callable, Optional, TypeVar

_request_id: ContextVar[str] = ContextVar("request_id", default="NO_REQUEST_ID")

T = TypeVar("T")


def set_request_id(request_id: Optional[str] = None) -> str:
    """Set the correlation ID for the current context, generating one if omitted."""
    value = request_id or f"REQ-{uuid.uuid4().hex[:8]}"
    _request_id.set(value)
    return value


def get_request_id() -> str:
    """Retrieve the current correlation ID."""
    return _request_id.get()


class RequestIdFilter(logging.Filter):
    """Injects request_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id.get()  # type: ignore[attr-defined]
        return True


def get_request_logger(name: str) -> logging.Logger:
    """Return a logger with the RequestIdFilter attached.

    The filter adds ``request_id`` to each record so formatters can
    include ``%(request_id)s`` in their format string.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, RequestIdFilter) for f in logger.filters):
        logger.addFilter(RequestIdFilter())
    return logger


def bind_request_context(func: Callable[..., T]) -> Callable[..., T]:
    """Run ``func`` in a copy of the caller's context on every call.

    Worker threads start with an empty context, so anything submitted to an
    executor would otherwise log as ``NO_REQUEST_ID``. Each call runs in its own
    copy; a Context cannot be entered by two threads at once.
    """
    context = copy_context()

    @functools.wraps(func)
    def run(*args, **kwargs) -> T:
        return context.copy().run(func, *args, **kwargs)

    return run
