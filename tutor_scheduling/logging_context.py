"""Correlation ID logging context for tracing requests across modules.

Provides a request_id-aware logger that attaches a correlation ID to every
log message, so a single booking or availability request can be followed
through the expander, the conflict detector, and the store.

Usage:
    from tutor_scheduling.logging_context import get_request_logger, set_request_id

    set_request_id("REQ-abc123")
    logger = get_request_logger(__name__)
    logger.info("Creating booking")  # record.request_id == "REQ-abc123"
"""

import logging
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

NO_REQUEST_ID = "NO_REQUEST_ID"

_request_id: ContextVar[str] = ContextVar("request_id", default=NO_REQUEST_ID)


def set_request_id(request_id: Optional[str] = None) -> str:
    """Set the correlation ID for the current context, generating one if omitted."""
    value = request_id or f"REQ-{uuid.uuid4().hex[:8]}"
    _request_id.set(value)
    return value


def get_request_id() -> str:
    """Retrieve the current correlation ID."""
    return _request_id.get()


@contextmanager
def request_scope(request_id: Optional[str] = None) -> Iterator[str]:
    """Bind a correlation ID for the block, then restore whatever was set before."""
    value = request_id or f"REQ-{uuid.uuid4().hex[:8]}"
    token = _request_id.set(value)
    try:
        yield value
    finally:
        _request_id.reset(token)


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
