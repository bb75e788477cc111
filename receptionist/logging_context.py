"""Call ID logging context for tracing one phone call across modules.

Every turn handled by the controller runs inside ``bind_call_id`` so that
log lines emitted by the extractors, the calendar adapter, and the
dispatcher all carry the telephony call identifier.

Usage:
    from receptionist.logging_context import bind_call_id, get_call_logger

    logger = get_call_logger(__name__)
    with bind_call_id("CA1234"):
        logger.info("Turn received")  # → [CA1234] Turn received
"""

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

NO_CALL_ID = "-"

_call_id: ContextVar[str] = ContextVar("call_id", default=NO_CALL_ID)


def set_call_id(call_id: str) -> None:
    """Set the call ID for the current async context."""
    _call_id.set(call_id)


def get_call_id() -> str:
    """Retrieve the current call ID."""
    return _call_id.get()


@contextmanager
def bind_call_id(call_id: str) -> Iterator[None]:
    """Set the call ID for the duration of a block, restoring the previous one."""
    token = _call_id.set(call_id)
    try:
        yield
    finally:
        _call_id.reset(token)


class CallIdFilter(logging.Filter):
    """Injects call_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "call_id"):
            record.call_id = _call_id.get()  # type: ignore[attr-defined]
        return True


def get_call_logger(name: str) -> logging.Logger:
    """Return a logger with the CallIdFilter attached.

    The filter adds ``call_id`` to each record so formatters can
    include ``%(call_id)s`` in their format string.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, CallIdFilter) for f in logger.filters):
        logger.addFilter(CallIdFilter())
    return logger


def mask_value(value: Optional[str], visible: int = 2) -> str:
    """Mask a phone number or email for info-level logs.

    Examples:
        >>> mask_value("5551234567")
        '********67'
        >>> mask_value(None)
        '<none>'
    """
    if not value:
        return "<none>"
    if len(value) <= visible:
        return "*" * len(value)
    return "*" * (len(value) - visible) + value[-visible:]
