"""
Logging setup for the Daycare Attendance Service.

Every log line carries the correlation id of the request that produced it, so
a storage failure reported to a kiosk can be traced in the server logs.
"""

import logging
import sys
from contextvars import ContextVar
from uuid import uuid4

from app.core.config import settings

_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="-")

LOG_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | cid=%(correlation_id)s | %(message)s"
)

_configured = False


class CorrelationIdFilter(logging.Filter):
    """Injects the current correlation id into log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = _correlation_id.get()
        return True


def get_correlation_id() -> str:
    return _correlation_id.get()


def set_correlation_id(value: str | None = None) -> str:
    """Set the correlation id for the current context, generating one if needed."""
    cid = value or str(uuid4())
    _correlation_id.set(cid)
    return cid


def configure_logging(level: str | None = None) -> None:
    global _configured
    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(CorrelationIdFilter())

    root = logging.getLogger("app")
    root.setLevel((level or settings.LOG_LEVEL).upper())
    root.addHandler(handler)
    root.propagate = False
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the service's ``app`` namespace."""
    configure_logging()
    if not name.startswith("app"):
        name = f"app.{name}"
    return logging.getLogger(name)
