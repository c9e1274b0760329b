"""
Logging Context - Correlation ID Propagation

Every log line emitted while an event travels through the pipeline carries
the id of that event, so a single emission can be followed from the
deduplication gate to the notification channels.

Pattern: Context-local storage (contextvars) + logging.Filter
"""

import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")

DEFAULT_LOG_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s "
    "[correlation_id=%(correlation_id)s] %(message)s"
)


class CorrelationIdFilter(logging.Filter):
    """Filter that adds ``correlation_id`` to every LogRecord."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = LoggingContext.get_correlation_id() or "N/A"
        return True


class LoggingContext:
    """Access to the correlation id of the current task or thread."""

    @staticmethod
    def get_correlation_id() -> str:
        return _correlation_id.get()

    @staticmethod
    @contextmanager
    def bind(correlation_id: Optional[str]) -> Iterator[str]:
        """Bind a correlation id for the duration of a ``with`` block."""
        token = _correlation_id.set(correlation_id or str(uuid.uuid4()))
        try:
            yield _correlation_id.get()
        finally:
            _correlation_id.reset(token)


def setup_logging(log_level: str = "INFO", log_format: Optional[str] = None) -> None:
    """Configure root logging with correlation ids.

    Args:
        log_level: Name of the stdlib logging level.
        log_format: Custom format; must reference ``%(correlation_id)s``.
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(log_format or DEFAULT_LOG_FORMAT))
    handler.addFilter(CorrelationIdFilter())

    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper()))
