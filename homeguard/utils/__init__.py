# Utils Package
"""
Cross-cutting utilities.

- audit_logger.py: Append-only audit trail
- error_handling.py: Domain exceptions
- logging_context.py: Correlation ids in log records
"""

from homeguard.utils.audit_logger import AuditLogger, AuditLoggerError, AuditSink, append_audit
from homeguard.utils.error_handling import (
    HomeguardError,
    IncidentNotFoundError,
    InvalidTransitionError,
    NotificationProviderError,
    NotificationTimeoutError,
)
from homeguard.utils.logging_context import CorrelationIdFilter, LoggingContext, setup_logging

__all__ = [
    "AuditLogger",
    "AuditLoggerError",
    "AuditSink",
    "append_audit",
    "HomeguardError",
    "IncidentNotFoundError",
    "InvalidTransitionError",
    "NotificationProviderError",
    "NotificationTimeoutError",
    "CorrelationIdFilter",
    "LoggingContext",
    "setup_logging",
]
