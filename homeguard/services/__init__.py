# Services Package
"""
Incident lifecycle and notification orchestration.
"""

from homeguard.services.incident_service import (
    IncidentService,
    TransitionOutcome,
    TransitionResult,
    derive_idempotency_key,
)
from homeguard.services.notification_service import NotificationService, build_message

__all__ = [
    "IncidentService",
    "TransitionOutcome",
    "TransitionResult",
    "derive_idempotency_key",
    "NotificationService",
    "build_message",
]
