# Models Package
"""
Pydantic models for typed data contracts.

Sensor events, messages and results are immutable after creation.
Incidents are the only mutable aggregate.
"""

from homeguard.models.sensor_event import SensorEvent, SensorType
from homeguard.models.incident import (
    Incident,
    IncidentState,
    IncidentType,
    ALLOWED_TRANSITIONS,
    is_valid_transition,
)
from homeguard.models.notification import (
    NotificationChannel,
    NotificationMessage,
    NotificationResult,
    CHANNEL_PRIORITY,
)
from homeguard.models.audit import AuditEntry

__all__ = [
    "SensorEvent",
    "SensorType",
    "Incident",
    "IncidentState",
    "IncidentType",
    "ALLOWED_TRANSITIONS",
    "is_valid_transition",
    "NotificationChannel",
    "NotificationMessage",
    "NotificationResult",
    "CHANNEL_PRIORITY",
    "AuditEntry",
]
