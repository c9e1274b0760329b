"""
Notification Models - Transient Delivery Values

Messages handed to providers and the results they report.
Not persisted beyond the audit trail.
"""

from datetime import timedelta
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from homeguard.models.incident import IncidentType


class NotificationChannel(str, Enum):
    """Delivery channels known to the orchestrator."""
    SMS = "SMS"
    PUSH = "Push"
    EMAIL = "Email"


# Fixed fallback chain, tried in this order
CHANNEL_PRIORITY: tuple[NotificationChannel, ...] = (
    NotificationChannel.SMS,
    NotificationChannel.PUSH,
    NotificationChannel.EMAIL,
)

# Channel name reported when every channel is exhausted
ALL_CHANNELS = "All"


class NotificationMessage(BaseModel):
    """Message sent to a human about one incident."""

    model_config = ConfigDict(frozen=True)

    incident_id: str
    message: str
    priority: IncidentType


class NotificationResult(BaseModel):
    """Outcome of one delivery attempt or of a whole orchestration."""

    model_config = ConfigDict(frozen=True)

    success: bool
    channel: str
    detail: str = ""
    duration: timedelta = Field(default_factory=timedelta)
