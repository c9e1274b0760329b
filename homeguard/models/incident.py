"""
Incident Models - Lifecycle Aggregate

An Incident groups the sensor evidence behind one ongoing problem and
tracks it through a guarded state machine. Incidents are never deleted;
the terminal state is ARCHIVED.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable

from pydantic import BaseModel, Field

from homeguard.models.sensor_event import SensorEvent


class IncidentType(str, Enum):
    """Kind of incident the correlation engine can detect."""
    BREAK_IN = "BreakIn"
    FIRE = "Fire"


class IncidentState(str, Enum):
    """Lifecycle states. Initial: DETECTED, terminal: ARCHIVED."""
    DETECTED = "Detected"
    SUSPECTED = "Suspected"
    CONFIRMED = "Confirmed"
    NOTIFIED = "Notified"
    NOTIFICATION_FAILED = "NotificationFailed"
    ACKNOWLEDGED = "Acknowledged"
    RESOLVED = "Resolved"
    CLOSED = "Closed"
    ARCHIVED = "Archived"


ALLOWED_TRANSITIONS: dict[IncidentState, frozenset[IncidentState]] = {
    IncidentState.DETECTED: frozenset({IncidentState.SUSPECTED, IncidentState.CONFIRMED}),
    IncidentState.SUSPECTED: frozenset({IncidentState.CONFIRMED, IncidentState.RESOLVED}),
    IncidentState.CONFIRMED: frozenset({
        IncidentState.NOTIFIED,
        IncidentState.NOTIFICATION_FAILED,
        IncidentState.RESOLVED,
    }),
    IncidentState.NOTIFIED: frozenset({IncidentState.ACKNOWLEDGED, IncidentState.RESOLVED}),
    # Retry path back to NOTIFIED
    IncidentState.NOTIFICATION_FAILED: frozenset({IncidentState.NOTIFIED, IncidentState.RESOLVED}),
    IncidentState.ACKNOWLEDGED: frozenset({IncidentState.RESOLVED}),
    IncidentState.RESOLVED: frozenset({IncidentState.CLOSED}),
    IncidentState.CLOSED: frozenset({IncidentState.ARCHIVED}),
    IncidentState.ARCHIVED: frozenset(),
}


def is_valid_transition(current: IncidentState, requested: IncidentState) -> bool:
    """Self-transitions are always permitted."""
    if current == requested:
        return True
    return requested in ALLOWED_TRANSITIONS.get(current, frozenset())


class Incident(BaseModel):
    """
    Mutable aggregate owned by the incident lifecycle manager.

    Invariants:
    - ``evidence`` never holds two events with the same ``event_id``
    - ``confidence_score`` never decreases
    """

    incident_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    incident_type: IncidentType
    state: IncidentState = IncidentState.DETECTED
    confidence_score: float = Field(0.0, ge=0.0, le=1.0)
    evidence: list[SensorEvent] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def evidence_ids(self) -> list[str]:
        return [e.event_id for e in self.evidence]

    def merge_evidence(self, events: Iterable[SensorEvent]) -> int:
        """Append events whose id is not already present.

        Returns:
            Number of events added.
        """
        seen = set(self.evidence_ids)
        added = 0
        for event in events:
            if event.event_id in seen:
                continue
            self.evidence.append(event)
            seen.add(event.event_id)
            added += 1
        return added

    def raise_confidence(self, score: float) -> bool:
        """Replace the score only if ``score`` is strictly greater."""
        if score > self.confidence_score:
            self.confidence_score = score
            return True
        return False
