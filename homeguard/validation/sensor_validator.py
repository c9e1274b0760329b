"""
Sensor Ingest Validator - Boundary Checks

Rejects malformed, stale or unauthenticated events before they reach the
pipeline. Failures are reported as a ValidationResult, never raised.

Checks (in order):
1. Schema: event id and device id present
2. Timestamp: timezone-aware and within the skew tolerance
3. Range: binary sensors 0/1, fire sensors 0-1000
4. Signature: HMAC-SHA256 under the shared secret
"""

import hashlib
import hmac
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from pydantic import BaseModel, Field

from homeguard.models.sensor_event import BINARY_SENSORS, FIRE_SENSORS, SensorEvent

logger = logging.getLogger(__name__)

FIRE_VALUE_MIN = 0.0
FIRE_VALUE_MAX = 1000.0


class ValidationResult(BaseModel):
    """Outcome of validating one event."""

    is_valid: bool
    errors: list[str] = Field(default_factory=list)

    @classmethod
    def success(cls) -> "ValidationResult":
        return cls(is_valid=True)

    @classmethod
    def failure(cls, *errors: str) -> "ValidationResult":
        return cls(is_valid=False, errors=list(errors))


def _signing_payload(event: SensorEvent) -> bytes:
    return (
        f"{event.device_id}:{event.sensor_type.value}:{float(event.value)!r}:"
        f"{event.timestamp.isoformat()}"
    ).encode("utf-8")


def compute_signature(event: SensorEvent, secret: str) -> str:
    """Hex HMAC-SHA256 of the event's identifying fields."""
    return hmac.new(secret.encode("utf-8"), _signing_payload(event), hashlib.sha256).hexdigest()


def sign_event(event: SensorEvent, secret: str) -> SensorEvent:
    """Return a copy of ``event`` carrying a valid signature."""
    return event.model_copy(update={"signature": compute_signature(event, secret)})


class SensorIngestValidator:
    """
    Validates raw sensor events at the pipeline boundary.
    """

    def __init__(
        self,
        shared_secret: str,
        timestamp_tolerance: timedelta = timedelta(minutes=5),
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize validator.

        Args:
            shared_secret: HMAC secret shared with the devices.
            timestamp_tolerance: Accepted skew in either direction.
            clock: Source of "now"; defaults to UTC wall clock.
        """
        self._secret = shared_secret
        self._tolerance = timestamp_tolerance
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def validate(self, event: Optional[SensorEvent]) -> ValidationResult:
        """
        Validate a single event.

        Args:
            event: Event to validate; None is rejected.

        Returns:
            ValidationResult listing every failed check.
        """
        if event is None:
            return ValidationResult.failure("Event cannot be null")

        errors = []

        if not event.event_id or not event.event_id.strip():
            errors.append("EventId is required")
        if not event.device_id or not event.device_id.strip():
            errors.append("DeviceId is required")

        errors.extend(self._validate_timestamp(event.timestamp))
        errors.extend(self._validate_range(event))

        if not self._validate_signature(event):
            errors.append("Invalid signature")

        if errors:
            logger.debug(f"Event {event.event_id} failed validation: {errors}")
            return ValidationResult.failure(*errors)
        return ValidationResult.success()

    def _validate_timestamp(self, timestamp: datetime) -> list[str]:
        if timestamp.tzinfo is None:
            return ["Timestamp must be timezone-aware"]

        minutes = self._tolerance.total_seconds() / 60
        now = self._clock()
        if timestamp > now + self._tolerance:
            return [f"Timestamp is in the future (tolerance {minutes:g}m)"]
        if timestamp < now - self._tolerance:
            return [f"Timestamp is too old (tolerance {minutes:g}m)"]
        return []

    def _validate_range(self, event: SensorEvent) -> list[str]:
        if event.sensor_type in BINARY_SENSORS:
            if event.value not in (0, 1):
                return [f"Invalid value for {event.sensor_type.value}: must be 0 or 1"]
        elif event.sensor_type in FIRE_SENSORS:
            if event.value < FIRE_VALUE_MIN or event.value > FIRE_VALUE_MAX:
                return [f"Invalid value for {event.sensor_type.value}: out of range 0-1000"]
        return []

    def _validate_signature(self, event: SensorEvent) -> bool:
        if not event.signature:
            return False
        expected = compute_signature(event, self._secret)
        return hmac.compare_digest(expected, event.signature)
