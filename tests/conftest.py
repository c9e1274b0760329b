"""
Shared fixtures: a frozen clock and a factory for signed sensor events.
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from homeguard.models.sensor_event import SensorEvent, SensorType
from homeguard.utils.audit_logger import AuditLogger
from homeguard.validation.sensor_validator import sign_event

TEST_SECRET = "test-shared-secret"
FROZEN_NOW = datetime(2024, 3, 1, 14, 7, 30, tzinfo=timezone.utc)


class MutableClock:
    """Clock that tests can move forward."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def secret():
    return TEST_SECRET


@pytest.fixture
def now():
    return FROZEN_NOW


@pytest.fixture
def clock(now):
    return MutableClock(now)


@pytest.fixture
def audit_logger():
    """In-memory audit trail."""
    return AuditLogger()


@pytest.fixture
def make_event(secret, now):
    """
    Build a signed event.

    ``offset_seconds`` is relative to the frozen clock.
    """
    def _make(
        sensor_type: SensorType,
        value: float,
        offset_seconds: float = 0.0,
        event_id=None,
        device_id: str = "device-1",
        signed: bool = True,
    ) -> SensorEvent:
        event = SensorEvent(
            event_id=event_id or str(uuid.uuid4()),
            device_id=device_id,
            sensor_type=sensor_type,
            value=value,
            timestamp=now + timedelta(seconds=offset_seconds),
        )
        return sign_event(event, secret) if signed else event

    return _make
