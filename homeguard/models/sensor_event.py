"""
Sensor Event Models - Immutable Emissions

Represents a single reading emitted by the sensor network.
Events are never mutated after creation.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class SensorType(str, Enum):
    """Kind of sensor that produced an event."""
    DOOR_CONTACT = "DoorContact"   # 1 = open, 0 = closed
    MOTION = "Motion"              # 1 = detected, 0 = idle
    SMOKE = "Smoke"                # analog, 0-1000
    HEAT = "Heat"                  # analog, 0-1000


BINARY_SENSORS = frozenset({SensorType.DOOR_CONTACT, SensorType.MOTION})
FIRE_SENSORS = frozenset({SensorType.SMOKE, SensorType.HEAT})


class SensorEvent(BaseModel):
    """
    Raw immutable reading from a device.

    Authenticity (``signature``) is verified by the ingest validator before
    the event reaches deduplication.
    """

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(..., description="Unique per logical emission")
    device_id: str = Field(..., description="Emitting device")
    sensor_type: SensorType = Field(..., description="DoorContact, Motion, Smoke or Heat")
    value: float = Field(..., description="Reading; binary sensors use 0/1")
    timestamp: datetime = Field(..., description="Emission time (timezone-aware)")
    signature: str = Field("", description="Opaque authenticity token")
