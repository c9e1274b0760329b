# Validation Package
"""
Boundary validation for inbound sensor events.
"""

from homeguard.validation.sensor_validator import (
    SensorIngestValidator,
    ValidationResult,
    compute_signature,
    sign_event,
)

__all__ = [
    "SensorIngestValidator",
    "ValidationResult",
    "compute_signature",
    "sign_event",
]
