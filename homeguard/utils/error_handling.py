"""
Error Handling - Domain Exception Taxonomy

Provides:
- Base error for the pipeline
- Incident lookup failures
- State machine violations
- Notification deadline expiry

Rejected and duplicate input is never raised; only the direct callers of
lifecycle operations see these exceptions.
"""

from typing import Any


class HomeguardError(Exception):
    """Base class for all pipeline errors."""
    pass


class IncidentNotFoundError(HomeguardError, KeyError):
    """Raised when an incident id is unknown to the repository."""

    def __init__(self, incident_id: str):
        self.incident_id = incident_id
        super().__init__(f"Incident {incident_id} not found")

    def __str__(self) -> str:
        return f"Incident {self.incident_id} not found"


class InvalidTransitionError(HomeguardError):
    """Raised when the state machine forbids a transition."""

    def __init__(self, current: Any, requested: Any):
        self.current = current
        self.requested = requested
        super().__init__(
            f"Invalid state transition from {_state_name(current)} to {_state_name(requested)}"
        )


class NotificationTimeoutError(HomeguardError):
    """Raised when a channel exhausts its delivery deadline."""

    def __init__(self, channel: str, timeout_seconds: float):
        self.channel = channel
        self.timeout_seconds = timeout_seconds
        super().__init__(f"{channel} timed out after {timeout_seconds}s")


def _state_name(state: Any) -> str:
    return getattr(state, "value", str(state))


class NotificationProviderError(HomeguardError):
    """Raised when a provider call fails on its own, before the channel deadline."""

    def __init__(self, channel: str, cause: BaseException):
        self.channel = channel
        self.cause = cause
        super().__init__(str(cause) or type(cause).__name__)
