# Providers Package
"""
Notification channel providers.
"""

from homeguard.providers.notification_providers import (
    NotificationProvider,
    SimulatedEmailProvider,
    SimulatedPushProvider,
    SimulatedSmsProvider,
    default_providers,
)

__all__ = [
    "NotificationProvider",
    "SimulatedEmailProvider",
    "SimulatedPushProvider",
    "SimulatedSmsProvider",
    "default_providers",
]
