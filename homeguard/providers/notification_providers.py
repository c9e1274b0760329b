"""
Notification Providers - Channel Delivery Contract

A provider delivers one message over one channel and reports the outcome.
The orchestrator looks providers up by ``channel_name``.

``deadline`` is an absolute time on the running event loop's clock
(``loop.time()``); providers may use it to bound their own I/O. The
orchestrator cancels the call when the deadline passes regardless.

The simulated providers stand in for real SMS/push/email gateways in the
demo runner.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import timedelta

from homeguard.models.notification import (
    NotificationChannel,
    NotificationMessage,
    NotificationResult,
)

logger = logging.getLogger(__name__)


class NotificationProvider(ABC):
    """Abstract base class for notification channels."""

    channel_name: str = "base"

    @abstractmethod
    async def send(self, message: NotificationMessage, deadline: float) -> NotificationResult:
        """Deliver ``message`` and report success or failure.

        Args:
            message: Message to deliver.
            deadline: Event-loop time after which the call is cancelled.

        Returns:
            NotificationResult for this single attempt.
        """


class SimulatedSmsProvider(NotificationProvider):
    """SMS gateway that always times out after a short delay."""

    channel_name = NotificationChannel.SMS.value

    def __init__(self, delay_seconds: float = 0.1):
        self.delay_seconds = delay_seconds

    async def send(self, message: NotificationMessage, deadline: float) -> NotificationResult:
        await asyncio.sleep(self.delay_seconds)
        logger.debug(f"[SMS] Gateway timeout for incident {message.incident_id}")
        return NotificationResult(
            success=False,
            channel=self.channel_name,
            detail="SMS Gateway Timeout",
            duration=timedelta(seconds=self.delay_seconds),
        )


class SimulatedPushProvider(NotificationProvider):
    """Push service that always succeeds immediately."""

    channel_name = NotificationChannel.PUSH.value

    async def send(self, message: NotificationMessage, deadline: float) -> NotificationResult:
        return NotificationResult(
            success=True,
            channel=self.channel_name,
            detail="Push sent successfully",
        )


class SimulatedEmailProvider(NotificationProvider):
    """Mail relay that succeeds after a short delay."""

    channel_name = NotificationChannel.EMAIL.value

    def __init__(self, delay_seconds: float = 0.05):
        self.delay_seconds = delay_seconds

    async def send(self, message: NotificationMessage, deadline: float) -> NotificationResult:
        await asyncio.sleep(self.delay_seconds)
        return NotificationResult(
            success=True,
            channel=self.channel_name,
            detail="Email sent successfully",
            duration=timedelta(seconds=self.delay_seconds),
        )


def default_providers() -> list[NotificationProvider]:
    """Simulated providers for every channel in the fallback chain."""
    return [SimulatedSmsProvider(), SimulatedPushProvider(), SimulatedEmailProvider()]
