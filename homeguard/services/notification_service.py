"""
Notification Service - Fallback Chain Orchestration

Delivers a confirmed incident to a human over the first channel that
works. Channels are tried in a fixed priority order (SMS, Push, Email).

Per channel:
- up to ``max_attempts`` sends (initial + retries), stopping at the first success
- one deadline shared by all attempts on that channel, set once
- a raising provider counts as a failed attempt and does not stop the retries
- an expired deadline cancels the in-flight send and moves to the next channel
"""

import asyncio
import logging
import time
from datetime import timedelta
from typing import Dict, Iterable, Optional

from homeguard.metrics import NOTIFICATION_ATTEMPTS, NOTIFICATION_DURATION
from homeguard.models.incident import Incident
from homeguard.models.notification import (
    ALL_CHANNELS,
    CHANNEL_PRIORITY,
    NotificationMessage,
    NotificationResult,
)
from homeguard.providers.notification_providers import NotificationProvider
from homeguard.utils.audit_logger import AuditSink, append_audit
from homeguard.utils.error_handling import NotificationProviderError, NotificationTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL_TIMEOUT_SECONDS = 1.0
DEFAULT_MAX_ATTEMPTS = 2


def build_message(incident: Incident) -> NotificationMessage:
    return NotificationMessage(
        incident_id=incident.incident_id,
        message=f"Alert: {incident.incident_type.value} detected!",
        priority=incident.incident_type,
    )


class NotificationService:
    """
    Orchestrates delivery across channel providers.
    """

    def __init__(
        self,
        providers: Iterable[NotificationProvider],
        audit_sink: AuditSink,
        channel_timeout_seconds: float = DEFAULT_CHANNEL_TIMEOUT_SECONDS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        """
        Initialize the orchestrator.

        Args:
            providers: Available providers; the first one per channel name is used.
            audit_sink: Destination for audit records.
            channel_timeout_seconds: Deadline shared by a channel's attempts.
            max_attempts: Sends per channel (initial + retries).
        """
        self._providers: Dict[str, NotificationProvider] = {}
        for provider in providers:
            self._providers.setdefault(provider.channel_name, provider)
        self._audit = audit_sink
        self._timeout = channel_timeout_seconds
        self._max_attempts = max_attempts

    @property
    def channels(self) -> list[str]:
        """Available channels in the order they will be tried."""
        return [c.value for c in CHANNEL_PRIORITY if c.value in self._providers]

    async def notify(self, incident: Incident) -> NotificationResult:
        """
        Notify about ``incident`` over the fallback chain.

        Args:
            incident: Confirmed incident to announce.

        Returns:
            The first successful provider result, or an aggregate failure
            naming channel "All" with the total elapsed time.
        """
        message = build_message(incident)
        incident_id = incident.incident_id
        started = time.monotonic()

        for channel in CHANNEL_PRIORITY:
            provider = self._providers.get(channel.value)
            if provider is None:
                continue

            append_audit(
                self._audit, "NotificationAttempt", f"Attempting to send via {channel.value}", incident_id
            )

            try:
                result = await self._deliver(provider, message)
            except NotificationTimeoutError as e:
                append_audit(self._audit, "NotificationTimeout", str(e), incident_id)
                logger.warning(f"[Notify] {e} for incident {incident_id}")
                result = None

            if result is not None and result.success:
                NOTIFICATION_DURATION.labels(channel=channel.value).observe(time.monotonic() - started)
                append_audit(self._audit, "NotificationSuccess", f"Sent via {channel.value}", incident_id)
                logger.info(f"[Notify] Incident {incident_id} delivered via {channel.value}")
                return result

            append_audit(
                self._audit,
                "NotificationFallback",
                f"{channel.value} failed, falling back...",
                incident_id,
            )

        elapsed = time.monotonic() - started
        NOTIFICATION_DURATION.labels(channel=ALL_CHANNELS).observe(elapsed)
        append_audit(self._audit, "NotificationFailed", "All channels failed", incident_id)
        logger.error(f"[Notify] All channels failed for incident {incident_id}")
        return NotificationResult(
            success=False,
            channel=ALL_CHANNELS,
            detail="All providers failed",
            duration=timedelta(seconds=elapsed),
        )

    async def _deliver(
        self,
        provider: NotificationProvider,
        message: NotificationMessage,
    ) -> Optional[NotificationResult]:
        """
        Run the bounded retry loop for one channel.

        Returns:
            The last attempt's result (None if every attempt raised).

        Raises:
            NotificationTimeoutError: The channel deadline expired.
        """
        channel = provider.channel_name
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._timeout
        result: Optional[NotificationResult] = None

        for attempt in range(1, self._max_attempts + 1):
            remaining = deadline - loop.time()
            if remaining <= 0:
                NOTIFICATION_ATTEMPTS.labels(channel=channel, status="timeout").inc()
                raise NotificationTimeoutError(channel, self._timeout)

            try:
                result = await asyncio.wait_for(self._send(provider, message, deadline), timeout=remaining)
            except asyncio.TimeoutError:
                NOTIFICATION_ATTEMPTS.labels(channel=channel, status="timeout").inc()
                raise NotificationTimeoutError(channel, self._timeout)
            except Exception as e:
                NOTIFICATION_ATTEMPTS.labels(channel=channel, status="error").inc()
                append_audit(
                    self._audit,
                    "NotificationError",
                    f"Exception in {channel}: {e}",
                    message.incident_id,
                )
                logger.warning(f"[Notify] {channel} attempt {attempt}/{self._max_attempts} raised: {e}")
                result = None
                continue

            if result.success:
                NOTIFICATION_ATTEMPTS.labels(channel=channel, status="success").inc()
                return result

            NOTIFICATION_ATTEMPTS.labels(channel=channel, status="failure").inc()
            append_audit(
                self._audit,
                "NotificationRetry",
                f"Retry {attempt} for {channel} failed",
                message.incident_id,
            )
            logger.warning(
                f"[Notify] {channel} attempt {attempt}/{self._max_attempts} failed: {result.detail}"
            )

        return result

    @staticmethod
    async def _send(
        provider: NotificationProvider,
        message: NotificationMessage,
        deadline: float,
    ) -> NotificationResult:
        """
        One provider call.

        A TimeoutError raised by the provider itself (e.g. a gateway read
        timeout) is an ordinary failed attempt, not the channel deadline.
        """
        try:
            return await provider.send(message, deadline)
        except asyncio.TimeoutError as e:
            raise NotificationProviderError(provider.channel_name, e) from e
