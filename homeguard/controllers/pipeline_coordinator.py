"""
Pipeline Coordinator - Event Processing Orchestration

Sequences one inbound sensor event through the pipeline:

    validate -> dedup gate -> correlation -> incident lifecycle -> notification

Decision policy:
- invalid events are audited and dropped
- duplicates are audited and dropped
- an event is marked processed only after it passes validation
- only an incident that is Confirmed (and not yet Notified/NotificationFailed)
  triggers the fallback chain; suspected incidents are only audited
- errors while notifying are logged and audited, never raised
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Optional, Set

from homeguard.config.settings import Config
from homeguard.deduplication.deduplication_store import DeduplicationStore
from homeguard.metrics import EVENTS_PROCESSED
from homeguard.models.incident import Incident, IncidentState
from homeguard.models.sensor_event import SensorEvent
from homeguard.persistence.incident_repository import InMemoryIncidentRepository
from homeguard.providers.notification_providers import NotificationProvider, default_providers
from homeguard.rules.correlation_rules import CorrelationConfig, CorrelationEngine
from homeguard.services.incident_service import IncidentService, derive_idempotency_key
from homeguard.services.notification_service import NotificationService
from homeguard.utils.audit_logger import AuditLogger, AuditSink, append_audit
from homeguard.utils.logging_context import LoggingContext
from homeguard.validation.sensor_validator import SensorIngestValidator

logger = logging.getLogger(__name__)


class PipelineOutcome(str, Enum):
    """What the coordinator decided for one event."""
    REJECTED = "rejected"
    DUPLICATE = "duplicate"
    NO_ALERT = "no_alert"
    RECORDED = "recorded"
    SUSPECTED = "suspected"
    NOTIFIED = "notified"
    NOTIFICATION_FAILED = "notification_failed"



class PipelineCoordinator:
    """
    Glue between the pipeline components.

    All collaborators are injected; the coordinator owns none of their state.
    Use ``async with`` (or ``start``/``stop``) to run the dedup sweep for the
    coordinator's lifetime.
    """

    def __init__(
        self,
        validator: SensorIngestValidator,
        dedup_store: DeduplicationStore,
        correlation_engine: CorrelationEngine,
        incident_service: IncidentService,
        notification_service: NotificationService,
        audit_sink: AuditSink,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.validator = validator
        self.dedup_store = dedup_store
        self.correlation_engine = correlation_engine
        self.incident_service = incident_service
        self.notification_service = notification_service
        self.audit = audit_sink
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._notifying: Set[str] = set()

    async def start(self) -> None:
        await self.dedup_store.start()
        logger.info("Pipeline coordinator started")

    async def stop(self) -> None:
        await self.dedup_store.stop()
        logger.info("Pipeline coordinator stopped")

    async def __aenter__(self) -> "PipelineCoordinator":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def process_event(self, event: Optional[SensorEvent]) -> PipelineOutcome:
        """
        Run one event through the pipeline.

        Args:
            event: Inbound sensor event (None is rejected).

        Returns:
            The decision taken for the event.
        """
        event_id = event.event_id if event is not None else None
        with LoggingContext.bind(event_id):
            outcome = await self._process(event)
        EVENTS_PROCESSED.labels(outcome=outcome.value).inc()
        return outcome

    async def process_events(self, events: Iterable[SensorEvent]) -> list[PipelineOutcome]:
        """Process events one after another, in order."""
        return [await self.process_event(event) for event in events]

    async def _process(self, event: Optional[SensorEvent]) -> PipelineOutcome:
        validation = self.validator.validate(event)
        if not validation.is_valid:
            errors = ", ".join(validation.errors)
            append_audit(
                self.audit,
                "EventRejected",
                f"Invalid event: {errors}",
                event.event_id if event is not None else None,
            )
            logger.warning(f"Event rejected: {errors}")
            return PipelineOutcome.REJECTED

        if self.dedup_store.is_duplicate(event.event_id) or not self.dedup_store.mark_processed(event.event_id):
            append_audit(self.audit, "EventDuplicate", "Ignored duplicate event", event.event_id)
            logger.info(f"Duplicate event ignored: {event.event_id}")
            return PipelineOutcome.DUPLICATE

        alert = self.correlation_engine.evaluate(event)
        if alert.detected_type is None:
            logger.debug(f"No alert for {event.sensor_type.value} event {event.event_id}")
            return PipelineOutcome.NO_ALERT

        key = derive_idempotency_key(alert.detected_type, self._clock())
        incident = self.incident_service.create_or_update(
            alert.evidence,
            alert.confidence_score,
            alert.detected_type,
            key,
        )

        if incident.state == IncidentState.CONFIRMED:
            if incident.incident_id in self._notifying:
                return PipelineOutcome.RECORDED
            return await self._notify(incident)

        if alert.should_escalate:
            append_audit(
                self.audit,
                "AlertSuspected",
                f"Suspected {alert.detected_type.value}, waiting for more evidence",
                incident.incident_id,
            )
            if incident.state == IncidentState.SUSPECTED:
                return PipelineOutcome.SUSPECTED

        return PipelineOutcome.RECORDED

    async def _notify(self, incident: Incident) -> PipelineOutcome:
        self._notifying.add(incident.incident_id)
        try:
            result = await self.notification_service.notify(incident)
            new_state = IncidentState.NOTIFIED if result.success else IncidentState.NOTIFICATION_FAILED
            self.incident_service.transition_state(incident.incident_id, new_state)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"Notification step failed for incident {incident.incident_id}")
            append_audit(self.audit, "LogicError", f"Notification step failed: {e}", incident.incident_id)
            return PipelineOutcome.NOTIFICATION_FAILED
        finally:
            self._notifying.discard(incident.incident_id)

        if result.success:
            return PipelineOutcome.NOTIFIED
        return PipelineOutcome.NOTIFICATION_FAILED


def build_pipeline(
    config: Config,
    providers: Optional[Iterable[NotificationProvider]] = None,
    audit_sink: Optional[AuditSink] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> PipelineCoordinator:
    """
    Wire a coordinator from configuration.

    Args:
        config: Application configuration.
        providers: Notification providers (simulated ones when omitted).
        audit_sink: Audit destination (an AuditLogger per ``config.audit`` when omitted).
        clock: Shared source of "now" for all time-aware components.
    """
    if audit_sink is None:
        log_path = Path(config.audit.log_path) if config.audit.log_path else None
        audit_sink = AuditLogger(log_path=log_path)

    validator = SensorIngestValidator(
        shared_secret=config.validation.shared_secret,
        timestamp_tolerance=timedelta(minutes=config.validation.timestamp_tolerance_minutes),
        clock=clock,
    )
    dedup_store = DeduplicationStore(
        ttl=timedelta(minutes=config.deduplication.ttl_minutes),
        sweep_interval_seconds=config.deduplication.sweep_interval_seconds,
        clock=clock,
    )
    engine = CorrelationEngine(CorrelationConfig(window_seconds=config.correlation.window_seconds))
    incident_service = IncidentService(InMemoryIncidentRepository(), audit_sink, clock=clock)
    notification_service = NotificationService(
        providers if providers is not None else default_providers(),
        audit_sink,
        channel_timeout_seconds=config.notification.channel_timeout_seconds,
        max_attempts=config.notification.max_attempts,
    )

    return PipelineCoordinator(
        validator=validator,
        dedup_store=dedup_store,
        correlation_engine=engine,
        incident_service=incident_service,
        notification_service=notification_service,
        audit_sink=audit_sink,
        clock=clock,
    )
