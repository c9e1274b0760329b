"""
Homeguard - Demo Entry Point

Runs a scripted set of scenarios through a fully wired pipeline using the
simulated notification providers and prints the audit trail after each.

    python -m homeguard.main
"""

import asyncio
import logging
import sys
import uuid
from datetime import datetime, timezone
from typing import Optional

from dotenv import load_dotenv

from homeguard.config.settings import get_config
from homeguard.controllers.pipeline_coordinator import PipelineCoordinator, build_pipeline
from homeguard.models.incident import IncidentState, IncidentType
from homeguard.models.sensor_event import SensorEvent, SensorType
from homeguard.utils.audit_logger import AuditLogger
from homeguard.utils.error_handling import InvalidTransitionError
from homeguard.utils.logging_context import setup_logging
from homeguard.validation.sensor_validator import sign_event

logger = logging.getLogger(__name__)


def make_event(
    sensor_type: SensorType,
    value: float,
    secret: str,
    device_id: str = "demo-device",
    event_id: Optional[str] = None,
) -> SensorEvent:
    """Build a signed event stamped with the current time."""
    event = SensorEvent(
        event_id=event_id or str(uuid.uuid4()),
        device_id=device_id,
        sensor_type=sensor_type,
        value=value,
        timestamp=datetime.now(timezone.utc),
    )
    return sign_event(event, secret)


def print_audit(audit: AuditLogger, count: int = 10) -> None:
    print("  --- audit ---")
    for line in audit.get_recent_logs(count):
        print(f"  {line}")
    print()


async def run_scenarios(coordinator: PipelineCoordinator, audit: AuditLogger, secret: str) -> None:
    print("=== 1. Invalid event (bad signature) ===")
    bad = make_event(SensorType.MOTION, 1, secret, device_id="hall-motion")
    bad = bad.model_copy(update={"signature": "forged"})
    outcome = await coordinator.process_event(bad)
    print(f"  outcome: {outcome.value}")
    print_audit(audit, 2)

    print("=== 2. Duplicate event ===")
    door_closed = make_event(SensorType.DOOR_CONTACT, 0, secret, device_id="front-door")
    first, second = await coordinator.process_events([door_closed, door_closed])
    print(f"  outcomes: {first.value}, {second.value}")
    print_audit(audit, 2)

    print("=== 3. Motion then open door (break-in) ===")
    await coordinator.process_event(make_event(SensorType.MOTION, 1, secret, device_id="hall-motion"))
    await asyncio.sleep(0.5)
    outcome = await coordinator.process_event(make_event(SensorType.DOOR_CONTACT, 1, secret, device_id="front-door"))
    print(f"  outcome: {outcome.value}")
    print_audit(audit, 12)

    print("=== 4. High smoke reading (SMS -> Push fallback) ===")
    outcome = await coordinator.process_event(make_event(SensorType.SMOKE, 95, secret, device_id="kitchen-smoke"))
    print(f"  outcome: {outcome.value}")
    print_audit(audit, 10)

    print("=== 5. Illegal transition Confirmed -> Detected ===")
    service = coordinator.incident_service
    incident = service.create_or_update([], 1.0, IncidentType.FIRE, f"Demo-{uuid.uuid4()}")
    try:
        service.transition_state(incident.incident_id, IncidentState.DETECTED)
    except InvalidTransitionError as e:
        print(f"  rejected: {e}")
    print_audit(audit, 2)


async def main() -> None:
    """Main execution function."""
    load_dotenv()
    try:
        config = get_config()
    except Exception as e:
        print(f"FATAL: Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config.log_level)
    logger.info(f"Starting Homeguard demo in {config.environment} mode")

    audit = AuditLogger()
    coordinator = build_pipeline(config, audit_sink=audit)
    async with coordinator:
        await run_scenarios(coordinator, audit, config.validation.shared_secret)

    logger.info(f"Demo finished: {len(coordinator.incident_service.list_incidents())} incident(s)")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
