"""
Correlation Rules - Cross-Sensor Alert Confirmation

Implements deterministic rules that turn a stream of sensor events into
confidence-scored alerts. A single engine instance keeps one shared
sliding window of recent events; evaluation and window mutation happen
atomically under one lock.

Rules:
1. Fire: a Smoke/Heat reading above 90 confirms, above 80 is suspected
2. Break-in: an open door and a detected motion within the window confirm;
   a lone door/motion reading is recorded but never escalates
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable, Optional

from homeguard.metrics import CORRELATION_CONFIDENCE
from homeguard.models.incident import IncidentType
from homeguard.models.sensor_event import BINARY_SENSORS, FIRE_SENSORS, SensorEvent, SensorType

logger = logging.getLogger(__name__)


# Default configuration
DEFAULT_WINDOW_SECONDS = 10.0
DEFAULT_FIRE_SUSPECT_THRESHOLD = 80.0
DEFAULT_FIRE_CONFIRM_THRESHOLD = 90.0

CONFIRMED_CONFIDENCE = 1.0
SUSPECTED_FIRE_CONFIDENCE = 0.5
LONE_BREAK_IN_CONFIDENCE = 0.3

DOOR_OPEN = 1
MOTION_DETECTED = 1


@dataclass(frozen=True)
class AlertResult:
    """Output of one evaluation. Never persisted."""
    confidence_score: float
    should_escalate: bool
    detected_type: Optional[IncidentType] = None
    evidence: list[SensorEvent] = field(default_factory=list)

    @classmethod
    def no_alert(cls) -> "AlertResult":
        return cls(confidence_score=0.0, should_escalate=False)

    @property
    def is_confirmed(self) -> bool:
        return self.confidence_score >= CONFIRMED_CONFIDENCE


class CorrelationConfig:
    """Configuration for correlation rules."""

    def __init__(
        self,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        fire_suspect_threshold: float = DEFAULT_FIRE_SUSPECT_THRESHOLD,
        fire_confirm_threshold: float = DEFAULT_FIRE_CONFIRM_THRESHOLD,
    ):
        self.window_seconds = window_seconds
        self.fire_suspect_threshold = fire_suspect_threshold
        self.fire_confirm_threshold = fire_confirm_threshold

    @property
    def window(self) -> timedelta:
        return timedelta(seconds=self.window_seconds)


class CorrelationEngine:
    """
    Stateful engine evaluating each new event against recent history.

    The window is shared across devices and incident types. Eviction is
    relative to the timestamp of the newest evaluated event, not the
    wall clock.
    """

    def __init__(self, config: Optional[CorrelationConfig] = None):
        """
        Initialize correlation engine.

        Args:
            config: Correlation configuration. Defaults to sensible values.
        """
        self._config = config or CorrelationConfig()
        self._window: list[SensorEvent] = []
        self._lock = threading.Lock()

    @property
    def window_size(self) -> int:
        with self._lock:
            return len(self._window)

    def snapshot(self) -> list[SensorEvent]:
        """Copy of the current window, in arrival order."""
        with self._lock:
            return list(self._window)

    def reset(self) -> None:
        with self._lock:
            self._window.clear()

    def evaluate(self, event: SensorEvent) -> AlertResult:
        """
        Insert ``event`` into the window and apply the rules.

        Args:
            event: Newly accepted sensor event.

        Returns:
            AlertResult with confidence, escalation flag, type and evidence.
        """
        with self._lock:
            self._window.append(event)
            self._evict_before(event.timestamp - self._config.window)

            result = self._apply_rules(event)

        if result.detected_type is not None:
            CORRELATION_CONFIDENCE.labels(incident_type=result.detected_type.value).observe(
                result.confidence_score
            )
        logger.debug(
            f"Evaluated {event.sensor_type.value}={event.value} from {event.device_id}: "
            f"type={result.detected_type.value if result.detected_type else None}, "
            f"confidence={result.confidence_score}, escalate={result.should_escalate}"
        )
        return result

    def _evict_before(self, cutoff: datetime) -> None:
        self._window = [e for e in self._window if e.timestamp >= cutoff]

    def _apply_rules(self, event: SensorEvent) -> AlertResult:
        if event.sensor_type in FIRE_SENSORS:
            fire = self._evaluate_fire(event)
            if fire is not None:
                return fire

        if event.sensor_type in BINARY_SENSORS:
            return self._evaluate_break_in(event)

        return AlertResult.no_alert()

    def _evaluate_fire(self, event: SensorEvent) -> Optional[AlertResult]:
        if event.value <= self._config.fire_suspect_threshold:
            return None

        if event.value > self._config.fire_confirm_threshold:
            score = CONFIRMED_CONFIDENCE
        else:
            score = SUSPECTED_FIRE_CONFIDENCE

        return AlertResult(
            confidence_score=score,
            should_escalate=True,
            detected_type=IncidentType.FIRE,
            evidence=[event],
        )

    def _evaluate_break_in(self, event: SensorEvent) -> AlertResult:
        door = self._latest(SensorType.DOOR_CONTACT, DOOR_OPEN)
        motion = self._latest(SensorType.MOTION, MOTION_DETECTED)

        if door is not None and motion is not None:
            gap = abs(door.timestamp - motion.timestamp)
            if gap <= self._config.window:
                return AlertResult(
                    confidence_score=CONFIRMED_CONFIDENCE,
                    should_escalate=True,
                    detected_type=IncidentType.BREAK_IN,
                    evidence=[door, motion],
                )

        return AlertResult(
            confidence_score=LONE_BREAK_IN_CONFIDENCE,
            should_escalate=False,
            detected_type=IncidentType.BREAK_IN,
            evidence=[event],
        )

    def _latest(self, sensor_type: SensorType, value: float) -> Optional[SensorEvent]:
        """Most recent window member of a kind; earliest arrival wins ties."""
        latest = None
        for candidate in self._window:
            if candidate.sensor_type != sensor_type or candidate.value != value:
                continue
            if latest is None or candidate.timestamp > latest.timestamp:
                latest = candidate
        return latest


def evaluate_events(
    events: Iterable[SensorEvent],
    window_seconds: float = DEFAULT_WINDOW_SECONDS,
) -> list[AlertResult]:
    """
    Replay a sequence of events through a fresh engine.

    Args:
        events: Events in arrival order.
        window_seconds: Width of the correlation window.

    Returns:
        One AlertResult per event.
    """
    engine = CorrelationEngine(CorrelationConfig(window_seconds=window_seconds))
    return [engine.evaluate(event) for event in events]
