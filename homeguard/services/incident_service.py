"""
Incident Service - Idempotent Incident Lifecycle

Maps correlation results onto incident records and advances them through
the guarded state machine.

Idempotency: repeated results carrying the same key update one incident.
The key is the incident type plus the UTC minute, so a burst within one
calendar minute merges into one incident while a continuous problem that
straddles a minute boundary is split into two.

Concurrency: create_or_update and transitions are serialised by one
re-entrant lock, so concurrent updates of the same key apply in turn.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional, Sequence

from homeguard.metrics import INCIDENTS_CREATED, STATE_TRANSITIONS
from homeguard.models.incident import (
    Incident,
    IncidentState,
    IncidentType,
    is_valid_transition,
)
from homeguard.models.sensor_event import SensorEvent
from homeguard.persistence.incident_repository import IncidentRepository
from homeguard.utils.audit_logger import AuditSink, append_audit
from homeguard.utils.error_handling import IncidentNotFoundError, InvalidTransitionError

logger = logging.getLogger(__name__)

CONFIRMATION_SCORE = 1.0

# States from which a merge never attempts the Confirmed transition
_NO_RECONFIRM_STATES = frozenset({
    IncidentState.CONFIRMED,
    IncidentState.NOTIFIED,
    IncidentState.RESOLVED,
})


def derive_idempotency_key(incident_type: IncidentType, now: datetime) -> str:
    """
    Build the idempotency key for an incident type at a point in time.

    Example:
        Fire at 2024-03-01 14:07:42 UTC -> "Inc-Fire-202403011407"
    """
    bucket = now.astimezone(timezone.utc).strftime("%Y%m%d%H%M")
    return f"Inc-{incident_type.value}-{bucket}"


class TransitionOutcome(str, Enum):
    """Result kinds of a best-effort transition."""
    APPLIED = "applied"        # state changed
    UNCHANGED = "unchanged"    # already in the requested state
    REJECTED = "rejected"      # state machine forbids it (e.g. already past)


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of ``try_transition``."""
    outcome: TransitionOutcome
    incident_id: str
    from_state: IncidentState
    to_state: IncidentState
    error: Optional[InvalidTransitionError] = None

    @property
    def applied(self) -> bool:
        return self.outcome == TransitionOutcome.APPLIED


class IncidentService:
    """
    Owner of incident records.

    Responsibilities:
    1. Create incidents on the first qualifying result for a key
    2. Merge later results into the same incident
    3. Guard every state change with the transition table
    4. Audit every creation, merge and transition attempt
    """

    def __init__(
        self,
        repository: IncidentRepository,
        audit_sink: AuditSink,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the service.

        Args:
            repository: Incident storage.
            audit_sink: Destination for audit records.
            clock: Source of "now"; defaults to UTC wall clock.
        """
        self._repository = repository
        self._audit = audit_sink
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = threading.RLock()

    def get_incident(self, incident_id: str) -> Optional[Incident]:
        return self._repository.get_by_id(incident_id)

    def list_incidents(self) -> List[Incident]:
        return self._repository.list_incidents()

    def create_or_update(
        self,
        evidence: Sequence[SensorEvent],
        confidence_score: float,
        incident_type: IncidentType,
        idempotency_key: str,
    ) -> Incident:
        """
        Create the incident for ``idempotency_key`` or merge into it.

        Args:
            evidence: Events that justified the correlation result.
            confidence_score: Score of the result, in [0, 1].
            incident_type: Detected incident type.
            idempotency_key: Key identifying the ongoing problem.

        Returns:
            The created or updated incident.
        """
        with self._lock:
            incident = self._repository.get_by_idempotency_key(idempotency_key)
            if incident is None:
                return self._create(evidence, confidence_score, incident_type, idempotency_key)
            return self._merge(incident, evidence, confidence_score, idempotency_key)

    def transition_state(self, incident_id: str, new_state: IncidentState) -> Incident:
        """
        Move an incident to ``new_state``.

        A transition to the current state is a no-op.

        Raises:
            IncidentNotFoundError: Unknown incident id.
            InvalidTransitionError: The state machine forbids the transition.
        """
        with self._lock:
            incident = self._require(incident_id)
            self._apply_transition(incident, new_state)
            return incident

    def try_transition(self, incident_id: str, new_state: IncidentState) -> TransitionResult:
        """
        Best-effort variant of ``transition_state``.

        A forbidden transition is reported as REJECTED instead of raised,
        so callers can ignore the "already past this state" case explicitly.

        Raises:
            IncidentNotFoundError: Unknown incident id.
        """
        with self._lock:
            incident = self._require(incident_id)
            return self._try_apply(incident, new_state)

    def _create(
        self,
        evidence: Sequence[SensorEvent],
        confidence_score: float,
        incident_type: IncidentType,
        idempotency_key: str,
    ) -> Incident:
        now = self._clock()
        state = (
            IncidentState.CONFIRMED
            if confidence_score >= CONFIRMATION_SCORE
            else IncidentState.SUSPECTED
        )
        incident = Incident(
            incident_type=incident_type,
            state=state,
            confidence_score=confidence_score,
            created_at=now,
            last_updated_at=now,
        )
        incident.merge_evidence(evidence)

        self._repository.save(incident)
        self._repository.register_idempotency_key(idempotency_key, incident.incident_id)

        INCIDENTS_CREATED.labels(incident_type=incident_type.value, state=state.value).inc()
        append_audit(
            self._audit,
            "IncidentCreated",
            f"Created {incident_type.value} incident with score {confidence_score} "
            f"and state {state.value}",
            incident.incident_id,
        )
        logger.info(
            f"Incident {incident.incident_id} created: type={incident_type.value}, "
            f"state={state.value}, key={idempotency_key}"
        )
        return incident

    def _merge(
        self,
        incident: Incident,
        evidence: Sequence[SensorEvent],
        confidence_score: float,
        idempotency_key: str,
    ) -> Incident:
        append_audit(
            self._audit,
            "IncidentDedup",
            f"Updating existing incident for key {idempotency_key}",
            incident.incident_id,
        )

        added = incident.merge_evidence(evidence)
        incident.raise_confidence(confidence_score)

        if confidence_score >= CONFIRMATION_SCORE and incident.state not in _NO_RECONFIRM_STATES:
            result = self._try_apply(incident, IncidentState.CONFIRMED)
            if result.outcome == TransitionOutcome.REJECTED:
                logger.info(
                    f"Incident {incident.incident_id} already past Confirmed "
                    f"(state={incident.state.value}); keeping state"
                )

        incident.last_updated_at = self._clock()
        self._repository.save(incident)

        logger.debug(
            f"Incident {incident.incident_id} merged: +{added} evidence, "
            f"score={incident.confidence_score}, state={incident.state.value}"
        )
        return incident

    def _require(self, incident_id: str) -> Incident:
        incident = self._repository.get_by_id(incident_id)
        if incident is None:
            raise IncidentNotFoundError(incident_id)
        return incident

    def _try_apply(self, incident: Incident, new_state: IncidentState) -> TransitionResult:
        from_state = incident.state
        try:
            changed = self._apply_transition(incident, new_state)
        except InvalidTransitionError as e:
            return TransitionResult(
                outcome=TransitionOutcome.REJECTED,
                incident_id=incident.incident_id,
                from_state=from_state,
                to_state=new_state,
                error=e,
            )
        return TransitionResult(
            outcome=TransitionOutcome.APPLIED if changed else TransitionOutcome.UNCHANGED,
            incident_id=incident.incident_id,
            from_state=from_state,
            to_state=new_state,
        )

    def _apply_transition(self, incident: Incident, new_state: IncidentState) -> bool:
        """Returns False for a same-state no-op."""
        old_state = incident.state
        if old_state == new_state:
            return False

        if not is_valid_transition(old_state, new_state):
            error = InvalidTransitionError(old_state, new_state)
            STATE_TRANSITIONS.labels(
                from_state=old_state.value, to_state=new_state.value, status="rejected"
            ).inc()
            append_audit(self._audit, "StateTransitionFailed", str(error), incident.incident_id)
            logger.warning(f"Incident {incident.incident_id}: {error}")
            raise error

        incident.state = new_state
        incident.last_updated_at = self._clock()
        self._repository.save(incident)

        STATE_TRANSITIONS.labels(
            from_state=old_state.value, to_state=new_state.value, status="applied"
        ).inc()
        append_audit(
            self._audit,
            "StateTransition",
            f"Transitioned from {old_state.value} to {new_state.value}",
            incident.incident_id,
        )
        logger.info(
            f"Incident {incident.incident_id}: {old_state.value} -> {new_state.value}"
        )
        return True
