"""
Unit Tests for Incident Service

Tests:
- Idempotency key derivation
- Create vs. merge on the same key
- Evidence and confidence invariants
- Guarded state transitions and their audit trail
"""

import threading
from datetime import datetime, timezone

import pytest

from homeguard.models.incident import ALLOWED_TRANSITIONS, IncidentState, IncidentType, is_valid_transition
from homeguard.models.sensor_event import SensorType
from homeguard.persistence.incident_repository import InMemoryIncidentRepository
from homeguard.services.incident_service import (
    IncidentService,
    TransitionOutcome,
    derive_idempotency_key,
)
from homeguard.utils.error_handling import IncidentNotFoundError, InvalidTransitionError


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def repository():
    return InMemoryIncidentRepository()


@pytest.fixture
def service(repository, audit_logger, clock):
    return IncidentService(repository, audit_logger, clock=clock)


@pytest.fixture
def key(now):
    return derive_idempotency_key(IncidentType.FIRE, now)


# ============================================================================
# Idempotency key
# ============================================================================

class TestIdempotencyKey:

    def test_format(self):
        now = datetime(2024, 3, 1, 14, 7, 42, tzinfo=timezone.utc)

        assert derive_idempotency_key(IncidentType.FIRE, now) == "Inc-Fire-202403011407"
        assert derive_idempotency_key(IncidentType.BREAK_IN, now) == "Inc-BreakIn-202403011407"

    def test_same_minute_same_key(self):
        a = datetime(2024, 3, 1, 14, 7, 0, tzinfo=timezone.utc)
        b = datetime(2024, 3, 1, 14, 7, 59, 999000, tzinfo=timezone.utc)

        assert derive_idempotency_key(IncidentType.FIRE, a) == derive_idempotency_key(IncidentType.FIRE, b)

    def test_minute_boundary_splits(self):
        a = datetime(2024, 3, 1, 14, 7, 59, tzinfo=timezone.utc)
        b = datetime(2024, 3, 1, 14, 8, 0, tzinfo=timezone.utc)

        assert derive_idempotency_key(IncidentType.FIRE, a) != derive_idempotency_key(IncidentType.FIRE, b)


# ============================================================================
# create_or_update
# ============================================================================

class TestCreateOrUpdate:

    def test_low_score_creates_suspected(self, service, make_event, key, audit_logger):
        incident = service.create_or_update([make_event(SensorType.SMOKE, 85)], 0.5, IncidentType.FIRE, key)

        assert incident.state == IncidentState.SUSPECTED
        assert incident.confidence_score == 0.5
        assert len(audit_logger.entries("IncidentCreated")) == 1

    def test_full_score_creates_confirmed(self, service, make_event, key):
        incident = service.create_or_update([make_event(SensorType.SMOKE, 95)], 1.0, IncidentType.FIRE, key)

        assert incident.state == IncidentState.CONFIRMED

    def test_same_key_updates_one_incident(self, service, repository, make_event, key, audit_logger):
        shared = make_event(SensorType.SMOKE, 85, event_id="shared")
        first = service.create_or_update([shared], 0.5, IncidentType.FIRE, key)
        second = service.create_or_update(
            [shared, make_event(SensorType.HEAT, 88, event_id="other")], 0.5, IncidentType.FIRE, key
        )

        assert first.incident_id == second.incident_id
        assert len(repository) == 1
        assert second.evidence_ids == ["shared", "other"]
        assert len(set(second.evidence_ids)) == len(second.evidence_ids)
        assert len(audit_logger.entries("IncidentDedup")) == 1

    def test_different_keys_create_separate_incidents(self, service, repository, make_event):
        service.create_or_update([make_event(SensorType.SMOKE, 85)], 0.5, IncidentType.FIRE, "Inc-Fire-1")
        service.create_or_update([make_event(SensorType.SMOKE, 85)], 0.5, IncidentType.FIRE, "Inc-Fire-2")

        assert len(repository) == 2

    def test_confidence_never_decreases(self, service, make_event, key):
        service.create_or_update([make_event(SensorType.SMOKE, 85)], 0.5, IncidentType.FIRE, key)
        incident = service.create_or_update([make_event(SensorType.SMOKE, 20)], 0.3, IncidentType.FIRE, key)

        assert incident.confidence_score == 0.5

    def test_full_score_merge_confirms_suspected(self, service, make_event, key, audit_logger):
        service.create_or_update([make_event(SensorType.SMOKE, 85)], 0.5, IncidentType.FIRE, key)
        incident = service.create_or_update([make_event(SensorType.SMOKE, 95)], 1.0, IncidentType.FIRE, key)

        assert incident.state == IncidentState.CONFIRMED
        assert incident.confidence_score == 1.0
        transitions = audit_logger.entries("StateTransition")
        assert [t.details for t in transitions] == ["Transitioned from Suspected to Confirmed"]

    def test_full_score_merge_keeps_notified(self, service, make_event, key, audit_logger):
        incident = service.create_or_update([make_event(SensorType.SMOKE, 95)], 1.0, IncidentType.FIRE, key)
        service.transition_state(incident.incident_id, IncidentState.NOTIFIED)

        merged = service.create_or_update([make_event(SensorType.SMOKE, 99)], 1.0, IncidentType.FIRE, key)

        assert merged.state == IncidentState.NOTIFIED
        assert audit_logger.entries("StateTransitionFailed") == []

    def test_full_score_merge_past_confirmed_is_not_raised(self, service, make_event, key):
        incident = service.create_or_update([make_event(SensorType.SMOKE, 95)], 1.0, IncidentType.FIRE, key)
        service.transition_state(incident.incident_id, IncidentState.NOTIFICATION_FAILED)

        merged = service.create_or_update([make_event(SensorType.SMOKE, 99)], 1.0, IncidentType.FIRE, key)

        assert merged.state == IncidentState.NOTIFICATION_FAILED
        assert len(merged.evidence) == 2

    def test_merge_updates_last_updated_at(self, service, make_event, key, clock):
        incident = service.create_or_update([make_event(SensorType.SMOKE, 85)], 0.5, IncidentType.FIRE, key)
        created = incident.created_at
        clock.advance(seconds=20)

        merged = service.create_or_update([make_event(SensorType.SMOKE, 86)], 0.5, IncidentType.FIRE, key)

        assert merged.created_at == created
        assert merged.last_updated_at == clock()

    def test_concurrent_updates_share_one_incident(self, service, repository, make_event, key):
        events = [make_event(SensorType.SMOKE, 85) for _ in range(40)]

        def worker(chunk):
            for event in chunk:
                service.create_or_update([event], 0.5, IncidentType.FIRE, key)

        threads = [threading.Thread(target=worker, args=(events[i::4],)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(repository) == 1
        assert len(repository.list_incidents()[0].evidence) == 40


# ============================================================================
# Transitions
# ============================================================================

class TestTransitions:

    @pytest.fixture
    def confirmed(self, service, make_event, key):
        return service.create_or_update([make_event(SensorType.SMOKE, 95)], 1.0, IncidentType.FIRE, key)

    def test_confirmed_to_notified_succeeds(self, service, confirmed, audit_logger):
        incident = service.transition_state(confirmed.incident_id, IncidentState.NOTIFIED)

        assert incident.state == IncidentState.NOTIFIED
        assert audit_logger.entries("StateTransition")[-1].details == "Transitioned from Confirmed to Notified"

    def test_confirmed_to_detected_fails(self, service, confirmed, audit_logger):
        with pytest.raises(InvalidTransitionError) as exc_info:
            service.transition_state(confirmed.incident_id, IncidentState.DETECTED)

        assert "Confirmed to Detected" in str(exc_info.value)
        assert service.get_incident(confirmed.incident_id).state == IncidentState.CONFIRMED
        assert len(audit_logger.entries("StateTransitionFailed")) == 1

    def test_same_state_is_noop(self, service, confirmed, audit_logger, clock):
        before = len(audit_logger.entries())
        updated_at = confirmed.last_updated_at
        clock.advance(seconds=5)

        incident = service.transition_state(confirmed.incident_id, IncidentState.CONFIRMED)

        assert incident.state == IncidentState.CONFIRMED
        assert incident.last_updated_at == updated_at
        assert len(audit_logger.entries()) == before

    def test_notification_failed_can_retry_to_notified(self, service, confirmed):
        service.transition_state(confirmed.incident_id, IncidentState.NOTIFICATION_FAILED)

        incident = service.transition_state(confirmed.incident_id, IncidentState.NOTIFIED)

        assert incident.state == IncidentState.NOTIFIED

    def test_full_lifecycle_to_archived(self, service, confirmed):
        for state in (
            IncidentState.NOTIFIED,
            IncidentState.ACKNOWLEDGED,
            IncidentState.RESOLVED,
            IncidentState.CLOSED,
            IncidentState.ARCHIVED,
        ):
            service.transition_state(confirmed.incident_id, state)

        assert service.get_incident(confirmed.incident_id).state == IncidentState.ARCHIVED

    def test_unknown_incident(self, service):
        with pytest.raises(IncidentNotFoundError):
            service.transition_state("missing", IncidentState.NOTIFIED)

    def test_not_found_is_a_key_error(self, service):
        with pytest.raises(KeyError):
            service.try_transition("missing", IncidentState.NOTIFIED)

    def test_try_transition_reports_rejection(self, service, confirmed):
        result = service.try_transition(confirmed.incident_id, IncidentState.DETECTED)

        assert result.outcome == TransitionOutcome.REJECTED
        assert isinstance(result.error, InvalidTransitionError)
        assert not result.applied

    def test_try_transition_outcomes(self, service, confirmed):
        unchanged = service.try_transition(confirmed.incident_id, IncidentState.CONFIRMED)
        applied = service.try_transition(confirmed.incident_id, IncidentState.RESOLVED)

        assert unchanged.outcome == TransitionOutcome.UNCHANGED
        assert applied.outcome == TransitionOutcome.APPLIED
        assert applied.from_state == IncidentState.CONFIRMED


class TestTransitionTable:

    @pytest.mark.parametrize("state", list(IncidentState))
    def test_self_transition_always_allowed(self, state):
        assert is_valid_transition(state, state)

    def test_archived_is_terminal(self):
        assert ALLOWED_TRANSITIONS[IncidentState.ARCHIVED] == frozenset()
        assert not is_valid_transition(IncidentState.ARCHIVED, IncidentState.CLOSED)

    def test_no_backward_edge_except_retry(self):
        assert not is_valid_transition(IncidentState.NOTIFIED, IncidentState.CONFIRMED)
        assert is_valid_transition(IncidentState.NOTIFICATION_FAILED, IncidentState.NOTIFIED)
