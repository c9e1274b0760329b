"""
Unit Tests for Correlation Engine

Tests:
- Fire rule tiers
- Break-in rule (door + motion within the window)
- Window eviction relative to the newest event
- Lone readings never escalate
"""

import threading

import pytest

from homeguard.models.incident import IncidentType
from homeguard.models.sensor_event import SensorType
from homeguard.rules.correlation_rules import (
    CorrelationConfig,
    CorrelationEngine,
    evaluate_events,
)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def engine():
    return CorrelationEngine()


# ============================================================================
# Fire rule
# ============================================================================

class TestFireRule:

    @pytest.mark.parametrize("sensor_type", [SensorType.SMOKE, SensorType.HEAT])
    def test_high_value_confirms_fire(self, engine, make_event, sensor_type):
        event = make_event(sensor_type, 95)

        result = engine.evaluate(event)

        assert result.confidence_score == 1.0
        assert result.should_escalate is True
        assert result.detected_type == IncidentType.FIRE
        assert result.evidence == [event]
        assert result.is_confirmed

    def test_suspected_tier(self, engine, make_event):
        result = engine.evaluate(make_event(SensorType.SMOKE, 85))

        assert result.confidence_score == 0.5
        assert result.should_escalate is True
        assert result.detected_type == IncidentType.FIRE

    @pytest.mark.parametrize("value,score", [(80, None), (80.5, 0.5), (90, 0.5), (90.1, 1.0)])
    def test_threshold_boundaries(self, engine, make_event, value, score):
        result = engine.evaluate(make_event(SensorType.HEAT, value))

        if score is None:
            assert result.detected_type is None
        else:
            assert result.confidence_score == score

    def test_low_reading_is_no_alert(self, engine, make_event):
        result = engine.evaluate(make_event(SensorType.SMOKE, 20))

        assert result.confidence_score == 0.0
        assert result.should_escalate is False
        assert result.detected_type is None
        assert result.evidence == []


# ============================================================================
# Break-in rule
# ============================================================================

class TestBreakInRule:

    def test_motion_then_door_confirms(self, engine, make_event):
        motion = make_event(SensorType.MOTION, 1, offset_seconds=0)
        door = make_event(SensorType.DOOR_CONTACT, 1, offset_seconds=4)

        engine.evaluate(motion)
        result = engine.evaluate(door)

        assert result.confidence_score >= 1.0
        assert result.detected_type == IncidentType.BREAK_IN
        assert result.should_escalate is True
        assert result.evidence == [door, motion]

    def test_door_then_motion_confirms(self, engine, make_event):
        door = make_event(SensorType.DOOR_CONTACT, 1, offset_seconds=0)
        motion = make_event(SensorType.MOTION, 1, offset_seconds=9)

        engine.evaluate(door)
        result = engine.evaluate(motion)

        assert result.confidence_score == 1.0
        assert result.evidence == [door, motion]

    def test_lone_motion_does_not_escalate(self, engine, make_event):
        motion = make_event(SensorType.MOTION, 1)

        result = engine.evaluate(motion)

        assert result.confidence_score < 1.0
        assert result.confidence_score == 0.3
        assert result.should_escalate is False
        assert result.detected_type == IncidentType.BREAK_IN
        assert result.evidence == [motion]

    def test_closed_door_does_not_corroborate(self, engine, make_event):
        engine.evaluate(make_event(SensorType.MOTION, 1, offset_seconds=0))
        result = engine.evaluate(make_event(SensorType.DOOR_CONTACT, 0, offset_seconds=1))

        assert result.confidence_score == 0.3
        assert result.should_escalate is False

    def test_events_outside_window_do_not_correlate(self, engine, make_event):
        engine.evaluate(make_event(SensorType.MOTION, 1, offset_seconds=0))
        result = engine.evaluate(make_event(SensorType.DOOR_CONTACT, 1, offset_seconds=11))

        assert result.confidence_score == 0.3
        assert engine.window_size == 1

    def test_pair_exactly_one_window_apart_confirms(self, engine, make_event):
        motion = make_event(SensorType.MOTION, 1, offset_seconds=0)
        door = make_event(SensorType.DOOR_CONTACT, 1, offset_seconds=10)

        engine.evaluate(motion)
        result = engine.evaluate(door)

        assert result.confidence_score == 1.0
        assert result.evidence == [door, motion]
        assert engine.snapshot() == [motion, door]

    def test_pair_just_beyond_window_does_not_confirm(self, engine, make_event):
        engine.evaluate(make_event(SensorType.MOTION, 1, offset_seconds=0))
        result = engine.evaluate(make_event(SensorType.DOOR_CONTACT, 1, offset_seconds=10.001))

        assert result.confidence_score == 0.3
        assert result.should_escalate is False
        assert engine.window_size == 1

    def test_latest_matching_event_is_used(self, engine, make_event):
        engine.evaluate(make_event(SensorType.MOTION, 1, offset_seconds=0))
        later_motion = make_event(SensorType.MOTION, 1, offset_seconds=3)
        engine.evaluate(later_motion)
        door = make_event(SensorType.DOOR_CONTACT, 1, offset_seconds=5)

        result = engine.evaluate(door)

        assert result.evidence == [door, later_motion]

    def test_window_is_shared_across_devices(self, engine, make_event):
        engine.evaluate(make_event(SensorType.MOTION, 1, device_id="garage"))
        result = engine.evaluate(make_event(SensorType.DOOR_CONTACT, 1, offset_seconds=2, device_id="front"))

        assert result.is_confirmed


# ============================================================================
# Window
# ============================================================================

class TestWindow:

    def test_eviction_is_relative_to_newest_event(self, engine, make_event):
        engine.evaluate(make_event(SensorType.SMOKE, 10, offset_seconds=0))
        engine.evaluate(make_event(SensorType.SMOKE, 10, offset_seconds=5))
        engine.evaluate(make_event(SensorType.SMOKE, 10, offset_seconds=12))

        offsets = [e.timestamp for e in engine.snapshot()]

        assert len(offsets) == 2

    def test_custom_window(self, make_event):
        engine = CorrelationEngine(CorrelationConfig(window_seconds=2))
        engine.evaluate(make_event(SensorType.MOTION, 1, offset_seconds=0))

        result = engine.evaluate(make_event(SensorType.DOOR_CONTACT, 1, offset_seconds=3))

        assert not result.is_confirmed

    def test_reset_clears_window(self, engine, make_event):
        engine.evaluate(make_event(SensorType.MOTION, 1))
        engine.reset()

        assert engine.window_size == 0

    def test_evaluate_events_replays_in_order(self, make_event):
        results = evaluate_events([
            make_event(SensorType.MOTION, 1, offset_seconds=0),
            make_event(SensorType.DOOR_CONTACT, 1, offset_seconds=1),
        ])

        assert [r.confidence_score for r in results] == [0.3, 1.0]

    def test_concurrent_evaluation_keeps_every_event(self, engine, make_event):
        events = [make_event(SensorType.HEAT, 10, offset_seconds=i * 0.001) for i in range(200)]

        threads = [
            threading.Thread(target=lambda chunk=events[i::4]: [engine.evaluate(e) for e in chunk])
            for i in range(4)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert engine.window_size == 200
