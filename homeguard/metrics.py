"""
Prometheus metrics definitions for Homeguard.

This module defines all custom metrics used across the pipeline.
"""

from prometheus_client import Counter, Histogram, Gauge

# Pipeline Metrics
EVENTS_PROCESSED = Counter(
    'homeguard_events_processed_total',
    'Sensor events handled by the pipeline coordinator',
    ['outcome']
)

CORRELATION_CONFIDENCE = Histogram(
    'homeguard_correlation_confidence',
    'Confidence scores produced by the correlation engine',
    ['incident_type'],
    buckets=[0.0, 0.3, 0.5, 0.7, 0.9, 1.0]
)

# Deduplication Metrics
DEDUP_STORE_SIZE = Gauge(
    'homeguard_dedup_store_size',
    'Event ids currently held by the deduplication store'
)

DEDUP_EVICTIONS = Counter(
    'homeguard_dedup_evictions_total',
    'Event ids removed by the TTL sweep'
)

# Incident Metrics
INCIDENTS_CREATED = Counter(
    'homeguard_incidents_created_total',
    'Incidents created by the lifecycle manager',
    ['incident_type', 'state']
)

STATE_TRANSITIONS = Counter(
    'homeguard_incident_transitions_total',
    'Incident state transitions',
    ['from_state', 'to_state', 'status']
)

# Notification Metrics
NOTIFICATION_ATTEMPTS = Counter(
    'homeguard_notification_attempts_total',
    'Provider send attempts',
    ['channel', 'status']
)

NOTIFICATION_DURATION = Histogram(
    'homeguard_notification_duration_seconds',
    'Wall time of a full notification orchestration',
    ['channel']
)
