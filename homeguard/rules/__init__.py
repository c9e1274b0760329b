# Rules Package
"""
Deterministic rule engines.

Rules are evaluated on every accepted event.
All rule outcomes feed the incident lifecycle and audit trail.
"""

from homeguard.rules.correlation_rules import (
    AlertResult,
    CorrelationEngine,
    CorrelationConfig,
    evaluate_events,
)

__all__ = [
    "AlertResult",
    "CorrelationEngine",
    "CorrelationConfig",
    "evaluate_events",
]
