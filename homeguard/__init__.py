# Homeguard - Main Package
"""
Reliable alarm pipeline for premises-security and fire-detection sensors.

This package provides:
- Event deduplication with TTL sweeping
- Time-windowed cross-sensor correlation
- Idempotent incident lifecycle with a guarded state machine
- Multi-channel notification with fallback and bounded retry
- Append-only audit trail
"""

__version__ = "0.1.0"
