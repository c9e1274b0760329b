# Persistence Package
"""
Incident storage behind a key-value contract.
"""

from homeguard.persistence.incident_repository import (
    IncidentRepository,
    InMemoryIncidentRepository,
)

__all__ = ["IncidentRepository", "InMemoryIncidentRepository"]
