"""
Incident Repository - Key-Value Incident Store

Stores incidents by id and keeps the idempotency-key index that lets
repeated detections of the same problem resolve to one incident.

Pattern: Repository Pattern
Resilience: Thread-safe in-memory backend; any key-value backend fits
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from homeguard.models.incident import Incident

logger = logging.getLogger(__name__)


class IncidentRepository(ABC):
    """Storage contract required by the incident lifecycle manager."""

    @abstractmethod
    def save(self, incident: Incident) -> None:
        """Insert or replace an incident by id."""

    @abstractmethod
    def get_by_id(self, incident_id: str) -> Optional[Incident]:
        """Return the incident or None."""

    @abstractmethod
    def get_by_idempotency_key(self, key: str) -> Optional[Incident]:
        """Resolve an idempotency key to its incident, or None."""

    @abstractmethod
    def register_idempotency_key(self, key: str, incident_id: str) -> bool:
        """Map ``key`` to ``incident_id``; the first registration wins.

        Returns:
            True if the mapping was added
        """

    @abstractmethod
    def list_incidents(self) -> List[Incident]:
        """Return every stored incident."""


class InMemoryIncidentRepository(IncidentRepository):
    """Dictionary-backed repository guarded by a lock."""

    def __init__(self):
        self._incidents: Dict[str, Incident] = {}
        self._idempotency_index: Dict[str, str] = {}
        self._lock = threading.Lock()

    def save(self, incident: Incident) -> None:
        with self._lock:
            self._incidents[incident.incident_id] = incident

    def get_by_id(self, incident_id: str) -> Optional[Incident]:
        with self._lock:
            return self._incidents.get(incident_id)

    def get_by_idempotency_key(self, key: str) -> Optional[Incident]:
        with self._lock:
            incident_id = self._idempotency_index.get(key)
            if incident_id is None:
                return None
            return self._incidents.get(incident_id)

    def register_idempotency_key(self, key: str, incident_id: str) -> bool:
        with self._lock:
            if key in self._idempotency_index:
                logger.debug(
                    f"Idempotency key {key} already mapped to {self._idempotency_index[key]}"
                )
                return False
            self._idempotency_index[key] = incident_id
            return True

    def list_incidents(self) -> List[Incident]:
        with self._lock:
            return list(self._incidents.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._incidents)
