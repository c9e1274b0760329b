"""
Audit Logger - Append-Only Pipeline Trail

Implements the audit trail for every pipeline decision: rejected and
duplicate events, incident creation and merges, state transitions and
each notification attempt.

Entries are kept in memory and, when a path is configured, appended to a
JSON Lines file. Persisting is best-effort: a failing audit sink never
aborts event processing.
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from homeguard.models.audit import AuditEntry

logger = logging.getLogger(__name__)


class AuditLoggerError(Exception):
    """Raised when an audit entry cannot be written to disk."""
    pass


class AuditSink(ABC):
    """Append-only destination for audit records."""

    @abstractmethod
    def append(self, action: str, details: str, correlation_id: Optional[str] = None) -> None:
        """Record one action."""


class AuditLogger(AuditSink):
    """
    Thread-safe in-memory audit trail with optional JSONL persistence.

    Each line of the file is one complete AuditEntry.
    """

    def __init__(self, log_path: Optional[Path] = None):
        """
        Initialize audit logger.

        Args:
            log_path: JSONL file to append to. Memory only when None.
        """
        self._entries: list[AuditEntry] = []
        self._lock = threading.Lock()
        self._log_path = Path(log_path) if log_path else None

        if self._log_path is not None:
            self._log_path.parent.mkdir(parents=True, exist_ok=True)
            logger.info(f"[AuditLogger] Persisting to {self._log_path}")

    @property
    def log_path(self) -> Optional[Path]:
        return self._log_path

    def append(self, action: str, details: str, correlation_id: Optional[str] = None) -> None:
        entry = AuditEntry(action=action, details=details, correlation_id=correlation_id)

        with self._lock:
            self._entries.append(entry)
            if self._log_path is not None:
                try:
                    self._append_raw(entry)
                except AuditLoggerError as e:
                    logger.warning(f"[AuditLogger] {e}")

        logger.debug(f"[AuditLogger] {entry.format_line()}")

    def get_recent_logs(self, count: int) -> list[str]:
        """
        Return the last ``count`` entries as formatted lines, oldest first.
        """
        if count <= 0:
            return []
        with self._lock:
            return [entry.format_line() for entry in self._entries[-count:]]

    def entries(self, action: Optional[str] = None) -> list[AuditEntry]:
        """Snapshot of recorded entries, optionally filtered by action."""
        with self._lock:
            if action is None:
                return list(self._entries)
            return [e for e in self._entries if e.action == action]

    def find_entries(self, correlation_id: str) -> list[AuditEntry]:
        with self._lock:
            return [e for e in self._entries if e.correlation_id == correlation_id]

    def read_all_logs(self) -> list[dict]:
        """
        Read every entry persisted to the audit file.

        Returns:
            List of entries as dicts; empty when nothing was persisted.
        """
        if self._log_path is None or not self._log_path.exists():
            return []

        logs = []
        with open(self._log_path, "r", encoding="utf-8") as f:
            for line in f:
                if line.strip():
                    logs.append(json.loads(line))
        return logs

    def _append_raw(self, entry: AuditEntry) -> None:
        try:
            with open(self._log_path, "a", encoding="utf-8") as f:
                f.write(entry.model_dump_json() + "\n")
        except OSError as e:
            raise AuditLoggerError(f"Failed to append audit entry: {e}") from e


def append_audit(
    sink: AuditSink,
    action: str,
    details: str,
    correlation_id: Optional[str] = None,
) -> None:
    """
    Best-effort append to any audit sink.

    Failures of third-party sinks are logged and dropped.
    """
    try:
        sink.append(action, details, correlation_id)
    except Exception as e:
        logger.warning(f"[Audit] Failed to record {action} for {correlation_id}: {e}")
