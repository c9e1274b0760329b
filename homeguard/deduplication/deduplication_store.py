"""
Deduplication Store - Processed Event Gate

Remembers the ids of events that already entered the pipeline so that
re-deliveries of the same emission are dropped before correlation.

Pattern: Cache Pattern + Time-Window Deduplication
Resilience: Thread-safe, TTL enforced by a cancellable background sweep
"""

import asyncio
import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from homeguard.metrics import DEDUP_EVICTIONS, DEDUP_STORE_SIZE

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(minutes=10)
DEFAULT_SWEEP_INTERVAL_SECONDS = 60.0


class DeduplicationStore:
    """Event id gate with TTL.

    Responsibilities:
    1. Answer whether an event id was already processed
    2. Record accepted event ids exactly once
    3. Sweep ids older than the TTL on a fixed cadence

    Absence of an entry means "not a duplicate". Expired entries stay
    visible until the next sweep removes them.
    """

    def __init__(
        self,
        ttl: timedelta = DEFAULT_TTL,
        sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize the store.

        Args:
            ttl: Retention of processed ids (default 10 minutes)
            sweep_interval_seconds: Cadence of the background sweep (default 60s)
            clock: Source of "now"; defaults to UTC wall clock
        """
        self.ttl = ttl
        self.sweep_interval_seconds = sweep_interval_seconds
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._processed: Dict[str, datetime] = {}
        self._lock = threading.Lock()
        self._sweep_task: Optional[asyncio.Task] = None

    def is_duplicate(self, event_id: str) -> bool:
        """Return True if ``event_id`` was marked and not yet swept."""
        with self._lock:
            return event_id in self._processed

    def mark_processed(self, event_id: str) -> bool:
        """Record ``event_id`` as processed.

        An existing mark is never overwritten.

        Returns:
            True if the id was newly recorded, False if it was already present
        """
        with self._lock:
            if event_id in self._processed:
                return False
            self._processed[event_id] = self._clock()
            size = len(self._processed)

        DEDUP_STORE_SIZE.set(size)
        logger.debug(f"Event marked processed: {event_id} | store_size={size}")
        return True

    def sweep_expired(self) -> int:
        """Remove every id whose age exceeds the TTL.

        Returns:
            Number of ids removed
        """
        now = self._clock()
        with self._lock:
            expired = [
                event_id for event_id, marked_at in self._processed.items()
                if now - marked_at > self.ttl
            ]
            for event_id in expired:
                del self._processed[event_id]
            size = len(self._processed)

        DEDUP_STORE_SIZE.set(size)
        if expired:
            DEDUP_EVICTIONS.inc(len(expired))
            logger.debug(f"Dedup sweep: {len(expired)} ids removed | store_size={size}")
        return len(expired)

    @property
    def is_sweeping(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    async def start(self) -> None:
        """Start the background sweep on the running event loop."""
        if self.is_sweeping:
            return
        self._sweep_task = asyncio.create_task(self._sweep_loop(), name="dedup-sweep")
        logger.info(
            f"Dedup sweep started (ttl={self.ttl}, interval={self.sweep_interval_seconds}s)"
        )

    async def stop(self) -> None:
        """Cancel the background sweep and wait for it to finish."""
        task, self._sweep_task = self._sweep_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Dedup sweep stopped")

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval_seconds)
            try:
                self.sweep_expired()
            except Exception:
                logger.exception("Dedup sweep failed; retrying on next interval")

    def get_cache_stats(self) -> Dict:
        """Return store statistics."""
        with self._lock:
            size = len(self._processed)
            oldest = min(self._processed.values()) if self._processed else None

        return {
            "store_size": size,
            "oldest_mark": oldest.isoformat() if oldest else None,
            "ttl_seconds": self.ttl.total_seconds(),
            "sweep_interval_seconds": self.sweep_interval_seconds,
            "sweeping": self.is_sweeping,
        }

    def __len__(self) -> int:
        with self._lock:
            return len(self._processed)
