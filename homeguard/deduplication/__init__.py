# Deduplication Package
"""
Gate that drops re-deliveries of already processed sensor events.
"""

from homeguard.deduplication.deduplication_store import DeduplicationStore

__all__ = ["DeduplicationStore"]
