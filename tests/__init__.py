# Tests Package
"""
Test suite for Homeguard.

- unit/: Component-level tests
- deduplication/: Dedup gate and sweep task
- integration/: End-to-end pipeline flow
"""
