"""Domain modules for sync business rules.

This package centralizes business logic for the sync system:
- decisions: Tiered decision table for the in-sync question

Architecture:
    domain/ contains decision logic only. Registry access and file
    changes stay in the engine, resolver and installer.
"""

from nexussync.client.sync.domain.decisions import (
    IN_SYNC_TIERS,
    Decision,
    InSyncContext,
    evaluate_in_sync,
)

__all__ = [
    "IN_SYNC_TIERS",
    "Decision",
    "InSyncContext",
    "evaluate_in_sync",
]
