"""
Synchronization of CI run history into a store.

- :class:`SyncService` runs backfill or incremental syncs for one build
- :class:`ChangeDetector` only calls it when the head commit moved
"""

from cisync.core.sync.detector import ChangeDetector
from cisync.core.sync.models import HydrationResult, SyncResult
from cisync.core.sync.service import HYDRATABLE_STATUSES, SyncService

__all__ = [
    "ChangeDetector",
    "HYDRATABLE_STATUSES",
    "HydrationResult",
    "SyncResult",
    "SyncService",
]
