"""
Persistence for synced runs, test reports and sync bookkeeping.

The sync engine only talks to the :class:`RunStore` protocol. Two
implementations ship with the package:
- :class:`InMemoryRunStore` for tests and embedding hosts
- :class:`SqliteRunStore` for the command line
"""

from cisync.core.store.base import RunStore
from cisync.core.store.memory import InMemoryRunStore
from cisync.core.store.models import (
    SyncPhase,
    SyncStatus,
    TestReportRecord,
    WorkflowRunRecord,
)
from cisync.core.store.sqlite import SqliteRunStore

__all__ = [
    "InMemoryRunStore",
    "RunStore",
    "SqliteRunStore",
    "SyncPhase",
    "SyncStatus",
    "TestReportRecord",
    "WorkflowRunRecord",
]
