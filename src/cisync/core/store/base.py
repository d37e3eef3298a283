"""
Persisted-store protocol.

This module defines the RunStore protocol the sync engine writes through.
Implementations decide the storage technology; the engine only relies on
the operations below.
"""

from typing import Protocol, runtime_checkable

from .models import SyncStatus, TestReportRecord, WorkflowRunRecord


@runtime_checkable
class RunStore(Protocol):
    """
    Protocol for persisted-store implementations.

    Stores are responsible for:
    - Keeping at most one run per (build_id, provider_run_id, tenant_id)
    - Keeping one SyncStatus row per (build_id, tenant_id), last write wins
    - Keeping at most one test report per persisted run
    """

    async def find_by_provider_run_id(
        self, build_id: str, provider_run_id: int, tenant_id: str
    ) -> WorkflowRunRecord | None:
        """Return the persisted run for a provider run id, if any."""
        ...

    async def bulk_create_runs(
        self, records: list[WorkflowRunRecord]
    ) -> list[WorkflowRunRecord]:
        """
        Persist new runs.

        Records that collide with an existing (build_id, provider_run_id,
        tenant_id) are skipped.

        Returns:
            The records actually inserted, in input order
        """
        ...

    async def list_runs(
        self, build_id: str, tenant_id: str, limit: int | None = None
    ) -> list[WorkflowRunRecord]:
        """Return persisted runs for a build, newest first."""
        ...

    async def find_sync_status(self, build_id: str, tenant_id: str) -> SyncStatus | None:
        """Return the sync bookkeeping row, if one exists."""
        ...

    async def upsert_sync_status(self, status: SyncStatus) -> SyncStatus:
        """Insert or replace the sync bookkeeping row."""
        ...

    async def find_test_report_by_run_id(
        self, workflow_run_id: str, tenant_id: str
    ) -> TestReportRecord | None:
        """Return the test report attached to a persisted run, if any."""
        ...

    async def create_test_report(self, record: TestReportRecord) -> TestReportRecord:
        """Persist a test report."""
        ...

    async def find_analyzed_commit(self, build_id: str, tenant_id: str) -> str | None:
        """Return the head commit SHA recorded at the last successful sync."""
        ...

    async def save_analyzed_commit(self, build_id: str, tenant_id: str, sha: str) -> None:
        """Record the head commit SHA a successful sync analyzed."""
        ...
