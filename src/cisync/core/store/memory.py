"""
In-memory RunStore.

Keeps everything in dictionaries for the lifetime of the instance. Used by
the test suite and by hosts that embed the engine with their own
persistence layer in front of it.
"""

from __future__ import annotations

from .models import SyncStatus, TestReportRecord, WorkflowRunRecord

RunKey = tuple[str, int, str]


class InMemoryRunStore:
    """
    Dictionary-backed implementation of :class:`~cisync.core.store.base.RunStore`.

    Returned records are copies, so callers cannot mutate stored state.
    """

    def __init__(self) -> None:
        self._runs: dict[RunKey, WorkflowRunRecord] = {}
        self._statuses: dict[tuple[str, str], SyncStatus] = {}
        self._reports: dict[tuple[str, str], TestReportRecord] = {}
        self._analyzed: dict[tuple[str, str], str] = {}

    async def find_by_provider_run_id(
        self, build_id: str, provider_run_id: int, tenant_id: str
    ) -> WorkflowRunRecord | None:
        record = self._runs.get((build_id, provider_run_id, tenant_id))
        return record.model_copy() if record else None

    async def bulk_create_runs(
        self, records: list[WorkflowRunRecord]
    ) -> list[WorkflowRunRecord]:
        inserted: list[WorkflowRunRecord] = []
        for record in records:
            key = (record.build_id, record.provider_run_id, record.tenant_id)
            if key in self._runs:
                continue
            self._runs[key] = record.model_copy()
            inserted.append(record.model_copy())
        return inserted

    async def list_runs(
        self, build_id: str, tenant_id: str, limit: int | None = None
    ) -> list[WorkflowRunRecord]:
        runs = [
            record.model_copy()
            for (b, _, t), record in self._runs.items()
            if b == build_id and t == tenant_id
        ]
        runs.sort(key=lambda r: r.workflow_created_at, reverse=True)
        return runs[:limit] if limit is not None else runs

    async def find_sync_status(self, build_id: str, tenant_id: str) -> SyncStatus | None:
        status = self._statuses.get((build_id, tenant_id))
        return status.model_copy() if status else None

    async def upsert_sync_status(self, status: SyncStatus) -> SyncStatus:
        self._statuses[(status.build_id, status.tenant_id)] = status.model_copy()
        return status.model_copy()

    async def find_test_report_by_run_id(
        self, workflow_run_id: str, tenant_id: str
    ) -> TestReportRecord | None:
        report = self._reports.get((workflow_run_id, tenant_id))
        return report.model_copy() if report else None

    async def create_test_report(self, record: TestReportRecord) -> TestReportRecord:
        self._reports[(record.workflow_run_id, record.tenant_id)] = record.model_copy()
        return record.model_copy()

    async def find_analyzed_commit(self, build_id: str, tenant_id: str) -> str | None:
        return self._analyzed.get((build_id, tenant_id))

    async def save_analyzed_commit(self, build_id: str, tenant_id: str, sha: str) -> None:
        self._analyzed[(build_id, tenant_id)] = sha

    @property
    def run_count(self) -> int:
        """Total persisted runs across all builds."""
        return len(self._runs)

    @property
    def report_count(self) -> int:
        """Total persisted test reports across all builds."""
        return len(self._reports)
