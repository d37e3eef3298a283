"""
Persisted record models.

Defines the rows the sync engine writes: workflow runs, test reports and
per-build sync bookkeeping.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from cisync.core.provider.models import RunStatus, WorkflowRun
from cisync.core.reports.models import TestCase


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SyncPhase(str, Enum):
    """Where a build sits in the backfill state machine."""

    NEVER_SYNCED = "never_synced"
    BACKFILLING = "backfilling"
    STEADY = "steady"


class SyncStatus(BaseModel):
    """
    Sync bookkeeping for one (build_id, tenant_id).

    ``initial_backfill_completed`` flips from False to True once and never
    reverts; ``last_synced_run_created_at`` only moves forward.
    """

    build_id: str
    tenant_id: str
    last_synced_at: datetime | None = None
    last_synced_run_id: int | None = None
    last_synced_run_created_at: datetime | None = None
    total_runs_synced: int = Field(default=0, ge=0)
    initial_backfill_completed: bool = False
    last_sync_error: str | None = None

    @property
    def phase(self) -> SyncPhase:
        """Derived state machine position."""
        if self.initial_backfill_completed:
            return SyncPhase.STEADY
        if self.last_synced_at is None and self.last_sync_error is None:
            return SyncPhase.NEVER_SYNCED
        return SyncPhase.BACKFILLING


class WorkflowRunRecord(BaseModel):
    """A workflow run persisted for a build."""

    id: str = Field(default_factory=_new_id)
    build_id: str
    tenant_id: str
    provider_run_id: int
    name: str
    status: RunStatus
    conclusion: str | None = None
    html_url: str = ""
    head_branch: str | None = None
    event: str | None = None
    duration_ms: int | None = None
    commit_sha: str | None = None
    workflow_created_at: datetime
    workflow_updated_at: datetime
    synced_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def from_run(cls, run: WorkflowRun, build_id: str, tenant_id: str) -> WorkflowRunRecord:
        """Build a record from a provider run."""
        return cls(
            build_id=build_id,
            tenant_id=tenant_id,
            provider_run_id=run.id,
            name=run.name,
            status=run.status,
            conclusion=run.conclusion,
            html_url=run.html_url,
            head_branch=run.head_branch,
            event=run.event,
            duration_ms=run.duration_ms,
            workflow_created_at=run.created_at,
            workflow_updated_at=run.updated_at,
        )


class TestReportRecord(BaseModel):
    """A parsed test report attached to one persisted run."""

    __test__ = False

    id: str = Field(default_factory=_new_id)
    workflow_run_id: str
    build_id: str
    tenant_id: str
    total_tests: int = 0
    passed_tests: int = 0
    failed_tests: int = 0
    skipped_tests: int = 0
    test_cases: list[TestCase] | None = None
    artifact_name: str = ""
    artifact_url: str | None = None
    parsed_at: datetime = Field(default_factory=_utcnow)
