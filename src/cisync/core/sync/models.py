"""
Result models returned by the sync orchestrator.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class HydrationResult(BaseModel):
    """
    Outcome of fetching test results for one persisted run.

    Exactly one of the following holds:
    - ``error`` is set: the run failed and the batch moved on
    - ``report_id`` is set: a report was created
    - neither: nothing to do (no test artifact, no usable document, or a
      report already existed)
    """

    workflow_run_id: str
    provider_run_id: int
    report_id: str | None = None
    artifact_name: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def parsed(self) -> bool:
        return self.report_id is not None


class SyncResult(BaseModel):
    """Summary of one sync call for a build."""

    new_runs_synced: int = 0
    test_results_parsed: int = 0
    last_synced_at: datetime
    hydration: list[HydrationResult] = Field(default_factory=list)

    @property
    def hydration_failures(self) -> list[HydrationResult]:
        """Per-run hydration failures that did not abort the sync."""
        return [item for item in self.hydration if not item.ok]
