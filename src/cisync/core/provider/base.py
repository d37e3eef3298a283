"""
Raw provider client protocol.

This module defines the ProviderClient protocol that CI provider clients
must implement. The sync engine only depends on this interface; the
GitHub Actions client in :mod:`cisync.core.provider.github` is one
implementation, test doubles are another.
"""

from datetime import datetime
from typing import Protocol, runtime_checkable

from .models import Artifact, CommitInfo, WorkflowDefinition, WorkflowRun


@runtime_checkable
class ProviderClient(Protocol):
    """
    Protocol for raw CI provider clients.

    Every method is a coroutine and performs network I/O. Implementations
    raise :class:`~cisync.core.exceptions.AuthenticationError` on a rejected
    credential and :class:`~cisync.core.exceptions.ProviderAPIError` on any
    other non-success response.
    """

    async def list_runs(
        self,
        owner: str,
        repo: str,
        *,
        branch: str | None = None,
        workflow_name: str | None = None,
        since: datetime | None = None,
        limit: int | None = None,
        inter_page_delay_ms: int = 0,
    ) -> list[WorkflowRun]:
        """
        List workflow runs, paginating until exhausted or ``limit`` is reached.

        Ordering is not guaranteed; the orchestrator sorts.

        Args:
            owner: Repository owner
            repo: Repository name
            branch: Only runs on this branch
            workflow_name: Only runs of this workflow
            since: Only runs created at or after this time
            limit: Maximum number of runs (None for unbounded)
            inter_page_delay_ms: Cooperative delay before each page after the first

        Returns:
            List of workflow runs
        """
        ...

    async def list_tags(self, owner: str, repo: str, limit: int = 100) -> list[str]:
        """List tag names, newest first."""
        ...

    async def get_latest_tag(self, owner: str, repo: str) -> str | None:
        """Return the newest tag name, or None if the repository has none."""
        ...

    async def get_latest_commit(self, owner: str, repo: str) -> CommitInfo | None:
        """Return the most recent commit, or None for an empty repository."""
        ...

    async def list_artifacts(self, owner: str, repo: str, run_id: int) -> list[Artifact]:
        """List artifacts uploaded by a run."""
        ...

    async def download_artifact(self, owner: str, repo: str, artifact_id: int) -> bytes | None:
        """
        Download an artifact archive.

        Returns:
            Raw archive bytes, or None if the artifact expired or was deleted
        """
        ...

    async def list_workflows(self, owner: str, repo: str) -> list[WorkflowDefinition]:
        """List workflow definitions declared in the repository."""
        ...

    async def validate_token(self) -> bool:
        """Return True if the configured credential is accepted."""
        ...
