"""
Data models for CI provider responses.

Defines Pydantic models for workflow runs, artifacts, commits and workflow
definitions as returned by a raw provider client. These are read-only to the
sync engine.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class RunStatus(str, Enum):
    """Normalized state of a workflow run."""

    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    FAILURE = "failure"
    CANCELLED = "cancelled"

    @property
    def is_completed(self) -> bool:
        """Whether the run has a pass/fail outcome worth hydrating."""
        return self in (RunStatus.SUCCESS, RunStatus.FAILURE)


class WorkflowRun(BaseModel):
    """
    A single workflow run as reported by the provider.

    Example:
        >>> run = WorkflowRun(
        ...     id=42,
        ...     name="CI",
        ...     status=RunStatus.SUCCESS,
        ...     html_url="https://github.com/octo/repo/actions/runs/42",
        ...     created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        ...     updated_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        ...     head_branch="main",
        ... )
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., description="Provider run identifier")
    name: str = Field(..., description="Workflow name")
    status: RunStatus = Field(..., description="Normalized run status")
    conclusion: str | None = Field(default=None, description="Raw provider conclusion")
    html_url: str = Field(default="", description="Link to the run in the provider UI")
    created_at: datetime
    updated_at: datetime
    duration_ms: int | None = Field(default=None, ge=0, description="Wall-clock duration")
    head_branch: str | None = Field(default=None, description="Branch or tag ref the run ran on")
    event: str | None = Field(default=None, description="Trigger event (push, pull_request...)")


class Artifact(BaseModel):
    """An artifact uploaded by a workflow run."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    size_bytes: int = Field(default=0, ge=0)
    expired: bool = False
    html_url: str | None = None


class CommitInfo(BaseModel):
    """The head commit of a repository's default branch."""

    model_config = ConfigDict(frozen=True)

    sha: str
    message: str = ""
    author: str = ""
    date: datetime | None = None
    url: str = ""

    @property
    def short_sha(self) -> str:
        """First seven characters of the SHA."""
        return self.sha[:7]


class WorkflowDefinition(BaseModel):
    """A workflow file declared in the repository."""

    model_config = ConfigDict(frozen=True)

    name: str
    path: str
    state: str
