"""
Build and selector models.

A Build is a tracked repository plus the selectors that decide which of its
remote workflow runs belong to it. Builds are owned by the host application;
the sync engine only reads them.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


class SelectorType(str, Enum):
    """What part of a run a selector pattern is matched against."""

    BRANCH = "branch"
    TAG = "tag"
    WORKFLOW = "workflow"


class Selector(BaseModel):
    """
    A glob pattern over branches, tags or workflow names.

    Patterns support ``*`` (any run of characters) and ``?`` (one character).

    Example:
        >>> Selector(type=SelectorType.BRANCH, pattern="release-*")
        Selector(type=<SelectorType.BRANCH: 'branch'>, pattern='release-*')
    """

    model_config = ConfigDict(frozen=True)

    type: SelectorType
    pattern: str = Field(..., min_length=1)


class Build(BaseModel):
    """
    A tracked repository and its selector configuration.

    Attributes:
        id: Build identifier in the host application
        tenant_id: Owning tenant (rows are scoped by tenant)
        name: Display name
        owner: Repository owner on the provider
        repository: Repository name on the provider
        selectors: Runs matching any selector belong to the build
        cache_expiration_minutes: Staleness tolerance for cached provider data
        last_analyzed_commit_sha: Head SHA seen at the last successful sync
    """

    id: str
    tenant_id: str = "default"
    name: str = ""
    owner: str
    repository: str
    selectors: list[Selector] = Field(default_factory=list)
    cache_expiration_minutes: float = Field(default=10, gt=0)
    last_analyzed_commit_sha: str | None = None

    @field_validator("name")
    @classmethod
    def _default_name(cls, value: str) -> str:
        return value.strip()

    @computed_field
    @property
    def full_name(self) -> str:
        """Repository full name (owner/repo)."""
        return f"{self.owner}/{self.repository}"

    @property
    def display_name(self) -> str:
        """Name for log and CLI output."""
        return self.name or self.id
