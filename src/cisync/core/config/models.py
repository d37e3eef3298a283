"""
Configuration data models for cisync.

These models define the structure of .cisync.json and
~/.config/cisync/config.json files, with validation and type safety via
Pydantic.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cisync.core.builds import Build, Selector

DEFAULT_API_URL = "https://api.github.com"
BACKFILL_START = datetime(2015, 1, 1, tzinfo=timezone.utc)


class GitHubConfig(BaseModel):
    """
    Connection settings for the GitHub Actions provider.

    The token is usually supplied through the environment rather than a
    config file.
    """

    token: Optional[str] = Field(
        default=None,
        description="Access token used for REST and GraphQL calls"
    )
    api_url: str = Field(
        default=DEFAULT_API_URL,
        description="Base URL of the GitHub API"
    )
    timeout: float = Field(
        default=30.0,
        gt=0,
        description="Per-request timeout in seconds"
    )

    @field_validator("api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the base URL so paths can be appended directly."""
        return v.rstrip("/")


class SyncSettings(BaseModel):
    """
    Tunables for the sync orchestrator.

    Defaults reproduce the engine's fixed behavior: unbounded backfill from
    2015-01-01, then incremental windows of at most 100 runs, with test
    hydration capped at the 50 newest new runs.
    """

    page_size: int = Field(
        default=100,
        ge=1,
        le=100,
        description="Runs requested per provider page"
    )
    inter_page_delay_ms: int = Field(
        default=100,
        ge=0,
        description="Pause between consecutive page requests"
    )
    incremental_run_limit: int = Field(
        default=100,
        ge=1,
        description="Maximum runs fetched by an incremental sync"
    )
    hydration_limit: int = Field(
        default=50,
        ge=0,
        description="Maximum new runs whose test reports are fetched per sync"
    )
    lookback_days: int = Field(
        default=30,
        ge=1,
        description="Window used when a backfilled build has no run watermark"
    )
    backfill_start: datetime = Field(
        default=BACKFILL_START,
        description="Lower bound for the initial backfill"
    )


class StoreConfig(BaseModel):
    """Where the command line keeps synced data."""

    db_path: str = Field(
        default=".cisync/cisync.db",
        description="SQLite database path, relative to the project directory"
    )


class BuildConfig(BaseModel):
    """
    A build declared in a config file.

    Example:
        {
            "id": "web-release",
            "owner": "octo",
            "repository": "web",
            "selectors": [{"type": "branch", "pattern": "release-*"}]
        }
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    owner: str
    repository: str
    selectors: list[Selector] = Field(default_factory=list)
    cache_expiration_minutes: float = Field(default=10, gt=0)

    def to_build(self, tenant_id: str, last_analyzed_commit_sha: Optional[str] = None) -> Build:
        """Materialize the runtime Build for a tenant."""
        return Build(
            id=self.id,
            tenant_id=tenant_id,
            name=self.name,
            owner=self.owner,
            repository=self.repository,
            selectors=self.selectors,
            cache_expiration_minutes=self.cache_expiration_minutes,
            last_analyzed_commit_sha=last_analyzed_commit_sha,
        )


class CisyncConfig(BaseModel):
    """
    Top-level cisync configuration.

    Combines all configuration sections. Loaded from multiple sources with
    precedence: defaults < user config < project config < env vars.
    """

    model_config = ConfigDict(extra="ignore")

    tenant: str = Field(
        default="default",
        min_length=1,
        description="Tenant that owns every row written by this process"
    )
    github: GitHubConfig = Field(default_factory=GitHubConfig)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    store: StoreConfig = Field(default_factory=StoreConfig)
    builds: list[BuildConfig] = Field(default_factory=list)

    @field_validator("builds")
    @classmethod
    def unique_build_ids(cls, v: list[BuildConfig]) -> list[BuildConfig]:
        """Build ids key the stored rows, so they must not repeat."""
        seen: set[str] = set()
        for build in v:
            if build.id in seen:
                raise ValueError(f"Duplicate build id: {build.id}")
            seen.add(build.id)
        return v

    def get_build(self, build_id: str) -> Optional[BuildConfig]:
        """Look up a configured build by id."""
        for build in self.builds:
            if build.id == build_id:
                return build
        return None
