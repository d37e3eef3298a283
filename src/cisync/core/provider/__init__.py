"""
CI provider integration.

Provides the raw provider protocol, the GitHub Actions implementation and
the cache-aside decorator used by the sync engine.
"""

from cisync.core.provider.base import ProviderClient
from cisync.core.provider.cached import CachedProviderClient, serialize_filters
from cisync.core.provider.github import GitHubActionsClient, map_run_status
from cisync.core.provider.models import (
    Artifact,
    CommitInfo,
    RunStatus,
    WorkflowDefinition,
    WorkflowRun,
)
from cisync.core.provider.pagination import collect_pages

__all__ = [
    "Artifact",
    "CachedProviderClient",
    "CommitInfo",
    "GitHubActionsClient",
    "ProviderClient",
    "RunStatus",
    "WorkflowDefinition",
    "WorkflowRun",
    "collect_pages",
    "map_run_status",
    "serialize_filters",
]
