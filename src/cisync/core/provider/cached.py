"""
Cache-aside decorator over a raw provider client.

Every cached read takes an explicit ``cache_expiration_minutes`` so that
each Build can choose how stale its data may be. A valid hit returns without
touching the network; a miss or a stale entry calls the raw client, stores
the fresh result and returns it.

Artifact listing, artifact download, workflow-definition listing, token
validation and the latest-commit lookup always go to the network.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any

from cisync.core.cache import ResponseCache, is_fresh
from cisync.core.provider.base import ProviderClient
from cisync.core.provider.models import Artifact, CommitInfo, WorkflowDefinition, WorkflowRun

logger = logging.getLogger(__name__)

DEFAULT_TAG_LIMIT = 100


def _json_default(value: Any) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Cannot serialize {type(value).__name__} in cache key")


def serialize_filters(filters: dict[str, Any]) -> str:
    """
    Deterministically serialize request filters for a cache key.

    ``None`` values are dropped so that omitting a filter and passing None
    produce the same key.

    Example:
        >>> serialize_filters({"limit": 100, "branch": None, "since": None})
        '{"limit":100}'
    """
    present = {k: v for k, v in filters.items() if v is not None}
    return json.dumps(present, sort_keys=True, separators=(",", ":"), default=_json_default)


class CachedProviderClient:
    """
    Provider client with TTL caching for run, tag and latest-tag lookups.

    Example:
        >>> cache = ResponseCache()
        >>> client = CachedProviderClient(GitHubActionsClient(token), cache)
        >>> runs = await client.fetch_workflow_runs("octo", "repo", 10, branch="main")
        >>> # Second call within 10 minutes is served from the cache
        >>> runs = await client.fetch_workflow_runs("octo", "repo", 10, branch="main")
    """

    def __init__(self, client: ProviderClient, cache: ResponseCache) -> None:
        """
        Initialize the decorator.

        Args:
            client: Raw provider client that performs the network calls
            cache: Cache instance (injected, so tests can build a fresh one)
        """
        self.client = client
        self.cache = cache

    @staticmethod
    def cache_key(owner: str, repo: str, suffix: str) -> str:
        """Build a cache key of the form ``<owner>/<repo>/<suffix>``."""
        return f"{owner}/{repo}/{suffix}"

    def _runs_key(
        self,
        owner: str,
        repo: str,
        *,
        branch: str | None,
        workflow_name: str | None,
        since: datetime | None,
        limit: int | None,
    ) -> str:
        filters = {
            "branch": branch,
            "workflow_name": workflow_name,
            "since": since,
            "limit": limit,
        }
        return self.cache_key(owner, repo, f"workflow-runs:{serialize_filters(filters)}")

    def _tags_key(self, owner: str, repo: str, limit: int) -> str:
        return self.cache_key(owner, repo, f"tags:{limit}")

    def _latest_tag_key(self, owner: str, repo: str) -> str:
        return self.cache_key(owner, repo, "latest-tag")

    # ------------------------------------------------------------------
    # Cached reads
    # ------------------------------------------------------------------

    async def fetch_workflow_runs(
        self,
        owner: str,
        repo: str,
        cache_expiration_minutes: float,
        *,
        branch: str | None = None,
        workflow_name: str | None = None,
        since: datetime | None = None,
        limit: int | None = None,
        inter_page_delay_ms: int = 0,
    ) -> list[WorkflowRun]:
        """
        Fetch workflow runs, serving from the cache while fresh.

        ``inter_page_delay_ms`` only paces the network fetch and is not part
        of the cache key.
        """
        key = self._runs_key(
            owner, repo, branch=branch, workflow_name=workflow_name, since=since, limit=limit
        )
        cached = self.cache.get_workflow_runs(key)
        if is_fresh(cached, cache_expiration_minutes):
            logger.debug("Cache hit: %s", key)
            return cached.data

        logger.debug("Cache miss: %s", key)
        runs = await self.client.list_runs(
            owner,
            repo,
            branch=branch,
            workflow_name=workflow_name,
            since=since,
            limit=limit,
            inter_page_delay_ms=inter_page_delay_ms,
        )
        self.cache.set_workflow_runs(key, runs)
        return runs

    async def fetch_tags(
        self,
        owner: str,
        repo: str,
        cache_expiration_minutes: float,
        limit: int = DEFAULT_TAG_LIMIT,
    ) -> list[str]:
        """Fetch tag names (newest first), serving from the cache while fresh."""
        key = self._tags_key(owner, repo, limit)
        cached = self.cache.get_tags(key)
        if is_fresh(cached, cache_expiration_minutes):
            logger.debug("Cache hit: %s", key)
            return cached.data

        logger.debug("Cache miss: %s", key)
        tags = await self.client.list_tags(owner, repo, limit)
        self.cache.set_tags(key, tags)
        return tags

    async def fetch_latest_tag(
        self, owner: str, repo: str, cache_expiration_minutes: float
    ) -> str | None:
        """
        Fetch the newest tag name.

        Reuses a fresh "first 100 tags" entry when one exists, so a tag
        listing and a latest-tag lookup in the same window cost one request.
        """
        tags_entry = self.cache.get_tags(self._tags_key(owner, repo, DEFAULT_TAG_LIMIT))
        if is_fresh(tags_entry, cache_expiration_minutes):
            logger.debug("Latest tag for %s/%s served from tag list", owner, repo)
            return tags_entry.data[0] if tags_entry.data else None

        key = self._latest_tag_key(owner, repo)
        cached = self.cache.get_latest_tag(key)
        if is_fresh(cached, cache_expiration_minutes):
            logger.debug("Cache hit: %s", key)
            return cached.data

        logger.debug("Cache miss: %s", key)
        tag = await self.client.get_latest_tag(owner, repo)
        self.cache.set_latest_tag(key, tag)
        return tag

    # ------------------------------------------------------------------
    # Uncached pass-throughs
    # ------------------------------------------------------------------

    async def fetch_latest_commit(self, owner: str, repo: str) -> CommitInfo | None:
        return await self.client.get_latest_commit(owner, repo)

    async def list_artifacts(self, owner: str, repo: str, run_id: int) -> list[Artifact]:
        return await self.client.list_artifacts(owner, repo, run_id)

    async def download_artifact(self, owner: str, repo: str, artifact_id: int) -> bytes | None:
        return await self.client.download_artifact(owner, repo, artifact_id)

    async def list_workflows(self, owner: str, repo: str) -> list[WorkflowDefinition]:
        return await self.client.list_workflows(owner, repo)

    async def validate_token(self) -> bool:
        return await self.client.validate_token()

    # ------------------------------------------------------------------
    # Invalidation and forced refresh
    # ------------------------------------------------------------------

    def invalidate_repository(self, owner: str, repo: str) -> None:
        """Drop every cached response for one repository."""
        self.cache.invalidate_by_prefix(f"{owner}/{repo}/")

    def invalidate_all(self) -> None:
        """Drop every cached response."""
        self.cache.invalidate_all()

    async def refresh_workflow_runs(
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
        """Invalidate and repopulate a run listing."""
        key = self._runs_key(
            owner, repo, branch=branch, workflow_name=workflow_name, since=since, limit=limit
        )
        self.cache.invalidate(key)
        runs = await self.client.list_runs(
            owner,
            repo,
            branch=branch,
            workflow_name=workflow_name,
            since=since,
            limit=limit,
            inter_page_delay_ms=inter_page_delay_ms,
        )
        self.cache.set_workflow_runs(key, runs)
        return runs

    async def refresh_tags(
        self, owner: str, repo: str, limit: int = DEFAULT_TAG_LIMIT
    ) -> list[str]:
        """Invalidate and repopulate a tag listing."""
        key = self._tags_key(owner, repo, limit)
        self.cache.invalidate(key)
        tags = await self.client.list_tags(owner, repo, limit)
        self.cache.set_tags(key, tags)
        return tags

    async def refresh_latest_tag(self, owner: str, repo: str) -> str | None:
        """Invalidate and repopulate the latest-tag entry."""
        key = self._latest_tag_key(owner, repo)
        self.cache.invalidate(key)
        tag = await self.client.get_latest_tag(owner, repo)
        self.cache.set_latest_tag(key, tag)
        return tag
