"""
Tests for the cache-aside provider client.
"""

from datetime import datetime, timedelta, timezone

import pytest

from cisync.core.cache import CacheEntry, CacheNamespace
from cisync.core.provider import serialize_filters

from conftest import make_run


class TestSerializeFilters:
    """Test deterministic cache-key serialization."""

    def test_sorted_keys_and_dropped_nones(self):
        assert serialize_filters({"limit": 100, "branch": None, "a": "x"}) == (
            '{"a":"x","limit":100}'
        )

    def test_key_order_does_not_matter(self):
        assert serialize_filters({"b": 1, "a": 2}) == serialize_filters({"a": 2, "b": 1})

    def test_datetimes_serialize_as_iso(self):
        since = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert serialize_filters({"since": since}) == '{"since":"2024-01-01T00:00:00+00:00"}'


class TestWorkflowRuns:
    """Test cached run listing."""

    @pytest.mark.asyncio
    async def test_second_call_within_window_hits_cache(self, cached_client, fake_provider):
        """A valid hit makes zero network calls."""
        fake_provider.runs = [make_run(1), make_run(2)]

        first = await cached_client.fetch_workflow_runs("octo", "web", 10, branch="main")
        second = await cached_client.fetch_workflow_runs("octo", "web", 10, branch="main")

        assert first == second
        assert fake_provider.count("list_runs") == 1

    @pytest.mark.asyncio
    async def test_different_filters_use_different_keys(self, cached_client, fake_provider):
        await cached_client.fetch_workflow_runs("octo", "web", 10, branch="main")
        await cached_client.fetch_workflow_runs("octo", "web", 10, branch="dev")
        assert fake_provider.count("list_runs") == 2

    @pytest.mark.asyncio
    async def test_delay_is_not_part_of_key(self, cached_client, fake_provider):
        await cached_client.fetch_workflow_runs("octo", "web", 10, inter_page_delay_ms=0)
        await cached_client.fetch_workflow_runs("octo", "web", 10, inter_page_delay_ms=250)
        assert fake_provider.count("list_runs") == 1

    @pytest.mark.asyncio
    async def test_stale_entry_refetches(self, cached_client, fake_provider, cache):
        """An entry older than the caller's tolerance goes back to the network."""
        await cached_client.fetch_workflow_runs("octo", "web", 10)
        key = next(iter(cache._entries[CacheNamespace.WORKFLOW_RUNS]))
        old = datetime.now(timezone.utc) - timedelta(minutes=11)
        cache._entries[CacheNamespace.WORKFLOW_RUNS][key] = CacheEntry(data=[], cached_at=old)

        await cached_client.fetch_workflow_runs("octo", "web", 10)
        assert fake_provider.count("list_runs") == 2

    @pytest.mark.asyncio
    async def test_key_shape(self, cached_client, cache):
        await cached_client.fetch_workflow_runs("octo", "web", 10, branch="main", limit=5)
        assert cache.get_workflow_runs(
            'octo/web/workflow-runs:{"branch":"main","limit":5}'
        ) is not None

    @pytest.mark.asyncio
    async def test_refresh_bypasses_fresh_entry(self, cached_client, fake_provider):
        await cached_client.fetch_workflow_runs("octo", "web", 10)
        fake_provider.runs = [make_run(7)]

        refreshed = await cached_client.refresh_workflow_runs("octo", "web")
        cached = await cached_client.fetch_workflow_runs("octo", "web", 10)

        assert [r.id for r in refreshed] == [7]
        assert [r.id for r in cached] == [7]
        assert fake_provider.count("list_runs") == 2


class TestTags:
    """Test cached tag lookups."""

    @pytest.mark.asyncio
    async def test_tags_are_cached(self, cached_client, fake_provider):
        fake_provider.tags = ["v2", "v1"]
        assert await cached_client.fetch_tags("octo", "web", 10) == ["v2", "v1"]
        assert await cached_client.fetch_tags("octo", "web", 10) == ["v2", "v1"]
        assert fake_provider.count("list_tags") == 1

    @pytest.mark.asyncio
    async def test_latest_tag_reuses_tag_list(self, cached_client, fake_provider):
        """A fresh first-100-tags entry answers the latest-tag lookup."""
        fake_provider.tags = ["v2", "v1"]
        await cached_client.fetch_tags("octo", "web", 10)

        assert await cached_client.fetch_latest_tag("octo", "web", 10) == "v2"
        assert fake_provider.count("get_latest_tag") == 0

    @pytest.mark.asyncio
    async def test_latest_tag_uses_own_entry(self, cached_client, fake_provider):
        fake_provider.tags = ["v3"]
        assert await cached_client.fetch_latest_tag("octo", "web", 10) == "v3"
        assert await cached_client.fetch_latest_tag("octo", "web", 10) == "v3"
        assert fake_provider.count("get_latest_tag") == 1

    @pytest.mark.asyncio
    async def test_latest_tag_from_empty_tag_list(self, cached_client, fake_provider):
        await cached_client.fetch_tags("octo", "web", 10)
        assert await cached_client.fetch_latest_tag("octo", "web", 10) is None
        assert fake_provider.count("get_latest_tag") == 0

    @pytest.mark.asyncio
    async def test_refresh_latest_tag(self, cached_client, fake_provider):
        fake_provider.tags = ["v1"]
        await cached_client.fetch_latest_tag("octo", "web", 10)
        fake_provider.tags = ["v2", "v1"]
        assert await cached_client.refresh_latest_tag("octo", "web") == "v2"
        assert await cached_client.fetch_latest_tag("octo", "web", 10) == "v2"


class TestUncached:
    """Calls that must always reach the provider."""

    @pytest.mark.asyncio
    async def test_latest_commit_is_never_cached(self, cached_client, fake_provider):
        await cached_client.fetch_latest_commit("octo", "web")
        await cached_client.fetch_latest_commit("octo", "web")
        assert fake_provider.count("get_latest_commit") == 2

    @pytest.mark.asyncio
    async def test_artifacts_and_workflows_pass_through(self, cached_client, fake_provider, cache):
        await cached_client.list_artifacts("octo", "web", 1)
        await cached_client.list_artifacts("octo", "web", 1)
        await cached_client.download_artifact("octo", "web", 5)
        workflows = await cached_client.list_workflows("octo", "web")
        assert await cached_client.validate_token() is True

        assert fake_provider.count("list_artifacts") == 2
        assert fake_provider.count("download_artifact") == 1
        assert workflows[0].path == ".github/workflows/ci.yml"
        assert sum(cache.size().values()) == 0


class TestInvalidateRepository:
    """Test repository-scoped invalidation."""

    @pytest.mark.asyncio
    async def test_only_that_repository_is_dropped(self, cached_client, fake_provider, cache):
        await cached_client.fetch_tags("octo", "web", 10)
        await cached_client.fetch_tags("octo", "api", 10)

        cached_client.invalidate_repository("octo", "web")

        assert cache.get_tags("octo/web/tags:100") is None
        assert cache.get_tags("octo/api/tags:100") is not None

    @pytest.mark.asyncio
    async def test_invalidate_all(self, cached_client, cache):
        await cached_client.fetch_tags("octo", "web", 10)
        cached_client.invalidate_all()
        assert sum(cache.size().values()) == 0
