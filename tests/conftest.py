"""
Pytest configuration and shared fixtures.

Provides run/build factories, a scriptable fake provider client, stores,
sample JUnit reports and environment isolation used across the test suite.
"""

import io
import zipfile
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from cisync.core.builds import Build, Selector, SelectorType
from cisync.core.cache import ResponseCache
from cisync.core.config import clear_cache
from cisync.core.provider import (
    Artifact,
    CachedProviderClient,
    CommitInfo,
    RunStatus,
    WorkflowDefinition,
    WorkflowRun,
)
from cisync.core.store import InMemoryRunStore

BASE_TIME = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
SYNCED_AT = datetime(2024, 6, 15, 15, 30, tzinfo=timezone.utc)

# ==============================================================================
# Environment Isolation
# ==============================================================================

_ENV_VARS = (
    "GITHUB_TOKEN",
    "CISYNC_GITHUB_TOKEN",
    "CISYNC_API_URL",
    "CISYNC_DB_PATH",
    "CISYNC_TENANT",
    "CISYNC_INTER_PAGE_DELAY_MS",
)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep the developer's env vars and config files out of every test."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    clear_cache()
    yield
    clear_cache()


# ==============================================================================
# Factories
# ==============================================================================


def make_run(
    run_id: int,
    *,
    branch: str | None = "main",
    name: str = "CI",
    status: RunStatus = RunStatus.SUCCESS,
    created_at: datetime | None = None,
    minutes: int | None = None,
) -> WorkflowRun:
    """Build a WorkflowRun; ``minutes`` offsets creation from BASE_TIME."""
    if created_at is None:
        created_at = BASE_TIME + timedelta(minutes=minutes if minutes is not None else run_id)
    return WorkflowRun(
        id=run_id,
        name=name,
        status=status,
        conclusion=status.value if status.is_completed else None,
        html_url=f"https://github.com/octo/web/actions/runs/{run_id}",
        created_at=created_at,
        updated_at=created_at + timedelta(minutes=5),
        duration_ms=300_000,
        head_branch=branch,
        event="push",
    )


def make_build(*selectors: Selector, build_id: str = "web", **kwargs: Any) -> Build:
    """Build a Build for octo/web with the given selectors."""
    if not selectors:
        selectors = (Selector(type=SelectorType.BRANCH, pattern="*"),)
    return Build(
        id=build_id,
        name=kwargs.pop("name", "Web"),
        owner="octo",
        repository="web",
        selectors=list(selectors),
        **kwargs,
    )


def make_zip(files: dict[str, str]) -> bytes:
    """Build an in-memory zip archive from name → text members."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in files.items():
            archive.writestr(name, content)
    return buffer.getvalue()


# ==============================================================================
# Fake Provider
# ==============================================================================


class FakeProviderClient:
    """
    In-memory ProviderClient with call recording.

    ``downloads`` values may be bytes, None (expired) or an exception to raise.
    """

    def __init__(self) -> None:
        self.runs: list[WorkflowRun] = []
        self.tags: list[str] = []
        self.commit: CommitInfo | None = None
        self.artifacts: dict[int, list[Artifact]] = {}
        self.downloads: dict[int, Any] = {}
        self.artifact_errors: dict[int, Exception] = {}
        self.list_runs_error: Exception | None = None
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def count(self, method: str) -> int:
        return sum(1 for name, _ in self.calls if name == method)

    def last(self, method: str) -> dict[str, Any]:
        return [kwargs for name, kwargs in self.calls if name == method][-1]

    async def list_runs(self, owner, repo, *, branch=None, workflow_name=None,
                        since=None, limit=None, inter_page_delay_ms=0):
        self.calls.append(("list_runs", {
            "branch": branch, "workflow_name": workflow_name, "since": since,
            "limit": limit, "inter_page_delay_ms": inter_page_delay_ms,
        }))
        if self.list_runs_error is not None:
            raise self.list_runs_error
        runs = [r for r in self.runs if since is None or r.created_at >= since]
        runs.sort(key=lambda r: r.created_at, reverse=True)
        return runs[:limit] if limit is not None else runs

    async def list_tags(self, owner, repo, limit=100):
        self.calls.append(("list_tags", {"limit": limit}))
        return self.tags[:limit]

    async def get_latest_tag(self, owner, repo):
        self.calls.append(("get_latest_tag", {}))
        return self.tags[0] if self.tags else None

    async def get_latest_commit(self, owner, repo):
        self.calls.append(("get_latest_commit", {}))
        return self.commit

    async def list_artifacts(self, owner, repo, run_id):
        self.calls.append(("list_artifacts", {"run_id": run_id}))
        if run_id in self.artifact_errors:
            raise self.artifact_errors[run_id]
        return self.artifacts.get(run_id, [])

    async def download_artifact(self, owner, repo, artifact_id):
        self.calls.append(("download_artifact", {"artifact_id": artifact_id}))
        payload = self.downloads.get(artifact_id)
        if isinstance(payload, Exception):
            raise payload
        return payload

    async def list_workflows(self, owner, repo):
        self.calls.append(("list_workflows", {}))
        return [WorkflowDefinition(name="CI", path=".github/workflows/ci.yml", state="active")]

    async def validate_token(self):
        self.calls.append(("validate_token", {}))
        return True


# ==============================================================================
# Component Fixtures
# ==============================================================================


@pytest.fixture
def fake_provider():
    """Provide an empty fake provider."""
    return FakeProviderClient()


@pytest.fixture
def cache():
    """Provide a fresh response cache."""
    return ResponseCache()


@pytest.fixture
def cached_client(fake_provider, cache):
    """Provide a cached client over the fake provider."""
    return CachedProviderClient(fake_provider, cache)


@pytest.fixture
def memory_store():
    """Provide an empty in-memory store."""
    return InMemoryRunStore()


# ==============================================================================
# Sample Reports
# ==============================================================================

SIMPLE_SUITE_XML = """<?xml version="1.0" encoding="UTF-8"?>
<testsuite name="unit" tests="2" failures="1" errors="0" skipped="0" time="0.5">
  <testcase name="test_ok" classname="unit.Math" time="0.1"/>
  <testcase name="test_broken" classname="unit.Math" time="0.4">
    <failure message="expected 2 but was 3">AssertionError: expected 2 but was 3
    at unit.Math.test_broken(Math.java:12)</failure>
  </testcase>
</testsuite>
"""

WRAPPED_XML = """<?xml version="1.0" encoding="UTF-8"?>
<testsuites name="all" tests="4" failures="1" errors="1" skipped="1">
  <testsuite name="api" tests="2" failures="1" errors="0" skipped="0">
    <testcase name="test_get" time="0.2"/>
    <testcase name="test_post" time="0.3"><failure message="500 returned"/></testcase>
  </testsuite>
  <testsuite name="db" file="tests/db_test.py" tests="2" failures="0" errors="1" skipped="1">
    <testcase name="test_connect"><error message="timeout">Traceback...</error></testcase>
    <testcase name="test_migrate"><skipped/></testcase>
  </testsuite>
</testsuites>
"""


@pytest.fixture
def simple_suite_xml():
    """A single-suite report: one pass, one failure."""
    return SIMPLE_SUITE_XML


@pytest.fixture
def wrapped_xml():
    """A wrapped report with two suites."""
    return WRAPPED_XML
