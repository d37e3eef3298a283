"""
GitHub Actions provider client.

Async client over the GitHub REST and GraphQL APIs implementing the
:class:`~cisync.core.provider.base.ProviderClient` protocol. Uses a shared
``httpx.AsyncClient`` so every call is a cooperative suspension point.

Error mapping:
- 401 → AuthenticationError
- 404 → NotFoundError
- 410 on artifact download → ``None`` (artifact expired or deleted)
- any other non-2xx → ProviderAPIError carrying the status code
- timeouts and connection errors → ProviderAPIError (no retry here)

Example:
    >>> async with GitHubActionsClient(token="ghp_...") as client:
    ...     runs = await client.list_runs("octo", "repo", limit=50)
    ...     tags = await client.list_tags("octo", "repo")
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from types import TracebackType
from typing import Any

import httpx

from cisync.core.exceptions import (
    AuthenticationError,
    NotFoundError,
    ProviderAPIError,
)
from cisync.core.provider.models import (
    Artifact,
    CommitInfo,
    RunStatus,
    WorkflowDefinition,
    WorkflowRun,
)
from cisync.core.provider.pagination import collect_pages

logger = logging.getLogger(__name__)

PROVIDER_NAME = "github"

TAGS_QUERY = """
query($owner: String!, $repo: String!, $limit: Int!) {
  repository(owner: $owner, name: $repo) {
    refs(refPrefix: "refs/tags/", first: $limit,
         orderBy: {field: TAG_COMMIT_DATE, direction: DESC}) {
      nodes { name }
    }
  }
}
"""

VIEWER_QUERY = "query { viewer { login } }"


def map_run_status(status: str | None, conclusion: str | None) -> RunStatus:
    """
    Normalize GitHub's ``status``/``conclusion`` pair into a RunStatus.

    Completed runs are classified by conclusion; anything still running is
    classified by status.
    """
    if status == "completed" and conclusion:
        if conclusion == "success":
            return RunStatus.SUCCESS
        if conclusion in ("cancelled", "skipped"):
            return RunStatus.CANCELLED
        # failure, timed_out, action_required, startup_failure, ...
        return RunStatus.FAILURE

    if status in ("in_progress", "requested"):
        return RunStatus.IN_PROGRESS
    return RunStatus.QUEUED


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class GitHubActionsClient:
    """
    Raw GitHub Actions client.

    Attributes:
        api_url: REST API base URL (GraphQL lives at ``{api_url}/graphql``)
        page_size: Runs requested per page
    """

    DEFAULT_API_URL = "https://api.github.com"
    PAGE_SIZE = 100

    def __init__(
        self,
        token: str,
        *,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        page_size: int = PAGE_SIZE,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            token: Personal access token or installation token
            api_url: REST API base URL (override for GitHub Enterprise)
            timeout: Per-request timeout in seconds
            page_size: Runs per page (GitHub caps this at 100)
            http_client: Pre-built client (tests inject one with a mock transport)
        """
        self.api_url = api_url.rstrip("/")
        self.page_size = min(max(page_size, 1), 100)
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "User-Agent": "cisync",
        }

    async def __aenter__(self) -> GitHubActionsClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._http.aclose()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        passthrough: tuple[int, ...] = (),
    ) -> httpx.Response:
        """
        Send a request and translate failures into cisync exceptions.

        Args:
            method: HTTP method
            path: Path relative to ``api_url`` (leading slash)
            params: Query parameters
            json: JSON body
            passthrough: Non-success status codes returned to the caller as-is

        Returns:
            The HTTP response

        Raises:
            AuthenticationError: On 401
            NotFoundError: On 404
            ProviderAPIError: On other failures
        """
        url = f"{self.api_url}{path}"
        try:
            response = await self._http.request(
                method, url, params=params, json=json, headers=self._headers
            )
        except httpx.TimeoutException as e:
            raise ProviderAPIError(PROVIDER_NAME, f"Request timed out: {url}", url=url) from e
        except httpx.RequestError as e:
            raise ProviderAPIError(PROVIDER_NAME, f"Network error: {e}", url=url) from e

        status = response.status_code
        if status in passthrough:
            return response
        if status == 401:
            raise AuthenticationError(PROVIDER_NAME)
        if status == 404:
            raise NotFoundError(PROVIDER_NAME, f"Not found: {path}", status_code=404, url=url)
        if not response.is_success:
            raise ProviderAPIError(
                PROVIDER_NAME,
                f"GitHub API request failed: {status} {response.reason_phrase}",
                status_code=status,
                url=url,
            )
        return response

    async def _graphql(self, query: str, variables: dict[str, Any] | None = None) -> Any:
        response = await self._request(
            "POST", "/graphql", json={"query": query, "variables": variables or {}}
        )
        payload = response.json()

        errors = payload.get("errors") or []
        if errors:
            message = ", ".join(str(e.get("message", "")) for e in errors)
            if any(
                e.get("type") == "UNAUTHORIZED" or "authentication" in str(e.get("message", ""))
                for e in errors
            ):
                raise AuthenticationError(PROVIDER_NAME, message)
            raise ProviderAPIError(PROVIDER_NAME, message)

        data = payload.get("data")
        if data is None:
            raise ProviderAPIError(PROVIDER_NAME, "No data returned from GitHub API")
        return data

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------

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
        """List workflow runs across pages. See ProviderClient.list_runs."""
        per_page = self.page_size if limit is None else min(self.page_size, max(limit, 1))
        base_params: dict[str, Any] = {"per_page": per_page}
        if since is not None and since.tzinfo is None:
            since = since.replace(tzinfo=timezone.utc)
        if branch:
            base_params["branch"] = branch
        if since is not None:
            base_params["created"] = f">={_format_timestamp(since)}"

        async def fetch_page(page: int) -> tuple[list[WorkflowRun], bool]:
            response = await self._request(
                "GET",
                f"/repos/{owner}/{repo}/actions/runs",
                params={**base_params, "page": page},
            )
            payload = response.json()
            raw_runs = payload.get("workflow_runs") or []
            total = int(payload.get("total_count") or 0)

            runs = [self._map_run(raw) for raw in raw_runs]
            runs = [
                run
                for run in runs
                if (workflow_name is None or run.name == workflow_name)
                and (since is None or run.created_at >= since)
            ]
            has_more = len(raw_runs) == per_page and page * per_page < total
            return runs, has_more

        runs = await collect_pages(
            fetch_page, limit=limit, inter_page_delay_ms=inter_page_delay_ms
        )
        logger.debug("Listed %d runs for %s/%s", len(runs), owner, repo)
        return runs

    @staticmethod
    def _map_run(raw: dict[str, Any]) -> WorkflowRun:
        created_at = _parse_timestamp(raw.get("created_at"))
        updated_at = _parse_timestamp(raw.get("updated_at")) or created_at
        started_at = _parse_timestamp(raw.get("run_started_at"))

        duration_ms: int | None = None
        if started_at and updated_at and raw.get("conclusion"):
            duration_ms = max(0, int((updated_at - started_at).total_seconds() * 1000))

        return WorkflowRun(
            id=raw["id"],
            name=raw.get("name") or raw.get("display_title") or "Workflow Run",
            status=map_run_status(raw.get("status"), raw.get("conclusion")),
            conclusion=raw.get("conclusion"),
            html_url=raw.get("html_url") or "",
            created_at=created_at,
            updated_at=updated_at,
            duration_ms=duration_ms,
            head_branch=raw.get("head_branch"),
            event=raw.get("event"),
        )

    # ------------------------------------------------------------------
    # Tags and commits
    # ------------------------------------------------------------------

    async def list_tags(self, owner: str, repo: str, limit: int = 100) -> list[str]:
        data = await self._graphql(TAGS_QUERY, {"owner": owner, "repo": repo, "limit": limit})
        repository = data.get("repository") or {}
        nodes = (repository.get("refs") or {}).get("nodes") or []
        return [node["name"] for node in nodes if node.get("name")]

    async def get_latest_tag(self, owner: str, repo: str) -> str | None:
        tags = await self.list_tags(owner, repo, limit=1)
        return tags[0] if tags else None

    async def get_latest_commit(self, owner: str, repo: str) -> CommitInfo | None:
        # 409 is returned for an empty repository
        response = await self._request(
            "GET",
            f"/repos/{owner}/{repo}/commits",
            params={"per_page": 1},
            passthrough=(409,),
        )
        if response.status_code == 409:
            return None

        commits = response.json()
        if not isinstance(commits, list) or not commits:
            return None

        latest = commits[0]
        commit = latest.get("commit") or {}
        author = commit.get("author") or {}
        return CommitInfo(
            sha=latest["sha"],
            message=commit.get("message") or "",
            author=author.get("name") or "",
            date=_parse_timestamp(author.get("date")),
            url=latest.get("html_url") or "",
        )

    # ------------------------------------------------------------------
    # Artifacts
    # ------------------------------------------------------------------

    async def list_artifacts(self, owner: str, repo: str, run_id: int) -> list[Artifact]:
        response = await self._request(
            "GET",
            f"/repos/{owner}/{repo}/actions/runs/{run_id}/artifacts",
            params={"per_page": 100},
        )
        artifacts = response.json().get("artifacts") or []
        return [
            Artifact(
                id=raw["id"],
                name=raw.get("name") or "",
                size_bytes=raw.get("size_in_bytes") or 0,
                expired=bool(raw.get("expired", False)),
                html_url=(
                    f"https://github.com/{owner}/{repo}/actions/runs/{run_id}"
                    f"/artifacts/{raw['id']}"
                ),
            )
            for raw in artifacts
        ]

    async def download_artifact(self, owner: str, repo: str, artifact_id: int) -> bytes | None:
        response = await self._request(
            "GET",
            f"/repos/{owner}/{repo}/actions/artifacts/{artifact_id}/zip",
            passthrough=(410,),
        )
        if response.status_code == 410:
            logger.info("Artifact %s in %s/%s has expired", artifact_id, owner, repo)
            return None
        return response.content

    # ------------------------------------------------------------------
    # Workflows and credentials
    # ------------------------------------------------------------------

    async def list_workflows(self, owner: str, repo: str) -> list[WorkflowDefinition]:
        response = await self._request("GET", f"/repos/{owner}/{repo}/actions/workflows")
        workflows = response.json().get("workflows") or []
        return [
            WorkflowDefinition(
                name=raw.get("name") or "",
                path=raw.get("path") or "",
                state=raw.get("state") or "",
            )
            for raw in workflows
        ]

    async def validate_token(self) -> bool:
        try:
            await self._graphql(VIEWER_QUERY)
        except AuthenticationError:
            return False
        return True
