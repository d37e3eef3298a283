"""
Wiring of the sync engine for command-line use.

Builds the GitHub client, response cache, SQLite store, orchestrator and
change detector from a loaded :class:`CisyncConfig`, and resolves which
configured builds a command should act on.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path

from cisync.core.builds import Build
from cisync.core.cache import ResponseCache
from cisync.core.config import CisyncConfig
from cisync.core.exceptions import AuthenticationError, CisyncError
from cisync.core.provider import CachedProviderClient, GitHubActionsClient
from cisync.core.store import SqliteRunStore
from cisync.core.sync import ChangeDetector, SyncService


@dataclass
class Engine:
    """Everything a command needs to sync builds."""

    config: CisyncConfig
    client: CachedProviderClient
    store: SqliteRunStore
    service: SyncService
    detector: ChangeDetector


def open_store(config: CisyncConfig, project_dir: Path | None = None) -> SqliteRunStore:
    """Open the SQLite store, resolving a relative path against the project dir."""
    db_path = Path(config.store.db_path)
    if not db_path.is_absolute():
        db_path = (project_dir or Path.cwd()) / db_path
    return SqliteRunStore(db_path)


@asynccontextmanager
async def open_engine(config: CisyncConfig) -> AsyncIterator[Engine]:
    """
    Build the engine and release its connections on exit.

    Raises:
        AuthenticationError: If no access token is configured
    """
    if not config.github.token:
        raise AuthenticationError("github", "No access token configured")

    store = open_store(config)
    try:
        async with GitHubActionsClient(
            config.github.token,
            api_url=config.github.api_url,
            timeout=config.github.timeout,
            page_size=config.sync.page_size,
        ) as raw:
            client = CachedProviderClient(raw, ResponseCache())
            service = SyncService(client, store, config.sync)
            yield Engine(
                config=config,
                client=client,
                store=store,
                service=service,
                detector=ChangeDetector(client, service, store),
            )
    finally:
        store.close()


def resolve_builds(
    config: CisyncConfig, build_id: str | None, all_builds: bool
) -> list[Build]:
    """
    Pick the builds a command targets.

    A single configured build is used implicitly; otherwise a build id or
    ``--all`` is required.

    Raises:
        CisyncError: If the id is unknown or the selection is ambiguous
    """
    if build_id is not None:
        found = config.get_build(build_id)
        if found is None:
            raise CisyncError(f"Unknown build: {build_id}", build_id=build_id)
        return [found.to_build(config.tenant)]
    if not config.builds:
        raise CisyncError("No builds configured in .cisync.json")
    if all_builds or len(config.builds) == 1:
        return [build.to_build(config.tenant) for build in config.builds]
    raise CisyncError("Several builds are configured; pass a BUILD_ID or --all")
