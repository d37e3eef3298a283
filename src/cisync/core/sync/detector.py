"""
Change detector: skip syncs when the repository head has not moved.

One uncached latest-commit request decides whether a full sync is worth
running. Failures are logged and reported as "nothing synced"; they never
propagate to the caller, so a scheduler can fan out over many builds.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from cisync.core.builds import Build
from cisync.core.provider.cached import CachedProviderClient
from cisync.core.store.base import RunStore

from .service import SyncService

logger = logging.getLogger(__name__)


class ChangeDetector:
    """Gate in front of :class:`SyncService` keyed on the head commit SHA."""

    def __init__(
        self, client: CachedProviderClient, service: SyncService, store: RunStore
    ) -> None:
        self.client = client
        self.service = service
        self.store = store

    async def _known_sha(self, build: Build) -> str | None:
        if build.last_analyzed_commit_sha is not None:
            return build.last_analyzed_commit_sha
        return await self.store.find_analyzed_commit(build.id, build.tenant_id)

    async def check_and_sync(self, build: Build) -> bool:
        """
        Sync the build if its head commit changed.

        Returns:
            True if a sync ran and succeeded, False otherwise
        """
        try:
            commit = await self.client.fetch_latest_commit(build.owner, build.repository)
            if commit is None:
                logger.debug("No commits for %s, skipping", build.full_name)
                return False
            if commit.sha == await self._known_sha(build):
                logger.debug("%s unchanged at %s", build.full_name, commit.short_sha)
                return False

            logger.info("%s moved to %s, syncing", build.full_name, commit.short_sha)
            # Cached run listings predate the new head.
            self.client.invalidate_repository(build.owner, build.repository)
            await self.service.sync(build)
            await self.store.save_analyzed_commit(build.id, build.tenant_id, commit.sha)
            return True
        except Exception as e:
            logger.error("Change check failed for %s: %s", build.display_name, e, exc_info=True)
            return False

    async def check_builds(self, builds: Iterable[Build]) -> dict[str, bool]:
        """
        Check several builds concurrently, one task per build.

        Returns:
            Map of build id to whether a sync ran
        """
        builds = list(builds)
        outcomes = await asyncio.gather(*(self.check_and_sync(build) for build in builds))
        return {build.id: synced for build, synced in zip(builds, outcomes)}
