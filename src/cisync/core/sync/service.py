"""
Sync orchestrator: backfill, incremental fetch, dedup and test hydration.

Each (build, tenant) moves through a small state machine recorded in its
SyncStatus row:

    never synced → backfilling → steady

The first successful sync walks the whole history from a fixed sentinel
date with no run limit. Every later sync only asks for runs created since
the newest run already persisted (or a lookback window when there is none),
capped at the incremental limit.

Usage:
    >>> service = SyncService(cached_client, store, SyncSettings())
    >>> result = await service.sync(build)
    >>> print(result.new_runs_synced, result.test_results_parsed)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from cisync.core.builds import Build
from cisync.core.config.models import SyncSettings
from cisync.core.exceptions import AuthenticationError, StoreError
from cisync.core.provider.cached import CachedProviderClient
from cisync.core.provider.models import Artifact, RunStatus, WorkflowRun
from cisync.core.reports import (
    TestReport,
    is_test_artifact,
    iter_report_documents,
    parse_test_report,
)
from cisync.core.selectors import SelectorMatcher, needs_tags
from cisync.core.store.base import RunStore
from cisync.core.store.models import SyncStatus, TestReportRecord, WorkflowRunRecord

from .models import HydrationResult, SyncResult

logger = logging.getLogger(__name__)

HYDRATABLE_STATUSES = frozenset({RunStatus.SUCCESS, RunStatus.FAILURE})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class SyncService:
    """
    Synchronizes one build's workflow runs and test reports into a store.

    The service holds no per-build state between calls; everything it needs
    to resume lives in the store's SyncStatus rows.
    """

    def __init__(
        self,
        client: CachedProviderClient,
        store: RunStore,
        settings: SyncSettings | None = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            client: Cached provider client
            store: Persisted store for runs, reports and sync status
            settings: Tunables (defaults reproduce the standard limits)
            clock: Source of "now", injectable for tests
        """
        self.client = client
        self.store = store
        self.settings = settings or SyncSettings()
        self.clock = clock

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def sync(self, build: Build) -> SyncResult:
        """
        Run one sync for a build.

        Returns:
            SyncResult with counts of newly persisted runs and reports

        Raises:
            ProviderError: If fetching runs fails, or a credential is
                rejected during hydration
            StoreError: If the store fails

        Any raised error is first recorded in the build's
        ``last_sync_error``.
        """
        status: SyncStatus | None = None
        try:
            status = await self._load_status(build)
            since, limit = self._fetch_window(status)
            logger.info(
                "Syncing %s (%s) since %s, limit %s",
                build.display_name,
                build.full_name,
                since.isoformat(),
                limit if limit is not None else "none",
            )
            runs = await self._fetch_matching_runs(build, since, limit)
            persisted = await self._persist_new_runs(build, runs)
            hydration = await self._hydrate(build, persisted)
        except Exception as e:
            await self._record_failure(build, status, e)
            raise

        now = self.clock()
        await self._record_success(status, persisted, now)
        parsed = sum(1 for item in hydration if item.parsed)
        logger.info(
            "Synced %s: %d new runs, %d test reports",
            build.display_name,
            len(persisted),
            parsed,
        )
        return SyncResult(
            new_runs_synced=len(persisted),
            test_results_parsed=parsed,
            last_synced_at=now,
            hydration=hydration,
        )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _load_status(self, build: Build) -> SyncStatus:
        status = await self.store.find_sync_status(build.id, build.tenant_id)
        if status is None:
            status = await self.store.upsert_sync_status(
                SyncStatus(build_id=build.id, tenant_id=build.tenant_id)
            )
        return status

    def _fetch_window(self, status: SyncStatus) -> tuple[datetime, int | None]:
        """Return the (since, limit) pair for this sync."""
        if not status.initial_backfill_completed:
            return _as_utc(self.settings.backfill_start), None
        if status.last_synced_run_created_at is not None:
            since = _as_utc(status.last_synced_run_created_at)
        else:
            since = (self.clock() - timedelta(days=self.settings.lookback_days)).replace(
                hour=0, minute=0, second=0, microsecond=0
            )
        return since, self.settings.incremental_run_limit

    async def _fetch_matching_runs(
        self, build: Build, since: datetime, limit: int | None
    ) -> list[WorkflowRun]:
        runs = await self.client.fetch_workflow_runs(
            build.owner,
            build.repository,
            build.cache_expiration_minutes,
            since=since,
            limit=limit,
            inter_page_delay_ms=self.settings.inter_page_delay_ms,
        )
        tags: list[str] = []
        if needs_tags(build.selectors):
            tags = await self.client.fetch_tags(
                build.owner, build.repository, build.cache_expiration_minutes
            )
        matched = SelectorMatcher(build.selectors, tags).filter_runs(runs)
        logger.debug("%d of %d fetched runs match %s", len(matched), len(runs), build.display_name)
        return matched

    async def _persist_new_runs(
        self, build: Build, runs: list[WorkflowRun]
    ) -> list[WorkflowRunRecord]:
        new_records: list[WorkflowRunRecord] = []
        for run in runs:
            existing = await self.store.find_by_provider_run_id(build.id, run.id, build.tenant_id)
            if existing is None:
                new_records.append(WorkflowRunRecord.from_run(run, build.id, build.tenant_id))
        if not new_records:
            return []
        return await self.store.bulk_create_runs(new_records)

    async def _hydrate(
        self, build: Build, persisted: list[WorkflowRunRecord]
    ) -> list[HydrationResult]:
        candidates = [
            record
            for record in persisted[: self.settings.hydration_limit]
            if record.status in HYDRATABLE_STATUSES
        ]
        results: list[HydrationResult] = []
        for record in candidates:
            try:
                result = await self._hydrate_run(build, record)
            except AuthenticationError:
                raise
            except Exception as e:
                logger.warning("Test results for run %d failed: %s", record.provider_run_id, e)
                result = HydrationResult(
                    workflow_run_id=record.id,
                    provider_run_id=record.provider_run_id,
                    error=str(e),
                )
            results.append(result)

        failures = [item for item in results if not item.ok]
        if failures:
            logger.warning(
                "Test hydration for %s: %d of %d runs failed (runs %s)",
                build.display_name,
                len(failures),
                len(results),
                ", ".join(str(item.provider_run_id) for item in failures),
            )
        return results

    async def _hydrate_run(self, build: Build, record: WorkflowRunRecord) -> HydrationResult:
        """
        Fetch and persist the test report for one run, if it has one.

        Test artifacts are tried in order until one yields a report. A failed
        artifact is logged and skipped; the run counts as failed only when
        every artifact tried raised.
        """
        result = HydrationResult(
            workflow_run_id=record.id, provider_run_id=record.provider_run_id
        )
        if await self.store.find_test_report_by_run_id(record.id, build.tenant_id):
            return result

        artifacts = [
            artifact
            for artifact in await self.client.list_artifacts(
                build.owner, build.repository, record.provider_run_id
            )
            if not artifact.expired and is_test_artifact(artifact.name)
        ]
        errors: list[str] = []
        for artifact in artifacts:
            try:
                report = await self._read_artifact_report(build, artifact)
            except AuthenticationError:
                raise
            except Exception as e:
                logger.warning(
                    "Artifact %s of run %d failed: %s",
                    artifact.name,
                    record.provider_run_id,
                    e,
                )
                errors.append(f"{artifact.name}: {e}")
                continue
            if report is None:
                continue
            created = await self.store.create_test_report(
                TestReportRecord(
                    workflow_run_id=record.id,
                    build_id=build.id,
                    tenant_id=build.tenant_id,
                    total_tests=report.total_tests,
                    passed_tests=report.passed_tests,
                    failed_tests=report.failed_tests,
                    skipped_tests=report.skipped_tests,
                    test_cases=report.test_cases,
                    artifact_name=artifact.name,
                    artifact_url=artifact.html_url,
                )
            )
            return result.model_copy(
                update={"report_id": created.id, "artifact_name": artifact.name}
            )

        if errors and len(errors) == len(artifacts):
            return result.model_copy(update={"error": "; ".join(errors)})
        return result

    async def _read_artifact_report(self, build: Build, artifact: Artifact) -> TestReport | None:
        """Download one artifact and return its first usable report."""
        payload = await self.client.download_artifact(build.owner, build.repository, artifact.id)
        if payload is None:
            return None
        for document in iter_report_documents(payload):
            report = parse_test_report(document)
            if report is not None:
                return report
        return None

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    async def _record_success(
        self, status: SyncStatus, persisted: list[WorkflowRunRecord], now: datetime
    ) -> None:
        update: dict[str, object] = {
            "last_synced_at": now,
            "total_runs_synced": status.total_runs_synced + len(persisted),
            "initial_backfill_completed": True,
            "last_sync_error": None,
        }
        if persisted:
            newest = max(persisted, key=lambda r: r.workflow_created_at)
            watermark = status.last_synced_run_created_at
            if watermark is None or _as_utc(newest.workflow_created_at) > _as_utc(watermark):
                update["last_synced_run_id"] = newest.provider_run_id
                update["last_synced_run_created_at"] = newest.workflow_created_at
        await self.store.upsert_sync_status(status.model_copy(update=update))

    async def _record_failure(
        self, build: Build, status: SyncStatus | None, error: Exception
    ) -> None:
        logger.error("Sync failed for build %s: %s", build.id, error)
        if status is None:
            status = SyncStatus(build_id=build.id, tenant_id=build.tenant_id)
        try:
            await self.store.upsert_sync_status(
                status.model_copy(update={"last_sync_error": str(error)})
            )
        except StoreError as store_error:
            # The original error is re-raised by the caller.
            logger.error("Could not record sync failure for %s: %s", build.id, store_error)
