"""
SQLite-backed RunStore for local use.

Follows the same connection conventions as a small single-file database:
- WAL mode for concurrent readers
- dict row factory for name-based access
- schema created on first open, versioned via ``schema_info``

Timestamps are stored as ISO-8601 strings in UTC; test cases are stored as
a JSON array.

Usage:
    store = SqliteRunStore(Path(".cisync/cisync.db"))
    try:
        status = await store.find_sync_status("web", "default")
    finally:
        store.close()
"""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter

from cisync.core.exceptions import StoreError
from cisync.core.reports.models import TestCase

from .models import SyncStatus, TestReportRecord, WorkflowRunRecord

SCHEMA_VERSION = 1

_SCHEMA = """
CREATE TABLE IF NOT EXISTS schema_info (
    version INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS workflow_runs (
    id TEXT PRIMARY KEY,
    build_id TEXT NOT NULL,
    tenant_id TEXT NOT NULL,
    provider_run_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    status TEXT NOT NULL,
    conclusion TEXT,
    html_url TEXT NOT NULL DEFAULT '',
    head_branch TEXT,
    event TEXT,
    duration_ms INTEGER,
    commit_sha TEXT,
    workflow_created_at TEXT NOT NULL,
    workflow_updated_at TEXT NOT NULL,
    synced_at TEXT NOT NULL,
    UNIQUE (build_id, provider_run_id, tenant_id)
);

CREATE INDEX IF NOT EXISTS idx_runs_build_created
    ON workflow_runs (build_id, tenant_id, workflow_created_at DESC);

CREATE TABLE IF NOT EXISTS sync_status (
    build_id TEXT NOT NULL,
    tenant_id TEXT NOT NULL,
    last_synced_at TEXT,
    last_synced_run_id INTEGER,
    last_synced_run_created_at TEXT,
    total_runs_synced INTEGER NOT NULL DEFAULT 0,
    initial_backfill_completed INTEGER NOT NULL DEFAULT 0,
    last_sync_error TEXT,
    PRIMARY KEY (build_id, tenant_id)
);

CREATE TABLE IF NOT EXISTS analyzed_commits (
    build_id TEXT NOT NULL,
    tenant_id TEXT NOT NULL,
    commit_sha TEXT NOT NULL,
    analyzed_at TEXT NOT NULL,
    PRIMARY KEY (build_id, tenant_id)
);

CREATE TABLE IF NOT EXISTS test_reports (
    id TEXT PRIMARY KEY,
    workflow_run_id TEXT NOT NULL REFERENCES workflow_runs (id) ON DELETE CASCADE,
    build_id TEXT NOT NULL,
    tenant_id TEXT NOT NULL,
    total_tests INTEGER NOT NULL,
    passed_tests INTEGER NOT NULL,
    failed_tests INTEGER NOT NULL,
    skipped_tests INTEGER NOT NULL,
    test_cases TEXT,
    artifact_name TEXT NOT NULL DEFAULT '',
    artifact_url TEXT,
    parsed_at TEXT NOT NULL,
    UNIQUE (workflow_run_id, tenant_id)
);
"""

_TEST_CASES = TypeAdapter(list[TestCase])

_RUN_COLUMNS = (
    "id",
    "build_id",
    "tenant_id",
    "provider_run_id",
    "name",
    "status",
    "conclusion",
    "html_url",
    "head_branch",
    "event",
    "duration_ms",
    "commit_sha",
    "workflow_created_at",
    "workflow_updated_at",
    "synced_at",
)


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Row factory returning rows as dictionaries keyed by column name."""
    fields = [column[0] for column in cursor.description]
    return dict(zip(fields, row))


def _ts(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_ts(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class SqliteRunStore:
    """
    Implementation of :class:`~cisync.core.store.base.RunStore` over SQLite.

    Queries are local and short, so they run inline on the event loop.
    """

    def __init__(self, db_path: Path | str) -> None:
        """
        Open (and if needed create) the database.

        Args:
            db_path: Database file path, or ``":memory:"``

        Raises:
            StoreError: If the database cannot be opened or initialized
        """
        self.db_path = str(db_path)
        try:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.db_path)
            self._configure()
            self._ensure_schema()
        except (sqlite3.Error, OSError) as e:
            raise StoreError(f"Failed to open database: {e}", path=self.db_path) from e

    def _configure(self) -> None:
        if self.db_path != ":memory:":
            self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._conn.row_factory = dict_factory

    def _ensure_schema(self) -> None:
        self._conn.executescript(_SCHEMA)
        row = self._conn.execute("SELECT version FROM schema_info").fetchone()
        if row is None:
            self._conn.execute("INSERT INTO schema_info (version) VALUES (?)", (SCHEMA_VERSION,))
        self._conn.commit()

    def close(self) -> None:
        """Close the connection."""
        self._conn.close()

    def _execute(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        try:
            return self._conn.execute(sql, params)
        except sqlite3.Error as e:
            raise StoreError(f"Database error: {e}", sql=sql) from e

    # ------------------------------------------------------------------
    # Workflow runs
    # ------------------------------------------------------------------

    @staticmethod
    def _run_from_row(row: dict[str, Any]) -> WorkflowRunRecord:
        return WorkflowRunRecord(
            **{
                **row,
                "workflow_created_at": _parse_ts(row["workflow_created_at"]),
                "workflow_updated_at": _parse_ts(row["workflow_updated_at"]),
                "synced_at": _parse_ts(row["synced_at"]),
            }
        )

    async def find_by_provider_run_id(
        self, build_id: str, provider_run_id: int, tenant_id: str
    ) -> WorkflowRunRecord | None:
        row = self._execute(
            "SELECT * FROM workflow_runs "
            "WHERE build_id = ? AND provider_run_id = ? AND tenant_id = ?",
            (build_id, provider_run_id, tenant_id),
        ).fetchone()
        return self._run_from_row(row) if row else None

    async def bulk_create_runs(
        self, records: list[WorkflowRunRecord]
    ) -> list[WorkflowRunRecord]:
        placeholders = ", ".join("?" for _ in _RUN_COLUMNS)
        sql = (
            f"INSERT OR IGNORE INTO workflow_runs ({', '.join(_RUN_COLUMNS)}) "
            f"VALUES ({placeholders})"
        )
        inserted: list[WorkflowRunRecord] = []
        try:
            with self._conn:
                for record in records:
                    values = record.model_dump(mode="json")
                    values["workflow_created_at"] = _ts(record.workflow_created_at)
                    values["workflow_updated_at"] = _ts(record.workflow_updated_at)
                    values["synced_at"] = _ts(record.synced_at)
                    cursor = self._conn.execute(sql, tuple(values[c] for c in _RUN_COLUMNS))
                    if cursor.rowcount == 1:
                        inserted.append(record)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to insert workflow runs: {e}") from e
        return inserted

    async def list_runs(
        self, build_id: str, tenant_id: str, limit: int | None = None
    ) -> list[WorkflowRunRecord]:
        rows = self._execute(
            "SELECT * FROM workflow_runs WHERE build_id = ? AND tenant_id = ? "
            "ORDER BY workflow_created_at DESC LIMIT ?",
            (build_id, tenant_id, -1 if limit is None else limit),
        ).fetchall()
        return [self._run_from_row(row) for row in rows]

    # ------------------------------------------------------------------
    # Sync status
    # ------------------------------------------------------------------

    async def find_sync_status(self, build_id: str, tenant_id: str) -> SyncStatus | None:
        row = self._execute(
            "SELECT * FROM sync_status WHERE build_id = ? AND tenant_id = ?",
            (build_id, tenant_id),
        ).fetchone()
        if row is None:
            return None
        return SyncStatus(
            build_id=row["build_id"],
            tenant_id=row["tenant_id"],
            last_synced_at=_parse_ts(row["last_synced_at"]),
            last_synced_run_id=row["last_synced_run_id"],
            last_synced_run_created_at=_parse_ts(row["last_synced_run_created_at"]),
            total_runs_synced=row["total_runs_synced"],
            initial_backfill_completed=bool(row["initial_backfill_completed"]),
            last_sync_error=row["last_sync_error"],
        )

    async def upsert_sync_status(self, status: SyncStatus) -> SyncStatus:
        self._execute(
            """
            INSERT INTO sync_status (
                build_id, tenant_id, last_synced_at, last_synced_run_id,
                last_synced_run_created_at, total_runs_synced,
                initial_backfill_completed, last_sync_error
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT (build_id, tenant_id) DO UPDATE SET
                last_synced_at = excluded.last_synced_at,
                last_synced_run_id = excluded.last_synced_run_id,
                last_synced_run_created_at = excluded.last_synced_run_created_at,
                total_runs_synced = excluded.total_runs_synced,
                initial_backfill_completed = excluded.initial_backfill_completed,
                last_sync_error = excluded.last_sync_error
            """,
            (
                status.build_id,
                status.tenant_id,
                _ts(status.last_synced_at),
                status.last_synced_run_id,
                _ts(status.last_synced_run_created_at),
                status.total_runs_synced,
                int(status.initial_backfill_completed),
                status.last_sync_error,
            ),
        )
        self._conn.commit()
        return status

    # ------------------------------------------------------------------
    # Test reports
    # ------------------------------------------------------------------

    async def find_test_report_by_run_id(
        self, workflow_run_id: str, tenant_id: str
    ) -> TestReportRecord | None:
        row = self._execute(
            "SELECT * FROM test_reports WHERE workflow_run_id = ? AND tenant_id = ?",
            (workflow_run_id, tenant_id),
        ).fetchone()
        if row is None:
            return None
        cases = _TEST_CASES.validate_json(row["test_cases"]) if row["test_cases"] else None
        return TestReportRecord(
            **{
                **row,
                "test_cases": cases,
                "parsed_at": _parse_ts(row["parsed_at"]),
            }
        )

    async def create_test_report(self, record: TestReportRecord) -> TestReportRecord:
        cases_json = (
            json.dumps([case.model_dump(mode="json") for case in record.test_cases])
            if record.test_cases
            else None
        )
        self._execute(
            """
            INSERT INTO test_reports (
                id, workflow_run_id, build_id, tenant_id, total_tests, passed_tests,
                failed_tests, skipped_tests, test_cases, artifact_name, artifact_url,
                parsed_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.id,
                record.workflow_run_id,
                record.build_id,
                record.tenant_id,
                record.total_tests,
                record.passed_tests,
                record.failed_tests,
                record.skipped_tests,
                cases_json,
                record.artifact_name,
                record.artifact_url,
                _ts(record.parsed_at),
            ),
        )
        self._conn.commit()
        return record

    # ------------------------------------------------------------------
    # Change detection
    # ------------------------------------------------------------------

    async def find_analyzed_commit(self, build_id: str, tenant_id: str) -> str | None:
        row = self._execute(
            "SELECT commit_sha FROM analyzed_commits WHERE build_id = ? AND tenant_id = ?",
            (build_id, tenant_id),
        ).fetchone()
        return row["commit_sha"] if row else None

    async def save_analyzed_commit(self, build_id: str, tenant_id: str, sha: str) -> None:
        self._execute(
            """
            INSERT INTO analyzed_commits (build_id, tenant_id, commit_sha, analyzed_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT (build_id, tenant_id) DO UPDATE SET
                commit_sha = excluded.commit_sha,
                analyzed_at = excluded.analyzed_at
            """,
            (build_id, tenant_id, sha, datetime.now(timezone.utc).isoformat()),
        )
        self._conn.commit()
