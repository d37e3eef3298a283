"""
Tests for the cisync command line.
"""

import asyncio
import json
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from typer.testing import CliRunner

from cisync import __version__
from cisync.cli import app
from cisync.core.exceptions import AuthenticationError
from cisync.core.store import SqliteRunStore, SyncStatus
from cisync.core.sync import SyncResult

from conftest import SIMPLE_SUITE_XML, make_zip

runner = CliRunner()

WEB = {
    "id": "web",
    "owner": "octo",
    "repository": "web",
    "selectors": [{"type": "branch", "pattern": "main"}],
}
API = {**WEB, "id": "api", "repository": "api"}


@pytest.fixture
def project(tmp_path, monkeypatch):
    """A project directory with two configured builds, used as cwd."""
    (tmp_path / ".cisync.json").write_text(json.dumps({"builds": [WEB, API]}))
    monkeypatch.chdir(tmp_path)
    return tmp_path


def fake_engine(monkeypatch, **components):
    """Replace engine construction in the sync commands."""
    engine = SimpleNamespace(**components)

    @asynccontextmanager
    async def open_engine(config):
        yield engine

    monkeypatch.setattr("cisync.cli.sync.open_engine", open_engine)
    return engine


class TestVersion:
    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestSync:
    """Test the sync command."""

    def test_missing_token_prints_credentials_hint(self, project):
        result = runner.invoke(app, ["sync", "web"])
        assert result.exit_code == 1
        assert "No access token configured" in result.output
        assert "GITHUB_TOKEN" in result.output

    def test_unknown_build(self, project):
        result = runner.invoke(app, ["sync", "nope"])
        assert result.exit_code == 1
        assert "Unknown build" in result.output

    def test_ambiguous_selection(self, project):
        result = runner.invoke(app, ["sync"])
        assert result.exit_code == 1
        assert "Several builds" in result.output

    def test_sync_all_prints_results(self, project, monkeypatch):
        synced_at = datetime(2024, 6, 15, 15, 30, tzinfo=timezone.utc)
        service = SimpleNamespace(
            sync=AsyncMock(
                return_value=SyncResult(
                    new_runs_synced=3, test_results_parsed=2, last_synced_at=synced_at
                )
            )
        )
        fake_engine(monkeypatch, service=service)

        result = runner.invoke(app, ["sync", "--all"])

        assert result.exit_code == 0, result.output
        assert service.sync.await_count == 2
        synced_ids = [call.args[0].id for call in service.sync.await_args_list]
        assert synced_ids == ["web", "api"]
        assert "Sync Results" in result.output
        assert "octo/web" in result.output

    def test_auth_failure_during_sync(self, project, monkeypatch):
        service = SimpleNamespace(sync=AsyncMock(side_effect=AuthenticationError("github")))
        fake_engine(monkeypatch, service=service)

        result = runner.invoke(app, ["sync", "web"])

        assert result.exit_code == 1
        assert "GITHUB_TOKEN" in result.output


class TestCheck:
    def test_check_reports_outcomes(self, project, monkeypatch):
        detector = SimpleNamespace(
            check_builds=AsyncMock(return_value={"web": True, "api": False})
        )
        fake_engine(monkeypatch, detector=detector)

        result = runner.invoke(app, ["check", "--all"])

        assert result.exit_code == 0, result.output
        assert "synced" in result.output
        assert "unchanged or failed" in result.output


class TestStatus:
    """Test the status command."""

    def test_never_synced(self, project):
        result = runner.invoke(app, ["status"])
        assert result.exit_code == 0, result.output
        assert "never_synced" in result.output

    def test_shows_stored_status(self, project):
        store = SqliteRunStore(project / ".cisync" / "cisync.db")
        asyncio.run(
            store.upsert_sync_status(
                SyncStatus(
                    build_id="web",
                    tenant_id="default",
                    last_synced_at=datetime(2024, 6, 15, tzinfo=timezone.utc),
                    total_runs_synced=12,
                    initial_backfill_completed=True,
                )
            )
        )
        store.close()

        result = runner.invoke(app, ["status", "web"])

        assert result.exit_code == 0, result.output
        assert "steady" in result.output
        assert "12" in result.output

    def test_unknown_build(self, project):
        result = runner.invoke(app, ["status", "nope"])
        assert result.exit_code == 2
        assert "Unknown build" in result.output

    def test_no_builds(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["status"])
        assert result.exit_code == 0
        assert "No builds configured" in result.output


class TestReport:
    """Test local report parsing."""

    def test_xml_file(self, tmp_path):
        path = tmp_path / "junit.xml"
        path.write_text(SIMPLE_SUITE_XML)

        result = runner.invoke(app, ["report", str(path), "--cases"])

        assert result.exit_code == 0, result.output
        assert "50.0%" in result.output
        assert "test_broken" in result.output

    def test_zip_archive(self, tmp_path):
        path = tmp_path / "results.zip"
        path.write_bytes(make_zip({"junit.xml": SIMPLE_SUITE_XML}))

        result = runner.invoke(app, ["report", str(path)])

        assert result.exit_code == 0, result.output
        assert "Test Report" in result.output

    def test_unusable_file(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("nothing here")

        result = runner.invoke(app, ["report", str(path)])

        assert result.exit_code == 1
        assert "No usable test report" in result.output
