"""
Unit tests for configuration models, loading and dotenv layering.

Tests multi-layer config merging, environment variable overrides,
caching, and XDG directory handling.
"""

import json
import os
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from cisync.core.builds import SelectorType
from cisync.core.config import (
    BuildConfig,
    CisyncConfig,
    SyncSettings,
    clear_cache,
    deep_merge,
    get_project_config_path,
    get_user_config_path,
    get_xdg_config_home,
    load_config,
    load_layered_env,
)
from cisync.core.config.loader import apply_env_overrides, load_json_file

BUILD = {
    "id": "web-release",
    "owner": "octo",
    "repository": "web",
    "selectors": [{"type": "branch", "pattern": "release-*"}],
}


# ==============================================================================
# Models
# ==============================================================================


class TestModels:
    """Test configuration model defaults and validation."""

    def test_sync_defaults(self):
        settings = SyncSettings()
        assert settings.page_size == 100
        assert settings.inter_page_delay_ms == 100
        assert settings.incremental_run_limit == 100
        assert settings.hydration_limit == 50
        assert settings.lookback_days == 30
        assert settings.backfill_start == datetime(2015, 1, 1, tzinfo=timezone.utc)

    def test_page_size_is_capped(self):
        with pytest.raises(ValidationError):
            SyncSettings(page_size=101)

    def test_api_url_is_normalized(self):
        config = CisyncConfig(github={"api_url": "https://ghe.example.com/api/v3/"})
        assert config.github.api_url == "https://ghe.example.com/api/v3"

    def test_build_config_to_build(self):
        build = BuildConfig(**BUILD).to_build("acme")
        assert build.tenant_id == "acme"
        assert build.full_name == "octo/web"
        assert build.selectors[0].type == SelectorType.BRANCH
        assert build.cache_expiration_minutes == 10

    def test_duplicate_build_ids_rejected(self):
        with pytest.raises(ValidationError, match="Duplicate build id"):
            CisyncConfig(builds=[BUILD, BUILD])

    def test_get_build(self):
        config = CisyncConfig(builds=[BUILD])
        assert config.get_build("web-release").owner == "octo"
        assert config.get_build("missing") is None

    def test_empty_selector_pattern_rejected(self):
        with pytest.raises(ValidationError):
            BuildConfig(**{**BUILD, "selectors": [{"type": "branch", "pattern": ""}]})


# ==============================================================================
# Helper Functions
# ==============================================================================


class TestDeepMerge:
    """Test the deep_merge helper function."""

    def test_nested_merge(self):
        base = {"sync": {"page_size": 50, "lookback_days": 7}}
        override = {"sync": {"page_size": 100}, "tenant": "acme"}
        assert deep_merge(base, override) == {
            "sync": {"page_size": 100, "lookback_days": 7},
            "tenant": "acme",
        }

    def test_lists_are_replaced(self):
        assert deep_merge({"builds": [1, 2]}, {"builds": [3]}) == {"builds": [3]}

    def test_inputs_are_not_mutated(self):
        base = {"sync": {"page_size": 50}}
        deep_merge(base, {"sync": {"page_size": 10}})
        assert base == {"sync": {"page_size": 50}}


class TestLoadJsonFile:
    def test_missing_file(self, tmp_path):
        assert load_json_file(tmp_path / "missing.json") is None

    def test_invalid_json_logs_warning(self, tmp_path, caplog):
        path = tmp_path / "bad.json"
        path.write_text("{ nope")
        assert load_json_file(path) is None
        assert "Failed to parse config" in caplog.text

    def test_non_object_is_ignored(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]")
        assert load_json_file(path) is None


class TestApplyEnvOverrides:
    """Test environment variable override logic."""

    def test_github_token_fallback(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "ghp_fallback")
        assert apply_env_overrides({})["github"]["token"] == "ghp_fallback"

    def test_cisync_token_wins(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "ghp_fallback")
        monkeypatch.setenv("CISYNC_GITHUB_TOKEN", "ghp_primary")
        assert apply_env_overrides({})["github"]["token"] == "ghp_primary"

    def test_other_overrides(self, monkeypatch):
        monkeypatch.setenv("CISYNC_API_URL", "https://ghe.example.com/api/v3")
        monkeypatch.setenv("CISYNC_DB_PATH", "/data/cisync.db")
        monkeypatch.setenv("CISYNC_TENANT", "acme")
        monkeypatch.setenv("CISYNC_INTER_PAGE_DELAY_MS", "0")

        result = apply_env_overrides({"github": {"timeout": 5}})

        assert result["github"] == {"timeout": 5, "api_url": "https://ghe.example.com/api/v3"}
        assert result["store"]["db_path"] == "/data/cisync.db"
        assert result["tenant"] == "acme"
        assert result["sync"]["inter_page_delay_ms"] == 0

    @pytest.mark.parametrize("value", ["fast", "-5"])
    def test_invalid_delay_is_ignored(self, monkeypatch, caplog, value):
        monkeypatch.setenv("CISYNC_INTER_PAGE_DELAY_MS", value)
        assert "sync" not in apply_env_overrides({})
        assert "CISYNC_INTER_PAGE_DELAY_MS" in caplog.text

    def test_input_is_not_mutated(self, monkeypatch):
        monkeypatch.setenv("CISYNC_DB_PATH", "/x.db")
        original = {"store": {"db_path": "a.db"}}
        apply_env_overrides(original)
        assert original == {"store": {"db_path": "a.db"}}


# ==============================================================================
# Paths and Loading
# ==============================================================================


class TestPaths:
    def test_xdg_config_home(self, tmp_path):
        assert get_xdg_config_home() == tmp_path / "xdg"
        assert get_user_config_path() == tmp_path / "xdg" / "cisync" / "config.json"

    def test_xdg_default(self, monkeypatch):
        monkeypatch.delenv("XDG_CONFIG_HOME")
        assert str(get_xdg_config_home()).endswith(".config")

    def test_project_config_path(self, tmp_path):
        assert get_project_config_path(tmp_path) == tmp_path / ".cisync.json"


class TestLoadConfig:
    """Test multi-layer loading."""

    def test_defaults_only(self, tmp_path):
        config = load_config(project_dir=tmp_path, use_cache=False)
        assert config.tenant == "default"
        assert config.builds == []
        assert config.github.token is None

    def test_layer_precedence(self, tmp_path, monkeypatch):
        user_path = get_user_config_path()
        user_path.parent.mkdir(parents=True)
        user_path.write_text(json.dumps({"tenant": "user", "sync": {"lookback_days": 7}}))
        (tmp_path / ".cisync.json").write_text(
            json.dumps({"tenant": "project", "builds": [BUILD]})
        )
        monkeypatch.setenv("CISYNC_TENANT", "env")

        config = load_config(project_dir=tmp_path, use_cache=False)

        assert config.tenant == "env"
        assert config.sync.lookback_days == 7
        assert config.builds[0].id == "web-release"

    def test_cache_and_clear(self, tmp_path):
        first = load_config(project_dir=tmp_path)
        (tmp_path / ".cisync.json").write_text(json.dumps({"tenant": "changed"}))

        assert load_config(project_dir=tmp_path) is first
        clear_cache()
        assert load_config(project_dir=tmp_path).tenant == "changed"

    def test_invalid_config_raises(self, tmp_path):
        (tmp_path / ".cisync.json").write_text(json.dumps({"sync": {"page_size": 0}}))
        with pytest.raises(ValidationError):
            load_config(project_dir=tmp_path, use_cache=False)


class TestLoadLayeredEnv:
    """Test dotenv layering."""

    def test_precedence(self, tmp_path, monkeypatch):
        user_env = tmp_path / "user.env"
        user_env.write_text("CISYNC_TENANT=user\nCISYNC_DB_PATH=user.db\n")
        project_env = tmp_path / "project.env"
        project_env.write_text("CISYNC_TENANT=project\nGITHUB_TOKEN=from-file\n")
        monkeypatch.setenv("GITHUB_TOKEN", "from-shell")
        # Registered so monkeypatch restores them after the test
        monkeypatch.setenv("CISYNC_TENANT", "")
        monkeypatch.delenv("CISYNC_TENANT")
        monkeypatch.setenv("CISYNC_DB_PATH", "")
        monkeypatch.delenv("CISYNC_DB_PATH")

        loaded = load_layered_env(user_env_paths=[user_env], project_env_paths=[project_env])

        assert os.environ["CISYNC_TENANT"] == "project"
        assert os.environ["CISYNC_DB_PATH"] == "user.db"
        assert os.environ["GITHUB_TOKEN"] == "from-shell"
        assert loaded == {"CISYNC_TENANT", "CISYNC_DB_PATH"}

    def test_missing_files_are_ignored(self, tmp_path):
        assert load_layered_env(project_dir=tmp_path) == set()
