"""
Load cisync settings from JSON files and the environment.

Later layers win:
    defaults < user config < project config < env vars
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from .models import CisyncConfig

logger = logging.getLogger(__name__)

# Merged config, reused until clear_cache()
_config_cache: CisyncConfig | None = None


def get_xdg_config_home() -> Path:
    """
    Base directory for per-user config files.

    Returns:
        $XDG_CONFIG_HOME, or ~/.config when unset
    """
    if xdg_home := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_home)
    return Path.home() / ".config"


def get_user_config_path() -> Path:
    """
    Location of the per-user settings file.

    Returns:
        Path to ~/.config/cisync/config.json (or XDG equivalent)
    """
    return get_xdg_config_home() / "cisync" / "config.json"


def get_project_config_path(cwd: Path | None = None) -> Path:
    """
    Location of the project settings file.

    Args:
        cwd: Project root (defaults to the current directory)

    Returns:
        Path to .cisync.json in the project root
    """
    return (cwd or Path.cwd()) / ".cisync.json"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Merge ``override`` into a copy of ``base``.

    Nested dicts are merged key by key; any other value in ``override``
    (lists included) replaces the one in ``base``.

    Example:
        >>> deep_merge({"sync": {"page_size": 50, "lookback_days": 7}},
        ...            {"sync": {"page_size": 100}, "tenant": "acme"})
        {'sync': {'page_size': 100, 'lookback_days': 7}, 'tenant': 'acme'}
    """
    result = base.copy()
    for key, value in override.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Load a JSON object from disk.

    Returns:
        Parsed object, or None if the file is missing, unreadable or not a
        JSON object
    """
    if not path.exists():
        return None
    try:
        with path.open() as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None
    if not isinstance(data, dict):
        logger.warning("Ignoring config at %s: top level is not an object", path)
        return None
    return data


def _set_section(config: dict[str, Any], section: str, key: str, value: Any) -> None:
    config.setdefault(section, {})
    config[section] = {**config[section], key: value}


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Overlay settings taken from environment variables.

    Supported env vars:
        CISYNC_GITHUB_TOKEN, then GITHUB_TOKEN - overrides github.token
        CISYNC_API_URL - overrides github.api_url
        CISYNC_DB_PATH - overrides store.db_path
        CISYNC_TENANT - overrides tenant
        CISYNC_INTER_PAGE_DELAY_MS - overrides sync.inter_page_delay_ms
    """
    result = config_dict.copy()

    token = os.environ.get("CISYNC_GITHUB_TOKEN") or os.environ.get("GITHUB_TOKEN")
    if token:
        _set_section(result, "github", "token", token)

    if api_url := os.environ.get("CISYNC_API_URL"):
        _set_section(result, "github", "api_url", api_url)

    if db_path := os.environ.get("CISYNC_DB_PATH"):
        _set_section(result, "store", "db_path", db_path)

    if tenant := os.environ.get("CISYNC_TENANT"):
        result["tenant"] = tenant

    if delay_str := os.environ.get("CISYNC_INTER_PAGE_DELAY_MS"):
        try:
            delay = int(delay_str)
        except ValueError:
            logger.warning("Invalid CISYNC_INTER_PAGE_DELAY_MS value '%s', ignoring", delay_str)
        else:
            if delay < 0:
                logger.warning("CISYNC_INTER_PAGE_DELAY_MS must be >= 0, got %d, ignoring", delay)
            else:
                _set_section(result, "sync", "inter_page_delay_ms", delay)

    return result


def get_default_config() -> dict[str, Any]:
    """Hardcoded defaults; the models supply everything not listed here."""
    return {"tenant": "default", "builds": []}


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> CisyncConfig:
    """
    Build the effective CisyncConfig.

    Sources, highest priority first:
        1. Environment variables (CISYNC_*, GITHUB_TOKEN)
        2. Project config (.cisync.json)
        3. User config (~/.config/cisync/config.json)
        4. Hardcoded defaults

    Args:
        project_dir: Project directory to load .cisync.json from (defaults to cwd)
        use_cache: Reuse the config merged by an earlier call

    Returns:
        Validated CisyncConfig instance

    Raises:
        ValidationError: If the merged settings are invalid
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    merged = get_default_config()

    if user_config := load_json_file(get_user_config_path()):
        merged = deep_merge(merged, user_config)

    if project_config := load_json_file(get_project_config_path(project_dir)):
        merged = deep_merge(merged, project_config)

    merged = apply_env_overrides(merged)

    config = CisyncConfig(**merged)
    _config_cache = config
    return config


def clear_cache() -> None:
    """Clear the cached configuration."""
    global _config_cache
    _config_cache = None
