"""
Configuration models and loading.

Pydantic models for cisync configuration with multi-layer merging:
defaults < user < project < env vars, plus dotenv layering for credentials.
"""

from .env import load_layered_env
from .loader import (
    clear_cache,
    deep_merge,
    get_project_config_path,
    get_user_config_path,
    get_xdg_config_home,
    load_config,
)
from .models import (
    BuildConfig,
    CisyncConfig,
    GitHubConfig,
    StoreConfig,
    SyncSettings,
)

__all__ = [
    # Models
    "BuildConfig",
    "CisyncConfig",
    "GitHubConfig",
    "StoreConfig",
    "SyncSettings",
    # Loader functions
    "clear_cache",
    "deep_merge",
    "get_project_config_path",
    "get_user_config_path",
    "get_xdg_config_home",
    "load_config",
    "load_layered_env",
]
