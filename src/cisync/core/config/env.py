"""Environment file loading.

Credentials for the CI provider usually live in ``.env`` files rather than in
JSON config. Files are layered as:

  process environment > project .env / .env.local > user ~/.config/cisync/.env

A value already exported in the shell is never replaced, so CI jobs can
always override what a developer keeps on disk.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

from dotenv import dotenv_values

from .loader import get_xdg_config_home

logger = logging.getLogger(__name__)


def read_env_file(path: Path) -> dict[str, str]:
    """Return the assignments in a dotenv file, skipping bare keys."""
    if not path.is_file():
        return {}
    return {str(k): str(v) for k, v in dotenv_values(path).items() if k and v is not None}


def default_env_paths(project_dir: Path) -> tuple[list[Path], list[Path]]:
    """User and project dotenv paths, lowest priority first."""
    user = [get_xdg_config_home() / "cisync" / ".env"]
    project = [project_dir / ".env", project_dir / ".env.local"]
    return user, project


def load_layered_env(
    *,
    project_dir: Path | None = None,
    user_env_paths: Iterable[Path] | None = None,
    project_env_paths: Iterable[Path] | None = None,
) -> set[str]:
    """Populate ``os.environ`` from user and project dotenv files.

    Args:
        project_dir: Base directory for the project files (defaults to cwd)
        user_env_paths: Override the user file list
        project_env_paths: Override the project file list

    Returns:
        Names of the variables this call set
    """
    default_user, default_project = default_env_paths(project_dir or Path.cwd())
    layers = [
        list(user_env_paths) if user_env_paths is not None else default_user,
        list(project_env_paths) if project_env_paths is not None else default_project,
    ]

    # Keys set here may be replaced by a later layer; pre-existing ones may not.
    loaded: set[str] = set()
    for paths in layers:
        for path in paths:
            for key, value in read_env_file(Path(path)).items():
                if key in os.environ and key not in loaded:
                    continue
                os.environ[key] = value
                loaded.add(key)
    if loaded:
        logger.debug("Loaded %d variables from dotenv files", len(loaded))
    return loaded
