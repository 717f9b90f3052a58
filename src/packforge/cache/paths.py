"""Helpers for resolving the project cache area."""

from __future__ import annotations

import hashlib
import os
import sys
from pathlib import Path

from packforge.core.constants import (
    APP_DATA_CACHE_PATH,
    BACKUP_DIRNAME,
    BUILD_OUTPUT_DIRNAME,
    DEFAULT_CACHE_DIRNAME,
    MANIFEST_RELPATH,
)

__all__ = [
    "backup_path",
    "build_output_path",
    "manifest_path",
    "resolve_cache_dir",
    "user_cache_dir",
]


def user_cache_dir() -> Path:
    """Return the per-user cache directory of the current platform."""
    if sys.platform == "win32":
        base = os.getenv("LOCALAPPDATA")
        if base:
            return Path(base)
    elif sys.platform == "darwin":
        return Path.home() / "Library" / "Caches"
    else:
        base = os.getenv("XDG_CACHE_HOME")
        if base:
            return Path(base)
    return Path.home() / ".cache"


def resolve_cache_dir(
    project_root: str | Path = ".",
    cache_dir: str | Path | None = None,
    use_app_data: bool = False,
) -> Path:
    """Resolve the directory packforge uses for a project's cached data.

    Args:
        project_root: Root directory of the project.
        cache_dir: Optional explicit cache directory.
        use_app_data: Store the cache in the user cache directory, under a
            name derived from the MD5 of the absolute project root, instead
            of `.packforge` inside the project.

    Returns:
        Absolute cache directory (not created).
    """

    chosen: str | Path | None = cache_dir
    env_path = os.getenv("PACKFORGE_CACHE_PATH")
    if chosen is None and env_path:
        chosen = env_path
    if chosen is not None:
        return Path(chosen).expanduser().resolve()

    root = Path(project_root).resolve()
    if not use_app_data:
        return root / DEFAULT_CACHE_DIRNAME

    project_hash = hashlib.md5(str(root).encode()).hexdigest()
    return user_cache_dir() / APP_DATA_CACHE_PATH / project_hash


def manifest_path(cache_dir: str | Path) -> Path:
    """Location of the ownership manifest inside a cache directory."""
    return Path(cache_dir) / MANIFEST_RELPATH


def backup_path(cache_dir: str | Path) -> Path:
    """Location of the transaction backup directory inside a cache directory."""
    return Path(cache_dir) / BACKUP_DIRNAME


def build_output_path(cache_dir: str | Path) -> Path:
    """Location of the scratch build output inside a cache directory."""
    return Path(cache_dir) / BUILD_OUTPUT_DIRNAME
