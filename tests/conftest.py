"""Pytest configuration and fixtures for packforge tests."""

import io
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
import structlog
from rich.console import Console


@pytest.fixture(autouse=True)
def log_output() -> Iterator[list[dict[str, Any]]]:
    """Capture structlog events instead of printing them."""
    with structlog.testing.capture_logs() as captured:
        yield captured


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep user environment overrides out of the tests."""
    for name in ("PACKFORGE_CACHE_PATH", "PACKFORGE_COM_MOJANG", "PACKFORGE_DEBUG"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("packforge.cli.export.configure_logging", lambda: None)


@pytest.fixture
def quiet_console() -> Console:
    """Rich console writing to memory."""
    return Console(file=io.StringIO(), force_terminal=False)


def write_tree(root: Path, files: dict[str, str]) -> None:
    """Create files (and their parent directories) below ``root``."""
    for relpath, content in files.items():
        path = root / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)


def snapshot(root: Path) -> dict[str, str | None]:
    """Map every entry below ``root`` to its content (None for directories)."""
    result: dict[str, str | None] = {}
    if not root.exists():
        return result
    for path in sorted(root.rglob("*")):
        rel = path.relative_to(root).as_posix()
        result[rel] = None if path.is_dir() else path.read_text()
    return result


@pytest.fixture
def sample_pack_files() -> dict[str, dict[str, str]]:
    """Built output of a small project."""
    return {
        "BP": {
            "manifest.json": '{"header": {"name": "demo bp"}}',
            "entities/cow.json": '{"minecraft:entity": {}}',
            "functions/tick.mcfunction": "say hi",
        },
        "RP": {
            "manifest.json": '{"header": {"name": "demo rp"}}',
            "textures/cow.png": "PNG",
        },
    }


@pytest.fixture
def make_tree() -> Any:
    """Return the ``write_tree`` helper."""
    return write_tree


@pytest.fixture
def tree_snapshot() -> Any:
    """Return the ``snapshot`` helper."""
    return snapshot
