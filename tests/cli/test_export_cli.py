"""CLI tests for export commands."""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from packforge.cli.export import app

runner = CliRunner()


def _exact_args(project: Path) -> list[str]:
    return [
        "--name",
        "demo",
        "--target",
        "exact",
        "--bp-path",
        "out/BP",
        "--rp-path",
        "out/RP",
        "--project-root",
        str(project),
    ]


def test_export_json(tmp_path: Path, make_tree: Any) -> None:
    project = tmp_path / "project"
    make_tree(project / "src" / "BP", {"manifest.json": "{}"})
    make_tree(project / "src" / "RP", {"manifest.json": "{}", "a.png": "png"})

    result = runner.invoke(
        app,
        ["export", *_exact_args(project), "--source", str(project / "src"), "--json"],
    )

    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["bp_files"] == 1
    assert data["rp_files"] == 2
    assert data["bp_path"] == str(project / "out" / "BP")
    assert (project / "out" / "RP" / "a.png").exists()


def test_export_defaults_to_cache_build_output(tmp_path: Path, make_tree: Any) -> None:
    project = tmp_path / "project"
    make_tree(project / ".packforge" / "tmp" / "BP", {"manifest.json": "{}"})

    result = runner.invoke(app, ["export", *_exact_args(project)])

    assert result.exit_code == 0, result.output
    assert "Exported 1 behavior pack file(s)" in result.stdout
    assert (project / "out" / "BP" / "manifest.json").exists()


def test_export_use_app_data(
    tmp_path: Path, make_tree: Any, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Build output and manifest are taken from the user cache directory."""
    monkeypatch.setattr(
        "packforge.cache.paths.user_cache_dir", lambda: tmp_path / "user-cache"
    )
    project = tmp_path / "project"
    project.mkdir()
    project_hash = hashlib.md5(str(project.resolve()).encode()).hexdigest()
    cache = tmp_path / "user-cache" / "packforge" / "project-cache" / project_hash
    make_tree(cache / "tmp" / "BP", {"manifest.json": "{}"})

    result = runner.invoke(app, ["export", *_exact_args(project), "--use-app-data"])

    assert result.exit_code == 0, result.output
    assert (project / "out" / "BP" / "manifest.json").exists()
    assert (cache / "cache" / "edited_files.json").exists()
    assert not (project / ".packforge").exists()


def test_export_safety_violation_fails(tmp_path: Path, make_tree: Any) -> None:
    project = tmp_path / "project"
    make_tree(project / "src" / "BP", {"manifest.json": "{}"})
    make_tree(project / "out" / "BP", {"notes.txt": "keep me"})

    result = runner.invoke(
        app, ["export", *_exact_args(project), "--source", str(project / "src")]
    )

    assert result.exit_code == 1
    assert "notes.txt" in result.output
    assert (project / "out" / "BP" / "notes.txt").read_text() == "keep me"


def test_export_invalid_target(tmp_path: Path) -> None:
    result = runner.invoke(
        app,
        [
            "export",
            "--name",
            "demo",
            "--target",
            "cloud",
            "--project-root",
            str(tmp_path),
        ],
    )

    assert result.exit_code == 1
    assert "target not valid" in result.output


def test_check_reports_safe(tmp_path: Path) -> None:
    result = runner.invoke(app, ["check", *_exact_args(tmp_path)])

    assert result.exit_code == 0, result.output
    assert "Safe to export" in result.stdout
