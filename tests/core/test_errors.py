"""Tests for core custom exceptions.

Tests for typed exceptions raised by the export subsystem and the path
context they carry.
"""

from pathlib import Path


def test_errors_import() -> None:
    """Test that errors module can be imported."""
    from packforge.core import errors

    assert errors is not None


def test_all_errors_share_base() -> None:
    """Every error can be caught as PackforgeError."""
    from packforge.core.errors import (
        ConfigError,
        ConflictError,
        FatalRecoveryError,
        FilesystemError,
        NotFoundError,
        PackforgeError,
        SafetyViolationError,
    )

    for cls in (
        ConfigError,
        ConflictError,
        FatalRecoveryError,
        FilesystemError,
        NotFoundError,
        SafetyViolationError,
    ):
        assert issubclass(cls, PackforgeError)


def test_not_found_error() -> None:
    from packforge.core.errors import NotFoundError

    exc = NotFoundError("/tmp/missing")

    assert exc.path == Path("/tmp/missing")
    assert "/tmp/missing" in str(exc)
    assert exc.to_dict() == {"error": "not_found", "path": "/tmp/missing"}


def test_conflict_error_default_reason() -> None:
    from packforge.core.errors import ConflictError

    exc = ConflictError("/out/BP")

    assert exc.reason == "path already exists"
    assert "Conflict at /out/BP" in str(exc)


def test_filesystem_error_with_context() -> None:
    """FilesystemError attaches paths and the underlying cause."""
    from packforge.core.errors import FilesystemError

    cause = PermissionError(13, "Permission denied")
    exc = FilesystemError("Failed to rename", "/a", "/b", cause=cause)

    assert exc.cause is cause
    assert "Path: /a" in str(exc)
    assert "Target: /b" in str(exc)
    assert "Permission denied" in str(exc)
    assert exc.to_dict()["target"] == "/b"


def test_filesystem_error_without_target() -> None:
    from packforge.core.errors import FilesystemError

    exc = FilesystemError("Failed to list directory", "/a")

    assert exc.target is None
    assert "Target" not in str(exc)
    assert "target" not in exc.to_dict()


def test_safety_violation_names_file_and_manifest() -> None:
    """The message names the offending file and points at the manifest."""
    from packforge.core.errors import SafetyViolationError

    exc = SafetyViolationError("textures/mine.png", "/out/RP", pack_kind="resource pack")
    with_manifest = exc.with_manifest_path("/proj/.packforge/cache/edited_files.json")

    assert "textures/mine.png" in str(exc)
    assert "manifest" in str(exc)
    assert with_manifest.relative_path == "textures/mine.png"
    assert with_manifest.pack_kind == "resource pack"
    assert "/proj/.packforge/cache/edited_files.json" in str(with_manifest)
    assert with_manifest.to_dict() == {
        "error": "safety_violation",
        "relative_path": "textures/mine.png",
        "destination": "/out/RP",
        "pack_kind": "resource pack",
        "manifest_path": "/proj/.packforge/cache/edited_files.json",
    }


def test_config_error() -> None:
    from packforge.core.errors import ConfigError

    exc = ConfigError("Export 'cloud' target not valid", field="target")

    assert str(exc) == "Export 'cloud' target not valid"
    assert exc.to_dict() == {
        "error": "config",
        "reason": "Export 'cloud' target not valid",
        "field": "target",
    }
    assert "field='target'" in repr(exc)


def test_fatal_recovery_reports_backup() -> None:
    """FatalRecoveryError points the operator at the surviving backup."""
    from packforge.core.errors import FatalRecoveryError

    exc = FatalRecoveryError("/proj/.packforge/.backup", "Failed to undo operation")

    assert exc.backup_path == Path("/proj/.packforge/.backup")
    assert "/proj/.packforge/.backup" in str(exc)
    assert "Failed to undo operation" in str(exc)
    assert exc.to_dict()["error"] == "fatal_recovery"
