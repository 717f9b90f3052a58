"""Custom exceptions for packforge.

This module defines typed exceptions raised by the transactional export
subsystem. Every exception carries the paths needed to act on it and can be
rendered as a dictionary for CLI or JSON reporting.
"""

from pathlib import Path
from typing import Any


class PackforgeError(Exception):
    """Base exception for all packforge errors.

    All custom exceptions should inherit from this base class to allow
    for broad exception handling when needed.
    """

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for reporting."""
        return {"error": "packforge_error", "message": str(self)}


class NotFoundError(PackforgeError):
    """Raised when a path that must exist is missing.

    Attributes:
        path: The missing path
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        super().__init__(f"Path does not exist: {self.path}")

    def to_dict(self) -> dict[str, Any]:
        return {"error": "not_found", "path": str(self.path)}

    def __repr__(self) -> str:
        return f"NotFoundError(path={str(self.path)!r})"


class ConflictError(PackforgeError):
    """Raised when a path exists where a fresh target was required.

    Move and copy never overwrite, and directory relocation only accepts a
    missing or empty target directory.

    Attributes:
        path: The conflicting path
        reason: Human-readable description of the conflict
    """

    def __init__(self, path: str | Path, reason: str = "path already exists") -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Conflict at {self.path}: {reason}")

    def to_dict(self) -> dict[str, Any]:
        return {"error": "conflict", "path": str(self.path), "reason": self.reason}

    def __repr__(self) -> str:
        return f"ConflictError(path={str(self.path)!r}, reason={self.reason!r})"


class FilesystemError(PackforgeError):
    """Raised when an underlying filesystem call fails.

    Attributes:
        path: The path the failed call was operating on
        target: Optional second path (rename/copy target, backup slot)
        cause: The original OSError, if any
    """

    def __init__(
        self,
        message: str,
        path: str | Path,
        target: str | Path | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.path = Path(path)
        self.target = Path(target) if target is not None else None
        self.cause = cause

        full = f"{message}\nPath: {self.path}"
        if self.target is not None:
            full += f"\nTarget: {self.target}"
        if cause is not None:
            full += f"\nCause: {cause}"

        super().__init__(full)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"error": "filesystem", "path": str(self.path)}
        if self.target is not None:
            result["target"] = str(self.target)
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return (
            f"FilesystemError(path={str(self.path)!r}, "
            f"target={str(self.target) if self.target else None!r})"
        )


class SafetyViolationError(PackforgeError):
    """Raised when an unrecognized file blocks a destructive operation.

    The deletion-safety check raises this when a destination holds a file
    that the ownership manifest does not list.

    Attributes:
        relative_path: The offending file, relative to the destination
        destination: The destination directory that was checked
        pack_kind: Optional label of the destination ("resource pack", ...)
        manifest_path: Optional location of the manifest file to inspect
    """

    def __init__(
        self,
        relative_path: str,
        destination: str | Path,
        pack_kind: str | None = None,
        manifest_path: str | Path | None = None,
    ) -> None:
        self.relative_path = relative_path
        self.destination = Path(destination)
        self.pack_kind = pack_kind
        self.manifest_path = Path(manifest_path) if manifest_path else None

        message = ""
        if pack_kind:
            message += f"Deletion safety check for {pack_kind} failed.\n"
        message += (
            "File is not on the list of files created by packforge.\n"
            f"Path: {relative_path}\n"
            f"Destination: {self.destination}\n"
            "Exporting to this destination would delete all of its files. "
            "If this is the first export of the project, make sure the "
            "export paths are empty."
        )
        if self.manifest_path is not None:
            message += (
                f" Otherwise inspect {self.manifest_path} to verify the list "
                "of files that packforge is allowed to remove."
            )
        else:
            message += (
                " Otherwise inspect the ownership manifest before proceeding."
            )

        super().__init__(message)

    def with_manifest_path(self, manifest_path: str | Path) -> "SafetyViolationError":
        """Return a copy of this error that points at the manifest file."""
        return SafetyViolationError(
            self.relative_path,
            self.destination,
            pack_kind=self.pack_kind,
            manifest_path=manifest_path,
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "error": "safety_violation",
            "relative_path": self.relative_path,
            "destination": str(self.destination),
        }
        if self.pack_kind is not None:
            result["pack_kind"] = self.pack_kind
        if self.manifest_path is not None:
            result["manifest_path"] = str(self.manifest_path)
        return result

    def __repr__(self) -> str:
        return (
            f"SafetyViolationError(relative_path={self.relative_path!r}, "
            f"destination={str(self.destination)!r})"
        )


class ConfigError(PackforgeError):
    """Raised when an export target descriptor is ambiguous or invalid.

    Attributes:
        reason: Human-readable reason
        field: Optional name of the offending configuration field
    """

    def __init__(self, reason: str, field: str | None = None) -> None:
        self.reason = reason
        self.field = field
        super().__init__(reason)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"error": "config", "reason": self.reason}
        if self.field is not None:
            result["field"] = self.field
        return result

    def __repr__(self) -> str:
        return f"ConfigError(reason={self.reason!r}, field={self.field!r})"


class FatalRecoveryError(PackforgeError):
    """Raised when undoing a transaction fails.

    The filesystem is left partially restored. The backup directory keeps the
    files that were moved aside, together with the undo journal, and is the
    only artifact left for manual recovery. Undo is never retried.

    Attributes:
        backup_path: The surviving backup directory
        reason: Description of the inverse action that failed
    """

    def __init__(self, backup_path: str | Path, reason: str) -> None:
        self.backup_path = Path(backup_path)
        self.reason = reason
        super().__init__(
            "Failed to recover from an error while restoring the previous "
            "state of the files.\n"
            f"{reason}\n"
            "Your files may be left in an inconsistent state. The files moved "
            "aside during the operation, and a journal of the pending restore "
            f"steps, are in:\n{self.backup_path}\n"
            "Restore them manually and remove that directory before running "
            "packforge again."
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "fatal_recovery",
            "backup_path": str(self.backup_path),
            "reason": self.reason,
        }

    def __repr__(self) -> str:
        return (
            f"FatalRecoveryError(backup_path={str(self.backup_path)!r}, "
            f"reason={self.reason!r})"
        )
