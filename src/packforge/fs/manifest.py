"""Ownership manifest for export destinations.

The manifest records, for every destination packforge exported to, the
files it placed there. Before an export clears a destination, the
deletion-safety check compares the live contents against that record and
refuses to continue if it finds a file packforge did not create.

File format (``<cache>/cache/edited_files.json``)::

    {
        "bp": {"/abs/dest/BP": ["entities/cow.json", "manifest.json"]},
        "rp": {"/abs/dest/RP": ["manifest.json", "textures/cow.png"]}
    }
"""

import json
import os
from pathlib import Path
from typing import Literal

import structlog
from pydantic import BaseModel, Field, ValidationError, field_validator

from packforge.core.constants import PACK_KINDS
from packforge.core.errors import ConflictError, FilesystemError, SafetyViolationError
from packforge.fs.walk import list_files

logger = structlog.get_logger(__name__)

PackKind = Literal["rp", "bp"]


def portable_name(name: str) -> str:
    """Return ``name`` with undecodable bytes spelled as backslash escapes.

    Names read from disk may carry lone surrogates for bytes that are not
    valid UTF-8; those cannot be stored in the JSON manifest as they are.
    """
    return name.encode("utf-8", "surrogateescape").decode("utf-8", "backslashreplace")


def destination_key(path: str | Path) -> str:
    """Normalize a destination path for use as a manifest key."""
    return portable_name(os.path.abspath(path))


class OwnershipManifest(BaseModel):
    """Files placed by packforge, per pack kind and destination.

    Attributes:
        rp: Resource pack destinations mapped to sorted relative file paths
        bp: Behavior pack destinations mapped to sorted relative file paths
    """

    rp: dict[str, list[str]] = Field(default_factory=dict)
    bp: dict[str, list[str]] = Field(default_factory=dict)

    @field_validator("rp", "bp")
    @classmethod
    def sort_file_lists(cls, value: dict[str, list[str]]) -> dict[str, list[str]]:
        """Keep every file list sorted and free of duplicates."""
        return {dest: sorted(set(files)) for dest, files in value.items()}

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, path: str | Path) -> "OwnershipManifest":
        """Load a manifest, falling back to an empty one.

        Loading is advisory: a missing, unreadable or malformed file yields
        an empty manifest instead of an error.

        Args:
            path: Manifest file location

        Returns:
            The parsed manifest, or an empty one
        """
        try:
            data = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("manifest.load.unreadable", path=str(path), error=str(e))
            return cls()
        try:
            return cls.model_validate(json.loads(data))
        except json.JSONDecodeError as e:
            logger.debug("manifest.load.invalid_json", path=str(path), error=str(e))
            return cls()
        except ValidationError as e:
            logger.debug(
                "manifest.load.invalid", path=str(path), errors=e.error_count()
            )
            return cls()

    def dump(self, path: str | Path) -> None:
        """Write the manifest as indented JSON, creating parent directories.

        Raises:
            FilesystemError: If the file cannot be written
        """
        path = Path(path)
        payload = json.dumps(self.model_dump(), indent="\t", sort_keys=True) + "\n"
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(payload, encoding="utf-8")
        except OSError as e:
            raise FilesystemError(
                "Failed to write the ownership manifest", path, cause=e
            ) from e
        logger.debug("manifest.dump", path=str(path))

    # ------------------------------------------------------------------
    # Queries and updates
    # ------------------------------------------------------------------

    def files_for(self, kind: PackKind, destination: str | Path) -> list[str]:
        """Return the recorded files for a destination (empty if unknown)."""
        mapping: dict[str, list[str]] = getattr(self, kind)
        return list(mapping.get(destination_key(destination), []))

    def check_deletion_safety(
        self,
        rp_path: str | Path | None = None,
        bp_path: str | Path | None = None,
    ) -> None:
        """Check that clearing the destinations removes only known files.

        Destinations that do not exist pass trivially.

        Args:
            rp_path: Resource pack destination to check
            bp_path: Behavior pack destination to check

        Raises:
            SafetyViolationError: If a destination holds an unlisted file
            ConflictError: If a destination exists but is not a directory
            FilesystemError: If a destination cannot be listed
        """
        for kind, destination in (("rp", rp_path), ("bp", bp_path)):
            if destination is None:
                continue
            _check_path_safety(
                destination,
                self.files_for(kind, destination),  # type: ignore[arg-type]
                PACK_KINDS[kind],
            )

    def update_from_paths(
        self,
        rp_path: str | Path | None = None,
        bp_path: str | Path | None = None,
    ) -> None:
        """Replace the recorded file lists with the current destination contents.

        Call only after an export was committed.

        Raises:
            FilesystemError: If a destination cannot be listed
        """
        for kind, destination in (("rp", rp_path), ("bp", bp_path)):
            if destination is None:
                continue
            path = os.path.abspath(destination)
            key = destination_key(path)
            mapping: dict[str, list[str]] = getattr(self, kind)
            if not os.path.lexists(path):
                mapping[key] = []
                continue
            try:
                mapping[key] = sorted(portable_name(n) for n in list_files(path))
            except OSError as e:
                raise FilesystemError(
                    f"Failed to list {PACK_KINDS[kind]} files", path, cause=e
                ) from e


def _check_path_safety(
    destination: str | Path, removable_files: list[str], pack_kind: str
) -> None:
    """Merge the live files of ``destination`` against a sorted allow-list."""
    path = os.path.abspath(destination)
    if not os.path.lexists(path):
        return
    if not os.path.isdir(path):
        raise ConflictError(path, "export destination is not a directory")

    try:
        present = sorted(portable_name(n) for n in list_files(path))
    except OSError as e:
        raise FilesystemError(f"Failed to list {pack_kind} files", path, cause=e) from e

    i = 0
    for relpath in present:
        while True:
            if i >= len(removable_files):
                raise SafetyViolationError(relpath, path, pack_kind=pack_kind)
            expected = removable_files[i]
            i += 1
            if relpath == expected:
                break
            if relpath < expected:
                raise SafetyViolationError(relpath, path, pack_kind=pack_kind)
