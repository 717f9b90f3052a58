"""Reversible filesystem operations.

A ``Transaction`` performs moves, copies, deletions and directory creations
while recording, for each one, the inverse action that puts the filesystem
back. Deleted entries are not removed but moved into a private backup
directory, so ``undo()`` can restore them and ``commit()`` can drop them for
good.

Directory-wide operations (``delete_dir``, ``move_or_copy_dir``) are split
into single-entry steps with ``postorder_walk``; if one step fails, every
step before it is still recorded and can be undone.
"""

import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, ClassVar

import structlog

from packforge.core.constants import DIRECTORY_MODE, JOURNAL_FILENAME
from packforge.core.errors import (
    ConflictError,
    FatalRecoveryError,
    FilesystemError,
    NotFoundError,
    PackforgeError,
)
from packforge.fs.journal import UndoJournal
from packforge.fs.paths import (
    copy_file,
    first_missing_ancestor,
    force_move,
    is_dir_empty,
    remove_tree,
)
from packforge.fs.walk import postorder_walk

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RestoreMoved:
    """Move an entry from ``source`` back to its original ``target``."""

    source: Path
    target: Path
    action: ClassVar[str] = "restore_moved"

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action,
            "source": str(self.source),
            "target": str(self.target),
        }


@dataclass(frozen=True)
class RemoveCreatedCopy:
    """Remove a file created by a copy."""

    path: Path
    action: ClassVar[str] = "remove_created_copy"

    def to_dict(self) -> dict[str, Any]:
        return {"action": self.action, "path": str(self.path)}


@dataclass(frozen=True)
class RemoveCreatedDirectoryChain:
    """Remove the shallowest directory created by ``mkdir_all`` and its subtree."""

    root: Path
    action: ClassVar[str] = "remove_created_directory_chain"

    def to_dict(self) -> dict[str, Any]:
        return {"action": self.action, "root": str(self.root)}


InverseAction = RestoreMoved | RemoveCreatedCopy | RemoveCreatedDirectoryChain


def _abs(path: str | Path) -> Path:
    return Path(os.path.abspath(path))


def _create_backup_path(path: Path) -> None:
    """Create an empty backup directory or fail if one is already in use."""
    if not os.path.lexists(path):
        try:
            os.makedirs(path, mode=DIRECTORY_MODE)
        except OSError as e:
            raise FilesystemError(
                "Failed to create the backup directory", path, cause=e
            ) from e
        return

    if not path.is_dir() or path.is_symlink():
        raise ConflictError(
            path, "unable to use path for backups because it's not a directory"
        )
    if not is_dir_empty(path):
        raise ConflictError(
            path,
            "unable to use path for backups because the directory is not "
            "empty. It may hold files left by an interrupted export; "
            "restore anything you need from it and remove it manually",
        )


class Transaction:
    """Performs filesystem operations that can be undone until committed.

    The transaction owns a backup directory which must be empty (or missing)
    when the transaction is created. Every forward operation pushes its
    inverse onto a stack only after it succeeded; the stack is mirrored to
    an undo journal inside the backup directory.

    Used as a context manager, the transaction commits when the block
    finishes normally and undoes everything when it raises.

    Example:
        >>> with Transaction(cache / ".backup") as tx:
        ...     tx.delete_dir(destination)
        ...     tx.move_or_copy_dir(build_output, destination)
    """

    def __init__(self, backup_path: str | Path, transaction_id: str | None = None) -> None:
        """Create the transaction and its backup directory.

        Args:
            backup_path: Directory used to hold deleted entries. Resolved to an
                absolute path so later changes of the working directory are
                harmless.
            transaction_id: Optional identifier written to the journal

        Raises:
            ConflictError: If the backup path exists and is not an empty
                directory
            FilesystemError: If the backup directory or its journal cannot be
                created; the backup directory is removed again
        """
        self.backup_path = _abs(backup_path)
        self.transaction_id = transaction_id or uuid.uuid4().hex
        _create_backup_path(self.backup_path)

        self._actions: list[InverseAction] = []
        self._backup_counter = 0
        self._closed = False
        self._journal = UndoJournal(
            self.backup_path / JOURNAL_FILENAME, self.transaction_id
        )
        try:
            self._journal.write_header()
        except FilesystemError:
            self._journal.close()
            try:
                remove_tree(self.backup_path)
            except OSError:
                logger.warning("tx.backup.cleanup_failed", path=str(self.backup_path))
            raise
        self._log = logger.bind(
            transaction_id=self.transaction_id, backup_path=str(self.backup_path)
        )

    @property
    def actions(self) -> tuple[InverseAction, ...]:
        """Recorded inverse actions, oldest first."""
        return tuple(self._actions)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def journal_path(self) -> Path:
        return self._journal.path

    # ------------------------------------------------------------------
    # Forward operations
    # ------------------------------------------------------------------

    def delete(self, path: str | Path) -> None:
        """Delete a file or directory by moving it into the backup directory.

        A missing path is not an error and records nothing. For directories
        prefer ``delete_dir``, which can be undone even if it fails midway.

        Raises:
            FilesystemError: If the entry cannot be moved to the backup
        """
        self._ensure_open()
        path = _abs(path)
        if not os.path.lexists(path):
            return

        slot = self._next_backup_slot(path)
        try:
            force_move(path, slot)
        except FilesystemError as e:
            raise FilesystemError(
                "Failed to move the file to the backup location",
                path,
                slot,
                cause=e.cause or e,
            ) from e
        self._record(RestoreMoved(slot, path))
        self._log.debug("tx.delete", path=str(path), slot=str(slot))

    def delete_dir(self, path: str | Path) -> None:
        """Delete a directory one entry at a time, leaves first.

        Plain files (and symlinks) are handed to ``delete``.

        Raises:
            FilesystemError: If the directory cannot be walked or an entry
                cannot be moved to the backup
        """
        self._ensure_open()
        path = _abs(path)
        if not os.path.lexists(path):
            return
        if path.is_symlink() or not path.is_dir():
            self.delete(path)
            return

        for entry in postorder_walk(path):
            if entry.error is not None:
                raise FilesystemError(
                    "Failed to walk directory", entry.path, cause=entry.error
                ) from entry.error
            self.delete(entry.path)

    def move(self, source: str | Path, target: str | Path) -> None:
        """Move a file from ``source`` to a ``target`` that does not exist.

        For whole directories use ``move_or_copy_dir``.

        Raises:
            NotFoundError: If the source does not exist
            ConflictError: If the target exists
            FilesystemError: If the rename fails
        """
        self._ensure_open()
        source, target = _abs(source), _abs(target)
        _assert_move_or_copy(source, target)
        self._move(source, target)

    def copy(self, source: str | Path, target: str | Path) -> None:
        """Copy a file from ``source`` to a ``target`` that does not exist.

        Raises:
            NotFoundError: If the source does not exist
            ConflictError: If the target exists
            FilesystemError: If the copy fails
        """
        self._ensure_open()
        source, target = _abs(source), _abs(target)
        _assert_move_or_copy(source, target)
        self._copy(source, target)

    def move_or_copy(self, source: str | Path, target: str | Path) -> None:
        """Move a file, or copy it when the move fails.

        Renames fail across storage volumes; the copy leaves the source in
        place. The recorded inverse matches whichever operation succeeded.

        Raises:
            NotFoundError: If the source does not exist
            ConflictError: If the target exists
            FilesystemError: If both the move and the copy fail
        """
        self._ensure_open()
        source, target = _abs(source), _abs(target)
        _assert_move_or_copy(source, target)
        try:
            self._move(source, target)
        except FilesystemError as e:
            self._log.warning(
                "tx.move_failed_copying",
                source=str(source),
                target=str(target),
                error=str(e.cause or e),
            )
            self._copy(source, target)

    def mkdir_all(self, path: str | Path) -> None:
        """Create a directory and all missing parents.

        Only the shallowest directory this call creates is recorded; undoing
        removes it together with everything below it. If the path already
        exists nothing is recorded, so undo never removes a directory that
        existed before the transaction.

        Raises:
            ConflictError: If a component of the path is an existing file
            FilesystemError: If the directories cannot be created
        """
        self._ensure_open()
        path = _abs(path)
        created_root = first_missing_ancestor(path)
        if created_root is None:
            return

        try:
            os.makedirs(path, mode=DIRECTORY_MODE)
        except OSError as e:
            if os.path.lexists(created_root):
                try:
                    remove_tree(created_root)
                except OSError:
                    self._log.warning("tx.mkdir.cleanup_failed", path=str(created_root))
            raise FilesystemError("Failed to create directory", path, cause=e) from e
        self._record(RemoveCreatedDirectoryChain(created_root))
        self._log.debug("tx.mkdir", path=str(path), created_root=str(created_root))

    def move_or_copy_dir(self, source: str | Path, target: str | Path) -> None:
        """Relocate a directory tree one entry at a time.

        The target must not exist or must be an empty directory. Files are
        moved (or copied, see ``move_or_copy``) leaves first; each source
        directory is recreated at the target and then, once empty, removed
        through ``delete`` so the removal is undoable too. Directories that
        still hold copied files are left in place.

        Raises:
            NotFoundError: If the source does not exist
            ConflictError: If the target exists and is not an empty directory
            FilesystemError: If walking, moving or copying fails
        """
        self._ensure_open()
        source, target = _abs(source), _abs(target)
        if not os.path.lexists(source):
            raise NotFoundError(source)
        if os.path.lexists(target):
            if target.is_symlink() or not target.is_dir():
                raise ConflictError(target, "target exists and is not a directory")
            if not is_dir_empty(target):
                raise ConflictError(target, "target directory is not empty")

        for entry in postorder_walk(source):
            if entry.error is not None:
                raise FilesystemError(
                    "Failed to walk directory", entry.path, cause=entry.error
                ) from entry.error
            current_target = target / entry.path.relative_to(source)
            if entry.is_dir:
                self.mkdir_all(current_target)
                if is_dir_empty(entry.path):
                    self.delete(entry.path)
                continue
            self.move_or_copy(entry.path, current_target)

    # ------------------------------------------------------------------
    # Termination
    # ------------------------------------------------------------------

    def undo(self) -> None:
        """Restore the filesystem by running recorded inverses, newest first.

        After a complete undo the backup directory is removed. If an inverse
        fails, undo stops at once and the backup directory, with its journal,
        is kept for manual recovery.

        Raises:
            FatalRecoveryError: If any inverse action fails
        """
        self._ensure_open()
        self._closed = True
        self._log.info("tx.undo.start", pending=len(self._actions))

        while self._actions:
            action = self._actions.pop()
            seq = len(self._actions)
            try:
                _execute_inverse(action)
            except (OSError, PackforgeError) as e:
                self._journal.close()
                self._log.error(
                    "tx.undo.failed", action=action.to_dict(), error=str(e)
                )
                raise FatalRecoveryError(
                    self.backup_path,
                    f"Failed to undo operation: {action.to_dict()}\nCause: {e}",
                ) from e
            try:
                self._journal.mark_undone(seq)
            except FilesystemError as e:
                self._log.warning("tx.journal.write_failed", error=str(e))

        self._journal.close()
        try:
            remove_tree(self.backup_path)
        except OSError as e:
            self._log.warning(
                "tx.undo.cleanup_failed", path=str(self.backup_path), error=str(e)
            )
        self._log.info("tx.undo.done")

    def commit(self) -> None:
        """Discard the backup directory; the operations become permanent.

        Raises:
            FilesystemError: If the backup directory cannot be removed
        """
        self._ensure_open()
        self._closed = True
        self._actions.clear()
        self._journal.close()
        try:
            remove_tree(self.backup_path)
        except OSError as e:
            raise FilesystemError(
                "Failed to clean the backup directory. packforge keeps files "
                "removed during an export there until the export succeeds. "
                "If your project is missing files, check this directory, then "
                "remove it manually before running packforge again",
                self.backup_path,
                cause=e,
            ) from e
        self._log.debug("tx.commit")

    close = commit

    def __enter__(self) -> "Transaction":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._closed:
            return
        if exc_type is None:
            self.commit()
        else:
            self.undo()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._closed:
            raise PackforgeError(
                f"Transaction {self.transaction_id} is already committed or undone"
            )

    def _record(self, action: InverseAction) -> None:
        self._actions.append(action)
        self._journal.append(action.to_dict())

    def _next_backup_slot(self, path: Path) -> Path:
        slot = self.backup_path / f"{self._backup_counter}_{path.name or 'root'}"
        self._backup_counter += 1
        return slot

    def _move(self, source: Path, target: Path) -> None:
        self.mkdir_all(target.parent)
        try:
            os.rename(source, target)
        except OSError as e:
            raise FilesystemError("Failed to rename", source, target, cause=e) from e
        self._record(RestoreMoved(target, source))
        self._log.debug("tx.move", source=str(source), target=str(target))

    def _copy(self, source: Path, target: Path) -> None:
        self.mkdir_all(target.parent)
        copy_file(source, target)
        self._record(RemoveCreatedCopy(target))
        self._log.debug("tx.copy", source=str(source), target=str(target))


def _assert_move_or_copy(source: Path, target: Path) -> None:
    if not os.path.lexists(source):
        raise NotFoundError(source)
    if os.path.lexists(target):
        raise ConflictError(target, "target already exists")


def _execute_inverse(action: InverseAction) -> None:
    if isinstance(action, RestoreMoved):
        force_move(action.source, action.target)
    elif isinstance(action, RemoveCreatedCopy):
        action.path.unlink()
    elif isinstance(action, RemoveCreatedDirectoryChain):
        remove_tree(action.root)
    else:
        raise TypeError(f"Unknown inverse action: {action!r}")
