"""Path utilities for filesystem operations.

This module provides the single-entry primitives the transaction is built
from: streamed copies, forced moves that survive cross-device renames,
directory-chain inspection and read-only marking.
"""

import os
import shutil
import stat
from pathlib import Path

import structlog

from packforge.core.constants import COPY_BUFFER_SIZE, READ_ONLY_MODE
from packforge.core.errors import ConflictError, FilesystemError
from packforge.fs.walk import EntryKind, postorder_walk

logger = structlog.get_logger(__name__)


def first_missing_ancestor(path: str | Path) -> Path | None:
    """Find the shallowest component of ``path`` that does not exist.

    Args:
        path: Path to inspect (made absolute first)

    Returns:
        The first missing path in the chain from the filesystem root, or None
        if the whole path already exists

    Raises:
        ConflictError: If an existing component is not a directory
    """
    full = Path(os.path.abspath(path))
    current = Path(full.anchor)
    for part in full.parts[1:]:
        current = current / part
        if not os.path.lexists(current):
            return current
        if not current.is_dir():
            raise ConflictError(
                current,
                f"found a subpath that is not a directory while resolving {full}",
            )
    return None


def is_dir_empty(path: str | Path) -> bool:
    """Check whether ``path`` is an empty directory.

    Raises:
        FilesystemError: If the path is missing, not a directory or unreadable
    """
    try:
        with os.scandir(path) as it:
            return next(it, None) is None
    except OSError as e:
        raise FilesystemError("Failed to list directory", path, cause=e) from e


def copy_file(
    source: str | Path, target: str | Path, buffer_size: int = COPY_BUFFER_SIZE
) -> None:
    """Copy a file by streaming it through a fixed-size buffer.

    Parent directories of the target are created if needed. Symlinks are
    recreated as links rather than followed. A partially written target is
    removed on failure.

    Args:
        source: File to copy
        target: Destination path (must not exist)
        buffer_size: Size of the read buffer in bytes

    Raises:
        FilesystemError: If reading, writing or creating the target fails
    """
    source = Path(source)
    target = Path(target)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(
            "Failed to create parent directory", target.parent, cause=e
        ) from e

    if source.is_symlink():
        try:
            os.symlink(os.readlink(source), target)
        except OSError as e:
            raise FilesystemError(
                "Failed to copy symlink", source, target, cause=e
            ) from e
        return

    try:
        with open(source, "rb") as src_f, open(target, "xb") as dst_f:
            while chunk := src_f.read(buffer_size):
                dst_f.write(chunk)
            dst_f.flush()
            os.fsync(dst_f.fileno())
    except OSError as e:
        # Clean up partial copy
        if target.exists() and not isinstance(e, FileExistsError):
            try:
                target.unlink()
            except OSError:
                logger.warning("fs.copy.cleanup_failed", path=str(target))
        raise FilesystemError("Failed to copy file", source, target, cause=e) from e


def force_move(source: str | Path, target: str | Path) -> None:
    """Move ``source`` to ``target``, copying when a rename is impossible.

    A plain rename is tried first. When it fails (typically EXDEV, a move
    across storage volumes) the entry is copied and the original removed.
    Parent directories of the target are created if needed.

    Raises:
        FilesystemError: If both the rename and the copy-then-remove fail
    """
    source = Path(source)
    target = Path(target)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(
            "Failed to create parent directory", target.parent, cause=e
        ) from e

    try:
        os.rename(source, target)
        return
    except OSError as e:
        logger.debug("fs.force_move.rename_failed", source=str(source), error=str(e))

    try:
        if source.is_dir() and not source.is_symlink():
            shutil.copytree(
                source,
                target,
                symlinks=True,
                copy_function=copy_file,
            )
            remove_tree(source)
        else:
            copy_file(source, target)
            source.unlink()
    except (OSError, shutil.Error) as e:
        raise FilesystemError(
            "Failed to forcefully move file", source, target, cause=e
        ) from e
    logger.debug("fs.force_move.copied", source=str(source), target=str(target))


def _make_writable_and_retry(func, path, exc) -> None:  # type: ignore[no-untyped-def]
    """``shutil.rmtree`` hook for read-only entries (exported packs)."""
    if not isinstance(exc, PermissionError):
        raise exc
    parent = os.path.dirname(path)
    os.chmod(parent, os.stat(parent).st_mode | stat.S_IWUSR)
    os.chmod(path, stat.S_IWUSR | stat.S_IRUSR)
    func(path)


def remove_tree(path: str | Path) -> None:
    """Remove a file or a whole directory tree, including read-only files.

    Raises:
        OSError: If removal fails
    """
    path = Path(path)
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path, onexc=_make_writable_and_retry)
    else:
        path.unlink()


def make_read_only(path: str | Path) -> list[Path]:
    """Mark every file below ``path`` read-only.

    Directories keep their mode so the tree can be cleared by the next
    export. Failures are collected instead of raised.

    Args:
        path: Root directory (or single file)

    Returns:
        Paths whose mode could not be changed
    """
    failed: list[Path] = []
    for entry in postorder_walk(path):
        if entry.error is not None:
            failed.append(entry.path)
            continue
        if entry.kind is not EntryKind.FILE:
            continue
        try:
            os.chmod(entry.path, READ_ONLY_MODE)
        except OSError:
            failed.append(entry.path)
    return failed


def files_equal(a: str | Path, b: str | Path, buffer_size: int = 4000) -> bool:
    """Compare two files byte by byte.

    Raises:
        FilesystemError: If either file cannot be read
    """
    try:
        if os.path.getsize(a) != os.path.getsize(b):
            return False
        with open(a, "rb") as fa, open(b, "rb") as fb:
            while True:
                chunk_a = fa.read(buffer_size)
                chunk_b = fb.read(buffer_size)
                if chunk_a != chunk_b:
                    return False
                if not chunk_a:
                    return True
    except OSError as e:
        raise FilesystemError("Failed to compare files", a, b, cause=e) from e
