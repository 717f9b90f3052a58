"""Deterministic postorder directory traversal.

Directory-level move, copy and delete are expressed as many single-entry
reversible steps. ``postorder_walk`` supplies those entries leaves first, so
every directory is visited only after everything below it.
"""

import os
import stat
from collections.abc import Iterator
from enum import Enum
from pathlib import Path
from typing import NamedTuple


class EntryKind(str, Enum):
    """Kind of a filesystem entry, as seen by ``lstat``."""

    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"


class WalkEntry(NamedTuple):
    """One entry produced by ``postorder_walk``.

    Attributes:
        path: Path of the entry (joined onto the walk root)
        kind: Entry kind, or None if the entry could not be inspected
        error: The OSError raised while inspecting or listing the entry
    """

    path: Path
    kind: EntryKind | None
    error: OSError | None = None

    @property
    def is_dir(self) -> bool:
        return self.kind is EntryKind.DIRECTORY


def _classify(mode: int) -> EntryKind:
    if stat.S_ISLNK(mode):
        return EntryKind.SYMLINK
    if stat.S_ISDIR(mode):
        return EntryKind.DIRECTORY
    return EntryKind.FILE


def postorder_walk(root: str | Path) -> Iterator[WalkEntry]:
    """Walk ``root`` depth first, yielding descendants before their parent.

    Children are visited in sorted name order and the root is yielded last.
    Symlinks are reported, never followed. Failures are yielded as part of
    the sequence instead of being raised:

    - if an entry cannot be inspected, it is yielded with ``kind=None``;
    - if a directory cannot be listed, it is yielded once with the error
      and its children are skipped.

    Args:
        root: Directory (or single file) to walk

    Yields:
        WalkEntry for every entry below and including ``root``
    """
    root = Path(root)
    try:
        mode = root.lstat().st_mode
    except OSError as e:
        yield WalkEntry(root, None, e)
        return
    yield from _walk(root, _classify(mode))


def _walk(path: Path, kind: EntryKind) -> Iterator[WalkEntry]:
    if kind is not EntryKind.DIRECTORY:
        yield WalkEntry(path, kind)
        return

    try:
        names = sorted(os.listdir(path))
    except OSError as e:
        yield WalkEntry(path, kind, e)
        return

    for name in names:
        child = path / name
        try:
            mode = child.lstat().st_mode
        except OSError as e:
            yield WalkEntry(child, None, e)
            continue
        yield from _walk(child, _classify(mode))

    yield WalkEntry(path, kind)


def list_files(root: str | Path) -> list[str]:
    """Return sorted POSIX-style paths of all non-directory entries below root.

    Args:
        root: Directory to list

    Returns:
        Sorted relative paths, e.g. ``["a.txt", "b/c.txt"]``

    Raises:
        OSError: If any part of the tree cannot be read
    """
    root = Path(root)
    result: list[str] = []
    for entry in postorder_walk(root):
        if entry.error is not None:
            raise entry.error
        if entry.is_dir:
            continue
        result.append(entry.path.relative_to(root).as_posix())
    result.sort()
    return result
