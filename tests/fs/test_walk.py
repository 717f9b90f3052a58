"""Tests for postorder directory traversal."""

import errno
import os
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from packforge.fs.walk import EntryKind, WalkEntry, list_files, postorder_walk


class TestPostorderWalk:
    """Test leaves-first traversal order and error delivery."""

    def test_descendants_before_parent_in_sorted_order(
        self, tmp_path: Path, make_tree: Any
    ) -> None:
        """Children come in sorted order and every directory after its contents."""
        make_tree(
            tmp_path,
            {"b.txt": "b", "a/y/z.txt": "z", "a/x.txt": "x"},
        )

        entries = list(postorder_walk(tmp_path))
        rel = [entry.path.relative_to(tmp_path).as_posix() for entry in entries]

        assert rel == ["a/x.txt", "a/y/z.txt", "a/y", "a", "b.txt", "."]
        assert all(entry.error is None for entry in entries)

    def test_reports_entry_kinds(self, tmp_path: Path, make_tree: Any) -> None:
        """Files, directories and symlinks are classified without following links."""
        make_tree(tmp_path, {"dir/file.txt": "data"})
        os.symlink(tmp_path / "dir", tmp_path / "link")

        kinds = {
            entry.path.relative_to(tmp_path).as_posix(): entry.kind
            for entry in postorder_walk(tmp_path)
        }

        assert kinds["dir/file.txt"] is EntryKind.FILE
        assert kinds["dir"] is EntryKind.DIRECTORY
        assert kinds["link"] is EntryKind.SYMLINK
        assert "link/file.txt" not in kinds

    def test_single_file_root(self, tmp_path: Path) -> None:
        """Walking a file yields just that file."""
        target = tmp_path / "only.txt"
        target.write_text("x")

        assert list(postorder_walk(target)) == [WalkEntry(target, EntryKind.FILE)]

    def test_missing_root_is_yielded_with_error(self, tmp_path: Path) -> None:
        """A root that cannot be inspected becomes one entry carrying the error."""
        entries = list(postorder_walk(tmp_path / "missing"))

        assert len(entries) == 1
        assert entries[0].kind is None
        assert isinstance(entries[0].error, FileNotFoundError)

    def test_unlistable_directory_skips_children(
        self, tmp_path: Path, make_tree: Any
    ) -> None:
        """A listing failure is delivered once and the walk continues elsewhere."""
        make_tree(tmp_path, {"locked/secret.txt": "s", "open/file.txt": "f"})
        real_listdir = os.listdir
        locked = tmp_path / "locked"

        def fake_listdir(path: Any) -> list[str]:
            if Path(path) == locked:
                raise PermissionError(errno.EACCES, "Permission denied", str(path))
            return real_listdir(path)

        with patch("packforge.fs.walk.os.listdir", side_effect=fake_listdir):
            entries = list(postorder_walk(tmp_path))

        by_path = {entry.path: entry for entry in entries}
        assert isinstance(by_path[locked].error, PermissionError)
        assert locked / "secret.txt" not in by_path
        assert by_path[tmp_path / "open" / "file.txt"].error is None
        assert entries[-1].path == tmp_path

    def test_is_lazy(self, tmp_path: Path, make_tree: Any) -> None:
        """The walk is a generator that can be stopped early."""
        make_tree(tmp_path, {"a.txt": "a", "b.txt": "b"})

        walker = postorder_walk(tmp_path)
        first = next(walker)

        assert first.path == tmp_path / "a.txt"
        walker.close()


class TestListFiles:
    """Test listing of relative file paths."""

    def test_returns_sorted_posix_paths(self, tmp_path: Path, make_tree: Any) -> None:
        make_tree(tmp_path, {"b/c.txt": "c", "a.txt": "a", "b-d.txt": "d"})

        assert list_files(tmp_path) == ["a.txt", "b-d.txt", "b/c.txt"]

    def test_empty_directories_are_not_listed(self, tmp_path: Path) -> None:
        (tmp_path / "empty" / "nested").mkdir(parents=True)

        assert list_files(tmp_path) == []

    def test_raises_walk_errors(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            list_files(tmp_path / "missing")
