"""Tests for single-entry filesystem helpers."""

import errno
import os
import stat
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from packforge.core.errors import ConflictError, FilesystemError
from packforge.fs.paths import (
    copy_file,
    files_equal,
    first_missing_ancestor,
    force_move,
    is_dir_empty,
    make_read_only,
    remove_tree,
)


class TestFirstMissingAncestor:
    """Test discovery of the shallowest missing directory."""

    def test_returns_shallowest_missing(self, tmp_path: Path) -> None:
        (tmp_path / "a").mkdir()

        assert first_missing_ancestor(tmp_path / "a" / "b" / "c") == tmp_path / "a" / "b"

    def test_returns_none_when_path_exists(self, tmp_path: Path) -> None:
        assert first_missing_ancestor(tmp_path) is None

    def test_file_in_chain_is_conflict(self, tmp_path: Path) -> None:
        (tmp_path / "a").write_text("not a dir")

        with pytest.raises(ConflictError) as exc_info:
            first_missing_ancestor(tmp_path / "a" / "b")

        assert exc_info.value.path == tmp_path / "a"


class TestCopyFile:
    """Test streamed copies."""

    def test_copies_with_small_buffer(self, tmp_path: Path) -> None:
        """Content survives a copy through a buffer smaller than the file."""
        source = tmp_path / "source.bin"
        source.write_bytes(os.urandom(10_000))
        target = tmp_path / "nested" / "target.bin"

        copy_file(source, target, buffer_size=1024)

        assert files_equal(source, target)

    def test_refuses_existing_target(self, tmp_path: Path) -> None:
        source = tmp_path / "source.txt"
        target = tmp_path / "target.txt"
        source.write_text("new")
        target.write_text("old")

        with pytest.raises(FilesystemError):
            copy_file(source, target)

        assert target.read_text() == "old"

    def test_recreates_symlinks(self, tmp_path: Path) -> None:
        link = tmp_path / "link"
        os.symlink("elsewhere.txt", link)

        copy_file(link, tmp_path / "copy")

        assert os.readlink(tmp_path / "copy") == "elsewhere.txt"


class TestForceMove:
    """Test moves that fall back to copy-then-remove."""

    def test_renames_file(self, tmp_path: Path) -> None:
        source = tmp_path / "a.txt"
        source.write_text("a")

        force_move(source, tmp_path / "sub" / "b.txt")

        assert not source.exists()
        assert (tmp_path / "sub" / "b.txt").read_text() == "a"

    def test_cross_device_directory_is_copied_whole(
        self, tmp_path: Path, make_tree: Any
    ) -> None:
        """A non-empty directory survives a move when rename is impossible."""
        make_tree(tmp_path / "src", {"x.txt": "x", "deep/y.txt": "y"})
        target = tmp_path / "dst"

        with patch(
            "packforge.fs.paths.os.rename",
            side_effect=OSError(errno.EXDEV, "Invalid cross-device link"),
        ):
            force_move(tmp_path / "src", target)

        assert not (tmp_path / "src").exists()
        assert (target / "x.txt").read_text() == "x"
        assert (target / "deep" / "y.txt").read_text() == "y"


class TestReadOnly:
    """Test read-only marking and removal of read-only trees."""

    def test_marks_files_only(self, tmp_path: Path, make_tree: Any) -> None:
        make_tree(tmp_path, {"a.txt": "a", "sub/b.txt": "b"})

        failed = make_read_only(tmp_path)

        assert failed == []
        assert stat.S_IMODE((tmp_path / "a.txt").stat().st_mode) == 0o444
        assert stat.S_IMODE((tmp_path / "sub" / "b.txt").stat().st_mode) == 0o444
        assert (tmp_path / "sub").stat().st_mode & stat.S_IWUSR

    def test_remove_tree_handles_read_only_files(
        self, tmp_path: Path, make_tree: Any
    ) -> None:
        make_tree(tmp_path / "tree", {"a.txt": "a", "sub/b.txt": "b"})
        make_read_only(tmp_path / "tree")

        remove_tree(tmp_path / "tree")

        assert not (tmp_path / "tree").exists()


class TestHelpers:
    def test_is_dir_empty(self, tmp_path: Path) -> None:
        assert is_dir_empty(tmp_path)
        (tmp_path / "x").write_text("x")
        assert not is_dir_empty(tmp_path)

    def test_is_dir_empty_missing(self, tmp_path: Path) -> None:
        with pytest.raises(FilesystemError):
            is_dir_empty(tmp_path / "missing")

    def test_files_equal_detects_difference(self, tmp_path: Path) -> None:
        (tmp_path / "a").write_bytes(b"abc")
        (tmp_path / "b").write_bytes(b"abd")
        (tmp_path / "c").write_bytes(b"abc")

        assert not files_equal(tmp_path / "a", tmp_path / "b")
        assert files_equal(tmp_path / "a", tmp_path / "c")
