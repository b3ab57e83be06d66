"""Tests for the directory walker — exhaustive, duplicate-free, relative keys."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from webpub.core.walker import list_files, relative_key, resolve_root, walk_files
from webpub.errors import FilesystemError

TREE = {
    "index.html": b"<h1>Hi</h1>\n",
    "css/a.css": b"a{}\n\n",
    "js/vendor/lib.min.js": b"1",
    "img/logo.png": b"\x89PNG",
    "deep/a/b/c/d.txt": b"d",
}


class TestWalkFiles:
    def test_finds_every_file_once(self, tmp_path: Path, make_tree):
        """Every file must be found exactly once."""
        root = make_tree(tmp_path / "site", TREE)
        files = list(walk_files(root))
        keys = [relative_key(root, p) for p in files]
        assert sorted(keys) == sorted(TREE)
        assert len(keys) == len(set(keys))

    def test_paths_are_absolute(self, tmp_path: Path, make_tree):
        """Yielded paths must be absolute."""
        root = resolve_root(make_tree(tmp_path / "site", TREE))
        assert all(p.is_absolute() for p in walk_files(root))

    def test_directories_are_not_yielded(self, tmp_path: Path, make_tree):
        """Directories must not be yielded."""
        root = make_tree(tmp_path / "site", TREE)
        (root / "empty").mkdir()
        keys = {relative_key(root, p) for p in walk_files(root)}
        assert "empty" not in keys
        assert "css" not in keys

    def test_empty_directory(self, tmp_path: Path):
        """An empty root must give no files."""
        (tmp_path / "empty").mkdir()
        assert list_files(tmp_path / "empty") == []

    def test_missing_root_raises(self, tmp_path: Path):
        """A missing root must raise FilesystemError."""
        with pytest.raises(FilesystemError):
            list(walk_files(tmp_path / "nope"))

    @pytest.mark.skipif(
        not hasattr(os, "geteuid") or os.geteuid() == 0,
        reason="permission bits are not enforced for root",
    )
    def test_unreadable_subdirectory_raises(self, tmp_path: Path, make_tree):
        """An unreadable subdirectory must fail the whole walk."""
        root = make_tree(tmp_path / "site", TREE)
        locked = root / "css"
        locked.chmod(0)
        try:
            with pytest.raises(FilesystemError):
                list_files(root)
        finally:
            locked.chmod(0o755)


class TestRelativeKey:
    def test_strips_root_and_uses_forward_slashes(self, tmp_path: Path):
        """Keys must be relative with forward slashes."""
        root = resolve_root(tmp_path)
        key = relative_key(root, root / "css" / "a.css")
        assert key == "css/a.css"
        assert not key.startswith("/")

    def test_top_level_file(self, tmp_path: Path):
        """Top-level files must key by name alone."""
        root = resolve_root(tmp_path)
        assert relative_key(root, root / "index.html") == "index.html"


class TestResolveRoot:
    def test_resolves_relative_path(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        """Relative roots must resolve against the cwd."""
        (tmp_path / "site").mkdir()
        monkeypatch.chdir(tmp_path)
        assert resolve_root("site") == (tmp_path / "site").resolve()

    def test_file_is_not_a_root(self, tmp_path: Path):
        """A file must not be accepted as a root."""
        (tmp_path / "f.txt").write_text("x")
        with pytest.raises(FilesystemError):
            resolve_root(tmp_path / "f.txt")
