"""Recursive directory walker for the publish root."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path

from webpub.errors import FilesystemError

logger = logging.getLogger(__name__)


def resolve_root(directory: str | os.PathLike[str]) -> Path:
    """Resolve the publish directory to an absolute path.

    Raises
    ------
    FilesystemError
        If the path does not exist or is not a directory.
    """
    root = Path(directory).expanduser().resolve()
    if not root.is_dir():
        raise FilesystemError(f"Not a directory: {root}")
    return root


def walk_files(root: Path) -> Iterator[Path]:
    """Yield the absolute path of every regular file under *root*.

    Order is unspecified.  Symlinks are followed, with no cycle detection.
    The generator is lazy and can only be consumed once; an unreadable
    directory raises ``FilesystemError`` mid-iteration, so callers should
    materialize the full list before acting on it.
    """
    try:
        with os.scandir(root) as entries:
            children = list(entries)
    except OSError as exc:
        raise FilesystemError(f"Cannot list directory {root}: {exc}") from exc

    for entry in children:
        try:
            if entry.is_dir():
                yield from walk_files(Path(entry.path))
            elif entry.is_file():
                yield Path(entry.path)
            else:
                logger.debug("Skipping non-regular file %s", entry.path)
        except OSError as exc:
            raise FilesystemError(f"Cannot stat {entry.path}: {exc}") from exc


def relative_key(root: Path, path: Path) -> str:
    """Manifest key for *path*: relative to *root*, forward slashes."""
    return path.relative_to(root).as_posix()


def list_files(root: Path) -> list[Path]:
    """Walk *root* completely; nothing is returned if any listing fails."""
    files = list(walk_files(root))
    logger.info("Found %d file(s) under %s", len(files), root)
    return files
