"""Path handling — splitting, joining, and resolving root-relative paths.

Paths are slash-separated names walked from the root.  Leading,
trailing, and doubled slashes are ignored, so ``docs/a``, ``/docs/a/``
and ``docs//a`` all name the same directory.  Matching is exact and
case-sensitive, and only directories are walked through.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from py_treefs.fs.errors import NameCollisionError, PathNotFoundError
from py_treefs.fs.filesystem import FileType

if TYPE_CHECKING:
    from py_treefs.fs.filesystem import FileSystem


def split_segments(path: str) -> list[str]:
    """Return the non-empty segments of *path*.

    Examples::

        "/docs/notes/" → ["docs", "notes"]
        "docs//notes"  → ["docs", "notes"]
        "/"            → []

    """
    return [part for part in path.split("/") if part]


def split_path(path: str) -> tuple[str, str]:
    """Split a path into (parent_path, child_name).

    Examples::

        "/foo/bar/baz.txt" → ("/foo/bar", "baz.txt")
        "/hello.txt"       → ("/", "hello.txt")
        "/"                → ("/", "")

    """
    segments = split_segments(path)
    if not segments:
        return ("/", "")
    return (join_path(segments[:-1]), segments[-1])


def join_path(segments: list[str]) -> str:
    """Join segments into an absolute path (``/`` for no segments)."""
    return "/" + "/".join(segments)


def resolve_path(fs: FileSystem, path: str) -> int:
    """Walk *path* from the root and return the directory handle it names.

    An empty path or ``/`` resolves to the root.

    Raises:
        PathNotFoundError: At the first segment that is not an existing
            subdirectory.

    """
    current = fs.root
    walked: list[str] = []
    for segment in split_segments(path):
        child = fs.lookup(current, segment, FileType.DIRECTORY)
        walked.append(segment)
        if child is None:
            msg = f"Invalid path: {join_path(walked)}"
            raise PathNotFoundError(msg)
        current = child
    return current


def ensure_path(fs: FileSystem, path: str) -> int:
    """Create every missing directory along *path* and return the last one.

    Existing directories are reused, so calling this twice with the same
    path leaves the tree unchanged the second time.

    Raises:
        NameCollisionError: If a segment is already used by a file.

    """
    current = fs.root
    for segment in split_segments(path):
        child = fs.lookup(current, segment)
        if child is None:
            child = fs.create_dir(current, segment)
        elif not fs.is_directory(child):
            msg = f"Path segment is a file: {segment}"
            raise NameCollisionError(msg)
        current = child
    return current
