"""Listings, selection by number, and tree rendering.

Everything here is read-only.  Listings are name-sorted so the 1-based
numbers shown to the user are stable between a listing and the command
that selects from it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from py_treefs.fs.codec import format_timestamp
from py_treefs.fs.errors import InvalidInputError, InvalidSelectionError
from py_treefs.fs.filesystem import FileType

if TYPE_CHECKING:
    from py_treefs.fs.filesystem import FileSystem, NodeInfo

ROOT_LABEL = "root"
_INDENT = "  "


def select(names: list[str], token: str) -> str:
    """Pick a name from a numbered listing by 1-based index or exact name.

    Args:
        names: The listing, in display order.
        token: A number like ``"2"`` or one of the names.

    Raises:
        InvalidSelectionError: If the index is out of range or the name
            is not in the listing.
        InvalidInputError: If *token* is empty.

    """
    if not token:
        msg = "Empty selection"
        raise InvalidInputError(msg)
    if token.isascii() and token.isdigit():
        index = int(token)
        if 1 <= index <= len(names):
            return names[index - 1]
        if not names:
            msg = "Nothing to select"
            raise InvalidSelectionError(msg)
        msg = f"Invalid selection: {index} (choose 1-{len(names)})"
        raise InvalidSelectionError(msg)
    if token in names:
        return token
    msg = f"Invalid selection: {token}"
    raise InvalidSelectionError(msg)


def format_listing(fs: FileSystem, directory: int) -> str:
    """Render the numbered contents of a directory with per-entry details."""
    lines = ["DIRECTORIES:"]
    subdirs = fs.names(directory, FileType.DIRECTORY)
    for index, name in enumerate(subdirs, start=1):
        info = fs.stat(directory, name)
        lines.append(
            f"  {index}. {name} [Subdirs: {info.subdir_count}, Files: {info.file_count}]"
        )
    if not subdirs:
        lines.append("  (NO DIRECTORIES FOUND)")

    lines.append("FILES:")
    files = fs.names(directory, FileType.FILE)
    for index, name in enumerate(files, start=1):
        created, modified = _ts(fs.stat(directory, name))
        lines.append(f"  {index}. {name} [Created: {created}, Modified: {modified}]")
    if not files:
        lines.append("  (NO FILES FOUND)")
    return "\n".join(lines)


def format_names(names: list[str], *, heading: str, empty: str) -> str:
    """Render a plain numbered list under *heading*."""
    lines = [heading]
    lines.extend(f"  {index}. {name}" for index, name in enumerate(names, start=1))
    if not names:
        lines.append(f"  ({empty})")
    return "\n".join(lines)


def render_tree(fs: FileSystem, directory: int | None = None) -> str:
    """Render the tree below *directory* (default: the root), pre-order.

    Each directory prints as ``+ name/`` at its depth, followed by its
    files as ``- name`` one level deeper, then its subdirectories.
    """
    start = fs.root if directory is None else directory
    lines: list[str] = []
    _render(fs, start, 0, lines)
    return "\n".join(lines)


def _render(fs: FileSystem, directory: int, depth: int, lines: list[str]) -> None:
    name = fs.name_of(directory) if directory != fs.root else ROOT_LABEL
    lines.append(f"{_INDENT * depth}+ {name}/")
    lines.extend(
        f"{_INDENT * (depth + 1)}- {file_name}" for file_name in fs.names(directory, FileType.FILE)
    )
    for sub in fs.names(directory, FileType.DIRECTORY):
        child = fs.lookup(directory, sub, FileType.DIRECTORY)
        assert child is not None  # noqa: S101
        _render(fs, child, depth + 1, lines)


def format_file_info(info: NodeInfo) -> str:
    """Render file metadata (name, timestamps, size)."""
    created, modified = _ts(info)
    return "\n".join(
        [
            f"NAME: {info.name}",
            f"CREATED: {created}",
            f"MODIFIED: {modified}",
            f"SIZE: {info.size} bytes",
        ]
    )


def format_dir_info(fs: FileSystem, directory: int) -> str:
    """Render directory metadata (name, path, child counts)."""
    info = fs.dir_info(directory)
    name = info.name if directory != fs.root else ROOT_LABEL
    return "\n".join(
        [
            f"NAME: {name}",
            f"PATH: {fs.path_of(directory)}",
            f"SUBDIRECTORIES: {info.subdir_count}",
            f"FILES: {info.file_count}",
        ]
    )


def _ts(info: NodeInfo) -> tuple[str, str]:
    """Return the formatted (created, modified) pair of a file."""
    assert info.created_at is not None  # noqa: S101
    assert info.modified_at is not None  # noqa: S101
    return format_timestamp(info.created_at), format_timestamp(info.modified_at)
