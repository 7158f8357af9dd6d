"""Record codec — the byte format of the store file.

The store is a flat sequence of records, written breadth-first from the
root.  Two record kinds exist::

    D|<path>
    F|<path>|<created>|<modified>|<length>
    <length raw bytes><separator>

Directory records are one line each.  A file record is a header line
followed by exactly ``length`` bytes of content and one separator byte.
Content is never split on lines: it may contain the separator itself,
NUL bytes, or anything else, and the length prefix is what frames it.

Loading is tolerant about structure and strict about syntax:

- Missing parent directories are created on the fly, whether they come
  from a ``D`` record or only from a file's path.
- A second file record for the same path is ignored (first one wins).
- A record that cannot be parsed raises ``MalformedRecordError``.
"""

from __future__ import annotations

from collections import deque
from datetime import datetime
from typing import TYPE_CHECKING

from py_treefs.fs.errors import (
    InvalidInputError,
    MalformedRecordError,
    NameCollisionError,
)
from py_treefs.fs.filesystem import FileSystem, FileType
from py_treefs.fs.paths import ensure_path, join_path, split_path

if TYPE_CHECKING:
    from py_treefs.fs.filesystem import Clock

SEPARATOR = b"\n"
FIELD_DELIMITER = "|"
DIR_TAG = "D"
FILE_TAG = "F"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_FILE_HEADER_FIELDS = 4


def format_timestamp(moment: datetime) -> str:
    """Render a timestamp as ``YYYY-MM-DD HH:MM:SS``."""
    return moment.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(text: str) -> datetime:
    """Parse a ``YYYY-MM-DD HH:MM:SS`` timestamp.

    Raises:
        ValueError: If *text* does not match the format.

    """
    return datetime.strptime(text, TIMESTAMP_FORMAT)  # noqa: DTZ007


def encode_tree(fs: FileSystem) -> bytes:
    """Serialize the whole tree into store records.

    Directories are visited breadth-first from the root.  At each one,
    a ``D`` record is written for every subdirectory (in name order),
    then an ``F`` record for every file (in name order).
    """
    chunks: list[bytes] = []
    queue: deque[tuple[int, list[str]]] = deque([(fs.root, [])])
    while queue:
        directory, segments = queue.popleft()
        for name in fs.names(directory, FileType.DIRECTORY):
            child_segments = [*segments, name]
            chunks.append(f"{DIR_TAG}|{join_path(child_segments)}".encode() + SEPARATOR)
            child = fs.lookup(directory, name, FileType.DIRECTORY)
            assert child is not None  # noqa: S101
            queue.append((child, child_segments))
        for name in fs.names(directory, FileType.FILE):
            info = fs.stat(directory, name)
            data = fs.read(directory, name)
            assert info.created_at is not None  # noqa: S101
            assert info.modified_at is not None  # noqa: S101
            header = FIELD_DELIMITER.join(
                [
                    FILE_TAG,
                    join_path([*segments, name]),
                    format_timestamp(info.created_at),
                    format_timestamp(info.modified_at),
                    str(len(data)),
                ]
            )
            chunks.append(header.encode() + SEPARATOR + data + SEPARATOR)
    return b"".join(chunks)


def decode_tree(data: bytes, *, clock: Clock | None = None) -> FileSystem:
    """Build a new file system from store records.

    Args:
        data: The raw store bytes.
        clock: Clock for the new file system (defaults to local time).

    Raises:
        MalformedRecordError: If any record cannot be parsed.

    """
    fs = FileSystem() if clock is None else FileSystem(clock=clock)
    decode_into(fs, data)
    return fs


def decode_into(fs: FileSystem, data: bytes) -> int:
    """Apply store records to an existing file system.

    Returns:
        The number of files inserted (duplicates are not counted).

    Raises:
        MalformedRecordError: If any record cannot be parsed.

    """
    added = 0
    pos = 0
    while pos < len(data):
        start = pos
        end = data.find(SEPARATOR, pos)
        if end == -1:
            end = len(data)
        raw_header = data[pos:end]
        pos = end + len(SEPARATOR)
        if not raw_header:
            continue
        try:
            header = raw_header.decode()
        except UnicodeDecodeError as e:
            msg = "Record header is not valid UTF-8"
            raise MalformedRecordError(msg, offset=start) from e

        tag, delim, body = header.partition(FIELD_DELIMITER)
        if not delim:
            msg = f"Record without a type tag: {header!r}"
            raise MalformedRecordError(msg, offset=start)
        if tag == DIR_TAG:
            _apply_dir_record(fs, body, offset=start)
        elif tag == FILE_TAG:
            pos, inserted = _apply_file_record(fs, body, data, pos, offset=start)
            added += inserted
        else:
            msg = f"Unknown record type: {tag!r}"
            raise MalformedRecordError(msg, offset=start)
    return added


def _apply_dir_record(fs: FileSystem, path: str, *, offset: int) -> None:
    """Ensure every directory on *path* exists."""
    try:
        ensure_path(fs, path)
    except (InvalidInputError, NameCollisionError) as e:
        msg = f"Bad directory record {path!r}: {e}"
        raise MalformedRecordError(msg, offset=offset) from e


def _apply_file_record(
    fs: FileSystem, body: str, data: bytes, pos: int, *, offset: int
) -> tuple[int, bool]:
    """Parse one file record whose content starts at *pos*.

    Returns:
        The position after the record and whether the file was inserted.

    """
    # Timestamps and length never contain the delimiter, so splitting
    # from the right leaves any delimiter in the name part of the path.
    fields = body.rsplit(FIELD_DELIMITER, _FILE_HEADER_FIELDS - 1)
    if len(fields) != _FILE_HEADER_FIELDS:
        msg = f"File record needs {_FILE_HEADER_FIELDS} fields: {body!r}"
        raise MalformedRecordError(msg, offset=offset)
    path, created_text, modified_text, length_text = fields

    if not (length_text.isascii() and length_text.isdigit()):
        msg = f"Bad content length: {length_text!r}"
        raise MalformedRecordError(msg, offset=offset)
    try:
        created_at = parse_timestamp(created_text)
        modified_at = parse_timestamp(modified_text)
    except ValueError as e:
        msg = f"Bad timestamp in file record: {e}"
        raise MalformedRecordError(msg, offset=offset) from e

    length = int(length_text)
    content = data[pos : pos + length]
    if len(content) != length:
        msg = f"Content truncated: expected {length} bytes, found {len(content)}"
        raise MalformedRecordError(msg, offset=offset)
    pos += length
    trailer = data[pos : pos + len(SEPARATOR)]
    if trailer and trailer != SEPARATOR:
        msg = "Missing separator after file content"
        raise MalformedRecordError(msg, offset=offset)
    pos += len(trailer)

    parent_path, name = split_path(path)
    if not name:
        msg = f"File record without a name: {path!r}"
        raise MalformedRecordError(msg, offset=offset)
    try:
        parent = ensure_path(fs, parent_path)
        inserted = fs.restore_file(
            parent, name, data=content, created_at=created_at, modified_at=modified_at
        )
    except (InvalidInputError, NameCollisionError) as e:
        msg = f"Bad file record {path!r}: {e}"
        raise MalformedRecordError(msg, offset=offset) from e
    return pos, inserted
