"""Tests for the store record codec.

The codec turns the tree into ``D``/``F`` records and back.  File
content is framed by its byte length, so it may contain newlines, NUL
bytes, or the ``|`` delimiter without confusing the loader.
"""

from datetime import datetime

import pytest

from py_treefs.fs.codec import (
    decode_into,
    decode_tree,
    encode_tree,
    format_timestamp,
    parse_timestamp,
)
from py_treefs.fs.errors import MalformedRecordError
from py_treefs.fs.filesystem import FileSystem, FileType

_T0 = datetime(2024, 3, 9, 8, 5, 7)
_T1 = datetime(2024, 3, 9, 9, 0, 0)


def _snapshot(fs: FileSystem, directory: int | None = None, prefix: str = "") -> dict[str, object]:
    """Map every path below *directory* to its kind, content, and timestamps."""
    start = fs.root if directory is None else directory
    result: dict[str, object] = {}
    for name in fs.names(start, FileType.FILE):
        info = fs.stat(start, name)
        result[f"{prefix}/{name}"] = (
            "file",
            fs.read(start, name),
            info.created_at,
            info.modified_at,
        )
    for name in fs.names(start, FileType.DIRECTORY):
        child = fs.lookup(start, name, FileType.DIRECTORY)
        assert child is not None
        result[f"{prefix}/{name}"] = ("dir",)
        result.update(_snapshot(fs, child, f"{prefix}/{name}"))
    return result


def _sample_tree() -> FileSystem:
    """Build a tree with awkward content in several places."""
    fs = FileSystem(clock=lambda: _T0)
    docs = fs.create_dir(fs.root, "docs")
    deep = fs.create_dir(fs.create_dir(docs, "a"), "b")
    fs.create_dir(fs.root, "empty")
    fs.create_file(fs.root, "empty.txt")
    fs.create_file(docs, "multi.txt")
    fs.write(docs, "multi.txt", b"line one\nline two\n\nline four")
    fs.create_file(deep, "nul.bin")
    fs.write(deep, "nul.bin", b"\x00\n\x00|F|/x|y\n\n")
    fs.create_file(fs.root, "pipe|name")
    fs.write(fs.root, "pipe|name", b"D|/not/a/dir\n")
    return fs


class TestTimestamps:
    """Verify timestamp formatting."""

    def test_format(self) -> None:
        """Timestamps render as YYYY-MM-DD HH:MM:SS."""
        assert format_timestamp(_T0) == "2024-03-09 08:05:07"

    def test_parse_round_trip(self) -> None:
        """Parsing a formatted timestamp returns the same moment."""
        assert parse_timestamp(format_timestamp(_T0)) == _T0


class TestEncode:
    """Verify the byte layout written by encode_tree."""

    def test_empty_tree_encodes_to_nothing(self) -> None:
        """The root itself is never written."""
        assert encode_tree(FileSystem()) == b""

    def test_breadth_first_layout(self) -> None:
        """Subdirectory records come before file records at each level."""
        fs = FileSystem(clock=lambda: _T0)
        a = fs.create_dir(fs.root, "a")
        fs.create_dir(fs.root, "b")
        fs.create_file(fs.root, "r.txt")
        fs.write(fs.root, "r.txt", b"hi")
        fs.create_file(a, "x")
        fs.create_dir(a, "inner")
        stamp = "2024-03-09 08:05:07"
        assert encode_tree(fs) == (
            b"D|/a\n"
            b"D|/b\n"
            + f"F|/r.txt|{stamp}|{stamp}|2\n".encode()
            + b"hi\n"
            + b"D|/a/inner\n"
            + f"F|/a/x|{stamp}|{stamp}|0\n".encode()
            + b"\n"
        )

    def test_content_written_verbatim(self) -> None:
        """Content bytes appear unchanged, followed by one separator."""
        fs = FileSystem(clock=lambda: _T0)
        fs.create_file(fs.root, "f")
        fs.write(fs.root, "f", b"\n\n")
        assert encode_tree(fs).endswith(b"|2\n\n\n\n")


class TestRoundTrip:
    """Verify that decode(encode(tree)) reproduces the tree."""

    def test_structure_content_and_times(self) -> None:
        """Everything survives: names, nesting, bytes, and timestamps."""
        fs = _sample_tree()
        restored = decode_tree(encode_tree(fs))
        assert _snapshot(restored) == _snapshot(fs)

    def test_distinct_timestamps_survive(self) -> None:
        """Different created and modified times are kept apart."""
        times = iter([_T0, _T1])
        fs = FileSystem(clock=lambda: next(times))
        fs.create_file(fs.root, "f")
        fs.write(fs.root, "f", b"x")
        restored = decode_tree(encode_tree(fs))
        info = restored.stat(restored.root, "f")
        assert info.created_at == _T0
        assert info.modified_at == _T1

    def test_all_byte_values(self) -> None:
        """Every byte value survives, including the separator."""
        fs = FileSystem(clock=lambda: _T0)
        fs.create_file(fs.root, "bytes")
        fs.write(fs.root, "bytes", bytes(range(256)) * 2)
        restored = decode_tree(encode_tree(fs))
        assert restored.read(restored.root, "bytes") == bytes(range(256)) * 2

    def test_unicode_names(self) -> None:
        """Non-ASCII names survive."""
        fs = FileSystem(clock=lambda: _T0)
        d = fs.create_dir(fs.root, "café")
        fs.create_file(d, "naïve ☃.txt")
        restored = decode_tree(encode_tree(fs))
        assert _snapshot(restored) == _snapshot(fs)


class TestTolerantLoad:
    """Verify the loader's reconstruction rules."""

    def test_file_creates_missing_parents(self) -> None:
        """A file record alone is enough to create its directories."""
        data = b"F|/x/y/z.txt|2024-01-01 00:00:00|2024-01-01 00:00:00|3\nabc\n"
        fs = decode_tree(data)
        assert _snapshot(fs)["/x/y/z.txt"][1] == b"abc"  # type: ignore[index]
        assert fs.names(fs.root) == ["x"]

    def test_duplicate_file_first_wins(self) -> None:
        """A second record for the same file is ignored."""
        data = (
            b"F|/a.txt|2024-01-01 00:00:00|2024-01-01 00:00:00|5\nfirst\n"
            b"F|/a.txt|2024-02-02 00:00:00|2024-02-02 00:00:00|6\nsecond\n"
        )
        fs = decode_tree(data)
        assert fs.read(fs.root, "a.txt") == b"first"
        assert fs.names(fs.root) == ["a.txt"]

    def test_duplicate_directory_records(self) -> None:
        """Repeated directory records create each directory once."""
        fs = decode_tree(b"D|/a\nD|/a/b\nD|/a\nD|/a/b\n")
        assert fs.node_count == 3

    def test_loading_twice_is_idempotent(self) -> None:
        """Applying the same store twice gives the same tree as once."""
        data = encode_tree(_sample_tree())
        once = decode_tree(data)
        twice = decode_tree(data)
        added = decode_into(twice, data)
        assert added == 0
        assert _snapshot(twice) == _snapshot(once)
        assert twice.node_count == once.node_count

    def test_blank_lines_between_records(self) -> None:
        """Empty lines between records are skipped."""
        fs = decode_tree(b"\nD|/a\n\n\nD|/b\n")
        assert fs.names(fs.root) == ["a", "b"]

    def test_missing_final_separator(self) -> None:
        """A store cut right after the last content byte still loads."""
        fs = decode_tree(b"F|/a|2024-01-01 00:00:00|2024-01-01 00:00:00|2\nhi")
        assert fs.read(fs.root, "a") == b"hi"


class TestMalformed:
    """Verify that unparsable records are rejected."""

    @pytest.mark.parametrize(
        "data",
        [
            b"X|/a\n",
            b"no delimiter here\n",
            b"F|/a|2024-01-01 00:00:00|5\nhello\n",
            b"F|/a|2024-01-01 00:00:00|2024-01-01 00:00:00|-1\n\n",
            b"F|/a|2024-01-01 00:00:00|2024-01-01 00:00:00|ten\n\n",
            "F|/a|2024-01-01 00:00:00|2024-01-01 00:00:00|\u00b2\n\n".encode(),
            "F|/a|2024-01-01 00:00:00|2024-01-01 00:00:00|\u0661\nx\n".encode(),
            b"F|/a|yesterday|2024-01-01 00:00:00|0\n\n",
            b"F|/a|2024-01-01 00:00:00|2024-01-01 00:00:00|10\nshort\n",
            b"F|/a|2024-01-01 00:00:00|2024-01-01 00:00:00|2\nhiX",
            b"F|/|2024-01-01 00:00:00|2024-01-01 00:00:00|0\n\n",
            b"D|/a/../b\n",
        ],
    )
    def test_bad_records_raise(self, data: bytes) -> None:
        """Each malformed record raises MalformedRecordError."""
        with pytest.raises(MalformedRecordError):
            decode_tree(data)

    def test_file_over_directory_raises(self) -> None:
        """A file record whose name is already a directory is rejected."""
        data = b"D|/a\nF|/a|2024-01-01 00:00:00|2024-01-01 00:00:00|0\n\n"
        with pytest.raises(MalformedRecordError, match="directory"):
            decode_tree(data)

    def test_directory_through_file_raises(self) -> None:
        """A directory record that walks through a file is rejected."""
        data = b"F|/a|2024-01-01 00:00:00|2024-01-01 00:00:00|0\n\nD|/a/b\n"
        with pytest.raises(MalformedRecordError):
            decode_tree(data)

    def test_error_reports_offset(self) -> None:
        """The error carries the byte offset of the bad record."""
        data = b"D|/a\nQ|oops\n"
        with pytest.raises(MalformedRecordError) as info:
            decode_tree(data)
        assert info.value.offset == len(b"D|/a\n")

    def test_non_utf8_header(self) -> None:
        """A header that is not UTF-8 is rejected."""
        with pytest.raises(MalformedRecordError, match="UTF-8"):
            decode_tree(b"D|/\xff\xfe\n")
