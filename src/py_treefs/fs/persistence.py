"""Store persistence — save and load the tree to/from a record file.

The in-memory tree is lost when the process ends, so it is written to a
single store file and read back on the next start:

    - ``dump_filesystem(fs, path)`` — rewrite the store with the whole tree.
    - ``load_filesystem(path)`` — rebuild a tree from the store.

Saving always rewrites the complete store; there is no incremental log.
A missing store is the normal first-run case and loads as an empty tree.
The record format itself lives in ``py_treefs.fs.codec``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from py_treefs.fs.codec import decode_tree, encode_tree
from py_treefs.fs.errors import StoreUnavailableError
from py_treefs.fs.filesystem import FileSystem

if TYPE_CHECKING:
    from pathlib import Path

    from py_treefs.fs.filesystem import Clock


def dump_filesystem(fs: FileSystem, path: Path) -> int:
    """Write the whole tree to the store file.

    Args:
        fs: The file system to save.
        path: The store file to (over)write.

    Returns:
        The number of bytes written.

    Raises:
        StoreUnavailableError: If the store cannot be written.  The
            in-memory tree is untouched.

    """
    data = encode_tree(fs)
    try:
        path.write_bytes(data)
    except OSError as e:
        msg = f"Cannot write store {path}: {e.strerror or e}"
        raise StoreUnavailableError(msg) from e
    return len(data)


def load_filesystem(path: Path, *, clock: Clock | None = None) -> FileSystem:
    """Rebuild a file system from the store file.

    Args:
        path: The store file to read.
        clock: Clock for the rebuilt file system.

    Returns:
        The reconstructed tree, or an empty one if *path* does not exist.

    Raises:
        StoreUnavailableError: If the store exists but cannot be read.
        MalformedRecordError: If a record in the store cannot be parsed.

    """
    try:
        data = path.read_bytes()
    except FileNotFoundError:
        return FileSystem() if clock is None else FileSystem(clock=clock)
    except OSError as e:
        msg = f"Cannot read store {path}: {e.strerror or e}"
        raise StoreUnavailableError(msg) from e
    return decode_tree(data, clock=clock)
