"""File tree subsystem — nodes, paths, the record codec, and persistence.

Re-exports public symbols so callers can write::

    from py_treefs.fs import FileSystem, FileType, load_filesystem
"""

from py_treefs.fs.codec import decode_into, decode_tree, encode_tree
from py_treefs.fs.errors import (
    FsError,
    InvalidInputError,
    InvalidSelectionError,
    MalformedRecordError,
    NameCollisionError,
    NotFoundError,
    PathNotFoundError,
    StoreUnavailableError,
)
from py_treefs.fs.filesystem import FileSystem, FileType, NodeInfo, WriteMode
from py_treefs.fs.listing import render_tree, select
from py_treefs.fs.paths import ensure_path, resolve_path
from py_treefs.fs.persistence import dump_filesystem, load_filesystem

__all__ = [
    "FileSystem",
    "FileType",
    "FsError",
    "InvalidInputError",
    "InvalidSelectionError",
    "MalformedRecordError",
    "NameCollisionError",
    "NodeInfo",
    "NotFoundError",
    "PathNotFoundError",
    "StoreUnavailableError",
    "WriteMode",
    "decode_into",
    "decode_tree",
    "dump_filesystem",
    "encode_tree",
    "ensure_path",
    "load_filesystem",
    "render_tree",
    "resolve_path",
    "select",
]
