"""In-memory file tree with an inode-style node table.

The tree is stored the way the Unix file system stores it:

- **Node table**: every directory and file is a record in a single
  ``dict[int, _Node]`` owned by the ``FileSystem``.  The table is the
  only owner of nodes; dropping a subtree from it destroys the subtree.

- **Directory entries**: a directory's ``children`` maps names to node
  numbers.  Subdirectories and files share this one mapping, so a name
  can never be used twice in the same directory.

- **Parent links**: each node remembers its parent as a node *number*,
  not an object reference.  It is a lookup key for walking upwards,
  never a second owner, so there are no reference cycles to manage.

Directories are addressed by node number ("handle").  The root handle is
fixed for the life of the file system; other handles stay valid until
their node is deleted.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from itertools import count
from typing import TypeAlias

from py_treefs.fs.errors import (
    InvalidInputError,
    InvalidSelectionError,
    NameCollisionError,
    NotFoundError,
)

Clock: TypeAlias = Callable[[], datetime]

RESERVED_NAMES: frozenset[str] = frozenset({".", ".."})
"""Names claimed by navigation (``..`` is the parent selection)."""

_FORBIDDEN_CHARS = ("/", "\n", "\r")


class FileType(StrEnum):
    """The kind of object a node represents."""

    FILE = "file"
    DIRECTORY = "directory"


class WriteMode(StrEnum):
    """How ``write`` combines new data with the existing content."""

    OVERWRITE = "overwrite"
    APPEND = "append"


def local_now() -> datetime:
    """Return the current local time, truncated to whole seconds.

    The store format records seconds only, so truncating here keeps
    in-memory timestamps identical to what a save/load cycle restores.
    """
    return datetime.now().replace(microsecond=0)  # noqa: DTZ005


def validate_name(name: str) -> None:
    """Check that *name* can be used for a file or directory.

    Raises:
        InvalidInputError: If the name is empty, reserved, or contains
            a path separator or line break.

    """
    if not name:
        msg = "Name must not be empty"
        raise InvalidInputError(msg)
    if name in RESERVED_NAMES:
        msg = f"Reserved name: {name}"
        raise InvalidInputError(msg)
    if any(ch in name for ch in _FORBIDDEN_CHARS):
        msg = f"Invalid character in name: {name!r}"
        raise InvalidInputError(msg)


@dataclass(frozen=True)
class NodeInfo:
    """Read-only snapshot of a node's metadata (returned by stat)."""

    node_number: int
    file_type: FileType
    name: str
    size: int = 0
    created_at: datetime | None = None
    modified_at: datetime | None = None
    subdir_count: int = 0
    file_count: int = 0


@dataclass
class _Node:
    """Internal node record.

    Files use ``data`` and the two timestamps.  Directories use
    ``children``.  ``parent`` is ``None`` only for the root.
    """

    node_number: int
    file_type: FileType
    name: str
    parent: int | None = None
    data: bytes = b""
    children: dict[str, int] = field(default_factory=dict)  # pyright: ignore[reportUnknownVariableType]
    created_at: datetime | None = None
    modified_at: datetime | None = None


# Module-level node counter: node numbers are never reused.
_node_counter = count(start=0)

_KIND_LABEL = {FileType.FILE: "File", FileType.DIRECTORY: "Directory"}


class FileSystem:
    """An in-memory tree of directories and files.

    All operations name a directory handle plus a child name; none of
    them know about a "current directory".  That lives one layer up in
    ``py_treefs.session.Session``.
    """

    def __init__(self, *, clock: Clock = local_now) -> None:
        """Create a file system holding only an empty root directory.

        Args:
            clock: Source of timestamps for new and modified files.

        """
        self._clock = clock
        root = _Node(node_number=next(_node_counter), file_type=FileType.DIRECTORY, name="")
        self._nodes: dict[int, _Node] = {root.node_number: root}
        self._root: int = root.node_number

    # -- Navigation ---------------------------------------------------------

    @property
    def root(self) -> int:
        """Return the handle of the root directory."""
        return self._root

    @property
    def node_count(self) -> int:
        """Return the number of live nodes, root included."""
        return len(self._nodes)

    def now(self) -> datetime:
        """Return a timestamp from this file system's clock."""
        return self._clock()

    def is_directory(self, handle: int) -> bool:
        """Return True if *handle* names a live directory."""
        node = self._nodes.get(handle)
        return node is not None and node.file_type is FileType.DIRECTORY

    def parent_of(self, handle: int) -> int | None:
        """Return the parent handle of a directory, or None for the root."""
        return self._dir(handle).parent

    def name_of(self, handle: int) -> str:
        """Return a directory's name (the root's name is empty)."""
        return self._dir(handle).name

    def path_of(self, handle: int) -> str:
        """Return the absolute path of a directory, ``/`` for the root."""
        parts: list[str] = []
        node = self._dir(handle)
        while node.parent is not None:
            parts.append(node.name)
            node = self._nodes[node.parent]
        return "/" + "/".join(reversed(parts))

    def lookup(self, directory: int, name: str, kind: FileType | None = None) -> int | None:
        """Return the handle of child *name*, or None if there is none.

        If *kind* is given, a child of the other kind counts as absent.
        """
        child = self._dir(directory).children.get(name)
        if child is None:
            return None
        if kind is not None and self._nodes[child].file_type is not kind:
            return None
        return child

    def names(self, directory: int, kind: FileType | None = None) -> list[str]:
        """List child names of a directory in sorted order.

        Args:
            directory: Handle of the directory to list.
            kind: If set, only list children of this kind.

        """
        children = self._dir(directory).children
        return sorted(
            name
            for name, ino in children.items()
            if kind is None or self._nodes[ino].file_type is kind
        )

    def stat(self, directory: int, name: str) -> NodeInfo:
        """Return metadata for the child *name* of *directory*.

        Raises:
            NotFoundError: If there is no such child.

        """
        child = self.lookup(directory, name)
        if child is None:
            msg = f"Not found: {name}"
            raise NotFoundError(msg)
        return self._info(self._nodes[child])

    def dir_info(self, handle: int) -> NodeInfo:
        """Return metadata for the directory *handle* itself."""
        return self._info(self._dir(handle))

    # -- Creation and deletion ----------------------------------------------

    def create_dir(self, directory: int, name: str) -> int:
        """Create an empty subdirectory and return its handle.

        Raises:
            InvalidInputError: If *name* is not a usable name.
            NameCollisionError: If *name* is already used in *directory*.

        """
        return self._create(directory, name, FileType.DIRECTORY)

    def create_file(self, directory: int, name: str) -> int:
        """Create an empty file and return its handle.

        Raises:
            InvalidInputError: If *name* is not a usable name.
            NameCollisionError: If *name* is already used in *directory*.

        """
        return self._create(directory, name, FileType.FILE)

    def restore_file(
        self,
        directory: int,
        name: str,
        *,
        data: bytes,
        created_at: datetime,
        modified_at: datetime,
    ) -> bool:
        """Insert a file with known content and timestamps (used by the loader).

        A file of the same name already in *directory* wins: the new one
        is discarded and False is returned.

        Raises:
            InvalidInputError: If *name* is not a usable name.
            NameCollisionError: If *name* is used by a subdirectory.

        """
        existing = self.lookup(directory, name)
        if existing is not None:
            if self._nodes[existing].file_type is FileType.FILE:
                return False
            msg = f"Name already in use by a directory: {name}"
            raise NameCollisionError(msg)
        validate_name(name)
        node = _Node(
            node_number=next(_node_counter),
            file_type=FileType.FILE,
            name=name,
            parent=directory,
            data=data,
            created_at=created_at,
            modified_at=modified_at,
        )
        self._link(node, directory)
        return True

    def delete(self, directory: int, name: str, kind: FileType) -> None:
        """Delete a file, or a directory together with everything below it.

        Raises:
            NotFoundError: If *directory* has no child of that kind and name.

        """
        node = self._require(directory, name, kind)
        del self._dir(directory).children[name]
        self._drop(node.node_number)

    def clear(self) -> int:
        """Delete everything under the root and return the number of nodes freed."""
        before = len(self._nodes)
        root = self._nodes[self._root]
        for child in list(root.children.values()):
            self._drop(child)
        root.children.clear()
        return before - len(self._nodes)

    # -- Renaming and relocation --------------------------------------------

    def rename(self, directory: int, old: str, new: str, kind: FileType) -> None:
        """Re-key a child in place; identity, content, and timestamps are kept.

        Raises:
            NotFoundError: If *old* is not a child of the given kind.
            InvalidInputError: If *new* is not a usable name.
            NameCollisionError: If *new* is already used in *directory*.

        """
        node = self._require(directory, old, kind)
        validate_name(new)
        self._require_free(directory, new)
        children = self._dir(directory).children
        del children[old]
        children[new] = node.node_number
        node.name = new

    def move(self, directory: int, name: str, kind: FileType, target: int) -> None:
        """Relink a child of *directory* into *target* without copying it.

        Raises:
            NotFoundError: If *name* is not a child of the given kind.
            NameCollisionError: If *name* is already used in *target*.
            InvalidSelectionError: If a directory would be moved into
                itself or one of its own descendants.

        """
        node = self._require(directory, name, kind)
        target_node = self._dir(target)
        self._require_free(target, name)
        if kind is FileType.DIRECTORY and self._is_within(target, node.node_number):
            msg = f"Cannot move a directory into itself: {name}"
            raise InvalidSelectionError(msg)
        del self._dir(directory).children[name]
        target_node.children[name] = node.node_number
        node.parent = target

    def copy(self, directory: int, name: str, kind: FileType, target: int) -> int:
        """Deep-copy a child of *directory* into *target* and return the copy's handle.

        Every copied node gets a new node number and fresh timestamps.
        The whole copy is built before it is linked into *target*, so
        copying a directory into its own subtree copies the old contents.

        Raises:
            NotFoundError: If *name* is not a child of the given kind.
            NameCollisionError: If *name* is already used in *target*.

        """
        node = self._require(directory, name, kind)
        self._dir(target)
        self._require_free(target, name)
        clone = self._clone(node)
        self._link(clone, target)
        return clone.node_number

    # -- File content -------------------------------------------------------

    def read(self, directory: int, name: str) -> bytes:
        """Return the content of a file.

        Raises:
            NotFoundError: If there is no file called *name*.

        """
        return self._require(directory, name, FileType.FILE).data

    def write(
        self,
        directory: int,
        name: str,
        data: bytes,
        mode: WriteMode = WriteMode.OVERWRITE,
    ) -> None:
        """Overwrite or append to a file and stamp its modification time.

        Raises:
            NotFoundError: If there is no file called *name*.

        """
        node = self._require(directory, name, FileType.FILE)
        node.data = node.data + data if mode is WriteMode.APPEND else data
        assert node.created_at is not None  # noqa: S101
        node.modified_at = max(self._clock(), node.created_at)

    def search(self, directory: int, pattern: str) -> list[str]:
        """Return names of files in *directory* containing *pattern* (case-sensitive)."""
        return [n for n in self.names(directory, FileType.FILE) if pattern in n]

    # -- Internals ----------------------------------------------------------

    def _dir(self, handle: int) -> _Node:
        """Return the directory node for *handle*."""
        node = self._nodes.get(handle)
        if node is None or node.file_type is not FileType.DIRECTORY:
            msg = f"No such directory handle: {handle}"
            raise NotFoundError(msg)
        return node

    def _require(self, directory: int, name: str, kind: FileType) -> _Node:
        """Return the child *name* of the given kind or raise NotFoundError."""
        child = self.lookup(directory, name, kind)
        if child is None:
            msg = f"{_KIND_LABEL[kind]} not found: {name}"
            raise NotFoundError(msg)
        return self._nodes[child]

    def _require_free(self, directory: int, name: str) -> None:
        """Raise NameCollisionError if *name* is taken in *directory*."""
        if name in self._dir(directory).children:
            msg = f"Name already in use: {name}"
            raise NameCollisionError(msg)

    def _create(self, directory: int, name: str, file_type: FileType) -> int:
        """Validate, allocate, and link a fresh empty node."""
        validate_name(name)
        self._require_free(directory, name)
        node = _Node(node_number=next(_node_counter), file_type=file_type, name=name)
        if file_type is FileType.FILE:
            node.created_at = node.modified_at = self._clock()
        self._link(node, directory)
        return node.node_number

    def _link(self, node: _Node, directory: int) -> None:
        """Register *node* (and its already-registered subtree) under *directory*."""
        node.parent = directory
        self._nodes[node.node_number] = node
        self._dir(directory).children[node.name] = node.node_number

    def _drop(self, handle: int) -> None:
        """Remove a node and its whole subtree from the node table."""
        stack = [handle]
        while stack:
            node = self._nodes.pop(stack.pop())
            stack.extend(node.children.values())

    def _clone(self, node: _Node) -> _Node:
        """Build a detached deep copy of *node*; descendants are registered."""
        copy = _Node(node_number=next(_node_counter), file_type=node.file_type, name=node.name)
        if node.file_type is FileType.FILE:
            copy.data = node.data
            copy.created_at = copy.modified_at = self._clock()
            return copy
        for child_name, child_ino in list(node.children.items()):
            child_copy = self._clone(self._nodes[child_ino])
            child_copy.parent = copy.node_number
            self._nodes[child_copy.node_number] = child_copy
            copy.children[child_name] = child_copy.node_number
        return copy

    def _is_within(self, handle: int, ancestor: int) -> bool:
        """Return True if *handle* is *ancestor* or lies below it."""
        current: int | None = handle
        while current is not None:
            if current == ancestor:
                return True
            current = self._nodes[current].parent
        return False

    def _info(self, node: _Node) -> NodeInfo:
        """Create a read-only snapshot of *node*."""
        subdirs = sum(
            1 for ino in node.children.values() if self._nodes[ino].file_type is FileType.DIRECTORY
        )
        return NodeInfo(
            node_number=node.node_number,
            file_type=node.file_type,
            name=node.name,
            size=len(node.data),
            created_at=node.created_at,
            modified_at=node.modified_at,
            subdir_count=subdirs,
            file_count=len(node.children) - subdirs,
        )
