"""Session — the cursor into the tree and the operations relative to it.

A session owns one ``FileSystem`` and one cursor (the current directory
handle).  Every structural operation names children of the cursor; only
move and copy take a second location, given as a root-relative path and
resolved with ``resolve_path``.

The session also owns the store: ``mount`` loads it, ``save`` rewrites
it.  Successful mutations are recorded in the session's ``Logger``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from py_treefs.config import FsConfig
from py_treefs.fs.errors import FsError, InvalidSelectionError, StoreUnavailableError
from py_treefs.fs.filesystem import FileSystem, FileType, WriteMode
from py_treefs.fs.listing import format_dir_info, render_tree
from py_treefs.fs.paths import resolve_path
from py_treefs.fs.persistence import dump_filesystem, load_filesystem
from py_treefs.logging import Logger, LogLevel, LogSource

if TYPE_CHECKING:
    from py_treefs.fs.filesystem import Clock, NodeInfo

PARENT_SELECTION = ".."
BATCH_DELIMITER = ","


class Session:
    """A cursor over a file system, plus the store it was loaded from."""

    def __init__(
        self,
        fs: FileSystem | None = None,
        *,
        config: FsConfig | None = None,
        logger: Logger | None = None,
    ) -> None:
        """Create a session with the cursor at the root.

        Args:
            fs: The tree to operate on (default: a fresh empty one).
            config: Store location and input settings.
            logger: Audit log to record events in.

        """
        self._fs = fs if fs is not None else FileSystem()
        self._config = config if config is not None else FsConfig()
        self._logger = logger if logger is not None else Logger()
        self._cwd = self._fs.root
        self._boot_log: list[str] = []

    @classmethod
    def mount(cls, config: FsConfig, *, clock: Clock | None = None) -> Session:
        """Load the configured store and return a session over it.

        A missing store starts an empty tree.

        Raises:
            StoreUnavailableError: If the store exists but cannot be read.
            MalformedRecordError: If the store holds a bad record.

        """
        existed = config.store_path.exists()
        fs = load_filesystem(config.store_path, clock=clock)
        session = cls(fs, config=config)
        if existed:
            msg = f"Mounted {config.store_path} ({fs.node_count - 1} entries)"
        else:
            msg = f"No store at {config.store_path}; starting empty"
        session._boot_log.append(msg)
        session._log(LogLevel.INFO, msg, source=LogSource.STORE)
        return session

    # -- Accessors ----------------------------------------------------------

    @property
    def fs(self) -> FileSystem:
        """Return the underlying file system."""
        return self._fs

    @property
    def config(self) -> FsConfig:
        """Return the session configuration."""
        return self._config

    @property
    def logger(self) -> Logger:
        """Return the session's audit log."""
        return self._logger

    @property
    def cwd(self) -> int:
        """Return the handle of the current directory."""
        return self._cwd

    @property
    def cwd_path(self) -> str:
        """Return the absolute path of the current directory."""
        return self._fs.path_of(self._cwd)

    def dmesg(self) -> list[str]:
        """Return the messages recorded while mounting the store."""
        return list(self._boot_log)

    def subdirectories(self) -> list[str]:
        """List subdirectory names of the current directory (sorted)."""
        return self._fs.names(self._cwd, FileType.DIRECTORY)

    def files(self) -> list[str]:
        """List file names of the current directory (sorted)."""
        return self._fs.names(self._cwd, FileType.FILE)

    # -- Navigation ---------------------------------------------------------

    def change_directory(self, selection: str) -> str:
        """Move the cursor to a subdirectory, or to the parent with ``..``.

        Returns:
            The new current path.

        Raises:
            InvalidSelectionError: If *selection* is not a subdirectory, or
                is ``..`` while at the root.

        """
        if selection == PARENT_SELECTION:
            parent = self._fs.parent_of(self._cwd)
            if parent is None:
                msg = "Already at the root directory"
                raise InvalidSelectionError(msg)
            self._cwd = parent
        else:
            child = self._fs.lookup(self._cwd, selection, FileType.DIRECTORY)
            if child is None:
                msg = f"Invalid selection: {selection}"
                raise InvalidSelectionError(msg)
            self._cwd = child
        return self.cwd_path

    # -- Creation and deletion ----------------------------------------------

    def create_directory(self, name: str) -> None:
        """Create an empty subdirectory in the current directory."""
        self._fs.create_dir(self._cwd, name)
        self._log(LogLevel.INFO, f"Created directory {name}")

    def create_file(self, name: str) -> None:
        """Create an empty file in the current directory."""
        self._fs.create_file(self._cwd, name)
        self._log(LogLevel.INFO, f"Created file {name}")

    def batch_create(self, names: str) -> list[tuple[str, FsError | None]]:
        """Create one file per comma-separated name.

        Each name is created independently: a collision on one does not
        stop the others.  Blank entries are skipped.

        Returns:
            ``(name, error)`` pairs in input order; ``error`` is None on
            success.

        """
        results: list[tuple[str, FsError | None]] = []
        for raw in names.split(BATCH_DELIMITER):
            name = raw.strip()
            if not name:
                continue
            try:
                self.create_file(name)
            except FsError as e:
                results.append((name, e))
            else:
                results.append((name, None))
        return results

    def delete_directory(self, name: str) -> None:
        """Delete a subdirectory and everything below it."""
        self._fs.delete(self._cwd, name, FileType.DIRECTORY)
        self._log(LogLevel.INFO, f"Deleted directory {name}")

    def delete_file(self, name: str) -> None:
        """Delete a file from the current directory."""
        self._fs.delete(self._cwd, name, FileType.FILE)
        self._log(LogLevel.INFO, f"Deleted file {name}")

    def delete_all(self, *, confirm: bool) -> bool:
        """Delete every file and directory, if *confirm* is True.

        The cursor returns to the root.

        Returns:
            Whether anything was done.

        """
        if not confirm:
            self._log(LogLevel.INFO, "Delete-all cancelled")
            return False
        freed = self._fs.clear()
        self._cwd = self._fs.root
        self._log(LogLevel.WARNING, f"Deleted everything ({freed} entries)")
        return True

    # -- Renaming and relocation --------------------------------------------

    def rename(self, old: str, new: str, kind: FileType) -> None:
        """Rename a file or subdirectory of the current directory."""
        self._fs.rename(self._cwd, old, new, kind)
        self._log(LogLevel.INFO, f"Renamed {kind} {old} to {new}")

    def move(self, name: str, kind: FileType, destination: str) -> None:
        """Move a child of the current directory to a root-relative path.

        Raises:
            PathNotFoundError: If *destination* does not resolve.
            NotFoundError: If *name* is not a child of that kind.
            NameCollisionError: If the destination already uses *name*.

        """
        target = resolve_path(self._fs, destination)
        self._fs.move(self._cwd, name, kind, target)
        self._log(LogLevel.INFO, f"Moved {kind} {name} to {self._fs.path_of(target)}")

    def copy(self, name: str, kind: FileType, destination: str) -> None:
        """Deep-copy a child of the current directory to a root-relative path.

        Raises:
            PathNotFoundError: If *destination* does not resolve.
            NotFoundError: If *name* is not a child of that kind.
            NameCollisionError: If the destination already uses *name*.

        """
        target = resolve_path(self._fs, destination)
        self._fs.copy(self._cwd, name, kind, target)
        self._log(LogLevel.INFO, f"Copied {kind} {name} to {self._fs.path_of(target)}")

    # -- Content and queries ------------------------------------------------

    def write(self, name: str, data: bytes, mode: WriteMode = WriteMode.OVERWRITE) -> None:
        """Overwrite or append to a file in the current directory."""
        self._fs.write(self._cwd, name, data, mode)
        self._log(LogLevel.INFO, f"Wrote {len(data)} bytes to {name} ({mode})")

    def read(self, name: str) -> bytes:
        """Return the content of a file in the current directory."""
        return self._fs.read(self._cwd, name)

    def file_info(self, name: str) -> NodeInfo:
        """Return metadata for a file in the current directory."""
        return self._fs.stat(self._cwd, name)

    def directory_info(self) -> str:
        """Describe the current directory (name, path, child counts)."""
        return format_dir_info(self._fs, self._cwd)

    def search(self, pattern: str) -> list[str]:
        """Return file names in the current directory containing *pattern*."""
        return self._fs.search(self._cwd, pattern)

    def tree(self) -> str:
        """Render the whole tree from the root."""
        return render_tree(self._fs)

    # -- Store --------------------------------------------------------------

    def save(self) -> int:
        """Rewrite the store with the whole tree.

        Returns:
            The number of bytes written.

        Raises:
            StoreUnavailableError: If the store cannot be written.  The
                in-memory tree stays valid.

        """
        path = self._config.store_path
        try:
            size = dump_filesystem(self._fs, path)
        except StoreUnavailableError as e:
            self._log(LogLevel.ERROR, str(e), source=LogSource.STORE)
            raise
        self._log(LogLevel.INFO, f"Saved {size} bytes to {path}", source=LogSource.STORE)
        return size

    def _log(self, level: LogLevel, message: str, *, source: LogSource = LogSource.FS) -> None:
        """Record an event with the current path attached."""
        self._logger.log(level, message, source=source, path=self.cwd_path)
