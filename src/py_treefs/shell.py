"""The shell — command interpreter for the file store.

The shell reads a command string, splits off the command word, passes
the rest of the line to the matching handler, and returns a string
result.  All work is done through the ``Session``, which owns the cursor
and the tree.

Design choices:
    - **Returns strings, not prints.**  This keeps the shell fully
      testable and leaves display to the caller (REPL or web UI).
    - **Command dispatch via a dict.**  Adding a command means writing
      a method and adding one dict entry.
    - **Arguments are kept as typed.**  Only the command word is split
      off, so a name like ``a  b`` keeps both spaces.
    - **Selection by number or name.**  Commands that act on an existing
      entry accept its 1-based number from ``ls`` or its exact name.
    - **Multi-line input is a mode.**  ``write`` switches the shell into
      collecting lines until the end marker; the REPL keeps feeding
      lines to ``execute`` as usual.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeAlias

from py_treefs.fs.errors import FsError, InvalidInputError, StoreUnavailableError
from py_treefs.fs.filesystem import FileType, WriteMode
from py_treefs.fs.listing import format_file_info, format_listing, format_names, select
from py_treefs.logging import LogLevel, LogSource
from py_treefs.session import PARENT_SELECTION, Session

# Type alias for a command handler: takes the rest of the line, returns output.
_Handler: TypeAlias = Callable[[str], str]

_DIR_FLAG = "-d"
_APPEND_FLAG = "-a"
_CONFIRM_WORD = "yes"
_SKIP_SAVE_WORD = "now"
_CLEAR_WORD = "clear"


def _split_first(text: str) -> tuple[str, str]:
    """Split off the first word; the remainder keeps its inner spacing."""
    parts = text.split(maxsplit=1)
    if not parts:
        return "", ""
    return parts[0], parts[1] if len(parts) > 1 else ""


def _strip_flag(text: str, flag: str) -> tuple[bool, str]:
    """Return whether *text* starts with *flag* as a word, and the rest."""
    first, rest = _split_first(text)
    if first == flag:
        return True, rest
    return False, text


@dataclass
class _PendingWrite:
    """A ``write`` command waiting for its content lines."""

    name: str
    mode: WriteMode
    lines: list[str] = field(default_factory=lambda: [])  # noqa: PIE807


class Shell:
    """Command interpreter bound to one session."""

    EXIT_SENTINEL = "__EXIT__"

    def __init__(self, *, session: Session) -> None:
        """Create a shell attached to a session.

        Args:
            session: The session whose cursor and tree commands act on.

        """
        self._session = session
        self._pending: _PendingWrite | None = None
        self._history: list[str] = []

        # Command dispatch table — maps command names to handler methods.
        self._commands: dict[str, _Handler] = {
            "help": self._cmd_help,
            "ls": self._cmd_ls,
            "pwd": self._cmd_pwd,
            "cd": self._cmd_cd,
            "mkdir": self._cmd_mkdir,
            "touch": self._cmd_touch,
            "batch": self._cmd_batch,
            "rm": self._cmd_rm,
            "rename": self._cmd_rename,
            "write": self._cmd_write,
            "cat": self._cmd_cat,
            "stat": self._cmd_stat,
            "info": self._cmd_info,
            "mv": self._cmd_mv,
            "cp": self._cmd_cp,
            "search": self._cmd_search,
            "tree": self._cmd_tree,
            "deleteall": self._cmd_deleteall,
            "save": self._cmd_save,
            "log": self._cmd_log,
            "history": self._cmd_history,
            "exit": self._cmd_exit,
        }

    @property
    def session(self) -> Session:
        """Return the session this shell operates on."""
        return self._session

    @property
    def command_names(self) -> list[str]:
        """Return the sorted list of command names."""
        return sorted(self._commands)

    @property
    def awaiting_input(self) -> bool:
        """Return True while a ``write`` is collecting content lines."""
        return self._pending is not None

    def execute(self, command: str) -> str:
        """Parse and execute one command, or one line of ``write`` input.

        Args:
            command: The raw input line (e.g. ``"mkdir docs"``).

        Returns:
            The command output, or ``Error: ...`` if it failed.

        """
        if self._pending is not None:
            return self._feed(command)

        stripped = command.strip()
        if not stripped:
            return ""
        self._history.append(stripped)

        name, rest = _split_first(stripped)
        handler = self._commands.get(name)
        if handler is None:
            return f"Unknown command: {name}"
        try:
            return handler(rest)
        except FsError as e:
            return self._report(name, e)

    # -- Input mode ---------------------------------------------------------

    def _feed(self, line: str) -> str:
        """Collect one line of ``write`` input; commit at the end marker."""
        assert self._pending is not None  # noqa: S101
        text = line.rstrip("\r\n")
        if text != self._session.config.end_marker:
            self._pending.lines.append(text)
            return ""
        pending, self._pending = self._pending, None
        data = "".join(f"{entry}\n" for entry in pending.lines).encode()
        try:
            self._session.write(pending.name, data, pending.mode)
        except FsError as e:
            return self._report("write", e)
        return "Write successful."

    # -- Helpers ------------------------------------------------------------

    def _report(self, command: str, error: FsError) -> str:
        """Log a failed command as a warning and format it for display."""
        self._session.logger.log(
            LogLevel.WARNING,
            f"{command}: {error}",
            source=LogSource.SHELL,
            path=self._session.cwd_path,
        )
        return f"Error: {error}"

    @staticmethod
    def _split_kind(text: str) -> tuple[FileType, str]:
        """Strip a leading ``-d`` flag and return the kind it selects."""
        directories, rest = _strip_flag(text, _DIR_FLAG)
        return (FileType.DIRECTORY if directories else FileType.FILE), rest

    def _choose(self, kind: FileType, token: str) -> str:
        """Resolve a number or name against the current directory's listing."""
        names = (
            self._session.subdirectories()
            if kind is FileType.DIRECTORY
            else self._session.files()
        )
        return select(names, token)

    # -- Command handlers ---------------------------------------------------

    def _cmd_help(self, _rest: str) -> str:
        """List available commands."""
        return "\n".join(
            [
                "Available commands: " + ", ".join(self.command_names),
                "Select entries by their number from 'ls' or by name.",
                "Use -d with rm, rename, mv and cp to act on a directory.",
                f"End 'write' input with '{self._session.config.end_marker}' on its own line.",
                "Paths for mv and cp start at the root, e.g. 'docs/notes'.",
                "log [LEVEL] [fs|store|shell] filters the audit trail; 'log clear' empties it.",
            ]
        )

    def _cmd_ls(self, _rest: str) -> str:
        """List the current directory with details."""
        return format_listing(self._session.fs, self._session.cwd)

    def _cmd_pwd(self, _rest: str) -> str:
        """Print the current path."""
        return self._session.cwd_path

    def _cmd_cd(self, rest: str) -> str:
        """Change directory by number, name, or ``..``."""
        choices = self._session.subdirectories()
        if self._session.fs.parent_of(self._session.cwd) is not None:
            choices.append(PARENT_SELECTION)
        if not rest:
            if not choices:
                return "(NO DIRECTORIES AVAILABLE)"
            return format_names(choices, heading="AVAILABLE DIRECTORIES:", empty="")
        selection = rest if rest == PARENT_SELECTION else select(choices, rest)
        return f"Now in: {self._session.change_directory(selection)}"

    def _cmd_mkdir(self, rest: str) -> str:
        """Create a directory."""
        if not rest:
            return "Usage: mkdir <name>"
        self._session.create_directory(rest)
        return "Directory created."

    def _cmd_touch(self, rest: str) -> str:
        """Create an empty file."""
        if not rest:
            return "Usage: touch <name>"
        self._session.create_file(rest)
        return "File created."

    def _cmd_batch(self, rest: str) -> str:
        """Create several files from a comma-separated list."""
        if not rest:
            return "Usage: batch <name1,name2,...>"
        results = self._session.batch_create(rest)
        if not results:
            return "No file names given."
        return "\n".join(
            f"{name}: created" if error is None else f"{name}: Error: {error}"
            for name, error in results
        )

    def _cmd_rm(self, rest: str) -> str:
        """Delete a file, or a directory with ``-d``."""
        kind, selection = self._split_kind(rest)
        if not selection:
            return "Usage: rm [-d] <number|name>"
        name = self._choose(kind, selection)
        if kind is FileType.DIRECTORY:
            self._session.delete_directory(name)
            return "Directory deleted."
        self._session.delete_file(name)
        return "File deleted."

    def _cmd_rename(self, rest: str) -> str:
        """Rename a file, or a directory with ``-d``."""
        kind, args = self._split_kind(rest)
        token, new = _split_first(args)
        if not new:
            return "Usage: rename [-d] <number|name> <new name>"
        old = self._choose(kind, token)
        self._session.rename(old, new, kind)
        return "Directory renamed." if kind is FileType.DIRECTORY else "File renamed."

    def _cmd_write(self, rest: str) -> str:
        """Start writing to a file; ``-a`` appends instead of overwriting."""
        append, selection = _strip_flag(rest, _APPEND_FLAG)
        if not selection:
            return "Usage: write [-a] <number|name>"
        name = self._choose(FileType.FILE, selection)
        mode = WriteMode.APPEND if append else WriteMode.OVERWRITE
        self._pending = _PendingWrite(name=name, mode=mode)
        marker = self._session.config.end_marker
        return f"Enter content (end with '{marker}' on a new line):"

    def _cmd_cat(self, rest: str) -> str:
        """Print a file's content."""
        if not rest:
            return "Usage: cat <number|name>"
        name = self._choose(FileType.FILE, rest)
        return self._session.read(name).decode(errors="replace")

    def _cmd_stat(self, rest: str) -> str:
        """Show a file's metadata."""
        if not rest:
            return "Usage: stat <number|name>"
        name = self._choose(FileType.FILE, rest)
        return format_file_info(self._session.file_info(name))

    def _cmd_info(self, _rest: str) -> str:
        """Show the current directory's metadata."""
        return self._session.directory_info()

    def _cmd_mv(self, rest: str) -> str:
        """Move a file (or ``-d`` directory) to a root-relative path."""
        kind, args = self._split_kind(rest)
        token, destination = _split_first(args)
        if not destination:
            return "Usage: mv [-d] <number|name> <path>"
        name = self._choose(kind, token)
        self._session.move(name, kind, destination)
        return "Directory moved." if kind is FileType.DIRECTORY else "File moved."

    def _cmd_cp(self, rest: str) -> str:
        """Copy a file (or ``-d`` directory, recursively) to a root-relative path."""
        kind, args = self._split_kind(rest)
        token, destination = _split_first(args)
        if not destination:
            return "Usage: cp [-d] <number|name> <path>"
        name = self._choose(kind, token)
        self._session.copy(name, kind, destination)
        return "Directory copied." if kind is FileType.DIRECTORY else "File copied."

    def _cmd_search(self, rest: str) -> str:
        """List files in the current directory whose names contain a pattern."""
        if not rest:
            return "Usage: search <pattern>"
        matches = self._session.search(rest)
        lines = ["SEARCH RESULTS:"]
        lines.extend(f"  {name}" for name in matches)
        if not matches:
            lines.append("  (NO MATCHING FILES)")
        return "\n".join(lines)

    def _cmd_tree(self, _rest: str) -> str:
        """Show the whole tree."""
        return self._session.tree()

    def _cmd_deleteall(self, rest: str) -> str:
        """Delete everything; requires ``deleteall yes``."""
        if not self._session.delete_all(confirm=rest == _CONFIRM_WORD):
            return (
                "WARNING: this deletes ALL files and directories.\n"
                f"Operation cancelled. Run 'deleteall {_CONFIRM_WORD}' to confirm."
            )
        return "All files and directories deleted."

    def _cmd_save(self, _rest: str) -> str:
        """Write the tree to the store now."""
        size = self._session.save()
        return f"Saved {size} bytes to {self._session.config.store_path}"

    def _cmd_log(self, rest: str) -> str:
        """Show the audit trail, narrowed by level and source, or clear it."""
        words = rest.split()
        logger = self._session.logger
        if words == [_CLEAR_WORD]:
            return f"Cleared {logger.clear()} log entries."
        min_level = LogLevel.DEBUG
        source: LogSource | None = None
        for word in words:
            if word.upper() in LogLevel.__members__:
                min_level = LogLevel[word.upper()]
            elif word.lower() in {s.value for s in LogSource}:
                source = LogSource(word.lower())
            else:
                msg = f"Unknown log level or source: {word}"
                raise InvalidInputError(msg)
        entries = logger.filter(min_level=min_level, source=source)
        return "\n".join(str(e) for e in entries) if entries else "No log entries."

    def _cmd_history(self, _rest: str) -> str:
        """Show previously entered commands."""
        return "\n".join(f"  {i}  {cmd}" for i, cmd in enumerate(self._history, start=1))

    def _cmd_exit(self, rest: str) -> str:
        """Save (unless disabled or ``exit now``) and signal the REPL to stop."""
        if self._session.config.autosave and rest != _SKIP_SAVE_WORD:
            try:
                self._session.save()
            except StoreUnavailableError as e:
                return f"Error: {e}\nUse 'exit {_SKIP_SAVE_WORD}' to quit without saving."
        return self.EXIT_SENTINEL
