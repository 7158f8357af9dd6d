"""Context-aware tab completer for the file store shell.

The completer separates **what to complete** (pure logic, fully
testable) from **how to wire it** (readline integration in the REPL).

The ``complete(text, state)`` method is the readline callback.  It
delegates to ``completions(text, line)`` which analyses the input
context and returns a list of candidate strings.
"""

from __future__ import annotations

import readline
from typing import TYPE_CHECKING

from py_treefs.fs.errors import PathNotFoundError
from py_treefs.fs.filesystem import FileType
from py_treefs.fs.paths import resolve_path
from py_treefs.logging import LogLevel, LogSource
from py_treefs.session import PARENT_SELECTION

if TYPE_CHECKING:
    from py_treefs.session import Session
    from py_treefs.shell import Shell

# Commands whose first argument is a file in the current directory.
_FILE_COMMANDS: frozenset[str] = frozenset(["cat", "stat", "write"])

# Commands whose first argument is a file, or a directory after ``-d``.
_KIND_COMMANDS: frozenset[str] = frozenset(["rm", "rename", "mv", "cp"])

# Commands whose last argument is a root-relative destination path.
_DESTINATION_COMMANDS: frozenset[str] = frozenset(["mv", "cp"])

_LOG_CLEAR = "clear"


class Completer:
    """Context-aware tab completer for the file store shell."""

    def __init__(self, shell: Shell) -> None:
        """Create a completer attached to a shell instance.

        Args:
            shell: The shell whose commands and session are used to
                   generate completion candidates.

        """
        self._shell = shell
        self._session: Session = shell.session

    def complete(self, text: str, state: int) -> str | None:
        """Readline callback — return the *state*-th candidate for *text*.

        Args:
            text: The partial word being completed.
            state: Index into the candidate list (0, 1, 2, …).

        Returns:
            The candidate at *state*, or ``None`` when exhausted.

        """
        line = readline.get_line_buffer()
        candidates = self.completions(text, line)
        if state < len(candidates):
            return candidates[state]
        return None

    def completions(self, text: str, line: str) -> list[str]:
        """Return completion candidates based on context.

        Args:
            text: The partial word under the cursor.
            line: The full input line so far.

        Returns:
            Sorted list of matching candidates.

        """
        if self._shell.awaiting_input:
            return []

        words = line.lstrip().split()

        # No words yet, or still typing the first word → command completion
        if not words or (len(words) == 1 and not line.endswith(" ")):
            return [cmd for cmd in self._shell.command_names if cmd.startswith(text)]

        # Index of the word being completed (a trailing space starts a new one).
        position = len(words) if line.endswith(" ") else len(words) - 1
        return self._complete_argument(words, position, text)

    # -- private completers ------------------------------------------------

    def _complete_argument(self, words: list[str], position: int, text: str) -> list[str]:
        """Dispatch argument completion based on the command and position."""
        cmd = words[0]
        args = words[1:position]

        if cmd == "cd" and position == 1:
            choices = self._session.subdirectories()
            if self._session.fs.parent_of(self._session.cwd) is not None:
                choices.append(PARENT_SELECTION)
            return sorted(c for c in choices if c.startswith(text))

        if cmd == "log" and position in (1, 2):
            choices = [source.value for source in LogSource if source.startswith(text)]
            if position == 1:
                prefix = text.upper()
                choices.extend(level.name for level in LogLevel if level.name.startswith(prefix))
                if _LOG_CLEAR.startswith(text):
                    choices.append(_LOG_CLEAR)
            return sorted(choices)

        if cmd in _FILE_COMMANDS:
            if args in ([], ["-a"]):
                return [n for n in self._session.files() if n.startswith(text)]
            return []

        if cmd in _KIND_COMMANDS:
            directories = bool(args) and args[0] == "-d"
            selectors = args[1:] if directories else args
            if not selectors:
                names = self._session.subdirectories() if directories else self._session.files()
                return [n for n in names if n.startswith(text)]
            if cmd in _DESTINATION_COMMANDS and len(selectors) == 1:
                return self._complete_destination(text)

        return []

    def _complete_destination(self, text: str) -> list[str]:
        """Complete a root-relative directory path, adding a trailing ``/``."""
        last_slash = text.rfind("/")
        directory = text[: last_slash + 1]
        prefix = text[last_slash + 1 :]
        try:
            handle = resolve_path(self._session.fs, directory)
        except PathNotFoundError:
            return []
        names = self._session.fs.names(handle, FileType.DIRECTORY)
        return [f"{directory}{name}/" for name in names if name.startswith(prefix)]
