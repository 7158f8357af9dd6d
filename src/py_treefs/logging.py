"""Audit trail of changes to the tree and the store.

Each entry says what happened, which part of the program reported it,
and which directory the cursor was in at the time.  ``log`` in the shell
reads it back, optionally narrowed to a minimum level and one source:

    log                  everything
    log WARNING          warnings and errors
    log INFO store       loads and saves only
    log clear            empty the trail
"""

from dataclasses import dataclass
from enum import IntEnum, StrEnum


class LogLevel(IntEnum):
    """Severity levels; IntEnum so ``min_level`` filtering is a comparison."""

    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3


class LogSource(StrEnum):
    """Who recorded an entry."""

    FS = "fs"
    STORE = "store"
    SHELL = "shell"


@dataclass(frozen=True)
class LogEntry:
    """One audit record.

    Attributes:
        level: How serious the event is.
        source: ``fs`` for tree mutations, ``store`` for loads and saves,
            ``shell`` for rejected commands.
        path: The cursor's directory when the event happened.
        message: What happened.

    """

    level: LogLevel
    source: LogSource
    path: str
    message: str

    def __str__(self) -> str:
        """Format as ``[LEVEL] source path: message``."""
        return f"[{self.level.name}] {self.source} {self.path}: {self.message}"


class Logger:
    """In-memory audit trail, oldest entry first."""

    def __init__(self) -> None:
        """Create an empty trail."""
        self._entries: list[LogEntry] = []

    @property
    def entries(self) -> list[LogEntry]:
        """Return a copy of every entry in the order recorded."""
        return list(self._entries)

    def log(self, level: LogLevel, message: str, *, source: LogSource, path: str) -> None:
        """Record an event reported by *source* with the cursor at *path*."""
        self._entries.append(LogEntry(level=level, source=source, path=path, message=message))

    def filter(
        self,
        *,
        min_level: LogLevel = LogLevel.DEBUG,
        source: LogSource | None = None,
    ) -> list[LogEntry]:
        """Return entries at or above *min_level*, from *source* if given."""
        return [
            e
            for e in self._entries
            if e.level >= min_level and (source is None or e.source == source)
        ]

    def clear(self) -> int:
        """Drop every entry and return how many there were."""
        dropped = len(self._entries)
        self._entries.clear()
        return dropped
