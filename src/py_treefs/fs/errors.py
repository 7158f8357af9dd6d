"""Error taxonomy for the file store.

Every failure a structural operation can report is an ``FsError``
subclass.  The operation aborts before mutating anything, so catching
``FsError`` at the command layer is always safe: the tree is unchanged.
"""


class FsError(Exception):
    """Base class for all file store errors."""


class NameCollisionError(FsError):
    """Raise when a name is already used by a file or directory in the target."""


class NotFoundError(FsError):
    """Raise when a referenced file or directory does not exist."""


class InvalidSelectionError(FsError):
    """Raise when a selection (index, name, or ``..``) does not match anything."""


class PathNotFoundError(InvalidSelectionError):
    """Raise when a path segment does not name an existing subdirectory."""


class InvalidInputError(FsError):
    """Raise when input is unusable, e.g. a non-numeric index or a bad name."""


class StoreUnavailableError(FsError):
    """Raise when the store file exists but cannot be read or written."""


class MalformedRecordError(FsError):
    """Raise when a persisted record cannot be parsed.

    Attributes:
        offset: Byte offset of the offending record in the store.

    """

    def __init__(self, message: str, *, offset: int) -> None:
        """Create the error with the byte offset of the bad record."""
        super().__init__(f"{message} (at byte {offset})")
        self.offset = offset
