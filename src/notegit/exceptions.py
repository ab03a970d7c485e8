"""Custom exceptions for notegit."""


class NoteGitError(Exception):
    """Base exception for notegit."""


class ConfigError(NoteGitError):
    """Raised when configuration is invalid."""


class ConfigMissing(ConfigError):
    """Raised when no configuration has been saved yet (setup was never run)."""


class ExtractionError(NoteGitError):
    """Raised when notes cannot be read out of the source database.

    Fatal to an export run.
    """

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class SnapshotError(ExtractionError):
    """Raised when the database copy could not be made or verified."""

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        attempts: int = 0,
    ):
        super().__init__(message, cause)
        self.attempts = attempts


class DatabaseError(ExtractionError):
    """Raised when the snapshot cannot be opened or queried."""


class LockedOrCorruptPayload(NoteGitError):
    """Raised when a note body cannot be decompressed.

    Usually means the note is password protected. The note is skipped.
    """


class RecordWriteError(NoteGitError):
    """Raised when a single note cannot be written to disk."""


class SyncError(NoteGitError):
    """Raised when the git add/commit/push step fails."""

    def __init__(self, message: str, stderr: str = ""):
        super().__init__(message)
        self.stderr = stderr
