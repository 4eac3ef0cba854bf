"""Error taxonomy for the backup and restore engine."""

from __future__ import annotations


class BackupError(Exception):
    """Base class for every error raised by the backup engine."""


class MalformedSnapshot(BackupError):
    """Bytes do not decode to a valid snapshot. Never destructive."""


class IncompatibleSchema(BackupError):
    """Snapshot was written by a newer schema than this build understands."""

    def __init__(self, current: int, found: int) -> None:
        super().__init__(
            f"Snapshot schema version {found} is newer than supported version {current}"
        )
        self.current = current
        self.found = found


class StoreUnavailable(BackupError):
    """The local data store cannot be opened or queried."""


class RemoteUnavailable(BackupError):
    """The shared backup folder is not configured or not reachable."""


class NetworkUnavailable(BackupError):
    """No network connectivity for a remote backup operation."""


class DevBackupOnProdBuild(BackupError):
    """A development backup may not be restored into a production build."""

    def __init__(self, file_name: str) -> None:
        super().__init__(f"Refusing to restore development backup {file_name} on a production build")
        self.file_name = file_name


class RestoreFailed(BackupError):
    """Restore failed; any automatic rollback has already completed."""

    def __init__(self, cause: BaseException) -> None:
        super().__init__(f"Restore failed: {cause}")
        self.cause = cause


class RollbackFailed(BackupError):
    """Restore failed and so did the rollback. Local data may be lost."""

    def __init__(self, cause: BaseException, original: BaseException) -> None:
        super().__init__(
            f"Rollback after failed restore also failed: {cause} "
            f"(restore error: {original}). Local data may be empty or incomplete."
        )
        self.cause = cause
        self.original = original


class SchedulingError(BackupError):
    """The task scheduler rejected a request."""
