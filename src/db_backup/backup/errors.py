"""Exception types for the backup pipeline.

Fatal stage failures (``ReachabilityTimeout``, ``DumpError``,
``EmptyDumpError``, ``UploadError``) abort a run.  ``CleanupError`` is
raised by the retention step and is turned into a non-fatal
``CleanupOutcome`` by the orchestrator.
"""


class BackupError(Exception):
    """Base class for backup pipeline failures."""

    pass


class ReachabilityTimeout(BackupError):
    """Raised when the database never answered a probe before the deadline."""

    def __init__(
        self,
        attempts: int,
        elapsed: float,
        timeout: float,
        last_error: BaseException | None = None,
    ) -> None:
        self.attempts = attempts
        self.elapsed = elapsed
        self.timeout = timeout
        self.last_error = last_error
        message = (
            f"Database not reachable after {elapsed:.1f}s "
            f"(timeout {timeout:g}s, {attempts} attempts)"
        )
        if last_error is not None:
            message += f": {last_error}"
        super().__init__(message)


class DumpError(BackupError):
    """Raised when the dump pipeline fails."""

    pass


class EmptyDumpError(DumpError):
    """Raised when the dump pipeline produced no data."""

    pass


class UploadError(BackupError):
    """Raised when the dump could not be stored."""

    pass


class CleanupError(BackupError):
    """Raised when retention cleanup could not run."""

    pass


class ObjectStoreError(BackupError):
    """Raised by object store gateways on storage API failures."""

    pass
