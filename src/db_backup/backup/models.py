"""Value models for backup runs, stored objects, and retention.

Usage:
    from db_backup.backup.models import StoredBackupObject, RetentionDecision

    obj = StoredBackupObject(key="backups/app/2025-01-01T10-00-00-000Z.sql.gz", size=1024)
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ============================================================================
# Object Store Models
# ============================================================================


class StoredBackupObject(BaseModel):
    """An object observed in a bucket listing."""

    key: str
    size: int = 0
    last_modified: datetime | None = None


class ObjectListing(BaseModel):
    """Result of listing a prefix.

    ``truncated`` is True when the listing stopped at a result cap while
    the store still had more objects under the prefix.
    """

    objects: list[StoredBackupObject] = Field(default_factory=list)
    truncated: bool = False


# ============================================================================
# Retention Models
# ============================================================================


class RetentionDecision(BaseModel):
    """Partition of the current backup objects into keep and delete."""

    keep: list[StoredBackupObject] = Field(default_factory=list)
    delete: list[StoredBackupObject] = Field(default_factory=list)

    @property
    def total(self) -> int:
        """Number of backup objects the decision was computed from."""
        return len(self.keep) + len(self.delete)


class CleanupOutcome(BaseModel):
    """Result of the best-effort retention step.

    A cleanup that removed only some of the stale objects still counts as
    a completed step; the shortfall is reported in ``failed``.
    """

    found: int = 0
    deleted: list[str] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict)  # key -> error message
    skipped_reason: str | None = None
    error: str | None = None

    @property
    def deleted_count(self) -> int:
        """Number of objects actually removed."""
        return len(self.deleted)

    @property
    def success(self) -> bool:
        """True when the step ran and every intended deletion succeeded."""
        return self.error is None and not self.failed


# ============================================================================
# Stage Results
# ============================================================================


class ProbeReport(BaseModel):
    """Result of a successful reachability wait."""

    attempts: int
    elapsed: float


class DumpResult(BaseModel):
    """Compressed dump produced by the dump pipeline."""

    data: bytes
    raw_size: int
    elapsed: float = 0.0

    @property
    def size(self) -> int:
        """Compressed size in bytes."""
        return len(self.data)


class BackupResult(BaseModel):
    """Result of one backup run."""

    bucket: str
    key: str
    size_bytes: int
    raw_size_bytes: int = 0
    probe_attempts: int = 0
    cleanup: CleanupOutcome = Field(default_factory=CleanupOutcome)
