"""Backup pipeline: probing, dumping, key naming, and retention.

The orchestrator lives in ``db_backup.backup.orchestrator`` and is
re-exported from the top-level ``db_backup`` package.

Usage:
    from db_backup.backup import plan_retention, wait_until_reachable
    from db_backup.backup import ReachabilityTimeout, DumpError
"""

from db_backup.backup.errors import (
    BackupError,
    CleanupError,
    DumpError,
    EmptyDumpError,
    ObjectStoreError,
    ReachabilityTimeout,
    UploadError,
)
from db_backup.backup.keys import BACKUP_SUFFIX, make_backup_key
from db_backup.backup.models import (
    BackupResult,
    CleanupOutcome,
    ObjectListing,
    RetentionDecision,
    StoredBackupObject,
)
from db_backup.backup.probe import BackoffPolicy, wait_until_reachable
from db_backup.backup.retention import cleanup_old_backups, plan_retention, reconcile
from db_backup.backup.dump import PgDumpProducer

__all__ = [
    # Errors
    "BackupError",
    "ReachabilityTimeout",
    "DumpError",
    "EmptyDumpError",
    "UploadError",
    "CleanupError",
    "ObjectStoreError",
    # Keys
    "BACKUP_SUFFIX",
    "make_backup_key",
    # Models
    "StoredBackupObject",
    "ObjectListing",
    "RetentionDecision",
    "CleanupOutcome",
    "BackupResult",
    # Stages
    "BackoffPolicy",
    "wait_until_reachable",
    "PgDumpProducer",
    "plan_retention",
    "reconcile",
    "cleanup_old_backups",
]
