"""db-backup: unattended PostgreSQL backups to S3-compatible storage.

Waits for a (possibly suspended) database to accept connections, streams
``pg_dump`` through ``gzip``, uploads the result under a timestamped key
and prunes backups beyond a retention count.

Usage:
    from db_backup import load_backup_config, run_backup

    result = await run_backup(load_backup_config())
"""

__version__ = "0.1.0"

# Adapters
from db_backup.adapters.base import DumpProducer, LivenessProbe, ObjectStore
from db_backup.adapters.postgres import PostgresProbe
from db_backup.adapters.s3 import S3ObjectStore

# Config
from db_backup.config.loader import ConfigError, load_backup_config
from db_backup.config.models import BackupConfig

# Pipeline
from db_backup.backup.dump import PgDumpProducer
from db_backup.backup.errors import (
    BackupError,
    CleanupError,
    DumpError,
    EmptyDumpError,
    ObjectStoreError,
    ReachabilityTimeout,
    UploadError,
)
from db_backup.backup.models import BackupResult, CleanupOutcome, StoredBackupObject
from db_backup.backup.orchestrator import run_backup
from db_backup.backup.probe import BackoffPolicy, wait_until_reachable
from db_backup.backup.retention import cleanup_old_backups, plan_retention, reconcile

__all__ = [
    # Adapters
    "LivenessProbe",
    "DumpProducer",
    "ObjectStore",
    "PostgresProbe",
    "S3ObjectStore",
    # Config
    "load_backup_config",
    "BackupConfig",
    "ConfigError",
    # Pipeline
    "run_backup",
    "wait_until_reachable",
    "BackoffPolicy",
    "PgDumpProducer",
    "plan_retention",
    "reconcile",
    "cleanup_old_backups",
    # Models
    "StoredBackupObject",
    "CleanupOutcome",
    "BackupResult",
    # Errors
    "BackupError",
    "ReachabilityTimeout",
    "DumpError",
    "EmptyDumpError",
    "UploadError",
    "CleanupError",
    "ObjectStoreError",
]
