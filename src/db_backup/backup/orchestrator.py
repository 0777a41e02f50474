"""One backup cycle: probe, dump, upload, prune.

Stage order is fixed.  The database must answer a probe before the dump
starts, and the new backup must be stored before any old backup is
deleted.  Probe, dump and upload failures abort the run; the retention
step never does, its failures come back as a ``CleanupOutcome``.

Usage:
    from db_backup.backup.orchestrator import run_backup
    from db_backup.config import load_backup_config

    result = await run_backup(load_backup_config())
    print(result.key, result.cleanup.deleted_count)
"""

import logging
from datetime import datetime

from db_backup.adapters.base import DumpProducer, LivenessProbe, ObjectStore
from db_backup.adapters.postgres import PostgresProbe, redact_url
from db_backup.adapters.s3 import S3ObjectStore
from db_backup.backup.dump import PgDumpProducer
from db_backup.backup.errors import UploadError
from db_backup.backup.keys import BACKUP_CONTENT_TYPE, make_backup_key
from db_backup.backup.models import BackupResult, CleanupOutcome
from db_backup.backup.probe import BackoffPolicy, wait_until_reachable
from db_backup.backup.retention import cleanup_old_backups
from db_backup.config.models import BackupConfig

logger = logging.getLogger(__name__)


async def run_cleanup_step(store: ObjectStore, config: BackupConfig) -> CleanupOutcome:
    """Run retention as a best-effort step; never raises ``Exception``."""
    try:
        return await cleanup_old_backups(
            store,
            config.backup_prefix,
            config.backup_max_count,
            list_limit=config.backup_list_limit,
        )
    except Exception as e:
        logger.error(f"Cleanup failed (non-fatal): {e}")
        return CleanupOutcome(error=str(e))


async def run_backup(
    config: BackupConfig,
    *,
    probe: LivenessProbe | None = None,
    producer: DumpProducer | None = None,
    store: ObjectStore | None = None,
    policy: BackoffPolicy | None = None,
    now: datetime | None = None,
) -> BackupResult:
    """Run one backup cycle.

    Collaborators default to ``PostgresProbe``, ``PgDumpProducer`` and
    ``S3ObjectStore`` built from ``config``.

    Args:
        config: Run configuration.
        probe: Liveness probe for the source database.
        producer: Dump pipeline.
        store: Object store holding the backups.
        policy: Probe backoff timing.
        now: Timestamp for the backup key (default: current UTC time).

    Returns:
        ``BackupResult`` for the stored backup, including the cleanup outcome.

    Raises:
        ReachabilityTimeout: Database never became reachable.
        DumpError: Dump failed or produced no data (``EmptyDumpError``).
        UploadError: The backup could not be stored.
    """
    if probe is None:
        probe = PostgresProbe(config.database_url)
    if producer is None:
        producer = PgDumpProducer.from_config(config)
    if store is None:
        store = S3ObjectStore.from_config(config)

    logger.info("Starting backup...")
    logger.info(f"Database: {redact_url(config.database_url)}")
    logger.info(f"S3 bucket: {config.s3_bucket}")
    logger.info(f"S3 endpoint: {config.s3_endpoint or '(default)'}")
    logger.info(f"Prefix: {config.backup_prefix}")
    logger.info(f"Retention: {config.backup_max_count} backups")

    report = await wait_until_reachable(probe, config.pg_connect_timeout, policy)

    dump = await producer.produce(config.database_url)

    key = make_backup_key(config.backup_prefix, now)
    logger.info(
        f"Uploading to s3://{config.s3_bucket}/{key} ({dump.size / 1024 / 1024:.2f} MB)..."
    )
    try:
        await store.put(key, dump.data, BACKUP_CONTENT_TYPE)
    except Exception as e:
        raise UploadError(f"Upload of {key} failed: {e}") from e
    logger.info("Upload completed")

    cleanup = await run_cleanup_step(store, config)

    logger.info("Backup completed successfully.")
    return BackupResult(
        bucket=config.s3_bucket,
        key=key,
        size_bytes=dump.size,
        raw_size_bytes=dump.raw_size,
        probe_attempts=report.attempts,
        cleanup=cleanup,
    )
