"""Backup retention: keep the newest N backups under a prefix.

Retention is recomputed from a live listing on every run, so a crashed
or interrupted cleanup is simply finished by the next run.  Object keys
embed a sortable UTC timestamp (see ``db_backup.backup.keys``), which
makes ascending key order equal oldest-first.

Usage:
    from db_backup.backup.retention import cleanup_old_backups

    outcome = await cleanup_old_backups(store, "backups/app/", max_count=30)
    print(outcome.deleted_count, outcome.failed)
"""

import logging
from collections.abc import Iterable

from db_backup.adapters.base import ObjectStore
from db_backup.backup.errors import CleanupError
from db_backup.backup.keys import BACKUP_SUFFIX
from db_backup.backup.models import CleanupOutcome, RetentionDecision, StoredBackupObject

logger = logging.getLogger(__name__)


def plan_retention(
    objects: Iterable[StoredBackupObject],
    max_count: int,
    suffix: str = BACKUP_SUFFIX,
) -> RetentionDecision:
    """Split backup objects into those to keep and those to delete.

    Objects whose key does not end with ``suffix`` are ignored (neither
    kept nor deleted) since a shared prefix may hold unrelated files.

    Args:
        objects: Current objects under the backup prefix.
        max_count: Number of newest backups to keep.
        suffix: Key suffix identifying backup files.

    Returns:
        ``RetentionDecision`` with ``delete`` holding the oldest
        ``count - max_count`` backups in ascending key order.

    Raises:
        ValueError: If ``max_count`` is negative.
    """
    if max_count < 0:
        raise ValueError(f"max_count must not be negative, got {max_count}")

    backups = sorted(
        (obj for obj in objects if obj.key.endswith(suffix)),
        key=lambda obj: obj.key,
    )
    excess = len(backups) - max_count
    if excess <= 0:
        return RetentionDecision(keep=backups, delete=[])
    return RetentionDecision(keep=backups[excess:], delete=backups[:excess])


async def reconcile(
    store: ObjectStore,
    objects: Iterable[StoredBackupObject],
    max_count: int,
) -> CleanupOutcome:
    """Delete backups beyond ``max_count``, oldest first.

    Each deletion is attempted independently: a failure is logged and
    recorded in ``CleanupOutcome.failed`` and the loop moves on.

    Returns:
        ``CleanupOutcome``; ``deleted_count`` is the number removed.
    """
    decision = plan_retention(objects, max_count)
    outcome = CleanupOutcome(found=decision.total)

    if not decision.delete:
        logger.info(
            f"{decision.total} backup(s) found, within retention limit. No cleanup needed."
        )
        return outcome

    logger.info(f"Deleting {len(decision.delete)} old backup(s)...")
    for obj in decision.delete:
        try:
            await store.delete(obj.key)
        except Exception as e:
            logger.error(f"  Failed to delete {obj.key}: {e}")
            outcome.failed[obj.key] = str(e)
            continue
        logger.info(f"  Deleted: {obj.key}")
        outcome.deleted.append(obj.key)

    if outcome.failed:
        logger.warning(
            f"Cleanup deleted {outcome.deleted_count} of {len(decision.delete)} "
            f"old backup(s); {len(outcome.failed)} failed"
        )
    else:
        logger.info("Cleanup completed.")
    return outcome


async def cleanup_old_backups(
    store: ObjectStore,
    prefix: str,
    max_count: int,
    list_limit: int | None = None,
) -> CleanupOutcome:
    """List ``prefix`` and apply retention to what is there.

    A listing cut short by ``list_limit`` is never used to pick deletions;
    the step is skipped with ``skipped_reason`` set instead.

    Raises:
        CleanupError: If the listing itself failed.
    """
    logger.info(f"Checking backup retention (max: {max_count})...")
    try:
        listing = await store.list(prefix, max_results=list_limit)
    except Exception as e:
        raise CleanupError(f"Could not list backups under {prefix}: {e}") from e

    if listing.truncated:
        reason = (
            f"listing under {prefix} was truncated at {len(listing.objects)} objects; "
            f"retention not applied"
        )
        logger.warning(f"Skipping cleanup: {reason}")
        return CleanupOutcome(found=len(listing.objects), skipped_reason=reason)

    return await reconcile(store, listing.objects, max_count)
