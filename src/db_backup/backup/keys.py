"""Object key construction for stored backups.

Keys embed a UTC timestamp whose lexical order matches chronological
order, so sorting keys sorts backups oldest first::

    backups/app/2025-01-01T10-00-00-000Z.sql.gz
"""

from datetime import datetime, timezone

BACKUP_SUFFIX = ".sql.gz"
BACKUP_CONTENT_TYPE = "application/gzip"


def ensure_trailing_slash(prefix: str) -> str:
    """Return ``prefix`` ending in exactly one ``/`` (empty stays empty)."""
    if not prefix or prefix.endswith("/"):
        return prefix
    return f"{prefix}/"


def format_key_timestamp(moment: datetime) -> str:
    """Format ``moment`` as an ISO-8601 UTC timestamp safe for object keys.

    ``:`` and ``.`` are replaced by ``-``, and the time is always rendered
    with millisecond precision so every key has the same width.

    Example:
        >>> format_key_timestamp(datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc))
        '2025-01-01T10-00-00-000Z'
    """
    if moment.tzinfo is None:
        raise ValueError("Backup timestamps must be timezone-aware")
    utc = moment.astimezone(timezone.utc)
    iso = utc.strftime("%Y-%m-%dT%H:%M:%S") + f".{utc.microsecond // 1000:03d}Z"
    return iso.replace(":", "-").replace(".", "-")


def make_backup_key(prefix: str, now: datetime | None = None) -> str:
    """Build the object key for a backup taken at ``now`` (default: current time)."""
    moment = now or datetime.now(timezone.utc)
    return f"{ensure_trailing_slash(prefix)}{format_key_timestamp(moment)}{BACKUP_SUFFIX}"
