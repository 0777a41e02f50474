"""Collaborator protocols consumed by the backup pipeline.

Defines the ``LivenessProbe``, ``DumpProducer`` and ``ObjectStore``
Protocols.  All methods are ``async def``; the pipeline runs on a
single event loop.

Usage:
    from db_backup.adapters.base import ObjectStore

    async def newest(store: ObjectStore, prefix: str) -> str | None:
        listing = await store.list(prefix)
        keys = sorted(obj.key for obj in listing.objects)
        return keys[-1] if keys else None
"""

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from db_backup.backup.models import DumpResult, ObjectListing


class LivenessProbe(Protocol):
    """A minimal check that the database accepts requests."""

    async def ping(self) -> None:
        """Run one liveness check.

        Implementations must acquire and release their own connection on
        every call, success or failure.

        Raises:
            Exception: If the database did not answer.
        """
        ...


class DumpProducer(Protocol):
    """Produces a compressed dump of a database."""

    async def produce(self, database_url: str) -> "DumpResult":
        """Dump the database at ``database_url``.

        Raises:
            DumpError: If the dump pipeline failed.
            EmptyDumpError: If the pipeline produced no data.
        """
        ...


class ObjectStore(Protocol):
    """S3-style object storage: put, list under a prefix, delete.

    Implementations raise ``ObjectStoreError`` on storage failures.
    """

    async def put(self, key: str, data: bytes, content_type: str) -> None:
        """Store ``data`` under ``key`` in a single request.

        Example:
            await store.put("backups/app/x.sql.gz", payload, "application/gzip")
        """
        ...

    async def list(self, prefix: str, max_results: int | None = None) -> "ObjectListing":
        """List objects whose key starts with ``prefix``.

        Args:
            prefix: Key prefix.
            max_results: Stop after this many objects.  ``None`` lists
                everything.  When the cap stops the listing early the
                result has ``truncated=True``.

        Returns:
            ``ObjectListing`` in the store's key order.
        """
        ...

    async def delete(self, key: str) -> None:
        """Delete the object stored under ``key``."""
        ...
