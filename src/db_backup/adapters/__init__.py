"""Collaborator adapters package.

Provides the collaborator Protocols and their concrete implementations:
``PostgresProbe`` (SQLAlchemy async + asyncpg) and ``S3ObjectStore``
(boto3).

Usage:
    from db_backup.adapters import ObjectStore, PostgresProbe, S3ObjectStore
"""

from db_backup.adapters.base import DumpProducer, LivenessProbe, ObjectStore
from db_backup.adapters.postgres import PostgresProbe
from db_backup.adapters.s3 import S3ObjectStore

__all__ = [
    "LivenessProbe",
    "DumpProducer",
    "ObjectStore",
    "PostgresProbe",
    "S3ObjectStore",
]
