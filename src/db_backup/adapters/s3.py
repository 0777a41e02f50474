"""S3-compatible object store gateway.

Provides ``S3ObjectStore``, an async ``ObjectStore`` implementation over
``boto3``.  Works with AWS S3 and S3-compatible services (Cloudflare R2,
MinIO) through a custom endpoint and path-style addressing.

boto3 clients are blocking; every call runs in a daemon thread whose result
is handed back to the event loop.  Cancelling the awaiting task abandons
the call, and a pending request never holds up interpreter exit.

Usage:
    from db_backup.adapters.s3 import S3ObjectStore

    store = S3ObjectStore.from_config(config)
    await store.put("backups/app/x.sql.gz", data, "application/gzip")
    listing = await store.list("backups/app/")
"""

import asyncio
import logging
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from db_backup.backup.errors import ObjectStoreError
from db_backup.backup.models import ObjectListing, StoredBackupObject

if TYPE_CHECKING:
    from db_backup.config.models import BackupConfig

logger = logging.getLogger(__name__)

# ListObjectsV2 returns at most 1000 keys per request
LIST_PAGE_SIZE = 1000


def _settle(future: asyncio.Future, result: Any, error: BaseException | None) -> None:
    if future.done():
        return
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(result)


async def run_in_daemon_thread(func: Callable[..., Any], **kwargs: Any) -> Any:
    """Run blocking ``func(**kwargs)`` in a daemon thread and await its result.

    Unlike ``asyncio.to_thread``, the call is not tied to the loop's default
    executor: after cancellation neither ``asyncio.run`` shutdown nor
    interpreter exit waits for it to finish.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future = loop.create_future()

    def _target() -> None:
        try:
            result, error = func(**kwargs), None
        except BaseException as e:
            result, error = None, e
        try:
            loop.call_soon_threadsafe(_settle, future, result, error)
        except RuntimeError:
            # Loop closed after the awaiting task was cancelled
            pass

    threading.Thread(target=_target, name="s3-call", daemon=True).start()
    return await future


def create_s3_client(
    region: str,
    endpoint: str | None,
    access_key_id: str,
    secret_access_key: str,
) -> Any:
    """Create a boto3 S3 client with path-style addressing and retries."""
    boto_config = BotoConfig(
        region_name=region,
        retries={"max_attempts": 3, "mode": "adaptive"},
        s3={"addressing_style": "path"},
    )
    return boto3.client(
        "s3",
        endpoint_url=endpoint,
        aws_access_key_id=access_key_id,
        aws_secret_access_key=secret_access_key,
        config=boto_config,
    )


class S3ObjectStore:
    """``ObjectStore`` backed by a single S3 bucket.

    Args:
        client: A boto3 S3 client (or anything with the same methods).
        bucket: Bucket name.
    """

    def __init__(self, client: Any, bucket: str) -> None:
        self._client = client
        self.bucket = bucket

    @classmethod
    def from_config(cls, config: "BackupConfig") -> "S3ObjectStore":
        """Build a store from the bucket, endpoint and credentials in ``config``."""
        client = create_s3_client(
            region=config.s3_region,
            endpoint=config.s3_endpoint,
            access_key_id=config.s3_access_key_id,
            secret_access_key=config.s3_secret_access_key.get_secret_value(),
        )
        return cls(client, config.s3_bucket)

    async def _call(self, operation: str, **kwargs: Any) -> dict:
        """Run one boto3 client method in a thread, wrapping botocore errors."""
        method = getattr(self._client, operation)
        try:
            return await run_in_daemon_thread(method, **kwargs)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "Unknown")
            raise ObjectStoreError(
                f"{operation} failed for s3://{self.bucket} ({code}): {e}"
            ) from e
        except BotoCoreError as e:
            raise ObjectStoreError(f"{operation} failed for s3://{self.bucket}: {e}") from e

    async def put(self, key: str, data: bytes, content_type: str) -> None:
        """Upload ``data`` under ``key`` with a single ``PutObject`` request."""
        await self._call(
            "put_object",
            Bucket=self.bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
        )

    async def list(self, prefix: str, max_results: int | None = None) -> ObjectListing:
        """List objects under ``prefix``, following continuation tokens.

        With ``max_results=None`` every page is fetched.  Otherwise the
        listing stops once ``max_results`` objects were collected and
        reports ``truncated=True`` if the bucket had more.
        """
        if max_results is not None and max_results <= 0:
            raise ValueError(f"max_results must be positive, got {max_results}")

        objects: list[StoredBackupObject] = []
        token: str | None = None

        while True:
            page_size = LIST_PAGE_SIZE
            if max_results is not None:
                page_size = min(page_size, max_results - len(objects))

            kwargs: dict[str, Any] = {
                "Bucket": self.bucket,
                "Prefix": prefix,
                "MaxKeys": page_size,
            }
            if token:
                kwargs["ContinuationToken"] = token

            response = await self._call("list_objects_v2", **kwargs)

            for item in response.get("Contents", []):
                objects.append(
                    StoredBackupObject(
                        key=item["Key"],
                        size=item.get("Size", 0),
                        last_modified=item.get("LastModified"),
                    )
                )

            if not response.get("IsTruncated"):
                return ObjectListing(objects=objects, truncated=False)

            if max_results is not None and len(objects) >= max_results:
                logger.warning(
                    f"Listing of s3://{self.bucket}/{prefix} stopped at "
                    f"{max_results} objects; more objects exist"
                )
                return ObjectListing(objects=objects, truncated=True)

            token = response.get("NextContinuationToken")
            if not token:
                raise ObjectStoreError(
                    f"list_objects_v2 for s3://{self.bucket}/{prefix} was truncated "
                    f"without a continuation token"
                )

    async def delete(self, key: str) -> None:
        """Delete ``key`` from the bucket."""
        await self._call("delete_object", Bucket=self.bucket, Key=key)
