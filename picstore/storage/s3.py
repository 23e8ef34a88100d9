"""
S3-compatible object storage implementation.

Works against AWS S3 or any S3 API (MinIO, R2, ...). Object keys are the
asset locations, optionally under a key prefix:

    <prefix>/ab/cd/abcdef.jpg
    <prefix>/ab/cd/abcdef_small.jpg

A single PUT is atomic from a reader's perspective, so objects are never
observed half-written.
"""
import asyncio
import mimetypes
import tempfile
import threading
from typing import IO, Any, AsyncIterator, Iterable, Mapping

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from picstore.logging_config import setup_logging
from picstore.services.thumbnails import crop
from picstore.storage.base import Deriver, SizeSpecs, StorageBackend
from picstore.storage.exceptions import (
    ContainerCreationError,
    FileSizeExceededError,
    StorageError,
    TransferError,
)
from picstore.storage.locations import (
    ORIGINAL,
    join_url,
    locate,
    normalize_base_url,
    validate_key,
    validate_sizes,
)

logger = setup_logging()

NOT_FOUND_CODES = ("404", "NoSuchKey", "NotFound")
NO_BUCKET_CODES = ("404", "NoSuchBucket", "NotFound")
BUCKET_EXISTS_CODES = ("BucketAlreadyOwnedByYou", "BucketAlreadyExists")

# Originals larger than this are spooled to disk before upload
SPOOL_SIZE = 8 * 1024 * 1024


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


def default_base_url(bucket: str, region: str | None = None) -> str:
    """Public virtual-hosted URL of a bucket."""
    if region:
        return f"https://{bucket}.s3.{region}.amazonaws.com/"
    return f"https://{bucket}.s3.amazonaws.com/"


class S3StorageBackend(StorageBackend):
    """
    Object storage backed by an S3 bucket.

    boto3 calls block, so each one runs in a worker thread. The bucket is
    created on first write if it does not exist yet.
    """

    def __init__(
        self,
        bucket: str,
        prefix: str = "",
        base_url: str | None = None,
        deriver: Deriver | None = None,
        region: str | None = None,
        endpoint_url: str | None = None,
        client: Any = None,
        max_size_mb: int = 20,
    ):
        """
        Initialize S3 storage backend.

        Args:
            bucket: Bucket name
            prefix: Key prefix inside the bucket
            base_url: Public URL (e.g. a CDN) serving the bucket root
            deriver: Size-derivation callback (default Pillow crop)
            region: AWS region
            endpoint_url: Custom S3 endpoint (MinIO etc.)
            client: Pre-built S3 client, mainly for tests
            max_size_mb: Maximum size of an original in MB
        """
        if not bucket:
            raise ValueError("S3 bucket name is required")

        self._bucket = bucket
        self._prefix = prefix.strip("/")
        self._region = region
        self._base_url = normalize_base_url(base_url or default_base_url(bucket, region))
        self._deriver = deriver or crop
        self._max_size_bytes = max_size_mb * 1024 * 1024

        if client is None:
            session = boto3.session.Session(region_name=region) if region else boto3.session.Session()
            client = session.client("s3", endpoint_url=endpoint_url)
        self._client = client

        # Set once the bucket is known to exist; never reset
        self._bucket_ready = False
        self._bucket_lock = threading.Lock()

    @property
    def bucket(self) -> str:
        return self._bucket

    @property
    def base_url(self) -> str:
        return self._base_url

    def resolve(
        self,
        key: str,
        sizes: Iterable[str] | Mapping[str, Any],
    ) -> dict[str, str]:
        """Build public URLs for the original and each size variant."""
        validate_key(key)
        labels = validate_sizes(key, sizes)

        urls = {ORIGINAL: join_url(self._base_url, self._object_key(key))}
        for label in labels:
            urls[label] = join_url(self._base_url, self._object_key(locate(key, label)))

        return urls

    async def write(
        self,
        key: str,
        stream: AsyncIterator[bytes],
        sizes: SizeSpecs,
    ) -> None:
        """
        Upload the original, then derive and upload every size variant.

        Raises:
            InvalidInputError: If the key or sizes are invalid
            FileSizeExceededError: If the original exceeds the size limit
            ContainerCreationError: If the bucket cannot be created
            TransferError: If the original or any variant failed
        """
        validate_key(key)
        labels = validate_sizes(key, sizes, require_params=True)

        await asyncio.to_thread(self._ensure_bucket, key)

        with tempfile.SpooledTemporaryFile(max_size=SPOOL_SIZE) as spool:
            total_size = 0
            try:
                async for chunk in stream:
                    total_size += len(chunk)
                    if total_size > self._max_size_bytes:
                        raise FileSizeExceededError(total_size, self._max_size_bytes, key=key)
                    spool.write(chunk)
            except StorageError:
                raise
            except Exception as e:
                raise TransferError(key, {ORIGINAL: f"{type(e).__name__}: {e}"}) from e

            spool.seek(0)
            await asyncio.to_thread(self._put, key, ORIGINAL, spool)

        logger.info(f"Stored original: bucket={self._bucket}, key={key}, bytes={total_size}")

        if not labels:
            return

        # Derive from the persisted object; the input stream is exhausted
        try:
            original = await asyncio.to_thread(self._get, key)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to re-read original: key={key}: {e}")
            raise TransferError(key, {label: f"original unreadable: {e}" for label in labels}) from e

        failures: dict[str, str] = {}
        for label in labels:
            try:
                data = await asyncio.to_thread(self._deriver, original, sizes[label])
                await asyncio.to_thread(self._put, key, label, data)
                logger.info(f"Stored size: key={key}, size={label}, bytes={len(data)}")
            except TransferError as e:
                failures.update(e.failures)
            except Exception as e:
                logger.error(f"Failed to derive size: key={key}, size={label}", exc_info=True)
                failures[label] = f"{type(e).__name__}: {e}"

        if failures:
            raise TransferError(key, failures)

    async def delete(
        self,
        key: str,
        sizes: Iterable[str] | Mapping[str, Any],
    ) -> None:
        """
        Delete the original and each size variant.

        Missing objects count as deleted.

        Raises:
            TransferError: If S3 refused or failed a deletion
        """
        validate_key(key)
        labels = validate_sizes(key, sizes)

        failures: dict[str, str] = {}
        for label in [ORIGINAL, *labels]:
            object_key = self._object_key(locate(key, label))
            try:
                await asyncio.to_thread(
                    self._client.delete_object, Bucket=self._bucket, Key=object_key
                )
            except ClientError as e:
                if _error_code(e) in NOT_FOUND_CODES:
                    logger.debug(f"Already absent: s3://{self._bucket}/{object_key}")
                    continue
                logger.warning(f"Failed to delete s3://{self._bucket}/{object_key}: {e}")
                failures[label] = str(e)
            except BotoCoreError as e:
                logger.warning(f"Failed to delete s3://{self._bucket}/{object_key}: {e}")
                failures[label] = str(e)

        if failures:
            raise TransferError(key, failures, operation="delete")

        logger.info(f"Deleted: bucket={self._bucket}, key={key}, sizes={labels}")

    def _object_key(self, location: str) -> str:
        location = location.lstrip("/")
        return f"{self._prefix}/{location}" if self._prefix else location

    def _ensure_bucket(self, key: str) -> None:
        """
        Create the bucket unless it exists, once per backend instance.

        Losing a creation race to another writer is not an error. A failed
        check is retried on the next write.

        Raises:
            ContainerCreationError: If the bucket is unavailable afterwards
        """
        if self._bucket_ready:
            return

        with self._bucket_lock:
            if not self._bucket_ready:
                self._create_bucket_if_missing(key)
                self._bucket_ready = True

    def _create_bucket_if_missing(self, key: str) -> None:
        try:
            self._client.head_bucket(Bucket=self._bucket)
            return
        except ClientError as e:
            if _error_code(e) not in NO_BUCKET_CODES:
                raise ContainerCreationError(self._bucket, str(e), key=key) from e
        except BotoCoreError as e:
            raise ContainerCreationError(self._bucket, str(e), key=key) from e

        params: dict[str, Any] = {"Bucket": self._bucket}
        if self._region and self._region != "us-east-1":
            params["CreateBucketConfiguration"] = {"LocationConstraint": self._region}

        try:
            self._client.create_bucket(**params)
            logger.info(f"Created bucket: {self._bucket}")
        except ClientError as e:
            if _error_code(e) not in BUCKET_EXISTS_CODES:
                raise ContainerCreationError(self._bucket, str(e), key=key) from e
        except BotoCoreError as e:
            raise ContainerCreationError(self._bucket, str(e), key=key) from e

    def _put(self, key: str, label: str, body: bytes | IO[bytes]) -> None:
        location = locate(key, label)
        content_type = mimetypes.guess_type(location)[0] or "application/octet-stream"

        try:
            self._client.put_object(
                Bucket=self._bucket,
                Key=self._object_key(location),
                Body=body,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to upload s3://{self._bucket}/{self._object_key(location)}: {e}")
            raise TransferError(key, {label: str(e)}) from e

    def _get(self, key: str) -> bytes:
        response = self._client.get_object(Bucket=self._bucket, Key=self._object_key(key))
        return response["Body"].read()
