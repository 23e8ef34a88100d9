"""
Local filesystem storage implementation.

Assets are stored under a base path prefix, keyed by their asset key, with
size variants written next to the original:

    <base_path>/ab/cd/abcdef.jpg
    <base_path>/ab/cd/abcdef_small.jpg
"""
import asyncio
import os
import uuid
from typing import Any, AsyncIterator, Iterable, Mapping

import aiofiles
import aiofiles.os

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

DEFAULT_BASE_PATH = "public/static/upload/"

CHUNK_SIZE = 64 * 1024  # 64KB

DIRECTORY_MODE = 0o755


def normalize_prefix(prefix: str | None) -> str:
    """
    Normalize a storage path prefix so it always ends with a separator.

    An empty prefix falls back to the built-in upload directory.
    """
    if not prefix:
        return DEFAULT_BASE_PATH

    if prefix[-1] not in ("/", "\\"):
        prefix += "/"

    return prefix


async def iter_bytes(data: bytes) -> AsyncIterator[bytes]:
    """Yield in-memory bytes as an async stream."""
    for start in range(0, len(data), CHUNK_SIZE):
        yield data[start:start + CHUNK_SIZE]


class LocalStorageBackend(StorageBackend):
    """
    Local filesystem storage with async file operations.

    Configuration is captured once at construction and never changes, so a
    single instance can serve concurrent calls for different keys.
    """

    def __init__(
        self,
        base_path: str | None = None,
        base_url: str | None = None,
        deriver: Deriver | None = None,
        max_size_mb: int = 20,
    ):
        """
        Initialize local storage backend.

        Args:
            base_path: Base directory for stored files (default public/static/upload/)
            base_url: Public URL the base directory is served under
            deriver: Size-derivation callback (default Pillow crop)
            max_size_mb: Maximum size of an original in MB
        """
        self._base_path = normalize_prefix(base_path)
        self._base_url = normalize_base_url(base_url)
        self._deriver = deriver or crop
        self._max_size_bytes = max_size_mb * 1024 * 1024

    @property
    def base_path(self) -> str:
        return self._base_path

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def max_size_bytes(self) -> int:
        return self._max_size_bytes

    def resolve(
        self,
        key: str,
        sizes: Iterable[str] | Mapping[str, Any],
    ) -> dict[str, str]:
        """
        Build public URLs for the original and each size variant.

        Args:
            key: Asset key
            sizes: Size labels

        Returns:
            Mapping of label -> URL, including ``"o"``
        """
        validate_key(key)
        labels = validate_sizes(key, sizes)

        urls = {ORIGINAL: join_url(self._base_url, key)}
        for label in labels:
            urls[label] = join_url(self._base_url, locate(key, label))

        return urls

    async def write(
        self,
        key: str,
        stream: AsyncIterator[bytes],
        sizes: SizeSpecs,
    ) -> None:
        """
        Stream the original to disk, then derive and store every size variant.

        Args:
            key: Asset key
            stream: Async iterator yielding the original's bytes
            sizes: Mapping of size label -> derivation parameters

        Raises:
            InvalidInputError: If the key or sizes are invalid
            FileSizeExceededError: If the original exceeds the size limit
            ContainerCreationError: If a directory cannot be created
            TransferError: If the original or any variant failed
        """
        validate_key(key)
        labels = validate_sizes(key, sizes, require_params=True)

        location = self._apply_path_prefix(key)
        self._ensure_directory(os.path.dirname(location), key)

        size = await self._save(location, stream, key, ORIGINAL, self._max_size_bytes)
        logger.info(f"Stored original: key={key}, bytes={size}")

        if not labels:
            return

        # Derive from the persisted original; the input stream is exhausted
        try:
            async with aiofiles.open(location, "rb") as f:
                original = await f.read()
        except OSError as e:
            logger.error(f"Failed to re-read original: key={key}: {e}")
            raise TransferError(key, {label: f"original unreadable: {e}" for label in labels}) from e

        failures: dict[str, str] = {}
        for label in labels:
            try:
                await self._write_variant(key, label, original, sizes[label])
            except ContainerCreationError:
                raise
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
        Remove the original and each size variant.

        Files that are already gone count as deleted. Every target is
        attempted before any failure is reported.

        Args:
            key: Asset key
            sizes: Size labels

        Raises:
            TransferError: If a file exists but could not be removed
        """
        validate_key(key)
        labels = validate_sizes(key, sizes)

        failures: dict[str, str] = {}
        for label in [ORIGINAL, *labels]:
            location = self._apply_path_prefix(locate(key, label))
            try:
                await aiofiles.os.remove(location)
            except FileNotFoundError:
                logger.debug(f"Already absent: {location}")
            except OSError as e:
                logger.warning(f"Failed to delete {location}: {e}")
                failures[label] = str(e)

        if failures:
            raise TransferError(key, failures, operation="delete")

        logger.info(f"Deleted: key={key}, sizes={labels}")

    def _apply_path_prefix(self, path: str) -> str:
        """Return the filesystem location of a storage-relative path."""
        return self._base_path + path.lstrip("\\/")

    def _ensure_directory(self, directory: str, key: str | None = None) -> None:
        """
        Ensure the directory exists, creating parents as needed.

        Another caller creating the same directory concurrently is not an
        error; only ending up without a directory is.

        Raises:
            ContainerCreationError: If the directory does not exist afterwards
        """
        if os.path.isdir(directory):
            return

        try:
            os.makedirs(directory, mode=DIRECTORY_MODE, exist_ok=True)
        except OSError as e:
            if not os.path.isdir(directory):
                raise ContainerCreationError(directory, str(e), key=key) from e

        if not os.path.isdir(directory):
            raise ContainerCreationError(directory, key=key)

    async def _write_variant(
        self,
        key: str,
        label: str,
        original: bytes,
        params: Mapping[str, Any],
    ) -> None:
        data = await asyncio.to_thread(self._deriver, original, params)

        location = self._apply_path_prefix(locate(key, label))
        self._ensure_directory(os.path.dirname(location), key)

        size = await self._save(location, iter_bytes(data), key, label)
        logger.info(f"Stored size: key={key}, size={label}, bytes={size}")

    async def _save(
        self,
        location: str,
        stream: AsyncIterator[bytes],
        key: str,
        label: str,
        max_size: int | None = None,
    ) -> int:
        """
        Stream bytes into a temporary file and move it into place.

        The final location is replaced in one step, so readers never see a
        partially written file.

        Returns:
            Number of bytes written
        """
        temp_path = f"{location}.{uuid.uuid4().hex}.tmp"
        total_size = 0

        try:
            async with aiofiles.open(temp_path, "wb") as f:
                async for chunk in stream:
                    total_size += len(chunk)

                    if max_size is not None and total_size > max_size:
                        raise FileSizeExceededError(total_size, max_size, key=key)

                    await f.write(chunk)

            await aiofiles.os.replace(temp_path, location)

        except StorageError:
            await self._discard(temp_path)
            raise
        except Exception as e:
            await self._discard(temp_path)
            logger.error(f"Failed to write {location}: {e}")
            raise TransferError(key, {label: f"{type(e).__name__}: {e}"}) from e

        return total_size

    async def _discard(self, path: str) -> None:
        """Remove a partial file left by a failed write."""
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove partial file {path}: {e}")
