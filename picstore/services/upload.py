"""
Image upload intake.

Hands an uploaded file to the storage backend under a key computed upstream
and returns the URLs of the stored original and its thumbnails.
"""
from typing import Any, AsyncIterator, Mapping

from fastapi import UploadFile

from picstore.config import settings
from picstore.logging_config import setup_logging
from picstore.storage.base import StorageBackend
from picstore.storage.exceptions import InvalidInputError, StorageError

logger = setup_logging()

CHUNK_SIZE = 64 * 1024  # 64KB


async def iter_upload(upload: UploadFile, chunk_size: int = CHUNK_SIZE) -> AsyncIterator[bytes]:
    """Read an uploaded file as an async stream of chunks."""
    while True:
        chunk = await upload.read(chunk_size)
        if not chunk:
            break
        yield chunk


async def _prepend(first: bytes, rest: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
    yield first
    async for chunk in rest:
        yield chunk


async def store_upload(
    storage: StorageBackend,
    key: str,
    upload: UploadFile | None,
    sizes: Mapping[str, Mapping[str, Any]] | None = None,
) -> dict[str, str]:
    """
    Store an uploaded image with its thumbnails.

    Args:
        storage: Storage backend
        key: Asset key (content hash path) assigned upstream
        upload: Uploaded file handle, None when the request carried no file
        sizes: Thumbnail sizes, label -> parameters (default from settings)

    Returns:
        Mapping of ``"o"`` and each thumbnail label to its URL

    Raises:
        InvalidInputError: If no file was uploaded or it is empty
        StorageError: If the backend failed; raised even when the original
            was stored but a thumbnail was not
    """
    if upload is None:
        raise InvalidInputError("No file uploaded", operation="write", key=key)

    if sizes is None:
        sizes = settings.IMAGE_THUMBNAILS

    try:
        # UploadFile.size is None when the client sent no length
        first = await upload.read(CHUNK_SIZE)
        if not first:
            raise InvalidInputError("Uploaded file is empty", operation="write", key=key)

        await storage.write(key, _prepend(first, iter_upload(upload)), sizes)
    except StorageError as e:
        logger.error(f"Upload failed: key={key}, filename={upload.filename}: {e}")
        raise
    finally:
        await upload.close()

    logger.info(f"Upload stored: key={key}, filename={upload.filename}, sizes={list(sizes)}")

    return storage.resolve(key, sizes)
