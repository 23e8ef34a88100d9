"""
Storage dependency injection.

This module selects and builds the configured storage backend. Backends get
fully resolved values; only this module reads settings.
"""
from picstore.config import Settings, settings
from picstore.storage.base import Deriver, StorageBackend
from picstore.storage.local import LocalStorageBackend
from picstore.storage.s3 import S3StorageBackend


def create_storage(config: Settings, deriver: Deriver | None = None) -> StorageBackend:
    """
    Build the storage backend named by ``config.STORAGE_BACKEND``.

    Args:
        config: Application settings
        deriver: Size-derivation callback (backend default when omitted)

    Returns:
        StorageBackend instance (local or S3)

    Raises:
        ValueError: If STORAGE_BACKEND is not supported
    """
    if config.STORAGE_BACKEND == "local":
        return LocalStorageBackend(
            base_path=config.STORAGE_LOCAL_DIR,
            base_url=config.STORAGE_BASE_URL,
            deriver=deriver,
            max_size_mb=config.MAX_UPLOAD_SIZE_MB,
        )

    if config.STORAGE_BACKEND == "s3":
        return S3StorageBackend(
            bucket=config.S3_BUCKET,
            prefix=config.S3_PREFIX,
            base_url=config.STORAGE_BASE_URL if config.STORAGE_BASE_URL.startswith("http") else None,
            deriver=deriver,
            region=config.S3_REGION,
            endpoint_url=config.S3_ENDPOINT_URL,
            max_size_mb=config.MAX_UPLOAD_SIZE_MB,
        )

    raise ValueError(f"Unknown storage backend: {config.STORAGE_BACKEND}")


def get_storage() -> StorageBackend:
    """
    Return storage backend based on configuration.

    This allows switching between local and cloud storage
    by changing the STORAGE_BACKEND environment variable.
    """
    return create_storage(settings)
