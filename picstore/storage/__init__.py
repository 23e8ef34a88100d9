"""
Storage abstraction layer for uploaded media.

This package persists an original asset plus its derived size variants,
resolves them to public URLs and removes them, with the same contract on
the local filesystem and on S3-compatible object storage.
"""

from picstore.storage.base import Deriver, SizeSpecs, StorageBackend
from picstore.storage.exceptions import (
    ContainerCreationError,
    FileSizeExceededError,
    InvalidInputError,
    StorageError,
    TransferError,
)
from picstore.storage.local import LocalStorageBackend
from picstore.storage.locations import ORIGINAL, locate
from picstore.storage.s3 import S3StorageBackend

__all__ = [
    "StorageBackend",
    "LocalStorageBackend",
    "S3StorageBackend",
    "Deriver",
    "SizeSpecs",
    "ORIGINAL",
    "locate",
    "StorageError",
    "InvalidInputError",
    "FileSizeExceededError",
    "ContainerCreationError",
    "TransferError",
]
