"""
Abstract base class for storage backends.

This module defines the interface that all storage backends must implement.
A backend persists an original asset plus its derived size variants, builds
public URLs for them, and removes them again.
"""
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Callable, Iterable, Mapping

# label -> parameters understood only by the deriver
SizeSpecs = Mapping[str, Mapping[str, Any]]

# (original bytes, size parameters) -> variant bytes
Deriver = Callable[[bytes, Mapping[str, Any]], bytes]


class StorageBackend(ABC):
    """
    Abstract base class for storage backends.

    All storage implementations (local filesystem, S3, etc.) must implement
    these methods so callers can switch backends through configuration alone.

    Concurrent calls for different keys are safe. Concurrent ``write`` and
    ``delete`` calls for the same key are not ordered; the outcome depends on
    the backend.
    """

    @abstractmethod
    def resolve(
        self,
        key: str,
        sizes: Iterable[str] | Mapping[str, Any],
    ) -> dict[str, str]:
        """
        Build the URLs of an asset and its size variants.

        No existence check is made; a URL does not imply a stored object.

        Args:
            key: Asset key
            sizes: Size labels (a mapping's keys are used)

        Returns:
            Mapping of ``"o"`` and every requested label to its URL

        Raises:
            InvalidInputError: If the key or a label is invalid
        """
        pass

    @abstractmethod
    async def write(
        self,
        key: str,
        stream: AsyncIterator[bytes],
        sizes: SizeSpecs,
    ) -> None:
        """
        Persist the original and derive every requested size variant.

        The stream is consumed once. Variants are derived from the persisted
        original, not from the stream.

        Args:
            key: Asset key
            stream: Async iterator yielding the original's bytes
            sizes: Mapping of size label -> derivation parameters

        Raises:
            InvalidInputError: If the key or sizes are invalid
            FileSizeExceededError: If the original exceeds the size limit
            ContainerCreationError: If the target container cannot be created
            TransferError: If the original or any variant failed; objects
                persisted before the failure remain
        """
        pass

    @abstractmethod
    async def delete(
        self,
        key: str,
        sizes: Iterable[str] | Mapping[str, Any],
    ) -> None:
        """
        Delete the original and the given size variants.

        Objects that do not exist are treated as already deleted.

        Args:
            key: Asset key
            sizes: Size labels (a mapping's keys are used)

        Raises:
            InvalidInputError: If the key or a label is invalid
            TransferError: If the backend failed for reasons other than absence
        """
        pass
