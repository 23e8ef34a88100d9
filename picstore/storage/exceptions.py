"""
Storage-specific exceptions.

Every exception carries the operation, asset key and size label (when known)
so a failure can be diagnosed without re-running the call.
"""


class StorageError(Exception):
    """Base exception for storage operations."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        key: str | None = None,
        label: str | None = None,
    ):
        self.operation = operation
        self.key = key
        self.label = label
        super().__init__(message)


class InvalidInputError(StorageError):
    """Raised when a call is rejected before any I/O takes place."""

    pass


class FileSizeExceededError(InvalidInputError):
    """Raised when an uploaded original exceeds the maximum size limit."""

    def __init__(self, file_size: int, max_size: int, key: str | None = None):
        self.file_size = file_size
        self.max_size = max_size
        super().__init__(
            f"File size ({file_size} bytes) exceeds maximum allowed size ({max_size} bytes)",
            operation="write",
            key=key,
        )


class ContainerCreationError(StorageError):
    """Raised when the directory or bucket holding an object cannot be established."""

    def __init__(self, container: str, reason: str = "", key: str | None = None):
        self.container = container
        self.reason = reason
        super().__init__(
            f'Impossible to create the root directory "{container}". {reason}'.rstrip(),
            operation="write",
            key=key,
        )


class TransferError(StorageError):
    """
    Raised when bytes for the original or a variant could not be persisted.

    Objects persisted before the failure are left in place.
    """

    def __init__(
        self,
        key: str,
        failures: dict[str, str],
        operation: str = "write",
    ):
        self.failures = failures
        labels = ", ".join(sorted(failures))
        details = "; ".join(f"{label}: {reason}" for label, reason in sorted(failures.items()))
        super().__init__(
            f"Failed to {operation} {key} for size(s) {labels}: {details}",
            operation=operation,
            key=key,
            label=labels,
        )
