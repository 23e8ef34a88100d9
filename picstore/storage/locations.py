"""
Variant location naming and input validation.

The naming scheme here is the on-disk (and in-bucket) layout of every stored
asset. Changing it orphans previously written variants.
"""
import posixpath
from typing import Any, Iterable, Mapping

from picstore.storage.exceptions import InvalidInputError

# Label reserved for the original upload
ORIGINAL = "o"


def locate(key: str, label: str) -> str:
    """
    Return the storage-relative location of one size variant of an asset.

    The original keeps its key; any other label is inserted before the file
    extension: ``ab/cd.jpg`` + ``thumb`` -> ``ab/cd_thumb.jpg``.

    Args:
        key: Asset key
        label: Size label, or ``"o"`` for the original

    Returns:
        Relative location of the variant
    """
    if label == ORIGINAL:
        return key

    stem, ext = posixpath.splitext(key)
    return f"{stem}_{label}{ext}"


def normalize_base_url(base_url: str | None) -> str:
    """Normalize a public base URL so locations can be appended to it."""
    if not base_url:
        return "/"

    return base_url if base_url.endswith("/") else base_url + "/"


def join_url(base_url: str, location: str) -> str:
    """Append a storage-relative location to a normalized base URL."""
    return base_url + location.lstrip("/")


def validate_key(key: str) -> str:
    """
    Reject asset keys that cannot address an object safely.

    Raises:
        InvalidInputError: If the key is empty or escapes the storage root
    """
    if not isinstance(key, str) or not key.strip():
        raise InvalidInputError("Asset key must be a non-empty string", key=key)

    if "\x00" in key or "\\" in key:
        raise InvalidInputError(f"Asset key contains invalid characters: {key!r}", key=key)

    segments = key.lstrip("/").split("/")
    if "." in segments or ".." in segments or not segments[-1]:
        raise InvalidInputError(f"Asset key is not a valid file path: {key!r}", key=key)

    return key


def validate_label(label: str, key: str | None = None) -> str:
    """Reject size labels that would collide with the original or nest paths."""
    if not isinstance(label, str) or not label:
        raise InvalidInputError("Size label must be a non-empty string", key=key, label=label)

    if label == ORIGINAL:
        raise InvalidInputError(
            f'Size label "{ORIGINAL}" is reserved for the original', key=key, label=label
        )

    if "/" in label or "\\" in label or "\x00" in label:
        raise InvalidInputError(f"Size label contains invalid characters: {label!r}", key=key, label=label)

    return label


def validate_sizes(
    key: str,
    sizes: Iterable[str] | Mapping[str, Any],
    require_params: bool = False,
) -> list[str]:
    """
    Validate the size labels (and optionally their parameters) of one call.

    Args:
        key: Asset key the sizes belong to (for error context)
        sizes: Labels, or a mapping of label -> derivation parameters
        require_params: Reject labels whose parameters are empty

    Returns:
        The labels, in iteration order

    Raises:
        InvalidInputError: If any label or parameter set is invalid
    """
    if isinstance(sizes, (str, bytes)):
        raise InvalidInputError("Sizes must be a collection of labels, not a string", key=key)

    labels = [validate_label(label, key) for label in sizes]

    if require_params:
        if not isinstance(sizes, Mapping):
            raise InvalidInputError("Sizes must map each label to its parameters", key=key)
        for label in labels:
            params = sizes[label]
            if not isinstance(params, Mapping) or not params:
                raise InvalidInputError(
                    f"Size {label} has no derivation parameters", key=key, label=label
                )

    return labels
