"""
Default size-derivation callback.

Turns the bytes of an uploaded image into a resized variant using Pillow.
"""
import io
from typing import Any, Mapping

from PIL import Image, ImageOps, UnidentifiedImageError

CROP = "crop"
FIT = "fit"

DEFAULT_QUALITY = 85


def _dimension(params: Mapping[str, Any], name: str) -> int:
    value = params.get(name)
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"Size parameter '{name}' must be a positive integer, got {value!r}")
    return value


def crop(data: bytes, params: Mapping[str, Any]) -> bytes:
    """
    Resize an image to the dimensions named in ``params``.

    Params:
        width, height: Target size in pixels (required)
        mode: "crop" (default) center-crops to exactly width x height;
              "fit" shrinks to fit inside the box, keeping aspect ratio
        quality: JPEG quality (default 85)

    Args:
        data: Encoded source image
        params: Size parameters

    Returns:
        Encoded variant, in the source image's format

    Raises:
        ValueError: If the parameters are invalid or the data is not an image
    """
    width = _dimension(params, "width")
    height = _dimension(params, "height")
    mode = params.get("mode", CROP)
    if mode not in (CROP, FIT):
        raise ValueError(f"Unknown resize mode: {mode!r}")

    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError(f"Cannot decode image: {e}") from e

    image_format = img.format or "JPEG"
    img = ImageOps.exif_transpose(img)

    if mode == CROP:
        img = ImageOps.fit(img, (width, height), method=Image.Resampling.LANCZOS)
    else:
        img.thumbnail((width, height), Image.Resampling.LANCZOS)

    output = io.BytesIO()
    if image_format.upper() == "JPEG":
        # JPEG has no alpha channel or palette
        if img.mode not in ("RGB", "L"):
            img = img.convert("RGB")
        img.save(output, format="JPEG", quality=params.get("quality", DEFAULT_QUALITY))
    else:
        img.save(output, format=image_format)

    return output.getvalue()
