import io

from PIL import Image


def fake_deriver(data: bytes, params) -> bytes:
    """
    Deterministic stand-in for image resizing.

    Params carrying ``fail`` make the derivation raise, to simulate a
    corrupt or unsupported image for one size.
    """
    if params.get("fail"):
        raise ValueError(f"cannot derive {params['width']}x{params['height']}")
    return f"{params['width']}x{params['height']}:".encode() + data[: params["width"]]


async def stream_of(data: bytes, chunk_size: int = 1024):
    """Yield bytes as a single-pass async stream."""
    for start in range(0, len(data), chunk_size):
        yield data[start:start + chunk_size]


def make_image(width: int = 400, height: int = 300, image_format: str = "JPEG", mode: str = "RGB") -> bytes:
    """Encode a solid-colour test image."""
    color = (200, 120, 40) if mode == "RGB" else (200, 120, 40, 128)
    img = Image.new(mode, (width, height), color=color)
    buffer = io.BytesIO()
    img.save(buffer, format=image_format)
    return buffer.getvalue()
