import io

import pytest
from PIL import Image

from picstore.services.thumbnails import crop
from tests.helpers import make_image


def open_image(data: bytes) -> Image.Image:
    return Image.open(io.BytesIO(data))


class TestCrop:
    """Default thumbnail derivation tests"""

    def test_crop_to_exact_size(self, jpeg_bytes):
        """Test crop mode fills the requested box exactly"""
        img = open_image(crop(jpeg_bytes, {"width": 100, "height": 100}))

        assert img.size == (100, 100)
        assert img.format == "JPEG"

    def test_fit_keeps_aspect_ratio(self):
        """Test fit mode shrinks inside the box"""
        source = make_image(400, 200)

        img = open_image(crop(source, {"width": 100, "height": 100, "mode": "fit"}))

        assert img.size == (100, 50)

    def test_fit_never_enlarges(self):
        source = make_image(40, 20)

        img = open_image(crop(source, {"width": 100, "height": 100, "mode": "fit"}))

        assert img.size == (40, 20)

    def test_png_stays_png(self):
        source = make_image(64, 64, image_format="PNG", mode="RGBA")

        img = open_image(crop(source, {"width": 32, "height": 32}))

        assert img.format == "PNG"
        assert img.mode == "RGBA"

    def test_deterministic(self, jpeg_bytes):
        params = {"width": 50, "height": 80}
        assert crop(jpeg_bytes, params) == crop(jpeg_bytes, params)

    @pytest.mark.parametrize(
        "params",
        [
            {},
            {"width": 100},
            {"width": 0, "height": 100},
            {"width": -1, "height": 100},
            {"width": "100", "height": 100},
            {"width": True, "height": 100},
            {"width": 100, "height": 100, "mode": "stretch"},
        ],
    )
    def test_invalid_params(self, jpeg_bytes, params):
        with pytest.raises(ValueError):
            crop(jpeg_bytes, params)

    def test_not_an_image(self):
        with pytest.raises(ValueError) as exc:
            crop(b"definitely not an image", {"width": 10, "height": 10})
        assert "decode" in str(exc.value)
