import pytest

from tests.helpers import make_image


@pytest.fixture
def jpeg_bytes():
    """A 400x300 JPEG image."""
    return make_image()
