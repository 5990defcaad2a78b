"""
Shared fixtures for mealscan tests
"""

from io import BytesIO

import pytest
from PIL import Image


def make_image(color=(0, 0, 0), size=(64, 48)) -> Image.Image:
    return Image.new("RGB", size, color)


def to_png_bytes(image: Image.Image) -> bytes:
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def image_factory():
    return make_image


@pytest.fixture
def png_bytes():
    """Factory for PNG-encoded solid color images"""

    def _png_bytes(color=(0, 0, 0), size=(64, 48)):
        return to_png_bytes(make_image(color, size))

    return _png_bytes
