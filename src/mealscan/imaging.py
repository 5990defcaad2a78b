"""
mealscan - image decoding, downscaling and rotation variants
"""

import logging
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import List, Optional

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

from .errors import InvalidImageError

logger = logging.getLogger(__name__)

ROTATION_DEGREES = (0, 90, 180, 270)
ASSET_EXTENSIONS = ('jpg', 'jpeg', 'png', 'heic')

# Clockwise rotation expressed as PIL transposes (PIL rotates counter-clockwise)
_TRANSPOSE = {
    90: Image.Transpose.ROTATE_270,
    180: Image.Transpose.ROTATE_180,
    270: Image.Transpose.ROTATE_90,
}


@dataclass
class RotationVariant:
    """One reorientation of the source image"""
    degrees: int
    image: Image.Image


def decode_image(image_bytes: bytes) -> Image.Image:
    """Decode raw bytes into an RGB image or raise InvalidImageError"""
    if not image_bytes:
        raise InvalidImageError("Empty image data")
    try:
        image = Image.open(BytesIO(image_bytes))
        image.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise InvalidImageError(f"Could not decode image: {e}") from e
    return image.convert("RGB")


def downscale_if_needed(image: Image.Image, max_long_edge: int) -> Image.Image:
    """Shrink so the long edge is at most max_long_edge, keeping aspect ratio"""
    width, height = image.size
    long_edge = max(width, height)
    if long_edge <= max_long_edge:
        return image
    scale = max_long_edge / long_edge
    target = (max(1, int(width * scale)), max(1, int(height * scale)))
    return image.resize(target, Image.Resampling.LANCZOS)


def rotate(image: Image.Image, degrees: int) -> Image.Image:
    """Rotate clockwise by a multiple of 90 degrees, pixel-exact"""
    degrees %= 360
    if degrees == 0:
        return image
    if degrees not in _TRANSPOSE:
        raise ValueError(f"Unsupported rotation: {degrees}")
    return image.transpose(_TRANSPOSE[degrees])


def rotation_variants(image: Image.Image) -> List[RotationVariant]:
    """The 0/90/180/270 renderings of an image; variant 0 is the image itself"""
    return [RotationVariant(degrees, rotate(image, degrees)) for degrees in ROTATION_DEGREES]


def to_bgr(image: Image.Image) -> np.ndarray:
    """PIL RGB image to an OpenCV BGR array"""
    return cv2.cvtColor(np.asarray(image.convert("RGB")), cv2.COLOR_RGB2BGR)


def to_gray(image: Image.Image) -> np.ndarray:
    return cv2.cvtColor(np.asarray(image.convert("RGB")), cv2.COLOR_RGB2GRAY)


def resolve_asset(directory: Path, name: str) -> Optional[Path]:
    """Find an image file by exact name, then by stem with common extensions"""
    directory = Path(directory)
    exact = directory / name
    if exact.is_file():
        return exact

    folder = exact.parent
    stem = Path(name).stem
    for ext in ASSET_EXTENSIONS:
        for candidate in (folder / f"{stem}.{ext}", folder / f"{stem}.{ext.upper()}"):
            if candidate.is_file():
                return candidate
    return None


def load_asset_image(directory: Path, name: str) -> Optional[Image.Image]:
    path = resolve_asset(directory, name)
    if path is None:
        logger.warning(f"Reference image not found: {name}")
        return None
    try:
        return decode_image(path.read_bytes())
    except InvalidImageError as e:
        logger.warning(f"Could not load reference image {path.name}: {e}")
        return None
