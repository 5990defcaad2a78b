"""
mealscan - barcode decoding adapter
Decodes retail barcodes with ZBar (pyzbar), falling back to a contrast-enhanced frame
"""

import logging
from enum import Enum
from typing import List, Optional

import cv2
import numpy as np
from PIL import Image

from .imaging import to_bgr

logger = logging.getLogger(__name__)

# pyzbar raises ImportError when the zbar shared library is missing
try:
    from pyzbar import pyzbar
    from pyzbar.pyzbar import ZBarSymbol
    PYZBAR_AVAILABLE = True
except ImportError:
    pyzbar = None
    ZBarSymbol = None
    PYZBAR_AVAILABLE = False


class BarcodeType(Enum):
    """Barcode type classifications"""
    EAN13 = "EAN13"
    EAN8 = "EAN8"
    UPCA = "UPCA"
    UPCE = "UPCE"
    CODE128 = "CODE128"
    UNKNOWN = "UNKNOWN"


# Common retail symbologies only, for speed
RETAIL_SYMBOLOGIES = ('UPCE', 'EAN13', 'EAN8', 'CODE128', 'CODE39', 'CODE93', 'I25')


def classify_barcode_type(barcode_data: str) -> BarcodeType:
    """Classify barcode type based on data pattern"""
    if not barcode_data:
        return BarcodeType.UNKNOWN

    if len(barcode_data) == 13 and barcode_data.isdigit():
        return BarcodeType.EAN13
    elif len(barcode_data) == 12 and barcode_data.isdigit():
        return BarcodeType.UPCA
    elif len(barcode_data) == 8 and barcode_data.isdigit():
        return BarcodeType.EAN8
    elif len(barcode_data) == 6 and barcode_data.isdigit():
        return BarcodeType.UPCE
    else:
        return BarcodeType.CODE128


class BarcodeDetector:
    """Returns the first decoded payload in an image, or None"""

    def __init__(self, enhance: bool = True):
        self.enhance = enhance
        if not PYZBAR_AVAILABLE:
            logger.warning("pyzbar/zbar not available - barcode decoding disabled")

    @property
    def available(self) -> bool:
        return PYZBAR_AVAILABLE

    def detect_first_barcode(self, image: Image.Image) -> Optional[str]:
        """
        Decode the first barcode found in the image.

        Never raises: decoding errors are logged and reported as None.
        """
        if not PYZBAR_AVAILABLE:
            return None

        try:
            frame = to_bgr(image)
            frames = [frame]
            if self.enhance:
                frames.append(self._enhance_image_for_barcode(frame))

            for candidate in frames:
                payload = self._decode(candidate)
                if payload:
                    logger.debug(f"Decoded barcode: {payload}")
                    return payload
        except Exception as e:
            logger.error(f"Barcode decoding failed: {e}")

        return None

    def _decode(self, frame: np.ndarray) -> Optional[str]:
        barcodes = pyzbar.decode(frame, symbols=self._symbols())
        for barcode in barcodes:
            payload = barcode.data.decode('utf-8', errors='ignore').strip()
            if payload:
                return payload
        return None

    def _symbols(self) -> Optional[List]:
        if ZBarSymbol is None:
            return None
        return [getattr(ZBarSymbol, name) for name in RETAIL_SYMBOLOGIES if hasattr(ZBarSymbol, name)]

    def _enhance_image_for_barcode(self, image: np.ndarray) -> np.ndarray:
        """Apply CLAHE contrast enhancement for barcode detection"""
        if len(image.shape) == 3:
            gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        else:
            gray = image.copy()

        clahe = cv2.createCLAHE(clipLimit=2.0, tileGridSize=(8, 8))
        return clahe.apply(gray)
