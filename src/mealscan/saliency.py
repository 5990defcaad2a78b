"""
mealscan - saliency based portion estimate
"""

import logging
from typing import Optional

import cv2
import numpy as np
from PIL import Image

from .imaging import to_bgr

logger = logging.getLogger(__name__)

# Neutral "medium-size single dish" assumption
FALLBACK_AREA_RATIO = 0.35


class PortionEstimator:
    """Fraction of the frame covered by the largest salient region"""

    def __init__(self, fallback: float = FALLBACK_AREA_RATIO):
        self.fallback = fallback

    def largest_object_area_ratio(self, image: Image.Image) -> float:
        """Area of the largest salient bounding box, normalised to [0, 1]"""
        try:
            saliency_map = self._saliency_map(to_bgr(image))
            ratio = self._largest_region_ratio(saliency_map)
        except Exception as e:
            logger.warning(f"Saliency detection failed: {e}")
            return self.fallback

        if ratio is None:
            return self.fallback
        return float(min(1.0, max(0.0, ratio)))

    def _saliency_map(self, frame: np.ndarray) -> np.ndarray:
        detector = cv2.saliency.StaticSaliencySpectralResidual_create()
        success, saliency_map = detector.computeSaliency(frame)
        if not success:
            raise RuntimeError("computeSaliency returned no map")
        return saliency_map

    def _largest_region_ratio(self, saliency_map: np.ndarray) -> Optional[float]:
        """Otsu-threshold the map and measure the biggest contour's bounding box"""
        height, width = saliency_map.shape[:2]
        if height == 0 or width == 0:
            return None

        scaled = saliency_map.astype(np.float32)
        peak = float(scaled.max())
        if peak <= 0:
            return None
        gray = (scaled / peak * 255).astype(np.uint8)

        _, mask = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
        contours, _ = cv2.findContours(mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
        if not contours:
            return None

        largest = 0
        for contour in contours:
            _, _, w, h = cv2.boundingRect(contour)
            largest = max(largest, w * h)
        if largest == 0:
            return None
        return largest / float(width * height)
