#!/usr/bin/env python3
"""
Tests for the saliency portion estimator
"""

from unittest.mock import patch

import numpy as np
import pytest
from PIL import Image

from mealscan.saliency import FALLBACK_AREA_RATIO, PortionEstimator


def box_map(size=100, top=25, bottom=75, left=25, right=75):
    saliency_map = np.zeros((size, size), dtype=np.float32)
    saliency_map[top:bottom, left:right] = 1.0
    return saliency_map


class TestPortionEstimator:
    """Test cases for PortionEstimator"""

    def setup_method(self):
        """Set up test fixtures"""
        self.estimator = PortionEstimator()
        self.image = Image.new("RGB", (100, 100))

    def test_largest_region_ratio(self):
        assert self.estimator._largest_region_ratio(box_map()) == pytest.approx(0.25)

    def test_largest_of_several_regions(self):
        saliency_map = box_map(top=0, bottom=10, left=0, right=10)
        saliency_map[40:100, 40:90] = 1.0
        assert self.estimator._largest_region_ratio(saliency_map) == pytest.approx(0.30)

    def test_empty_map(self):
        assert self.estimator._largest_region_ratio(np.zeros((50, 50), dtype=np.float32)) is None

    def test_uses_saliency_map(self):
        with patch.object(self.estimator, '_saliency_map', return_value=box_map()):
            assert self.estimator.largest_object_area_ratio(self.image) == pytest.approx(0.25)

    def test_failure_falls_back(self):
        with patch.object(self.estimator, '_saliency_map', side_effect=RuntimeError("no saliency module")):
            assert self.estimator.largest_object_area_ratio(self.image) == FALLBACK_AREA_RATIO

    def test_nothing_salient_falls_back(self):
        blank = np.zeros((100, 100), dtype=np.float32)
        with patch.object(self.estimator, '_saliency_map', return_value=blank):
            assert self.estimator.largest_object_area_ratio(self.image) == FALLBACK_AREA_RATIO

    def test_result_in_unit_range(self):
        ratio = self.estimator.largest_object_area_ratio(Image.new("RGB", (64, 64), (200, 30, 30)))
        assert 0.0 <= ratio <= 1.0
