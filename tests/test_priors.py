#!/usr/bin/env python3
"""
Tests for class priors
"""

import pytest

from mealscan.priors import DEFAULT_PRIORS, ClassPrior, ClassPriorsTable, area_scale, split_macros


class TestAreaScale:

    def test_center_area(self):
        assert area_scale(0.35, 1.0) == pytest.approx(0.70)

    def test_gain_weights_scale(self):
        assert area_scale(0.35, 0.5) == pytest.approx(0.70 * 0.8)

    def test_area_is_clamped(self):
        assert area_scale(0.0, 1.0) == area_scale(0.10, 1.0)
        assert area_scale(1.0, 1.0) == area_scale(0.90, 1.0)

    def test_scale_bounds(self):
        assert area_scale(0.0, 0.0) == pytest.approx(0.5)
        assert area_scale(0.9, 3.0) == pytest.approx(1.6)

    def test_area_floor(self):
        assert area_scale(0.2, 1.0, area_floor=0.55) == pytest.approx(0.90)


class TestSplitMacros:

    def test_energy_densities(self):
        estimate = split_macros(400, 0.5, 0.25, 0.25)
        assert estimate.calories == 400
        assert estimate.carbohydrates == 50
        assert estimate.protein == 25
        assert estimate.fat == 11


class TestClassPriorsTable:
    """Test cases for ClassPriorsTable"""

    def setup_method(self):
        """Set up test fixtures"""
        self.table = ClassPriorsTable()

    def test_default_table(self):
        assert len(self.table) == len(DEFAULT_PRIORS)
        assert "burger" in self.table
        assert "spaceship" not in self.table

    def test_ratios_sum_to_about_one(self):
        for prior in DEFAULT_PRIORS:
            total = prior.carb_ratio + prior.protein_ratio + prior.fat_ratio
            assert total == pytest.approx(1.0, abs=0.02) or total == 0.0, prior.label

    def test_burger_at_center_area(self):
        """520 * 0.70 = 364, raised to the 380 minimum"""
        estimate = self.table.estimate("burger", 0.35)

        assert estimate.calories == 380
        assert estimate.carbohydrates == 33
        assert estimate.protein == 22
        assert estimate.fat == 18

    def test_unknown_label(self):
        assert self.table.estimate("spaceship", 0.5) is None

    @pytest.mark.parametrize("area", [0.0, 1.0])
    def test_extreme_area_stays_within_bounds(self, area):
        table = ClassPriorsTable([
            ClassPrior("huge", 2000, 0.5, 0.2, 0.3, 200, 560, 1.0),
            ClassPrior("tiny", 100, 0.5, 0.2, 0.3, 200, 560, 1.0),
        ])
        for label in ("huge", "tiny"):
            kcal = table.estimate(label, area).calories
            assert 200 <= kcal <= 560

    def test_clamped_values(self):
        table = ClassPriorsTable([ClassPrior("huge", 2000, 0.5, 0.2, 0.3, 200, 560, 1.0)])
        assert table.estimate("huge", 1.0).calories == 560

    def test_zero_calorie_drink(self):
        estimate = self.table.estimate("black_coffee", 0.35)
        assert 0 <= estimate.calories <= 30
        assert estimate.fat == 0

    def test_no_bounds(self):
        table = ClassPriorsTable([ClassPrior("plain", 300, 0.5, 0.2, 0.3)])
        assert table.estimate("plain", 0.35).calories == 210
