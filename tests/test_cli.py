#!/usr/bin/env python3
"""
Tests for the mealscan command line
"""

from unittest.mock import Mock, patch

from mealscan.cli import format_estimate, main
from mealscan.models import NutritionEstimate
from mealscan.pipeline import PhotoNutritionGuesser


class TestCli:
    """Test cases for the CLI entry point"""

    def test_format_estimate(self):
        text = format_estimate(NutritionEstimate(calories=250, sodium_mg=300))
        assert "Calories: 250 kcal" in text
        assert "Sodium: 300 mg" in text
        assert "Protein" not in text

    def test_barcode_lookup(self, capsys):
        with patch('mealscan.cli.BarcodeRepository') as repository:
            repository.return_value.lookup.return_value = NutritionEstimate(calories=140)
            assert main(['--barcode', '049000006346']) == 0

        assert "Calories: 140 kcal" in capsys.readouterr().out

    def test_barcode_not_found(self, capsys):
        with patch('mealscan.cli.BarcodeRepository') as repository:
            repository.return_value.lookup.return_value = None
            assert main(['--barcode', '000']) == 1
        assert "Product not found" in capsys.readouterr().out

    def test_image_report(self, tmp_path, png_bytes, capsys):
        path = tmp_path / "plate.png"
        path.write_bytes(png_bytes((0, 0, 0)))
        portion = Mock()
        portion.largest_object_area_ratio.return_value = 0.35

        with patch('mealscan.cli.PhotoNutritionGuesser') as guesser_cls:
            guesser_cls.default.return_value = PhotoNutritionGuesser(portion_estimator=portion)
            assert main(['--image', str(path), '--lang', 'fr']) == 0

        out = capsys.readouterr().out
        assert "Source: color_heuristic" in out
        assert "Calories: 1000 kcal" in out

    def test_invalid_image(self, tmp_path, capsys):
        path = tmp_path / "notes.txt"
        path.write_text("not a photo")

        with patch('mealscan.cli.PhotoNutritionGuesser') as guesser_cls:
            guesser_cls.default.return_value = PhotoNutritionGuesser()
            assert main(['--image', str(path)]) == 1
        assert "Could not analyze" in capsys.readouterr().out

    def test_missing_file(self, tmp_path):
        assert main(['--image', str(tmp_path / "nope.jpg")]) == 2

    def test_no_arguments(self):
        assert main([]) == 2
