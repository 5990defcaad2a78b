#!/usr/bin/env python3
"""
Tests for the nutrition label parser
"""

import pytest

from mealscan.label_parser import NutritionLabelParser, parse_number


class TestParseNumber:

    def test_comma_and_dot_decimals(self):
        assert parse_number("2,5") == 2.5
        assert parse_number("2.5") == 2.5
        assert parse_number("12") == 12.0


class TestNutritionLabelParser:
    """Test cases for NutritionLabelParser"""

    def setup_method(self):
        """Set up test fixtures"""
        self.parser = NutritionLabelParser()

    def test_basic_label(self):
        """Energy, protein and sodium lines parse and nothing else is set"""
        estimate = self.parser.parse("Energy 250 kcal\nProtein 12 g\nSodium 300 mg")

        assert estimate.to_dict() == {'calories': 250, 'protein': 12, 'sodium_mg': 300}
        assert estimate.parsed_field_count == 3

    def test_energy_in_kilojoules(self):
        estimate = self.parser.parse("Energy 1046 kJ")
        assert estimate.calories == 250

    def test_kcal_preferred_over_kilojoules_on_same_line(self):
        estimate = self.parser.parse("Energy 1046 kJ / 250 kcal")
        assert estimate.calories == 250

    def test_kcal_on_next_line_beats_kilojoules(self):
        estimate = self.parser.parse("Energie 1046 kJ\n260 kcal")
        assert estimate.calories == 260

    def test_calories_without_unit(self):
        estimate = self.parser.parse("Calories 180")
        assert estimate.calories == 180

    def test_salt_converted_to_sodium(self):
        estimate = self.parser.parse("Salt 2.5 g")
        assert estimate.sodium_mg == 1000

    def test_sodium_in_grams(self):
        estimate = self.parser.parse("Sodium 0.3 g")
        assert estimate.sodium_mg == 300

    def test_explicit_sodium_beats_salt(self):
        estimate = self.parser.parse("Salt 2.5 g\nSodium 300 mg")
        assert estimate.sodium_mg == 300

    def test_micrograms_converted_to_milligrams(self):
        estimate = self.parser.parse("Vitamin D 5 µg")
        assert estimate.vitamin_d == 0

    @pytest.mark.parametrize("micrograms, expected", [(500, 1), (499, 0), (1500, 2)])
    def test_microgram_rounding_boundary(self, micrograms, expected):
        estimate = self.parser.parse(f"Vitamin C {micrograms} µg")
        assert estimate.vitamin_c == expected

    @pytest.mark.parametrize("line, field", [
        ("Vitamin A 2 mg", 'vitamin_a'),
        ("Vitamine A 2 mg", 'vitamin_a'),
        ("Vitamina A 2 mg", 'vitamin_a'),
        ("Vitamina C 60 mg", 'vitamin_c'),
        ("Vitamina D 5 mg", 'vitamin_d'),
        ("Vitamina E 12 mg", 'vitamin_e'),
        ("Vitamine K 80 mg", 'vitamin_k'),
        ("Vitamine B12 3 mg", 'vitamin_b'),
        ("Vit. C 60 mg", 'vitamin_c'),
    ])
    def test_vitamin_letter_in_every_language(self, line, field):
        """The vowel ending of vitamina/vitamine is not taken as the vitamin letter"""
        estimate = self.parser.parse(line)
        assert list(estimate.to_dict()) == [field]

    def test_milligram_minerals(self):
        estimate = self.parser.parse("Calcium 120 mg\nIron 2.5 mg\nPotassium 350 mg")
        assert estimate.calcium == 120
        assert estimate.iron == 3
        assert estimate.potassium == 350

    def test_comma_decimal_rounds_half_up(self):
        estimate = self.parser.parse("Sugars 2,5 g")
        assert estimate.sugars == 3

    def test_saturated_fat_does_not_fill_fat(self):
        """A subtype keyword must not be re-read by the generic fat rule"""
        estimate = self.parser.parse("Saturated fat 4 g")
        assert estimate.saturated_fat == 4
        assert estimate.fat is None

    def test_fat_and_saturates_on_one_line(self):
        estimate = self.parser.parse("Fat 10 g of which saturates 4 g")
        assert estimate.fat == 10
        assert estimate.saturated_fat == 4

    def test_fat_subtypes(self):
        text = "Monounsaturated fat 5 g\nPolyunsaturated fat 3 g\nTrans fat 0 g"
        estimate = self.parser.parse(text)
        assert estimate.monounsaturated_fat == 5
        assert estimate.polyunsaturated_fat == 3
        assert estimate.trans_fat == 0
        assert estimate.fat is None

    def test_first_value_wins(self):
        estimate = self.parser.parse("Protein 12 g\nProtein 30 g")
        assert estimate.protein == 12

    def test_french_label(self):
        text = "\n".join([
            "Énergie 1046 kJ / 250 kcal",
            "Matières grasses 12 g",
            "dont acides gras saturés 3,1 g",
            "Glucides 30 g",
            "dont sucres 12 g",
            "Protéines 8 g",
            "Sel 1,2 g",
            "Vitamine K 80 µg",
        ])
        estimate = self.parser.parse(text)

        assert estimate.calories == 250
        assert estimate.fat == 12
        assert estimate.saturated_fat == 3
        assert estimate.carbohydrates == 30
        assert estimate.sugars == 12
        assert estimate.protein == 8
        assert estimate.sodium_mg == 480
        assert estimate.vitamin_k == 0
        assert estimate.vitamin_e is None

    def test_spanish_label(self):
        text = "\n".join([
            "Valor energético 1046 kJ / 250 kcal",
            "Grasas 10 g",
            "de las cuales saturadas 4 g",
            "Hidratos de carbono 30 g",
            "de los cuales azúcares 12 g",
            "Fibra alimentaria 3 g",
            "Proteínas 8 g",
            "Sal 1,2 g",
            "Vitamina C 60 mg",
            "Vitamina D 1500 µg",
        ])
        estimate = self.parser.parse(text)

        assert estimate.calories == 250
        assert estimate.fat == 10
        assert estimate.saturated_fat == 4
        assert estimate.carbohydrates == 30
        assert estimate.sugars == 12
        assert estimate.fibre == 3
        assert estimate.protein == 8
        assert estimate.sodium_mg == 480
        assert estimate.vitamin_c == 60
        assert estimate.vitamin_d == 2
        assert estimate.vitamin_a is None

    def test_italian_label(self):
        text = "\n".join([
            "Energia 1046 kJ / 250 kcal",
            "Grassi 9 g",
            "di cui acidi grassi saturi 2,5 g",
            "Carboidrati 31 g",
            "di cui zuccheri 14 g",
            "Proteine 7 g",
            "Sale 0,5 g",
            "Vitamina C 45 mg",
            "Calcio 120 mg",
        ])
        estimate = self.parser.parse(text)

        assert estimate.calories == 250
        assert estimate.fat == 9
        assert estimate.saturated_fat == 3
        assert estimate.carbohydrates == 31
        assert estimate.sugars == 14
        assert estimate.protein == 7
        assert estimate.sodium_mg == 200
        assert estimate.vitamin_c == 45
        assert estimate.calcium == 120
        assert estimate.vitamin_a is None

    def test_german_label(self):
        text = "\n".join([
            "Brennwert 1046 kJ",
            "Fett 5 g",
            "davon gesättigte Fettsäuren 2 g",
            "Kohlenhydrate 20 g",
            "davon Zucker 10 g",
            "Eiweiß 3 g",
            "Salz 0,5 g",
        ])
        estimate = self.parser.parse(text)

        assert estimate.calories == 250
        assert estimate.fat == 5
        assert estimate.saturated_fat == 2
        assert estimate.carbohydrates == 20
        assert estimate.sugars == 10
        assert estimate.protein == 3
        assert estimate.sodium_mg == 200

    def test_fibre_without_space_before_unit(self):
        estimate = self.parser.parse("Dietary Fiber 3g")
        assert estimate.fibre == 3

    def test_unrelated_text_is_empty(self):
        estimate = self.parser.parse("Best before 12/2025\nKeep refrigerated")
        assert estimate.is_empty()

    def test_empty_input(self):
        assert self.parser.parse("").is_empty()
        assert self.parser.parse(None).is_empty()


class TestParseBest:
    """Ranking between OCR candidate texts"""

    def setup_method(self):
        self.parser = NutritionLabelParser()

    def test_most_fields_wins(self):
        best = self.parser.parse_best(["Protein 12 g", "Protein 12 g\nFat 3 g"])
        assert best.parsed_field_count == 2

    def test_tie_keeps_first(self):
        best = self.parser.parse_best(["Fat 1 g", "Protein 2 g"])
        assert best.fat == 1
        assert best.protein is None

    def test_best_candidate_returns_text(self):
        text, estimate = self.parser.best_candidate(["nothing here", "Fat 1 g"])
        assert text == "Fat 1 g"
        assert estimate.fat == 1

    def test_nothing_parsed(self):
        assert self.parser.parse_best([]) is None
        assert self.parser.parse_best(["", "hello world"]) is None
