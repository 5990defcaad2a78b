"""
mealscan - nutrition label parser

Turns recognized label text (English, French, German, Spanish, Italian) into a
partially filled NutritionEstimate using keyword + number + unit patterns.

Rules are applied line by line. A field keeps the first value found for it;
later lines never overwrite it. Within a line, specific rules run before
generic ones ("saturated fat" before "fat", "sugars" before "carbohydrate")
and every match is blanked out of the line so a generic keyword cannot
re-read the same numbers.

kJ energy and salt are converted only after every line is read, and only
when no kcal or sodium value was printed anywhere on the label.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Optional, Pattern, Tuple

from .models import KCAL_PER_KJ, SODIUM_MG_PER_SALT_G, NutritionEstimate

logger = logging.getLogger(__name__)

# A number with comma or dot decimals, not glued to surrounding digits
NUMBER = r'(?<![\d.,])(\d+(?:[.,]\d+)?)(?!\d)'
# Up to 15 non-digit characters between keyword and number
GAP = r'[^\d\n]{0,15}?'

GRAM_UNIT = r'\s*(?:g|gr|grams?|gramm[ei]?|gramos|grammi)\b'
MILLIGRAM_UNIT = r'\s*mg\b'
MICROGRAM_UNIT = r'\s*(?:µg|μg|mcg|ug)'

ENERGY_KEYWORDS = (
    r'\benerg(?:y|ie|ía|ia)\b|\bénergie\b|\bbrennwert\b|\bvalor\s+energ\w*'
    r'|\bcalor(?:ies|ie|ías|ias)\b|\bkcal\b'
)


@dataclass
class FieldRule:
    """Keyword pattern for one estimate field"""
    field: str
    keywords: str
    unit: str = GRAM_UNIT

    def compile(self) -> Pattern:
        return re.compile(f"(?:{self.keywords}){GAP}{NUMBER}{self.unit}")


# Order matters: specific keywords first, generic ones last
GRAM_RULES = [
    FieldRule('monounsaturated_fat',
              r'\bmono-?\s?unsaturat\w*|\bmonoinsatur\w*|\beinfach\s+ungesättigt\w*'),
    FieldRule('polyunsaturated_fat',
              r'\bpoly-?\s?unsaturat\w*|\bpolyinsatur\w*|\bpoli-?insatur\w*|\bmehrfach\s+ungesättigt\w*'),
    FieldRule('trans_fat', r'\btrans\b'),
    FieldRule('saturated_fat', r'\bsatur\w*|(?<!un)gesättigt\w*'),
    FieldRule('sugars', r'\bsugars?\b|\bsucres?\b|\bzucker\b|\bazúcares\b|\bazucares\b|\bzuccheri\b'),
    FieldRule('starch', r'\bstarch\b|\bamidon\b|\bstärke\b|\balmidón\b|\balmidon\b|\bamido\b'),
    FieldRule('fibre', r'\bfib(?:re|er|ra|res|ers)\b|\bballaststoffe\b'),
    FieldRule('animal_protein',
              r'\banimal\s+protein\w*|\bprotéines?\s+animales?\b|\btierisches?\s+eiwei(?:ß|ss)\b'
              r'|\bproteínas?\s+animal(?:es)?\b|\bproteine\s+animali\b'),
    FieldRule('plant_protein',
              r'\b(?:plant|vegetable)\s+protein\w*|\bprotéines?\s+végétales?\b'
              r'|\bpflanzliches?\s+eiwei(?:ß|ss)\b|\bproteínas?\s+vegetal(?:es)?\b|\bproteine\s+vegetali\b'),
    FieldRule('protein_supplements', r'\bprotein\s+supplements?\b|\bwhey\s+protein\b|\bprotein\s+isolate\b'),
    FieldRule('protein', r'\bprotein[es]?\b|\bprotéines?\b|\beiwei(?:ß|ss)\b|\bproteínas?\b'),
    FieldRule('carbohydrates',
              r'\bcarbohydrates?\b|\bcarbs?\b|\bglucides\b|\bkohlenhydrate\b'
              r'|\bhidratos\s+de\s+carbono\b|\bcarbohidratos\b|\bcarboidrati\b'),
    FieldRule('fat', r'\bfat\b|\blipides\b|\bmati[eè]res\s+grasses\b|\bfett\b|\bgrasas?\b|\bgrassi\b'),
]

SODIUM_RULE = FieldRule('sodium_mg', r'\bsodium\b|\bnatrium\b|\bsodio\b', r'\s*(mg|g)\b')
SALT_RULE = FieldRule('sodium_mg', r'\bsalt\b|\bsel\b|\bsalz\b|\bsal\b|\bsale\b')

# "vitamina c" must not read as "vitamin a": the stem ends at a word boundary
_VITAMIN = r'\bvit(?:amin[ae]?\b|\.)?\s*'

MICRONUTRIENT_RULES = [
    FieldRule('vitamin_a', _VITAMIN + r'a\b|\bretinol\b'),
    FieldRule('vitamin_b',
              _VITAMIN + r'b\d{0,2}\b|\bthiamin\w*|\briboflavin\w*|\bniacin\w*|\bfol(?:ate|ic\s+acid)\b|\bbiotin\w*'),
    FieldRule('vitamin_c', _VITAMIN + r'c\b|\bascorbic\s+acid\b'),
    FieldRule('vitamin_d', _VITAMIN + r'd\d?\b|\bcholecalciferol\b'),
    FieldRule('vitamin_e', _VITAMIN + r'e\b|\btocopherol\w*'),
    FieldRule('vitamin_k', _VITAMIN + r'k\d?\b|\bphylloquinone\b'),
    FieldRule('calcium', r'\bcalci(?:um|o)\b|\bkalzium\b'),
    FieldRule('iron', r'\biron\b|\bfer\b|\beisen\b|\bhierro\b|\bferro\b'),
    FieldRule('potassium', r'\bpotassi(?:um|o)\b|\bkalium\b|\bpotasio\b'),
    FieldRule('zinc', r'\bzin(?:c|k|co)\b'),
    FieldRule('magnesium', r'\bmagn[eé]si(?:um|o)\b'),
]


def parse_number(text: str) -> float:
    """Parse "2,5" or "2.5" as 2.5"""
    return float(text.replace(',', '.'))


def _blank(line: str, match: re.Match) -> str:
    start, end = match.span()
    return line[:start] + ' ' * (end - start) + line[end:]


class NutritionLabelParser:
    """Keyword + unit pattern matcher for printed nutrition labels"""

    def __init__(self):
        self._energy_keyword = re.compile(ENERGY_KEYWORDS)
        self._energy_after_keyword = re.compile(
            f"(?:{ENERGY_KEYWORDS}){GAP}{NUMBER}(?!\\s*(?:g|ml|mg|%)\\b)\\s*(kcal|kj|cal)?"
        )
        self._kcal_value = re.compile(f"{NUMBER}\\s*kcal\\b")
        self._kj_value = re.compile(f"{NUMBER}\\s*kj\\b")

        self._gram_rules = [(rule.field, rule.compile()) for rule in GRAM_RULES]
        self._sodium = SODIUM_RULE.compile()
        self._salt = SALT_RULE.compile()
        self._micro_mg = [
            (rule.field, re.compile(f"(?:{rule.keywords}){GAP}{NUMBER}{MILLIGRAM_UNIT}"))
            for rule in MICRONUTRIENT_RULES
        ]
        self._micro_ug = [
            (rule.field, re.compile(f"(?:{rule.keywords}){GAP}{NUMBER}{MICROGRAM_UNIT}"))
            for rule in MICRONUTRIENT_RULES
        ]

    def parse(self, text: str) -> NutritionEstimate:
        """Parse newline-joined recognized text into an estimate"""
        estimate = NutritionEstimate()
        salt_g = None
        kilojoules = None

        for raw_line in (text or '').splitlines():
            line = raw_line.lower()
            if not line.strip():
                continue

            line, kj = self._parse_energy(line, estimate)
            if kilojoules is None:
                kilojoules = kj
            line = self._parse_sodium(line, estimate)

            if salt_g is None:
                match = self._salt.search(line)
                if match:
                    salt_g = parse_number(match.group(1))
                    line = _blank(line, match)

            line = self._parse_micronutrients(line, estimate)

            for field, pattern in self._gram_rules:
                match = pattern.search(line)
                if match:
                    estimate.fill_if_absent(field, parse_number(match.group(1)))
                    line = _blank(line, match)

        # Printed kcal anywhere beats a kJ conversion
        if kilojoules is not None:
            estimate.fill_if_absent('calories', kilojoules * KCAL_PER_KJ)

        # Explicit sodium anywhere beats a salt conversion
        if salt_g is not None:
            estimate.fill_if_absent('sodium_mg', salt_g * SODIUM_MG_PER_SALT_G)

        return estimate

    def parse_best(self, texts: Iterable[str]) -> Optional[NutritionEstimate]:
        """Parse every candidate and keep the one with the most fields; ties keep the first"""
        best = self.best_candidate(texts)
        return best[1] if best else None

    def best_candidate(self, texts: Iterable[str]) -> Optional[Tuple[str, NutritionEstimate]]:
        """Like parse_best, but also returns the text the winning estimate came from"""
        best = None
        for text in texts:
            if not text:
                continue
            parsed = self.parse(text)
            if best is None or parsed.parsed_field_count > best[1].parsed_field_count:
                best = (text, parsed)
        if best is None or best[1].is_empty():
            return None
        return best

    def _parse_energy(self, line: str, estimate: NutritionEstimate) -> Tuple[str, Optional[float]]:
        """Fill calories from kcal values; kJ values are returned for the end-of-text fallback"""
        has_keyword = self._energy_keyword.search(line) is not None
        if not has_keyword and 'kj' not in line:
            return line, None

        match = self._kcal_value.search(line)
        if match:
            estimate.fill_if_absent('calories', parse_number(match.group(1)))
            return _blank(line, match), None

        if has_keyword:
            match = self._energy_after_keyword.search(line)
            if match:
                value = parse_number(match.group(1))
                if match.group(2) == 'kj':
                    return _blank(line, match), value
                estimate.fill_if_absent('calories', value)
                return _blank(line, match), None

        match = self._kj_value.search(line)
        if match:
            return _blank(line, match), parse_number(match.group(1))
        return line, None

    def _parse_sodium(self, line: str, estimate: NutritionEstimate) -> str:
        match = self._sodium.search(line)
        if not match:
            return line
        value = parse_number(match.group(1))
        if match.group(2) == 'g':
            value *= 1000
        estimate.fill_if_absent('sodium_mg', value)
        return _blank(line, match)

    def _parse_micronutrients(self, line: str, estimate: NutritionEstimate) -> str:
        for (field, mg_pattern), (_, ug_pattern) in zip(self._micro_mg, self._micro_ug):
            match = mg_pattern.search(line)
            if match:
                estimate.fill_if_absent(field, parse_number(match.group(1)))
                line = _blank(line, match)
                continue
            match = ug_pattern.search(line)
            if match:
                estimate.fill_if_absent(field, parse_number(match.group(1)) / 1000)
                line = _blank(line, match)
        return line
