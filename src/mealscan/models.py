"""
mealscan - data models shared by every cascade stage
"""

import math
from dataclasses import dataclass, asdict, fields
from enum import Enum
from typing import Dict, Optional

KCAL_PER_KJ = 1 / 4.184
SODIUM_MG_PER_SALT_G = 400

# kcal per gram
CARB_DENSITY = 4.0
PROTEIN_DENSITY = 4.0
FAT_DENSITY = 9.0


def round_half_up(value: float) -> int:
    """Round half away from zero (0.5 -> 1), unlike the builtin round()"""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


@dataclass
class NutritionEstimate:
    """Best-effort nutrition for one dish or package.

    Energy in kcal, macros and sub-macros in grams, sodium in mg, vitamins
    and minerals in mg. Every field is optional; None means "unknown",
    which is not the same as 0.
    """
    calories: Optional[int] = None
    carbohydrates: Optional[int] = None
    protein: Optional[int] = None
    fat: Optional[int] = None
    sodium_mg: Optional[int] = None

    sugars: Optional[int] = None
    starch: Optional[int] = None
    fibre: Optional[int] = None

    monounsaturated_fat: Optional[int] = None
    polyunsaturated_fat: Optional[int] = None
    saturated_fat: Optional[int] = None
    trans_fat: Optional[int] = None

    animal_protein: Optional[int] = None
    plant_protein: Optional[int] = None
    protein_supplements: Optional[int] = None

    vitamin_a: Optional[int] = None
    vitamin_b: Optional[int] = None
    vitamin_c: Optional[int] = None
    vitamin_d: Optional[int] = None
    vitamin_e: Optional[int] = None
    vitamin_k: Optional[int] = None

    calcium: Optional[int] = None
    iron: Optional[int] = None
    potassium: Optional[int] = None
    zinc: Optional[int] = None
    magnesium: Optional[int] = None

    def __post_init__(self):
        for name in NUTRIENT_FIELDS:
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")

    @property
    def parsed_field_count(self) -> int:
        """Number of populated fields; a ranking tie-breaker only"""
        return sum(1 for name in NUTRIENT_FIELDS if getattr(self, name) is not None)

    @property
    def has_macros(self) -> bool:
        return any(getattr(self, name) is not None for name in MACRO_FIELDS)

    def is_empty(self) -> bool:
        return self.parsed_field_count == 0

    def fill_if_absent(self, name: str, value: Optional[float]) -> bool:
        """Set `name` to `value` unless it already holds a value.

        Returns True when the field was filled.
        """
        if value is None or getattr(self, name) is not None:
            return False
        if value < 0:
            raise ValueError(f"{name} must be >= 0, got {value}")
        setattr(self, name, round_half_up(value))
        return True

    def merge_missing(self, other: 'NutritionEstimate') -> 'NutritionEstimate':
        for name in NUTRIENT_FIELDS:
            self.fill_if_absent(name, getattr(other, name))
        return self

    def to_dict(self, include_empty: bool = False) -> Dict[str, Optional[int]]:
        data = asdict(self)
        if include_empty:
            return data
        return {key: value for key, value in data.items() if value is not None}

    @classmethod
    def from_dict(cls, data: Dict) -> 'NutritionEstimate':
        estimate = cls()
        for name in NUTRIENT_FIELDS:
            estimate.fill_if_absent(name, data.get(name))
        return estimate


NUTRIENT_FIELDS = tuple(f.name for f in fields(NutritionEstimate))
MACRO_FIELDS = ('calories', 'carbohydrates', 'protein', 'fat')


class GuessSource(Enum):
    """Which cascade stage produced a result"""
    BARCODE = "barcode"
    LABEL_OCR = "label_ocr"
    REFERENCE_MATCH = "reference_match"
    COLOR_HEURISTIC = "color_heuristic"


@dataclass
class GuessOutcome:
    """An estimate plus where it came from"""
    estimate: NutritionEstimate
    source: GuessSource
    rotation_degrees: int = 0
    score: float = 0.0
    barcode: Optional[str] = None
    barcode_type: Optional[str] = None
    label: Optional[str] = None
