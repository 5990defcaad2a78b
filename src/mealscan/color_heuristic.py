"""
mealscan - color heuristic classifier

Last-resort estimate from coarse color statistics. It has no failure path
once the image decodes: a plate of anything gets one of four category
presets scaled by the saliency portion.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

import numpy as np
from PIL import Image

from .models import NutritionEstimate, round_half_up
from .priors import area_scale, clamp, split_macros
from .saliency import PortionEstimator

logger = logging.getLogger(__name__)

RASTER_SIZE = 64
NEUTRAL_TOLERANCE = 30
DARK_LUMA = 60
BRIGHT_LUMA = 200

KCAL_MIN = 180
KCAL_MAX = 1400
HEARTY_AREA_FLOOR = 0.55
HEARTY_KCAL_FLOOR = 680


class FoodCategory(Enum):
    DESSERT = "dessert"
    VEGETABLE = "vegetable"
    CARB_HEAVY = "carb_heavy"
    PROTEIN_HEAVY = "protein_heavy"


@dataclass
class ColorFeatures:
    """Pixel-bucket ratios; warm/green/neutral are exclusive, dark/bright are exclusive"""
    warm: float
    green: float
    neutral: float
    dark: float
    bright: float


@dataclass(frozen=True)
class CategoryPreset:
    base_kcal: int
    carb_ratio: float
    protein_ratio: float
    fat_ratio: float
    portion_scale_gain: float


CATEGORY_PRESETS = {
    FoodCategory.DESSERT: CategoryPreset(420, 0.55, 0.07, 0.38, 0.6),
    FoodCategory.VEGETABLE: CategoryPreset(220, 0.45, 0.15, 0.40, 0.7),
    FoodCategory.CARB_HEAVY: CategoryPreset(520, 0.62, 0.14, 0.24, 1.0),
    FoodCategory.PROTEIN_HEAVY: CategoryPreset(480, 0.10, 0.50, 0.40, 1.0),
}

# Conservative placeholders (mg), not measurements
CATEGORY_MICRONUTRIENTS: Dict[FoodCategory, Dict[str, int]] = {
    FoodCategory.DESSERT: {'calcium': 60, 'iron': 1, 'potassium': 120, 'magnesium': 15},
    FoodCategory.VEGETABLE: {'vitamin_a': 1, 'vitamin_c': 30, 'vitamin_k': 1, 'calcium': 80,
                             'iron': 2, 'potassium': 450, 'magnesium': 40},
    FoodCategory.CARB_HEAVY: {'vitamin_b': 1, 'calcium': 40, 'iron': 2, 'potassium': 200,
                              'zinc': 1, 'magnesium': 40},
    FoodCategory.PROTEIN_HEAVY: {'vitamin_b': 2, 'calcium': 30, 'iron': 3, 'potassium': 400,
                                 'zinc': 4, 'magnesium': 35},
}

# (minimum warm+neutral share, kcal bonus), strongest first
FRIED_BONUS_STEPS: Tuple[Tuple[float, int], ...] = ((0.85, 320), (0.75, 220), (0.60, 140))


def color_features(image: Image.Image, size: int = RASTER_SIZE) -> ColorFeatures:
    """Bucket every pixel of a small raster of the image"""
    small = image.convert("RGB").resize((size, size), Image.Resampling.BILINEAR)
    pixels = np.asarray(small, dtype=np.int16).reshape(-1, 3)
    r, g, b = pixels[:, 0], pixels[:, 1], pixels[:, 2]

    spread = pixels.max(axis=1) - pixels.min(axis=1)
    neutral = spread <= NEUTRAL_TOLERANCE
    warm = ~neutral & (r >= g) & (r >= b)
    green = ~neutral & ~warm & (g >= b)

    luma = 0.299 * r + 0.587 * g + 0.114 * b
    total = float(len(pixels))

    return ColorFeatures(
        warm=float(warm.sum()) / total,
        green=float(green.sum()) / total,
        neutral=float(neutral.sum()) / total,
        dark=float((luma < DARK_LUMA).sum()) / total,
        bright=float((luma > BRIGHT_LUMA).sum()) / total,
    )


def categorize(features: ColorFeatures) -> FoodCategory:
    if features.warm > 0.35 and (features.bright > 0.08 or features.dark > 0.10):
        return FoodCategory.DESSERT
    if features.green > 0.28:
        return FoodCategory.VEGETABLE
    if features.neutral > 0.30:
        return FoodCategory.CARB_HEAVY
    if features.warm > 0.28:
        return FoodCategory.PROTEIN_HEAVY
    return FoodCategory.CARB_HEAVY


def fried_bonus(features: ColorFeatures) -> int:
    share = features.warm + features.neutral
    for threshold, bonus in FRIED_BONUS_STEPS:
        if share > threshold:
            return bonus
    return 0


@dataclass
class ColorGuess:
    estimate: NutritionEstimate
    category: FoodCategory
    features: ColorFeatures
    area_ratio: float

    @property
    def confidence(self) -> float:
        return self.area_ratio + (0.1 if self.estimate.has_macros else 0.0)


class ColorHeuristicClassifier:
    """Buckets a scene into one of four food categories from its colors"""

    def __init__(self, portion_estimator: Optional[PortionEstimator] = None):
        self.portion_estimator = portion_estimator or PortionEstimator()

    def guess(self, image: Image.Image) -> Optional[NutritionEstimate]:
        result = self.analyze(image)
        return result.estimate if result else None

    def analyze(self, image: Image.Image) -> ColorGuess:
        features = color_features(image)
        category = categorize(features)
        area_ratio = self.portion_estimator.largest_object_area_ratio(image)

        hearty_plate = (features.warm + features.neutral) > 0.70 and features.green < 0.10
        apply_hearty = hearty_plate and category is not FoodCategory.DESSERT

        preset = CATEGORY_PRESETS[category]
        scale = area_scale(
            area_ratio,
            preset.portion_scale_gain,
            area_floor=HEARTY_AREA_FLOOR if apply_hearty else 0.10
        )
        kcal = round_half_up(preset.base_kcal * scale)
        if apply_hearty:
            kcal = max(kcal, HEARTY_KCAL_FLOOR)
        kcal += fried_bonus(features)
        kcal = int(clamp(kcal, KCAL_MIN, KCAL_MAX))

        estimate = split_macros(kcal, preset.carb_ratio, preset.protein_ratio, preset.fat_ratio)
        for name, value in CATEGORY_MICRONUTRIENTS[category].items():
            estimate.fill_if_absent(name, value)

        logger.debug(
            f"Color guess {category.value}: warm={features.warm:.2f} green={features.green:.2f} "
            f"neutral={features.neutral:.2f} area={area_ratio:.2f} kcal={kcal}"
        )
        return ColorGuess(estimate, category, features, area_ratio)
