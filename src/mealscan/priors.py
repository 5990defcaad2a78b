"""
mealscan - food class priors

Static per-label reference statistics (typical kcal, macro split) that turn a
classifier label plus a portion-area proxy into a nutrition estimate.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from .models import CARB_DENSITY, FAT_DENSITY, PROTEIN_DENSITY, NutritionEstimate, round_half_up

AREA_MIN = 0.10
AREA_MAX = 0.90
AREA_CENTER = 0.35
SCALE_MIN = 0.5
SCALE_MAX = 1.6


@dataclass(frozen=True)
class ClassPrior:
    """Typical serving for one class; carb + protein + fat ratios sum to ~1.0"""
    label: str
    base_kcal: int
    carb_ratio: float
    protein_ratio: float
    fat_ratio: float
    min_kcal: Optional[int] = None
    max_kcal: Optional[int] = None
    portion_scale_gain: float = 1.0


def _p(label, base_kcal, carb, protein, fat, min_kcal, max_kcal, gain):
    return ClassPrior(label, base_kcal, carb, protein, fat, min_kcal, max_kcal, gain)


DEFAULT_PRIORS = [
    # Desserts / bakery
    _p("cupcake", 450, 0.55, 0.07, 0.38, 280, 560, 0.6),
    _p("donut", 320, 0.60, 0.06, 0.34, 220, 520, 0.6),
    _p("brownie_bar", 300, 0.55, 0.06, 0.39, 200, 520, 0.6),
    _p("cookie", 220, 0.64, 0.05, 0.31, 120, 400, 0.5),
    _p("cheesecake_slice", 480, 0.46, 0.09, 0.45, 320, 650, 0.7),
    _p("ice_cream_scoop", 180, 0.30, 0.06, 0.64, 120, 360, 0.5),
    _p("pancake_waffle_stack", 420, 0.56, 0.10, 0.34, 280, 700, 0.8),

    # Fried plate components
    _p("fries", 350, 0.58, 0.05, 0.37, 200, 900, 1.2),
    _p("battered_fish_fillet", 320, 0.25, 0.25, 0.50, 200, 800, 1.0),
    _p("fried_chicken_piece", 320, 0.12, 0.38, 0.50, 200, 850, 1.0),
    _p("onion_rings", 300, 0.50, 0.06, 0.44, 180, 700, 1.0),

    # Pasta / noodles / rice
    _p("pasta_tomato", 420, 0.68, 0.14, 0.18, 280, 900, 0.9),
    _p("pasta_cream", 600, 0.52, 0.12, 0.36, 380, 1200, 0.9),
    _p("pasta_pesto", 560, 0.48, 0.12, 0.40, 360, 1100, 0.9),
    _p("stir_fry_noodles", 520, 0.58, 0.18, 0.24, 320, 1100, 0.9),
    _p("ramen_noodle_soup", 480, 0.60, 0.18, 0.22, 300, 1000, 0.8),
    _p("curry_with_rice", 650, 0.58, 0.16, 0.26, 420, 1400, 1.0),
    _p("sushi_rolls", 360, 0.68, 0.20, 0.12, 220, 800, 0.8),

    # Sandwich / wrap / burger
    _p("burger", 520, 0.35, 0.23, 0.42, 380, 1100, 1.0),
    _p("sandwich_sub", 420, 0.48, 0.22, 0.30, 300, 900, 0.9),
    _p("wrap", 420, 0.48, 0.22, 0.30, 300, 900, 0.9),
    _p("hot_dog", 320, 0.38, 0.18, 0.44, 220, 800, 0.9),

    # Salad / soup
    _p("leafy_salad", 160, 0.40, 0.15, 0.45, 100, 450, 0.7),
    _p("salad_with_protein", 320, 0.30, 0.35, 0.35, 180, 700, 0.8),
    _p("creamy_salad", 280, 0.20, 0.16, 0.64, 160, 720, 0.8),
    _p("clear_soup_broth", 120, 0.40, 0.25, 0.35, 60, 360, 0.6),
    _p("creamy_soup", 260, 0.28, 0.18, 0.54, 140, 700, 0.7),

    # Breakfast
    _p("cereal_bowl_milk", 280, 0.64, 0.12, 0.24, 180, 520, 0.8),
    _p("oatmeal_porridge", 260, 0.66, 0.14, 0.20, 160, 520, 0.7),
    _p("toast_bread", 180, 0.72, 0.12, 0.16, 100, 420, 0.6),
    _p("eggs_scrambled", 220, 0.05, 0.40, 0.55, 140, 520, 0.7),
    _p("omelette", 280, 0.06, 0.42, 0.52, 180, 620, 0.7),
    _p("bacon_strips", 300, 0.03, 0.30, 0.67, 180, 800, 0.9),
    _p("sausage_links", 320, 0.04, 0.26, 0.70, 200, 850, 0.9),

    # Fruit / veg / snacks
    _p("mixed_fruit_bowl", 180, 0.92, 0.05, 0.03, 100, 420, 0.6),
    _p("banana", 100, 0.93, 0.04, 0.03, 70, 200, 0.5),
    _p("nuts_mixed", 180, 0.18, 0.14, 0.68, 120, 900, 1.0),
    _p("chocolate_bar", 240, 0.53, 0.06, 0.41, 160, 700, 0.8),
    _p("chips_crisps_bag", 260, 0.52, 0.06, 0.42, 160, 700, 0.8),

    # Pizza
    _p("pizza_slice_cheese", 280, 0.45, 0.16, 0.39, 200, 600, 0.8),
    _p("pizza_slice_pepperoni", 320, 0.42, 0.17, 0.41, 220, 700, 0.9),
    _p("pizza_slice_veg", 260, 0.48, 0.14, 0.38, 180, 600, 0.8),

    # Beverages
    _p("black_coffee", 5, 0.00, 0.00, 0.00, 0, 30, 0.3),
    _p("latte_cappuccino", 180, 0.40, 0.30, 0.30, 60, 380, 0.7),
    _p("soda_regular", 150, 1.00, 0.00, 0.00, 80, 400, 0.7),
    _p("soda_diet", 5, 0.00, 0.00, 0.00, 0, 30, 0.3),
    _p("smoothie_fruit", 180, 0.92, 0.05, 0.03, 100, 450, 0.7),

    # Protein plates
    _p("grilled_steak", 300, 0.00, 0.60, 0.40, 220, 900, 1.0),
    _p("grilled_chicken_breast", 250, 0.05, 0.75, 0.20, 180, 700, 0.9),
    _p("roasted_chicken_leg", 300, 0.02, 0.58, 0.40, 200, 800, 1.0),
    _p("grilled_salmon", 300, 0.00, 0.50, 0.50, 200, 800, 1.0),
    _p("tofu_stir_fry", 320, 0.25, 0.35, 0.40, 200, 900, 0.9),
]


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def area_scale(area_ratio: float, gain: float, area_floor: float = AREA_MIN) -> float:
    """Portion multiplier centred on a ~0.35 area ratio, weighted by a class gain"""
    clamped_area = clamp(area_ratio, area_floor, AREA_MAX)
    base_scale = 0.70 + 1.00 * (clamped_area - AREA_CENTER)
    return clamp(base_scale * (0.6 + 0.4 * gain), SCALE_MIN, SCALE_MAX)


def split_macros(kcal: int, carb_ratio: float, protein_ratio: float, fat_ratio: float) -> NutritionEstimate:
    """kcal plus carb/protein/fat grams at 4/4/9 kcal per gram"""
    return NutritionEstimate(
        calories=max(0, kcal),
        carbohydrates=max(0, round_half_up(kcal * carb_ratio / CARB_DENSITY)),
        protein=max(0, round_half_up(kcal * protein_ratio / PROTEIN_DENSITY)),
        fat=max(0, round_half_up(kcal * fat_ratio / FAT_DENSITY)),
    )


class ClassPriorsTable:
    """Label -> ClassPrior lookup with portion scaling"""

    def __init__(self, priors=None):
        self._priors: Dict[str, ClassPrior] = {p.label: p for p in (priors or DEFAULT_PRIORS)}

    def __contains__(self, label: str) -> bool:
        return label in self._priors

    def __len__(self) -> int:
        return len(self._priors)

    def get(self, label: str) -> Optional[ClassPrior]:
        return self._priors.get(label)

    def estimate(self, label: str, area_ratio: float) -> Optional[NutritionEstimate]:
        """Estimate for a label at a portion-area ratio; None for unknown labels"""
        prior = self._priors.get(label)
        if prior is None:
            return None

        scale = area_scale(area_ratio, prior.portion_scale_gain)
        kcal = round_half_up(prior.base_kcal * scale)
        if prior.min_kcal is not None:
            kcal = max(kcal, prior.min_kcal)
        if prior.max_kcal is not None:
            kcal = min(kcal, prior.max_kcal)

        return split_macros(kcal, prior.carb_ratio, prior.protein_ratio, prior.fat_ratio)
