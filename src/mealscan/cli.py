#!/usr/bin/env python3
"""
mealscan command line interface
"""

import argparse
import logging
import sys
from pathlib import Path

from .config import setup_logging
from .errors import MealScanError
from .lookup import BarcodeRepository
from .models import NutritionEstimate
from .pipeline import PhotoNutritionGuesser

logger = logging.getLogger(__name__)

# (field, label, unit) in report order
REPORT_FIELDS = [
    ('calories', 'Calories', 'kcal'),
    ('carbohydrates', 'Carbs', 'g'),
    ('protein', 'Protein', 'g'),
    ('fat', 'Fat', 'g'),
    ('sodium_mg', 'Sodium', 'mg'),
    ('sugars', 'Sugars', 'g'),
    ('starch', 'Starch', 'g'),
    ('fibre', 'Fibre', 'g'),
    ('saturated_fat', 'Saturated fat', 'g'),
    ('monounsaturated_fat', 'Monounsaturated fat', 'g'),
    ('polyunsaturated_fat', 'Polyunsaturated fat', 'g'),
    ('trans_fat', 'Trans fat', 'g'),
    ('animal_protein', 'Animal protein', 'g'),
    ('plant_protein', 'Plant protein', 'g'),
    ('protein_supplements', 'Protein supplements', 'g'),
    ('vitamin_a', 'Vitamin A', 'mg'),
    ('vitamin_b', 'Vitamin B', 'mg'),
    ('vitamin_c', 'Vitamin C', 'mg'),
    ('vitamin_d', 'Vitamin D', 'mg'),
    ('vitamin_e', 'Vitamin E', 'mg'),
    ('vitamin_k', 'Vitamin K', 'mg'),
    ('calcium', 'Calcium', 'mg'),
    ('iron', 'Iron', 'mg'),
    ('potassium', 'Potassium', 'mg'),
    ('zinc', 'Zinc', 'mg'),
    ('magnesium', 'Magnesium', 'mg'),
]


def format_estimate(estimate: NutritionEstimate) -> str:
    lines = ["Nutrition Facts:"]
    for name, label, unit in REPORT_FIELDS:
        value = getattr(estimate, name)
        if value is not None:
            lines.append(f"  {label}: {value} {unit}")
    return '\n'.join(lines)


def main(argv=None):
    """CLI interface"""
    parser = argparse.ArgumentParser(description='mealscan - nutrition estimate from a food photo')
    parser.add_argument('--image', type=str, help='Photo of a meal or food package')
    parser.add_argument('--lang', type=str, default=None, help='Label language hint, e.g. fr')
    parser.add_argument('--barcode', type=str, help='Look up a barcode directly')
    parser.add_argument('--verbose', action='store_true', help='Debug logging')
    args = parser.parse_args(argv)

    setup_logging('DEBUG' if args.verbose else None)

    if args.barcode:
        estimate = BarcodeRepository().lookup(args.barcode)
        if estimate:
            print(f"\n{'='*50}")
            print(f"Barcode: {args.barcode}")
            print(format_estimate(estimate))
            print(f"{'='*50}\n")
            return 0
        print("Product not found")
        return 1

    if not args.image:
        parser.print_usage()
        print("Please provide --image path or --barcode")
        return 2

    path = Path(args.image)
    try:
        image_bytes = path.read_bytes()
    except OSError as e:
        print(f"Could not read {path}: {e}")
        return 2

    guesser = PhotoNutritionGuesser.default()
    try:
        outcome = guesser.analyze(image_bytes, args.lang)
    except MealScanError as e:
        logger.error(f"Analysis failed: {e}")
        print(f"Could not analyze {path.name}: {e}")
        return 1
    finally:
        if guesser.upsert_queue is not None:
            guesser.upsert_queue.close()

    if not outcome:
        print("No nutrition estimate found")
        return 1

    print(f"\n{'='*50}")
    print(f"Image: {path.name}")
    print(f"Source: {outcome.source.value} (rotation {outcome.rotation_degrees} degrees)")
    if outcome.barcode:
        print(f"Barcode: {outcome.barcode} ({outcome.barcode_type})")
    if outcome.label:
        print(f"Match: {outcome.label}")
    print(f"Score: {outcome.score:.2f}")
    print()
    print(format_estimate(outcome.estimate))
    print(f"{'='*50}\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
