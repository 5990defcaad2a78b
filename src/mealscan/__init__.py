"""
mealscan - best-effort nutrition estimates from a single food photo
"""

import threading
from typing import Optional

from .errors import GuessCancelledError, InvalidImageError, MealScanError
from .models import GuessOutcome, GuessSource, NutritionEstimate
from .pipeline import PhotoNutritionGuesser

__version__ = "0.1.0"

_default_guesser = None
_default_lock = threading.Lock()


def default_guesser() -> PhotoNutritionGuesser:
    """Process-wide guesser with the default adapters, created on first use"""
    global _default_guesser
    with _default_lock:
        if _default_guesser is None:
            _default_guesser = PhotoNutritionGuesser.default()
        return _default_guesser


def guess(image_bytes: bytes, language_hint: Optional[str] = None,
          cancel_event: Optional[threading.Event] = None) -> Optional[NutritionEstimate]:
    return default_guesser().guess(image_bytes, language_hint, cancel_event)


__all__ = [
    'guess',
    'default_guesser',
    'PhotoNutritionGuesser',
    'NutritionEstimate',
    'GuessOutcome',
    'GuessSource',
    'MealScanError',
    'InvalidImageError',
    'GuessCancelledError',
]
