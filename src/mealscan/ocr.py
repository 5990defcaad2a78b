"""
mealscan - text recognition adapter
Two-tier tesseract OCR: a fast pass, then an accurate pass when the fast one reads too little
"""

import logging
import threading
from enum import Enum
from typing import Callable, List, Optional

import cv2
import numpy as np
import pytesseract
from PIL import Image

from .config import Config
from .imaging import to_gray

logger = logging.getLogger(__name__)

# ISO 639-1 hints -> tesseract language packs
TESSERACT_LANGUAGES = {
    'en': 'eng',
    'fr': 'fra',
    'de': 'deu',
    'es': 'spa',
    'it': 'ita',
    'pt': 'por',
    'nl': 'nld',
}


class RecognitionLevel(Enum):
    FAST = "fast"
    ACCURATE = "accurate"


def recognition_languages(language_hint: Optional[str] = None) -> List[str]:
    """[hint, "en"] when a hint is given, else ["en"]"""
    languages = []
    if language_hint:
        hint = language_hint.strip().lower().replace('_', '-').split('-')[0]
        if hint:
            languages.append(hint)
    if 'en' not in languages:
        languages.append('en')
    return languages


def tesseract_lang(languages: List[str]) -> str:
    codes = []
    for language in languages:
        code = TESSERACT_LANGUAGES.get(language, language if len(language) == 3 else None)
        if code and code not in codes:
            codes.append(code)
    return '+'.join(codes) or 'eng'


class TextRecognizer:
    """Wraps pytesseract with "fast" and "accurate" quality levels"""

    FAST_CONFIG = '--oem 1 --psm 6'
    ACCURATE_CONFIG = '--oem 1 --psm 3'

    def __init__(self, min_fast_chars: int = None, timeout: float = None):
        self.min_fast_chars = Config.OCR_MIN_FAST_CHARS if min_fast_chars is None else min_fast_chars
        self.timeout = Config.OCR_TIMEOUT if timeout is None else timeout

    def recognize(self, image: Image.Image, language_hint: Optional[str] = None,
                  cancel_event: Optional[threading.Event] = None) -> Optional[str]:
        """Fast pass if it reads more than min_fast_chars, else the accurate pass"""
        lang = tesseract_lang(recognition_languages(language_hint))
        fast = self.run_pass(image, RecognitionLevel.FAST, lang)
        if fast and len(fast) > self.min_fast_chars:
            return fast
        if cancel_event is not None and cancel_event.is_set():
            return None
        return self.run_pass(image, RecognitionLevel.ACCURATE, lang)

    def recognize_candidates(self, image: Image.Image, language_hint: Optional[str] = None,
                             cancel_event: Optional[threading.Event] = None,
                             allow_accurate: bool = True,
                             on_pass: Optional[Callable[[RecognitionLevel], None]] = None) -> List[str]:
        """
        Texts produced by the passes that ran, in order.

        The accurate pass runs only when the fast text is too short, and is
        skipped if `cancel_event` is set or `allow_accurate` is False.
        `on_pass` is called with each level just before it runs.
        """
        lang = tesseract_lang(recognition_languages(language_hint))
        candidates = []

        if on_pass is not None:
            on_pass(RecognitionLevel.FAST)
        fast = self.run_pass(image, RecognitionLevel.FAST, lang)
        if fast:
            candidates.append(fast)
        if fast and len(fast) > self.min_fast_chars:
            return candidates

        if not allow_accurate or (cancel_event is not None and cancel_event.is_set()):
            return candidates

        if on_pass is not None:
            on_pass(RecognitionLevel.ACCURATE)
        accurate = self.run_pass(image, RecognitionLevel.ACCURATE, lang)
        if accurate:
            candidates.append(accurate)
        return candidates

    def run_pass(self, image: Image.Image, level: RecognitionLevel, lang: str) -> Optional[str]:
        """One tesseract pass; failures and timeouts yield None"""
        try:
            if level is RecognitionLevel.FAST:
                prepared = to_gray(image)
                config = self.FAST_CONFIG
            else:
                prepared = self._prepare_accurate(image)
                config = self.ACCURATE_CONFIG

            raw = pytesseract.image_to_string(prepared, lang=lang, config=config, timeout=self.timeout)
        except Exception as e:
            logger.warning(f"OCR {level.value} pass failed: {e}")
            return None

        lines = [line.strip() for line in (raw or '').splitlines()]
        text = '\n'.join(line for line in lines if line)
        return text or None

    def _prepare_accurate(self, image: Image.Image) -> np.ndarray:
        """Upscale, equalise and binarise small or low-contrast label text"""
        gray = to_gray(image)
        gray = cv2.resize(gray, None, fx=2.0, fy=2.0, interpolation=cv2.INTER_CUBIC)
        clahe = cv2.createCLAHE(clipLimit=2.0, tileGridSize=(8, 8))
        gray = clahe.apply(gray)
        _, binary = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
        return binary
