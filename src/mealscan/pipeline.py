"""
mealscan - photo nutrition guesser

Cascade over the four rotation variants of one photo:

    barcode -> code lookup
    OCR (fast, then accurate) -> label parser
    reference similarity -> class priors (saliency for portion)
    color heuristic (saliency for portion)

Each stage runs only when every earlier stage produced nothing on every
rotation. The barcode stage stops at the first decoded code. The other
stages score all rotations and keep the best one; ties go to the lower
rotation, whatever order the workers finish in.
"""

import hashlib
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, Optional

from .barcode import BarcodeDetector, classify_barcode_type
from .color_heuristic import ColorHeuristicClassifier
from .config import Config
from .diagnostics import DiagnosticsLog, DiagnosticsStage
from .errors import GuessCancelledError, InvalidImageError
from .imaging import RotationVariant, decode_image, downscale_if_needed, rotation_variants
from .label_parser import NutritionLabelParser
from .lookup import BarcodeLookup, BarcodeRepository
from .models import GuessOutcome, GuessSource, NutritionEstimate
from .ocr import RecognitionLevel, TextRecognizer
from .priors import ClassPriorsTable
from .saliency import PortionEstimator
from .similarity import ReferenceManifest, ReferenceSimilarityClassifier
from .store import UpsertQueue

logger = logging.getLogger(__name__)


@dataclass
class _Candidate:
    """One rotation's result within a ranked stage"""
    rotation: int
    score: float
    estimate: Optional[NutritionEstimate] = None
    text: Optional[str] = None
    label: Optional[str] = None


def pick_best(candidates: List[Optional[_Candidate]]) -> Optional[_Candidate]:
    """Highest score wins; candidates are in rotation order so ties keep the lower rotation"""
    best = None
    for candidate in candidates:
        if candidate is None:
            continue
        if best is None or candidate.score > best.score:
            best = candidate
    return best


def upsert_key(text: str) -> str:
    """Store key for a parsed label, stable for identical recognized text"""
    return "ocr-" + hashlib.sha1(text.encode('utf-8')).hexdigest()[:16]


class PhotoNutritionGuesser:
    """
    Best-effort nutrition estimate for a single photo of food or packaging.

    Adapters are injected. The barcode, OCR and reference stages are skipped
    when their adapter is None, so a bare PhotoNutritionGuesser() goes
    straight to the color heuristic. `default()` wires the full cascade.
    """

    def __init__(self,
                 barcode_detector: Optional[BarcodeDetector] = None,
                 barcode_lookup: Optional[BarcodeLookup] = None,
                 text_recognizer: Optional[TextRecognizer] = None,
                 label_parser: Optional[NutritionLabelParser] = None,
                 classifier: Optional[ReferenceSimilarityClassifier] = None,
                 priors: Optional[ClassPriorsTable] = None,
                 portion_estimator: Optional[PortionEstimator] = None,
                 color_classifier: Optional[ColorHeuristicClassifier] = None,
                 diagnostics: Optional[DiagnosticsLog] = None,
                 upsert_queue: Optional[UpsertQueue] = None,
                 max_workers: int = None,
                 soft_budget: float = None,
                 max_image_edge: int = None,
                 clock: Callable[[], float] = time.monotonic):
        self.barcode_detector = barcode_detector
        self.barcode_lookup = barcode_lookup
        self.text_recognizer = text_recognizer
        self.label_parser = label_parser or NutritionLabelParser()
        self.classifier = classifier
        self.priors = priors or ClassPriorsTable()
        self.portion_estimator = portion_estimator or PortionEstimator()
        self.color_classifier = color_classifier or ColorHeuristicClassifier(self.portion_estimator)
        self.diagnostics = diagnostics or DiagnosticsLog()
        self.upsert_queue = upsert_queue
        self.max_workers = Config.ROTATION_WORKERS if max_workers is None else max_workers
        self.soft_budget = Config.SOFT_BUDGET_SECONDS if soft_budget is None else soft_budget
        self.max_image_edge = Config.MAX_IMAGE_EDGE if max_image_edge is None else max_image_edge
        self.clock = clock

    @classmethod
    def default(cls, **overrides) -> 'PhotoNutritionGuesser':
        """Guesser wired to the bundled assets and the default adapters"""
        from .embedding import ImageEmbedder

        diagnostics = overrides.pop('diagnostics', None) or DiagnosticsLog()
        repository = overrides.pop('barcode_lookup', None) or BarcodeRepository()
        manifest = ReferenceManifest(Config.ASSETS_DIR / Config.REFERENCE_MANIFEST)
        components = dict(
            barcode_detector=BarcodeDetector(),
            barcode_lookup=repository,
            text_recognizer=TextRecognizer(),
            classifier=ReferenceSimilarityClassifier(manifest, ImageEmbedder()),
            diagnostics=diagnostics,
        )
        if 'upsert_queue' not in overrides and isinstance(repository, BarcodeRepository):
            components['upsert_queue'] = UpsertQueue(
                repository.local,
                on_error=lambda key, e: diagnostics.record(
                    DiagnosticsStage.OCR_UPSERT_FAILURE, upsert_key=key, message=str(e)),
                on_success=lambda key: diagnostics.record(
                    DiagnosticsStage.OCR_UPSERT_SUCCESS, upsert_key=key),
            )
        components.update(overrides)
        return cls(**components)

    def guess(self, image_bytes: bytes, language_hint: Optional[str] = None,
              cancel_event: Optional[threading.Event] = None) -> Optional[NutritionEstimate]:
        """Single best estimate for the photo, or None when nothing was found"""
        outcome = self.analyze(image_bytes, language_hint, cancel_event)
        return outcome.estimate if outcome else None

    def analyze(self, image_bytes: bytes, language_hint: Optional[str] = None,
                cancel_event: Optional[threading.Event] = None) -> Optional[GuessOutcome]:
        """
        Run the cascade and report which stage and rotation won.

        Raises InvalidImageError for undecodable bytes and GuessCancelledError
        when `cancel_event` is set while running. Adapter failures never
        propagate; they count as "no result" for that rotation.
        """
        started = self.clock()
        self.diagnostics.record(DiagnosticsStage.ANALYZE_START, message=language_hint)

        try:
            image = decode_image(image_bytes)
        except InvalidImageError as e:
            self.diagnostics.record(DiagnosticsStage.ANALYZE_ERROR, message=str(e))
            raise

        image = downscale_if_needed(image, self.max_image_edge)
        variants = rotation_variants(image)
        self.diagnostics.record(
            DiagnosticsStage.IMAGE_PREPARED, message=f"{image.width}x{image.height}"
        )

        try:
            outcome = self._run_cascade(variants, language_hint, cancel_event, started)
        except GuessCancelledError as e:
            self.diagnostics.record(DiagnosticsStage.ANALYZE_ERROR, message=str(e))
            raise

        elapsed = self.clock() - started
        if outcome is None:
            self.diagnostics.record(DiagnosticsStage.ANALYZE_COMPLETE, message="no result")
            logger.info(f"No estimate found in {elapsed:.2f}s")
            return None

        self.diagnostics.record(
            DiagnosticsStage.ANALYZE_COMPLETE,
            rotation=outcome.rotation_degrees,
            parsed_field_count=outcome.estimate.parsed_field_count,
            message=outcome.source.value
        )
        logger.info(
            f"Estimate from {outcome.source.value} at {outcome.rotation_degrees} degrees "
            f"in {elapsed:.2f}s"
        )
        return outcome

    def _run_cascade(self, variants: List[RotationVariant], language_hint: Optional[str],
                     cancel_event: Optional[threading.Event], started: float) -> Optional[GuessOutcome]:
        self._check_cancelled(cancel_event)
        outcome = self._barcode_stage(variants, cancel_event)
        if outcome:
            return outcome

        with ThreadPoolExecutor(max_workers=max(1, self.max_workers),
                                thread_name_prefix="mealscan-rotation") as executor:
            self._check_cancelled(cancel_event)
            outcome = self._label_stage(executor, variants, language_hint, cancel_event, started)
            if outcome:
                return outcome

            self._check_cancelled(cancel_event)
            if self._over_budget(started):
                logger.warning("Soft budget exceeded, skipping reference matching")
            else:
                outcome = self._reference_stage(executor, variants, cancel_event)
                if outcome:
                    return outcome

            self._check_cancelled(cancel_event)
            return self._color_stage(executor, variants, cancel_event)

    def _check_cancelled(self, cancel_event: Optional[threading.Event]):
        if cancel_event is not None and cancel_event.is_set():
            raise GuessCancelledError("Guess cancelled by caller")

    def _over_budget(self, started: float) -> bool:
        return self.soft_budget > 0 and self.clock() - started > self.soft_budget

    def _map_rotations(self, executor: ThreadPoolExecutor, worker, variants: List[RotationVariant],
                       cancel_event: Optional[threading.Event]) -> List[Optional[_Candidate]]:
        """Run worker on every rotation; results come back in rotation order"""

        def guarded(variant):
            if cancel_event is not None and cancel_event.is_set():
                return None
            self.diagnostics.record(DiagnosticsStage.ROTATION_ATTEMPT, rotation=variant.degrees)
            try:
                return worker(variant)
            except Exception as e:
                logger.warning(f"{worker.__name__} failed at {variant.degrees} degrees: {e}")
                return None

        results = list(executor.map(guarded, variants))
        self._check_cancelled(cancel_event)
        return results

    # Barcode

    def _barcode_stage(self, variants: List[RotationVariant],
                       cancel_event: Optional[threading.Event]) -> Optional[GuessOutcome]:
        if self.barcode_detector is None:
            return None

        for variant in variants:
            self._check_cancelled(cancel_event)
            self.diagnostics.record(DiagnosticsStage.ROTATION_ATTEMPT, rotation=variant.degrees)
            try:
                code = self.barcode_detector.detect_first_barcode(variant.image)
            except Exception as e:
                logger.warning(f"Barcode detection failed at {variant.degrees} degrees: {e}")
                code = None
            if not code:
                continue

            barcode_type = classify_barcode_type(code).value
            self.diagnostics.record(DiagnosticsStage.BARCODE_DECODED, rotation=variant.degrees,
                                    code=code, message=f"type={barcode_type}")
            estimate = self._lookup_code(code)
            if estimate is None:
                self.diagnostics.record(DiagnosticsStage.BARCODE_UNREADABLE,
                                        rotation=variant.degrees, code=code)
                logger.info(f"Barcode {code} has no nutrition record, continuing cascade")
                return None
            return GuessOutcome(
                estimate=estimate,
                source=GuessSource.BARCODE,
                rotation_degrees=variant.degrees,
                score=1.0,
                barcode=code,
                barcode_type=barcode_type
            )

        self.diagnostics.record(DiagnosticsStage.BARCODE_NONE)
        return None

    def _lookup_code(self, code: str) -> Optional[NutritionEstimate]:
        if self.barcode_lookup is None:
            return None
        try:
            estimate = self.barcode_lookup.lookup(code)
        except Exception as e:
            logger.error(f"Barcode lookup failed for {code}: {e}")
            return None
        if estimate is None or estimate.is_empty():
            return None
        return estimate

    # Label OCR

    def _label_stage(self, executor: ThreadPoolExecutor, variants: List[RotationVariant],
                     language_hint: Optional[str], cancel_event: Optional[threading.Event],
                     started: float) -> Optional[GuessOutcome]:
        if self.text_recognizer is None:
            return None

        def read_label(variant: RotationVariant) -> Optional[_Candidate]:
            allow_accurate = not self._over_budget(started)
            if not allow_accurate:
                logger.warning(f"Soft budget exceeded, fast OCR only at {variant.degrees} degrees")

            def on_pass(level: RecognitionLevel):
                stage = (DiagnosticsStage.OCR_START_FAST if level is RecognitionLevel.FAST
                         else DiagnosticsStage.OCR_START_ACCURATE)
                self.diagnostics.record(stage, rotation=variant.degrees)

            texts = self.text_recognizer.recognize_candidates(
                variant.image,
                language_hint,
                cancel_event=cancel_event,
                allow_accurate=allow_accurate,
                on_pass=on_pass
            )
            self.diagnostics.record(
                DiagnosticsStage.OCR_FINISHED,
                rotation=variant.degrees,
                text_length=sum(len(text) for text in texts)
            )

            best = self.label_parser.best_candidate(texts)
            if best is None:
                return None
            text, estimate = best
            self.diagnostics.record(
                DiagnosticsStage.PARSE_RESULT,
                rotation=variant.degrees,
                parsed_field_count=estimate.parsed_field_count
            )
            return _Candidate(variant.degrees, float(estimate.parsed_field_count), estimate, text=text)

        best = pick_best(self._map_rotations(executor, read_label, variants, cancel_event))
        if best is None:
            return None

        self._enqueue_upsert(best)
        return GuessOutcome(
            estimate=best.estimate,
            source=GuessSource.LABEL_OCR,
            rotation_degrees=best.rotation,
            score=best.score
        )

    def _enqueue_upsert(self, candidate: _Candidate):
        if self.upsert_queue is None or not candidate.text:
            return
        key = upsert_key(candidate.text)
        self.diagnostics.record(DiagnosticsStage.OCR_UPSERT_ATTEMPT, upsert_key=key)
        try:
            self.upsert_queue.submit(key, candidate.estimate)
        except Exception as e:
            self.diagnostics.record(DiagnosticsStage.OCR_UPSERT_FAILURE, upsert_key=key, message=str(e))
            logger.error(f"Could not queue upsert for {key}: {e}")

    # Reference match

    def _reference_stage(self, executor: ThreadPoolExecutor, variants: List[RotationVariant],
                         cancel_event: Optional[threading.Event]) -> Optional[GuessOutcome]:
        if self.classifier is None:
            return None

        def match(variant: RotationVariant) -> Optional[_Candidate]:
            result = self.classifier.classify(variant.image)
            if result is None:
                return None
            if result.label not in self.priors:
                logger.debug(f"No class prior for {result.label}")
                return None
            return _Candidate(variant.degrees, result.confidence, label=result.label)

        best = pick_best(self._map_rotations(executor, match, variants, cancel_event))
        if best is None:
            return None

        variant = next(v for v in variants if v.degrees == best.rotation)
        area_ratio = self.portion_estimator.largest_object_area_ratio(variant.image)
        estimate = self.priors.estimate(best.label, area_ratio)
        if estimate is None:
            return None

        self.diagnostics.record(
            DiagnosticsStage.REFERENCE_MATCH,
            rotation=best.rotation,
            label=best.label,
            confidence=best.score
        )
        return GuessOutcome(
            estimate=estimate,
            source=GuessSource.REFERENCE_MATCH,
            rotation_degrees=best.rotation,
            score=best.score,
            label=best.label
        )

    # Color heuristic

    def _color_stage(self, executor: ThreadPoolExecutor, variants: List[RotationVariant],
                     cancel_event: Optional[threading.Event]) -> Optional[GuessOutcome]:

        def color_guess(variant: RotationVariant) -> Optional[_Candidate]:
            result = self.color_classifier.analyze(variant.image)
            if result is None:
                return None
            return _Candidate(variant.degrees, result.confidence, result.estimate,
                              label=result.category.value)

        best = pick_best(self._map_rotations(executor, color_guess, variants, cancel_event))
        if best is None:
            return None

        self.diagnostics.record(
            DiagnosticsStage.COLOR_GUESS,
            rotation=best.rotation,
            label=best.label,
            confidence=best.score
        )
        return GuessOutcome(
            estimate=best.estimate,
            source=GuessSource.COLOR_HEURISTIC,
            rotation_degrees=best.rotation,
            score=best.score,
            label=best.label
        )
