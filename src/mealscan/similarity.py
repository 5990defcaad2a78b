"""
mealscan - reference similarity classifier

No-training matching against a small bundled gallery of labeled food photos.
The gallery is embedded once per process, on first use, and every probe is
matched to its nearest reference.
"""

import json
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Tuple

import numpy as np
from PIL import Image
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from .imaging import load_asset_image

logger = logging.getLogger(__name__)


class Embedder(Protocol):
    def embed(self, image: Image.Image) -> Optional[np.ndarray]:
        ...


class ReferenceItem(BaseModel):
    """One manifest row: a label and the bundled image file showing it"""
    label: str = Field(min_length=1)
    image: str = Field(min_length=1)


_MANIFEST = TypeAdapter(List[ReferenceItem])


class ManifestError(Exception):
    """The reference manifest is missing, malformed or empty"""


class ReferenceManifest:
    """Read-only list of gallery entries from a bundled JSON file"""

    def __init__(self, path: Path, image_dir: Optional[Path] = None):
        self.path = Path(path)
        self.image_dir = Path(image_dir) if image_dir else self.path.parent

    def load(self) -> List[ReferenceItem]:
        try:
            raw = self.path.read_text(encoding='utf-8')
        except OSError as e:
            raise ManifestError(f"{self.path.name} not found: {e}") from e
        try:
            items = _MANIFEST.validate_python(json.loads(raw))
        except (ValueError, ValidationError) as e:
            raise ManifestError(f"Failed to parse {self.path.name}: {e}") from e
        if not items:
            raise ManifestError(f"{self.path.name} is empty")
        return items

    def load_image(self, item: ReferenceItem) -> Optional[Image.Image]:
        return load_asset_image(self.image_dir, item.image)


@dataclass
class GalleryEntry:
    label: str
    embedding: np.ndarray


@dataclass
class MatchResult:
    label: str
    confidence: float  # ordering only, see similarity_to_confidence


class GalleryState(Enum):
    UNBUILT = "unbuilt"
    READY = "ready"
    UNAVAILABLE = "unavailable"


class GalleryCache:
    """
    Once-initialised holder for the embedded gallery.

    The first caller builds under a lock while concurrent callers wait, so
    each reference image is embedded at most once per successful build.
    A missing, malformed or empty manifest (or one with no loadable images)
    marks the gallery UNAVAILABLE for the rest of the process. A build that
    fails because the embedder raised leaves it UNBUILT so the next call
    retries.
    """

    def __init__(self, builder: Callable[[], List[GalleryEntry]]):
        self._builder = builder
        self._lock = threading.Lock()
        self._state = GalleryState.UNBUILT
        self._entries: Tuple[GalleryEntry, ...] = ()
        self.last_error: Optional[str] = None

    @property
    def state(self) -> GalleryState:
        return self._state

    def get(self) -> Tuple[GalleryEntry, ...]:
        if self._state is GalleryState.READY:
            return self._entries
        if self._state is GalleryState.UNAVAILABLE:
            return ()

        with self._lock:
            if self._state is GalleryState.UNBUILT:
                self._build()
            return self._entries

    def reset(self):
        with self._lock:
            self._state = GalleryState.UNBUILT
            self._entries = ()
            self.last_error = None

    def _build(self):
        try:
            entries = self._builder()
        except ManifestError as e:
            self.last_error = str(e)
            self._state = GalleryState.UNAVAILABLE
            logger.warning(f"Reference classifier unavailable: {e}")
            return
        except Exception as e:
            self.last_error = str(e)
            logger.error(f"Reference gallery build failed, will retry: {e}")
            return

        self._entries = tuple(entries)
        self._state = GalleryState.READY
        logger.info(f"Reference gallery ready with {len(self._entries)} entries")


def euclidean_distance(a: np.ndarray, b: np.ndarray) -> float:
    return float(np.linalg.norm(np.asarray(a, dtype=np.float64) - np.asarray(b, dtype=np.float64)))


def distance_to_similarity(distance: float) -> float:
    return 1.0 / (1.0 + distance)


def similarity_to_confidence(similarity: float) -> float:
    """
    Map similarity into [0, 1] as if it were a cosine value.

    1/(1+d) is not in [-1, 1], so the result only ranks matches; its
    absolute value is not calibrated.
    """
    return max(0.0, min(1.0, (similarity + 1.0) / 2.0))


class ReferenceSimilarityClassifier:
    """Nearest-reference label for a probe image"""

    def __init__(self, manifest: ReferenceManifest, embedder: Embedder):
        self.manifest = manifest
        self.embedder = embedder
        self.cache = GalleryCache(self._build_gallery)

    def _build_gallery(self) -> List[GalleryEntry]:
        items = self.manifest.load()

        entries = []
        failures = []
        for item in items:
            image = self.manifest.load_image(item)
            if image is None:
                continue
            try:
                vector = self.embedder.embed(image)
            except Exception as e:
                logger.warning(f"Could not embed reference {item.image}: {e}")
                failures.append(e)
                continue
            if vector is None:
                continue
            entries.append(GalleryEntry(item.label, np.asarray(vector, dtype=np.float32)))

        if not entries:
            if failures:
                raise RuntimeError(f"No reference images could be embedded: {failures[-1]}")
            raise ManifestError("No reference images could be loaded")
        return entries

    @property
    def available(self) -> bool:
        return len(self.cache.get()) > 0

    def classify(self, image: Image.Image) -> Optional[MatchResult]:
        references = self.cache.get()
        if not references:
            return None

        try:
            probe = self.embedder.embed(image)
        except Exception as e:
            logger.warning(f"Could not embed probe image: {e}")
            return None
        if probe is None:
            return None

        best_label = None
        best_similarity = -1.0
        for entry in references:
            similarity = distance_to_similarity(euclidean_distance(probe, entry.embedding))
            if similarity > best_similarity:
                best_similarity = similarity
                best_label = entry.label

        if best_label is None:
            return None
        return MatchResult(best_label, similarity_to_confidence(best_similarity))
