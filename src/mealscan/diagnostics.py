"""
mealscan - structured diagnostics for guess calls
"""

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

logger = logging.getLogger(__name__)


class DiagnosticsStage(Enum):
    ANALYZE_START = "analyze_start"
    IMAGE_PREPARED = "image_prepared"
    ROTATION_ATTEMPT = "rotation_attempt"
    BARCODE_DECODED = "barcode_decoded"
    BARCODE_UNREADABLE = "barcode_unreadable"
    BARCODE_NONE = "barcode_none"
    OCR_START_FAST = "ocr_start_fast"
    OCR_START_ACCURATE = "ocr_start_accurate"
    OCR_FINISHED = "ocr_finished"
    PARSE_RESULT = "parse_result"
    REFERENCE_MATCH = "reference_match"
    COLOR_GUESS = "color_guess"
    OCR_UPSERT_ATTEMPT = "ocr_upsert_attempt"
    OCR_UPSERT_SUCCESS = "ocr_upsert_success"
    OCR_UPSERT_FAILURE = "ocr_upsert_failure"
    ANALYZE_COMPLETE = "analyze_complete"
    ANALYZE_ERROR = "analyze_error"


@dataclass
class DiagnosticsEvent:
    stage: DiagnosticsStage
    timestamp: float = field(default_factory=time.time)
    rotation: Optional[int] = None
    code: Optional[str] = None
    text_length: Optional[int] = None
    parsed_field_count: Optional[int] = None
    label: Optional[str] = None
    confidence: Optional[float] = None
    upsert_key: Optional[str] = None
    message: Optional[str] = None

    def describe(self) -> str:
        details = []
        for name in ('rotation', 'code', 'text_length', 'parsed_field_count',
                     'label', 'confidence', 'upsert_key', 'message'):
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, float):
                value = f"{value:.3f}"
            details.append(f"{name}={value}")
        return f"[{self.stage.value}] " + ' '.join(details)


class DiagnosticsLog:
    """Bounded ring buffer of the most recent events, safe to share across threads"""

    def __init__(self, maxlen: int = 200):
        self._events = deque(maxlen=maxlen)
        self._lock = threading.Lock()

    def record(self, stage: DiagnosticsStage, **details) -> DiagnosticsEvent:
        event = DiagnosticsEvent(stage, **details)
        with self._lock:
            self._events.append(event)
        logger.debug(event.describe())
        return event

    def events(self, stage: Optional[DiagnosticsStage] = None) -> List[DiagnosticsEvent]:
        with self._lock:
            snapshot = list(self._events)
        if stage is None:
            return snapshot
        return [event for event in snapshot if event.stage is stage]

    def clear(self):
        with self._lock:
            self._events.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
