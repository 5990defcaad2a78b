#!/usr/bin/env python3
"""
Tests for the diagnostics ring buffer
"""

import threading

from mealscan.diagnostics import DiagnosticsLog, DiagnosticsStage


class TestDiagnosticsLog:
    """Test cases for DiagnosticsLog"""

    def setup_method(self):
        """Set up test fixtures"""
        self.log = DiagnosticsLog(maxlen=3)

    def test_record_and_filter(self):
        self.log.record(DiagnosticsStage.ANALYZE_START)
        self.log.record(DiagnosticsStage.ROTATION_ATTEMPT, rotation=90)

        assert len(self.log) == 2
        attempts = self.log.events(DiagnosticsStage.ROTATION_ATTEMPT)
        assert [e.rotation for e in attempts] == [90]

    def test_bounded(self):
        for degrees in (0, 90, 180, 270):
            self.log.record(DiagnosticsStage.ROTATION_ATTEMPT, rotation=degrees)
        assert [e.rotation for e in self.log.events()] == [90, 180, 270]

    def test_clear(self):
        self.log.record(DiagnosticsStage.ANALYZE_START)
        self.log.clear()
        assert self.log.events() == []

    def test_describe(self):
        event = self.log.record(DiagnosticsStage.REFERENCE_MATCH, label="burger", confidence=0.75)
        assert event.describe() == "[reference_match] label=burger confidence=0.750"

    def test_concurrent_records(self):
        log = DiagnosticsLog(maxlen=1000)

        def worker():
            for _ in range(100):
                log.record(DiagnosticsStage.OCR_FINISHED, text_length=1)

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(log) == 500
