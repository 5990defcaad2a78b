#!/usr/bin/env python3
"""
Tests for the barcode decoding adapter
"""

from unittest.mock import Mock, patch

from PIL import Image

from mealscan.barcode import BarcodeDetector, BarcodeType, classify_barcode_type


def decoded(payload: bytes):
    return Mock(data=payload)


class TestClassifyBarcode:

    def test_types(self):
        assert classify_barcode_type("5449000000996") is BarcodeType.EAN13
        assert classify_barcode_type("049000006346") is BarcodeType.UPCA
        assert classify_barcode_type("96385074") is BarcodeType.EAN8
        assert classify_barcode_type("012345") is BarcodeType.UPCE
        assert classify_barcode_type("ABC-123") is BarcodeType.CODE128
        assert classify_barcode_type("") is BarcodeType.UNKNOWN


class TestBarcodeDetector:
    """Test cases for BarcodeDetector"""

    def setup_method(self):
        """Set up test fixtures"""
        self.image = Image.new("RGB", (40, 30), (255, 255, 255))

    def test_unavailable_returns_none(self):
        with patch('mealscan.barcode.PYZBAR_AVAILABLE', False):
            detector = BarcodeDetector()
            assert not detector.available
            assert detector.detect_first_barcode(self.image) is None

    def test_first_payload_from_raw_frame(self):
        fake = Mock()
        fake.decode.return_value = [decoded(b"5449000000996"), decoded(b"96385074")]

        with patch('mealscan.barcode.PYZBAR_AVAILABLE', True), patch('mealscan.barcode.pyzbar', fake):
            assert BarcodeDetector().detect_first_barcode(self.image) == "5449000000996"
        assert fake.decode.call_count == 1

    def test_enhanced_frame_fallback(self):
        fake = Mock()
        fake.decode.side_effect = [[], [decoded(b" 049000006346 ")]]

        with patch('mealscan.barcode.PYZBAR_AVAILABLE', True), patch('mealscan.barcode.pyzbar', fake):
            assert BarcodeDetector().detect_first_barcode(self.image) == "049000006346"

        enhanced = fake.decode.call_args_list[1].args[0]
        assert enhanced.ndim == 2

    def test_no_enhancement(self):
        fake = Mock()
        fake.decode.return_value = []

        with patch('mealscan.barcode.PYZBAR_AVAILABLE', True), patch('mealscan.barcode.pyzbar', fake):
            assert BarcodeDetector(enhance=False).detect_first_barcode(self.image) is None
        assert fake.decode.call_count == 1

    def test_decoder_errors_are_swallowed(self):
        fake = Mock()
        fake.decode.side_effect = RuntimeError("zbar exploded")

        with patch('mealscan.barcode.PYZBAR_AVAILABLE', True), patch('mealscan.barcode.pyzbar', fake):
            assert BarcodeDetector().detect_first_barcode(self.image) is None
