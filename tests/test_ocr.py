"""
Unit tests for OCR result handling and spatial text reconstruction.
"""

from types import SimpleNamespace

import pytest
from PIL import Image

from order_extraction.ocr_engine import OCREngine, TesseractBackend
from order_extraction.ocr_engine.spatial import (
    DEFAULT_GLYPH_WIDTH,
    average_glyph_width,
    reconstruct_spatial_text,
)
from order_extraction.utils.exceptions import OCRProcessingError

from conftest import make_line, make_ocr_result


class TestSpatialReconstruction:
    """Column gaps become runs of spaces."""

    def test_average_glyph_width(self):
        line = make_line(0, ("AB", 0, 20), ("CDEF", 30, 70))
        assert average_glyph_width(line.words) == 60 / 6

    def test_average_glyph_width_without_characters(self):
        assert average_glyph_width([]) == DEFAULT_GLYPH_WIDTH

    def test_small_gap_single_space_large_gap_many(self):
        result = make_ocr_result(make_line(0, ("AB", 0, 20), ("CD", 22, 42), ("EF", 100, 120)))
        # glyph width 10px; gap 58px -> 5 spaces
        assert reconstruct_spatial_text(result) == "AB CD     EF\n"

    def test_gap_measured_from_line_left_edge(self):
        result = make_ocr_result(
            make_line(0, ("ABCD", 0, 40)),
            make_line(1, ("XY", 50, 70), ("Z", 100, 110)),
        )
        lines = reconstruct_spatial_text(result).split("\n")
        assert lines[1] == "XY   Z"

    def test_every_line_newline_terminated(self, order_ocr_result):
        text = reconstruct_spatial_text(order_ocr_result)
        assert text.endswith("\n")
        assert text.count("\n") == order_ocr_result.line_count
        assert "WIDGET-100 Blue Widget         12.50     10   EACH      125.00" in text

    def test_raw_text_joins_lines(self, order_ocr_result):
        assert order_ocr_result.text.split("\n")[0] == "PO Number: 4500012345"


class FakeTesseract:
    """pytesseract stand-in returning canned image_to_data output."""

    Output = SimpleNamespace(DICT="dict")

    def __init__(self, data=None, error=None):
        self.data = data
        self.error = error
        self.config = None

    def image_to_data(self, image, lang, config, output_type):
        self.config = config
        if self.error is not None:
            raise self.error
        return self.data


@pytest.fixture
def tesseract_data():
    return {
        "text": ["", "12.50", "Widget", "  ", "Total:", "$125.00", "ghost"],
        "left": [0, 300, 100, 0, 0, 100, 10],
        "top": [0, 10, 10, 0, 40, 40, 60],
        "width": [0, 50, 60, 5, 60, 70, 0],
        "height": [0, 8, 8, 5, 8, 8, 8],
        "conf": [-1, 95, 91, -1, 88, "90", 50],
        "block_num": [1, 1, 1, 1, 1, 1, 2],
        "par_num": [1, 1, 1, 1, 2, 2, 1],
        "line_num": [0, 1, 1, 1, 1, 1, 1],
    }


def make_backend(monkeypatch, fake):
    monkeypatch.setattr(
        TesseractBackend, "_check_dependencies",
        lambda self: setattr(self, "_pytesseract", fake)
    )
    return TesseractBackend()


class TestTesseractBackend:
    """Parsing image_to_data output into lines."""

    def test_config_string(self, monkeypatch, tesseract_data):
        fake = FakeTesseract(tesseract_data)
        backend = make_backend(monkeypatch, fake)
        backend.extract(Image.new("RGB", (400, 100), "white"))
        assert fake.config == "--psm 6 --oem 3 -c preserve_interword_spaces=1"

    def test_words_grouped_and_sorted(self, monkeypatch, tesseract_data):
        backend = make_backend(monkeypatch, FakeTesseract(tesseract_data))
        result = backend.extract(Image.new("L", (400, 100), 255))

        assert [w.text for w in result.words] == ["12.50", "Widget", "Total:", "$125.00"]
        assert [line.text for line in result.lines] == ["Widget 12.50", "Total: $125.00"]
        assert result.lines[1].words[0].line_index == 1
        assert result.lines[0].bbox == (100, 10, 350, 18)
        assert result.image_width == 400
        assert result.engine == "tesseract"

    def test_failure_wrapped(self, monkeypatch):
        backend = make_backend(monkeypatch, FakeTesseract(error=RuntimeError("tesseract crashed")))
        with pytest.raises(OCRProcessingError):
            backend.extract(Image.new("RGB", (10, 10)))


class TestOCREngine:
    """Engine facade over a backend."""

    def test_delegates_to_backend(self):
        expected = make_ocr_result(make_line(0, ("A", 0, 10)))
        backend = SimpleNamespace(extract=lambda image: expected)
        engine = OCREngine(backend=backend)
        assert engine.extract(Image.new("RGB", (5, 5))) is expected

    def test_undecodable_bytes(self):
        engine = OCREngine(backend=SimpleNamespace(extract=lambda image: None))
        with pytest.raises(OCRProcessingError):
            engine.extract(b"not an image")

    def test_rejects_other_inputs(self):
        engine = OCREngine(backend=SimpleNamespace(extract=lambda image: None))
        with pytest.raises(OCRProcessingError):
            engine.extract("page.png")
