"""Unit tests for the OCR tier."""

from unittest.mock import MagicMock, patch

import fitz
import pytesseract
import pytest
from PIL import Image

from core.errors import EncryptedDocument, ExtractionFailed, PageLimitExceeded
from core.extraction.ocr import (
    OcrEngine,
    OcrError,
    OcrExtractor,
    OcrUnavailable,
    TesseractEngine,
    ocr_session,
    page_marker,
    rasterize_page,
)


class ScriptedEngine(OcrEngine):
    """Engine returning one scripted result per page."""

    def __init__(self, results: list) -> None:
        self.results = list(results)
        self.events: list[str] = []
        self.images: list[Image.Image] = []

    def start(self) -> None:
        self.events.append("start")

    def recognize(self, image: Image.Image) -> str:
        self.images.append(image)
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def terminate(self) -> None:
        self.events.append("terminate")


class TestOcrSession:
    """Tests for scoped engine lifecycle."""

    def test_start_and_terminate(self):
        engine = ScriptedEngine([])
        with ocr_session(engine) as active:
            assert active is engine
            assert engine.events == ["start"]

        assert engine.events == ["start", "terminate"]

    def test_terminate_on_error(self):
        """Test the engine is released when a page fails."""
        engine = ScriptedEngine([])
        with pytest.raises(OcrError):
            with ocr_session(engine):
                raise OcrError("page 2 unreadable")

        assert engine.events == ["start", "terminate"]

    def test_teardown_failure_does_not_mask_error(self):
        """Test a failing terminate never replaces the original error."""
        engine = MagicMock(spec=OcrEngine)
        engine.terminate.side_effect = RuntimeError("worker already gone")

        with pytest.raises(OcrError, match="page failed"):
            with ocr_session(engine):
                raise OcrError("page failed")

        engine.terminate.assert_called_once()


class TestOcrExtractor:
    """Tests for whole-document OCR."""

    def test_pages_joined_with_markers(self, make_pdf):
        engine = ScriptedEngine(["First page text", "Second page text"])
        extractor = OcrExtractor(engine_factory=lambda: engine)

        text = extractor.extract(make_pdf(["a", "b"]))

        assert text == (
            "--- Page 1 ---\n\nFirst page text\n\n"
            "--- Page 2 ---\n\nSecond page text"
        )
        assert engine.events == ["start", "terminate"]

    def test_blank_pages_skipped(self, make_pdf):
        """Test pages with no recognized text add no marker."""
        engine = ScriptedEngine(["", "Only content"])
        extractor = OcrExtractor(engine_factory=lambda: engine)

        text = extractor.extract(make_pdf(["a", "b"]))

        assert "--- Page 1 ---" not in text
        assert text == "--- Page 2 ---\n\nOnly content"

    def test_page_limit_is_terminal(self, make_pdf):
        """Test exceeding the cap raises instead of truncating."""
        factory = MagicMock()
        extractor = OcrExtractor(engine_factory=factory, max_pages=2)

        with pytest.raises(PageLimitExceeded) as exc_info:
            extractor.extract(make_pdf(["a", "b", "c"]))

        assert exc_info.value.code == "PAGE_LIMIT_EXCEEDED"
        factory.assert_not_called()

    def test_page_at_limit_is_processed(self, make_pdf):
        engine = ScriptedEngine(["one", "two"])
        extractor = OcrExtractor(engine_factory=lambda: engine, max_pages=2)

        assert "two" in extractor.extract(make_pdf(["a", "b"]))

    def test_recognition_error_releases_engine(self, make_pdf):
        """Test a page-level failure becomes ExtractionFailed and the engine is released."""
        engine = ScriptedEngine(["fine", OcrError("garbled")])
        extractor = OcrExtractor(engine_factory=lambda: engine)

        with pytest.raises(ExtractionFailed, match="garbled"):
            extractor.extract(make_pdf(["a", "b"]))

        assert engine.events == ["start", "terminate"]

    def test_unreadable_pdf(self):
        extractor = OcrExtractor(engine_factory=MagicMock())

        with pytest.raises(ExtractionFailed):
            extractor.extract(b"not a pdf")

    def test_password_protected_pdf(self, make_pdf):
        """Test an encrypted PDF is refused before the engine starts."""
        engine = ScriptedEngine([])
        extractor = OcrExtractor(engine_factory=lambda: engine)

        with pytest.raises(EncryptedDocument):
            extractor.extract(make_pdf(["a"], with_image=True, password="s3cret"))

        assert engine.events == []

    def test_rasterize_error_releases_engine(self, make_pdf):
        engine = ScriptedEngine(["x"])
        extractor = OcrExtractor(engine_factory=lambda: engine)

        with patch("core.extraction.ocr.rasterize_page", side_effect=ValueError("document closed")):
            with pytest.raises(ExtractionFailed, match="document closed"):
                extractor.extract(make_pdf(["a"]))

        assert engine.events == ["start", "terminate"]

    def test_rasterizes_at_configured_dpi(self, make_pdf):
        """Test page images scale with the DPI setting."""
        engine = ScriptedEngine(["x"])
        OcrExtractor(engine_factory=lambda: engine, dpi=144).extract(make_pdf(["a"]))

        # Default page is A4, 595pt wide
        assert engine.images[0].width == 1190


class TestTesseractEngine:
    """Tests for the pytesseract-backed engine."""

    def test_start_without_binary(self):
        engine = TesseractEngine()
        with patch(
            "core.extraction.ocr.pytesseract.get_tesseract_version",
            side_effect=pytesseract.TesseractNotFoundError(),
        ):
            with pytest.raises(OcrUnavailable):
                engine.start()

    def test_recognize_before_start(self):
        with pytest.raises(OcrError):
            TesseractEngine().recognize(Image.new("RGB", (10, 10)))

    def test_recognize_passes_language(self):
        engine = TesseractEngine(language="deu")
        with patch("core.extraction.ocr.pytesseract.get_tesseract_version", return_value="5.3.0"):
            engine.start()
        with patch("core.extraction.ocr.pytesseract.image_to_string", return_value="Vertrag") as ocr:
            assert engine.recognize(Image.new("RGB", (10, 10))) == "Vertrag"

        assert ocr.call_args.kwargs["lang"] == "deu"

    def test_recognize_error_wrapped(self):
        engine = TesseractEngine()
        with patch("core.extraction.ocr.pytesseract.get_tesseract_version", return_value="5.3.0"):
            engine.start()
        with patch(
            "core.extraction.ocr.pytesseract.image_to_string",
            side_effect=pytesseract.TesseractError(1, "bad image"),
        ):
            with pytest.raises(OcrError):
                engine.recognize(Image.new("RGB", (10, 10)))


def test_page_marker():
    assert page_marker(3) == "--- Page 3 ---"


def test_rasterize_page_returns_image(make_pdf):
    doc = fitz.open(stream=make_pdf(["a"]), filetype="pdf")
    try:
        image = rasterize_page(doc[0], dpi=72)
    finally:
        doc.close()

    assert isinstance(image, Image.Image)
    assert image.width == 595
