"""Optical fallback for scanned or image-only PDFs.

Pages are rasterized with PyMuPDF at a fixed DPI and recognized one at a time
by a Tesseract engine. The engine is started once per document and torn down
after the last page, including when a page fails.
"""

import io
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Callable, Iterator

import fitz  # PyMuPDF
import pytesseract
from PIL import Image

from core.errors import EncryptedDocument, ExtractionFailed, PageLimitExceeded

logger = logging.getLogger("pactwise.ocr")

DEFAULT_OCR_DPI = 200
DEFAULT_OCR_MAX_PAGES = 20


class OcrError(Exception):
    """Recognition failed for a page."""


class OcrUnavailable(OcrError):
    """The OCR engine could not be started."""


class OcrEngine(ABC):
    """Lifecycle and recognition interface for an OCR worker."""

    @abstractmethod
    def start(self) -> None:
        """Acquire the engine. Called once before the first page."""

    @abstractmethod
    def recognize(self, image: Image.Image) -> str:
        """Return the text found in one page image."""

    @abstractmethod
    def terminate(self) -> None:
        """Release the engine. Called once after the last page."""


class TesseractEngine(OcrEngine):
    """OCR engine backed by the Tesseract binary via pytesseract."""

    def __init__(self, language: str = "eng", config: str = "") -> None:
        self.language = language
        self.config = config
        self._started = False

    def start(self) -> None:
        try:
            version = pytesseract.get_tesseract_version()
        except pytesseract.TesseractNotFoundError as e:
            raise OcrUnavailable("Tesseract is not installed or not on PATH") from e
        logger.debug(f"Tesseract {version} started (lang={self.language})")
        self._started = True

    def recognize(self, image: Image.Image) -> str:
        if not self._started:
            raise OcrError("OCR engine used before start()")
        try:
            return pytesseract.image_to_string(image, lang=self.language, config=self.config)
        except (pytesseract.TesseractError, RuntimeError) as e:
            raise OcrError(str(e)) from e

    def terminate(self) -> None:
        self._started = False


@contextmanager
def ocr_session(engine: OcrEngine) -> Iterator[OcrEngine]:
    """Start ``engine`` and guarantee ``terminate`` on every exit path."""
    engine.start()
    try:
        yield engine
    finally:
        try:
            engine.terminate()
        except Exception as e:
            logger.warning(f"OCR engine teardown failed: {e}")


def rasterize_page(page: fitz.Page, dpi: int) -> Image.Image:
    """Render a PDF page to a PIL image at ``dpi``."""
    pixmap = page.get_pixmap(dpi=dpi)
    return Image.open(io.BytesIO(pixmap.tobytes("png")))


def page_marker(page_number: int) -> str:
    """Boundary marker placed before each recognized page."""
    return f"--- Page {page_number} ---"


class OcrExtractor:
    """Runs the OCR tier over a whole PDF.

    Example:
        extractor = OcrExtractor(engine_factory=lambda: TesseractEngine("eng"))
        text = extractor.extract(pdf_bytes)
    """

    def __init__(
        self,
        engine_factory: Callable[[], OcrEngine],
        max_pages: int = DEFAULT_OCR_MAX_PAGES,
        dpi: int = DEFAULT_OCR_DPI,
    ) -> None:
        self.engine_factory = engine_factory
        self.max_pages = max_pages
        self.dpi = dpi

    def extract(self, pdf_bytes: bytes) -> str:
        """Recognize every page and join them with page markers.

        Raises:
            PageLimitExceeded: The document has more pages than ``max_pages``.
            ExtractionFailed: The PDF cannot be rasterized or a page fails.
        """
        try:
            doc = fitz.open(stream=pdf_bytes, filetype="pdf")
        except (RuntimeError, ValueError) as e:
            raise ExtractionFailed(f"Cannot open PDF for OCR: {e}") from e

        try:
            if doc.needs_pass:
                raise EncryptedDocument("Cannot run OCR on a password-protected PDF")
            page_count = doc.page_count
            if page_count == 0:
                raise ExtractionFailed("No pages generated for OCR")
            if page_count > self.max_pages:
                raise PageLimitExceeded(page_count, self.max_pages)

            parts: list[str] = []
            try:
                with ocr_session(self.engine_factory()) as engine:
                    for index, page in enumerate(doc, start=1):
                        logger.info(f"OCR page {index}/{page_count}")
                        image = rasterize_page(page, self.dpi)
                        text = engine.recognize(image).strip()
                        if text:
                            parts.append(f"{page_marker(index)}\n\n{text}")
            except (OcrError, RuntimeError, ValueError) as e:
                raise ExtractionFailed(f"OCR failed: {e}") from e

            # Blank pages contribute nothing, not even a marker
            return "\n\n".join(parts).strip()
        finally:
            doc.close()
