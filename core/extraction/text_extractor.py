"""PDF text extraction with tiered fallback.

Tiers are tried in strict order, each only when the previous one produced
less than the minimum viable amount of text:

1. Primary: PyMuPDF plain-text pass in reading order, in memory.
2. Structural: walk the page/line/span structure from a scratch file on disk,
   percent-decoding every span token.
3. OCR: rasterize and recognize each page, only for documents that look
   image-only.

Whatever tier wins, the result is trimmed and must reach the minimum length,
otherwise ``InsufficientText`` is raised instead of returning unusable text.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable
from urllib.parse import unquote

import fitz  # PyMuPDF

from core.errors import EncryptedDocument, ExtractionFailed, InsufficientText, InvalidFileType
from core.extraction.ocr import OcrEngine, OcrExtractor, TesseractEngine
from core.extraction.scratch import scratch_file

logger = logging.getLogger("pactwise.text_extractor")

PDF_MIME_TYPE = "application/pdf"
DEFAULT_MIN_TEXT_LENGTH = 50


class ExtractionTier(str, Enum):
    """Which strategy produced the final text."""
    PRIMARY = "primary"
    STRUCTURAL = "structural"
    OCR = "ocr"


@dataclass
class ExtractedText:
    """Plain text produced by exactly one extraction tier."""
    text: str
    tier: ExtractionTier
    page_count: int = 0

    @property
    def char_count(self) -> int:
        return len(self.text)


@dataclass
class _PassResult:
    text: str
    page_count: int = 0
    has_images: bool = False
    opened: bool = True


def decode_run_token(token: str) -> str:
    """Percent-decode a run token, keeping the raw token if decoding fails."""
    if not token:
        return ""
    try:
        return unquote(token, errors="strict")
    except (UnicodeDecodeError, ValueError) as e:
        logger.debug(f"Keeping raw token {token!r}: {e}")
        return token


def _clean_text(text: str) -> str:
    text = re.sub(r"\n{3,}", "\n\n", text)
    text = re.sub(r"[ \t]{2,}", " ", text)
    return text.strip()


class TextExtractor:
    """Turns an uploaded PDF byte stream into plain text.

    Example:
        extractor = TextExtractor(ocr_engine_factory=lambda: TesseractEngine("eng"))
        result = extractor.extract(pdf_bytes, "application/pdf")
        print(result.tier, result.char_count)
    """

    def __init__(
        self,
        min_text_length: int = DEFAULT_MIN_TEXT_LENGTH,
        ocr_max_pages: int = 20,
        ocr_dpi: int = 200,
        ocr_engine_factory: Callable[[], OcrEngine] | None = None,
    ) -> None:
        self.min_text_length = min_text_length
        self.ocr = OcrExtractor(
            engine_factory=ocr_engine_factory or TesseractEngine,
            max_pages=ocr_max_pages,
            dpi=ocr_dpi,
        )

    @classmethod
    def from_settings(cls, settings: Any) -> "TextExtractor":
        """Build an extractor from application settings."""
        language = settings.ocr_language
        return cls(
            min_text_length=settings.min_text_length,
            ocr_max_pages=settings.ocr_max_pages,
            ocr_dpi=settings.ocr_dpi,
            ocr_engine_factory=lambda: TesseractEngine(language=language),
        )

    def is_viable(self, text: str) -> bool:
        """Check the text clears the minimum viable threshold."""
        return len(text.strip()) >= self.min_text_length

    def extract(self, data: bytes, mime_type: str | None) -> ExtractedText:
        """Extract text from a PDF, falling through the tiers as needed.

        Args:
            data: Raw uploaded bytes.
            mime_type: Declared MIME type of the upload.

        Returns:
            ExtractedText from the first tier that produced viable text.

        Raises:
            InvalidFileType: The upload is not declared as a PDF.
            ExtractionFailed: The bytes are not a readable PDF.
            EncryptedDocument: The PDF needs a password to open.
            PageLimitExceeded: OCR was needed but the document is too long.
            InsufficientText: Every applicable tier came up short.
        """
        normalized_mime = (mime_type or "").split(";")[0].strip().lower()
        if normalized_mime != PDF_MIME_TYPE:
            raise InvalidFileType(f"Unsupported file type {mime_type!r}. Please upload a PDF.")
        if not data:
            raise ExtractionFailed("Uploaded document is empty")

        primary = self._extract_primary(data)
        if primary.opened and self.is_viable(primary.text):
            return self._finish(primary.text, ExtractionTier.PRIMARY, primary.page_count)

        logger.info(
            f"Primary pass produced {len(primary.text.strip())} chars, trying structural fallback"
        )
        structural = self._extract_structural(data)
        if structural.opened and self.is_viable(structural.text):
            return self._finish(structural.text, ExtractionTier.STRUCTURAL, structural.page_count)

        if not primary.opened and not structural.opened:
            raise ExtractionFailed("Failed to extract text from PDF")

        if primary.has_images or structural.has_images:
            logger.info("Document looks image-only, running OCR fallback")
            text = self.ocr.extract(data)
            return self._finish(text, ExtractionTier.OCR, primary.page_count or structural.page_count)

        best = max(primary.text.strip(), structural.text.strip(), key=len)
        return self._finish(best, ExtractionTier.STRUCTURAL, structural.page_count)

    async def extract_async(self, data: bytes, mime_type: str | None) -> ExtractedText:
        """Run ``extract`` in the default executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.extract, data, mime_type)

    def _finish(self, text: str, tier: ExtractionTier, page_count: int) -> ExtractedText:
        final = text.strip()
        if len(final) < self.min_text_length:
            raise InsufficientText(
                "No sufficient text could be extracted. The document may be image-based or empty."
            )
        logger.info(f"📄 Extracted {len(final)} chars from {page_count} pages via {tier.value} tier")
        return ExtractedText(text=final, tier=tier, page_count=page_count)

    def _extract_primary(self, data: bytes) -> _PassResult:
        """Plain-text pass over the in-memory buffer, sorted into reading order."""
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except (RuntimeError, ValueError) as e:
            logger.warning(f"Primary pass could not open PDF: {e}")
            return _PassResult(text="", opened=False)

        if doc.needs_pass:
            doc.close()
            raise EncryptedDocument("The PDF is password-protected. Please upload an unlocked copy.")

        try:
            page_texts: list[str] = []
            has_images = False
            for page in doc:
                page_texts.append(_clean_text(page.get_text("text", sort=True)))
                if not has_images and page.get_images(full=False):
                    has_images = True
            return _PassResult(
                text="\n\n".join(t for t in page_texts if t),
                page_count=doc.page_count,
                has_images=has_images,
            )
        except (RuntimeError, ValueError) as e:
            logger.warning(f"Primary pass failed mid-document: {e}")
            return _PassResult(text="", page_count=doc.page_count)
        finally:
            doc.close()

    def _extract_structural(self, data: bytes) -> _PassResult:
        """Rebuild text from page/line/span structure via a scratch file."""
        with scratch_file(data) as path:
            try:
                doc = fitz.open(str(path))
            except (RuntimeError, ValueError) as e:
                logger.warning(f"Structural pass could not open PDF: {e}")
                return _PassResult(text="", opened=False)

            try:
                page_texts: list[str] = []
                has_images = False
                for page in doc:
                    page_texts.append(self._page_from_structure(page.get_text("dict")))
                    if not has_images and page.get_images(full=False):
                        has_images = True
                return _PassResult(
                    text="\n\n".join(t for t in page_texts if t),
                    page_count=doc.page_count,
                    has_images=has_images,
                )
            except (RuntimeError, ValueError) as e:
                logger.warning(f"Structural pass failed mid-document: {e}")
                return _PassResult(text="", page_count=doc.page_count)
            finally:
                doc.close()

    @staticmethod
    def _page_from_structure(page_dict: dict[str, Any]) -> str:
        """Concatenate span tokens per line and join lines with a single space."""
        lines: list[str] = []
        for block in page_dict.get("blocks", []):
            if block.get("type", 0) != 0:
                continue
            for line in block.get("lines", []):
                line_text = "".join(
                    decode_run_token(span.get("text", "")) for span in line.get("spans", [])
                ).strip()
                if line_text:
                    lines.append(line_text)
        return " ".join(lines).strip()
