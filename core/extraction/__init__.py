"""Text extraction from uploaded PDFs.

- text_extractor: tiered primary / structural / OCR strategy
- ocr: rasterization and Tesseract recognition for image-only documents
- scratch: scoped temporary files
"""

from core.extraction.ocr import OcrEngine, OcrExtractor, TesseractEngine, ocr_session
from core.extraction.text_extractor import (
    ExtractedText,
    ExtractionTier,
    TextExtractor,
    decode_run_token,
)

__all__ = [
    "OcrEngine",
    "OcrExtractor",
    "TesseractEngine",
    "ocr_session",
    "ExtractedText",
    "ExtractionTier",
    "TextExtractor",
    "decode_run_token",
]
