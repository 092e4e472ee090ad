"""Document upload response models."""

from core.analysis.schema import CamelModel
from core.extraction import ExtractionTier


class ExtractedTextResponse(CamelModel):
    """Response schema for a successful upload."""
    text: str
    tier: ExtractionTier
    page_count: int
    char_count: int


class ErrorResponse(CamelModel):
    """Error body shared by every route."""
    error: str
    code: str | None = None
    reason: str | None = None
