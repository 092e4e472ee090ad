"""Document upload and text extraction routes."""

import logging

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import JSONResponse

from app.api.deps import get_extractor
from app.models.document import ErrorResponse, ExtractedTextResponse
from core.extraction import TextExtractor

logger = logging.getLogger("pactwise.api.documents")

router = APIRouter()


@router.post(
    "/upload",
    response_model=ExtractedTextResponse,
    responses={400: {"model": ErrorResponse}, 422: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def upload_document(
    file: UploadFile | None = File(None),
    extractor: TextExtractor = Depends(get_extractor),
):
    """Extract plain text from an uploaded PDF.

    The file is read into memory, handed to the tiered extractor and
    discarded; nothing is stored.
    """
    if file is None:
        return JSONResponse(
            status_code=400,
            content={"error": "No file uploaded.", "code": "NO_FILE"},
        )

    content = await file.read()
    if not content:
        return JSONResponse(
            status_code=400,
            content={"error": "Uploaded file is empty.", "code": "NO_FILE"},
        )

    # Extraction errors are rendered as {error, code} by the app handlers
    extracted = await extractor.extract_async(content, file.content_type)
    logger.info(
        f"📄 Extracted {extracted.char_count} chars from '{file.filename}' "
        f"via {extracted.tier.value} tier"
    )
    return ExtractedTextResponse(
        text=extracted.text,
        tier=extracted.tier,
        page_count=extracted.page_count,
        char_count=extracted.char_count,
    )
