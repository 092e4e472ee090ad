"""Domain error hierarchy shared by the core components and the HTTP layer.

Extraction errors carry a stable ``code`` and the HTTP status the boundary
should answer with, so routes never need to re-map them by hand.
"""

from enum import Enum


class PactwiseError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(PactwiseError):
    """Required configuration is missing or invalid."""

    status_code = 500


class ExtractionError(PactwiseError):
    """Base class for text extraction failures."""

    code: str = "EXTRACTION_FAILED"
    status_code = 500


class InvalidFileType(ExtractionError):
    """Uploaded file is not a PDF."""

    code = "INVALID_FILE_TYPE"
    status_code = 400


class ExtractionFailed(ExtractionError):
    """The document could not be parsed by any tier."""

    code = "EXTRACTION_FAILED"
    status_code = 500


class EncryptedDocument(ExtractionFailed):
    """The PDF is password-protected and cannot be read without the password."""

    status_code = 422


class InsufficientText(ExtractionError):
    """All tiers ran but produced less text than the viable threshold."""

    code = "INSUFFICIENT_TEXT"
    status_code = 422


class PageLimitExceeded(ExtractionError):
    """The OCR tier refused a document longer than the page cap."""

    code = "PAGE_LIMIT_EXCEEDED"
    status_code = 422

    def __init__(self, page_count: int, max_pages: int) -> None:
        super().__init__(
            f"OCR page limit exceeded ({page_count} pages, maximum is {max_pages})"
        )
        self.page_count = page_count
        self.max_pages = max_pages


class ProviderError(PactwiseError):
    """The LLM provider was unreachable, rejected the call or is not configured."""

    status_code = 502

    def __init__(
        self,
        message: str,
        upstream_status: int | None = None,
        upstream_body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status
        self.upstream_body = upstream_body


class DenialReason(str, Enum):
    """Why a plan or ownership check refused the caller."""

    PLAN_NOT_FOUND = "plan_not_found"
    UPGRADE_REQUIRED = "upgrade_required"
    QUOTA_EXCEEDED = "quota_exceeded"
    NOT_OWNER = "not_owner"


class AuthorizationDenied(PactwiseError):
    """A plan or ownership check failed closed."""

    status_code = 403

    def __init__(self, reason: DenialReason, message: str = "") -> None:
        super().__init__(message or reason.value)
        self.reason = reason


class NotFoundError(PactwiseError):
    """Record missing or not owned by the caller."""

    status_code = 404


class InvalidInput(PactwiseError):
    """Client-correctable input error detected by a core component."""

    status_code = 400


class NotAContract(PactwiseError):
    """The text failed the contract heuristic check."""

    code = "NOT_A_CONTRACT"
    status_code = 422
