"""Analysis request and response models."""

from datetime import datetime

from pydantic import Field

from core.analysis.schema import AnalysisResult, AnalysisStatus, CamelModel, UserContext
from core.analysis.taxonomy import OverallRisk


class AnalyzeRequest(CamelModel):
    """Schema for an analysis request."""
    text: str = ""
    document_title: str | None = None
    user_context: UserContext | None = None
    model: str | None = None


class AnalyzeResponse(CamelModel):
    analysis: AnalysisResult
    model: str
    title: str
    status: AnalysisStatus
    prompt_version: str
    truncated: bool = False


class SaveAnalysisRequest(AnalysisResult):
    """An analysis result plus provenance, as saved by the client."""
    source_title: str | None = None
    doc_fingerprint: str | None = None
    text: str | None = Field(default=None, description="Source text, used only to fingerprint")
    model: str | None = None
    prompt_version: str | None = None


class SaveAnalysisResponse(CamelModel):
    id: str
    created_at: datetime | None = None


class AnalysisHistoryItem(CamelModel):
    """Summary row for the analysis history list."""
    id: str
    name: str
    overall_risk: OverallRisk
    flags: int
    summary: str
    recommendations: list[str] = Field(default_factory=list)
    deal_parties: list[str] = Field(default_factory=list)
    companies_involved: list[str] = Field(default_factory=list)
    deal_room: str | None = None
    playbook: str | None = None
    created_at: datetime | None = None
