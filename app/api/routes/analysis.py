"""Contract analysis and saved-analysis routes."""

import hashlib
import logging

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_analysis_generator, get_analysis_repository, get_plan_gate
from app.auth import CurrentUser, require_user
from app.models.analysis import (
    AnalysisHistoryItem,
    AnalyzeRequest,
    AnalyzeResponse,
    SaveAnalysisRequest,
    SaveAnalysisResponse,
)
from core.analysis import AnalysisGenerator, AnalysisResult, OverallRisk
from core.errors import NotFoundError
from core.gate import Capability, PlanGate
from core.storage import AnalysisRecord, AnalysisRepository

logger = logging.getLogger("pactwise.api.analysis")

router = APIRouter()


def fingerprint_text(text: str) -> str:
    """SHA-256 content hash used to recognise re-uploads of the same document."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze_contract(
    request: AnalyzeRequest,
    user: CurrentUser = Depends(require_user),
    generator: AnalysisGenerator = Depends(get_analysis_generator),
    gate: PlanGate = Depends(get_plan_gate),
) -> AnalyzeResponse:
    """Run a structured risk analysis over extracted contract text.

    Free plans are checked against their analysis quota before the provider
    is called. Usage counters are incremented by billing, not here.
    """
    await gate.require(user.user_id, Capability.ANALYSIS)
    outcome = await generator.analyze_async(
        request.text,
        document_title=request.document_title,
        user_context=request.user_context,
        model=request.model,
    )
    logger.info(
        f"📊 Analysis for user {user.user_id}: '{outcome.title}' "
        f"risk={outcome.result.overall_risk} status={outcome.status.value}"
    )
    return AnalyzeResponse(
        analysis=outcome.result,
        model=outcome.model,
        title=outcome.title,
        status=outcome.status,
        prompt_version=outcome.prompt_version,
        truncated=outcome.truncated,
    )


@router.post("/analyses", response_model=SaveAnalysisResponse)
async def save_analysis(
    request: SaveAnalysisRequest,
    user: CurrentUser = Depends(require_user),
    repository: AnalysisRepository = Depends(get_analysis_repository),
) -> SaveAnalysisResponse:
    """Save an analysis result for later review and grounded chat."""
    fingerprint = request.doc_fingerprint
    if request.text:
        fingerprint = fingerprint_text(request.text)

    result = AnalysisResult.model_validate(
        request.model_dump(include=set(AnalysisResult.model_fields))
    )
    record = await repository.create(
        user_id=user.user_id,
        result=result,
        org_id=user.org_id,
        source_title=request.source_title,
        doc_fingerprint=fingerprint,
        model=request.model,
        prompt_version=request.prompt_version,
    )
    return SaveAnalysisResponse(id=record.id, created_at=record.created_at)


@router.get("/analyses", response_model=list[AnalysisHistoryItem])
async def list_analyses(
    limit: int = Query(default=20, ge=1, le=100),
    risk: OverallRisk | None = Query(default=None),
    user: CurrentUser = Depends(require_user),
    repository: AnalysisRepository = Depends(get_analysis_repository),
) -> list[AnalysisHistoryItem]:
    """List the caller's saved analyses, newest first."""
    records = await repository.list_for_user(
        user.user_id,
        limit=limit,
        risk=risk.value if risk else None,
        org_id=user.org_id,
    )
    return [
        AnalysisHistoryItem(
            id=record.id,
            name=record.source_title or "Untitled Contract",
            overall_risk=record.overall_risk,
            flags=len(record.red_flags),
            summary=record.summary,
            recommendations=record.recommendations,
            deal_parties=record.deal_parties,
            companies_involved=record.companies_involved,
            deal_room=record.deal_room,
            playbook=record.playbook,
            created_at=record.created_at,
        )
        for record in records
    ]


async def _get_owned(repository: AnalysisRepository, analysis_id: str, user_id: str) -> AnalysisRecord:
    record = await repository.get(analysis_id)
    if record is None or record.user_id != user_id:
        raise NotFoundError("Analysis not found")
    return record


@router.get("/analyses/{analysis_id}", response_model=AnalysisRecord)
async def get_analysis(
    analysis_id: str,
    user: CurrentUser = Depends(require_user),
    repository: AnalysisRepository = Depends(get_analysis_repository),
) -> AnalysisRecord:
    """Get a saved analysis owned by the caller."""
    return await _get_owned(repository, analysis_id, user.user_id)


@router.delete("/analyses/{analysis_id}")
async def delete_analysis(
    analysis_id: str,
    user: CurrentUser = Depends(require_user),
    repository: AnalysisRepository = Depends(get_analysis_repository),
) -> dict[str, bool]:
    """Delete a saved analysis owned by the caller."""
    await _get_owned(repository, analysis_id, user.user_id)
    await repository.delete(analysis_id, user.user_id)
    return {"success": True}
