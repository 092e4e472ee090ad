"""FastAPI dependencies wiring core components to the request.

The lifespan handler builds the long-lived clients (provider, database pool,
extractor) and stores them on ``app.state``. Everything else is assembled per
request from those pieces.
"""

from typing import Any

from fastapi import Depends, Request

from app.config import Settings, get_settings
from core.analysis import AnalysisGenerator
from core.chat import ChatContextBuilder, ChatService
from core.extraction import TextExtractor
from core.gate import PlanGate
from core.llm import ProviderClient
from core.storage import AnalysisRepository, ChatRepository, PlanRepository


def get_provider(request: Request, settings: Settings = Depends(get_settings)) -> ProviderClient:
    provider = getattr(request.app.state, "provider", None)
    if provider is None:
        provider = ProviderClient.from_settings(settings)
        request.app.state.provider = provider
    return provider


def get_extractor(request: Request, settings: Settings = Depends(get_settings)) -> TextExtractor:
    extractor = getattr(request.app.state, "extractor", None)
    if extractor is None:
        extractor = TextExtractor.from_settings(settings)
        request.app.state.extractor = extractor
    return extractor


def get_pool(request: Request) -> Any:
    return request.app.state.db.pool


def get_analysis_repository(pool: Any = Depends(get_pool)) -> AnalysisRepository:
    return AnalysisRepository(pool)


def get_chat_repository(pool: Any = Depends(get_pool)) -> ChatRepository:
    return ChatRepository(pool)


def get_plan_gate(pool: Any = Depends(get_pool)) -> PlanGate:
    return PlanGate(PlanRepository(pool))


def get_analysis_generator(
    provider: ProviderClient = Depends(get_provider),
    settings: Settings = Depends(get_settings),
) -> AnalysisGenerator:
    return AnalysisGenerator.from_settings(provider, settings)


def get_chat_service(
    threads: ChatRepository = Depends(get_chat_repository),
    analyses: AnalysisRepository = Depends(get_analysis_repository),
    gate: PlanGate = Depends(get_plan_gate),
    provider: ProviderClient = Depends(get_provider),
    settings: Settings = Depends(get_settings),
) -> ChatService:
    return ChatService(
        threads=threads,
        analyses=analyses,
        gate=gate,
        provider=provider,
        builder=ChatContextBuilder(
            grounded_window=settings.grounded_history_window,
            general_window=settings.general_history_window,
        ),
        temperature=settings.chat_temperature,
    )
