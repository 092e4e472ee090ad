"""asyncpg repositories for analyses, chat threads and user plans."""

from core.storage.analysis_repository import AnalysisRepository
from core.storage.chat_repository import ChatRepository
from core.storage.models import (
    AnalysisRecord,
    ChatMessage,
    ChatThread,
    MessageRole,
    PlanTier,
    UserPlan,
)
from core.storage.plan_repository import PlanRepository

__all__ = [
    "AnalysisRecord",
    "AnalysisRepository",
    "ChatMessage",
    "ChatRepository",
    "ChatThread",
    "MessageRole",
    "PlanRepository",
    "PlanTier",
    "UserPlan",
]
