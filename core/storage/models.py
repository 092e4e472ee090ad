"""Persisted entities read and written by the core."""

from datetime import datetime
from enum import Enum

from pydantic import Field

from core.analysis.schema import AnalysisResult, CamelModel


class AnalysisRecord(AnalysisResult):
    """A saved analysis plus ownership and provenance."""
    id: str
    user_id: str
    org_id: str | None = None
    source_title: str | None = None
    doc_fingerprint: str | None = None
    model: str | None = None
    prompt_version: str | None = None
    created_at: datetime | None = None

    def to_result(self) -> AnalysisResult:
        return AnalysisResult.model_validate(
            self.model_dump(include=set(AnalysisResult.model_fields))
        )


class ChatThread(CamelModel):
    id: str
    user_id: str
    analysis_id: str | None = None
    title: str = ""
    is_saved: bool = False
    created_at: datetime | None = None


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ChatMessage(CamelModel):
    """An immutable chat turn."""
    id: int | None = None
    thread_id: str
    role: MessageRole
    content: str
    created_at: datetime | None = None

    def to_prompt_message(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


class PlanTier(str, Enum):
    FREE = "free"
    PREMIUM = "premium"


class UserPlan(CamelModel):
    """Billing plan snapshot. Consulted by the plan gate, never mutated by it."""
    user_id: str
    plan: str = PlanTier.FREE.value
    free_quota: int = Field(default=0, ge=0)
    used_quota: int = Field(default=0, ge=0)

    @property
    def is_premium(self) -> bool:
        return self.plan == PlanTier.PREMIUM.value
