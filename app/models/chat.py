"""Chat request and response models."""

from datetime import datetime

from pydantic import BaseModel

from core.analysis.schema import CamelModel


class GeneralChatRequest(CamelModel):
    message: str = ""
    thread_id: str | None = None
    save_chat: bool = False


class GroundedChatRequest(CamelModel):
    message: str = ""
    thread_id: str | None = None


class ChatResponse(CamelModel):
    thread_id: str
    reply: str


class ThreadMessage(BaseModel):
    """One message in a thread transcript."""
    role: str
    content: str
    created_at: datetime | None = None


class ThreadMessagesResponse(BaseModel):
    messages: list[ThreadMessage]


class SaveThreadRequest(CamelModel):
    title: str | None = None


class ThreadSummary(CamelModel):
    id: str
    title: str
    analysis_id: str | None = None
    is_saved: bool
    created_at: datetime | None = None


class ThreadListResponse(BaseModel):
    threads: list[ThreadSummary]
