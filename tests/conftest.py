"""Shared pytest fixtures."""

import json
import uuid
from datetime import datetime, timezone
from typing import Any, Callable

import fitz
import pytest
from unittest.mock import MagicMock

from core.llm.provider import ProviderClient
from core.storage.models import AnalysisRecord, ChatMessage, ChatThread, MessageRole, UserPlan


def _build_pdf(pages: list[str], with_image: bool = False, password: str | None = None) -> bytes:
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text, fontsize=11)
        if with_image:
            pixmap = fitz.Pixmap(fitz.csRGB, fitz.IRect(0, 0, 16, 16), False)
            pixmap.clear_with(200)
            page.insert_image(fitz.Rect(72, 300, 200, 428), pixmap=pixmap)
    if password:
        data = doc.tobytes(
            encryption=fitz.PDF_ENCRYPT_AES_256,
            user_pw=password,
            owner_pw=password + "-owner",
        )
    else:
        data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def make_pdf() -> Callable[..., bytes]:
    """Build an in-memory PDF with one text string per page."""
    return _build_pdf


def _completion(
    content: Any,
    prompt_tokens: int = 400,
    completion_tokens: int = 200,
) -> MagicMock:
    if isinstance(content, dict):
        content = json.dumps(content)
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    response.usage = MagicMock()
    response.usage.prompt_tokens = prompt_tokens
    response.usage.completion_tokens = completion_tokens
    return response


@pytest.fixture
def make_completion() -> Callable[..., MagicMock]:
    """Build a mock chat-completion response like the OpenAI SDK returns."""
    return _completion


@pytest.fixture
def openai_client(make_completion: Callable[..., MagicMock]) -> MagicMock:
    """Mock OpenAI client answering every call with a plain-text reply."""
    client = MagicMock()
    client.chat.completions.create.return_value = make_completion("Sure, here is an answer.")
    return client


@pytest.fixture
def provider(openai_client: MagicMock) -> ProviderClient:
    """ProviderClient backed by the mock OpenAI client."""
    return ProviderClient(
        api_key="test-key",
        base_url="https://example.invalid/api/v1",
        model="test-model",
        client=openai_client,
    )


class InMemoryChatRepository:
    """Dict-backed stand-in for ChatRepository."""

    def __init__(self) -> None:
        self.threads: dict[str, ChatThread] = {}
        self.messages: list[ChatMessage] = []
        self.append_calls = 0
        self._next_id = 1

    async def create_thread(self, user_id, analysis_id=None, title="", is_saved=False) -> ChatThread:
        thread = ChatThread(
            id=str(uuid.uuid4()),
            user_id=user_id,
            analysis_id=analysis_id,
            title=title,
            is_saved=is_saved,
            created_at=datetime.now(timezone.utc),
        )
        self.threads[thread.id] = thread
        return thread

    async def get_thread(self, thread_id) -> ChatThread | None:
        return self.threads.get(thread_id)

    async def mark_saved(self, thread_id, title) -> ChatThread | None:
        thread = self.threads.get(thread_id)
        if thread is None:
            return None
        thread = thread.model_copy(update={"title": title, "is_saved": True})
        self.threads[thread_id] = thread
        return thread

    async def list_saved_threads(self, user_id) -> list[ChatThread]:
        return [t for t in self.threads.values() if t.user_id == user_id and t.is_saved]

    async def recent_messages(self, thread_id, limit) -> list[ChatMessage]:
        in_thread = [m for m in self.messages if m.thread_id == thread_id]
        return list(reversed(in_thread))[:limit]

    async def thread_messages(self, thread_id) -> list[ChatMessage]:
        return [m for m in self.messages if m.thread_id == thread_id]

    async def append_exchange(self, thread_id, user_id, user_content, assistant_content) -> list[ChatMessage]:
        self.append_calls += 1
        stored = []
        for role, content in ((MessageRole.USER, user_content), (MessageRole.ASSISTANT, assistant_content)):
            message = ChatMessage(
                id=self._next_id,
                thread_id=thread_id,
                role=role,
                content=content,
                created_at=datetime.now(timezone.utc),
            )
            self._next_id += 1
            stored.append(message)
        self.messages.extend(stored)
        return stored

    async def delete_thread(self, thread_id) -> bool:
        self.messages = [m for m in self.messages if m.thread_id != thread_id]
        return self.threads.pop(thread_id, None) is not None


class InMemoryAnalysisRepository:
    """Dict-backed stand-in for AnalysisRepository."""

    def __init__(self) -> None:
        self.records: dict[str, AnalysisRecord] = {}

    async def create(self, user_id, result, org_id=None, source_title=None,
                     doc_fingerprint=None, model=None, prompt_version=None) -> AnalysisRecord:
        record = AnalysisRecord(
            **result.model_dump(),
            id=str(uuid.uuid4()),
            user_id=user_id,
            org_id=org_id,
            source_title=source_title,
            doc_fingerprint=doc_fingerprint,
            model=model,
            prompt_version=prompt_version,
            created_at=datetime.now(timezone.utc),
        )
        self.records[record.id] = record
        return record

    async def get(self, analysis_id) -> AnalysisRecord | None:
        return self.records.get(analysis_id)

    async def list_for_user(self, user_id, limit=20, risk=None, org_id=None) -> list[AnalysisRecord]:
        records = [
            r for r in self.records.values()
            if r.user_id == user_id or (org_id and r.org_id == org_id)
        ]
        if risk:
            records = [r for r in records if r.overall_risk == risk]
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records[:limit]

    async def delete(self, analysis_id, user_id) -> bool:
        record = self.records.get(analysis_id)
        if record is None or record.user_id != user_id:
            return False
        del self.records[analysis_id]
        return True


class InMemoryPlanRepository:
    """Plan lookup keyed by user id."""

    def __init__(self, plans: dict[str, str] | None = None) -> None:
        self.plans = {
            user_id: UserPlan(user_id=user_id, plan=plan)
            for user_id, plan in (plans or {}).items()
        }

    async def get_plan(self, user_id) -> UserPlan | None:
        return self.plans.get(user_id)


@pytest.fixture
def chat_repo() -> InMemoryChatRepository:
    return InMemoryChatRepository()


@pytest.fixture
def analysis_repo() -> InMemoryAnalysisRepository:
    return InMemoryAnalysisRepository()


@pytest.fixture
def plan_repo() -> InMemoryPlanRepository:
    """Plans for a premium user, a free user, and no plan for anyone else."""
    return InMemoryPlanRepository({"premium-user": "premium", "free-user": "free"})
