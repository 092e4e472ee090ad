"""Chat service for grounded and general conversations.

One chat turn, awaited strictly in order:

1. plan gate (fails closed, nothing is written on denial)
2. resolve the thread, creating it lazily on the first message
3. fetch the last N messages newest first, then reverse to chronological
4. call the provider
5. append the user message and assistant reply in one write

A failed provider call leaves the thread log untouched.
"""

import logging
from dataclasses import dataclass, field

from core.chat.context_builder import ChatContextBuilder, ChatMode
from core.errors import AuthorizationDenied, DenialReason, InvalidInput, NotFoundError, ProviderError
from core.gate.plan_gate import Capability, PlanGate
from core.llm.provider import ProviderClient
from core.storage.analysis_repository import AnalysisRepository
from core.storage.chat_repository import ChatRepository
from core.storage.models import AnalysisRecord, ChatMessage, ChatThread

logger = logging.getLogger("pactwise.chat_service")

GENERAL_THREAD_TITLE = "General Chat"
GROUNDED_THREAD_TITLE = "Contract Chat"
SAVED_THREAD_TITLE = "Saved Chat"

_OPERATIONS = {
    ChatMode.GROUNDED: "GROUNDED_CHAT",
    ChatMode.GENERAL: "GENERAL_CHAT",
}


@dataclass
class ChatReply:
    """Result of one chat turn."""
    thread_id: str
    reply: str
    mode: ChatMode
    messages: list[ChatMessage] = field(default_factory=list)


class ChatService:
    """Runs chat turns and manages thread lifecycle.

    Example:
        service = ChatService(chat_repo, analysis_repo, gate, provider)
        first = await service.send_general(user_id, "What is an indemnity clause?")
        second = await service.send_general(user_id, "Give an example", thread_id=first.thread_id)
    """

    def __init__(
        self,
        threads: ChatRepository,
        analyses: AnalysisRepository,
        gate: PlanGate,
        provider: ProviderClient,
        builder: ChatContextBuilder | None = None,
        temperature: float = 0.3,
    ) -> None:
        self.threads = threads
        self.analyses = analyses
        self.gate = gate
        self.provider = provider
        self.builder = builder or ChatContextBuilder()
        self.temperature = temperature

    async def send_general(
        self,
        user_id: str,
        message: str,
        thread_id: str | None = None,
        save_chat: bool = False,
    ) -> ChatReply:
        """General-assistant chat turn."""
        self._require_message(message)
        await self.gate.require(user_id, Capability.GENERAL_CHAT)
        return await self.send(user_id, message, thread_id=thread_id, save_chat=save_chat)

    async def send_grounded(
        self,
        user_id: str,
        analysis_id: str,
        message: str,
        thread_id: str | None = None,
    ) -> ChatReply:
        """Chat turn bound to one saved analysis owned by the caller."""
        self._require_message(message)
        await self.gate.require(user_id, Capability.GROUNDED_CHAT)
        analysis = await self.load_owned_analysis(user_id, analysis_id)
        return await self.send(user_id, message, thread_id=thread_id, analysis=analysis)

    async def load_owned_analysis(self, user_id: str, analysis_id: str) -> AnalysisRecord:
        analysis = await self.analyses.get(analysis_id)
        if analysis is None:
            raise NotFoundError("Analysis not found")
        if analysis.user_id != user_id:
            raise AuthorizationDenied(
                DenialReason.NOT_OWNER, "You do not have access to this analysis"
            )
        return analysis

    async def send(
        self,
        user_id: str,
        message: str,
        thread_id: str | None = None,
        analysis: AnalysisRecord | None = None,
        save_chat: bool = False,
    ) -> ChatReply:
        """Run one chat turn without plan checks.

        Raises:
            InvalidInput: Empty message.
            NotFoundError: ``thread_id`` is unknown, not owned, or bound to another analysis.
            ProviderError: The provider call failed; nothing is persisted.
        """
        self._require_message(message)
        mode = self.builder.mode_for(analysis)
        thread = await self._resolve_thread(user_id, thread_id, analysis, save_chat)

        window = self.builder.window_for(mode)
        recent = await self.threads.recent_messages(thread.id, window)
        history = list(reversed(recent))

        prompt = self.builder.build(analysis, history, message)
        operation = _OPERATIONS[mode]
        response = await self.provider.complete_async(
            prompt,
            temperature=self.temperature,
            operation=operation,
            request_ref=thread.id,
        )
        if not response.content.strip():
            logger.error(f"Provider returned an empty reply for thread {thread.id}")
            raise ProviderError("LLM provider returned an empty reply")

        self.provider.record_usage(
            response,
            operation=operation,
            request_ref=thread.id,
            extra_data={"history_messages": len(history), "mode": mode.value},
        )

        stored = await self.threads.append_exchange(
            thread.id, user_id, message, response.content
        )
        logger.info(
            f"💬 {mode.value} turn stored in thread {thread.id} "
            f"(history={len(history)}/{window})"
        )
        return ChatReply(thread_id=thread.id, reply=response.content, mode=mode, messages=stored)

    async def _resolve_thread(
        self,
        user_id: str,
        thread_id: str | None,
        analysis: AnalysisRecord | None,
        save_chat: bool,
    ) -> ChatThread:
        if thread_id:
            thread = await self.get_owned_thread(user_id, thread_id)
            if analysis is not None and thread.analysis_id != analysis.id:
                raise NotFoundError("Thread not found or not linked to this analysis")
            if analysis is None and thread.analysis_id is not None:
                raise NotFoundError("Thread not found or linked to an analysis")
            if save_chat and not thread.is_saved:
                thread = await self.threads.mark_saved(thread.id, thread.title or SAVED_THREAD_TITLE) or thread
            return thread

        if analysis is not None:
            title = analysis.source_title or GROUNDED_THREAD_TITLE
            return await self.threads.create_thread(user_id, analysis_id=analysis.id, title=title)
        return await self.threads.create_thread(
            user_id, title=GENERAL_THREAD_TITLE, is_saved=save_chat
        )

    async def get_owned_thread(self, user_id: str, thread_id: str) -> ChatThread:
        thread = await self.threads.get_thread(thread_id)
        if thread is None or thread.user_id != user_id:
            raise NotFoundError("Thread not found or not owned by user")
        return thread

    async def thread_messages(self, user_id: str, thread_id: str) -> list[ChatMessage]:
        """Full thread history in chronological order."""
        await self.get_owned_thread(user_id, thread_id)
        return await self.threads.thread_messages(thread_id)

    async def delete_thread(self, user_id: str, thread_id: str) -> None:
        await self.get_owned_thread(user_id, thread_id)
        await self.threads.delete_thread(thread_id)
        logger.info(f"Deleted thread {thread_id}")

    async def save_thread(self, user_id: str, thread_id: str, title: str | None = None) -> ChatThread:
        """Mark a thread saved, optionally renaming it."""
        thread = await self.get_owned_thread(user_id, thread_id)
        new_title = (title or "").strip() or thread.title or SAVED_THREAD_TITLE
        saved = await self.threads.mark_saved(thread_id, new_title)
        if saved is None:
            raise NotFoundError("Thread not found or not owned by user")
        return saved

    async def list_saved_threads(self, user_id: str) -> list[ChatThread]:
        return await self.threads.list_saved_threads(user_id)

    @staticmethod
    def _require_message(message: str | None) -> None:
        if not message or not message.strip():
            raise InvalidInput("Message is required")
