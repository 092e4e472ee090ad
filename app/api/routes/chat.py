"""Chat routes: general assistant, grounded chat and thread management."""

from fastapi import APIRouter, Depends

from app.api.deps import get_chat_service
from app.auth import CurrentUser, require_user
from app.models.chat import (
    ChatResponse,
    GeneralChatRequest,
    GroundedChatRequest,
    SaveThreadRequest,
    ThreadListResponse,
    ThreadMessage,
    ThreadMessagesResponse,
    ThreadSummary,
)
from core.chat import ChatService
from core.storage import ChatThread

router = APIRouter()


def _summary(thread: ChatThread) -> ThreadSummary:
    return ThreadSummary(
        id=thread.id,
        title=thread.title,
        analysis_id=thread.analysis_id,
        is_saved=thread.is_saved,
        created_at=thread.created_at,
    )


@router.post("/general", response_model=ChatResponse)
async def general_chat(
    request: GeneralChatRequest,
    user: CurrentUser = Depends(require_user),
    service: ChatService = Depends(get_chat_service),
) -> ChatResponse:
    """General contract-assistant chat. Requires a premium plan."""
    reply = await service.send_general(
        user.user_id,
        request.message,
        thread_id=request.thread_id,
        save_chat=request.save_chat,
    )
    return ChatResponse(thread_id=reply.thread_id, reply=reply.reply)


@router.post("/analyses/{analysis_id}", response_model=ChatResponse)
async def grounded_chat(
    analysis_id: str,
    request: GroundedChatRequest,
    user: CurrentUser = Depends(require_user),
    service: ChatService = Depends(get_chat_service),
) -> ChatResponse:
    """Chat about one saved analysis. Requires a premium plan and ownership."""
    reply = await service.send_grounded(
        user.user_id,
        analysis_id,
        request.message,
        thread_id=request.thread_id,
    )
    return ChatResponse(thread_id=reply.thread_id, reply=reply.reply)


@router.get("/threads", response_model=ThreadListResponse)
async def list_saved_threads(
    user: CurrentUser = Depends(require_user),
    service: ChatService = Depends(get_chat_service),
) -> ThreadListResponse:
    """List the caller's saved threads, newest first."""
    threads = await service.list_saved_threads(user.user_id)
    return ThreadListResponse(threads=[_summary(t) for t in threads])


@router.get("/threads/{thread_id}", response_model=ThreadMessagesResponse)
async def get_thread(
    thread_id: str,
    user: CurrentUser = Depends(require_user),
    service: ChatService = Depends(get_chat_service),
) -> ThreadMessagesResponse:
    """Full transcript of a thread in chronological order."""
    messages = await service.thread_messages(user.user_id, thread_id)
    return ThreadMessagesResponse(
        messages=[
            ThreadMessage(role=m.role.value, content=m.content, created_at=m.created_at)
            for m in messages
        ]
    )


@router.post("/threads/{thread_id}/save", response_model=ThreadSummary)
async def save_thread(
    thread_id: str,
    request: SaveThreadRequest | None = None,
    user: CurrentUser = Depends(require_user),
    service: ChatService = Depends(get_chat_service),
) -> ThreadSummary:
    """Mark a thread saved and optionally give it a title."""
    thread = await service.save_thread(user.user_id, thread_id, title=request.title if request else None)
    return _summary(thread)


@router.delete("/threads/{thread_id}")
async def delete_thread(
    thread_id: str,
    user: CurrentUser = Depends(require_user),
    service: ChatService = Depends(get_chat_service),
) -> dict[str, bool]:
    """Delete a thread and all its messages."""
    await service.delete_thread(user.user_id, thread_id)
    return {"success": True}
