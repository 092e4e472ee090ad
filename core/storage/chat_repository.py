"""Repository for chat threads and messages.

Messages are append-only. A chat turn is written as one two-row INSERT so the
log never holds a user message without its assistant reply. Rows of one
statement share ``created_at``; the BIGSERIAL id breaks the tie, so every read
orders by ``(created_at, id)``.

There is no locking across concurrent turns in the same thread: two turns
racing may each read history without the other's messages.
"""

import logging
import uuid
from typing import Any

from core.storage.models import ChatMessage, ChatThread, MessageRole

logger = logging.getLogger("pactwise.chat_repository")

_THREAD_COLUMNS = "id, user_id, analysis_id, title, is_saved, created_at"
_MESSAGE_COLUMNS = "id, thread_id, role, content, created_at"


class ChatRepository:
    """Thread and message access for the chat service."""

    def __init__(self, pool: Any) -> None:
        """Initialize with a database connection pool."""
        self.pool = pool

    async def ensure_tables(self) -> None:
        """Ensure required database tables exist."""
        async with self.pool.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS chat_threads (
                    id TEXT PRIMARY KEY,
                    user_id VARCHAR(255) NOT NULL,
                    analysis_id TEXT,
                    title TEXT NOT NULL DEFAULT '',
                    is_saved BOOLEAN NOT NULL DEFAULT FALSE,
                    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
                )
            """)

            await conn.execute("""
                CREATE TABLE IF NOT EXISTS chat_messages (
                    id BIGSERIAL PRIMARY KEY,
                    thread_id TEXT NOT NULL REFERENCES chat_threads(id) ON DELETE CASCADE,
                    user_id VARCHAR(255) NOT NULL,
                    role VARCHAR(16) NOT NULL,
                    content TEXT NOT NULL,
                    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
                )
            """)

            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_chat_messages_thread_order
                ON chat_messages(thread_id, created_at, id)
            """)

            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_chat_threads_user_saved
                ON chat_threads(user_id, is_saved, created_at DESC)
            """)

    async def create_thread(
        self,
        user_id: str,
        analysis_id: str | None = None,
        title: str = "",
        is_saved: bool = False,
    ) -> ChatThread:
        """Create a thread and return it."""
        thread_id = str(uuid.uuid4())
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO chat_threads (id, user_id, analysis_id, title, is_saved)
                VALUES ($1, $2, $3, $4, $5)
                RETURNING {_THREAD_COLUMNS}
                """,
                thread_id,
                user_id,
                analysis_id,
                title,
                is_saved,
            )
        logger.debug(f"Created thread {thread_id} for user {user_id}")
        return ChatThread.model_validate(dict(row))

    async def get_thread(self, thread_id: str) -> ChatThread | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_THREAD_COLUMNS} FROM chat_threads WHERE id = $1",
                thread_id,
            )
            if row:
                return ChatThread.model_validate(dict(row))
            return None

    async def mark_saved(self, thread_id: str, title: str) -> ChatThread | None:
        """Assign a title and set the saved flag."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE chat_threads SET title = $2, is_saved = TRUE
                WHERE id = $1
                RETURNING {_THREAD_COLUMNS}
                """,
                thread_id,
                title,
            )
            if row:
                return ChatThread.model_validate(dict(row))
            return None

    async def list_saved_threads(self, user_id: str) -> list[ChatThread]:
        """Saved threads for a user, newest first."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {_THREAD_COLUMNS} FROM chat_threads
                WHERE user_id = $1 AND is_saved = TRUE
                ORDER BY created_at DESC
                """,
                user_id,
            )
            return [ChatThread.model_validate(dict(row)) for row in rows]

    async def recent_messages(self, thread_id: str, limit: int) -> list[ChatMessage]:
        """The ``limit`` most recent messages, newest first."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {_MESSAGE_COLUMNS} FROM chat_messages
                WHERE thread_id = $1
                ORDER BY created_at DESC, id DESC
                LIMIT $2
                """,
                thread_id,
                limit,
            )
            return [ChatMessage.model_validate(dict(row)) for row in rows]

    async def thread_messages(self, thread_id: str) -> list[ChatMessage]:
        """Every message in a thread, oldest first."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {_MESSAGE_COLUMNS} FROM chat_messages
                WHERE thread_id = $1
                ORDER BY created_at ASC, id ASC
                """,
                thread_id,
            )
            return [ChatMessage.model_validate(dict(row)) for row in rows]

    async def append_exchange(
        self,
        thread_id: str,
        user_id: str,
        user_content: str,
        assistant_content: str,
    ) -> list[ChatMessage]:
        """Write a user message and the assistant reply in a single statement."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"""
                INSERT INTO chat_messages (thread_id, user_id, role, content)
                VALUES ($1, $2, $3, $4), ($1, $2, $5, $6)
                RETURNING {_MESSAGE_COLUMNS}
                """,
                thread_id,
                user_id,
                MessageRole.USER.value,
                user_content,
                MessageRole.ASSISTANT.value,
                assistant_content,
            )
            messages = [ChatMessage.model_validate(dict(row)) for row in rows]
        return sorted(messages, key=lambda m: m.id or 0)

    async def delete_thread(self, thread_id: str) -> bool:
        """Delete a thread; its messages go with it (ON DELETE CASCADE)."""
        async with self.pool.acquire() as conn:
            status = await conn.execute(
                "DELETE FROM chat_threads WHERE id = $1",
                thread_id,
            )
        return status.endswith(" 1")
