"""Grounded and general chat."""

from core.chat.context_builder import ChatContextBuilder, ChatMode, render_analysis_digest
from core.chat.service import ChatReply, ChatService

__all__ = [
    "ChatContextBuilder",
    "ChatMode",
    "ChatReply",
    "ChatService",
    "render_analysis_digest",
]
