"""LLM provider access: injected client and usage logging."""

from core.llm.provider import ProviderClient, ProviderResponse, normalize_content
from core.llm.usage_tracker import CallStatus, UsageTracker

__all__ = [
    "ProviderClient",
    "ProviderResponse",
    "normalize_content",
    "CallStatus",
    "UsageTracker",
]
