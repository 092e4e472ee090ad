"""Usage and cost logging for LLM provider calls.

Every provider invocation (analysis, grounded chat, general chat) produces one
``ProviderCallLog`` line so operators can see token usage, latency and an
estimated spend per request.

Usage:
    from core.llm.usage_tracker import UsageTracker

    tracker = UsageTracker()
    log = tracker.create_log(
        operation="ANALYSIS",
        request_ref="Master Services Agreement",
        model="anthropic/claude-3.5-sonnet",
        input_tokens=5120,
        output_tokens=860,
        execution_time_ms=9400,
        status="SUCCESS",
        extra_data={"red_flags": 7},
    )
    tracker.log_call(log)
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class CallStatus(str, Enum):
    """Outcome of a provider call."""
    SUCCESS = "SUCCESS"
    DEGRADED = "DEGRADED"
    FAILURE = "FAILURE"


# USD per 1M tokens, keyed by model name prefix
MODEL_PRICING: dict[str, dict[str, float]] = {
    "anthropic/claude-3.5-sonnet": {"input": 3.0, "output": 15.0},
    "anthropic/claude-3-haiku": {"input": 0.25, "output": 1.25},
    "openai/gpt-4o-mini": {"input": 0.15, "output": 0.6},
    "openai/gpt-4o": {"input": 2.5, "output": 10.0},
    "gpt-4o-mini": {"input": 0.15, "output": 0.6},
    "gpt-4o": {"input": 2.5, "output": 10.0},
}

# Unknown models are priced like the default provider model
DEFAULT_PRICING = MODEL_PRICING["anthropic/claude-3.5-sonnet"]


def get_pricing(model_name: str) -> dict[str, float]:
    """Get pricing for a model, matching the longest known prefix."""
    name = model_name.lower()
    matches = [prefix for prefix in MODEL_PRICING if name.startswith(prefix)]
    if not matches:
        return DEFAULT_PRICING
    return MODEL_PRICING[max(matches, key=len)]


@dataclass
class ProviderCallLog:
    """One provider call as it is written to the usage log."""
    operation: str
    request_ref: str
    model: str
    input_tokens: int
    output_tokens: int
    execution_time_ms: int
    cost_usd: float
    status: CallStatus
    extra_data: dict[str, Any] = field(default_factory=dict)
    error_message: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def to_log_string(self) -> str:
        parts = [
            self.operation,
            self.request_ref,
            f"model={self.model}",
            f"tokens={self.input_tokens}+{self.output_tokens}",
            f"latency_ms={self.execution_time_ms}",
            f"cost_usd={self.cost_usd:.5f}",
            f"status={self.status.value}",
        ]
        parts.extend(f"{key}={value}" for key, value in self.extra_data.items())
        if self.error_message:
            parts.append(f"error={self.error_message}")
        return " | ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        data["timestamp"] = self.timestamp.isoformat()
        data["total_tokens"] = self.total_tokens
        return data


class UsageTracker:
    """Prices and logs provider calls. Keeps nothing between requests."""

    def __init__(self, logger_name: str = "pactwise.usage") -> None:
        self.logger = logging.getLogger(logger_name)

    def calculate_cost(self, model: str, input_tokens: int, output_tokens: int) -> float:
        """Estimated USD cost of one call."""
        pricing = get_pricing(model)
        return (input_tokens * pricing["input"] + output_tokens * pricing["output"]) / 1_000_000

    def create_log(
        self,
        operation: str,
        request_ref: str,
        model: str,
        input_tokens: int,
        output_tokens: int,
        execution_time_ms: int,
        status: str | CallStatus,
        extra_data: dict[str, Any] | None = None,
        error_message: str | None = None,
    ) -> ProviderCallLog:
        """Build a priced log entry.

        Args:
            operation: Kind of call ("ANALYSIS", "GROUNDED_CHAT", "GENERAL_CHAT").
            request_ref: Short human-readable reference (document title, thread id).
            status: Call outcome; plain strings are converted to ``CallStatus``.
        """
        return ProviderCallLog(
            operation=operation,
            request_ref=request_ref,
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            execution_time_ms=execution_time_ms,
            cost_usd=self.calculate_cost(model, input_tokens, output_tokens),
            status=CallStatus(status),
            extra_data=dict(extra_data or {}),
            error_message=error_message,
        )

    def log_call(self, log: ProviderCallLog) -> None:
        """Emit at INFO for a clean success, WARNING otherwise."""
        level = logging.INFO if log.status == CallStatus.SUCCESS else logging.WARNING
        self.logger.log(level, log.to_log_string())
