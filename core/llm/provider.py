"""LLM provider client.

Thin wrapper around the OpenAI SDK pointed at an OpenAI-compatible endpoint
(OpenRouter by default). The wrapper is constructed explicitly by the
composition root and injected into the analysis generator and chat service;
there is no module-level client.

The SDK's built-in retries are disabled: a failed call is reported once as a
``ProviderError`` and retry policy belongs to the caller.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from functools import partial
from typing import Any

import openai
from openai import OpenAI

from core.errors import ConfigurationError, ProviderError
from core.llm.usage_tracker import CallStatus, UsageTracker

logger = logging.getLogger("pactwise.provider")

ERROR_BODY_LOG_LIMIT = 500


def normalize_content(content: Any) -> str:
    """Flatten provider message content into plain text.

    Providers may answer with a string, a list of content parts
    (``{"type": "text", "text": ...}``) or a single part object.
    """
    if not content:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for item in content:
            if isinstance(item, str):
                parts.append(item)
            elif isinstance(item, dict):
                parts.append(item.get("text") or item.get("content") or "")
            else:
                parts.append(getattr(item, "text", None) or getattr(item, "content", None) or "")
        return "".join(parts).strip()
    if isinstance(content, dict):
        return content.get("text") or content.get("content") or ""
    return ""


@dataclass
class ProviderResponse:
    """Text returned by the provider plus usage metadata."""
    content: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    execution_time_ms: int = 0


class ProviderClient:
    """Chat-completions client for the configured LLM provider.

    Example:
        provider = ProviderClient.from_settings(get_settings())
        response = provider.complete(
            [{"role": "user", "content": "Hello"}],
            temperature=0.3,
            operation="GENERAL_CHAT",
        )
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        model: str,
        timeout_seconds: float = 60.0,
        client: OpenAI | None = None,
        usage_tracker: UsageTracker | None = None,
    ) -> None:
        if not api_key or not api_key.strip():
            raise ConfigurationError("Provider API key not configured. Set PROVIDER_API_KEY in .env")
        self.model = model
        self.base_url = base_url
        self.usage_tracker = usage_tracker or UsageTracker()
        self._client = client or OpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
            max_retries=0,
        )

    @classmethod
    def from_settings(cls, settings: Any, client: OpenAI | None = None) -> "ProviderClient":
        """Build a client from application settings, validating the API key."""
        return cls(
            api_key=settings.require_provider_key(),
            base_url=settings.provider_base_url,
            model=settings.provider_model,
            timeout_seconds=settings.provider_timeout_seconds,
            client=client,
        )

    def complete(
        self,
        messages: list[dict[str, str]],
        temperature: float,
        json_mode: bool = False,
        model: str | None = None,
        operation: str = "COMPLETION",
        request_ref: str = "-",
    ) -> ProviderResponse:
        """Send one chat-completion request.

        Raises:
            ProviderError: Network failure, timeout, non-success status, or a
                response without any choices.
        """
        model_name = model or self.model
        kwargs: dict[str, Any] = {
            "model": model_name,
            "messages": messages,
            "temperature": temperature,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        start_time = time.time()
        try:
            response = self._client.chat.completions.create(**kwargs)
        except openai.APIStatusError as e:
            body = _response_text(e)
            logger.error(
                f"Provider returned {e.status_code} for {operation}: {body[:ERROR_BODY_LOG_LIMIT]}"
            )
            self._log_failure(operation, request_ref, model_name, start_time, f"status={e.status_code}")
            raise ProviderError(
                "LLM provider request failed",
                upstream_status=e.status_code,
                upstream_body=body,
            ) from e
        except openai.APIConnectionError as e:
            logger.error(f"Provider unreachable for {operation}: {e}")
            self._log_failure(operation, request_ref, model_name, start_time, str(e))
            raise ProviderError("LLM provider unreachable") from e
        except openai.OpenAIError as e:
            logger.error(f"Provider client error for {operation}: {e}")
            self._log_failure(operation, request_ref, model_name, start_time, str(e))
            raise ProviderError("LLM provider request failed") from e

        execution_time_ms = int((time.time() - start_time) * 1000)

        choices = getattr(response, "choices", None) or []
        if not choices:
            self._log_failure(operation, request_ref, model_name, start_time, "no choices")
            raise ProviderError("LLM provider returned no choices")

        content = normalize_content(choices[0].message.content)
        usage = getattr(response, "usage", None)
        input_tokens = _token_count(usage, "prompt_tokens")
        output_tokens = _token_count(usage, "completion_tokens")

        return ProviderResponse(
            content=content,
            model=model_name,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            execution_time_ms=execution_time_ms,
        )

    async def complete_async(
        self,
        messages: list[dict[str, str]],
        temperature: float,
        json_mode: bool = False,
        model: str | None = None,
        operation: str = "COMPLETION",
        request_ref: str = "-",
    ) -> ProviderResponse:
        """Run ``complete`` in the default executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            partial(
                self.complete,
                messages,
                temperature,
                json_mode=json_mode,
                model=model,
                operation=operation,
                request_ref=request_ref,
            ),
        )

    def record_usage(
        self,
        response: ProviderResponse,
        operation: str,
        request_ref: str,
        status: CallStatus = CallStatus.SUCCESS,
        extra_data: dict[str, Any] | None = None,
    ) -> None:
        """Log usage for a completed call once the caller knows its outcome."""
        log = self.usage_tracker.create_log(
            operation=operation,
            request_ref=request_ref,
            model=response.model,
            input_tokens=response.input_tokens,
            output_tokens=response.output_tokens,
            execution_time_ms=response.execution_time_ms,
            status=status,
            extra_data=extra_data,
        )
        self.usage_tracker.log_call(log)

    def _log_failure(
        self, operation: str, request_ref: str, model: str, start_time: float, error: str
    ) -> None:
        log = self.usage_tracker.create_log(
            operation=operation,
            request_ref=request_ref,
            model=model,
            input_tokens=0,
            output_tokens=0,
            execution_time_ms=int((time.time() - start_time) * 1000),
            status=CallStatus.FAILURE,
            error_message=error,
        )
        self.usage_tracker.log_call(log)


def _response_text(error: openai.APIStatusError) -> str:
    response = getattr(error, "response", None)
    if response is not None:
        return response.text
    return str(error.body or "")


def _token_count(usage: Any, name: str) -> int:
    value = getattr(usage, name, 0) if usage is not None else 0
    return value if isinstance(value, int) else 0
