"""Analysis Generator.

Builds a role-aware prompt from extracted contract text, calls the LLM
provider once at a low temperature in JSON mode, and repairs the untrusted
answer into an ``AnalysisResult``.

Outcomes:
- ``ok``: the provider answered with parseable JSON (enum values coerced,
  red flags capped)
- ``degraded``: the answer could not be parsed; the result carries the raw
  text as its summary and empty lists
- ``ProviderError``: the provider was unreachable or rejected the call; this
  is raised, never folded into a degraded result

Empty input is rejected before any provider call.
"""

import asyncio
import logging
from dataclasses import dataclass
from functools import partial

from core.analysis.contract_check import ContractCheckResult, ContractVerdict, check_contract
from core.analysis.prompts import PROMPT_VERSION, build_system_prompt, build_user_prompt
from core.analysis.schema import AnalysisResult, AnalysisStatus, UserContext
from core.analysis.schema_repair import repair_analysis
from core.analysis.taxonomy import RedFlagType, aggregate_red_flags
from core.analysis.title import infer_title
from core.errors import InsufficientText, InvalidInput, NotAContract
from core.llm.provider import ProviderClient
from core.llm.usage_tracker import CallStatus

logger = logging.getLogger("pactwise.analysis_generator")

OPERATION = "ANALYSIS"


@dataclass
class AnalysisOutcome:
    """Result of one analysis run including metadata."""
    result: AnalysisResult
    status: AnalysisStatus
    model: str
    prompt_version: str
    title: str
    truncated: bool = False
    contract_check: ContractCheckResult | None = None

    @property
    def degraded(self) -> bool:
        return self.status == AnalysisStatus.DEGRADED


class AnalysisGenerator:
    """Turns contract text into a structured risk analysis.

    Example:
        generator = AnalysisGenerator(provider)
        outcome = generator.analyze(
            text=extracted.text,
            document_title="Influencer Agreement",
            user_context=UserContext(role="content creator", risk_tolerance="low"),
        )
        outcome.result.overall_risk  # "low" | "medium" | "high"
    """

    def __init__(
        self,
        provider: ProviderClient,
        max_red_flags: int = 10,
        max_input_chars: int = 60_000,
        temperature: float = 0.2,
        min_text_length: int = 50,
        contract_check_enabled: bool = True,
        allowed_models: set[str] | None = None,
    ) -> None:
        self.provider = provider
        self.max_red_flags = max_red_flags
        self.max_input_chars = max_input_chars
        self.temperature = temperature
        self.min_text_length = min_text_length
        self.contract_check_enabled = contract_check_enabled
        self.allowed_models = allowed_models

    @classmethod
    def from_settings(cls, provider: ProviderClient, settings) -> "AnalysisGenerator":
        return cls(
            provider=provider,
            max_red_flags=settings.max_red_flags,
            max_input_chars=settings.analysis_max_input_chars,
            temperature=settings.analysis_temperature,
            min_text_length=settings.min_text_length,
            contract_check_enabled=settings.contract_check_enabled,
            allowed_models={settings.provider_model, *settings.provider_allowed_models},
        )

    def validate_input(self, text: str | None) -> ContractCheckResult | None:
        """Reject input that must never reach the provider.

        Raises:
            InvalidInput: Text is missing or blank.
            InsufficientText: Text is shorter than the viable threshold.
            NotAContract: The contract heuristic is confident this is not a contract.
        """
        if not text or not text.strip():
            raise InvalidInput("Missing contract text to analyze.")
        if len(text.strip()) < self.min_text_length:
            raise InsufficientText(
                f"Text too short to analyze ({len(text.strip())} characters, "
                f"minimum is {self.min_text_length})"
            )
        if not self.contract_check_enabled:
            return None

        check = check_contract(text)
        if check.verdict == ContractVerdict.NO:
            logger.info(f"Rejected non-contract text (score={check.score:.2f})")
            raise NotAContract("The uploaded document does not appear to be a contract.")
        if check.verdict == ContractVerdict.UNCERTAIN:
            logger.info(f"Contract check uncertain (score={check.score:.2f}), analyzing anyway")
        return check

    def _log_critical_flags(self, result: AnalysisResult, title: str) -> None:
        for flag in result.red_flags:
            if flag.type == RedFlagType.CRITICAL.value:
                logger.warning(f"🚨 CRITICAL red flag in '{title}': {flag.title[:100]}")

    def analyze(
        self,
        text: str,
        document_title: str | None = None,
        user_context: UserContext | None = None,
        model: str | None = None,
    ) -> AnalysisOutcome:
        """Analyze contract text (synchronous).

        Args:
            text: Extracted contract text.
            document_title: Title shown to the model; inferred from the text when absent.
            user_context: Optional profile used to tailor the system prompt.
            model: Override for the configured provider model, checked against
                ``allowed_models`` when that is set.

        Returns:
            AnalysisOutcome whose ``result`` is always a well-formed AnalysisResult.

        Raises:
            InvalidInput, InsufficientText, NotAContract: Before any provider call.
                InvalidInput also covers a model outside ``allowed_models``.
            ProviderError: The provider call failed.
        """
        check = self.validate_input(text)
        if model and self.allowed_models is not None and model not in self.allowed_models:
            raise InvalidInput(f"Model {model!r} is not available.")

        title = (document_title or "").strip() or infer_title(text)
        system_prompt = build_system_prompt(user_context, max_red_flags=self.max_red_flags)
        user_prompt, truncated = build_user_prompt(title, text, self.max_input_chars)
        if truncated:
            logger.info(
                f"Truncated '{title}' from {len(text)} to {self.max_input_chars} characters"
            )

        response = self.provider.complete(
            [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=self.temperature,
            json_mode=True,
            model=model,
            operation=OPERATION,
            request_ref=title,
        )

        repaired = repair_analysis(response.content, max_red_flags=self.max_red_flags)
        if repaired.degraded:
            logger.warning(f"⚠️ Degraded analysis for '{title}': provider output was not valid JSON")
        else:
            self._log_critical_flags(repaired.result, title)

        stats = aggregate_red_flags([{"type": f.type} for f in repaired.result.red_flags])
        self.provider.record_usage(
            response,
            operation=OPERATION,
            request_ref=title,
            status=CallStatus.DEGRADED if repaired.degraded else CallStatus.SUCCESS,
            extra_data={
                "red_flags": stats["total"],
                "overall_risk": repaired.result.overall_risk,
                "risk_score": stats["risk_score"],
                "coercions": len(repaired.coercions),
                "truncated": truncated,
            },
        )

        return AnalysisOutcome(
            result=repaired.result,
            status=repaired.status,
            model=response.model,
            prompt_version=PROMPT_VERSION,
            title=title,
            truncated=truncated,
            contract_check=check,
        )

    async def analyze_async(
        self,
        text: str,
        document_title: str | None = None,
        user_context: UserContext | None = None,
        model: str | None = None,
    ) -> AnalysisOutcome:
        """Analyze contract text (asynchronous)."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            partial(self.analyze, text, document_title, user_context, model),
        )
