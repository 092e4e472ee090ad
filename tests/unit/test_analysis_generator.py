"""Unit tests for the Analysis Generator.

Tests cover:
- Input rejection before any provider call
- Prompt assembly and provider call parameters
- Degraded results for unparseable output
- Enum coercion and red-flag capping
- Deterministic truncation
- Provider failures propagating as errors
"""

import json
from unittest.mock import MagicMock, patch

import httpx
import openai
import pytest

from core.analysis.generator import AnalysisGenerator
from core.analysis.prompts import PROMPT_VERSION, TRUNCATION_NOTICE
from core.analysis.schema import AnalysisStatus, UserContext
from core.errors import InsufficientText, InvalidInput, NotAContract, ProviderError
from core.llm.provider import ProviderClient
from core.llm.usage_tracker import CallStatus

CONTRACT_TEXT = """INFLUENCER AGREEMENT

This Agreement is made between Brand Inc ("Brand") and Creator LLC ("Creator"), the parties.

1. Services. Creator shall produce three sponsored posts as deliverables.
2. Payment. Compensation of $5,000 is payable within 90 days.
3. Usage Rights. Brand receives perpetual, worldwide rights to all content.
4. Termination. Brand may terminate at any time without notice.

Signed:
"""

ANALYSIS_PAYLOAD = {
    "redFlags": [
        {
            "type": "critical",
            "title": "Perpetual usage rights",
            "description": "Brand keeps rights forever.",
            "clause": "Brand receives perpetual, worldwide rights to all content.",
            "recommendation": "Limit usage to 12 months.",
        },
        {
            "type": "warning",
            "title": "Late payment",
            "description": "90 days is long.",
            "clause": "payable within 90 days",
            "recommendation": "Ask for net 30.",
        },
    ],
    "overallRisk": "high",
    "summary": "One-sided influencer agreement.",
    "recommendations": ["Negotiate usage term"],
    "dealParties": ["Brand Inc", "Creator LLC"],
    "companiesInvolved": ["Brand Inc", "Creator LLC"],
    "dealRoom": "Marketing",
    "playbook": "Influencer Agreement",
}


@pytest.fixture
def generator(provider: ProviderClient) -> AnalysisGenerator:
    return AnalysisGenerator(provider)


def _sent_messages(openai_client: MagicMock) -> list[dict]:
    return openai_client.chat.completions.create.call_args.kwargs["messages"]


class TestInputValidation:
    """Tests that invalid input never reaches the provider."""

    @pytest.mark.parametrize("text", ["", "   \n\t", None])
    def test_empty_text(self, generator: AnalysisGenerator, openai_client: MagicMock, text):
        with pytest.raises(InvalidInput):
            generator.analyze(text)

        openai_client.chat.completions.create.assert_not_called()

    def test_short_text(self, generator: AnalysisGenerator, openai_client: MagicMock):
        with pytest.raises(InsufficientText):
            generator.analyze("Agreement signed.")

        openai_client.chat.completions.create.assert_not_called()

    def test_not_a_contract(self, generator: AnalysisGenerator, openai_client: MagicMock):
        recipe = "Preheat the oven to 200 degrees. Mix flour and sugar in a bowl, then bake it."

        with pytest.raises(NotAContract) as exc_info:
            generator.analyze(recipe)

        assert exc_info.value.status_code == 422
        openai_client.chat.completions.create.assert_not_called()

    def test_contract_check_disabled(self, provider: ProviderClient, openai_client: MagicMock, make_completion):
        openai_client.chat.completions.create.return_value = make_completion(ANALYSIS_PAYLOAD)
        generator = AnalysisGenerator(provider, contract_check_enabled=False)

        outcome = generator.analyze("Preheat the oven to 200 degrees. Mix flour and sugar in a bowl, then bake it.")

        assert outcome.contract_check is None
        assert outcome.status == AnalysisStatus.OK


class TestAnalyze:
    """Tests for a successful analysis."""

    def test_parses_result(self, generator: AnalysisGenerator, openai_client: MagicMock, make_completion):
        openai_client.chat.completions.create.return_value = make_completion(ANALYSIS_PAYLOAD)

        outcome = generator.analyze(CONTRACT_TEXT, document_title="Influencer Agreement")

        assert outcome.status == AnalysisStatus.OK
        assert not outcome.degraded
        assert outcome.result.overall_risk == "high"
        assert [f.type for f in outcome.result.red_flags] == ["critical", "warning"]
        assert outcome.model == "test-model"
        assert outcome.prompt_version == PROMPT_VERSION
        assert outcome.title == "Influencer Agreement"
        assert outcome.truncated is False

    def test_provider_call_parameters(self, generator: AnalysisGenerator, openai_client: MagicMock, make_completion):
        openai_client.chat.completions.create.return_value = make_completion(ANALYSIS_PAYLOAD)

        generator.analyze(CONTRACT_TEXT, document_title="Influencer Agreement")

        kwargs = openai_client.chat.completions.create.call_args.kwargs
        assert kwargs["temperature"] == 0.2
        assert kwargs["response_format"] == {"type": "json_object"}
        system, user = kwargs["messages"]
        assert system["role"] == "system"
        assert user["role"] == "user"
        assert user["content"].startswith("Document: Influencer Agreement")
        assert "perpetual, worldwide rights" in user["content"]

    def test_title_inferred(self, generator: AnalysisGenerator, openai_client: MagicMock, make_completion):
        openai_client.chat.completions.create.return_value = make_completion(ANALYSIS_PAYLOAD)

        outcome = generator.analyze(CONTRACT_TEXT)

        assert outcome.title == "INFLUENCER AGREEMENT"
        assert _sent_messages(openai_client)[1]["content"].startswith("Document: INFLUENCER AGREEMENT")

    def test_user_context_in_system_prompt(self, generator: AnalysisGenerator, openai_client: MagicMock, make_completion):
        openai_client.chat.completions.create.return_value = make_completion(ANALYSIS_PAYLOAD)

        generator.analyze(CONTRACT_TEXT, user_context=UserContext(role="content creator", risk_tolerance="low"))

        system_prompt = _sent_messages(openai_client)[0]["content"]
        assert "The user is a content creator." in system_prompt
        assert "Their risk tolerance is low." in system_prompt

    def test_model_override(self, generator: AnalysisGenerator, openai_client: MagicMock, make_completion):
        openai_client.chat.completions.create.return_value = make_completion(ANALYSIS_PAYLOAD)

        outcome = generator.analyze(CONTRACT_TEXT, model="openai/gpt-4o")

        assert outcome.model == "openai/gpt-4o"

    def test_model_outside_allow_list(self, provider: ProviderClient, openai_client: MagicMock):
        """Test a client-chosen model must be on the allow-list."""
        generator = AnalysisGenerator(provider, allowed_models={"test-model", "openai/gpt-4o-mini"})

        with pytest.raises(InvalidInput, match="not available"):
            generator.analyze(CONTRACT_TEXT, model="openai/o1-pro")

        openai_client.chat.completions.create.assert_not_called()

    def test_model_on_allow_list(self, provider: ProviderClient, openai_client: MagicMock, make_completion):
        openai_client.chat.completions.create.return_value = make_completion(ANALYSIS_PAYLOAD)
        generator = AnalysisGenerator(provider, allowed_models={"test-model", "openai/gpt-4o-mini"})

        outcome = generator.analyze(CONTRACT_TEXT, model="openai/gpt-4o-mini")

        assert outcome.model == "openai/gpt-4o-mini"

    def test_usage_recorded_as_success(self, generator: AnalysisGenerator, provider: ProviderClient,
                                       openai_client: MagicMock, make_completion):
        openai_client.chat.completions.create.return_value = make_completion(ANALYSIS_PAYLOAD)

        with patch.object(provider.usage_tracker, "log_call") as log_call:
            generator.analyze(CONTRACT_TEXT)

        log = log_call.call_args.args[0]
        assert log.operation == "ANALYSIS"
        assert log.status == CallStatus.SUCCESS
        assert log.extra_data["red_flags"] == 2
        assert log.extra_data["risk_score"] == 130


class TestDegradedOutput:
    """Tests for provider output that is not valid JSON."""

    def test_prose_answer(self, generator: AnalysisGenerator, openai_client: MagicMock, make_completion):
        openai_client.chat.completions.create.return_value = make_completion(
            "This contract looks risky but I cannot format it."
        )

        outcome = generator.analyze(CONTRACT_TEXT)

        assert outcome.degraded
        assert outcome.result.summary == "This contract looks risky but I cannot format it."
        assert outcome.result.red_flags == []
        assert outcome.result.overall_risk == "low"

    def test_usage_recorded_as_degraded(self, generator: AnalysisGenerator, provider: ProviderClient,
                                        openai_client: MagicMock, make_completion):
        openai_client.chat.completions.create.return_value = make_completion("not json")

        with patch.object(provider.usage_tracker, "log_call") as log_call:
            generator.analyze(CONTRACT_TEXT)

        assert log_call.call_args.args[0].status == CallStatus.DEGRADED

    def test_out_of_enum_values(self, generator: AnalysisGenerator, openai_client: MagicMock, make_completion):
        payload = dict(
            ANALYSIS_PAYLOAD,
            overallRisk="extreme",
            redFlags=[dict(ANALYSIS_PAYLOAD["redFlags"][0], type="blocker")],
        )
        openai_client.chat.completions.create.return_value = make_completion(payload)

        outcome = generator.analyze(CONTRACT_TEXT)

        assert outcome.status == AnalysisStatus.OK
        assert outcome.result.overall_risk == "low"
        assert outcome.result.red_flags[0].type == "minor"

    def test_red_flags_capped(self, generator: AnalysisGenerator, openai_client: MagicMock, make_completion):
        flags = [dict(ANALYSIS_PAYLOAD["redFlags"][1], title=f"Flag {i}") for i in range(14)]
        openai_client.chat.completions.create.return_value = make_completion(
            dict(ANALYSIS_PAYLOAD, redFlags=flags)
        )

        outcome = generator.analyze(CONTRACT_TEXT)

        assert len(outcome.result.red_flags) == 10
        assert outcome.result.red_flags[-1].title == "Flag 9"

    def test_fenced_json(self, generator: AnalysisGenerator, openai_client: MagicMock, make_completion):
        fenced = "```json\n" + json.dumps(ANALYSIS_PAYLOAD) + "\n```"
        openai_client.chat.completions.create.return_value = make_completion(fenced)

        assert generator.analyze(CONTRACT_TEXT).status == AnalysisStatus.OK


class TestTruncation:
    """Tests for oversized contract text."""

    def test_deterministic_truncation(self, provider: ProviderClient, openai_client: MagicMock, make_completion):
        openai_client.chat.completions.create.return_value = make_completion(ANALYSIS_PAYLOAD)
        generator = AnalysisGenerator(provider, max_input_chars=200)
        text = CONTRACT_TEXT + "\n5. Misc. " + "Additional boilerplate. " * 200

        first = generator.analyze(text)
        first_prompt = _sent_messages(openai_client)[1]["content"]
        second = generator.analyze(text)
        second_prompt = _sent_messages(openai_client)[1]["content"]

        assert first.truncated and second.truncated
        assert first_prompt == second_prompt
        assert first_prompt.endswith(TRUNCATION_NOTICE)
        assert text[:200] in first_prompt


class TestProviderFailure:

    def test_provider_error_raised(self, generator: AnalysisGenerator, openai_client: MagicMock):
        request = httpx.Request("POST", "https://example.invalid/api/v1/chat/completions")
        openai_client.chat.completions.create.side_effect = openai.APIConnectionError(request=request)

        with pytest.raises(ProviderError):
            generator.analyze(CONTRACT_TEXT)


class TestAsync:

    @pytest.mark.asyncio
    async def test_analyze_async(self, generator: AnalysisGenerator, openai_client: MagicMock, make_completion):
        openai_client.chat.completions.create.return_value = make_completion(ANALYSIS_PAYLOAD)

        outcome = await generator.analyze_async(CONTRACT_TEXT, document_title="Influencer Agreement")

        assert outcome.result.summary == "One-sided influencer agreement."


def test_from_settings(provider: ProviderClient):
    settings = MagicMock(
        max_red_flags=5,
        analysis_max_input_chars=1000,
        analysis_temperature=0.1,
        min_text_length=20,
        contract_check_enabled=False,
        provider_model="test-model",
        provider_allowed_models=["openai/gpt-4o-mini"],
    )

    generator = AnalysisGenerator.from_settings(provider, settings)

    assert generator.max_red_flags == 5
    assert generator.max_input_chars == 1000
    assert generator.temperature == 0.1
    assert generator.min_text_length == 20
    assert generator.contract_check_enabled is False
    assert generator.allowed_models == {"test-model", "openai/gpt-4o-mini"}
