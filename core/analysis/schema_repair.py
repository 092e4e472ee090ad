"""Schema repair for untrusted analysis output.

The provider is asked for JSON but its answer is never trusted. The pipeline:

1. strip markdown code fences
2. slice from the first ``{`` to the last ``}``
3. parse; on failure build a degraded result whose summary is the raw text
4. coerce out-of-enum ``overallRisk`` / ``redFlags[].type`` values
5. keep at most ``max_red_flags`` red flags, in the order the model emitted

``repair_analysis`` never raises.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from core.analysis.schema import AnalysisResult, AnalysisStatus, RedFlag
from core.analysis.taxonomy import (
    DEFAULT_OVERALL_RISK,
    is_valid_overall_risk,
    is_valid_red_flag_type,
    normalize_overall_risk,
    normalize_red_flag_type,
)

logger = logging.getLogger("pactwise.schema_repair")

DEFAULT_MAX_RED_FLAGS = 10

_FENCE_PATTERN = re.compile(r"```(?:json|JSON)?\s*(.*?)\s*```", re.DOTALL)


@dataclass
class RepairOutcome:
    """Repaired result plus what had to be done to it."""
    result: AnalysisResult
    status: AnalysisStatus
    coercions: list[str] = field(default_factory=list)
    dropped_red_flags: int = 0

    @property
    def degraded(self) -> bool:
        return self.status == AnalysisStatus.DEGRADED


def strip_code_fences(text: str) -> str:
    """Remove a markdown code-fence wrapper if present.

    Only a fence around the whole answer counts; backticks inside JSON string
    values are left alone.
    """
    stripped = text.strip()
    match = _FENCE_PATTERN.fullmatch(stripped)
    if match:
        return match.group(1).strip()
    if stripped.startswith("```"):
        # Unterminated or trailed fence: drop the opening line
        stripped = stripped.split("\n", 1)[1] if "\n" in stripped else ""
    return stripped.strip()


def slice_json_object(text: str) -> str | None:
    """Return the span from the first ``{`` to the last ``}``, if any."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        return None
    return text[start:end + 1]


def degraded_result(raw_text: str) -> AnalysisResult:
    """Well-formed, low-information result used when parsing fails."""
    return AnalysisResult(
        summary=raw_text,
        red_flags=[],
        overall_risk=DEFAULT_OVERALL_RISK.value,
        recommendations=[],
        deal_parties=[],
        companies_involved=[],
    )


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float, bool)):
        return str(value)
    return json.dumps(value, ensure_ascii=False)


def _as_text_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if not isinstance(value, list):
        return []
    return [_as_text(item) for item in value if item is not None and _as_text(item).strip()]


def _optional_text(value: Any) -> str | None:
    text = _as_text(value).strip()
    return text or None


def repair_analysis(raw_text: str, max_red_flags: int = DEFAULT_MAX_RED_FLAGS) -> RepairOutcome:
    """Turn raw provider text into a guaranteed-valid ``AnalysisResult``.

    Args:
        raw_text: The provider's message content, untouched.
        max_red_flags: Upper bound on the number of red flags kept.

    Returns:
        RepairOutcome with status ``ok`` when JSON parsed, ``degraded`` otherwise.
    """
    raw_text = raw_text or ""
    candidate = slice_json_object(strip_code_fences(raw_text))
    if candidate is None:
        logger.warning("Analysis response contained no JSON object, returning degraded result")
        return RepairOutcome(result=degraded_result(raw_text), status=AnalysisStatus.DEGRADED)

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        logger.warning(f"Analysis response is not valid JSON ({e}), returning degraded result")
        return RepairOutcome(result=degraded_result(raw_text), status=AnalysisStatus.DEGRADED)

    if not isinstance(data, dict):
        logger.warning("Analysis response JSON is not an object, returning degraded result")
        return RepairOutcome(result=degraded_result(raw_text), status=AnalysisStatus.DEGRADED)

    coercions: list[str] = []

    raw_risk = data.get("overallRisk")
    if not is_valid_overall_risk(raw_risk):
        coerced = normalize_overall_risk(raw_risk)
        coercions.append(f"overallRisk {raw_risk!r} -> {coerced!r}")

    red_flags: list[RedFlag] = []
    raw_flags = data.get("redFlags")
    if not isinstance(raw_flags, list):
        raw_flags = []
    for index, raw_flag in enumerate(raw_flags):
        if not isinstance(raw_flag, dict):
            coercions.append(f"redFlags[{index}] is not an object, skipped")
            continue
        flag_type = raw_flag.get("type")
        if not is_valid_red_flag_type(flag_type):
            coercions.append(
                f"redFlags[{index}].type {flag_type!r} -> {normalize_red_flag_type(flag_type)!r}"
            )
        red_flags.append(
            RedFlag(
                type=flag_type,
                title=_as_text(raw_flag.get("title")),
                description=_as_text(raw_flag.get("description")),
                clause=_as_text(raw_flag.get("clause")),
                recommendation=_as_text(raw_flag.get("recommendation")),
            )
        )

    dropped = 0
    if len(red_flags) > max_red_flags:
        dropped = len(red_flags) - max_red_flags
        logger.info(f"Model returned {len(red_flags)} red flags, keeping first {max_red_flags}")
        red_flags = red_flags[:max_red_flags]

    for note in coercions:
        logger.warning(f"Coerced analysis field: {note}")

    result = AnalysisResult(
        summary=_as_text(data.get("summary")),
        red_flags=red_flags,
        overall_risk=raw_risk,
        recommendations=_as_text_list(data.get("recommendations")),
        deal_parties=_as_text_list(data.get("dealParties")),
        companies_involved=_as_text_list(data.get("companiesInvolved")),
        deal_room=_optional_text(data.get("dealRoom")),
        playbook=_optional_text(data.get("playbook")),
    )
    return RepairOutcome(
        result=result,
        status=AnalysisStatus.OK,
        coercions=coercions,
        dropped_red_flags=dropped,
    )
