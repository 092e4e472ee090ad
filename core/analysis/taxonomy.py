"""Risk taxonomy for contract analysis.

Defines the red-flag severities and overall risk levels the analysis schema
accepts, plus normalization helpers used when repairing model output.

Usage:
    from core.analysis.taxonomy import RedFlagType, OverallRisk
    from core.analysis.taxonomy import normalize_red_flag_type, normalize_overall_risk
"""

from enum import Enum
from typing import Any


class RedFlagType(str, Enum):
    """Severity of a single red flag."""

    CRITICAL = "critical"
    """Must be resolved before signing. Significant financial or legal exposure."""

    WARNING = "warning"
    """Unfavourable term that should be negotiated."""

    MINOR = "minor"
    """Worth noting, limited impact."""


class OverallRisk(str, Enum):
    """Overall risk level of a contract."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


DEFAULT_RED_FLAG_TYPE = RedFlagType.MINOR
DEFAULT_OVERALL_RISK = OverallRisk.LOW


# Severity weights for ordering and scoring
RED_FLAG_WEIGHTS: dict[RedFlagType, int] = {
    RedFlagType.CRITICAL: 100,
    RedFlagType.WARNING: 30,
    RedFlagType.MINOR: 5,
}


def _clean(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip().lower()


def normalize_red_flag_type(value: Any) -> str:
    """Normalize a red-flag type to a valid enum value.

    Matching is case- and whitespace-insensitive. Anything else (synonyms,
    non-strings, empty values) falls back to ``minor``.
    """
    cleaned = _clean(value)
    if cleaned in {t.value for t in RedFlagType}:
        return cleaned
    return DEFAULT_RED_FLAG_TYPE.value


def normalize_overall_risk(value: Any) -> str:
    """Normalize an overall risk level, falling back to ``low``."""
    cleaned = _clean(value)
    if cleaned in {r.value for r in OverallRisk}:
        return cleaned
    return DEFAULT_OVERALL_RISK.value


def is_valid_red_flag_type(value: Any) -> bool:
    return isinstance(value, str) and value in {t.value for t in RedFlagType}


def is_valid_overall_risk(value: Any) -> bool:
    return isinstance(value, str) and value in {r.value for r in OverallRisk}


def aggregate_red_flags(red_flags: list[dict[str, Any]]) -> dict[str, Any]:
    """Aggregate red-flag statistics.

    Args:
        red_flags: List of red-flag dictionaries with a ``type`` field.

    Returns:
        Dictionary with ``total``, ``by_type`` counts, weighted ``risk_score``
        and ``highest_type`` (None when empty).
    """
    result: dict[str, Any] = {
        "total": len(red_flags),
        "by_type": {t.value: 0 for t in RedFlagType},
        "risk_score": 0,
        "highest_type": None,
    }

    highest_weight = 0
    for flag in red_flags:
        flag_type = RedFlagType(normalize_red_flag_type(flag.get("type")))
        result["by_type"][flag_type.value] += 1
        weight = RED_FLAG_WEIGHTS[flag_type]
        result["risk_score"] += weight
        if weight > highest_weight:
            highest_weight = weight
            result["highest_type"] = flag_type.value

    return result
