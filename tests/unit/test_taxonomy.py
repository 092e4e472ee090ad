"""Unit tests for the risk taxonomy and schema validators."""

import pytest

from core.analysis.schema import AnalysisResult, RedFlag
from core.analysis.taxonomy import (
    OverallRisk,
    RedFlagType,
    aggregate_red_flags,
    is_valid_overall_risk,
    is_valid_red_flag_type,
    normalize_overall_risk,
    normalize_red_flag_type,
)


class TestNormalization:

    @pytest.mark.parametrize("value,expected", [
        ("critical", "critical"),
        (" Warning ", "warning"),
        ("MINOR", "minor"),
        ("severe", "minor"),
        ("", "minor"),
        (None, "minor"),
        (3, "minor"),
    ])
    def test_red_flag_type(self, value, expected):
        assert normalize_red_flag_type(value) == expected

    @pytest.mark.parametrize("value,expected", [
        ("high", "high"),
        ("Medium", "medium"),
        ("extreme", "low"),
        (None, "low"),
    ])
    def test_overall_risk(self, value, expected):
        assert normalize_overall_risk(value) == expected

    def test_validity_is_exact(self):
        assert is_valid_red_flag_type("critical")
        assert not is_valid_red_flag_type("Critical")
        assert is_valid_overall_risk("medium")
        assert not is_valid_overall_risk(None)


class TestSchemaValidators:
    """Tests that the models never hold an out-of-enum value."""

    def test_red_flag_type_coerced(self):
        assert RedFlag(type="blocker").type == RedFlagType.MINOR.value

    def test_overall_risk_coerced(self):
        assert AnalysisResult(overall_risk="unknown").overall_risk == OverallRisk.LOW.value

    def test_camel_case_serialization(self):
        result = AnalysisResult(
            summary="s",
            red_flags=[RedFlag(type="critical", title="t")],
            deal_parties=["A"],
        )

        data = result.model_dump(by_alias=True)

        assert data["redFlags"][0]["type"] == "critical"
        assert data["overallRisk"] == "low"
        assert data["dealParties"] == ["A"]
        assert data["dealRoom"] is None

    def test_populate_from_camel_case(self):
        result = AnalysisResult.model_validate({"overallRisk": "high", "companiesInvolved": ["X"]})

        assert result.overall_risk == "high"
        assert result.companies_involved == ["X"]


class TestAggregateRedFlags:

    def test_empty(self):
        stats = aggregate_red_flags([])

        assert stats["total"] == 0
        assert stats["risk_score"] == 0
        assert stats["highest_type"] is None

    def test_weighted_score(self):
        stats = aggregate_red_flags([
            {"type": "minor"},
            {"type": "critical"},
            {"type": "warning"},
            {"type": "bogus"},
        ])

        assert stats["total"] == 4
        assert stats["by_type"] == {"critical": 1, "warning": 1, "minor": 2}
        assert stats["risk_score"] == 100 + 30 + 5 + 5
        assert stats["highest_type"] == "critical"
