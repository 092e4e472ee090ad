"""Analysis result schema.

Field names are snake_case in Python and camelCase on the wire
(``redFlags``, ``overallRisk``, ...).
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from core.analysis.taxonomy import (
    DEFAULT_OVERALL_RISK,
    normalize_overall_risk,
    normalize_red_flag_type,
)


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RedFlag(CamelModel):
    """A single problematic clause identified in the contract."""
    type: str = Field(..., description="critical | warning | minor")
    title: str = Field(default="", description="Title of issue")
    description: str = Field(default="", description="Why this is problematic")
    clause: str = Field(default="", description="Exact text from the contract")
    recommendation: str = Field(default="", description="How to address the issue")

    @field_validator("type", mode="before")
    @classmethod
    def validate_type(cls, v: object) -> str:
        """Coerce out-of-enum severities to the safe default."""
        return normalize_red_flag_type(v)


class AnalysisResult(CamelModel):
    """Structured output of the analysis generator."""
    summary: str = ""
    red_flags: list[RedFlag] = Field(default_factory=list)
    overall_risk: str = DEFAULT_OVERALL_RISK.value
    recommendations: list[str] = Field(default_factory=list)
    deal_parties: list[str] = Field(default_factory=list)
    companies_involved: list[str] = Field(default_factory=list)
    deal_room: str | None = None
    playbook: str | None = None

    @field_validator("overall_risk", mode="before")
    @classmethod
    def validate_overall_risk(cls, v: object) -> str:
        """Coerce out-of-enum risk levels to the safe default."""
        return normalize_overall_risk(v)


class UserContext(CamelModel):
    """Optional profile details used to tailor the analysis prompt."""
    role: str | None = None
    goals: list[str] = Field(default_factory=list)
    contract_types: list[str] = Field(default_factory=list)
    risk_tolerance: str | None = None


class AnalysisStatus(str, Enum):
    """Whether the model output parsed cleanly or had to be degraded."""
    OK = "ok"
    DEGRADED = "degraded"
