"""Contract analysis: prompts, schema repair and the generator."""

from core.analysis.contract_check import ContractVerdict, check_contract
from core.analysis.generator import AnalysisGenerator, AnalysisOutcome
from core.analysis.prompts import PROMPT_VERSION
from core.analysis.schema import AnalysisResult, AnalysisStatus, RedFlag, UserContext
from core.analysis.schema_repair import RepairOutcome, repair_analysis
from core.analysis.taxonomy import OverallRisk, RedFlagType
from core.analysis.title import infer_title

__all__ = [
    "AnalysisGenerator",
    "AnalysisOutcome",
    "AnalysisResult",
    "AnalysisStatus",
    "ContractVerdict",
    "OverallRisk",
    "PROMPT_VERSION",
    "RedFlag",
    "RedFlagType",
    "RepairOutcome",
    "UserContext",
    "check_contract",
    "infer_title",
    "repair_analysis",
]
