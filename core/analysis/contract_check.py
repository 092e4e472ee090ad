"""Quick heuristic check that a text looks like a contract.

Scores keyword hits, numbered clauses and a signature block. The check runs
before the analysis call so obviously unrelated documents (recipes, essays,
blank scans) never cost a provider request.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger("pactwise.contract_check")

CONTRACT_KEYWORDS = (
    "agreement",
    "party",
    "parties",
    "effective date",
    "term",
    "termination",
    "indemnif",
    "warrant",
    "governing law",
    "jurisdiction",
    "confidential",
    "payment",
    "compensation",
    "services",
    "deliverables",
    "scope of work",
    "signature",
    "signed",
    "notwithstanding",
    "force majeure",
    "liabilit",
    "represent",
    "assignment",
)

_CLAUSE_PATTERN = re.compile(r"\n\s*(\d{1,2}\.|\d+\.\d+|article\s+\d+)", re.IGNORECASE)
_SIGNATURE_PATTERN = re.compile(r"(signed|signature|by:)\s*\n?", re.IGNORECASE)

KEYWORDS_FOR_FULL_SCORE = 6
CLAUSE_BONUS = 0.2
SIGNATURE_BONUS = 0.1
LENGTH_BONUS = 0.15
LENGTH_BONUS_THRESHOLD = 800
YES_THRESHOLD = 0.6
NO_THRESHOLD = 0.15


class ContractVerdict(str, Enum):
    YES = "yes"
    UNCERTAIN = "uncertain"
    NO = "no"


@dataclass
class ContractCheckResult:
    verdict: ContractVerdict
    score: float
    reasons: list[str] = field(default_factory=list)


def check_contract(text: str) -> ContractCheckResult:
    """Score ``text`` and classify it as a contract, not a contract, or unclear."""
    lowered = text.lower()
    reasons: list[str] = []
    matches = 0
    for keyword in CONTRACT_KEYWORDS:
        if keyword in lowered:
            matches += 1
            reasons.append(f'Found keyword: "{keyword}"')

    has_clauses = bool(_CLAUSE_PATTERN.search(text))
    has_signature = bool(_SIGNATURE_PATTERN.search(text))
    if has_clauses:
        reasons.append("Found numbered clauses")
    if has_signature:
        reasons.append("Found signature block")

    score = min(
        1.0,
        matches / KEYWORDS_FOR_FULL_SCORE
        + (CLAUSE_BONUS if has_clauses else 0.0)
        + (SIGNATURE_BONUS if has_signature else 0.0),
    )
    if len(text.strip()) > LENGTH_BONUS_THRESHOLD:
        score = min(1.0, score + LENGTH_BONUS)

    if score >= YES_THRESHOLD:
        verdict = ContractVerdict.YES
    elif score <= NO_THRESHOLD:
        verdict = ContractVerdict.NO
    else:
        verdict = ContractVerdict.UNCERTAIN

    logger.debug(f"Contract check: verdict={verdict.value} score={score:.2f} keywords={matches}")
    return ContractCheckResult(verdict=verdict, score=round(score, 4), reasons=reasons)
