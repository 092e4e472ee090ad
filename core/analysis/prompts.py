"""Prompt templates for contract analysis.

The system prompt is the fixed analyst persona plus optional clauses built
from the user's declared role, goals, contract-type focus and risk tolerance.
A clause is left out entirely when its field is absent.
"""

from core.analysis.schema import UserContext

PROMPT_VERSION = "contract-analysis-v2"

TRUNCATION_NOTICE = "\n\n[Document truncated for analysis]"

ANALYST_PERSONA = "You are a senior legal contract analyst and attorney."

ANALYSIS_INSTRUCTIONS = """You are a legal contract analyst, lawyer, and attorney representing creators, freelancers, and influencers.
Analyze the contract text and return ONLY a JSON object in the exact format below:

{{
  "redFlags": [
    {{
      "type": "critical|warning|minor",
      "title": "Title of issue",
      "description": "Concise explanation of why this is problematic",
      "clause": "Exact text from the contract",
      "recommendation": "Clear guidance on how to address or mitigate this issue"
    }}
  ],
  "overallRisk": "low|medium|high",
  "summary": "3-4 sentence overview of the contract highlighting key risks and concerns",
  "recommendations": ["Recommendation 1", "Recommendation 2"],
  "dealParties": ["Party A", "Party B"],
  "companiesInvolved": ["Company X", "Company Y"],
  "dealRoom": "Inferred context (e.g., Sales, HR, M&A, Procurement, Legal)",
  "playbook": "Inferred standard (e.g., Standard NDA, Vendor Agreement, Employment Contract, SaaS Agreement)"
}}

Rules:
- Include a maximum of {max_red_flags} redFlags, ordered from most to least severe.
- Keep descriptions concise and explanatory.
- Return ONLY valid JSON. No markdown, no extra text.
- Extract "dealParties" as the main signing entities.
- Extract "companiesInvolved" as all corporate entities mentioned.
- Infer "dealRoom" based on the department likely handling this (Sales, HR, etc.).
- Infer "playbook" based on the contract type.

Evaluate the contract for:
- Rights and obligations balance
- Compensation, payment timing, and deductions
- Deliverables, scope, revisions, and acceptance criteria
- Intellectual property ownership and assignment
- Usage rights, sublicensing, and modification rights
- Territory, platform, and audience scope
- Duration, term, and post-termination rights
- Confidentiality scope, exclusions, and duration
- Exclusivity, non-compete, and conflict restrictions
- Indemnification, liability allocation, and caps
- Termination rights, notice, and consequences
- Renewal and auto-renewal terms
- FTC, advertising, and disclosure compliance
- Moral rights and attribution/credit
- Approval rights and content control
- Data protection, privacy, and user data ownership
- Warranties and representations
- Dispute resolution, governing law, and jurisdiction
- Force majeure and change-of-control clauses
- Payment clawbacks, refunds, and chargebacks
- Audit, reporting, and transparency obligations"""

ANALYSIS_USER_PROMPT_TEMPLATE = """Document: {document_title}

Contract content:
{contract_text}"""


def build_user_context_clauses(user_context: UserContext | None) -> list[str]:
    """Render the optional profile sentences, skipping absent fields."""
    if user_context is None:
        return []

    clauses: list[str] = []
    if user_context.role and user_context.role.strip():
        clauses.append(f"The user is a {user_context.role.strip()}.")

    goals = [g.strip() for g in user_context.goals if g and g.strip()]
    if goals:
        clauses.append(f"Their primary goals are: {', '.join(goals)}.")

    contract_types = [c.strip() for c in user_context.contract_types if c and c.strip()]
    if contract_types:
        clauses.append(
            f"They commonly work with these contract types: {', '.join(contract_types)}."
        )

    if user_context.risk_tolerance and user_context.risk_tolerance.strip():
        clauses.append(
            f"Their risk tolerance is {user_context.risk_tolerance.strip()}. "
            "Adjust sensitivity accordingly."
        )
    return clauses


def build_system_prompt(user_context: UserContext | None = None, max_red_flags: int = 10) -> str:
    """Assemble the role-aware system prompt."""
    sections = [ANALYST_PERSONA]
    clauses = build_user_context_clauses(user_context)
    if clauses:
        sections.append("\n".join(clauses))
    sections.append(ANALYSIS_INSTRUCTIONS.format(max_red_flags=max_red_flags))
    return "\n\n".join(sections)


def truncate_contract_text(text: str, max_chars: int) -> tuple[str, bool]:
    """Cut ``text`` to a fixed character budget.

    Always keeps the first ``max_chars`` characters so the same input yields
    the same prompt.

    Returns:
        The possibly truncated text and whether truncation happened.
    """
    if len(text) <= max_chars:
        return text, False
    return text[:max_chars] + TRUNCATION_NOTICE, True


def build_user_prompt(document_title: str | None, text: str, max_chars: int) -> tuple[str, bool]:
    """Embed the title and (bounded) contract text."""
    contract_text, truncated = truncate_contract_text(text, max_chars)
    prompt = ANALYSIS_USER_PROMPT_TEMPLATE.format(
        document_title=(document_title or "").strip() or "Unnamed contract",
        contract_text=contract_text,
    )
    return prompt, truncated
