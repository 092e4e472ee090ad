"""Chat Context Builder.

Assembles the provider message list for a chat turn:

    [system] + last N history messages (chronological) + [new user message]

Grounded mode binds the conversation to one saved analysis and embeds a
compact digest of it in the system message. General mode uses a plain
assistant persona. Both carry the same no-legal-advice instruction.

N is 8 in grounded mode and 15 in general mode. The grounded window is
tighter because the digest already carries the document context.
"""

from enum import Enum

from core.storage.models import AnalysisRecord, ChatMessage, MessageRole

GROUNDED_HISTORY_WINDOW = 8
GENERAL_HISTORY_WINDOW = 15

NO_LEGAL_ADVICE = (
    "You are NOT a lawyer and are NOT giving formal legal advice. "
    "Frame answers as informational and suggest consulting a qualified lawyer when appropriate."
)

GROUNDED_PERSONA = """You are an AI contract assistant helping the user understand ONE specific contract.

You are given a pre-computed analysis of the contract (summary, overall risk, red flags, recommendations).

Your job:
- Answer the user's questions based ONLY on this contract and its analysis.
- Be concrete and practical. Explain in simple language.
- If something is unclear or not present in the contract, say so explicitly. Do NOT invent terms or clauses."""

GENERAL_PERSONA = """You are an AI assistant for a contract analysis app for creators and influencers.
- Be clear, concise, and helpful.
- Explain legal concepts in plain language."""


class ChatMode(str, Enum):
    GROUNDED = "grounded"
    GENERAL = "general"


def render_analysis_digest(analysis: AnalysisRecord) -> str:
    """Compact text rendering of a saved analysis for the system message."""
    if analysis.red_flags:
        red_flags = "\n".join(
            f"- [{flag.type}] {flag.title} - {flag.description}".rstrip(" -")
            for flag in analysis.red_flags
        )
    else:
        red_flags = "None detected"

    if analysis.recommendations:
        recommendations = "\n".join(f"- {item}" for item in analysis.recommendations)
    else:
        recommendations = "None"

    return (
        f"Contract title: {analysis.source_title or 'Untitled'}\n"
        f"Overall risk: {analysis.overall_risk}\n\n"
        f"Summary:\n{analysis.summary or 'No summary available.'}\n\n"
        f"Key red flags:\n{red_flags}\n\n"
        f"Recommendations:\n{recommendations}"
    )


class ChatContextBuilder:
    """Builds bounded provider prompts for grounded and general chat."""

    def __init__(
        self,
        grounded_window: int = GROUNDED_HISTORY_WINDOW,
        general_window: int = GENERAL_HISTORY_WINDOW,
    ) -> None:
        self.grounded_window = grounded_window
        self.general_window = general_window

    @staticmethod
    def mode_for(analysis: AnalysisRecord | None) -> ChatMode:
        return ChatMode.GROUNDED if analysis is not None else ChatMode.GENERAL

    def window_for(self, mode: ChatMode) -> int:
        if mode == ChatMode.GROUNDED:
            return self.grounded_window
        return self.general_window

    def system_prompt(self, analysis: AnalysisRecord | None) -> str:
        if analysis is None:
            return f"{GENERAL_PERSONA}\n\n{NO_LEGAL_ADVICE}"
        return f"{GROUNDED_PERSONA}\n\n{NO_LEGAL_ADVICE}\n\n{render_analysis_digest(analysis)}"

    def build(
        self,
        analysis: AnalysisRecord | None,
        history: list[ChatMessage],
        new_message: str,
    ) -> list[dict[str, str]]:
        """Assemble the ordered message list for one provider call.

        Args:
            analysis: Bound analysis for grounded mode, or None for general mode.
            history: Prior messages in chronological order. Only the most
                recent window is used, whatever the caller passes.
            new_message: The user's new message.
        """
        window = self.window_for(self.mode_for(analysis))
        recent = history[-window:] if window > 0 else []

        messages = [{"role": "system", "content": self.system_prompt(analysis)}]
        messages.extend(m.to_prompt_message() for m in recent if m.role != MessageRole.SYSTEM)
        messages.append({"role": "user", "content": new_message})
        return messages
