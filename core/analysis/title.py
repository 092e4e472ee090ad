"""Heuristic document title inference."""

import re

UNTITLED = "Untitled Contract"
MAX_TITLE_CHARS = 60
HEADING_SCAN_LINES = 6

_UPPER_HEADING = re.compile(r"^[A-Z\s]{3,80}$")
_UPPER_HEADING_WITH_PUNCT = re.compile(r"^[A-Z][A-Z\s\-:&()]{3,80}$")


def infer_title(text: str) -> str:
    """Guess a human-friendly title from the document's leading lines.

    Prefers an upper-case heading near the top; otherwise the first non-empty
    line, truncated.
    """
    lines = [line.strip() for line in (text or "").split("\n")]
    lines = [line for line in lines if line]
    if not lines:
        return UNTITLED

    first = lines[0]
    if _UPPER_HEADING.match(first) and len(first) < 80:
        return first

    for line in lines[:HEADING_SCAN_LINES]:
        if _UPPER_HEADING_WITH_PUNCT.match(line) and len(line) < 80:
            return line

    if len(first) > MAX_TITLE_CHARS:
        return first[:MAX_TITLE_CHARS].strip() + "…"
    return first
