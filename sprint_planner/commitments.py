"""
Commitment parsing

Pulls bullet and numbered items out of planning pages and classifies them
by urgency keywords.
"""

import re

from .models import Commitment


BULLET = re.compile(r"^[-*•]\s+(.+)")
NUMBERED = re.compile(r"^\d+[.)]\s+(.+)")

HIGH_PRIORITY = re.compile(r"\b(critical|blocker|urgent|P0|P1|high)\b", re.IGNORECASE)
LOW_PRIORITY = re.compile(r"\b(nice.to.have|low|optional|stretch|P3|P4)\b", re.IGNORECASE)


def classify_priority(text: str) -> str:
    """Low-priority wording wins over high-priority wording."""
    priority = "medium"
    if HIGH_PRIORITY.search(text):
        priority = "high"
    if LOW_PRIORITY.search(text):
        priority = "low"
    return priority


def parse_commitments(text: str) -> list[Commitment]:
    """
    Extract commitments from planning page text.

    Example:
        >>> parse_commitments("- Ship billing export (P1)\\n2. Docs refresh, nice to have")
        [Commitment(text='Ship billing export (P1)', priority='high'),
         Commitment(text='Docs refresh, nice to have', priority='low')]
    """
    commitments = []
    for line in (text or "").splitlines():
        stripped = line.strip()
        if not stripped:
            continue

        match = BULLET.match(stripped) or NUMBERED.match(stripped)
        if match:
            content = match.group(1)
            commitments.append(Commitment(text=content, priority=classify_priority(content)))

    return commitments
