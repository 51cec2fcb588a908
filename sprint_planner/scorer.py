"""
Item Scorer

Ranks candidate work items for sprint inclusion.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from .models import Commitment, WorkItem, round_half_up


logger = logging.getLogger(__name__)


PRIORITY_SCORES = {
    "highest": 5.0,
    "high": 4.0,
    "medium": 3.0,
    "low": 2.0,
    "lowest": 1.0,
}

STATUS_WEIGHTS = {
    "in progress": 3.0,   # already started
    "in review": 2.5,     # almost done
    "to do": 1.0,         # not started
    "backlog": 0.5,       # not even planned
}

DEFECT_TYPES = ("bug", "defect")


@dataclass
class ScoringWeights:
    """Configurable weights for item scoring."""
    default_priority: float = 2.0
    default_status: float = 1.0
    carry_over_bonus: float = 3.0
    commitment_bonus: float = 2.0
    defect_bonus: float = 1.5

    # Size bonus: points / size_divisor, capped
    size_divisor: float = 3.0
    size_cap: float = 2.0

    # Commitment words shorter than this are ignored
    min_keyword_length: int = 4


class ItemScorer:
    """
    Scores work items on priority, progress, carry-over, commitment
    alignment, defect type and size.

    Usage:
        scorer = ItemScorer()
        ranked = scorer.score(items, carry_over=previous_sprint, commitments=commitments)
    """

    def __init__(self, weights: Optional[ScoringWeights] = None):
        self.weights = weights or ScoringWeights()

    def commitment_keywords(self, commitments: Iterable[Commitment]) -> list[str]:
        """Lowercased words from every commitment, long enough to be meaningful."""
        keywords = []
        for commitment in commitments:
            for word in commitment.text.lower().split():
                if len(word) >= self.weights.min_keyword_length and word not in keywords:
                    keywords.append(word)
        return keywords

    def priority_score(self, priority: str) -> float:
        return PRIORITY_SCORES.get((priority or "").strip().lower(), self.weights.default_priority)

    def status_score(self, status: str) -> float:
        return STATUS_WEIGHTS.get((status or "").strip().lower(), self.weights.default_status)

    def size_score(self, story_points: float) -> float:
        if story_points <= 0:
            return 0.0
        return min(story_points / self.weights.size_divisor, self.weights.size_cap)

    def is_defect(self, item: WorkItem) -> bool:
        return (item.issue_type or "").strip().lower() in DEFECT_TYPES

    def matches_commitment(self, item: WorkItem, keywords: list[str]) -> bool:
        summary = (item.summary or "").lower()
        return any(keyword in summary for keyword in keywords)

    def score_item(
        self,
        item: WorkItem,
        carry_over_keys: set[str],
        keywords: list[str]
    ) -> WorkItem:
        """Return a copy of the item annotated with its score and flags."""
        is_carry_over = item.key is not None and item.key in carry_over_keys
        aligned = self.matches_commitment(item, keywords)

        score = self.priority_score(item.priority)
        score += self.status_score(item.status)
        if is_carry_over:
            score += self.weights.carry_over_bonus
        if aligned:
            score += self.weights.commitment_bonus
        if self.is_defect(item):
            score += self.weights.defect_bonus
        score += self.size_score(item.story_points)

        return item.annotate(
            score=round_half_up(score, 1),
            is_carry_over=is_carry_over,
            matches_commitment=aligned
        )

    def score(
        self,
        items: list[WorkItem],
        carry_over: Optional[Iterable[Union[WorkItem, str]]] = None,
        commitments: Optional[Iterable[Commitment]] = None
    ) -> list[WorkItem]:
        """
        Score and rank items.

        Args:
            items: Candidate items (active sprint and backlog)
            carry_over: Items (or keys) left unfinished in the previous sprint
            commitments: Parsed planning commitments

        Returns:
            Annotated copies sorted by descending score; ties keep input order
        """
        carry_over_keys = {
            c if isinstance(c, str) else c.key
            for c in (carry_over or [])
        }
        carry_over_keys.discard(None)
        keywords = self.commitment_keywords(commitments or [])

        scored = [self.score_item(item, carry_over_keys, keywords) for item in items]
        scored.sort(key=lambda i: i.score, reverse=True)

        logger.debug("Scored %d items against %d commitment keywords", len(scored), len(keywords))
        return scored


# Convenience function
def score_items(
    items: list[WorkItem],
    carry_over: Optional[Iterable[Union[WorkItem, str]]] = None,
    commitments: Optional[Iterable[Commitment]] = None,
    weights: Optional[ScoringWeights] = None
) -> list[WorkItem]:
    """
    Quick function to rank items.

    Example:
        ranked = score_items(backlog, carry_over=["PROJ-12"])
        for item in ranked[:5]:
            print(f"{item.key}: {item.score}")
    """
    return ItemScorer(weights=weights).score(items, carry_over, commitments)
