"""
Core data model for the Sprint Planner

Work items, team members and planning commitments as they enter the
allocation engine.
"""

import math
import re
from dataclasses import dataclass, field, replace
from typing import Any, Optional


UNASSIGNED = "Unassigned"

LEADING_NUMBER = re.compile(r"^\s*([-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?)")


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round halves away from zero instead of to the nearest even digit."""
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor


def coerce_story_points(raw: Any) -> float:
    """
    Normalize a story points field to a non-negative number.

    Jira returns the estimate field in several shapes. Precedence:
    number > string with a leading number > nested ``value`` > nested ``name`` > anything else (0).
    Arrays are sprint payloads rather than estimates, so they count as 0.
    """
    if raw is None or isinstance(raw, bool):
        return 0.0
    if isinstance(raw, (int, float)):
        points = float(raw)
    elif isinstance(raw, str):
        match = LEADING_NUMBER.match(raw)
        if not match:
            return 0.0
        points = float(match.group(1))
    elif isinstance(raw, dict):
        if "value" in raw:
            return coerce_story_points(raw["value"])
        if "name" in raw:
            return coerce_story_points(raw["name"])
        return 0.0
    else:
        return 0.0

    if math.isnan(points) or math.isinf(points) or points < 0:
        return 0.0
    return points


def is_unassigned(assignee: Optional[str]) -> bool:
    return not assignee or assignee.strip().lower() == UNASSIGNED.lower()


@dataclass(frozen=True)
class WorkItem:
    """A candidate work item (Jira issue, or a planned item not yet created)."""
    key: Optional[str]
    summary: str = ""
    issue_type: str = ""
    priority: str = ""
    status: str = ""
    story_points: float = 0.0
    assignee: str = UNASSIGNED
    project: Optional[str] = None
    description: str = ""
    labels: tuple[str, ...] = ()

    # Derived by scoring
    score: float = 0.0
    is_carry_over: bool = False
    matches_commitment: bool = False

    def __post_init__(self):
        object.__setattr__(self, "story_points", coerce_story_points(self.story_points))
        object.__setattr__(self, "assignee", self.assignee or UNASSIGNED)
        object.__setattr__(self, "labels", tuple(self.labels or ()))

    @property
    def has_assignee(self) -> bool:
        return not is_unassigned(self.assignee)

    @property
    def is_backlog(self) -> bool:
        return (self.status or "").strip().lower() == "backlog"

    def annotate(self, score: float, is_carry_over: bool, matches_commitment: bool) -> "WorkItem":
        """Return a scored copy; the original item is left untouched."""
        return replace(
            self,
            score=score,
            is_carry_over=is_carry_over,
            matches_commitment=matches_commitment
        )

    def merged_with(self, detail: "WorkItem") -> "WorkItem":
        """Overlay non-empty fields from a detail fetch onto search data."""
        return replace(
            self,
            key=detail.key or self.key,
            summary=detail.summary or self.summary,
            issue_type=detail.issue_type or self.issue_type,
            priority=detail.priority or self.priority,
            status=detail.status or self.status,
            story_points=detail.story_points or self.story_points,
            assignee=detail.assignee if detail.has_assignee else self.assignee,
            project=detail.project or self.project,
            labels=detail.labels or self.labels
        )

    @classmethod
    def from_dict(cls, data: dict) -> "WorkItem":
        """Build an item from a loosely shaped dictionary (API payloads, fixtures)."""
        return cls(
            key=data.get("key"),
            summary=data.get("summary") or "",
            issue_type=data.get("issue_type") or data.get("type") or "",
            priority=data.get("priority") or "",
            status=data.get("status") or "",
            story_points=data.get("story_points", data.get("storyPoints")),
            assignee=data.get("assignee") or UNASSIGNED,
            project=data.get("project"),
            description=data.get("description") or "",
            labels=tuple(data.get("labels") or ())
        )

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "summary": self.summary,
            "type": self.issue_type,
            "priority": self.priority,
            "status": self.status,
            "story_points": self.story_points,
            "assignee": self.assignee,
            "project": self.project,
            "score": self.score,
            "is_carry_over": self.is_carry_over,
            "matches_commitment": self.matches_commitment
        }


@dataclass(frozen=True)
class Commitment:
    """A declared priority parsed from planning documentation."""
    text: str
    priority: str = "medium"  # high, medium, low


@dataclass
class Member:
    """Team member as discovered from the tracker."""
    name: str
    projects: list[str] = field(default_factory=list)
    ticket_count: int = 0
