"""
Capacity Model

Estimates how much work each team member can absorb next sprint, taking
out-of-office notices into account.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from .models import Member, round_half_up
from .velocity import VelocityRecord, total_avg_items


logger = logging.getLogger(__name__)


UNAVAILABILITY_KEYWORDS = (
    "ooo",
    "out of office",
    "vacation",
    "holiday",
    "time off",
    "on leave",
)


@dataclass
class AvailabilitySignal:
    """Free-text note that may announce someone's absence."""
    content: str
    source: str = "Unknown"
    url: str = ""


@dataclass
class MemberCapacity:
    """Capacity estimate for one team member."""
    name: str
    projects: list[str] = field(default_factory=list)
    current_items: int = 0
    is_unavailable: bool = False
    availability_factor: float = 1.0
    estimated_capacity: int = 0

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "projects": list(self.projects),
            "current_items": self.current_items,
            "is_unavailable": self.is_unavailable,
            "availability_factor": self.availability_factor,
            "estimated_capacity": self.estimated_capacity
        }


@dataclass
class CapacityAssessment:
    """Team capacity for the upcoming sprint. Members keep roster order."""
    members: list[MemberCapacity] = field(default_factory=list)
    total_capacity: int = 0
    unavailable_members: list[str] = field(default_factory=list)

    @property
    def total_members(self) -> int:
        return len(self.members)

    @property
    def available_members(self) -> list[MemberCapacity]:
        return [m for m in self.members if not m.is_unavailable]

    @property
    def reduced_capacity(self) -> bool:
        return len(self.unavailable_members) > 0

    def get(self, name: str) -> Optional[MemberCapacity]:
        for member in self.members:
            if member.name == name:
                return member
        return None

    def to_dict(self) -> dict:
        return {
            "total_members": self.total_members,
            "total_capacity": self.total_capacity,
            "unavailable_members": list(self.unavailable_members),
            "reduced_capacity": self.reduced_capacity,
            "members": [m.to_dict() for m in self.members]
        }


@dataclass
class CapacitySummary:
    """Velocity and capacity digest with a planning recommendation."""
    team_size: int
    available_members: int
    total_capacity: int
    unavailable_members: list[str]
    capacity_ratio: float
    project_velocity: dict[str, dict] = field(default_factory=dict)
    recommendation: str = ""

    def to_dict(self) -> dict:
        return {
            "team_size": self.team_size,
            "available_members": self.available_members,
            "total_capacity": self.total_capacity,
            "unavailable_members": list(self.unavailable_members),
            "capacity_ratio": round(self.capacity_ratio, 2),
            "project_velocity": self.project_velocity,
            "recommendation": self.recommendation
        }


class CapacityModel:
    """
    Derives per-member capacity from the roster and availability notes.

    A member is unavailable when some note mentions one of their name parts
    (longer than two characters) together with an out-of-office keyword.
    Availability is binary: full default capacity or none.
    """

    def __init__(
        self,
        default_capacity_per_person: int = 10,
        keywords: tuple[str, ...] = UNAVAILABILITY_KEYWORDS,
        min_name_token_length: int = 3
    ):
        self.default_capacity_per_person = default_capacity_per_person
        self.keywords = tuple(k.lower() for k in keywords)
        self.min_name_token_length = min_name_token_length

    def name_tokens(self, name: str) -> list[str]:
        """Lowercased name parts long enough to match safely."""
        return [t for t in name.lower().split() if len(t) >= self.min_name_token_length]

    def mentions_absence(self, text: str) -> bool:
        content = text.lower()
        return any(keyword in content for keyword in self.keywords)

    def is_reported_unavailable(self, name: str, signals: list[AvailabilitySignal]) -> bool:
        tokens = self.name_tokens(name)
        if not tokens:
            return False

        for signal in signals:
            content = (signal.content or "").lower()
            if any(token in content for token in tokens) and self.mentions_absence(content):
                return True
        return False

    def assess(
        self,
        members: list[Member],
        signals: Optional[list[AvailabilitySignal]] = None
    ) -> CapacityAssessment:
        """
        Assess capacity for the whole team.

        Args:
            members: Team roster in registration order
            signals: Availability notes (wiki pages, calendar exports)

        Returns:
            CapacityAssessment with one entry per member
        """
        signals = signals or []
        assessment = CapacityAssessment()

        for member in members:
            unavailable = self.is_reported_unavailable(member.name, signals)
            factor = 0.0 if unavailable else 1.0
            capacity = int(round_half_up(self.default_capacity_per_person * factor))

            assessment.members.append(MemberCapacity(
                name=member.name,
                projects=list(member.projects),
                current_items=member.ticket_count,
                is_unavailable=unavailable,
                availability_factor=factor,
                estimated_capacity=capacity
            ))

            if unavailable:
                assessment.unavailable_members.append(member.name)
                logger.debug("%s reported out of office", member.name)
            assessment.total_capacity += capacity

        return assessment

    def summarize(
        self,
        velocity: dict[str, VelocityRecord],
        assessment: CapacityAssessment
    ) -> CapacitySummary:
        """Combine velocity and capacity into a recommendation."""
        avg_items = total_avg_items(velocity)
        full_capacity = self.default_capacity_per_person * assessment.total_members
        ratio = assessment.total_capacity / (full_capacity or 1)
        percent = int(round_half_up(ratio * 100))

        if ratio < 0.7:
            suggested = int(round_half_up(avg_items * ratio))
            recommendation = (
                f"Reduced capacity ({percent}%). Plan fewer tickets than average velocity. "
                f"Suggest {suggested} tickets max."
            )
        elif ratio <= 1.0:
            recommendation = (
                f"Normal capacity ({percent}%). Plan close to average velocity: "
                f"~{int(round_half_up(avg_items))} tickets."
            )
        else:
            recommendation = (
                f"Full capacity available. Target average velocity: "
                f"~{int(round_half_up(avg_items))} tickets."
            )

        return CapacitySummary(
            team_size=assessment.total_members,
            available_members=len(assessment.available_members),
            total_capacity=assessment.total_capacity,
            unavailable_members=list(assessment.unavailable_members),
            capacity_ratio=ratio,
            project_velocity={
                project: {
                    "avg_items": v.avg_items_per_period,
                    "avg_points": v.avg_points_per_period,
                    "trend": v.trend
                }
                for project, v in velocity.items()
            },
            recommendation=recommendation
        )


# Convenience function
def assess_team_capacity(
    members: list[Member],
    signals: Optional[list[AvailabilitySignal]] = None,
    default_capacity_per_person: int = 10
) -> CapacityAssessment:
    """
    Quick function to assess team capacity.

    Example:
        capacity = assess_team_capacity(roster, ooo_notes)
        print(f"Available: {len(capacity.available_members)}/{capacity.total_members}")
    """
    model = CapacityModel(default_capacity_per_person=default_capacity_per_person)
    return model.assess(members, signals)
