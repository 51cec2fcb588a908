"""
Velocity Model

Derives per-project throughput statistics and trend from recently completed sprints.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from .models import WorkItem, round_half_up


logger = logging.getLogger(__name__)


@dataclass
class CompletedPeriod:
    """One completed sprint window: how many items closed, and which ones."""
    items_completed: int
    items: list[WorkItem] = field(default_factory=list)
    index: int = 0  # 1 = most recent

    @property
    def points(self) -> float:
        return sum(item.story_points for item in self.items)


@dataclass
class VelocityRecord:
    """Historical velocity statistics for one project."""
    avg_items_per_period: float = 0.0
    avg_points_per_period: float = 0.0
    trend: str = "stable"  # "improving", "stable", "declining"
    history: list[int] = field(default_factory=list)  # most recent first
    periods_analyzed: int = 0

    def to_dict(self) -> dict:
        return {
            "avg_items_per_period": self.avg_items_per_period,
            "avg_points_per_period": self.avg_points_per_period,
            "trend": self.trend,
            "history": list(self.history),
            "periods_analyzed": self.periods_analyzed
        }


class VelocityModel:
    """
    Calculates velocity per project.

    Usage:
        model = VelocityModel()
        velocity = model.calculate({
            "PROJ": [CompletedPeriod(items_completed=8), CompletedPeriod(items_completed=6)]
        })
    """

    def __init__(
        self,
        improving_threshold: float = 1.15,
        declining_threshold: float = 0.85
    ):
        self.improving_threshold = improving_threshold
        self.declining_threshold = declining_threshold

    def classify_trend(self, history: list[int]) -> str:
        """Compare the most recent period against the oldest one in the window."""
        if len(history) < 2:
            return "stable"

        recent = history[0]
        older = history[-1]

        if recent > older * self.improving_threshold:
            return "improving"
        elif recent < older * self.declining_threshold:
            return "declining"
        return "stable"

    def calculate_project(self, periods: list[CompletedPeriod]) -> VelocityRecord:
        """
        Calculate velocity for a single project.

        Args:
            periods: Completed periods, most recent first

        Returns:
            VelocityRecord with averages and trend
        """
        history = [p.items_completed for p in periods]
        n = len(history)

        avg_items = sum(history) / n if n else 0

        # Periods with no measured points carry no estimate data, so they
        # are left out of the points denominator.
        measured = [p.points for p in periods if p.points > 0]
        avg_points = sum(measured) / len(measured) if measured else 0

        return VelocityRecord(
            avg_items_per_period=round_half_up(avg_items, 1),
            avg_points_per_period=round_half_up(avg_points, 1),
            trend=self.classify_trend(history),
            history=history,
            periods_analyzed=n
        )

    def calculate(
        self,
        completed_periods: dict[str, list[CompletedPeriod]]
    ) -> dict[str, VelocityRecord]:
        """Calculate velocity for every project, preserving project order."""
        velocity = {}
        for project, periods in completed_periods.items():
            record = self.calculate_project(periods)
            logger.debug(
                "Velocity %s: %s items/period, %s points/period (%s)",
                project, record.avg_items_per_period, record.avg_points_per_period, record.trend
            )
            velocity[project] = record
        return velocity


def total_avg_items(velocity: dict[str, VelocityRecord]) -> float:
    """Sum of average items per period across all projects."""
    return sum(v.avg_items_per_period for v in velocity.values())


# Convenience function
def calculate_velocity(
    completed_periods: dict[str, list[CompletedPeriod]],
    model: Optional[VelocityModel] = None
) -> dict[str, VelocityRecord]:
    """
    Quick function to calculate velocity.

    Example:
        velocity = calculate_velocity(completed_periods)
        for project, record in velocity.items():
            print(f"{project}: {record.avg_items_per_period} items/sprint ({record.trend})")
    """
    return (model or VelocityModel()).calculate(completed_periods)
