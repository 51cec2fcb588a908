"""
Sprint Planner

Capacity-aware sprint allocation: velocity, capacity, item scoring and
assignment, fed from Jira and Confluence.
"""

__version__ = "1.0.0"

from .models import (
    WorkItem,
    Commitment,
    Member,
    coerce_story_points
)

from .velocity import (
    VelocityModel,
    VelocityRecord,
    CompletedPeriod,
    calculate_velocity
)

from .capacity import (
    CapacityModel,
    CapacityAssessment,
    CapacitySummary,
    MemberCapacity,
    AvailabilitySignal,
    assess_team_capacity
)

from .scorer import (
    ItemScorer,
    ScoringWeights,
    score_items
)

from .planner import (
    AllocationPlanner,
    Plan,
    Assignment,
    PlanningResult,
    plan_sprint
)

from .commitments import parse_commitments

from .executor import (
    SprintExecutor,
    ExecutionOptions,
    ExecutionResult
)

from .reporter import MarkdownReporter

__all__ = [
    # Version
    "__version__",

    # Models
    "WorkItem",
    "Commitment",
    "Member",
    "coerce_story_points",

    # Velocity
    "VelocityModel",
    "VelocityRecord",
    "CompletedPeriod",
    "calculate_velocity",

    # Capacity
    "CapacityModel",
    "CapacityAssessment",
    "CapacitySummary",
    "MemberCapacity",
    "AvailabilitySignal",
    "assess_team_capacity",

    # Scoring
    "ItemScorer",
    "ScoringWeights",
    "score_items",

    # Planning
    "AllocationPlanner",
    "Plan",
    "Assignment",
    "PlanningResult",
    "plan_sprint",
    "parse_commitments",

    # Execution
    "SprintExecutor",
    "ExecutionOptions",
    "ExecutionResult",

    # Reporting
    "MarkdownReporter",
]
