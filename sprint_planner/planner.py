"""
Allocation Planner

Turns ranked work items, velocity and capacity into a sprint plan: which
items are in scope, in which section, and who should do them.
"""

import logging
from dataclasses import dataclass, field, replace
from functools import reduce
from typing import Optional

from .capacity import AvailabilitySignal, CapacityAssessment, CapacityModel, CapacitySummary
from .models import Commitment, Member, WorkItem, round_half_up
from .scorer import ItemScorer
from .velocity import CompletedPeriod, VelocityModel, VelocityRecord, total_avg_items


logger = logging.getLogger(__name__)


SECTION_NAMES = ("carry_over", "committed", "new_work", "stretch")


@dataclass
class Assignment:
    """Items planned for one team member."""
    items: list[WorkItem] = field(default_factory=list)
    total_points: float = 0.0
    capacity: int = 0

    def to_dict(self) -> dict:
        return {
            "items": [i.to_dict() for i in self.items],
            "total_points": self.total_points,
            "capacity": self.capacity
        }


@dataclass
class Plan:
    """Sprint plan produced by the allocation planner."""
    goal: str = ""
    total_items: int = 0
    total_points: float = 0.0
    item_budget: int = 0
    assignments: dict[str, Assignment] = field(default_factory=dict)
    unassigned: list[WorkItem] = field(default_factory=list)
    overflow: list[WorkItem] = field(default_factory=list)
    sections: dict[str, list[WorkItem]] = field(
        default_factory=lambda: {name: [] for name in SECTION_NAMES}
    )

    @property
    def carry_over(self) -> list[WorkItem]:
        return self.sections["carry_over"]

    @property
    def committed(self) -> list[WorkItem]:
        return self.sections["committed"]

    @property
    def new_work(self) -> list[WorkItem]:
        return self.sections["new_work"]

    @property
    def stretch(self) -> list[WorkItem]:
        return self.sections["stretch"]

    @property
    def assigned_count(self) -> int:
        return sum(len(a.items) for a in self.assignments.values())

    @property
    def planned_items(self) -> list[WorkItem]:
        """Every non-stretch item, in section order."""
        return self.carry_over + self.committed + self.new_work

    def to_dict(self) -> dict:
        return {
            "goal": self.goal,
            "total_items": self.total_items,
            "total_points": self.total_points,
            "item_budget": self.item_budget,
            "assignments": {name: a.to_dict() for name, a in self.assignments.items()},
            "unassigned": [i.to_dict() for i in self.unassigned],
            "overflow": [i.to_dict() for i in self.overflow],
            "sections": {
                name: [i.to_dict() for i in items]
                for name, items in self.sections.items()
            }
        }


# Immutable accumulator threaded through the categorization pass

@dataclass(frozen=True)
class _Bucket:
    name: str
    capacity: int
    items: tuple[WorkItem, ...] = ()
    total_points: float = 0.0

    def add(self, item: WorkItem) -> "_Bucket":
        return replace(self, items=self.items + (item,), total_points=self.total_points + item.story_points)


@dataclass(frozen=True)
class _PlanState:
    buckets: tuple[_Bucket, ...]
    categorized_count: int = 0
    total_points: float = 0.0
    carry_over: tuple[WorkItem, ...] = ()
    committed: tuple[WorkItem, ...] = ()
    new_work: tuple[WorkItem, ...] = ()
    stretch: tuple[WorkItem, ...] = ()
    unassigned: tuple[WorkItem, ...] = ()
    overflow: tuple[WorkItem, ...] = ()

    def bucket_index(self, name: str) -> Optional[int]:
        for index, bucket in enumerate(self.buckets):
            if bucket.name == name:
                return index
        return None

    def with_bucket(self, index: int, bucket: _Bucket) -> "_PlanState":
        buckets = self.buckets[:index] + (bucket,) + self.buckets[index + 1:]
        return replace(self, buckets=buckets)


class AllocationPlanner:
    """
    Builds a sprint plan from scored items.

    Items are walked once in score order. Each lands in the first matching
    section (carry-over, committed, new work while under budget, otherwise
    stretch). Non-stretch items go to their current assignee when that
    person is available and under the per-person cap, or to the least
    loaded available member otherwise.

    Usage:
        planner = AllocationPlanner()
        plan = planner.plan(scored_items, capacity, velocity)
    """

    def __init__(
        self,
        max_items_per_person: int = 6,
        budget_margin: float = 1.1
    ):
        self.max_items_per_person = max_items_per_person
        self.budget_margin = budget_margin

    def item_budget(self, velocity: dict[str, VelocityRecord], candidate_count: int) -> int:
        """Historical throughput plus a stretch margin, never more than the candidates."""
        budget = int(round_half_up(total_avg_items(velocity) * self.budget_margin))
        return min(candidate_count, budget)

    def unique_items(self, items: list[WorkItem]) -> list[WorkItem]:
        """Drop repeated keys, keeping the first (highest ranked) occurrence. Keyless items are kept."""
        seen = set()
        unique = []
        for item in items:
            if item.key is not None:
                if item.key in seen:
                    logger.debug("Dropping duplicate item %s", item.key)
                    continue
                seen.add(item.key)
            unique.append(item)
        return unique

    def _initial_state(self, capacity: CapacityAssessment) -> _PlanState:
        return _PlanState(buckets=tuple(
            _Bucket(name=m.name, capacity=m.estimated_capacity)
            for m in capacity.available_members
        ))

    def _categorize(self, state: _PlanState, item: WorkItem, budget: int) -> tuple[_PlanState, bool]:
        """Add the item to its section. Returns (state, needs_assignment)."""
        if item.is_carry_over:
            return replace(state, carry_over=state.carry_over + (item,)), True
        if item.matches_commitment:
            return replace(state, committed=state.committed + (item,)), True
        if state.categorized_count < budget:
            return replace(state, new_work=state.new_work + (item,)), True
        return replace(state, stretch=state.stretch + (item,)), False

    def _assign(self, state: _PlanState, item: WorkItem) -> _PlanState:
        index = state.bucket_index(item.assignee) if item.has_assignee else None

        if index is not None:
            bucket = state.buckets[index]
            if len(bucket.items) < self.max_items_per_person:
                return state.with_bucket(index, bucket.add(item))
            return replace(state, overflow=state.overflow + (item,))

        # Least loaded member with room; min() keeps the first on ties,
        # which is roster order.
        open_buckets = [
            (i, b) for i, b in enumerate(state.buckets)
            if len(b.items) < self.max_items_per_person
        ]
        if not open_buckets:
            return replace(state, unassigned=state.unassigned + (item,))

        index, bucket = min(open_buckets, key=lambda pair: len(pair[1].items))
        return state.with_bucket(index, bucket.add(item))

    def _step(self, state: _PlanState, item: WorkItem, budget: int) -> _PlanState:
        state, needs_assignment = self._categorize(state, item, budget)
        if not needs_assignment:
            return state

        state = self._assign(state, item)
        return replace(
            state,
            categorized_count=state.categorized_count + 1,
            total_points=state.total_points + item.story_points
        )

    def synthesize_goal(self, carry_over: int, committed: int, new_work: int) -> str:
        goals = []
        if carry_over > 0:
            goals.append(f"Complete {carry_over} carry-over items")
        if committed > 0:
            goals.append(f"Deliver {committed} committed items")
        goals.append(f"Execute {new_work} new tasks")
        return "; ".join(goals)

    def plan(
        self,
        scored_items: list[WorkItem],
        capacity: CapacityAssessment,
        velocity: dict[str, VelocityRecord]
    ) -> Plan:
        """
        Generate the sprint plan.

        Args:
            scored_items: Output of ItemScorer.score (already ranked)
            capacity: Team capacity assessment
            velocity: Velocity per project

        Returns:
            Plan with sections, assignments, unassigned and overflow lists
        """
        scored_items = self.unique_items(scored_items)
        budget = self.item_budget(velocity, len(scored_items))

        final = reduce(
            lambda state, item: self._step(state, item, budget),
            scored_items,
            self._initial_state(capacity)
        )

        plan = Plan(
            goal=self.synthesize_goal(len(final.carry_over), len(final.committed), len(final.new_work)),
            total_items=final.categorized_count,
            total_points=final.total_points,
            item_budget=budget,
            assignments={
                b.name: Assignment(items=list(b.items), total_points=b.total_points, capacity=b.capacity)
                for b in final.buckets
            },
            unassigned=list(final.unassigned),
            overflow=list(final.overflow),
            sections={
                "carry_over": list(final.carry_over),
                "committed": list(final.committed),
                "new_work": list(final.new_work),
                "stretch": list(final.stretch)
            }
        )

        logger.debug(
            "Planned %d items (%s points), budget %d, %d stretch, %d unassigned, %d overflow",
            plan.total_items, plan.total_points, budget,
            len(plan.stretch), len(plan.unassigned), len(plan.overflow)
        )
        return plan


@dataclass
class PlanningResult:
    """Everything the engine derived for one planning run."""
    plan: Plan
    velocity: dict[str, VelocityRecord]
    capacity: CapacityAssessment
    summary: CapacitySummary
    scored_items: list[WorkItem]

    def to_dict(self) -> dict:
        return {
            "plan": self.plan.to_dict(),
            "velocity": {project: v.to_dict() for project, v in self.velocity.items()},
            "capacity": self.capacity.to_dict(),
            "summary": self.summary.to_dict()
        }


# Convenience function
def plan_sprint(
    items: list[WorkItem],
    members: list[Member],
    completed_periods: Optional[dict[str, list[CompletedPeriod]]] = None,
    signals: Optional[list[AvailabilitySignal]] = None,
    carry_over: Optional[list[WorkItem]] = None,
    commitments: Optional[list[Commitment]] = None,
    capacity_per_person: int = 10,
    max_items_per_person: int = 6,
    budget_margin: float = 1.1
) -> PlanningResult:
    """
    Run the whole engine: velocity, capacity, scoring and allocation.

    Example:
        result = plan_sprint(items, roster, completed_periods=history)
        print(result.plan.goal)
        for name, assignment in result.plan.assignments.items():
            print(f"  {name}: {len(assignment.items)} items")
    """
    velocity = VelocityModel().calculate(completed_periods or {})

    capacity_model = CapacityModel(default_capacity_per_person=capacity_per_person)
    capacity = capacity_model.assess(members, signals)
    summary = capacity_model.summarize(velocity, capacity)

    scored = ItemScorer().score(items, carry_over, commitments)

    planner = AllocationPlanner(
        max_items_per_person=max_items_per_person,
        budget_margin=budget_margin
    )
    plan = planner.plan(scored, capacity, velocity)

    return PlanningResult(
        plan=plan,
        velocity=velocity,
        capacity=capacity,
        summary=summary,
        scored_items=scored
    )
