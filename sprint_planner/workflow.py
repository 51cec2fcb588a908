"""
Sprint planning workflow

Fetch from Jira and Confluence, run the allocation engine, and optionally
apply the plan.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

import httpx

from .capacity import AvailabilitySignal
from .config import Config
from .executor import ExecutionOptions, ExecutionResult, SprintExecutor
from .integrations import ConfluenceClient, JiraClient
from .models import Commitment, Member, WorkItem
from .planner import PlanningResult, plan_sprint
from .velocity import CompletedPeriod


logger = logging.getLogger(__name__)


class SprintPlanningError(Exception):
    """Raised when planning cannot proceed (e.g. Jira is unreachable)."""
    pass


@dataclass
class PlanningInputs:
    """Everything the engine needs, gathered before it runs."""
    items: list[WorkItem] = field(default_factory=list)
    members: list[Member] = field(default_factory=list)
    completed_periods: dict[str, list[CompletedPeriod]] = field(default_factory=dict)
    signals: list[AvailabilitySignal] = field(default_factory=list)
    carry_over: list[WorkItem] = field(default_factory=list)
    commitments: list[Commitment] = field(default_factory=list)


class SprintPlanningWorkflow:
    """
    End-to-end sprint planning.

    Usage:
        workflow = SprintPlanningWorkflow(Config())
        inputs = await workflow.gather()
        result = workflow.plan(inputs)
        execution = await workflow.execute(result, ExecutionOptions(dry_run=True))
    """

    def __init__(
        self,
        config: Config,
        jira: Optional[JiraClient] = None,
        confluence: Optional[ConfluenceClient] = None,
        active_limit: int = 30,
        backlog_limit: int = 15
    ):
        self.config = config
        self.jira = jira or JiraClient(
            url=config.jira_url,
            email=config.jira_email,
            token=config.jira_token,
            projects=config.projects
        )
        self.confluence = confluence
        if self.confluence is None and config.confluence_url:
            self.confluence = ConfluenceClient(
                url=config.confluence_url,
                email=config.jira_email,
                token=config.jira_token,
                spaces=config.confluence_spaces
            )
        self.active_limit = active_limit
        self.backlog_limit = backlog_limit

    async def check_connection(self) -> None:
        try:
            await self.jira.get_myself()
        except httpx.HTTPError as e:
            logger.error("Cannot reach Jira at %s: %s", self.jira.url, e)
            raise SprintPlanningError(f"Cannot reach Jira: {e}") from e

    async def gather(self) -> PlanningInputs:
        """Fetch all planning inputs."""
        await self.check_connection()
        planning = self.config.planning

        active = await self.jira.fetch_active_sprint_items()
        backlog = await self.jira.fetch_backlog()
        carry_over = await self.jira.fetch_carry_over()
        members = await self.jira.fetch_team_members()
        logger.info("Found %d team members", len(members))

        completed = await self.jira.fetch_completed_periods(
            num_periods=planning["history_sprints"],
            period_days=planning["sprint_length_days"]
        )

        commitments = []
        signals = []
        if self.confluence:
            commitments = await self.confluence.fetch_commitments()
            signals = await self.confluence.fetch_availability_signals()

        # Search results lack assignees; enrich a bounded sample with detail lookups
        active_base = [i for items in active.values() for i in items[:self.active_limit]]
        backlog_base = [i for items in backlog.values() for i in items[:self.backlog_limit]]

        detailed_active = await self.jira.fetch_item_details(
            [i.key for i in active_base if i.key][:50], active_base
        )
        detailed_backlog = await self.jira.fetch_item_details(
            [i.key for i in backlog_base if i.key][:30], backlog_base
        )
        logger.info("Enriched %d active + %d backlog items", len(detailed_active), len(detailed_backlog))

        return PlanningInputs(
            items=[i for i in detailed_active + detailed_backlog if i.key],
            members=members,
            completed_periods=completed,
            signals=signals,
            carry_over=[i for items in carry_over.values() for i in items],
            commitments=commitments
        )

    def plan(self, inputs: PlanningInputs) -> PlanningResult:
        """Run the allocation engine on gathered inputs."""
        planning = self.config.planning
        result = plan_sprint(
            items=inputs.items,
            members=inputs.members,
            completed_periods=inputs.completed_periods,
            signals=inputs.signals,
            carry_over=inputs.carry_over,
            commitments=inputs.commitments,
            capacity_per_person=planning["capacity_per_person"],
            max_items_per_person=planning["max_items_per_person"],
            budget_margin=planning["budget_margin"]
        )
        logger.info("Sprint goal: %s", result.plan.goal)
        logger.info("Planned: %d items, %g points", result.plan.total_items, result.plan.total_points)
        logger.info("Recommendation: %s", result.summary.recommendation)
        return result

    async def execute(
        self,
        result: PlanningResult,
        options: Optional[ExecutionOptions] = None
    ) -> ExecutionResult:
        """Apply the plan to Jira."""
        default_project = self.config.projects[0].key if self.config.projects else None
        executor = SprintExecutor(self.jira, default_project=default_project)
        return await executor.execute(result.plan, options)

    async def run(self) -> PlanningResult:
        """Gather and plan."""
        return self.plan(await self.gather())
