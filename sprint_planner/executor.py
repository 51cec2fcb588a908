"""
Sprint Executor

Applies a sprint plan to Jira: assigns items, moves backlog items to To Do
and creates entries for planned items that do not exist yet. Every action is
attempted independently; failures are recorded and the run carries on.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from .integrations import JiraClient
from .models import WorkItem
from .planner import Plan


logger = logging.getLogger(__name__)


@dataclass
class ExecutionOptions:
    """Which plan actions to apply."""
    assign: bool = True
    transition: bool = False
    create_new: bool = False
    dry_run: bool = False


@dataclass
class ActionRecord:
    """One applied (or previewed) action."""
    action: str  # "assign", "transition", "create"
    key: Optional[str] = None
    assignee: Optional[str] = None
    project: Optional[str] = None
    summary: Optional[str] = None
    from_status: Optional[str] = None
    to_status: Optional[str] = None
    dry_run: bool = False

    def to_dict(self) -> dict:
        return {k: v for k, v in self.__dict__.items() if v is not None}


@dataclass
class ActionError:
    """A failed action and why."""
    action: str
    target: str
    error: str

    def to_dict(self) -> dict:
        return {"action": self.action, "target": self.target, "error": self.error}


@dataclass
class ExecutionResult:
    """Outcome of applying a plan."""
    assigned: list[ActionRecord] = field(default_factory=list)
    transitioned: list[ActionRecord] = field(default_factory=list)
    created: list[ActionRecord] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    errors: list[ActionError] = field(default_factory=list)
    dry_run: bool = False

    @property
    def succeeded(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        return {
            "dry_run": self.dry_run,
            "assigned": [r.to_dict() for r in self.assigned],
            "transitioned": [r.to_dict() for r in self.transitioned],
            "created": [r.to_dict() for r in self.created],
            "skipped": list(self.skipped),
            "errors": [e.to_dict() for e in self.errors]
        }


class SprintExecutor:
    """
    Executes a plan against Jira.

    Usage:
        executor = SprintExecutor(jira_client, default_project="PROJ")
        result = await executor.execute(plan, ExecutionOptions(transition=True, dry_run=True))
    """

    def __init__(self, jira: JiraClient, default_project: Optional[str] = None):
        self.jira = jira
        self.default_project = default_project
        self.account_ids: dict[str, str] = {}

    async def resolve_account_ids(self, names: list[str], result: ExecutionResult) -> None:
        """Look up account ids for plan members, caching hits."""
        for name in names:
            if name in self.account_ids:
                continue
            try:
                account_id = await self.jira.lookup_account_id(name)
            except Exception as e:
                logger.warning("Error resolving %s: %s", name, e)
                result.errors.append(ActionError("resolve", name, str(e)))
                continue

            if account_id:
                self.account_ids[name] = account_id
                logger.info("Resolved %s -> %s", name, account_id)
            else:
                logger.warning("Could not resolve account ID for %s", name)

    async def _assign(self, plan: Plan, result: ExecutionResult, dry_run: bool) -> None:
        logger.info("Assigning items to team members")
        await self.resolve_account_ids(list(plan.assignments), result)

        for name, assignment in plan.assignments.items():
            account_id = self.account_ids.get(name)
            if not account_id:
                result.skipped.append(f"No account ID found for {name}")
                continue

            for item in assignment.items:
                if not item.key:
                    continue
                if item.assignee == name:
                    result.skipped.append(f"{item.key} already assigned to {name}")
                    continue

                if dry_run:
                    logger.info("DRY RUN: Would assign %s to %s", item.key, name)
                    result.assigned.append(ActionRecord("assign", key=item.key, assignee=name, dry_run=True))
                    continue

                try:
                    await self.jira.assign_issue(item.key, account_id)
                except Exception as e:
                    logger.warning("Failed to assign %s: %s", item.key, e)
                    result.errors.append(ActionError("assign", item.key, str(e)))
                    continue

                logger.info("Assigned %s -> %s", item.key, name)
                result.assigned.append(ActionRecord("assign", key=item.key, assignee=name))

    async def _transition(self, plan: Plan, result: ExecutionResult, dry_run: bool) -> None:
        logger.info("Transitioning backlog items to To Do")

        for item in plan.carry_over + plan.new_work:
            if not item.key or not item.is_backlog:
                continue

            if dry_run:
                logger.info("DRY RUN: Would transition %s from Backlog to To Do", item.key)
                result.transitioned.append(ActionRecord(
                    "transition", key=item.key, from_status="Backlog", to_status="To Do", dry_run=True
                ))
                continue

            try:
                await self.jira.transition_to_todo(item.key)
            except Exception as e:
                logger.warning("Failed to transition %s: %s", item.key, e)
                result.errors.append(ActionError("transition", item.key, str(e)))
                continue

            logger.info("Transitioned %s -> To Do", item.key)
            result.transitioned.append(ActionRecord(
                "transition", key=item.key, from_status="Backlog", to_status="To Do"
            ))

    async def _create(self, items: list[WorkItem], result: ExecutionResult, dry_run: bool) -> None:
        logger.info("Creating tickets for new plan items")

        for item in items:
            if item.key:
                result.skipped.append(f"{item.key} already exists in Jira")
                continue
            if not item.summary:
                result.skipped.append("No summary for item")
                continue

            project = item.project or self.default_project
            if not project:
                result.errors.append(ActionError("create", item.summary, "No project for new item"))
                continue

            if dry_run:
                logger.info("DRY RUN: Would create ticket in %s: %s", project, item.summary)
                result.created.append(ActionRecord("create", project=project, summary=item.summary, dry_run=True))
                continue

            try:
                key = await self.jira.create_issue(
                    project, item.summary, item.issue_type or "Story", item.description
                )
            except Exception as e:
                logger.warning("Failed to create ticket: %s", e)
                result.errors.append(ActionError("create", item.summary, str(e)))
                continue

            logger.info("Created %s in %s: %s", key or "ticket", project, item.summary[:50])
            result.created.append(ActionRecord("create", key=key, project=project, summary=item.summary))

    async def execute(self, plan: Plan, options: Optional[ExecutionOptions] = None) -> ExecutionResult:
        """
        Apply the plan.

        Args:
            plan: Generated sprint plan
            options: Actions to perform; dry_run previews without changing Jira

        Returns:
            ExecutionResult with per-action outcomes
        """
        options = options or ExecutionOptions()
        result = ExecutionResult(dry_run=options.dry_run)

        logger.info("Starting sprint execution%s", " (DRY RUN)" if options.dry_run else "")

        if options.assign:
            await self._assign(plan, result, options.dry_run)

        if options.transition:
            await self._transition(plan, result, options.dry_run)

        if options.create_new and plan.unassigned:
            await self._create(plan.unassigned, result, options.dry_run)

        logger.info(
            "Execution summary: %d assigned, %d transitioned, %d created, %d errors",
            len(result.assigned), len(result.transitioned), len(result.created), len(result.errors)
        )
        return result
