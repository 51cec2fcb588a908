"""
Tests for applying a plan to Jira.
"""

import asyncio

import pytest

from sprint_planner.executor import ExecutionOptions, SprintExecutor
from sprint_planner.models import WorkItem
from sprint_planner.planner import Assignment, Plan


class FakeJira:
    """Records calls instead of talking to Jira."""

    def __init__(self, accounts=None, failing=()):
        self.accounts = accounts if accounts is not None else {"Alice Smith": "acc-alice", "Bob Jones": "acc-bob"}
        self.failing = set(failing)
        self.calls = []

    async def lookup_account_id(self, name):
        self.calls.append(("lookup", name))
        if name in self.failing:
            raise RuntimeError("lookup failed")
        return self.accounts.get(name)

    async def assign_issue(self, key, account_id):
        self.calls.append(("assign", key, account_id))
        if key in self.failing:
            raise RuntimeError("assign failed")

    async def transition_to_todo(self, key):
        self.calls.append(("transition", key))
        if key in self.failing:
            raise ValueError(f'No "To Do" transition available for {key}')
        return "11"

    async def create_issue(self, project, summary, issue_type="Story", description=""):
        self.calls.append(("create", project, summary, issue_type))
        if summary in self.failing:
            raise RuntimeError("create failed")
        return f"{project}-100"


@pytest.fixture
def plan():
    alice_items = [
        WorkItem(key="PROJ-1", status="Backlog"),
        WorkItem(key="PROJ-2", status="To Do", assignee="Alice Smith"),
    ]
    bob_items = [WorkItem(key="PROJ-3", status="Backlog")]
    return Plan(
        assignments={
            "Alice Smith": Assignment(items=alice_items),
            "Bob Jones": Assignment(items=bob_items),
        },
        unassigned=[
            WorkItem(key=None, summary="Write runbook", project="OPS"),
            WorkItem(key=None, summary="Add dashboards"),
            WorkItem(key="PROJ-9", summary="Existing"),
        ],
        sections={
            "carry_over": [],
            "committed": [],
            "new_work": alice_items + bob_items,
            "stretch": [WorkItem(key="PROJ-10", status="Backlog")],
        }
    )


def run(executor, plan, **options):
    return asyncio.run(executor.execute(plan, ExecutionOptions(**options)))


class TestAssign:
    """Tests for assignment actions."""

    def test_assigns_and_skips_current(self, plan):
        jira = FakeJira()
        result = run(SprintExecutor(jira), plan)

        assert [(r.key, r.assignee) for r in result.assigned] == [("PROJ-1", "Alice Smith"), ("PROJ-3", "Bob Jones")]
        assert "PROJ-2 already assigned to Alice Smith" in result.skipped
        assert ("assign", "PROJ-1", "acc-alice") in jira.calls
        assert result.succeeded

    def test_unresolved_member_skipped(self, plan):
        jira = FakeJira(accounts={"Alice Smith": "acc-alice"})
        result = run(SprintExecutor(jira), plan)

        assert "No account ID found for Bob Jones" in result.skipped
        assert [r.key for r in result.assigned] == ["PROJ-1"]

    def test_account_ids_cached(self, plan):
        jira = FakeJira()
        executor = SprintExecutor(jira)

        run(executor, plan)
        run(executor, plan)

        assert [c for c in jira.calls if c[0] == "lookup"] == [("lookup", "Alice Smith"), ("lookup", "Bob Jones")]

    def test_failure_recorded_and_run_continues(self, plan):
        jira = FakeJira(failing={"PROJ-1"})
        result = run(SprintExecutor(jira), plan)

        assert [e.target for e in result.errors] == ["PROJ-1"]
        assert [r.key for r in result.assigned] == ["PROJ-3"]
        assert not result.succeeded

    def test_lookup_failure_recorded(self, plan):
        jira = FakeJira(failing={"Bob Jones"})
        result = run(SprintExecutor(jira), plan)

        assert result.errors[0].to_dict() == {"action": "resolve", "target": "Bob Jones", "error": "lookup failed"}
        assert "No account ID found for Bob Jones" in result.skipped


class TestTransitionAndCreate:
    """Tests for transition and create actions."""

    def test_transitions_planned_backlog_items_only(self, plan):
        jira = FakeJira(failing={"PROJ-3"})
        result = run(SprintExecutor(jira), plan, assign=False, transition=True)

        assert [r.key for r in result.transitioned] == ["PROJ-1"]
        assert result.transitioned[0].to_dict() == {
            "action": "transition",
            "key": "PROJ-1",
            "from_status": "Backlog",
            "to_status": "To Do",
            "dry_run": False
        }
        assert [e.action for e in result.errors] == ["transition"]
        assert ("transition", "PROJ-10") not in jira.calls

    def test_committed_items_not_transitioned(self, plan):
        """Test only carry-over and new work move out of the backlog."""
        plan.sections["committed"] = [WorkItem(key="PROJ-20", status="Backlog")]
        plan.sections["carry_over"] = [WorkItem(key="PROJ-21", status="Backlog")]
        jira = FakeJira()

        result = run(SprintExecutor(jira), plan, assign=False, transition=True)

        assert [r.key for r in result.transitioned] == ["PROJ-21", "PROJ-1", "PROJ-3"]
        assert ("transition", "PROJ-20") not in jira.calls

    def test_creates_keyless_unassigned_items(self, plan):
        jira = FakeJira()
        result = run(SprintExecutor(jira, default_project="PROJ"), plan, assign=False, create_new=True)

        assert [(r.project, r.key) for r in result.created] == [("OPS", "OPS-100"), ("PROJ", "PROJ-100")]
        assert "PROJ-9 already exists in Jira" in result.skipped

    def test_create_without_project(self, plan):
        result = run(SprintExecutor(FakeJira()), plan, assign=False, create_new=True)

        assert [r.summary for r in result.created] == ["Write runbook"]
        assert result.errors[0].target == "Add dashboards"


class TestDryRun:
    """Tests for previewing actions."""

    def test_no_mutations(self, plan):
        jira = FakeJira()
        result = run(SprintExecutor(jira, default_project="PROJ"), plan, transition=True, create_new=True, dry_run=True)

        assert result.dry_run
        assert len(result.assigned) == 2
        assert len(result.transitioned) == 2
        assert len(result.created) == 2
        assert all(r.dry_run for r in result.assigned + result.transitioned + result.created)
        assert {c[0] for c in jira.calls} == {"lookup"}

    def test_to_dict(self, plan):
        data = run(SprintExecutor(FakeJira()), plan, dry_run=True).to_dict()

        assert data["dry_run"] is True
        assert data["assigned"][0] == {"action": "assign", "key": "PROJ-1", "assignee": "Alice Smith", "dry_run": True}
