"""
Reporter for the Sprint Planner

Renders sprint plans and execution results as markdown.
"""

from datetime import date, datetime, timedelta
from typing import Optional

from .capacity import CapacityAssessment
from .executor import ExecutionResult
from .models import WorkItem
from .planner import Plan
from .velocity import VelocityRecord


TREND_LABELS = {
    "improving": "UP",
    "declining": "DOWN",
    "stable": "STABLE",
}


def next_sprint_window(today: date, length_days: int = 14) -> tuple[date, date]:
    """Sprint starts the next Monday (a week out if today is Monday)."""
    days_ahead = (7 - today.weekday()) % 7 or 7
    start = today + timedelta(days=days_ahead)
    return start, start + timedelta(days=length_days - 1)


def _points(value: float) -> str:
    if not value:
        return "-"
    return f"{value:g}"


def _truncate(text: str, width: int) -> str:
    return (text or "")[:width]


class MarkdownReporter:
    """Generate markdown reports."""

    def __init__(self, sprint_length_days: int = 14):
        self.sprint_length_days = sprint_length_days

    @staticmethod
    def item_table(items: list[WorkItem]) -> list[str]:
        lines = [
            "| # | Ticket | Summary | Type | Priority | Points | Score |",
            "|---|--------|---------|------|----------|--------|-------|",
        ]
        for i, item in enumerate(items, start=1):
            lines.append(
                f"| {i} | {item.key or '-'} | {_truncate(item.summary, 55)} | {item.issue_type or '-'} "
                f"| {item.priority or '-'} | {_points(item.story_points)} | {item.score:g} |"
            )
        return lines

    def plan_report(
        self,
        plan: Plan,
        velocity: dict[str, VelocityRecord],
        capacity: CapacityAssessment,
        generated_at: Optional[datetime] = None
    ) -> str:
        """Generate the sprint plan report."""
        generated_at = generated_at or datetime.now()
        start, end = next_sprint_window(generated_at.date(), self.sprint_length_days)
        lines = []

        # Header
        lines.append("# Sprint Plan")
        lines.append(f"**Generated:** {generated_at.strftime('%A, %B %d, %Y')}")
        lines.append(f"**Sprint Period:** {start.strftime('%b %d, %Y')} - {end.strftime('%b %d, %Y')}")
        lines.append("")

        lines.append("## Sprint Goal")
        lines.append(plan.goal)
        lines.append("")

        # Summary
        available = capacity.total_members - len(capacity.unavailable_members)
        lines.append("## Executive Summary")
        lines.append("| Metric | Value |")
        lines.append("|--------|-------|")
        lines.append(f"| Total Tickets | {plan.total_items} |")
        lines.append(f"| Total Story Points | {plan.total_points:g} |")
        lines.append(f"| Team Members Available | {available} / {capacity.total_members} |")
        lines.append(f"| Carry-Over Items | {len(plan.carry_over)} |")
        lines.append(f"| Committed Items | {len(plan.committed)} |")
        lines.append(f"| New Work | {len(plan.new_work)} |")
        lines.append(f"| Stretch Goals | {len(plan.stretch)} |")
        lines.append("")

        lines.append("## Team Velocity")
        lines.append("| Project | Avg Tickets/Sprint | Avg Points/Sprint | Trend |")
        lines.append("|---------|-------------------|-------------------|-------|")
        for project, v in velocity.items():
            lines.append(
                f"| {project} | {v.avg_items_per_period:g} | {v.avg_points_per_period:g} "
                f"| {TREND_LABELS.get(v.trend, v.trend.upper())} |"
            )
        lines.append("")

        lines.append("## Team Capacity")
        if capacity.unavailable_members:
            lines.append(f"**OOO Members:** {', '.join(capacity.unavailable_members)}")
            lines.append("")
        lines.append("| Member | Projects | Current Load | Capacity | Status |")
        lines.append("|--------|----------|-------------|----------|--------|")
        for m in capacity.members:
            status = "OOO" if m.is_unavailable else "Available"
            lines.append(
                f"| {m.name} | {', '.join(m.projects)} | {m.current_items} tickets "
                f"| {m.estimated_capacity} pts | {status} |"
            )
        lines.append("")

        # Sections
        sections = [
            ("Carry-Over Items (Must Complete)",
             "These items are rolling over from the previous sprint and should be prioritized.",
             plan.carry_over),
            ("Committed Items",
             "These items match team commitments from the planning pages.",
             plan.committed),
            ("New Work",
             "New items prioritized for this sprint based on score.",
             plan.new_work),
        ]
        for title, blurb, items in sections:
            if items:
                lines.append(f"## {title}")
                lines.append(blurb)
                lines.append("")
                lines.extend(self.item_table(items))
                lines.append("")

        lines.append("## Sprint Assignments")
        for name, assignment in plan.assignments.items():
            lines.append(f"### {name}")
            lines.append(
                f"**Assigned:** {len(assignment.items)} tickets | "
                f"**Points:** {assignment.total_points:g} / {assignment.capacity}"
            )
            if assignment.items:
                lines.append("")
                lines.append("| Ticket | Summary | Priority | Points | Score |")
                lines.append("|--------|---------|----------|--------|-------|")
                for item in assignment.items:
                    lines.append(
                        f"| {item.key or '-'} | {_truncate(item.summary, 60)} | {item.priority or '-'} "
                        f"| {_points(item.story_points)} | {item.score:g} |"
                    )
            else:
                lines.append("*No tickets assigned yet*")
            lines.append("")

        if plan.stretch:
            lines.append("## Stretch Goals (If Capacity Allows)")
            lines.extend(self.item_table(plan.stretch[:10]))
            lines.append("")

        if plan.unassigned or plan.overflow:
            lines.append("## Unassigned / Overflow")
            lines.append("These items need manual assignment or should be moved to the next sprint.")
            lines.append("")
            lines.extend(self.item_table(plan.unassigned + plan.overflow))
            lines.append("")

        # Risks
        lines.append("## Risks & Notes")
        if capacity.unavailable_members:
            lines.append(f"- **Reduced Capacity:** {len(capacity.unavailable_members)} team member(s) OOO")
        if len(plan.carry_over) > 3:
            lines.append(
                f"- **High Carry-Over:** {len(plan.carry_over)} items rolling over "
                f"indicates possible under-estimation"
            )
        for project, v in velocity.items():
            if v.trend == "declining":
                lines.append(f"- **Declining Velocity in {project}:** Investigate blockers or scope creep")
        if plan.overflow:
            lines.append(f"- **Overflow:** {len(plan.overflow)} items could not be assigned due to capacity limits")
        lines.append("")

        return "\n".join(lines)

    @staticmethod
    def execution_report(result: ExecutionResult, executed_at: Optional[datetime] = None) -> str:
        """Generate the execution report."""
        executed_at = executed_at or datetime.now()
        status = "DRY RUN" if result.dry_run else "Done"
        lines = []

        lines.append("# Sprint Execution Report")
        lines.append(f"**Executed:** {executed_at.strftime('%Y-%m-%d %H:%M')}")
        lines.append("")

        if result.assigned:
            lines.append("## Ticket Assignments")
            lines.append("| Ticket | Assigned To | Status |")
            lines.append("|--------|-------------|--------|")
            for r in result.assigned:
                lines.append(f"| {r.key} | {r.assignee} | {status} |")
            lines.append("")

        if result.transitioned:
            lines.append("## Status Transitions")
            lines.append("| Ticket | From | To | Status |")
            lines.append("|--------|------|-----|--------|")
            for r in result.transitioned:
                lines.append(f"| {r.key} | {r.from_status} | {r.to_status} | {status} |")
            lines.append("")

        if result.created:
            lines.append("## Tickets Created")
            lines.append("| Key | Project | Summary | Status |")
            lines.append("|-----|---------|---------|--------|")
            for r in result.created:
                created = "DRY RUN" if r.dry_run else "Created"
                lines.append(f"| {r.key or '-'} | {r.project} | {_truncate(r.summary, 50)} | {created} |")
            lines.append("")

        if result.errors:
            lines.append("## Errors")
            lines.append("| Action | Ticket | Error |")
            lines.append("|--------|--------|-------|")
            for e in result.errors:
                lines.append(f"| {e.action} | {e.target or '-'} | {_truncate(e.error, 60)} |")
            lines.append("")

        if not (result.assigned or result.transitioned or result.created or result.errors):
            lines.append("*No actions taken*")
            lines.append("")

        return "\n".join(lines)
