"""
Command line entry point

    python -m sprint_planner                      Generate plan only (read-only)
    python -m sprint_planner --execute            Generate plan + assign items
    python -m sprint_planner --dry-run            Show what would be executed
    python -m sprint_planner --execute --create --transition -y
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from .config import Config, configure_logging
from .executor import ExecutionOptions
from .reporter import MarkdownReporter
from .workflow import SprintPlanningError, SprintPlanningWorkflow


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sprint-planner",
        description="Plan the next sprint from Jira and Confluence data."
    )
    parser.add_argument("--config", default="config/config.yaml", help="Path to config.yaml")
    parser.add_argument("--execute", action="store_true", help="Execute the plan (assign items)")
    parser.add_argument("--dry-run", action="store_true", help="Preview execution without making changes")
    parser.add_argument("--create", action="store_true", help="Create Jira tickets for new unassigned items")
    parser.add_argument("--transition", action="store_true", help="Transition Backlog items to To Do")
    parser.add_argument("-y", "--yes", action="store_true", help="Skip confirmation prompt")
    parser.add_argument("--output", default=".", help="Directory for the plan and execution reports")
    return parser


def confirm(question: str) -> bool:
    answer = input(question)
    return answer.strip().lower() in ("y", "yes")


async def run(args: argparse.Namespace, config: Config) -> int:
    output = Path(args.output)
    output.mkdir(parents=True, exist_ok=True)
    reporter = MarkdownReporter(sprint_length_days=config.planning["sprint_length_days"])

    workflow = SprintPlanningWorkflow(config)
    result = await workflow.run()

    markdown = reporter.plan_report(result.plan, result.velocity, result.capacity)
    plan_file = output / "sprint-plan.md"
    plan_file.write_text(markdown, encoding="utf-8")
    logger.info("Sprint plan saved to %s", plan_file)
    sys.stdout.write(markdown + "\n")

    dry_run = args.dry_run or config.dry_run
    if not (args.execute or dry_run):
        return 0

    proceed = dry_run or args.yes or confirm("Proceed with execution? (y/N): ")
    if not proceed:
        logger.info("Execution cancelled by user")
        return 0

    defaults = config.execution
    execution = await workflow.execute(result, ExecutionOptions(
        assign=defaults["assign"],
        create_new=args.create or defaults["create"],
        transition=args.transition or defaults["transition"],
        dry_run=dry_run
    ))

    report_file = output / "execution-report.md"
    report_file.write_text(reporter.execution_report(execution), encoding="utf-8")
    logger.info("Execution report saved to %s", report_file)
    return 0 if execution.succeeded else 1


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = Config(args.config)
    configure_logging(config.log_level)

    if not config.jira_configured:
        logger.error("Jira not configured. Set JIRA_URL, JIRA_EMAIL and JIRA_TOKEN.")
        return 2

    try:
        return asyncio.run(run(args, config))
    except SprintPlanningError as e:
        logger.error("%s", e)
        return 1
