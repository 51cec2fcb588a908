"""
Sprint Planner - Integrations

This module provides integrations with external services:
- Jira: Sprint items, backlog, history, team members, plan execution
- Confluence: Commitments, out-of-office notes
"""

from .jira import JiraClient, ProjectRef
from .confluence import ConfluenceClient, PlanningPage, storage_to_text

__all__ = [
    # Jira
    "JiraClient",
    "ProjectRef",

    # Confluence
    "ConfluenceClient",
    "PlanningPage",
    "storage_to_text",
]
