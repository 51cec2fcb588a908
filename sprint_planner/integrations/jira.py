"""
Jira Integration for the Sprint Planner

Pulls sprint items, backlog, carry-over, completed sprint history and team
members from Jira, and applies plan decisions back (assign, transition, create).
"""

import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from ..extractors import ISSUE_KEY, parse_issue_detail, parse_search_results
from ..models import Member, WorkItem
from ..velocity import CompletedPeriod


logger = logging.getLogger(__name__)


SEARCH_FIELDS = "summary,status,assignee,customfield_10016,issuetype,priority,labels,project"
TODO_TRANSITIONS = ("to do", "todo", "open")


@dataclass(frozen=True)
class ProjectRef:
    """A Jira project and its agile board."""
    key: str
    board: Optional[int] = None


class JiraClient:
    """
    Jira Cloud API client for sprint planning.

    Usage:
        client = JiraClient(
            url="https://company.atlassian.net",
            email="user@company.com",
            token="api_token",
            projects=[ProjectRef("PROJ", board=12)]
        )
        backlog = await client.fetch_backlog()
    """

    def __init__(
        self,
        url: Optional[str] = None,
        email: Optional[str] = None,
        token: Optional[str] = None,
        projects: Optional[list[ProjectRef]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0
    ):
        self.url = (url or os.getenv("JIRA_URL", "")).rstrip("/")
        self.email = email or os.getenv("JIRA_EMAIL")
        self.token = token or os.getenv("JIRA_TOKEN")
        self.projects = list(projects or [])
        self.transport = transport
        self.timeout = timeout

        if not all([self.url, self.email, self.token]):
            raise ValueError(
                "Jira credentials required. Set JIRA_URL, JIRA_EMAIL, JIRA_TOKEN env vars "
                "or pass them as parameters."
            )

        self.auth = (self.email, self.token)

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict] = None,
        json: Optional[dict] = None
    ) -> Any:
        """Make authenticated request to Jira API."""
        async with httpx.AsyncClient(transport=self.transport) as client:
            response = await client.request(
                method,
                f"{self.url}/rest/api/3{endpoint}",
                auth=self.auth,
                params=params,
                json=json,
                headers={"Accept": "application/json"},
                timeout=self.timeout
            )
            response.raise_for_status()
            return response.json() if response.content else {}

    async def get_myself(self) -> dict:
        """Current user; used as a connectivity check."""
        return await self._request("GET", "/myself")

    async def search_issues(self, jql: str, max_results: int = 50) -> dict:
        """Raw JQL search."""
        return await self._request(
            "GET",
            "/search",
            params={"jql": jql, "maxResults": max_results, "fields": SEARCH_FIELDS}
        )

    async def search_items(
        self,
        jql: str,
        project: Optional[str] = None,
        max_results: int = 50
    ) -> list[WorkItem]:
        """JQL search parsed into work items."""
        data = await self.search_issues(jql, max_results)
        return parse_search_results(data, project)

    async def get_issue(self, key: str) -> Any:
        return await self._request("GET", f"/issue/{key}")

    async def _search_per_project(
        self,
        label: str,
        jql_template: str,
        max_results: int
    ) -> dict[str, list[WorkItem]]:
        """Run one JQL query per project; a failing project yields no items."""
        results = {}
        for project in self.projects:
            logger.info("Fetching %s for %s", label, project.key)
            try:
                items = await self.search_items(
                    jql_template.format(project=project.key),
                    project=project.key,
                    max_results=max_results
                )
            except httpx.HTTPError as e:
                logger.warning("Error fetching %s for %s: %s", label, project.key, e)
                items = []
            logger.info("  Found %d %s items", len(items), label)
            results[project.key] = items
        return results

    async def fetch_active_sprint_items(self) -> dict[str, list[WorkItem]]:
        """Items in the currently open sprint, per project."""
        return await self._search_per_project(
            "active sprint",
            "project = {project} AND sprint in openSprints() ORDER BY priority ASC, created DESC",
            100
        )

    async def fetch_backlog(self) -> dict[str, list[WorkItem]]:
        """Open stories, tasks and bugs outside any sprint, per project."""
        return await self._search_per_project(
            "backlog",
            "project = {project} AND sprint is EMPTY AND status != Done "
            "AND type in (Story, Task, Bug) ORDER BY priority ASC, created DESC",
            50
        )

    async def fetch_carry_over(self) -> dict[str, list[WorkItem]]:
        """Open sprint items not done and untouched for a week, per project."""
        return await self._search_per_project(
            "carry-over",
            "project = {project} AND sprint in openSprints() AND status != Done "
            "AND status != Closed AND updated < -7d ORDER BY priority ASC",
            50
        )

    async def fetch_completed_periods(
        self,
        num_periods: int = 3,
        period_days: int = 14
    ) -> dict[str, list[CompletedPeriod]]:
        """
        Items resolved as Done in each of the last N sprint-length windows.

        Returns:
            Completed periods per project, most recent first
        """
        history = {}
        for project in self.projects:
            logger.info("Fetching completed sprints for %s", project.key)
            periods = []
            for i in range(1, num_periods + 1):
                jql = (
                    f"project = {project.key} AND sprint in closedSprints() AND status = Done "
                    f"AND resolved >= -{i * period_days}d AND resolved < -{(i - 1) * period_days}d "
                    f"ORDER BY resolved DESC"
                )
                try:
                    items = await self.search_items(jql, project=project.key, max_results=100)
                except httpx.HTTPError as e:
                    logger.warning("Error fetching sprint -%d for %s: %s", i, project.key, e)
                    items = []
                logger.info("  Sprint -%d: %d items completed", i, len(items))
                periods.append(CompletedPeriod(items_completed=len(items), items=items, index=i))
            history[project.key] = periods
        return history

    async def fetch_item_details(
        self,
        keys: list[str],
        base_items: Optional[list[WorkItem]] = None
    ) -> list[WorkItem]:
        """
        Fetch full details (including assignee) for each key.

        Detail fields override the search data in ``base_items``. When the
        detail lookup fails the search data is kept, without an assignee.
        """
        base = {item.key: item for item in (base_items or []) if item.key}

        details = []
        for key in keys:
            known = base.get(key)
            project = known.project if known else None
            try:
                data = await self.get_issue(key)
            except httpx.HTTPError as e:
                logger.warning("Error fetching details for %s: %s", key, e)
                details.append(WorkItem(
                    key=key,
                    summary=known.summary if known else "",
                    issue_type=known.issue_type if known else "",
                    priority=known.priority if known else "",
                    status=known.status if known else "",
                    story_points=known.story_points if known else 0,
                    project=project
                ))
                continue

            detail = parse_issue_detail(key, data, project)
            details.append(known.merged_with(detail) if known else detail)
        return details

    async def fetch_team_members(self, sample_size: int = 15) -> list[Member]:
        """
        Discover team members from assignees of open sprint items.

        Returns:
            Members in first-seen order with their projects and item counts
        """
        members: dict[str, Member] = {}

        for project in self.projects:
            logger.info("Discovering team members for %s", project.key)
            try:
                items = await self.search_items(
                    f"project = {project.key} AND assignee is not EMPTY AND status != Done "
                    f"AND sprint in openSprints() ORDER BY assignee",
                    project=project.key,
                    max_results=30
                )
            except httpx.HTTPError as e:
                logger.warning("Error fetching members for %s: %s", project.key, e)
                continue

            sample = [i.key for i in items[:sample_size] if i.key]
            for detail in await self.fetch_item_details(sample, items):
                if not detail.has_assignee:
                    continue
                member = members.setdefault(detail.assignee, Member(name=detail.assignee))
                if project.key not in member.projects:
                    member.projects.append(project.key)
                member.ticket_count += 1

            logger.info("  Found %d unique members so far", len(members))

        return list(members.values())

    # Mutations

    async def lookup_account_id(self, name: str) -> Optional[str]:
        """Resolve a display name to an account id."""
        data = await self._request("GET", "/user/search", params={"query": name})

        if isinstance(data, list) and data:
            return data[0].get("accountId")
        if isinstance(data, dict):
            return data.get("accountId")
        if isinstance(data, str):
            match = re.search(r'accountId[:\s]+"?([a-zA-Z0-9:_-]+)"?', data)
            if match:
                return match.group(1)
            match = re.search(r"([0-9a-f]{24}|[0-9]+:[0-9a-f-]+)", data)
            if match:
                return match.group(1)
        return None

    async def assign_issue(self, key: str, account_id: str) -> None:
        await self._request("PUT", f"/issue/{key}/assignee", json={"accountId": account_id})

    async def get_transitions(self, key: str) -> list[dict]:
        data = await self._request("GET", f"/issue/{key}/transitions")
        return data.get("transitions", []) if isinstance(data, dict) else []

    async def transition_to_todo(self, key: str) -> str:
        """
        Move an issue to its "To Do" state.

        Returns:
            The transition id used

        Raises:
            ValueError: if the workflow offers no such transition
        """
        transition_id = None
        for transition in await self.get_transitions(key):
            if (transition.get("name") or "").strip().lower() in TODO_TRANSITIONS:
                transition_id = transition.get("id")
                break

        if not transition_id:
            raise ValueError(f'No "To Do" transition available for {key}')

        await self._request("POST", f"/issue/{key}/transitions", json={"transition": {"id": transition_id}})
        return transition_id

    async def create_issue(
        self,
        project: str,
        summary: str,
        issue_type: str = "Story",
        description: str = ""
    ) -> Optional[str]:
        """
        Create an issue.

        Returns:
            The new issue key, if the response contains one
        """
        fields = {
            "project": {"key": project},
            "summary": summary,
            "issuetype": {"name": issue_type}
        }
        if description:
            fields["description"] = {
                "type": "doc",
                "version": 1,
                "content": [{"type": "paragraph", "content": [{"type": "text", "text": description}]}]
            }

        result = await self._request("POST", "/issue", json={"fields": fields})

        if isinstance(result, dict) and result.get("key"):
            return result["key"]
        if isinstance(result, str):
            match = ISSUE_KEY.search(result)
            if match:
                return match.group(1)
        return None
