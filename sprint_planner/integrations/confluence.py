"""
Confluence Integration for the Sprint Planner

Reads sprint commitments and out-of-office notes from planning pages.
"""

import html
import logging
import os
import re
from dataclasses import dataclass
from typing import Optional

import httpx

from ..capacity import UNAVAILABILITY_KEYWORDS, AvailabilitySignal
from ..commitments import parse_commitments
from ..models import Commitment


logger = logging.getLogger(__name__)


TAG = re.compile(r"<[^>]+>")
BLOCK_END = re.compile(r"</(p|li|h[1-6]|tr|div)>|<br\s*/?>", re.IGNORECASE)
LIST_ITEM = re.compile(r"<li[^>]*>", re.IGNORECASE)


def storage_to_text(markup: str) -> str:
    """Flatten Confluence storage format to plain text, keeping list items as bullets."""
    text = LIST_ITEM.sub("\n- ", markup or "")
    text = BLOCK_END.sub("\n", text)
    text = TAG.sub("", text)
    lines = [line.strip() for line in html.unescape(text).splitlines()]
    return "\n".join(line for line in lines if line)


@dataclass
class PlanningPage:
    """A Confluence page relevant to sprint planning."""
    id: str
    title: str
    url: str = ""
    space: str = ""
    content: str = ""


class ConfluenceClient:
    """
    Confluence Cloud API client.

    Usage:
        client = ConfluenceClient(
            url="https://company.atlassian.net/wiki",
            email="user@company.com",
            token="api_token",
            spaces=["TEAM"]
        )
        commitments = await client.fetch_commitments()
    """

    def __init__(
        self,
        url: Optional[str] = None,
        email: Optional[str] = None,
        token: Optional[str] = None,
        spaces: Optional[list[str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0
    ):
        self.url = (url or os.getenv("CONFLUENCE_URL", "")).rstrip("/")
        self.email = email or os.getenv("JIRA_EMAIL")
        self.token = token or os.getenv("JIRA_TOKEN")
        self.spaces = list(spaces or [])
        self.transport = transport
        self.timeout = timeout

        if not all([self.url, self.email, self.token]):
            raise ValueError(
                "Confluence credentials required. Set CONFLUENCE_URL, JIRA_EMAIL, JIRA_TOKEN "
                "env vars or pass them as parameters."
            )

        self.auth = (self.email, self.token)

    async def _request(self, endpoint: str, params: Optional[dict] = None) -> dict:
        """Make authenticated request to Confluence API."""
        async with httpx.AsyncClient(transport=self.transport) as client:
            response = await client.get(
                f"{self.url}/rest/api{endpoint}",
                auth=self.auth,
                params=params,
                headers={"Accept": "application/json"},
                timeout=self.timeout
            )
            response.raise_for_status()
            return response.json() if response.content else {}

    def _space_filter(self) -> str:
        if not self.spaces:
            return ""
        return " AND space in (" + ", ".join(self.spaces) + ")"

    async def search_pages(self, cql: str, limit: int = 10) -> list[PlanningPage]:
        """CQL search returning pages with their body text."""
        data = await self._request(
            "/content/search",
            params={"cql": cql, "limit": limit, "expand": "body.storage,space"}
        )

        pages = []
        for result in data.get("results", []):
            body = ((result.get("body") or {}).get("storage") or {}).get("value", "")
            pages.append(PlanningPage(
                id=str(result.get("id", "")),
                title=result.get("title") or "Unknown",
                url=((result.get("_links") or {}).get("webui") or ""),
                space=((result.get("space") or {}).get("key") or ""),
                content=storage_to_text(body)
            ))
        return pages

    async def fetch_page_content(self, page_id: str) -> Optional[str]:
        """Plain text of a single page, or None when it cannot be read."""
        try:
            data = await self._request(f"/content/{page_id}", params={"expand": "body.storage"})
        except httpx.HTTPError as e:
            logger.warning("Error fetching page %s: %s", page_id, e)
            return None
        return storage_to_text(((data.get("body") or {}).get("storage") or {}).get("value", ""))

    async def fetch_planning_pages(self) -> list[PlanningPage]:
        """Recently modified planning, sprint and capacity pages."""
        logger.info("Searching Confluence for planning pages")
        cql = (
            'type=page AND (title~"planning" OR title~"sprint" OR title~"capacity")'
            f"{self._space_filter()} ORDER BY lastmodified DESC"
        )
        try:
            pages = await self.search_pages(cql)
        except httpx.HTTPError as e:
            logger.warning("CQL search error: %s", e)
            return []
        logger.info("  Found %d planning pages", len(pages))
        return pages

    async def fetch_commitments(self) -> list[Commitment]:
        """Commitments listed on sprint commitment and priority pages."""
        logger.info("Fetching team commitments from Confluence")
        cql = (
            'type=page AND (text~"sprint commitments" OR text~"priorities" OR title~"commitments")'
            f"{self._space_filter()} ORDER BY lastmodified DESC"
        )
        try:
            pages = await self.search_pages(cql)
        except httpx.HTTPError as e:
            logger.warning("Commitment search error: %s", e)
            return []

        commitments = []
        for page in pages:
            if page.content:
                commitments.extend(parse_commitments(page.content))
        logger.info("  Found %d commitments", len(commitments))
        return commitments

    async def fetch_availability_signals(self) -> list[AvailabilitySignal]:
        """Pages that mention someone being out of office."""
        logger.info("Searching for team availability/OOO info")
        cql = (
            'type=page AND (text~"OOO" OR text~"out of office" OR text~"vacation" OR text~"holiday")'
            f"{self._space_filter()} ORDER BY lastmodified DESC"
        )
        try:
            pages = await self.search_pages(cql, limit=25)
        except httpx.HTTPError as e:
            logger.warning("Availability search error: %s", e)
            return []

        signals = []
        for page in pages:
            content = page.content.lower()
            if any(keyword in content for keyword in UNAVAILABILITY_KEYWORDS):
                signals.append(AvailabilitySignal(content=page.content, source=page.title, url=page.url))
        return signals
