"""
Issue field extraction

Tracker responses come back as JSON, as flat dictionaries, or as markdown-ish
text blobs. Each field is read by a chain of extractors tried in priority
order; the first one that finds a value wins.
"""

import re
from dataclasses import dataclass
from typing import Any, Optional

from .models import UNASSIGNED, WorkItem, coerce_story_points


ISSUE_KEY = re.compile(r"([A-Z][A-Z0-9]*-\d+)")


@dataclass(frozen=True)
class PatternExtractor:
    """Extract the first capture group of a regular expression."""
    pattern: re.Pattern

    def __call__(self, text: str) -> Optional[str]:
        match = self.pattern.search(text)
        if match:
            value = match.group(1).strip()
            return value or None
        return None


def pattern(regex: str, flags: int = re.IGNORECASE) -> PatternExtractor:
    return PatternExtractor(re.compile(regex, flags))


@dataclass(frozen=True)
class ExtractorChain:
    """Ordered extractors; the first non-empty result wins."""
    extractors: tuple

    def __call__(self, text: str) -> Optional[str]:
        for extractor in self.extractors:
            value = extractor(text)
            if value is not None:
                return value
        return None


FIELD_EXTRACTORS = {
    "assignee": ExtractorChain((
        pattern(r"\*\*Assignee\*\*[:\s]+([^\n*|]+)"),
        pattern(r"Assignee[:\s]+([^\n,|]+)"),
        pattern(r'"assignee"\s*:\s*\{[^}]*"displayName"\s*:\s*"([^"]+)"', 0),
    )),
    "summary": ExtractorChain((
        pattern(r"\*\*Summary\*\*[:\s]+([^\n]+)"),
        pattern(r"Summary[:\s]+([^\n]+)"),
        pattern(r'"summary"\s*:\s*"([^"]+)"', 0),
    )),
    "status": ExtractorChain((
        pattern(r"\*\*Status\*\*[:\s]+([^\n*|]+)"),
        pattern(r"Status[:\s]+([^\n,|]+)"),
        pattern(r'"status"\s*:\s*\{[^}]*"name"\s*:\s*"([^"]+)"', 0),
    )),
    "priority": ExtractorChain((
        pattern(r"\*\*Priority\*\*[:\s]+([^\n*|]+)"),
        pattern(r"Priority[:\s]+([^\n,|]+)"),
        pattern(r'"priority"\s*:\s*\{[^}]*"name"\s*:\s*"([^"]+)"', 0),
    )),
    "issue_type": ExtractorChain((
        pattern(r"\*\*(?:Issue\s*)?Type\*\*[:\s]+([^\n*|]+)"),
        pattern(r"(?:Issue\s*)?Type[:\s]+([^\n,|]+)"),
        pattern(r'"issuetype"\s*:\s*\{[^}]*"name"\s*:\s*"([^"]+)"', 0),
    )),
    "story_points": ExtractorChain((
        pattern(r"\*\*Story\s*Points?\*\*[:\s]+(\d+(?:\.\d+)?)"),
        pattern(r"Story\s*Points?[:\s]+(\d+(?:\.\d+)?)"),
        pattern(r'"customfield_10016"\s*:\s*(\d+(?:\.\d+)?)', 0),
    )),
}


def extract_field(text: str, field_name: str) -> Optional[str]:
    """Run the extractor chain registered for a field."""
    return FIELD_EXTRACTORS[field_name](text)


def _name(value: Any) -> str:
    """Read ``{"name": ...}`` style Jira fields, or plain strings."""
    if isinstance(value, dict):
        return value.get("name") or ""
    return value or ""


def _assignee(value: Any) -> str:
    if isinstance(value, dict):
        return value.get("displayName") or value.get("emailAddress") or UNASSIGNED
    return value or UNASSIGNED


def parse_issue_text(key: str, text: str, project: Optional[str] = None) -> WorkItem:
    """Parse a markdown or plain-text issue description."""
    return WorkItem(
        key=key,
        summary=extract_field(text, "summary") or "",
        issue_type=extract_field(text, "issue_type") or "",
        priority=extract_field(text, "priority") or "",
        status=extract_field(text, "status") or "",
        story_points=extract_field(text, "story_points"),
        assignee=extract_field(text, "assignee") or UNASSIGNED,
        project=project
    )


def parse_issue_json(key: Optional[str], data: dict, project: Optional[str] = None) -> WorkItem:
    """Parse a Jira REST issue (``{"key", "fields"}``) or a flat issue dictionary."""
    if "fields" in data:
        fields = data.get("fields") or {}
        raw_points = fields.get("customfield_10016")
        if raw_points is None:
            raw_points = fields.get("story_points")
        return WorkItem(
            key=data.get("key") or key,
            summary=fields.get("summary") or "",
            issue_type=_name(fields.get("issuetype")),
            priority=_name(fields.get("priority")),
            status=_name(fields.get("status")),
            story_points=coerce_story_points(raw_points),
            assignee=_assignee(fields.get("assignee")),
            project=project or _project_key(fields.get("project")),
            labels=tuple(fields.get("labels") or ())
        )

    raw_points = data.get("customfield_10016")
    if raw_points is None:
        raw_points = data.get("storyPoints", data.get("story_points"))
    return WorkItem(
        key=data.get("key") or key,
        summary=data.get("summary") or "",
        issue_type=_name(data.get("issuetype")) or data.get("type") or "",
        priority=_name(data.get("priority")),
        status=_name(data.get("status")),
        story_points=coerce_story_points(raw_points),
        assignee=_assignee(data.get("assignee")),
        project=project
    )


def _project_key(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        return value.get("key")
    return None


def parse_issue_detail(key: str, data: Any, project: Optional[str] = None) -> WorkItem:
    """Parse whatever shape an issue detail lookup returned."""
    if isinstance(data, dict):
        return parse_issue_json(key, data, project)
    if isinstance(data, str) and data.strip():
        return parse_issue_text(key, data, project)
    return WorkItem(key=key, project=project)


def parse_search_results(data: Any, project: Optional[str] = None) -> list[WorkItem]:
    """
    Parse issue search results.

    JSON results carry ``issues``; text results list one issue per bullet
    (``- PROJ-1: summary`` or ``**PROJ-1**: summary``). When no bullet
    matches, bare issue keys found anywhere in the text are returned.
    """
    if not data:
        return []

    if isinstance(data, dict):
        return [parse_issue_json(None, issue, project) for issue in data.get("issues", [])]

    if not isinstance(data, str):
        return []

    items = []
    for line in data.splitlines():
        match = re.match(r"^[-*]\s+\[?([A-Z][A-Z0-9]*-\d+)\]?[:\s]+(.+)", line)
        if not match:
            match = re.search(r"\*\*([A-Z][A-Z0-9]*-\d+)\*\*[:\s]+(.+)", line)
        if match:
            items.append(WorkItem(key=match.group(1), summary=match.group(2).strip(), project=project))

    if not items:
        seen = []
        for key in ISSUE_KEY.findall(data):
            if key not in seen:
                seen.append(key)
        items = [WorkItem(key=key, project=project) for key in seen]

    return items
