"""
Tests for issue field extraction and commitment parsing.
"""

import re

import pytest

from sprint_planner.commitments import classify_priority, parse_commitments
from sprint_planner.extractors import (
    ExtractorChain,
    extract_field,
    parse_issue_detail,
    parse_issue_json,
    parse_issue_text,
    parse_search_results,
    pattern
)
from sprint_planner.models import UNASSIGNED


MARKDOWN_ISSUE = """
# PROJ-7
**Summary**: Billing export job
**Status**: In Progress
**Priority**: High
**Type**: Bug
**Story Points**: 5
**Assignee**: Alice Smith
"""

PLAIN_ISSUE = """Summary: Fix login redirect
Status: To Do
Priority: Low
Issue Type: Story
Story Points: 2.5
Assignee: Bob Jones
"""

JSON_TEXT_ISSUE = (
    '{"key": "PROJ-9", "fields": {"summary": "Refactor cache", '
    '"status": {"name": "In Review"}, "priority": {"name": "Medium"}, '
    '"issuetype": {"name": "Task"}, "customfield_10016": 3, '
    '"assignee": {"displayName": "Carol White"}}}'
)


class TestExtractorChain:
    """Tests for the extractor strategy objects."""

    def test_first_match_wins(self):
        chain = ExtractorChain((pattern(r"A:(\w+)"), pattern(r"B:(\w+)")))
        assert chain("B:second A:first") == "first"

    def test_falls_through(self):
        chain = ExtractorChain((pattern(r"A:(\w+)"), pattern(r"B:(\w+)")))
        assert chain("B:second") == "second"
        assert chain("nothing") is None

    def test_empty_capture_is_no_match(self):
        extractor = pattern(r"A:(\s*)")
        assert extractor("A:   ") is None

    def test_flags(self):
        assert pattern(r"x=(\d)", 0)("X=1") is None
        assert pattern(r"x=(\d)", re.IGNORECASE)("X=1") == "1"


class TestExtractFields:
    """Tests for per-field extraction across text formats."""

    @pytest.mark.parametrize("field_name, expected", [
        ("summary", "Billing export job"),
        ("status", "In Progress"),
        ("priority", "High"),
        ("issue_type", "Bug"),
        ("story_points", "5"),
        ("assignee", "Alice Smith"),
    ])
    def test_markdown(self, field_name, expected):
        assert extract_field(MARKDOWN_ISSUE, field_name) == expected

    @pytest.mark.parametrize("field_name, expected", [
        ("summary", "Fix login redirect"),
        ("status", "To Do"),
        ("priority", "Low"),
        ("issue_type", "Story"),
        ("story_points", "2.5"),
        ("assignee", "Bob Jones"),
    ])
    def test_plain(self, field_name, expected):
        assert extract_field(PLAIN_ISSUE, field_name) == expected

    @pytest.mark.parametrize("field_name, expected", [
        ("summary", "Refactor cache"),
        ("status", "In Review"),
        ("priority", "Medium"),
        ("issue_type", "Task"),
        ("story_points", "3"),
        ("assignee", "Carol White"),
    ])
    def test_json_text(self, field_name, expected):
        assert extract_field(JSON_TEXT_ISSUE, field_name) == expected

    def test_missing_field(self):
        assert extract_field("no fields here", "assignee") is None


class TestParseIssue:
    """Tests for building work items from issue payloads."""

    def test_parse_text(self):
        item = parse_issue_text("PROJ-7", MARKDOWN_ISSUE, project="PROJ")

        assert item.key == "PROJ-7"
        assert item.story_points == 5.0
        assert item.assignee == "Alice Smith"
        assert item.project == "PROJ"

    def test_parse_text_without_assignee(self):
        item = parse_issue_text("PROJ-1", "Summary: Something")
        assert item.assignee == UNASSIGNED

    def test_parse_rest_issue(self):
        data = {
            "key": "PROJ-3",
            "fields": {
                "summary": "Add audit log",
                "issuetype": {"name": "Story"},
                "priority": {"name": "High"},
                "status": {"name": "To Do"},
                "customfield_10016": {"value": "8"},
                "assignee": {"emailAddress": "dana@example.com"},
                "project": {"key": "PROJ"},
                "labels": ["backend"],
            }
        }
        item = parse_issue_json(None, data)

        assert item.key == "PROJ-3"
        assert item.issue_type == "Story"
        assert item.story_points == 8.0
        assert item.assignee == "dana@example.com"
        assert item.project == "PROJ"
        assert item.labels == ("backend",)

    def test_rest_issue_story_points_fallback(self):
        data = {"key": "PROJ-3", "fields": {"story_points": "2", "assignee": None}}
        item = parse_issue_json(None, data)

        assert item.story_points == 2.0
        assert item.assignee == UNASSIGNED

    def test_parse_flat_issue(self):
        data = {"key": "PROJ-4", "summary": "Flat", "type": "Bug", "storyPoints": 3, "assignee": "Eve"}
        item = parse_issue_json(None, data, project="PROJ")

        assert item.issue_type == "Bug"
        assert item.story_points == 3.0
        assert item.assignee == "Eve"

    def test_detail_dispatch(self):
        assert parse_issue_detail("PROJ-7", MARKDOWN_ISSUE).priority == "High"
        assert parse_issue_detail("PROJ-9", {"fields": {"summary": "x"}}).summary == "x"

        empty = parse_issue_detail("PROJ-1", None, project="PROJ")
        assert empty.key == "PROJ-1"
        assert empty.assignee == UNASSIGNED


class TestParseSearchResults:
    """Tests for issue search result parsing."""

    def test_json_results(self):
        data = {"issues": [{"key": "PROJ-1", "fields": {"summary": "One"}}, {"key": "PROJ-2", "fields": {}}]}
        items = parse_search_results(data, project="PROJ")

        assert [i.key for i in items] == ["PROJ-1", "PROJ-2"]
        assert items[0].summary == "One"

    def test_bullet_lines(self):
        text = "Found 2 issues:\n- PROJ-1: Fix login\n**PROJ-2**: Billing export\n"
        items = parse_search_results(text, project="PROJ")

        assert [(i.key, i.summary) for i in items] == [("PROJ-1", "Fix login"), ("PROJ-2", "Billing export")]

    def test_bare_keys_fallback(self):
        items = parse_search_results("See PROJ-5 and PROJ-6, also PROJ-5 again")
        assert [i.key for i in items] == ["PROJ-5", "PROJ-6"]

    @pytest.mark.parametrize("data", [None, "", {}, 42])
    def test_empty(self, data):
        assert parse_search_results(data) == []


class TestCommitments:
    """Tests for commitment parsing."""

    def test_bullets_and_numbers(self):
        text = """
Q3 goals
- Ship billing export (P1)
* Improve onboarding
2. Docs refresh, nice to have
3) Critical: fix data loss
Just a paragraph line.
"""
        commitments = parse_commitments(text)

        assert [(c.text, c.priority) for c in commitments] == [
            ("Ship billing export (P1)", "high"),
            ("Improve onboarding", "medium"),
            ("Docs refresh, nice to have", "low"),
            ("Critical: fix data loss", "high"),
        ]

    def test_low_overrides_high(self):
        assert classify_priority("urgent but optional") == "low"

    def test_keywords_match_whole_words(self):
        assert classify_priority("highlight reel") == "medium"

    def test_empty(self):
        assert parse_commitments("") == []
        assert parse_commitments(None) == []
