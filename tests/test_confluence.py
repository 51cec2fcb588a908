"""
Tests for the Confluence client, against a mocked transport.
"""

import asyncio

import httpx
import pytest

from sprint_planner.integrations.confluence import ConfluenceClient, storage_to_text


def page(page_id, title, body, space="TEAM"):
    return {
        "id": page_id,
        "title": title,
        "space": {"key": space},
        "body": {"storage": {"value": body}},
        "_links": {"webui": f"/spaces/{space}/pages/{page_id}"},
    }


def make_client(handler, spaces=("TEAM",)):
    return ConfluenceClient(
        url="https://example.atlassian.net/wiki",
        email="bot@example.com",
        token="secret",
        spaces=list(spaces),
        transport=httpx.MockTransport(handler)
    )


class TestStorageToText:
    """Tests for storage format flattening."""

    def test_list_items_become_bullets(self):
        markup = "<ul><li>Ship billing</li><li>Fix &amp; test</li></ul>"
        assert storage_to_text(markup) == "- Ship billing\n- Fix & test"

    def test_block_breaks(self):
        assert storage_to_text("<p>Hello<br/>World</p><h2>Next</h2>") == "Hello\nWorld\nNext"

    def test_empty(self):
        assert storage_to_text(None) == ""


class TestConfluenceClient:
    """Tests for page search and parsing."""

    def test_missing_credentials(self, monkeypatch):
        for var in ("CONFLUENCE_URL", "JIRA_EMAIL", "JIRA_TOKEN"):
            monkeypatch.delenv(var, raising=False)

        with pytest.raises(ValueError):
            ConfluenceClient()

    def test_search_pages(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"results": [page("1", "Sprint Planning", "<p>Notes</p>")]})

        pages = asyncio.run(make_client(handler).search_pages('type=page AND title~"sprint"'))

        assert seen[0].url.path == "/wiki/rest/api/content/search"
        assert seen[0].url.params["expand"] == "body.storage,space"
        assert pages[0].title == "Sprint Planning"
        assert pages[0].content == "Notes"
        assert pages[0].space == "TEAM"
        assert pages[0].url == "/spaces/TEAM/pages/1"

    def test_space_filter_in_cql(self):
        seen = []

        def handler(request):
            seen.append(request.url.params["cql"])
            return httpx.Response(200, json={"results": []})

        asyncio.run(make_client(handler, spaces=("TEAM", "ENG")).fetch_planning_pages())

        assert "space in (TEAM, ENG)" in seen[0]

    def test_fetch_commitments(self):
        body = "<h1>Sprint commitments</h1><ul><li>Ship billing export (P1)</li><li>Docs refresh, optional</li></ul>"

        def handler(request):
            return httpx.Response(200, json={"results": [page("2", "Q3 Commitments", body)]})

        commitments = asyncio.run(make_client(handler).fetch_commitments())

        assert [(c.text, c.priority) for c in commitments] == [
            ("Ship billing export (P1)", "high"),
            ("Docs refresh, optional", "low"),
        ]

    def test_fetch_availability_signals_filters_pages(self):
        def handler(request):
            return httpx.Response(200, json={"results": [
                page("3", "Team Calendar", "<p>Bob Jones on vacation 3-7 June</p>"),
                page("4", "Retro", "<p>Went well</p>"),
            ]})

        signals = asyncio.run(make_client(handler).fetch_availability_signals())

        assert len(signals) == 1
        assert signals[0].source == "Team Calendar"
        assert "vacation" in signals[0].content

    def test_search_failure_returns_empty(self):
        def handler(request):
            return httpx.Response(503)

        client = make_client(handler)

        assert asyncio.run(client.fetch_commitments()) == []
        assert asyncio.run(client.fetch_availability_signals()) == []
        assert asyncio.run(client.fetch_planning_pages()) == []
        assert asyncio.run(client.fetch_page_content("9")) is None
