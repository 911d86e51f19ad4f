#!/usr/bin/env python3
"""Test the dashboard MCP server tools over a stored ticket set"""

from datetime import datetime, timezone

import pytest

from mcp_servers import dashboard_server
from ticket_analyzer.models import TopicCluster, TopicSummary
from ticket_analyzer.storage import FileStorage
from ticket_analyzer.store import TicketStore
from tests.conftest import make_classification, make_ticket


@pytest.fixture
def store(tmp_path, monkeypatch):
    monkeypatch.setenv("TICKET_ANALYZER_HOME", str(tmp_path))
    store = TicketStore(FileStorage(tmp_path))
    store.replace_all(
        [
            make_ticket(1, subject="Pipeline not saving", comments=[{"id": 1001, "body": "Looking into it"}]),
            make_ticket(2, subject="Bulk email error"),
            make_ticket(3, subject="Love the analytics"),
        ]
    )
    tickets = store.get_all()
    tickets[0].classification = make_classification("negative", "Stages revert.", ["Bug Report", "ATS"])
    tickets[1].classification = make_classification("negative", "Email fails.", ["Bug Report"])
    store.persist()
    return store


def test_list_tickets_with_filters(store):
    rows = dashboard_server.list_tickets()
    assert [row["id"] for row in rows] == [1, 2, 3]
    assert rows[2]["sentiment"] is None
    assert rows[2]["ticket_types"] == []

    negative_ats = dashboard_server.list_tickets(sentiment="negative", ticket_type="ATS")
    assert [row["id"] for row in negative_ats] == [1]
    assert [row["id"] for row in dashboard_server.list_tickets(search="email")] == [2]


def test_get_ticket(store):
    ticket = dashboard_server.get_ticket(1)
    assert ticket["subject"] == "Pipeline not saving"
    assert ticket["comments"][0]["body"] == "Looking into it"
    assert ticket["classification"]["ticket_types"] == ["Bug Report", "ATS"]

    assert dashboard_server.get_ticket(99) == {"error": "Ticket 99 not found"}


def test_get_analytics(store):
    analytics = dashboard_server.get_analytics()
    assert analytics["total_tickets"] == 3
    assert analytics["sentiment"] == {"positive": 0, "neutral": 0, "negative": 2, "unclassified": 1}
    assert analytics["ticket_types"] == [{"type": "Bug Report", "count": 2}, {"type": "ATS", "count": 1}]


def test_get_topic_summary(store):
    assert "error" in dashboard_server.get_topic_summary()

    store.set_topic_summary(
        TopicSummary(
            topics=[TopicCluster(topic="ATS bugs", ticket_ids=[1, 2], priority="high")],
            generated_at=datetime(2026, 1, 16, tzinfo=timezone.utc),
            ticket_count=2,
        )
    )

    summary = dashboard_server.get_topic_summary()
    assert summary["topics"][0]["topic"] == "ATS bugs"
    assert summary["topics"][0]["ticket_ids"] == [1, 2]
    assert summary["ticket_count"] == 2
