#!/usr/bin/env python3
"""Test the persisted ticket store, file storage and configuration persistence"""

import json
from datetime import datetime, timezone

import pytest

from ticket_analyzer.config import AnalyzerConfig, load_config, save_config, update_config
from ticket_analyzer.errors import ConfigurationError
from ticket_analyzer.models import Ticket, TopicCluster, TopicSummary
from ticket_analyzer.storage import STORAGE_KEYS, FileStorage, MemoryStorage
from ticket_analyzer.store import TicketStore
from tests.conftest import make_classification, make_ticket


def _summary() -> TopicSummary:
    return TopicSummary(
        topics=[TopicCluster(topic="ATS bugs", description="Broken flows.", ticket_ids=[1, 99], priority="high")],
        generated_at=datetime(2026, 1, 16, 9, 0, tzinfo=timezone.utc),
        ticket_count=2,
    )


def test_round_trip_preserves_tickets_and_extra_fields(storage):
    ticket = make_ticket(
        1,
        comments=[{"id": 1001, "created_at": "2026-01-15T10:00:00Z", "body": "Hi", "channel": "web"}],
        classification=make_classification("negative", "Broken.", ["Bug Report"]),
    )
    ticket = Ticket.model_validate({**ticket.model_dump(), "tags": ["ats"]})
    store = TicketStore(storage)
    store.replace_all([ticket])
    store.get_all()[0].classification = ticket.classification
    store.persist()

    reloaded = TicketStore(storage).load()

    assert len(reloaded) == 1
    loaded = reloaded.get(1)
    assert loaded.classification.sentiment == "negative"
    assert loaded.comments[0].text == "Hi"
    assert loaded.model_dump()["tags"] == ["ats"]
    assert loaded.comments[0].model_dump()["channel"] == "web"


def test_replace_all_discards_classifications(storage):
    store = TicketStore(storage)
    store.replace_all([make_ticket(1, classification=make_classification())])
    assert store.get(1).classification is None
    assert json.loads(storage.get(STORAGE_KEYS["tickets"]))[0]["classification"] is None


def test_get_returns_none_for_unknown_id(storage):
    store = TicketStore(storage)
    store.replace_all([make_ticket(1)])
    assert store.get(2) is None


def test_topic_summary_persisted_with_dangling_ids(storage):
    """Cluster ticket ids are kept even when no stored ticket matches them"""
    store = TicketStore(storage)
    store.set_topic_summary(_summary())

    reloaded = TicketStore(storage).load()

    assert reloaded.topic_summary.topics[0].ticket_ids == [1, 99]
    assert reloaded.topic_summary.generated_at == datetime(2026, 1, 16, 9, 0, tzinfo=timezone.utc)


def test_clear_removes_tickets_and_summary(storage):
    store = TicketStore(storage)
    store.replace_all([make_ticket(1)])
    store.set_topic_summary(_summary())

    store.clear()

    assert len(store) == 0
    assert store.topic_summary is None
    assert storage.get(STORAGE_KEYS["tickets"]) is None
    assert storage.get(STORAGE_KEYS["topic_summary"]) is None
    assert len(TicketStore(storage).load()) == 0


def test_legacy_topics_field_migrated_once():
    """Old sets naming the types 'topics' load as ticket_types and are rewritten"""
    legacy = [
        {
            "id": 1,
            "subject": "Old",
            "description": "",
            "comments": [],
            "classification": {"topics": ["Bug Report", " ", "UI/UX"], "sentiment": "negative", "summary": "Old."},
        },
        {"id": 2, "subject": "Unclassified", "description": "", "comments": [], "classification": None},
    ]
    storage = MemoryStorage({STORAGE_KEYS["tickets"]: json.dumps(legacy)})

    store = TicketStore(storage).load()

    assert store.get(1).classification.ticket_types == ["Bug Report", "UI/UX"]
    assert store.get(2).classification is None
    rewritten = json.loads(storage.get(STORAGE_KEYS["tickets"]))
    assert "topics" not in rewritten[0]["classification"]
    assert rewritten[0]["classification"]["ticket_types"] == ["Bug Report", "UI/UX"]


def test_unreadable_ticket_set_loads_empty():
    storage = MemoryStorage({STORAGE_KEYS["tickets"]: "{not json"})
    assert len(TicketStore(storage).load()) == 0


def test_file_storage_round_trip(tmp_path):
    storage = FileStorage(tmp_path / "home")
    assert storage.get("tickets") is None

    storage.set("tickets", "[]")
    assert (tmp_path / "home" / "tickets.txt").read_text(encoding="utf-8") == "[]"
    assert FileStorage(tmp_path / "home").get("tickets") == "[]"

    storage.remove("tickets")
    storage.remove("tickets")
    assert storage.get("tickets") is None


def test_file_storage_rejects_path_keys(tmp_path):
    storage = FileStorage(tmp_path)
    with pytest.raises(ValueError):
        storage.set("../escape", "x")


def test_file_storage_from_env(tmp_path, monkeypatch):
    monkeypatch.setenv("TICKET_ANALYZER_HOME", str(tmp_path / "env-home"))
    storage = FileStorage.from_env()
    assert storage.directory == tmp_path / "env-home"
    assert storage.directory.is_dir()


def test_config_saved_and_loaded(storage, config):
    save_config(storage, config)
    loaded = load_config(storage)
    assert loaded == config


def test_unreadable_config_falls_back_to_defaults():
    storage = MemoryStorage({STORAGE_KEYS["config"]: '{"lookback_days": 0}'})
    assert load_config(storage) == AnalyzerConfig()


def test_update_config_applies_only_given_values(config):
    updated = update_config(config, lookback_days=7, llm_model=None)
    assert updated.lookback_days == 7
    assert updated.llm_model == "test-model"
    with pytest.raises(ConfigurationError):
        update_config(config, lookback_days=0)


def test_masked_config_hides_secrets(config):
    masked = config.masked()
    assert masked["helpdesk_token"] == "abc1…"
    assert masked["llm_api_key"] == "sk-t…"
    assert masked["helpdesk_email"] == "agent@example.com"
