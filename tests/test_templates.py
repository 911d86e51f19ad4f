#!/usr/bin/env python3
"""Tests for the prompt template renderer and persisted templates."""

from ticket_analyzer.storage import STORAGE_KEYS, MemoryStorage
from ticket_analyzer.templates import (
    DEFAULT_AGGREGATION_PROMPT,
    DEFAULT_CLASSIFICATION_PROMPT,
    PromptTemplates,
    classification_values,
    format_comments,
    render_template,
)
from tests.conftest import make_ticket


def test_render_replaces_known_placeholders():
    """Every known placeholder is substituted, including repeated ones."""
    rendered = render_template("{{a}} and {{b}} and {{a}}", {"a": "x", "b": "y"})
    assert rendered == "x and y and x"


def test_render_leaves_unknown_placeholders():
    """Placeholders without a value stay in the output untouched."""
    assert render_template("Hi {{name}} {{missing}}", {"name": "Ana"}) == "Hi Ana {{missing}}"


def test_render_does_not_rescan_substituted_text():
    """Ticket text containing placeholder syntax is inserted literally."""
    rendered = render_template(
        "S: {{ticket_subject}} D: {{ticket_description}}",
        {"ticket_subject": "{{ticket_description}}", "ticket_description": "real"},
    )
    assert rendered == "S: {{ticket_description}} D: real"


def test_classification_values_defaults_for_empty_ticket():
    """Missing comments become 'No comments' and empty text stays empty."""
    ticket = make_ticket(1)
    ticket.subject = ""
    ticket.description = ""
    values = classification_values(ticket)
    assert values == {"ticket_subject": "", "ticket_description": "", "ticket_comments": "No comments"}


def test_comments_are_timestamped_and_blank_line_separated():
    """Comments render as '[timestamp] body' blocks, falling back to plain_body."""
    ticket = make_ticket(
        1,
        comments=[
            {"created_at": "2026-01-15T10:00:00Z", "body": "First"},
            {"created_at": "2026-01-15T10:30:00Z", "body": "", "plain_body": "Second"},
        ],
    )
    assert format_comments(ticket) == "[2026-01-15T10:00:00Z] First\n\n[2026-01-15T10:30:00Z] Second"


def test_default_prompt_renders_ticket():
    """The default classification prompt has all three placeholders filled."""
    ticket = make_ticket(5, subject="Login broken", description="Cannot sign in")
    prompt = render_template(DEFAULT_CLASSIFICATION_PROMPT, classification_values(ticket))
    assert "TICKET SUBJECT: Login broken" in prompt
    assert "Cannot sign in" in prompt
    assert "No comments" in prompt
    assert "{{" not in prompt


def test_templates_fall_back_to_defaults():
    """Unset or blank templates read back as the built-in defaults."""
    storage = MemoryStorage()
    templates = PromptTemplates(storage)
    assert templates.get("classification") == DEFAULT_CLASSIFICATION_PROMPT
    assert templates.get("aggregation") == DEFAULT_AGGREGATION_PROMPT

    templates.set("aggregation", "   ")
    assert templates.get("aggregation") == DEFAULT_AGGREGATION_PROMPT


def test_templates_persist_and_reset():
    """A custom template is stored under its key and reset restores the default."""
    storage = MemoryStorage()
    templates = PromptTemplates(storage)

    templates.set("classification", "Classify {{ticket_subject}}")
    assert storage.get(STORAGE_KEYS["classification_prompt"]) == "Classify {{ticket_subject}}"
    assert PromptTemplates(storage).get("classification") == "Classify {{ticket_subject}}"
    assert not templates.is_default("classification")

    templates.reset("classification")
    assert templates.get("classification") == DEFAULT_CLASSIFICATION_PROMPT
    assert templates.is_default("classification")
