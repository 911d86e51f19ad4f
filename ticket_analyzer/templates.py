"""Prompt templates and the placeholder renderer.

Two independent, user-editable templates drive the pipeline: the per-ticket
classification prompt and the aggregation prompt. Placeholders use the
``{{name}}`` syntax and are filled by ``render_template``.
"""

import re
from typing import Dict, Literal, Mapping

from .models import Ticket
from .storage import STORAGE_KEYS, KeyValueStorage

TemplateKind = Literal["classification", "aggregation"]

DEFAULT_CLASSIFICATION_PROMPT = """Analyze the following support ticket and classify it.

TICKET SUBJECT: {{ticket_subject}}

TICKET DESCRIPTION:
{{ticket_description}}

COMMENTS:
{{ticket_comments}}

Please respond with a JSON object containing:
1. "ticket_types": An array of 1-3 short labels that best describe this ticket (e.g., "Bug Report", "Feature Request", "Billing", "Technical Support", "Onboarding", "UI/UX", "Performance")
2. "sentiment": One of "positive", "negative", or "neutral" based on the overall customer sentiment
3. "summary": One sentence summarizing the customer's issue or feedback

Respond ONLY with the JSON object, no additional text.

Example response:
{"ticket_types": ["Bug Report", "Performance"], "sentiment": "negative", "summary": "The customer reports that the dashboard takes over ten seconds to load."}"""

DEFAULT_AGGREGATION_PROMPT = """You are reviewing a batch of classified customer support tickets.

TICKET SUMMARIES:
{{ticket_summaries}}

Group these tickets into the main topics customers are raising. Rank the topics
from most to least important, considering how many tickets mention them and how
negative their sentiment is.

Please respond with a JSON object containing:
"topics": An array of topic objects, each with
  - "topic": A short name for the topic
  - "description": One or two sentences describing the topic
  - "ticket_ids": The numeric ids of the tickets belonging to the topic
  - "priority": One of "high", "medium", or "low"

Respond ONLY with the JSON object, no additional text.

Example response:
{"topics": [{"topic": "Pipeline stage changes lost", "description": "Candidates revert to their previous stage after being moved.", "ticket_ids": [1, 7], "priority": "high"}]}"""

DEFAULT_TEMPLATES: Dict[str, str] = {
    "classification": DEFAULT_CLASSIFICATION_PROMPT,
    "aggregation": DEFAULT_AGGREGATION_PROMPT,
}

_TEMPLATE_KEYS = {
    "classification": STORAGE_KEYS["classification_prompt"],
    "aggregation": STORAGE_KEYS["aggregation_prompt"],
}

_PLACEHOLDER = re.compile(r"\{\{\s*([A-Za-z0-9_]+)\s*\}\}")


def render_template(template: str, values: Mapping[str, str]) -> str:
    """Fill ``{{name}}`` placeholders in a single pass.

    Placeholders with no entry in ``values`` are left as they are. Substituted
    text is not scanned again, so ticket content that happens to contain
    ``{{...}}`` is inserted literally.

    Args:
        template: Template text.
        values: Mapping of placeholder name to replacement text.

    Returns:
        str: The rendered text.
    """

    def _substitute(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name in values:
            return values[name]
        return match.group(0)

    return _PLACEHOLDER.sub(_substitute, template)


def format_comments(ticket: Ticket) -> str:
    """Join a ticket's comments as ``[timestamp] body`` blocks separated by a blank line."""
    return "\n\n".join(f"[{comment.created_at or ''}] {comment.text}" for comment in ticket.comments)


def classification_values(ticket: Ticket) -> Dict[str, str]:
    return {
        "ticket_subject": ticket.subject or "",
        "ticket_description": ticket.description or "",
        "ticket_comments": format_comments(ticket) or "No comments",
    }


class PromptTemplates:
    """Persisted prompt templates with built-in defaults.

    A template that was never saved, or was saved blank, reads back as the
    built-in default for its kind.
    """

    def __init__(self, storage: KeyValueStorage):
        self.storage = storage

    @staticmethod
    def _key(kind: str) -> str:
        if kind not in _TEMPLATE_KEYS:
            raise ValueError(f"Unknown template kind: {kind}")
        return _TEMPLATE_KEYS[kind]

    def get(self, kind: TemplateKind) -> str:
        saved = self.storage.get(self._key(kind))
        if saved and saved.strip():
            return saved
        return DEFAULT_TEMPLATES[kind]

    def set(self, kind: TemplateKind, text: str) -> None:
        self.storage.set(self._key(kind), text)

    def reset(self, kind: TemplateKind) -> str:
        """Restore and persist the built-in default for ``kind``."""
        default = DEFAULT_TEMPLATES[kind]
        self.storage.set(self._key(kind), default)
        return default

    def is_default(self, kind: TemplateKind) -> bool:
        return self.get(kind) == DEFAULT_TEMPLATES[kind]
