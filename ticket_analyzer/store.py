"""Ticket Store: the persisted ticket set and topic summary.

The store owns the list of tickets (with their attached classifications) and
the process-wide topic summary. The batch runner mutates a ticket's
``classification`` in place and then calls ``persist()`` once; there is no
other partial-update API.

Older saved sets labelled classification types as ``topics``. Those are
rewritten to ``ticket_types`` the first time such a set is loaded, and the
migrated set is persisted immediately so the legacy name is never read again.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .models import Ticket, TopicSummary
from .storage import STORAGE_KEYS, KeyValueStorage

logger = logging.getLogger("ticket-analyzer.store")


def _migrate_classification(raw: Dict[str, Any]) -> bool:
    """Rewrite a legacy stored classification in place; return True if changed."""
    classification = raw.get("classification")
    if not isinstance(classification, dict):
        return False
    changed = False
    if "topics" in classification:
        legacy = classification.pop("topics")
        if "ticket_types" not in classification:
            classification["ticket_types"] = legacy
        changed = True
    types = classification.get("ticket_types")
    if isinstance(types, list):
        cleaned = [str(label).strip() for label in types if str(label).strip()][:3]
        if cleaned != types:
            classification["ticket_types"] = cleaned or ["Unknown"]
            changed = True
        elif not cleaned:
            classification["ticket_types"] = ["Unknown"]
            changed = True
    if classification.get("sentiment") not in ("positive", "negative", "neutral"):
        classification["sentiment"] = "neutral"
        changed = True
    if not isinstance(classification.get("summary"), str):
        classification["summary"] = ""
        changed = True
    return changed


class TicketStore:
    """In-memory ticket set backed by key-value storage.

    Lifecycle is ``load -> mutate -> persist -> clear``. One store instance is
    shared by reference with the fetcher, the batch runner and the aggregator.

    Attributes:
        storage: Backing key-value storage.
    """

    def __init__(self, storage: KeyValueStorage):
        self.storage = storage
        self._tickets: List[Ticket] = []
        self._topic_summary: Optional[TopicSummary] = None

    def load(self) -> "TicketStore":
        """Read the ticket set and topic summary from storage.

        Unreadable stored values are logged and treated as absent.
        """
        self._tickets = self._load_tickets()
        self._topic_summary = self._load_topic_summary()
        return self

    def _load_tickets(self) -> List[Ticket]:
        raw = self.storage.get(STORAGE_KEYS["tickets"])
        if not raw:
            return []
        try:
            records = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Stored ticket set is not valid JSON, ignoring it: {e}")
            return []
        if not isinstance(records, list):
            logger.error("Stored ticket set is not a list, ignoring it")
            return []

        migrated = sum(1 for record in records if isinstance(record, dict) and _migrate_classification(record))
        try:
            tickets = [Ticket.model_validate(record) for record in records]
        except ValidationError as e:
            logger.error(f"Stored ticket set failed validation, ignoring it: {e}")
            return []

        if migrated:
            logger.info(f"Migrated {migrated} stored classifications to the ticket_types field")
            self.storage.set(STORAGE_KEYS["tickets"], self._serialize(tickets))
        return tickets

    def _load_topic_summary(self) -> Optional[TopicSummary]:
        raw = self.storage.get(STORAGE_KEYS["topic_summary"])
        if not raw:
            return None
        try:
            return TopicSummary.model_validate_json(raw)
        except ValidationError as e:
            logger.error(f"Stored topic summary is unreadable, ignoring it: {e}")
            return None

    @staticmethod
    def _serialize(tickets: List[Ticket]) -> str:
        return json.dumps([ticket.model_dump(mode="json") for ticket in tickets])

    def get_all(self) -> List[Ticket]:
        """Return the live ticket list in stored order (not a copy)."""
        return self._tickets

    def get(self, ticket_id: int) -> Optional[Ticket]:
        return next((ticket for ticket in self._tickets if ticket.id == ticket_id), None)

    def __len__(self) -> int:
        return len(self._tickets)

    def replace_all(self, tickets: List[Ticket]) -> None:
        """Replace the whole ticket set, discarding prior classifications, and persist."""
        self._tickets = [ticket.model_copy(update={"classification": None}) for ticket in tickets]
        self.persist()

    def persist(self) -> None:
        self.storage.set(STORAGE_KEYS["tickets"], self._serialize(self._tickets))

    @property
    def topic_summary(self) -> Optional[TopicSummary]:
        return self._topic_summary

    def set_topic_summary(self, summary: TopicSummary) -> None:
        """Replace the stored topic summary wholesale and persist it."""
        self._topic_summary = summary
        self.storage.set(STORAGE_KEYS["topic_summary"], summary.model_dump_json())

    def clear(self) -> None:
        """Remove all tickets and the persisted topic summary."""
        self._tickets = []
        self._topic_summary = None
        self.storage.remove(STORAGE_KEYS["tickets"])
        self.storage.remove(STORAGE_KEYS["topic_summary"])
