"""Second-stage aggregation of per-ticket summaries into topic clusters."""

import logging
from typing import Iterable, List, Optional

from .llm import LLMClient
from .models import Ticket, TopicSummary
from .parsing import FALLBACK_SUMMARY, parse_topic_summary
from .templates import render_template

logger = logging.getLogger("ticket-analyzer.aggregator")


def summarized_tickets(tickets: Iterable[Ticket]) -> List[Ticket]:
    """Return the tickets whose classification carries a real, non-empty summary.

    Tickets holding the parse-failure fallback record are left out.
    """
    selected = []
    for ticket in tickets:
        classification = ticket.classification
        if classification is None:
            continue
        summary = classification.summary.strip()
        if summary and summary != FALLBACK_SUMMARY:
            selected.append(ticket)
    return selected


def format_summary_line(ticket: Ticket) -> str:
    classification = ticket.classification
    return (
        f"[Ticket #{ticket.id}] {classification.summary} "
        f"(Sentiment: {classification.sentiment}, Types: {', '.join(classification.ticket_types)})"
    )


class TopicAggregator:
    """Summarizes all classified tickets into ranked topic clusters with one LLM call."""

    def __init__(self, llm: LLMClient):
        self.llm = llm

    def build_prompt(self, tickets: List[Ticket], template: str) -> str:
        summaries = "\n".join(format_summary_line(ticket) for ticket in tickets)
        return render_template(template, {"ticket_summaries": summaries})

    async def aggregate(self, tickets: Iterable[Ticket], template: str) -> Optional[TopicSummary]:
        """Build the topic summary for ``tickets``.

        Args:
            tickets: Ticket set; only tickets with a classification summary are used.
            template: Aggregation prompt template.

        Returns:
            Optional[TopicSummary]: The parsed summary, or None when no ticket has a
            summary (in which case the LLM is not called).

        Raises:
            NetworkError: If the LLM endpoint cannot be reached.
            HttpError: If the LLM endpoint answers with a non-2xx status.
            ParseError: If the model output holds no usable topic list.
        """
        selected = summarized_tickets(tickets)
        if not selected:
            logger.info("No classified ticket summaries; skipping aggregation")
            return None

        prompt = self.build_prompt(selected, template)
        logger.info(f"Aggregating {len(selected)} ticket summaries into topics")
        content = await self.llm.complete(prompt)
        summary = parse_topic_summary(content, ticket_count=len(selected))
        logger.info(f"Aggregation produced {len(summary.topics)} topics")
        return summary
