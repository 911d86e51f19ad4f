"""Summary views over the stored ticket set.

These back the ``stats`` and ``tickets`` CLI commands and the MCP dashboard
tools: sentiment breakdown, ticket-type frequencies and ticket filtering.
"""

from collections import Counter
from typing import Dict, Iterable, List, Optional, Tuple

from .models import Ticket


def sentiment_breakdown(tickets: Iterable[Ticket]) -> Dict[str, int]:
    """Count tickets per sentiment, with unclassified tickets counted separately."""
    counts = {"positive": 0, "neutral": 0, "negative": 0, "unclassified": 0}
    for ticket in tickets:
        if ticket.classification is None:
            counts["unclassified"] += 1
        else:
            counts[ticket.classification.sentiment] += 1
    return counts


def ticket_type_counts(tickets: Iterable[Ticket]) -> List[Tuple[str, int]]:
    """Return ``(label, count)`` pairs, most frequent first, ties alphabetical."""
    counter: Counter = Counter()
    for ticket in tickets:
        if ticket.classification is not None:
            counter.update(ticket.classification.ticket_types)
    return sorted(counter.items(), key=lambda item: (-item[1], item[0]))


def filter_tickets(
    tickets: Iterable[Ticket],
    search: Optional[str] = None,
    sentiment: Optional[str] = None,
    ticket_type: Optional[str] = None,
) -> List[Ticket]:
    """Filter tickets the way the dashboard list does.

    Args:
        tickets: Tickets to filter.
        search: Case-insensitive substring matched against subject and description.
        sentiment: Keep only tickets classified with this sentiment.
        ticket_type: Keep only tickets whose classification includes this label.

    Returns:
        List[Ticket]: Matching tickets in their original order.
    """
    needle = search.lower() if search else None
    matches = []
    for ticket in tickets:
        if needle and needle not in f"{ticket.subject} {ticket.description}".lower():
            continue
        classification = ticket.classification
        if sentiment and (classification is None or classification.sentiment != sentiment):
            continue
        if ticket_type and (classification is None or ticket_type not in classification.ticket_types):
            continue
        matches.append(ticket)
    return matches
