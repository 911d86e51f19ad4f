"""Dashboard MCP Server exposing the analyzer's summary views as tools.

This module implements an MCP server over the analyzer's persisted state. It
lets an MCP client (an assistant, an IDE, another agent) browse the same
views the CLI dashboard shows: the filtered ticket list, a single ticket with
its comment thread, the sentiment and ticket-type breakdowns, and the topic
summary produced by the last classification batch.

The server is read-only. Every tool call reloads the store from
``TICKET_ANALYZER_HOME`` so results reflect the latest fetch or batch run by
the CLI.
"""

import logging
from typing import Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from ticket_analyzer.analytics import filter_tickets, sentiment_breakdown, ticket_type_counts
from ticket_analyzer.storage import FileStorage
from ticket_analyzer.store import TicketStore

logger = logging.getLogger("dashboard-server")

# Create FastMCP server instance
mcp = FastMCP("TicketDashboardServer")


def _load_store() -> TicketStore:
    return TicketStore(FileStorage.from_env()).load()


def _ticket_row(ticket) -> Dict:
    classification = ticket.classification
    return {
        "id": ticket.id,
        "subject": ticket.subject,
        "status": ticket.status,
        "created_at": ticket.created_at,
        "sentiment": classification.sentiment if classification else None,
        "ticket_types": classification.ticket_types if classification else [],
        "summary": classification.summary if classification else None,
    }


@mcp.tool()
def list_tickets(
    search: Optional[str] = None,
    sentiment: Optional[str] = None,
    ticket_type: Optional[str] = None,
) -> List[Dict]:
    """List stored tickets, optionally filtered.

    Args:
        search: Case-insensitive text matched against subject and description.
        sentiment: Only tickets classified as positive, neutral or negative.
        ticket_type: Only tickets whose classification includes this type label.

    Returns:
        List[Dict]: One row per matching ticket with id, subject, status,
        creation time and classification fields.
    """
    store = _load_store()
    matches = filter_tickets(store.get_all(), search=search, sentiment=sentiment, ticket_type=ticket_type)
    return [_ticket_row(ticket) for ticket in matches]


@mcp.tool()
def get_ticket(ticket_id: int) -> Dict:
    """Get one stored ticket with its classification and comments.

    Args:
        ticket_id: Numeric helpdesk ticket id.

    Returns:
        Dict: The full ticket record, or an ``error`` entry if it is not stored.
    """
    ticket = _load_store().get(ticket_id)
    if ticket is None:
        return {"error": f"Ticket {ticket_id} not found"}
    return ticket.model_dump(mode="json")


@mcp.tool()
def get_analytics() -> Dict:
    """Get the sentiment breakdown and ticket-type frequencies.

    Returns:
        Dict: ``total_tickets``, ``sentiment`` counts (including unclassified)
        and ``ticket_types`` as a list of label/count pairs, most frequent first.
    """
    tickets = _load_store().get_all()
    return {
        "total_tickets": len(tickets),
        "sentiment": sentiment_breakdown(tickets),
        "ticket_types": [{"type": label, "count": count} for label, count in ticket_type_counts(tickets)],
    }


@mcp.tool()
def get_topic_summary() -> Dict:
    """Get the topic clusters produced by the last classification batch.

    Ticket ids in the clusters are not checked against the stored ticket set
    and may refer to tickets that have since been cleared.

    Returns:
        Dict: The topic summary, or an ``error`` entry if none exists yet.
    """
    summary = _load_store().topic_summary
    if summary is None:
        return {"error": "No topic summary available. Run a classification batch first."}
    return summary.model_dump(mode="json")


# Main execution
async def main():
    """Main entry point for the dashboard server.

    Handles command-line argument parsing, logging configuration and transport
    selection (stdio or SSE).
    """
    import argparse
    import os

    log_level = os.getenv("ANALYZER_LOG_LEVEL", "WARNING")
    logging.getLogger().setLevel(getattr(logging, log_level.upper(), logging.INFO))

    parser = argparse.ArgumentParser(description="Ticket Dashboard MCP Server")
    parser.add_argument(
        "--connection",
        choices=["stdio", "sse"],
        default="stdio",
        help="Connection method (default: stdio)",
    )
    parser.add_argument("--host", default="127.0.0.1", help="Host for SSE connections")
    parser.add_argument("--port", type=int, default=8004, help="Port for SSE connections")

    args = parser.parse_args()

    if args.connection == "stdio":
        await mcp.run_stdio_async()
    elif args.connection == "sse":
        mcp.settings.host = args.host
        mcp.settings.port = args.port
        await mcp.run_sse_async()


if __name__ == "__main__":
    import asyncio

    asyncio.run(main())
