"""Command-line dashboard for the Ticket Analyzer.

This module provides the CLI for configuring the analyzer, fetching tickets,
running classification batches and browsing the results. It stands in for a
browser dashboard: the same summary views (sentiment breakdown, ticket-type
frequencies, filtered ticket list, ticket detail and topic clusters) are
rendered in the terminal.

The interface uses Rich for colored status lines, tables, panels and the
batch progress bar. Operational failures are shown as status messages, never
as tracebacks.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table
from typing_extensions import Annotated

from .analytics import filter_tickets, sentiment_breakdown, ticket_type_counts
from .analyzer import TicketAnalyzer
from .config import update_config
from .errors import TicketAnalyzerError
from .mock_helpdesk import MOCK_BASE_URL, create_mock_transport
from .models import BatchProgress, TopicSummary
from .storage import FileStorage
from .templates import DEFAULT_TEMPLATES

app = typer.Typer(
    name="ticket-analyzer",
    help="Classify helpdesk tickets with an LLM and summarize them into topics",
    rich_markup_mode="rich",
)

console = Console()

SENTIMENT_STYLES = {"positive": "green", "neutral": "yellow", "negative": "red", "unclassified": "dim"}
PRIORITY_STYLES = {"high": "red", "medium": "yellow", "low": "green"}


@app.callback()
def main_callback():
    """Configure logging from ``ANALYZER_LOG_LEVEL`` before any command runs."""
    log_level = os.getenv("ANALYZER_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(level=getattr(logging, log_level, logging.WARNING))


def _analyzer(**kwargs) -> TicketAnalyzer:
    return TicketAnalyzer(storage=FileStorage.from_env(), **kwargs)


def _fail(error: Exception) -> None:
    console.print(f"[red]ERROR: {error}[/red]")
    raise typer.Exit(code=1)


@app.command()
def config(
    subdomain: Annotated[Optional[str], typer.Option("--subdomain", help="Helpdesk subdomain or base URL")] = None,
    email: Annotated[Optional[str], typer.Option("--email", help="Helpdesk agent email")] = None,
    token: Annotated[Optional[str], typer.Option("--token", help="Helpdesk API token")] = None,
    days: Annotated[Optional[int], typer.Option("--days", "-d", help="Lookback window in days")] = None,
    llm_endpoint: Annotated[Optional[str], typer.Option("--llm-endpoint", help="LLM chat endpoint URL")] = None,
    llm_key: Annotated[Optional[str], typer.Option("--llm-key", help="LLM API key")] = None,
    llm_model: Annotated[Optional[str], typer.Option("--llm-model", help="LLM model name")] = None,
):
    """Show the configuration, or update it when options are given.

    The merged configuration is validated as a whole before it is saved, so a
    bad value never leaves a partially updated profile behind.
    """
    analyzer = _analyzer()
    changes = {
        "helpdesk_subdomain": subdomain,
        "helpdesk_email": email,
        "helpdesk_token": token,
        "lookback_days": days,
        "llm_endpoint": llm_endpoint,
        "llm_api_key": llm_key,
        "llm_model": llm_model,
    }
    if any(value is not None for value in changes.values()):
        try:
            analyzer.save_config(update_config(analyzer.config, **changes))
        except TicketAnalyzerError as e:
            _fail(e)
        console.print("[green]Configuration saved![/green]")

    table = Table(title="Configuration", show_header=False)
    for key, value in analyzer.config.masked().items():
        table.add_row(key, str(value) if value != "" else "[dim]not set[/dim]")
    console.print(table)


@app.command()
def fetch(
    mock: Annotated[
        bool, typer.Option("--mock", help="Fetch from the built-in mock helpdesk instead of the network")
    ] = False,
):
    """Fetch recent tickets with their comments, replacing the stored set."""
    kwargs = {}
    if mock:
        kwargs["helpdesk_transport"] = create_mock_transport()
    analyzer = _analyzer(**kwargs)
    if mock:
        analyzer.config = analyzer.config.model_copy(
            update={
                "helpdesk_subdomain": MOCK_BASE_URL,
                "helpdesk_email": analyzer.config.helpdesk_email or "mock@example.com",
                "helpdesk_token": analyzer.config.helpdesk_token or "mock-token",
            }
        )

    with console.status("Fetching tickets..."):
        try:
            tickets = asyncio.run(analyzer.fetch_tickets())
        except TicketAnalyzerError as e:
            _fail(e)
    console.print(f"[green]Successfully fetched {len(tickets)} tickets with comments[/green]")


@app.command()
def classify():
    """Classify every stored ticket, then summarize the results into topics."""
    analyzer = _analyzer()

    progress = Progress(
        SpinnerColumn(),
        TextColumn("[bold yellow]Classifying ticket {task.completed}/{task.total}"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        TimeElapsedColumn(),
        console=console,
    )

    with progress:
        task = progress.add_task("classify", total=len(analyzer.store) or None)

        def on_progress(update: BatchProgress) -> None:
            progress.update(task, completed=update.index, total=update.total)
            if not update.succeeded:
                progress.console.print(f"[red]Error on ticket {update.ticket_id}. Continuing...[/red]")

        try:
            report = asyncio.run(analyzer.classify_all(on_progress=on_progress))
        except TicketAnalyzerError as e:
            progress.stop()
            _fail(e)

    if report.failed:
        console.print(f"[yellow]Classified {report.classified} tickets. {report.failed} failed.[/yellow]")
    else:
        console.print(f"[green]Successfully classified all {report.classified} tickets[/green]")
    if report.aggregation_error:
        console.print(f"[yellow]Warning: topic summary failed: {report.aggregation_error}[/yellow]")
    elif report.topic_summary is not None:
        _print_topics(report.topic_summary)


@app.command()
def tickets(
    search: Annotated[Optional[str], typer.Option("--search", "-s", help="Search subject and description")] = None,
    sentiment: Annotated[
        Optional[str], typer.Option("--sentiment", help="positive, neutral or negative")
    ] = None,
    ticket_type: Annotated[Optional[str], typer.Option("--type", "-t", help="Ticket type label")] = None,
):
    """List stored tickets, optionally filtered."""
    analyzer = _analyzer()
    matches = filter_tickets(analyzer.store.get_all(), search=search, sentiment=sentiment, ticket_type=ticket_type)
    if not matches:
        console.print("[dim]No tickets match your filters.[/dim]")
        return

    table = Table(title=f"Tickets ({len(matches)})")
    table.add_column("ID", justify="right")
    table.add_column("Subject")
    table.add_column("Status")
    table.add_column("Created")
    table.add_column("Sentiment")
    table.add_column("Types")
    for ticket in matches:
        classification = ticket.classification
        sentiment_value = classification.sentiment if classification else "unclassified"
        table.add_row(
            f"#{ticket.id}",
            ticket.subject,
            ticket.status or "",
            ticket.created_at or "N/A",
            f"[{SENTIMENT_STYLES[sentiment_value]}]{sentiment_value}[/]",
            ", ".join(classification.ticket_types) if classification else "",
        )
    console.print(table)


@app.command()
def show(ticket_id: Annotated[int, typer.Argument(help="Ticket id")]):
    """Show one ticket with its classification and comment thread."""
    analyzer = _analyzer()
    ticket = analyzer.store.get(ticket_id)
    if ticket is None:
        _fail(TicketAnalyzerError(f"Ticket #{ticket_id} is not in the stored set"))

    lines = [
        f"[bold]ID:[/bold] #{ticket.id}   [bold]Status:[/bold] {ticket.status}   "
        f"[bold]Priority:[/bold] {ticket.priority or 'N/A'}   [bold]Created:[/bold] {ticket.created_at or 'N/A'}",
    ]
    if ticket.classification:
        classification = ticket.classification
        lines.append(
            f"[bold]Sentiment:[/bold] [{SENTIMENT_STYLES[classification.sentiment]}]{classification.sentiment}[/]   "
            f"[bold]Types:[/bold] {', '.join(classification.ticket_types)}"
        )
        if classification.summary:
            lines.append(f"[bold]Summary:[/bold] {classification.summary}")
    lines.append("")
    lines.append(ticket.description)
    console.print(Panel("\n".join(lines), title=ticket.subject, style="cyan"))

    console.print(f"[bold]Comments ({len(ticket.comments)})[/bold]")
    for comment in ticket.comments:
        console.print(
            Panel(comment.text, title=f"Author ID: {comment.author_id} | {comment.created_at or 'N/A'}", style="dim")
        )


@app.command()
def stats():
    """Show the sentiment breakdown and ticket-type frequencies."""
    analyzer = _analyzer()
    all_tickets = analyzer.store.get_all()
    if not all_tickets:
        console.print("[dim]No tickets stored. Run 'fetch' first.[/dim]")
        return

    breakdown = sentiment_breakdown(all_tickets)
    table = Table(title=f"Sentiment ({len(all_tickets)} tickets)")
    table.add_column("Sentiment")
    table.add_column("Tickets", justify="right")
    for name, count in breakdown.items():
        if name == "unclassified" and count == 0:
            continue
        table.add_row(f"[{SENTIMENT_STYLES[name]}]{name.title()}[/]", str(count))
    console.print(table)

    type_counts = ticket_type_counts(all_tickets)
    if not type_counts:
        console.print("[dim]No ticket types yet. Classify tickets to see them.[/dim]")
        return
    types_table = Table(title="Ticket types")
    types_table.add_column("Type")
    types_table.add_column("Tickets", justify="right")
    for label, count in type_counts:
        types_table.add_row(label, str(count))
    console.print(types_table)


def _print_topics(summary: TopicSummary) -> None:
    table = Table(title=f"Topics ({summary.ticket_count} tickets, {summary.generated_at:%Y-%m-%d %H:%M} UTC)")
    table.add_column("#", justify="right")
    table.add_column("Topic")
    table.add_column("Priority")
    table.add_column("Tickets")
    table.add_column("Description")
    for rank, cluster in enumerate(summary.topics, 1):
        table.add_row(
            str(rank),
            cluster.topic,
            f"[{PRIORITY_STYLES[cluster.priority]}]{cluster.priority}[/]",
            ", ".join(f"#{ticket_id}" for ticket_id in cluster.ticket_ids),
            cluster.description,
        )
    console.print(table)


@app.command()
def topics():
    """Show the topic summary from the last classification batch."""
    analyzer = _analyzer()
    summary = analyzer.store.topic_summary
    if summary is None:
        console.print("[dim]No topic summary yet. Run 'classify' first.[/dim]")
        return
    _print_topics(summary)


@app.command()
def prompt(
    kind: Annotated[str, typer.Argument(help="classification or aggregation")] = "classification",
    file: Annotated[Optional[Path], typer.Option("--file", "-f", help="Load the template from a file")] = None,
    reset: Annotated[bool, typer.Option("--reset", help="Restore the built-in default")] = False,
):
    """Show, replace or reset a prompt template."""
    if kind not in DEFAULT_TEMPLATES:
        _fail(TicketAnalyzerError(f"Unknown template kind: {kind} (expected classification or aggregation)"))
    analyzer = _analyzer()

    if reset:
        analyzer.templates.reset(kind)
        console.print("[green]Prompt reset to default[/green]")
    elif file is not None:
        try:
            text = file.read_text(encoding="utf-8")
        except OSError as e:
            _fail(e)
        analyzer.templates.set(kind, text)
        console.print(f"[green]Saved {kind} prompt from {file}[/green]")

    source = "default" if analyzer.templates.is_default(kind) else "custom"
    console.print(Panel(analyzer.templates.get(kind), title=f"{kind.title()} prompt ({source})", style="dim"))


@app.command()
def clear(
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation")] = False,
):
    """Remove all stored tickets and the topic summary."""
    if not yes and not typer.confirm("Are you sure you want to clear all stored ticket data?"):
        console.print("[dim]Nothing cleared.[/dim]")
        return
    _analyzer().clear()
    console.print("[green]All data cleared[/green]")


def main():
    """Main entry point for the CLI application."""
    app()


if __name__ == "__main__":
    main()
