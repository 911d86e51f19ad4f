"""Ticket Analyzer - LLM classification and topic summaries for helpdesk tickets.

This package pulls recent support tickets from a Zendesk-style helpdesk API,
classifies each one with a language-model endpoint, and aggregates the
per-ticket results into ranked topic clusters.

The pipeline stages:
- Fetching: Retrieves tickets and their comment threads from the helpdesk
- Classification: One rate-limited LLM call per ticket, tolerant of malformed output
- Aggregation: A second LLM call that groups ticket summaries into topics

Key features:
- Sequential classification respecting a fixed requests-per-second limit
- Per-ticket failures are counted and skipped, never aborting the batch
- Everything persisted in a simple string-keyed store
- Rich CLI dashboard and an MCP server exposing the summary views
"""

from .analyzer import TicketAnalyzer
from .config import AnalyzerConfig, LLMSettings
from .errors import (
    AuthError,
    ConfigurationError,
    HttpError,
    NetworkError,
    OperationInProgressError,
    ParseError,
    TicketAnalyzerError,
)
from .models import Classification, Ticket, TopicCluster, TopicSummary

__version__ = "0.1.0"

__all__ = [
    "AnalyzerConfig",
    "AuthError",
    "Classification",
    "ConfigurationError",
    "HttpError",
    "LLMSettings",
    "NetworkError",
    "OperationInProgressError",
    "ParseError",
    "Ticket",
    "TicketAnalyzer",
    "TicketAnalyzerError",
    "TopicCluster",
    "TopicSummary",
]
