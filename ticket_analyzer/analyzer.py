"""Main Ticket Analyzer module that orchestrates fetching, classification and aggregation.

This module provides the ``TicketAnalyzer`` class, the central orchestrator of
the system. It wires the helpdesk client, the ticket store, the rate-limited
batch runner and the topic aggregator together around one explicit store
object instead of ambient module state.

Only one long-running operation (a fetch or a classification batch) may run
on an analyzer at a time; starting a second one while the first is in flight
raises ``OperationInProgressError`` immediately rather than queueing.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import Awaitable, Callable, List, Optional

import httpx

from .aggregator import TopicAggregator
from .batch import BatchRunner, ProgressCallback
from .classifier import TicketClassifier
from .config import AnalyzerConfig, LLMSettings, load_config, save_config
from .errors import ConfigurationError, OperationInProgressError, TicketAnalyzerError
from .helpdesk import HelpdeskClient
from .llm import LLMClient
from .models import BatchReport, Ticket
from .storage import FileStorage, KeyValueStorage
from .store import TicketStore
from .templates import PromptTemplates

logger = logging.getLogger("ticket-analyzer")


class TicketAnalyzer:
    """Orchestrates the fetch → classify → aggregate pipeline over one store.

    The analyzer owns the loaded configuration, the ticket store and the prompt
    templates, all backed by the same key-value storage. Network transports and
    the rate-limit sleep can be injected, which is how the test-suite runs the
    whole pipeline against the mock helpdesk and a fake LLM without touching the
    network or the wall clock.

    Attributes:
        storage: Key-value storage shared by config, store and templates.
        config: Current analyzer configuration.
        settings: Fixed LLM call parameters.
        store: Ticket store holding tickets and the topic summary.
        templates: Persisted prompt templates.
    """

    def __init__(
        self,
        storage: Optional[KeyValueStorage] = None,
        config: Optional[AnalyzerConfig] = None,
        settings: Optional[LLMSettings] = None,
        helpdesk_transport: Optional[httpx.AsyncBaseTransport] = None,
        llm_transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.storage = storage if storage is not None else FileStorage.from_env()
        self.config = config or load_config(self.storage)
        self.settings = settings or LLMSettings()
        self.store = TicketStore(self.storage).load()
        self.templates = PromptTemplates(self.storage)
        self._helpdesk_transport = helpdesk_transport
        self._llm_transport = llm_transport
        self._sleep = sleep
        self._running: Optional[str] = None
        self._cancel_event: Optional[asyncio.Event] = None

    @property
    def busy(self) -> bool:
        return self._running is not None

    @asynccontextmanager
    async def _exclusive(self, operation: str):
        if self._running is not None:
            raise OperationInProgressError(f"Cannot start {operation}: {self._running} already in progress")
        self._running = operation
        try:
            yield
        finally:
            self._running = None

    def save_config(self, config: AnalyzerConfig) -> AnalyzerConfig:
        """Validate, persist and activate a complete configuration."""
        self.config = save_config(self.storage, config)
        return self.config

    def llm_client(self) -> LLMClient:
        return LLMClient(self.config, self.settings, transport=self._llm_transport)

    async def fetch_tickets(self, today: Optional[date] = None) -> List[Ticket]:
        """Fetch recent tickets and replace the stored set with them.

        Prior tickets and their classifications are discarded only once the
        fetch has fully succeeded.

        Args:
            today: Reference date for the lookback window (defaults to today).

        Returns:
            List[Ticket]: The newly stored tickets.

        Raises:
            OperationInProgressError: If another operation is running.
            ConfigurationError: If helpdesk credentials are missing.
            AuthError, HttpError, NetworkError, ParseError: If the fetch fails.
        """
        async with self._exclusive("fetch"):
            client = HelpdeskClient(self.config, transport=self._helpdesk_transport)
            tickets = await client.fetch_recent(self.config.lookback_days, today=today)
            self.store.replace_all(tickets)
            logger.info(f"Successfully fetched {len(tickets)} tickets with comments")
            return self.store.get_all()

    async def classify_all(self, on_progress: Optional[ProgressCallback] = None) -> BatchReport:
        """Classify every stored ticket, then aggregate the results into topics.

        Classification failures are counted per ticket and never abort the
        batch. Aggregation runs when at least one ticket was classified and the
        batch was not cancelled; its failure is reported as a soft warning in
        ``BatchReport.aggregation_error`` and does not discard classifications.

        Args:
            on_progress: Called after each ticket with a progress snapshot.

        Returns:
            BatchReport: Classification counts plus the aggregation outcome.

        Raises:
            OperationInProgressError: If another operation is running.
            ConfigurationError: If the LLM endpoint or key is missing.
            TicketAnalyzerError: If there are no tickets to classify.
        """
        async with self._exclusive("classification"):
            if not self.config.has_llm_credentials:
                raise ConfigurationError("Please configure LLM API credentials first")
            if len(self.store) == 0:
                raise TicketAnalyzerError("No tickets to classify. Fetch tickets first.")

            llm = self.llm_client()
            runner = BatchRunner.from_settings(TicketClassifier(llm), self.settings, sleep=self._sleep)
            self._cancel_event = asyncio.Event()
            try:
                result = await runner.run(
                    self.store,
                    self.templates.get("classification"),
                    on_progress=on_progress,
                    cancel_event=self._cancel_event,
                )
            finally:
                self._cancel_event = None

            report = BatchReport(**result.model_dump())
            if result.classified == 0 or result.cancelled:
                return report

            try:
                summary = await TopicAggregator(llm).aggregate(self.store.get_all(), self.templates.get("aggregation"))
            except TicketAnalyzerError as e:
                logger.warning(f"Topic aggregation failed, keeping classifications: {e}")
                report.aggregation_error = str(e)
            else:
                if summary is not None:
                    self.store.set_topic_summary(summary)
                    report.topic_summary = summary
            return report

    def cancel(self) -> bool:
        """Ask a running batch to stop before its next ticket.

        Returns:
            bool: True if a batch was running and has been signalled.
        """
        if self._cancel_event is None:
            return False
        self._cancel_event.set()
        return True

    def clear(self) -> None:
        """Remove all stored tickets and the topic summary.

        Raises:
            OperationInProgressError: If an operation is running.
        """
        if self._running is not None:
            raise OperationInProgressError(f"Cannot clear data: {self._running} in progress")
        self.store.clear()
        logger.info("All data cleared")
