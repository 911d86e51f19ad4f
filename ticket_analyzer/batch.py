"""Rate-limited, strictly sequential classification of the whole ticket set.

Tickets are classified one after another in stored order. Between the end of
one LLM call and the start of the next the runner waits ``1 / rate_limit``
seconds (200 ms at the default 5 requests/second); there is no wait after the
last ticket. The wait goes through an injected ``sleep`` coroutine so tests can
replace wall-clock time.

A failing ticket never stops the batch: its previous classification (or lack
of one) is left untouched, the failure is counted, and the runner moves on.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from .classifier import TicketClassifier
from .config import LLMSettings
from .errors import TicketAnalyzerError
from .models import BatchProgress, BatchResult, TicketFailure
from .store import TicketStore

logger = logging.getLogger("ticket-analyzer.batch")

RATE_LIMIT = 5  # requests per second

ProgressCallback = Callable[[BatchProgress], None]
SleepFunc = Callable[[float], Awaitable[None]]


class BatchRunner:
    """Drives the classifier across every ticket in a store.

    Attributes:
        classifier: Classifier used for each ticket.
        delay: Seconds to wait between consecutive classification calls.
    """

    def __init__(
        self,
        classifier: TicketClassifier,
        rate_limit: float = RATE_LIMIT,
        sleep: SleepFunc = asyncio.sleep,
    ):
        if rate_limit <= 0:
            raise ValueError("rate_limit must be positive")
        self.classifier = classifier
        self.delay = 1.0 / rate_limit
        self._sleep = sleep

    @classmethod
    def from_settings(cls, classifier: TicketClassifier, settings: LLMSettings, sleep: SleepFunc = asyncio.sleep):
        return cls(classifier, rate_limit=settings.rate_limit, sleep=sleep)

    async def run(
        self,
        store: TicketStore,
        template: str,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> BatchResult:
        """Classify every ticket in ``store`` and persist the set once at the end.

        Args:
            store: Store whose tickets are classified in place.
            template: Classification prompt template.
            on_progress: Called after each ticket with a progress snapshot.
            cancel_event: When set, the batch stops before the next ticket.

        Returns:
            BatchResult: Counts of classified and failed tickets.
        """
        tickets = list(store.get_all())
        total = len(tickets)
        result = BatchResult(total=total)
        logger.info(f"Starting classification batch of {total} tickets ({self.delay:.3f}s between calls)")

        for index, ticket in enumerate(tickets):
            if cancel_event is not None and cancel_event.is_set():
                logger.warning(f"Batch cancelled after {index} of {total} tickets")
                result.cancelled = True
                break

            succeeded = False
            try:
                classification = await self.classifier.classify(ticket, template)
            except TicketAnalyzerError as e:
                result.failed += 1
                result.failures.append(TicketFailure(ticket_id=ticket.id, error=str(e)))
                logger.error(f"Failed to classify ticket {ticket.id}: {e}. Continuing...")
            else:
                ticket.classification = classification
                result.classified += 1
                succeeded = True
                logger.info(f"Classified ticket {ticket.id}: {classification.model_dump()}")

            if on_progress is not None:
                on_progress(
                    BatchProgress(
                        index=index + 1,
                        total=total,
                        percent=round((index + 1) / total * 100),
                        ticket_id=ticket.id,
                        succeeded=succeeded,
                    )
                )

            if index < total - 1:
                await self._sleep(self.delay)

        store.persist()
        logger.info(f"Batch finished: {result.classified} classified, {result.failed} failed")
        return result
