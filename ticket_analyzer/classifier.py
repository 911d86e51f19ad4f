"""Per-ticket classification: prompt, one LLM call, tolerant parse."""

import logging

from .llm import LLMClient
from .models import Classification, Ticket
from .parsing import parse_classification
from .templates import classification_values, render_template

logger = logging.getLogger("ticket-analyzer.classifier")


class TicketClassifier:
    """Classifies one ticket at a time through the LLM client.

    The classifier has no side effects beyond the network call: the caller
    decides whether to attach the returned classification to the ticket.
    """

    def __init__(self, llm: LLMClient):
        self.llm = llm

    def build_prompt(self, ticket: Ticket, template: str) -> str:
        return render_template(template, classification_values(ticket))

    async def classify(self, ticket: Ticket, template: str) -> Classification:
        """Classify ``ticket`` using the classification ``template``.

        Args:
            ticket: Ticket to classify; it is not modified.
            template: Classification prompt template.

        Returns:
            Classification: Parsed result, or the fallback record when the model
            output holds no readable JSON object.

        Raises:
            NetworkError: If the LLM endpoint cannot be reached.
            HttpError: If the LLM endpoint answers with a non-2xx status.
            ParseError: If the response envelope has no recognisable content.
        """
        prompt = self.build_prompt(ticket, template)
        content = await self.llm.complete(prompt)
        classification = parse_classification(content)
        logger.debug(f"Ticket {ticket.id} raw classification output: {content[:200]!r}")
        return classification
