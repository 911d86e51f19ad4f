"""Data models for the Ticket Analyzer.

This module defines the core data structures shared by the fetcher, the
classification pipeline and the dashboards. All models use Pydantic for
validation and serialization, so the same objects that travel through the
pipeline are what gets written to (and read back from) storage.

Tickets and comments are fetched verbatim from the helpdesk API; fields the
analyzer does not use are preserved so a persisted ticket set round-trips
without loss.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

Sentiment = Literal["positive", "negative", "neutral"]
Priority = Literal["high", "medium", "low"]

SENTIMENTS = ("positive", "negative", "neutral")
PRIORITIES = ("high", "medium", "low")


class Comment(BaseModel):
    """A single entry in a ticket's comment thread.

    Attributes:
        id: Helpdesk comment identifier.
        author_id: Identifier of the user who wrote the comment.
        created_at: ISO-8601 timestamp as returned by the helpdesk.
        body: Comment body.
        plain_body: Plain-text rendition of the body, used when ``body`` is empty.
    """

    model_config = ConfigDict(extra="allow")

    id: Optional[int] = None
    author_id: Optional[int] = None
    created_at: Optional[str] = None
    body: Optional[str] = None
    plain_body: Optional[str] = None

    @property
    def text(self) -> str:
        return self.body or self.plain_body or ""


class Classification(BaseModel):
    """LLM-derived judgment attached to exactly one ticket.

    A classification is always fully populated. Partial or malformed model
    output is normalized by the response parser before one of these is built.

    Attributes:
        ticket_types: Ordered list of one to three short type labels.
        sentiment: Overall customer sentiment.
        summary: One-sentence summary of the ticket (may be empty).
    """

    ticket_types: List[str] = Field(default_factory=lambda: ["Unknown"], min_length=1, max_length=3)
    sentiment: Sentiment = "neutral"
    summary: str = ""


class Ticket(BaseModel):
    """Support ticket fetched from the helpdesk, plus its classification.

    Attributes:
        id: Numeric helpdesk ticket id.
        subject: Ticket subject line.
        description: Initial ticket body.
        status: Helpdesk status (open, pending, ...).
        priority: Helpdesk priority, if set.
        created_at: ISO-8601 creation timestamp.
        comments: Comment thread, oldest first.
        classification: Attached classification, or None while unclassified.
    """

    model_config = ConfigDict(extra="allow")

    id: int
    subject: str = ""
    description: str = ""
    status: Optional[str] = None
    priority: Optional[str] = None
    created_at: Optional[str] = None
    comments: List[Comment] = Field(default_factory=list)
    classification: Optional[Classification] = None

    @field_validator("subject", "description", mode="before")
    @classmethod
    def _null_text_to_empty(cls, value):
        # The helpdesk sends null for blank subjects and descriptions
        return "" if value is None else value


class TopicCluster(BaseModel):
    """One aggregated theme spanning several tickets.

    ``ticket_ids`` are weak references: they are never validated against the
    stored ticket set and may outlive the tickets they point to.
    """

    topic: str
    description: str = ""
    ticket_ids: List[int] = Field(default_factory=list)
    priority: Priority = "medium"


class TopicSummary(BaseModel):
    """Aggregate produced by the second-stage LLM call after a batch."""

    topics: List[TopicCluster] = Field(default_factory=list)
    generated_at: datetime
    ticket_count: int = 0


class BatchProgress(BaseModel):
    """Progress notification emitted after each ticket in a batch."""

    index: int
    total: int
    percent: int
    ticket_id: int
    succeeded: bool


class TicketFailure(BaseModel):
    ticket_id: int
    error: str


class BatchResult(BaseModel):
    """Outcome of one classification pass over the ticket set.

    Attributes:
        total: Number of tickets in the set when the batch started.
        classified: Tickets that received a classification in this batch.
        failed: Tickets whose classification call failed.
        cancelled: True if the batch stopped early on request.
        failures: Per-ticket error messages for the failed tickets.
    """

    total: int = 0
    classified: int = 0
    failed: int = 0
    cancelled: bool = False
    failures: List[TicketFailure] = Field(default_factory=list)

    @property
    def attempted(self) -> int:
        return self.classified + self.failed


class BatchReport(BatchResult):
    """Batch outcome plus the result of the aggregation step.

    Attributes:
        topic_summary: Freshly generated topic summary, if aggregation ran and succeeded.
        aggregation_error: Soft warning describing a failed aggregation attempt.
    """

    topic_summary: Optional[TopicSummary] = None
    aggregation_error: Optional[str] = None
