"""Shared fixtures for the Ticket Analyzer test-suite.

The LLM endpoint is replaced by ``FakeLLM``, an ``httpx.MockTransport``
handler that records every request and answers from a scripted list of
replies. The helpdesk is the package's own mock transport.
"""

import json
from typing import Callable, List, Union

import httpx
import pytest

from ticket_analyzer.config import AnalyzerConfig
from ticket_analyzer.mock_helpdesk import MOCK_BASE_URL, MockHelpdesk
from ticket_analyzer.models import Classification, Comment, Ticket
from ticket_analyzer.storage import MemoryStorage

LLM_ENDPOINT = "https://llm.example.test/v1/chat/completions"

Reply = Union[str, int, Exception, dict, Callable[[str], str]]


def chat_response(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def classification_json(ticket_types: List[str], sentiment: str, summary: str) -> str:
    return json.dumps({"ticket_types": ticket_types, "sentiment": sentiment, "summary": summary})


class FakeLLM:
    """Scripted LLM endpoint.

    Each reply is consumed in order:

    - ``str``: answered as OpenAI-style assistant content
    - ``dict``: returned verbatim as the JSON body
    - ``int``: returned as that HTTP status with an error body
    - ``Exception``: raised from the transport (simulates a network failure)
    - callable: called with the prompt, its string result is the content
    """

    def __init__(self, replies: List[Reply]):
        self.replies = list(replies)
        self.requests: List[dict] = []
        self.headers: List[httpx.Headers] = []

    @property
    def prompts(self) -> List[str]:
        return [body["messages"][0]["content"] for body in self.requests]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.requests.append(body)
        self.headers.append(request.headers)
        if not self.replies:
            raise AssertionError("FakeLLM received more requests than scripted replies")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, int):
            return httpx.Response(reply, text="upstream failure " + "x" * 300)
        if isinstance(reply, dict):
            return httpx.Response(200, json=reply)
        if callable(reply):
            reply = reply(body["messages"][0]["content"])
        return httpx.Response(200, json=chat_response(reply))

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


class SleepRecorder:
    """Stand-in for ``asyncio.sleep`` that records requested delays."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def config():
    return AnalyzerConfig(
        helpdesk_subdomain=MOCK_BASE_URL,
        helpdesk_email="agent@example.com",
        helpdesk_token="abc123",
        lookback_days=28,
        llm_endpoint=LLM_ENDPOINT,
        llm_api_key="sk-test",
        llm_model="test-model",
    )


@pytest.fixture
def mock_helpdesk():
    return MockHelpdesk()


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


def make_ticket(ticket_id: int, subject: str = "", description: str = "", comments=None, classification=None) -> Ticket:
    return Ticket(
        id=ticket_id,
        subject=subject or f"Ticket {ticket_id}",
        description=description or f"Description of ticket {ticket_id}",
        status="open",
        priority="normal",
        created_at="2026-01-12T10:00:00Z",
        comments=[Comment.model_validate(comment) for comment in (comments or [])],
        classification=classification,
    )


def make_classification(sentiment: str = "neutral", summary: str = "A summary.", types=None) -> Classification:
    return Classification(ticket_types=types or ["Technical Support"], sentiment=sentiment, summary=summary)
