#!/usr/bin/env python3
"""Test the LLM client and the per-ticket classifier against a scripted endpoint"""

import httpx
import pytest

from ticket_analyzer.classifier import TicketClassifier
from ticket_analyzer.config import AnalyzerConfig
from ticket_analyzer.errors import ConfigurationError, HttpError, NetworkError, ParseError
from ticket_analyzer.llm import LLMClient
from ticket_analyzer.parsing import FALLBACK_SUMMARY
from ticket_analyzer.templates import DEFAULT_CLASSIFICATION_PROMPT
from tests.conftest import LLM_ENDPOINT, FakeLLM, classification_json, make_ticket


@pytest.mark.asyncio
async def test_request_shape(config):
    """One user message, temperature 0.3, the model name and a Bearer header"""
    fake = FakeLLM(["ok"])
    client = LLMClient(config, transport=fake.transport())

    assert await client.complete("Hello") == "ok"

    body = fake.requests[0]
    assert body["messages"] == [{"role": "user", "content": "Hello"}]
    assert body["temperature"] == 0.3
    assert body["model"] == "test-model"
    assert fake.headers[0]["authorization"] == "Bearer sk-test"


@pytest.mark.asyncio
async def test_model_omitted_when_not_configured():
    fake = FakeLLM(["ok"])
    config = AnalyzerConfig(llm_endpoint=LLM_ENDPOINT, llm_api_key="sk-test", llm_model="")
    await LLMClient(config, transport=fake.transport()).complete("Hello")
    assert "model" not in fake.requests[0]


@pytest.mark.asyncio
async def test_missing_endpoint_is_configuration_error():
    client = LLMClient(AnalyzerConfig(llm_endpoint="", llm_api_key="sk-test"))
    with pytest.raises(ConfigurationError):
        await client.complete("Hello")


@pytest.mark.asyncio
async def test_non_2xx_raises_http_error_with_truncated_body(config):
    """Error bodies are cut to 100 characters in the raised error"""
    fake = FakeLLM([503])
    client = LLMClient(config, transport=fake.transport())

    with pytest.raises(HttpError) as excinfo:
        await client.complete("Hello")

    error = excinfo.value
    assert error.status_code == 503
    assert len(error.body) == 100
    assert error.body.startswith("upstream failure ")
    assert str(error) == f"LLM API error: 503 - {error.body}"


@pytest.mark.asyncio
async def test_transport_failure_raises_network_error(config):
    fake = FakeLLM([httpx.ConnectError("connection refused")])
    client = LLMClient(config, transport=fake.transport())
    with pytest.raises(NetworkError):
        await client.complete("Hello")


@pytest.mark.asyncio
async def test_unknown_response_envelope_raises_parse_error(config):
    fake = FakeLLM([{"output": "something"}])
    client = LLMClient(config, transport=fake.transport())
    with pytest.raises(ParseError):
        await client.complete("Hello")


@pytest.mark.asyncio
async def test_anthropic_style_response_is_accepted(config):
    fake = FakeLLM([{"content": [{"type": "text", "text": "block text"}]}])
    client = LLMClient(config, transport=fake.transport())
    assert await client.complete("Hello") == "block text"


@pytest.mark.asyncio
async def test_classify_renders_prompt_and_parses_result(config):
    """The rendered ticket goes out and the fenced JSON answer comes back parsed"""
    answer = "```json\n" + classification_json(["Bug Report"], "negative", "Saving fails.") + "\n```"
    fake = FakeLLM([answer])
    classifier = TicketClassifier(LLMClient(config, transport=fake.transport()))
    ticket = make_ticket(
        7,
        subject="Pipeline not saving",
        description="Stage changes revert",
        comments=[{"created_at": "2026-01-15T10:00:00Z", "body": "Investigating"}],
    )

    classification = await classifier.classify(ticket, DEFAULT_CLASSIFICATION_PROMPT)

    assert classification.ticket_types == ["Bug Report"]
    assert classification.sentiment == "negative"
    assert classification.summary == "Saving fails."
    assert ticket.classification is None
    prompt = fake.prompts[0]
    assert "TICKET SUBJECT: Pipeline not saving" in prompt
    assert "[2026-01-15T10:00:00Z] Investigating" in prompt


@pytest.mark.asyncio
async def test_classify_malformed_output_gives_fallback(config):
    """Model prose without JSON is not an error; it yields the fallback record"""
    fake = FakeLLM(["I cannot help with that."])
    classifier = TicketClassifier(LLMClient(config, transport=fake.transport()))

    classification = await classifier.classify(make_ticket(1), DEFAULT_CLASSIFICATION_PROMPT)

    assert classification.ticket_types == ["Unknown"]
    assert classification.sentiment == "neutral"
    assert classification.summary == FALLBACK_SUMMARY
