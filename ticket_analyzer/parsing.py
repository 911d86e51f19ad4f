"""Parsing of free-form LLM output into the analyzer's fixed schemas.

Models wrap their JSON in prose, markdown code fences or trailing remarks, and
sometimes emit several brace-delimited fragments. ``find_json_object`` scans
for the first balanced ``{...}`` span that actually decodes as a JSON object,
tracking string literals so braces inside strings do not confuse it.

The two schema paths deliberately differ in failure behavior:

- ``parse_classification`` never raises. A ticket whose output cannot be read
  gets the fallback classification so the rest of the batch keeps going.
- ``parse_topic_summary`` raises ``ParseError``. There is no meaningful default
  aggregate, so the failure is reported to the caller instead.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .errors import ParseError
from .models import PRIORITIES, SENTIMENTS, Classification, TopicCluster, TopicSummary

logger = logging.getLogger("ticket-analyzer.parsing")

FALLBACK_TYPES = ["Unknown"]
FALLBACK_SENTIMENT = "neutral"
FALLBACK_SUMMARY = "Classification failed: the model response could not be parsed."
MAX_TICKET_TYPES = 3


def _balanced_spans(text: str) -> Iterator[Tuple[int, int]]:
    """Yield ``(start, end)`` of balanced brace spans, one per opening brace."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        end = None
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    end = index + 1
                    break
        if end is not None:
            yield start, end
        start = text.find("{", start + 1)


def find_json_object(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """Locate the first balanced ``{...}`` span in ``text`` that decodes to an object.

    Args:
        text: Raw model output.

    Returns:
        Optional[Dict[str, Any]]: The decoded object, or None if no candidate decodes.
    """
    if not text:
        return None
    for start, end in _balanced_spans(text):
        try:
            candidate = json.loads(text[start:end])
        except json.JSONDecodeError:
            continue
        if isinstance(candidate, dict):
            return candidate
    return None


def fallback_classification() -> Classification:
    return Classification(
        ticket_types=list(FALLBACK_TYPES),
        sentiment=FALLBACK_SENTIMENT,
        summary=FALLBACK_SUMMARY,
    )


def _normalize_types(raw: Any) -> List[str]:
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list):
        return list(FALLBACK_TYPES)
    labels: List[str] = []
    for item in raw:
        if not isinstance(item, (str, int, float)) or isinstance(item, bool):
            continue
        label = str(item).strip()
        if label and label not in labels:
            labels.append(label)
    return labels[:MAX_TICKET_TYPES] or list(FALLBACK_TYPES)


def normalize_classification(data: Dict[str, Any]) -> Classification:
    """Coerce a decoded model object into a fully populated classification.

    Missing or invalid fields are replaced by their defaults: ``["Unknown"]``
    for the type labels, ``neutral`` for the sentiment and an empty summary.
    A ``topics`` key is read when the model answers with that name instead of
    ``ticket_types``.
    """
    raw_types = data.get("ticket_types")
    if raw_types is None:
        raw_types = data.get("topics")

    sentiment = data.get("sentiment")
    sentiment = sentiment.strip().lower() if isinstance(sentiment, str) else ""
    if sentiment not in SENTIMENTS:
        sentiment = FALLBACK_SENTIMENT

    summary = data.get("summary")
    summary = summary.strip() if isinstance(summary, str) else ""

    return Classification(
        ticket_types=_normalize_types(raw_types),
        sentiment=sentiment,
        summary=summary,
    )


def parse_classification(text: Optional[str]) -> Classification:
    """Parse per-ticket model output; never raises.

    Args:
        text: Raw assistant content returned for a classification prompt.

    Returns:
        Classification: Normalized classification, or the fallback record when
        no JSON object can be extracted.
    """
    data = find_json_object(text)
    if data is None:
        logger.warning(f"No JSON object in model response: {(text or '')[:200]!r}")
        return fallback_classification()
    return normalize_classification(data)


def _normalize_ticket_ids(raw: Any) -> List[int]:
    if not isinstance(raw, list):
        raw = [raw] if raw is not None else []
    ids: List[int] = []
    for item in raw:
        if isinstance(item, bool):
            continue
        if isinstance(item, str):
            item = item.strip().lstrip("#")
        try:
            ticket_id = int(item)
        except (TypeError, ValueError):
            continue
        if ticket_id not in ids:
            ids.append(ticket_id)
    return ids


def _normalize_cluster(raw: Any) -> Optional[TopicCluster]:
    if not isinstance(raw, dict):
        return None
    topic = raw.get("topic") or raw.get("name")
    if not isinstance(topic, str) or not topic.strip():
        return None
    description = raw.get("description")
    priority = raw.get("priority")
    priority = priority.strip().lower() if isinstance(priority, str) else ""
    return TopicCluster(
        topic=topic.strip(),
        description=description.strip() if isinstance(description, str) else "",
        ticket_ids=_normalize_ticket_ids(raw.get("ticket_ids")),
        priority=priority if priority in PRIORITIES else "medium",
    )


def parse_topic_summary(text: Optional[str], ticket_count: int = 0) -> TopicSummary:
    """Parse aggregation model output into a ranked topic summary.

    Args:
        text: Raw assistant content returned for the aggregation prompt.
        ticket_count: Number of ticket summaries the prompt was built from.

    Returns:
        TopicSummary: Clusters in the order the model ranked them.

    Raises:
        ParseError: If no JSON object is found or it has no ``topics`` list.
    """
    data = find_json_object(text)
    if data is None:
        raise ParseError("Aggregation response contained no JSON object")
    raw_topics = data.get("topics")
    if not isinstance(raw_topics, list):
        raise ParseError("Aggregation response is missing a 'topics' list")

    clusters = [cluster for cluster in map(_normalize_cluster, raw_topics) if cluster]
    return TopicSummary(
        topics=clusters,
        generated_at=datetime.now(timezone.utc),
        ticket_count=ticket_count,
    )


def extract_content(data: Any) -> str:
    """Pull the assistant text out of an LLM endpoint response.

    Known response shapes are tried in order:

    1. OpenAI chat completions: ``choices[0].message.content``
    2. A flat ``content`` string
    3. Anthropic messages: ``content`` as a list of ``{"type": "text", "text": ...}`` blocks

    Args:
        data: Decoded JSON response body.

    Returns:
        str: The assistant text.

    Raises:
        ParseError: If the body matches none of the known shapes.
    """
    if isinstance(data, dict):
        choices = data.get("choices")
        if isinstance(choices, list) and choices:
            first = choices[0]
            message = first.get("message") if isinstance(first, dict) else None
            if isinstance(message, dict) and isinstance(message.get("content"), str):
                return message["content"]

        content = data.get("content")
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            texts = [
                block["text"]
                for block in content
                if isinstance(block, dict) and block.get("type") == "text" and isinstance(block.get("text"), str)
            ]
            if texts:
                return "".join(texts)

    raise ParseError("LLM response did not match any known response shape")
