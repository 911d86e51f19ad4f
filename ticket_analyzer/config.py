"""Configuration for the helpdesk connection and the LLM endpoint.

This module defines the configuration structures for the ticket analyzer.
``AnalyzerConfig`` holds the user-editable settings (helpdesk credentials,
LLM endpoint, lookback window) that are persisted in storage and replaced
wholesale on save. ``LLMSettings`` holds fixed call parameters that can be
tuned through environment variables but are not part of the saved profile.
"""

import json
import logging
import os
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from .errors import ConfigurationError
from .storage import STORAGE_KEYS, KeyValueStorage

logger = logging.getLogger("ticket-analyzer.config")


class LLMSettings(BaseModel):
    """Fixed parameters for every LLM call.

    Attributes:
        temperature: Sampling temperature sent with each request.
        timeout: Request timeout in seconds.
        rate_limit: Maximum LLM requests per second during a batch.
        error_body_limit: Characters of an error response kept in ``HttpError``.
    """

    temperature: float = float(os.getenv("LLM_TEMPERATURE", "0.3"))
    timeout: float = float(os.getenv("LLM_TIMEOUT", "60.0"))
    rate_limit: float = Field(default=float(os.getenv("LLM_RATE_LIMIT", "5")), gt=0)
    error_body_limit: int = 100

    @property
    def request_delay(self) -> float:
        """Seconds to wait between two consecutive classification calls."""
        return 1.0 / self.rate_limit


class AnalyzerConfig(BaseModel):
    """User-editable analyzer settings.

    Attributes:
        helpdesk_subdomain: Zendesk subdomain, a full base URL, or empty/``localhost``
            for the local mock helpdesk.
        helpdesk_email: Agent email used for API-token authentication.
        helpdesk_token: Helpdesk API token.
        lookback_days: Fetch tickets created within this many days.
        llm_endpoint: Full URL of the chat-completions style endpoint.
        llm_api_key: Bearer token for the LLM endpoint.
        llm_model: Model name; omitted from requests when empty.
    """

    helpdesk_subdomain: str = os.getenv("ZENDESK_SUBDOMAIN", "")
    helpdesk_email: str = os.getenv("ZENDESK_EMAIL", "")
    helpdesk_token: str = os.getenv("ZENDESK_API_TOKEN", "")
    lookback_days: int = Field(default=int(os.getenv("LOOKBACK_DAYS", "28")), ge=1)
    llm_endpoint: str = os.getenv("LLM_ENDPOINT", "")
    llm_api_key: str = os.getenv("LLM_API_KEY", "")
    llm_model: str = os.getenv("LLM_MODEL", "")

    @property
    def has_helpdesk_credentials(self) -> bool:
        return bool(self.helpdesk_email and self.helpdesk_token)

    @property
    def has_llm_credentials(self) -> bool:
        return bool(self.llm_endpoint and self.llm_api_key)

    def masked(self) -> dict:
        """Return the settings with secrets partially hidden, for display."""
        data = self.model_dump()
        for key in ("helpdesk_token", "llm_api_key"):
            value = data[key]
            data[key] = f"{value[:4]}…" if len(value) > 4 else ("****" if value else "")
        return data


def load_config(storage: KeyValueStorage) -> AnalyzerConfig:
    """Load the saved configuration, falling back to defaults.

    A stored value that is not valid JSON or fails validation is ignored as a
    whole (never partially applied) and a warning is logged.

    Args:
        storage: Storage holding the ``config`` key.

    Returns:
        AnalyzerConfig: Saved configuration, or defaults when none is stored.
    """
    raw = storage.get(STORAGE_KEYS["config"])
    if not raw:
        return AnalyzerConfig()
    try:
        return AnalyzerConfig.model_validate(json.loads(raw))
    except (ValueError, ValidationError) as e:
        logger.warning(f"Ignoring unreadable saved configuration: {e}")
        return AnalyzerConfig()


def save_config(storage: KeyValueStorage, config: AnalyzerConfig) -> AnalyzerConfig:
    """Validate and persist a complete configuration.

    Args:
        storage: Storage to write the ``config`` key to.
        config: Configuration to save; re-validated before anything is written.

    Returns:
        AnalyzerConfig: The validated configuration that was stored.

    Raises:
        ConfigurationError: If the configuration does not validate.
    """
    try:
        validated = AnalyzerConfig.model_validate(config.model_dump())
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
    storage.set(STORAGE_KEYS["config"], validated.model_dump_json())
    return validated


def update_config(config: AnalyzerConfig, **changes: Optional[object]) -> AnalyzerConfig:
    """Return a copy of ``config`` with the non-None ``changes`` applied.

    Raises:
        ConfigurationError: If the merged configuration does not validate.
    """
    data = config.model_dump()
    data.update({key: value for key, value in changes.items() if value is not None})
    try:
        return AnalyzerConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
