"""Client for the configured chat-completions style LLM endpoint.

Every pipeline call sends one user message and returns the assistant text.
Transport failures, non-2xx answers and unrecognised response bodies are
turned into the analyzer's typed errors so the batch runner can count them.
"""

import logging
from typing import Optional

import httpx

from .config import AnalyzerConfig, LLMSettings
from .errors import ConfigurationError, HttpError, NetworkError, ParseError
from .parsing import extract_content

logger = logging.getLogger("ticket-analyzer.llm")


class LLMClient:
    """Sends single-message chat requests to the configured endpoint.

    Attributes:
        config: Analyzer configuration holding endpoint, API key and model.
        settings: Fixed call parameters (temperature, timeout).
    """

    def __init__(
        self,
        config: AnalyzerConfig,
        settings: Optional[LLMSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.settings = settings or LLMSettings()
        self._transport = transport

    def build_request_body(self, prompt: str) -> dict:
        body = {
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.settings.temperature,
        }
        if self.config.llm_model:
            body["model"] = self.config.llm_model
        return body

    async def complete(self, prompt: str) -> str:
        """Send ``prompt`` and return the assistant text.

        Args:
            prompt: Fully rendered prompt.

        Returns:
            str: Assistant content extracted from the response.

        Raises:
            ConfigurationError: If no endpoint is configured.
            NetworkError: If the endpoint cannot be reached.
            HttpError: If the endpoint answers with a non-2xx status.
            ParseError: If the response body is not JSON of a known shape.
        """
        if not self.config.llm_endpoint:
            raise ConfigurationError("LLM endpoint is not configured")

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.settings.timeout) as client:
                response = await client.post(
                    self.config.llm_endpoint,
                    headers={
                        "Authorization": f"Bearer {self.config.llm_api_key}",
                        "Content-Type": "application/json",
                    },
                    json=self.build_request_body(prompt),
                )
        except httpx.RequestError as e:
            raise NetworkError(f"Network error calling LLM endpoint: {e}") from e

        if not response.is_success:
            body = response.text[: self.settings.error_body_limit]
            logger.error(f"LLM API error response: {response.status_code} {body}")
            raise HttpError(response.status_code, body, f"LLM API error: {response.status_code} - {body}")

        try:
            data = response.json()
        except ValueError as e:
            raise ParseError(f"LLM endpoint returned a non-JSON body: {response.text[:100]!r}") from e

        logger.debug(f"LLM API response: {data}")
        return extract_content(data)
