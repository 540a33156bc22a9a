"""Client for the Ollama generate API."""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

from querybot.config import InferenceSettings
from querybot.exceptions import ProtocolError, TransportError

# Health check timeout
HEALTH_TIMEOUT = 5.0  # seconds


class InferenceClient(Protocol):
    """Anything that turns a prompt into generated text."""

    def generate(self, prompt: str, model: str | None = None) -> str: ...


class OllamaClient:
    """Blocking client for a locally running Ollama service."""

    def __init__(
        self,
        settings: InferenceSettings | None = None,
        transport: httpx.BaseTransport | None = None,
        logger: logging.Logger | None = None,
    ):
        """Initialize the client.

        Args:
            settings: Host, port, model and timeout of the service
            transport: Optional httpx transport, mainly for tests
            logger: Logger to use instead of the module logger
        """
        self.settings = settings or InferenceSettings()
        self._transport = transport
        self.logger = logger or logging.getLogger(__name__)

    @property
    def model(self) -> str:
        return self.settings.model

    def _client(self, timeout: float) -> httpx.Client:
        return httpx.Client(timeout=timeout, transport=self._transport)

    def generate(self, prompt: str, model: str | None = None) -> str:
        """Send a non-streaming generate request and return the response text.

        Raises:
            TransportError: The service could not be reached or timed out
            ProtocolError: Non-200 status or a body without a string "response"
        """
        model = model or self.model
        self.logger.debug(f"Sending request to Ollama: model={model}, prompt_chars={len(prompt)}")

        try:
            with self._client(self.settings.timeout) as client:
                response = client.post(
                    self.settings.generate_url,
                    json={
                        "model": model,
                        "prompt": prompt,
                        "stream": False,
                    },
                )
        except httpx.TimeoutException as e:
            self.logger.error(f"Ollama request timed out: {e}")
            raise TransportError(f"Ollama request timed out after {self.settings.timeout}s") from e
        except httpx.HTTPError as e:
            self.logger.error(f"Failed to connect to Ollama: {e}")
            raise TransportError(f"Error sending request to Ollama: {e}") from e

        if response.status_code != 200:
            self.logger.error(f"Ollama returned status {response.status_code}")
            raise ProtocolError(f"Unexpected status code: {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise ProtocolError(f"Error parsing response: {e}") from e

        text = payload.get("response") if isinstance(payload, dict) else None
        if not isinstance(text, str):
            raise ProtocolError("Response does not contain 'response' field")

        return text

    def check_health(self) -> bool:
        """Check if the Ollama service is available."""
        try:
            with self._client(HEALTH_TIMEOUT) as client:
                response = client.get(f"{self.settings.base_url}/api/tags")
                return response.status_code == 200
        except httpx.HTTPError as e:
            self.logger.debug(f"Ollama health check failed: {e}")
            return False
