"""Pytest configuration and fixtures for QueryBot tests."""

import pytest

from querybot.config import InferenceSettings
from querybot.exceptions import TransportError


class FakeClient:
    """Inference client returning scripted responses and recording prompts."""

    model = "test-model"

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.prompts = []

    def generate(self, prompt, model=None):
        self.prompts.append(prompt)
        response = self.responses.pop(0) if self.responses else "ok"
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def fake_client() -> FakeClient:
    """Client that answers every prompt with 'ok'."""
    return FakeClient()


@pytest.fixture
def make_client():
    """Factory for clients with scripted responses."""
    return FakeClient


@pytest.fixture
def unavailable_error() -> TransportError:
    """Error raised when Ollama cannot be reached."""
    return TransportError("Error sending request to Ollama: connection refused")


@pytest.fixture
def inference_settings() -> InferenceSettings:
    """Settings pointing at a fixed host, independent of the environment."""
    return InferenceSettings(host="ollama.test", port=11434, model="mistral", timeout=5.0)


@pytest.fixture
def mock_ollama_response() -> dict:
    """Mock Ollama API response."""
    return {
        "model": "mistral",
        "response": "Paris is the capital of France.",
        "done": True,
    }
