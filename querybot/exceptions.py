"""Exceptions raised by QueryBot components."""

from __future__ import annotations


class QueryBotError(Exception):
    """Base exception for QueryBot errors."""

    pass


class ValidationError(QueryBotError):
    """Raised when caller input is empty or otherwise unusable."""

    pass


class InferenceError(QueryBotError):
    """Raised when the inference service call fails."""

    pass


class TransportError(InferenceError):
    """Raised when the inference service cannot be reached."""

    pass


class ProtocolError(InferenceError):
    """Raised when the inference service answers with an unexpected shape."""

    pass


class ParseError(QueryBotError):
    """Raised when model output cannot be parsed into tasks."""

    pass


class BrowserError(QueryBotError):
    """Raised when browser operations fail."""

    pass


class NavigationError(BrowserError):
    """Raised when the browser cannot navigate to or load a page."""

    def __init__(self, message: str, attempts: int = 1):
        super().__init__(message)
        self.attempts = attempts


class ExtractionError(BrowserError):
    """Raised when a required element or page content cannot be extracted."""

    pass


class BrowserCloseError(BrowserError):
    """Raised when releasing the page or browser fails."""

    def __init__(self, failures: list[str]):
        super().__init__("; ".join(failures))
        self.failures = failures
