"""Conversational agent that keeps query history as prompt context."""

from __future__ import annotations

import dataclasses
import logging
from threading import Lock

from querybot.exceptions import InferenceError, ValidationError
from querybot.inference import InferenceClient
from querybot.schemas import QueryResult, QueryStatus

FORMATTING_RULES = (
    "You are a helpful AI assistant. Please format your responses according to these rules:\n"
    "1. If providing a list of items, use numbered points (1., 2., etc.) with each point on a new line\n"
    "2. If explaining concepts, separate different points with line breaks\n"
    "3. For any lists or steps, add a line break before and after the list\n"
    "4. Keep paragraphs concise and separated by line breaks\n"
    "5. Use bullet points (•) for sub-items or related points\n\n"
)

CLOSING_INSTRUCTION = (
    "\n\nPlease provide a helpful response that builds on the previous context if relevant. "
    "Remember to format your response according to the rules above."
)


class ConversationAgent:
    """Keeps an append-only history and builds context-aware prompts.

    History is guarded by a lock so one agent can be shared by a threaded
    server. The inference call itself runs outside the lock, so concurrent
    queries do not see each other's in-flight exchange in their prompts.
    """

    def __init__(
        self,
        client: InferenceClient,
        model: str | None = None,
        logger: logging.Logger | None = None,
    ):
        self.client = client
        self.model = model
        self.logger = logger or logging.getLogger(__name__)
        self._history: list[QueryResult] = []
        self._lock = Lock()

        self.logger.info(f"Creating new agent with model: {model or getattr(client, 'model', 'default')}")

    def submit_query(self, text: str) -> QueryResult:
        """Send a query with conversation context and record the outcome.

        Args:
            text: The user's query

        Returns:
            QueryResult with status completed, or failed when the inference
            call raised. Both are appended to history.

        Raises:
            ValidationError: If text is empty
        """
        if not text:
            raise ValidationError("query cannot be empty")

        self.logger.info(f"Processing query: {text}")
        result = QueryResult(query=text)
        prompt = self.build_prompt(text)

        try:
            answer = self.client.generate(prompt, model=self.model)
        except InferenceError as e:
            self.logger.error(f"Error getting response: {e}")
            result = dataclasses.replace(
                result,
                status=QueryStatus.FAILED,
                answer=f"Error: {e}",
                error=e,
            )
        else:
            result = dataclasses.replace(result, status=QueryStatus.COMPLETED, answer=answer)
            self.logger.info("Query processed successfully")

        with self._lock:
            self._history.append(result)
        return result

    def build_prompt(self, query: str) -> str:
        """Build the prompt for query from the formatting rules and past answers.

        Failed entries are skipped but keep their slot in the numbering.
        """
        with self._lock:
            history = list(self._history)

        parts = [FORMATTING_RULES]
        if history:
            parts.append("Previous conversation context:\n")
            for i, prev in enumerate(history, 1):
                if prev.status == QueryStatus.COMPLETED:
                    parts.append(f"{i}. Q: {prev.query}\nA: {prev.answer}\n\n")

        parts.append(f"Current query: {query}")
        parts.append(CLOSING_INSTRUCTION)
        return "".join(parts)

    def get_history(self) -> tuple[QueryResult, ...]:
        """Return a snapshot of the history, oldest first."""
        with self._lock:
            return tuple(self._history)

    def clear_history(self) -> None:
        """Forget all past queries."""
        with self._lock:
            self._history = []
        self.logger.debug("Conversation history cleared")

    def close(self) -> None:
        """Release the agent's state. Safe to call more than once."""
        self.clear_history()
