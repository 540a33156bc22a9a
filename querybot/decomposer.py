"""Task decomposer: splits free text into structured tasks using Ollama."""

from __future__ import annotations

import logging

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from querybot.exceptions import ParseError, ValidationError
from querybot.inference import InferenceClient
from querybot.schemas import Task

_TASK_LIST = TypeAdapter(list[Task])


def build_decomposition_prompt(text: str) -> str:
    """Build the prompt asking the model for a JSON array of tasks."""
    return f"""Given the following user input, break it down into a list of specific tasks or instructions.
Format each task with a 'task' field and a 'description' field.
Return the response as a valid JSON array.

User Input: {text}

Example format:
[
    {{"task": "Task 1", "description": "Description of task 1"}},
    {{"task": "Task 2", "description": "Description of task 2"}}
]"""


def _strip_code_fence(text: str) -> str:
    """Remove a surrounding markdown code fence, if any."""
    text = text.strip()
    for prefix in ("```json", "```"):
        if text.startswith(prefix):
            text = text[len(prefix):]
            break
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def extract_json_array(raw: str) -> str:
    """Cut the outermost JSON array out of model output.

    Slices from the first "[" to the last "]" and flattens newlines, carriage
    returns and tabs to spaces so raw control characters inside string
    values do not break the JSON parser.

    Raises:
        ParseError: If no bracketed region exists
    """
    text = _strip_code_fence(raw)

    start = text.find("[")
    end = text.rfind("]")
    if start == -1 or end == -1 or end < start:
        raise ParseError("could not find JSON array in response")

    array = text[start:end + 1]
    for char in ("\n", "\r", "\t"):
        array = array.replace(char, " ")
    return array


class TaskDecomposer:
    """Asks the inference service to break text into tasks."""

    def __init__(
        self,
        client: InferenceClient,
        model: str | None = None,
        logger: logging.Logger | None = None,
    ):
        self.client = client
        self.model = model
        self.logger = logger or logging.getLogger(__name__)

    def decompose(self, text: str) -> list[Task]:
        """Break text into an ordered list of tasks.

        Args:
            text: Free text describing work to be done

        Returns:
            Tasks in the order the model listed them

        Raises:
            ValidationError: If text is empty
            ParseError: If no JSON array is found or it does not hold tasks
            InferenceError: If the inference call fails
        """
        if not text or not text.strip():
            raise ValidationError("input cannot be empty")

        self.logger.info(f"Parsing input: {text}")
        response = self.client.generate(build_decomposition_prompt(text), model=self.model)

        array = extract_json_array(response)
        try:
            tasks = _TASK_LIST.validate_json(array)
        except PydanticValidationError as e:
            self.logger.error(f"Error parsing tasks: {e}")
            raise ParseError(f"error parsing tasks: {e}") from e

        self.logger.info(f"Parsed input into {len(tasks)} tasks")
        return tasks
