"""Data models and request/response contracts for QueryBot."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field


class QueryStatus(str, Enum):
    """Lifecycle status of a conversational query."""

    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"


# --- Conversation ---


@dataclass(frozen=True)
class QueryResult:
    """One query/answer attempt recorded in an agent's history."""

    query: str
    answer: str = ""
    status: QueryStatus = QueryStatus.STARTED
    timestamp: datetime = field(default_factory=datetime.now)
    error: Exception | None = None

    @property
    def error_message(self) -> str | None:
        return str(self.error) if self.error is not None else None


# --- Task decomposition ---


class Task(BaseModel):
    """A single task extracted from free text."""

    task: str = Field(strict=True)
    description: str = Field(strict=True)


# --- Search ---


class SearchResult(BaseModel):
    """A single search engine result."""

    title: str
    link: str
    snippet: str = ""


class SearchOutcome(BaseModel):
    """Result of one search call."""

    summary: str
    links: list[str] = Field(default_factory=list)
    results: list[SearchResult] = Field(default_factory=list)

    @property
    def found(self) -> bool:
        return bool(self.results)


# --- HTTP contracts ---


class QueryRequest(BaseModel):
    """Body of POST /query."""

    query: str = ""


class QueryResponse(BaseModel):
    """Body returned by POST /query."""

    answer: str = ""
    status: str
    error: str | None = None


class DecomposeRequest(BaseModel):
    """Body of POST /decompose."""

    text: str = ""


class DecomposeResponse(BaseModel):
    """Body returned by POST /decompose."""

    tasks: list[Task] = Field(default_factory=list)
    status: Literal["completed", "error"]
    error: str | None = None


class ErrorResponse(BaseModel):
    """Error response for failed requests."""

    detail: str
    error_code: str | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    server: Literal["healthy", "unhealthy"] = "healthy"
    ollama: Literal["healthy", "unhealthy"] = "healthy"
    model: str
    history_size: int = 0
