"""HTTP front end exposing the conversational agent."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from functools import lru_cache

from fastapi import Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from querybot import __version__
from querybot.agent import ConversationAgent
from querybot.config import get_settings
from querybot.decomposer import TaskDecomposer
from querybot.exceptions import QueryBotError
from querybot.inference import OllamaClient
from querybot.schemas import (
    DecomposeRequest,
    DecomposeResponse,
    ErrorResponse,
    HealthResponse,
    QueryRequest,
    QueryResponse,
    QueryStatus,
)

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

# Configure logging
logging.basicConfig(
    level=get_settings().server.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


# --- Dependencies ---


@lru_cache(maxsize=1)
def get_client() -> OllamaClient:
    """Get the shared Ollama client."""
    return OllamaClient(get_settings().inference)


@lru_cache(maxsize=1)
def get_agent() -> ConversationAgent:
    """Get the agent shared by all /query requests."""
    return ConversationAgent(get_client())


@lru_cache(maxsize=1)
def get_decomposer() -> TaskDecomposer:
    """Get the shared task decomposer."""
    return TaskDecomposer(get_client())


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    if get_agent.cache_info().currsize:
        logger.info("Closing agent")
        get_agent().close()


app = FastAPI(
    title="QueryBot",
    description="Context-aware query forwarding to a local Ollama model",
    version=__version__,
    lifespan=lifespan,
)


@app.middleware("http")
async def add_cors_headers(request: Request, call_next) -> Response:
    """Allow any origin on every response, preflight included."""
    response = await call_next(request)
    response.headers.update(CORS_HEADERS)
    return response


def invalid_body_response() -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(detail="Invalid request body", error_code="INVALID_BODY").model_dump(
            exclude_none=True
        ),
    )


# --- HTTP Endpoints ---


@app.api_route(
    "/query",
    methods=["POST", "OPTIONS"],
    response_model=QueryResponse,
    response_model_exclude_none=True,
)
def query(
    request: Request,
    body: QueryRequest | None = None,
    agent: ConversationAgent = Depends(get_agent),
) -> QueryResponse | Response:
    """Submit a query to the conversational agent.

    OPTIONS is answered with an empty 200 whatever headers it asks for.
    Agent failures are reported in the body with status "error"; the HTTP
    status stays 200.
    """
    if request.method == "OPTIONS":
        return Response(status_code=200)
    if body is None:
        return invalid_body_response()

    try:
        result = agent.submit_query(body.query)
    except QueryBotError as e:
        logger.warning(f"Rejected query: {e}")
        return QueryResponse(status="error", error=str(e))

    if result.status == QueryStatus.FAILED:
        return QueryResponse(status="error", error=result.error_message)

    return QueryResponse(answer=result.answer, status=result.status.value)


@app.post("/decompose", response_model=DecomposeResponse, response_model_exclude_none=True)
def decompose(
    request: DecomposeRequest,
    decomposer: TaskDecomposer = Depends(get_decomposer),
) -> DecomposeResponse:
    """Break free text into a list of tasks."""
    try:
        tasks = decomposer.decompose(request.text)
    except QueryBotError as e:
        logger.warning(f"Decomposition failed: {e}")
        return DecomposeResponse(status="error", error=str(e))

    return DecomposeResponse(tasks=tasks, status="completed")


@app.get("/health", response_model=HealthResponse)
def health(
    client: OllamaClient = Depends(get_client),
    agent: ConversationAgent = Depends(get_agent),
) -> HealthResponse:
    """Check server and Ollama health."""
    return HealthResponse(
        ollama="healthy" if client.check_health() else "unhealthy",
        model=client.model,
        history_size=len(agent.get_history()),
    )


@app.exception_handler(RequestValidationError)
async def invalid_body_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Reject malformed request bodies before they reach the agent."""
    logger.debug(f"Invalid request body: {exc.errors()}")
    return invalid_body_response()


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            detail=str(exc),
            error_code="INTERNAL_ERROR",
        ).model_dump(),
    )
