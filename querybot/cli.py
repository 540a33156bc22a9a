"""CLI for QueryBot - HTTP server, interactive chat, task decomposition and web search."""

from __future__ import annotations

import json
import logging
import sys

import click

from querybot import __version__
from querybot.config import get_settings
from querybot.exceptions import QueryBotError

EXIT_COMMANDS = {"exit", "quit"}


@click.group()
@click.version_option(version=__version__, prog_name="querybot")
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level (defaults to QUERYBOT_LOG_LEVEL or INFO)",
)
def main(log_level: str | None) -> None:
    """QueryBot - forward queries to a local Ollama model.

    Serve the /query endpoint, chat interactively, break text into tasks,
    or drive a browser to search the web.
    """
    logging.basicConfig(
        level=(log_level or get_settings().server.log_level).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@main.command()
@click.option("--port", default=None, type=int, help="Port to run the server on")
@click.option("--host", default=None, help="Host to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
def serve(port: int | None, host: str | None, reload: bool) -> None:
    """Start the QueryBot HTTP server."""
    import uvicorn

    settings = get_settings().server
    host = host or settings.host
    port = port or settings.port

    click.echo(f"Server starting on http://{host}:{port}")
    uvicorn.run(
        "querybot.server:app",
        host=host,
        port=port,
        reload=reload,
    )


@main.command()
@click.option("--model", "-m", default=None, help="Ollama model (defaults to OLLAMA_MODEL)")
def chat(model: str | None) -> None:
    """Chat with the model, keeping conversation context.

    \b
    Type 'clear' to forget the conversation, 'exit' or 'quit' to leave.
    """
    from querybot.agent import ConversationAgent
    from querybot.inference import OllamaClient

    agent = ConversationAgent(OllamaClient(get_settings().inference), model=model)
    try:
        while True:
            try:
                line = click.prompt("You", prompt_suffix="> ", default="", show_default=False)
            except click.Abort:
                break

            line = line.strip()
            if line.lower() in EXIT_COMMANDS:
                break
            if line.lower() == "clear":
                agent.clear_history()
                click.echo("Conversation cleared.")
                continue
            if not line:
                continue

            result = agent.submit_query(line)
            click.echo(f"\n{result.answer}\n")
    finally:
        agent.close()


@main.command()
@click.argument("text")
@click.option("--model", "-m", default=None, help="Ollama model (defaults to OLLAMA_MODEL)")
@click.option("--raw", is_flag=True, help="Output raw JSON instead of formatted text")
def decompose(text: str, model: str | None, raw: bool) -> None:
    """Break TEXT into a list of tasks.

    \b
    Example:
        querybot decompose "Set up CI, then write the release notes"
    """
    from querybot.decomposer import TaskDecomposer
    from querybot.inference import OllamaClient

    decomposer = TaskDecomposer(OllamaClient(get_settings().inference), model=model)
    try:
        tasks = decomposer.decompose(text)
    except QueryBotError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if raw:
        click.echo(json.dumps([task.model_dump() for task in tasks], indent=2))
        return

    if not tasks:
        click.echo("No tasks found.")
        return

    for i, task in enumerate(tasks, 1):
        click.echo(f"{i}. {task.task}")
        click.echo(f"   {task.description}")


@main.command()
@click.argument("query")
@click.option("--headless", is_flag=True, help="Run the browser without a window")
def search(query: str, headless: bool) -> None:
    """Search the web for QUERY in a browser and print the top results."""
    from querybot.browser import SearchDriver

    settings = get_settings().browser
    if headless:
        settings = settings.model_copy(update={"headless": True})

    try:
        with SearchDriver.launch(settings) as driver:
            outcome = driver.search(query)
    except QueryBotError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(outcome.summary)


@main.command()
@click.argument("url")
@click.option("--headless", is_flag=True, help="Run the browser without a window")
def visit(url: str, headless: bool) -> None:
    """Open URL in a browser and print its main text content."""
    from querybot.browser import SearchDriver

    settings = get_settings().browser
    if headless:
        settings = settings.model_copy(update={"headless": True})

    try:
        with SearchDriver.launch(settings) as driver:
            text = driver.visit_page(url)
    except QueryBotError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(text)


if __name__ == "__main__":
    main()
