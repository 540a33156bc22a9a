"""QueryBot orchestration shim.

An HTTP front end that forwards user queries to a local Ollama model with
conversational context, plus a task decomposer and a browser-driven
search/scrape helper built on the same inference service.
"""

__version__ = "0.1.0"
