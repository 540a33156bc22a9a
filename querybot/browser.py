"""Browser-driven web search and page scraping using Playwright."""

from __future__ import annotations

import logging
from typing import Any

from playwright.sync_api import Browser, Page, Playwright, sync_playwright
from playwright.sync_api import Error as PlaywrightError

from querybot.config import BrowserSettings
from querybot.exceptions import (
    BrowserCloseError,
    ExtractionError,
    NavigationError,
    ValidationError,
)
from querybot.retry import RetryExhaustedError, RetryPolicy, fixed_backoff, linear_backoff
from querybot.schemas import SearchOutcome, SearchResult

NAVIGATION_ATTEMPTS = 5
INPUT_ATTEMPTS = 5
SUBMIT_DELAY_MS = 2000
MAX_RESULTS = 5

SEARCH_BOX_SELECTOR = 'textarea[name="q"], input[name="q"]'
RESULTS_SELECTOR = "#search"

NO_RESULTS_MESSAGE = (
    "No search results found. The search engine may have changed its structure "
    "or blocked automated access."
)

SEARCH_RESULTS_SCRIPT = f"""() => {{
    const results = [];
    document.querySelectorAll('#search .g').forEach((result, index) => {{
        if (index < {MAX_RESULTS}) {{
            const titleElement = result.querySelector('h3');
            const linkElement = result.querySelector('a');
            const snippetElement = result.querySelector('.VwiC3b');

            if (titleElement && linkElement) {{
                results.push({{
                    title: titleElement.textContent.trim(),
                    link: linkElement.href,
                    snippet: snippetElement ? snippetElement.textContent.trim() : '',
                }});
            }}
        }}
    }});
    return results;
}}"""

PAGE_TEXT_SCRIPT = """() => {
    document.querySelectorAll('script, style').forEach(e => e.remove());
    const mainContent = document.querySelector('main, article, .content, #content, .main, #main') || document.body;
    return mainContent.innerText;
}"""


def _is_playwright_error(exc: Exception) -> bool:
    return isinstance(exc, PlaywrightError)


def navigation_policy() -> RetryPolicy:
    """Five navigation attempts, sleeping 3*attempt+1 seconds in between."""
    return RetryPolicy(
        max_attempts=NAVIGATION_ATTEMPTS,
        backoff=linear_backoff(3, 1),
        retryable=_is_playwright_error,
        name="Navigation",
    )


def input_policy() -> RetryPolicy:
    """Five typing attempts, one second apart."""
    return RetryPolicy(
        max_attempts=INPUT_ATTEMPTS,
        backoff=fixed_backoff(1),
        retryable=_is_playwright_error,
        name="Input",
    )


def _parse_results(raw: Any) -> list[SearchResult]:
    """Keep entries that carry a string title and link, dropping the rest."""
    results = []
    if not isinstance(raw, list):
        return results

    for entry in raw[:MAX_RESULTS]:
        if not isinstance(entry, dict):
            continue
        title = entry.get("title")
        link = entry.get("link")
        if not isinstance(title, str) or not isinstance(link, str):
            continue
        snippet = entry.get("snippet")
        results.append(
            SearchResult(
                title=title,
                link=link,
                snippet=snippet if isinstance(snippet, str) else "",
            )
        )
    return results


def format_results(results: list[SearchResult]) -> str:
    """Render search results as a numbered text summary."""
    parts = ["Search Results:\n\n"]
    for i, result in enumerate(results, 1):
        parts.append(f"{i}. {result.title}\n")
        parts.append(f"   {result.snippet}\n")
        parts.append(f"   Source: {result.link}\n\n")
    return "".join(parts)


class SearchDriver:
    """Drives a single browser page through search and scrape steps."""

    def __init__(
        self,
        page: Page,
        browser: Browser,
        playwright: Playwright | None = None,
        settings: BrowserSettings | None = None,
        logger: logging.Logger | None = None,
    ):
        self.page = page
        self.browser = browser
        self.settings = settings or BrowserSettings()
        self.logger = logger or logging.getLogger(__name__)
        self._playwright = playwright
        self._closed = False

    @classmethod
    def launch(
        cls,
        settings: BrowserSettings | None = None,
        logger: logging.Logger | None = None,
    ) -> "SearchDriver":
        """Start Chromium and open a blank page."""
        settings = settings or BrowserSettings()
        log = logger or logging.getLogger(__name__)
        log.info("Creating new browser instance")

        playwright = sync_playwright().start()
        try:
            log.debug("Launching Chromium")
            browser = playwright.chromium.launch(
                headless=settings.headless,
                args=[f"--window-size={settings.window_width},{settings.window_height}"],
                ignore_default_args=["--enable-automation"],
            )
            page = browser.new_page(
                viewport={"width": settings.window_width, "height": settings.window_height},
            )
            page.set_default_timeout(settings.page_timeout * 1000)
            page.goto("about:blank")
        except PlaywrightError as e:
            log.error(f"Failed to create page: {e}")
            playwright.stop()
            raise NavigationError(f"failed to create page: {e}") from e

        log.info("Browser instance created successfully")
        return cls(page, browser, playwright=playwright, settings=settings, logger=log)

    def __enter__(self) -> "SearchDriver":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _open_search_engine(self) -> None:
        self.page.goto(self.settings.search_url)
        self.page.wait_for_load_state("load")

    def search(self, query: str) -> SearchOutcome:
        """Run a web search and return a text summary with result links.

        Zero usable results is not an error: the outcome carries an
        explanatory summary and no links.

        Raises:
            ValidationError: If query is empty
            NavigationError: If the search engine cannot be loaded
            ExtractionError: If the search box or results cannot be used
        """
        if not query or not query.strip():
            raise ValidationError("search query cannot be empty")

        self.logger.info(f"Starting web search for query: {query}")
        self.page.set_default_timeout(self.settings.search_timeout * 1000)
        element_timeout = self.settings.element_timeout * 1000

        try:
            navigation_policy().run(self._open_search_engine, self.logger)
        except RetryExhaustedError as e:
            raise NavigationError(
                f"failed to navigate to search engine after {e.attempts} attempts: {e.last_error}",
                attempts=e.attempts,
            ) from e.last_error

        try:
            search_box = self.page.wait_for_selector(SEARCH_BOX_SELECTOR, timeout=element_timeout)
            if search_box is None:
                raise ExtractionError("failed to find search box")
            search_box.focus()
            visible = search_box.is_visible()
        except PlaywrightError as e:
            self.logger.error(f"Failed to prepare search box: {e}")
            raise ExtractionError(f"failed to prepare search box: {e}") from e

        if not visible:
            self.logger.error("Search box is not visible")
            raise ExtractionError("search box is not visible")

        try:
            input_policy().run(lambda: search_box.fill(query), self.logger)
        except RetryExhaustedError as e:
            raise ExtractionError(
                f"failed to type search query after {e.attempts} attempts: {e.last_error}"
            ) from e.last_error

        try:
            self.page.wait_for_timeout(SUBMIT_DELAY_MS)
            self.page.keyboard.press("Enter")
        except PlaywrightError as e:
            self.logger.error(f"Failed to press Enter to submit search: {e}")
            raise ExtractionError(f"failed to submit search: {e}") from e

        try:
            self.page.wait_for_selector(RESULTS_SELECTOR, timeout=element_timeout)
            raw_results = self.page.evaluate(SEARCH_RESULTS_SCRIPT)
        except PlaywrightError as e:
            self.logger.error(f"Failed to extract search results: {e}")
            raise ExtractionError(f"failed to extract search results: {e}") from e

        results = _parse_results(raw_results)
        if not results:
            self.logger.warning("No search results found")
            return SearchOutcome(summary=NO_RESULTS_MESSAGE)

        self.logger.info(f"Extracted {len(results)} search results")
        return SearchOutcome(
            summary=format_results(results),
            links=[result.link for result in results],
            results=results,
        )

    def visit_page(self, url: str) -> str:
        """Load url and return the visible text of its main content.

        Raises:
            NavigationError: If the page cannot be loaded
            ExtractionError: If the page text cannot be read
        """
        self.logger.info(f"Visiting page: {url}")
        self.page.set_default_timeout(self.settings.page_timeout * 1000)

        try:
            self.page.goto(url)
            self.page.wait_for_load_state("load")
        except PlaywrightError as e:
            self.logger.error(f"Failed to load page: {e}")
            raise NavigationError(f"failed to load page: {e}") from e

        try:
            content = self.page.evaluate(PAGE_TEXT_SCRIPT)
        except PlaywrightError as e:
            self.logger.error(f"Failed to extract page content: {e}")
            raise ExtractionError(f"failed to extract page content: {e}") from e

        text = content if isinstance(content, str) else ""
        self.logger.info(f"Successfully extracted {len(text)} characters from page")
        return text

    def close(self) -> None:
        """Close the page, the browser and Playwright.

        Every step is attempted even when an earlier one fails.

        Raises:
            BrowserCloseError: Listing each step that failed
        """
        if self._closed:
            return
        self._closed = True
        self.logger.info("Closing browser")

        failures = []
        steps = [("page", self.page.close), ("browser", self.browser.close)]
        if self._playwright is not None:
            steps.append(("playwright", self._playwright.stop))

        for name, close in steps:
            try:
                close()
            except PlaywrightError as e:
                self.logger.error(f"Failed to close {name}: {e}")
                failures.append(f"failed to close {name}: {e}")

        if failures:
            raise BrowserCloseError(failures)
        self.logger.info("Browser closed successfully")
