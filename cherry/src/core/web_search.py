"""
CherryAi - Web Search
======================
Fetches a search-engine result page and turns it into a short list of
``{title, link, snippet}`` entries used both as prompt context and as
the ``relevantLinks`` returned to the browser.

Parsing follows the classic Google result markup:
    • one ``div.g`` per organic result
    • title in the ``h3``, link on the anchor wrapping it
    • snippet in ``div.VwiC3b``

Results missing any of the three fields are dropped.  ``/url?q=``
redirect links are unwrapped to their target.

Usage:
    from cherry.src.core.web_search import WebSearchClient
    client = WebSearchClient()
    results = await client.search("what is retrieval augmented generation")
"""

from __future__ import annotations

from urllib.parse import parse_qs, urlparse

import httpx
from bs4 import BeautifulSoup

from cherry.config.settings import settings
from cherry.src.utils.logger import get_logger
from cherry.src.utils.text_utils import collapse_whitespace, dedupe_links

logger = get_logger(__name__)

SearchResult = dict[str, str]

_RESULT_SELECTOR = "div.g"
_SNIPPET_SELECTOR = "div.VwiC3b"
_LINK_SCHEMES = {"http", "https"}
_REQUEST_HEADERS = {
    "User-Agent": "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0 Safari/537.36",
    "Accept-Language": "en-US,en;q=0.9",
}


class WebSearchError(RuntimeError):
    """The search engine could not be reached or answered with an error."""


def _unwrap_redirect(href: str) -> str:
    """``/url?q=https://example.com&sa=U`` → ``https://example.com``."""
    if href.startswith("/url?"):
        target = parse_qs(urlparse(href).query).get("q")
        return target[0] if target else ""
    return href


def parse_results(html: str, limit: int) -> list[SearchResult]:
    """Extract at most *limit* unique results from a result page."""
    soup = BeautifulSoup(html, "html.parser")
    results: list[SearchResult] = []

    for element in soup.select(_RESULT_SELECTOR):
        title_el = element.find("h3")
        if title_el is None:
            continue
        title = collapse_whitespace(title_el.get_text())

        anchor = title_el.find_parent("a")
        link = _unwrap_redirect(anchor.get("href", "")) if anchor is not None else ""

        snippet_el = element.select_one(_SNIPPET_SELECTOR)
        snippet = collapse_whitespace(snippet_el.get_text()) if snippet_el is not None else ""

        if urlparse(link).scheme.lower() not in _LINK_SCHEMES:
            link = ""

        if title and link and snippet:
            results.append({"title": title, "link": link, "snippet": snippet})

    return dedupe_links(results, limit)


class WebSearchClient:
    """
    Async client for the configured search engine.

    Parameters
    ----------
    search_url
        Result page endpoint.  Defaults to ``settings.SEARCH_URL``.
    limit
        Maximum results returned.  Defaults to ``settings.SEARCH_RESULTS_LIMIT``.
    timeout
        Request timeout in seconds.
    transport
        Optional ``httpx`` transport (tests pass an ``httpx.MockTransport``).
    """

    __slots__ = ("_search_url", "_limit", "_timeout", "_transport")

    def __init__(self, search_url: str | None = None, limit: int | None = None, timeout: float | None = None, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._search_url = search_url or settings.SEARCH_URL
        self._limit = limit if limit is not None else settings.SEARCH_RESULTS_LIMIT
        self._timeout = timeout if timeout is not None else settings.SEARCH_TIMEOUT_SECONDS
        self._transport = transport


    async def search(self, query: str) -> list[SearchResult]:
        """
        Run a web search for *query*.

        Raises
        ------
        WebSearchError
            On connection errors, timeouts and non-2xx responses.
        """
        try:
            async with httpx.AsyncClient(timeout=self._timeout, headers=_REQUEST_HEADERS, follow_redirects=True, transport=self._transport) as client:
                response = await client.get(self._search_url, params={"q": query})
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("Web search request failed: %s", exc)
            raise WebSearchError(f"Web search failed: {exc}") from exc

        results = parse_results(response.text, self._limit)
        logger.info("Web search returned %d result(s) for '%s'.", len(results), query[:50])
        return results
