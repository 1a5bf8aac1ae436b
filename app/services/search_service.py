"""
Web Search Service

Finds candidate care-guide documents for a query. Backends are tried in
order until one returns results:

1. Tavily search API (when an API key is configured), restricted to
   authoritative horticultural domains
2. DuckDuckGo HTML results, parsed with BeautifulSoup
3. Directory search pages of well-known horticultural references

Search never raises; an unusable backend is logged and skipped.
"""

import logging
from dataclasses import dataclass
from typing import Optional, List
from urllib.parse import parse_qs, quote_plus, urlparse

import httpx
from bs4 import BeautifulSoup

from app.core.config import AUTHORITATIVE_DOMAINS, PLANT_CARE_DIRECTORIES

logger = logging.getLogger(__name__)

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


@dataclass
class SearchResult:
    """One ranked candidate document."""
    title: str
    url: str
    snippet: str


class WebSearchService:
    """
    Search capability used by the research orchestrator.

    Usage:
        service = WebSearchService(tavily_api_key="...")
        results = await service.search("snake plant care guide")
    """

    TAVILY_URL = "https://api.tavily.com/search"
    DUCKDUCKGO_URL = "https://html.duckduckgo.com/html/"

    def __init__(
        self,
        tavily_api_key: Optional[str] = None,
        max_results: int = 5,
        timeout: float = 5.0,
        use_directory_fallback: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.tavily_api_key = tavily_api_key
        self.max_results = max_results
        self.timeout = timeout
        self.use_directory_fallback = use_directory_fallback
        self._transport = transport

    async def search(self, query: str) -> List[SearchResult]:
        """
        Search for documents matching a query.

        Args:
            query: Free-text search query

        Returns:
            Ranked results (possibly empty)
        """
        if self.tavily_api_key:
            results = await self._search_tavily(query)
            if results:
                return results

        results = await self._search_duckduckgo(query)
        if results:
            return results

        if self.use_directory_fallback:
            return self._directory_results(query)
        return []

    async def _search_tavily(self, query: str) -> List[SearchResult]:
        """Query the Tavily search API."""
        logger.info(f"[Tavily] Searching for: {query}")
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    self.TAVILY_URL,
                    json={
                        "api_key": self.tavily_api_key,
                        "query": query,
                        "search_depth": "advanced",
                        "include_domains": AUTHORITATIVE_DOMAINS,
                        "max_results": self.max_results,
                    },
                )
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"[Tavily] Search failed: {e}")
            return []

        results = [
            SearchResult(
                title=r.get("title", ""),
                url=r.get("url", ""),
                snippet=r.get("content", ""),
            )
            for r in data.get("results") or []
            if r.get("url")
        ]
        logger.info(f"[Tavily] Found {len(results)} results")
        return results[:self.max_results]

    async def _search_duckduckgo(self, query: str) -> List[SearchResult]:
        """Scrape the DuckDuckGo HTML endpoint (no API key required)."""
        logger.info(f"[Web Search] Searching DuckDuckGo for: {query}")
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                headers=BROWSER_HEADERS,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(self.DUCKDUCKGO_URL, params={"q": query})
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"[Web Search] DuckDuckGo search failed: {e}")
            return []

        results = parse_duckduckgo_results(response.text, self.max_results)
        logger.info(f"[Web Search] Found {len(results)} DuckDuckGo results")
        return results

    def _directory_results(self, query: str) -> List[SearchResult]:
        """Point at directory search pages of known horticultural references."""
        plant_name = query.split(" care")[0].strip() or query
        logger.info(f"[Web Search] Using directory search pages for: {plant_name}")
        return [
            SearchResult(
                title=f"{plant_name} - {name}",
                url=template.format(query=quote_plus(plant_name)),
                snippet=f"Plant care information from {name}",
            )
            for name, template in PLANT_CARE_DIRECTORIES.items()
        ]


def parse_duckduckgo_results(html: str, max_results: int = 5) -> List[SearchResult]:
    """
    Parse result blocks from a DuckDuckGo HTML results page.

    Redirect links (``/l/?uddg=<encoded>``) are decoded to the target URL.
    Results without a title, URL or snippet are skipped.
    """
    soup = BeautifulSoup(html, "html.parser")
    results: List[SearchResult] = []

    for block in soup.select(".result"):
        if len(results) >= max_results:
            break

        link = block.select_one(".result__a")
        snippet_elem = block.select_one(".result__snippet")
        if link is None or snippet_elem is None:
            continue

        title = link.get_text(strip=True)
        url = _decode_redirect(link.get("href", ""))
        snippet = snippet_elem.get_text(" ", strip=True)

        if title and url and snippet:
            results.append(SearchResult(title=title, url=url, snippet=snippet))

    return results


def _decode_redirect(href: str) -> str:
    """Extract the real URL from a DuckDuckGo redirect link."""
    if "uddg=" not in href:
        return href
    target = parse_qs(urlparse(href).query).get("uddg")
    return target[0] if target else href
