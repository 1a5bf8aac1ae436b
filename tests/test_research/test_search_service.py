"""
Tests for WebSearchService and DuckDuckGo result parsing.
"""

import json

import httpx
import pytest

from app.core.config import PLANT_CARE_DIRECTORIES
from app.services.search_service import WebSearchService, parse_duckduckgo_results

DUCKDUCKGO_HTML = """
<html><body>
  <div class="result">
    <a class="result__a" href="//duckduckgo.com/l/?uddg=https%3A%2F%2Fwww.rhs.org.uk%2Fplants%2Fsnake&amp;rut=abc">
      Snake plant | RHS
    </a>
    <a class="result__snippet">Water sparingly, allowing the compost to dry out.</a>
  </div>
  <div class="result">
    <a class="result__a" href="https://extension.example.edu/snake-plant">Snake Plant Care</a>
    <div class="result__snippet">Tolerates <b>low light</b> and irregular watering.</div>
  </div>
  <div class="result">
    <a class="result__a" href="https://no-snippet.example.com">No snippet</a>
  </div>
</body></html>
"""


class TestDuckDuckGoParsing:
    """Tests for parse_duckduckgo_results."""

    def test_parses_results_and_decodes_redirects(self):
        results = parse_duckduckgo_results(DUCKDUCKGO_HTML)

        assert len(results) == 2
        assert results[0].title == "Snake plant | RHS"
        assert results[0].url == "https://www.rhs.org.uk/plants/snake"
        assert results[1].url == "https://extension.example.edu/snake-plant"
        assert results[1].snippet == "Tolerates low light and irregular watering."

    def test_respects_max_results(self):
        assert len(parse_duckduckgo_results(DUCKDUCKGO_HTML, max_results=1)) == 1

    def test_empty_page(self):
        assert parse_duckduckgo_results("<html><body></body></html>") == []


class TestWebSearchService:
    """Test suite for WebSearchService backends and fallbacks."""

    @pytest.mark.asyncio
    async def test_tavily_used_when_configured(self):
        seen = {}

        def handler(request):
            seen["host"] = request.url.host
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "results": [
                    {"title": "Snake Plant", "url": "https://rhs.org.uk/snake", "content": "Water monthly."},
                ]
            })

        service = WebSearchService(tavily_api_key="tv-key", transport=httpx.MockTransport(handler))
        results = await service.search("snake plant care")

        assert seen["host"] == "api.tavily.com"
        assert seen["body"]["query"] == "snake plant care"
        assert seen["body"]["search_depth"] == "advanced"
        assert results[0].url == "https://rhs.org.uk/snake"
        assert results[0].snippet == "Water monthly."

    @pytest.mark.asyncio
    async def test_falls_back_to_duckduckgo(self):
        def handler(request):
            if request.url.host == "api.tavily.com":
                return httpx.Response(500)
            assert request.url.params["q"] == "snake plant care"
            return httpx.Response(200, text=DUCKDUCKGO_HTML)

        service = WebSearchService(tavily_api_key="tv-key", transport=httpx.MockTransport(handler))
        results = await service.search("snake plant care")

        assert len(results) == 2
        assert results[0].url == "https://www.rhs.org.uk/plants/snake"

    @pytest.mark.asyncio
    async def test_directory_fallback_when_search_fails(self):
        def handler(request):
            raise httpx.ConnectError("offline", request=request)

        service = WebSearchService(transport=httpx.MockTransport(handler))
        results = await service.search("Snake Plant care guide")

        assert len(results) == len(PLANT_CARE_DIRECTORIES)
        assert results[0].title.startswith("Snake Plant - ")
        assert "Snake+Plant" in results[0].url

    @pytest.mark.asyncio
    async def test_no_results_without_directory_fallback(self):
        service = WebSearchService(
            use_directory_fallback=False,
            transport=httpx.MockTransport(lambda r: httpx.Response(200, text="<html></html>")),
        )

        assert await service.search("anything") == []
