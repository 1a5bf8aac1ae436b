"""
Tests for ContentExtractor - document fetching and text cleaning.
"""

import httpx
import pytest

from app.services.content_extraction import ContentExtractor

ARTICLE_HTML = """
<html>
<head><style>body { color: green; }</style><script>track();</script></head>
<body>
  <nav>Home | Shop | Blog</nav>
  <!-- sidebar comment -->
  <div class="advertisement">Buy fertilizer now!</div>
  <article>
    <h1>Snake Plant Care</h1>
    <p>Snake plants thrive on neglect and need water every two to three weeks.</p>
  </article>
  <footer>Copyright 2024</footer>
</body>
</html>
"""


def html_response(body, status=200, content_type="text/html; charset=utf-8"):
    return httpx.Response(status, text=body, headers={"content-type": content_type})


class TestContentExtractor:
    """Test suite for ContentExtractor."""

    @pytest.fixture
    def extractor(self):
        return ContentExtractor()

    def test_removes_noise_and_uses_article(self, extractor):
        text = extractor.extract_text(ARTICLE_HTML)

        assert "Snake plants thrive on neglect" in text
        assert "Home | Shop" not in text
        assert "track()" not in text
        assert "Buy fertilizer" not in text
        assert "sidebar comment" not in text
        assert "Copyright" not in text

    def test_short_container_falls_back_to_body(self, extractor):
        html = """
        <html><body>
          <main>Tiny</main>
          <div>Water the fern whenever the top inch of soil feels dry to the touch.</div>
        </body></html>
        """

        text = extractor.extract_text(html)

        assert "Tiny" in text
        assert "top inch of soil" in text

    def test_keeps_only_care_sentences_when_many(self, extractor):
        care = [
            "Water the plant when the soil is dry",
            "Bright indirect light works best for growth",
            "Fertilize monthly during the growing season",
            "Keep humidity above forty percent for this plant",
            "Temperatures between 65 and 80 degrees are ideal",
            "Use a well draining soil mix for the pot",
        ]
        filler = "Our company was founded in a small garage many years ago"
        html = "<html><body><article>" + ". ".join(care + [filler]) + ".</article></body></html>"

        text = extractor.extract_text(html)

        assert "founded in a small garage" not in text
        assert "Bright indirect light" in text

    def test_caps_length(self):
        extractor = ContentExtractor(max_chars=50)
        html = "<html><body>" + "word " * 200 + "</body></html>"

        assert len(extractor.extract_text(html)) == 50

    @pytest.mark.asyncio
    async def test_fetch_text(self):
        extractor = ContentExtractor(
            transport=httpx.MockTransport(lambda r: html_response(ARTICLE_HTML))
        )

        text = await extractor.fetch_text("https://example.org/snake")

        assert "need water every two to three weeks" in text

    @pytest.mark.asyncio
    async def test_non_html_yields_empty(self):
        extractor = ContentExtractor(
            transport=httpx.MockTransport(
                lambda r: html_response("%PDF-1.4", content_type="application/pdf")
            )
        )

        assert await extractor.fetch_text("https://example.org/guide.pdf") == ""

    @pytest.mark.asyncio
    async def test_http_error_yields_empty(self):
        extractor = ContentExtractor(
            transport=httpx.MockTransport(lambda r: html_response("Not found", status=404))
        )

        assert await extractor.fetch_text("https://example.org/missing") == ""

    @pytest.mark.asyncio
    async def test_timeout_yields_empty(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        extractor = ContentExtractor(transport=httpx.MockTransport(handler))

        assert await extractor.fetch_text("https://example.org/slow") == ""

    @pytest.mark.asyncio
    async def test_malformed_url_yields_empty(self):
        requests = []
        extractor = ContentExtractor(
            transport=httpx.MockTransport(lambda r: requests.append(r) or html_response(ARTICLE_HTML))
        )

        assert await extractor.fetch_text("http://example.com:abc/care") == ""
        assert requests == []
