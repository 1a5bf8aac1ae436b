"""
Content Extraction Service

Fetches a document and reduces it to clean plain text for structured
extraction. Failures of any kind (timeouts, HTTP errors, malformed URLs,
non-HTML content) yield an empty string so a single bad document never stops research.

Cleaning steps:
1. Remove script/style/navigation noise and ad containers
2. Prefer a main-content container, falling back to <body>
3. Collapse whitespace
4. Keep only care-related sentences when enough of them exist
5. Cap the text length
"""

import logging
import re
from typing import Optional

import httpx
from bs4 import BeautifulSoup, Comment

from app.services.search_service import BROWSER_HEADERS

logger = logging.getLogger(__name__)


NOISE_TAGS = ["script", "style", "nav", "footer", "header", "iframe", "noscript"]
NOISE_SELECTORS = [".advertisement", ".ad", "#comments", ".cookie-banner", ".popup"]
CONTENT_SELECTORS = [
    '[role="main"]',
    "main",
    "article",
    ".main-content",
    ".article-content",
    "#main-content",
    ".content",
    "#content",
    ".article-body",
    ".post-content",
    ".entry-content",
]
CARE_KEYWORDS = [
    "water", "fertiliz", "light", "sun", "temperature",
    "humidity", "soil", "care", "growing", "plant",
]


class ContentExtractor:
    """
    Content extraction capability: URL in, cleaned text out.

    Usage:
        extractor = ContentExtractor(timeout=8.0)
        text = await extractor.fetch_text("https://example.org/snake-plant")
    """

    def __init__(
        self,
        timeout: float = 8.0,
        max_chars: int = 10000,
        min_relevant_sentences: int = 5,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self.max_chars = max_chars
        self.min_relevant_sentences = min_relevant_sentences
        self._transport = transport

    async def fetch_text(self, url: str) -> str:
        """
        Fetch a URL and return its cleaned text.

        Args:
            url: Document URL

        Returns:
            Cleaned text, or "" when the document could not be used
        """
        logger.info(f"[Web Fetch] Fetching: {url}")
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                headers=BROWSER_HEADERS,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(url)
        except httpx.TimeoutException:
            logger.warning(f"[Web Fetch] Timeout after {self.timeout} seconds: {url}")
            return ""
        except httpx.HTTPError as e:
            logger.warning(f"[Web Fetch] Error fetching {url}: {e}")
            return ""
        except (httpx.InvalidURL, UnicodeError) as e:
            # Bad port or host label; IDNA errors are UnicodeErrors
            logger.warning(f"[Web Fetch] Invalid URL {url}: {e}")
            return ""

        if response.status_code != 200:
            logger.warning(f"[Web Fetch] HTTP {response.status_code} from {url}")
            return ""

        content_type = response.headers.get("content-type", "")
        if "text/html" not in content_type:
            logger.warning(f"[Web Fetch] Non-HTML content type: {content_type}")
            return ""

        text = self.extract_text(response.text)
        logger.info(f"[Web Fetch] Extracted {len(text)} characters")
        return text

    def extract_text(self, html: str) -> str:
        """Reduce an HTML document to care-focused plain text."""
        soup = BeautifulSoup(html, "html.parser")
        self._remove_noise(soup)

        content = ""
        for selector in CONTENT_SELECTORS:
            elem = soup.select_one(selector)
            if elem is not None:
                content = elem.get_text(" ")
                logger.debug(f"[Web Fetch] Found content using selector: {selector}")
                break

        if len(content.strip()) < 100 and soup.body is not None:
            content = soup.body.get_text(" ")

        content = re.sub(r"\s+", " ", content).strip()

        sentences = re.split(r"[.!?]+\s+", content)
        relevant = [
            s for s in sentences
            if len(s) > 20 and any(k in s.lower() for k in CARE_KEYWORDS)
        ]
        if len(relevant) > self.min_relevant_sentences:
            content = ". ".join(relevant) + "."
            logger.debug(f"[Web Fetch] Filtered to {len(relevant)} relevant sentences")

        return content[:self.max_chars]

    def _remove_noise(self, soup: BeautifulSoup):
        """Remove content that is never part of a care guide."""
        for tag in NOISE_TAGS:
            for elem in soup.find_all(tag):
                elem.decompose()

        for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
            comment.extract()

        for selector in NOISE_SELECTORS:
            for elem in soup.select(selector):
                elem.decompose()
