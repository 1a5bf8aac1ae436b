"""
Care Research Orchestrator

Collects a quorum of validated care sources for an identified species by
escalating through progressively broader search queries:

    specific query ──► search ──► for each new document:
         │                          fetch text (fallback: snippet)
         │                          structured extraction
         │                          validate (confidence, present fields)
         ▼                          accept ──► quorum? stop
    broader query ...

Documents are processed one at a time so the quorum check can stop the
remaining work early. Failures on individual documents are logged and
skipped; only running out of queries without a quorum is fatal.
"""

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional

from app.core.config import ResearchConfig
from app.core.exceptions import ExtractionError, InsufficientSources
from app.models.schemas import CareExtraction
from app.models.session import CareSourceRecord
from app.services.care_extraction import CareExtractor
from app.services.content_extraction import ContentExtractor
from app.services.search_service import SearchResult, WebSearchService

logger = logging.getLogger(__name__)


# Most specific first; each template is formatted with species/scientific_name
SEARCH_TEMPLATES = [
    "{species} {scientific_name} plant care watering fertilizing light requirements",
    "{scientific_name} care guide watering sunlight",
    "{species} plant care instructions",
    "how to care for {species} {scientific_name}",
]

SourceCallback = Callable[[CareSourceRecord, int], Awaitable[None]]


@dataclass
class ResearchReport:
    """Outcome of a successful research run."""
    sources: List[CareSourceRecord]
    queries_tried: int = 0
    documents_examined: int = 0
    rejections: List[str] = field(default_factory=list)


class ResearchOrchestrator:
    """
    Drives search, fetch and extraction until enough sources are validated.

    Usage:
        orchestrator = ResearchOrchestrator(search, fetcher, extractor)
        report = await orchestrator.research("Snake Plant", "Dracaena trifasciata")
    """

    def __init__(
        self,
        search_service: WebSearchService,
        content_extractor: ContentExtractor,
        care_extractor: CareExtractor,
        config: Optional[ResearchConfig] = None,
        templates: Optional[List[str]] = None,
    ):
        self.search_service = search_service
        self.content_extractor = content_extractor
        self.care_extractor = care_extractor
        self.config = config or ResearchConfig()
        self.templates = templates or SEARCH_TEMPLATES

    async def research(
        self,
        species: str,
        scientific_name: Optional[str] = None,
        on_source_accepted: Optional[SourceCallback] = None,
    ) -> ResearchReport:
        """
        Research care requirements for a species.

        Args:
            species: Common name
            scientific_name: Scientific name (may be omitted)
            on_source_accepted: Awaited after each accepted source with the
                source and the number accepted so far

        Returns:
            ResearchReport with at least ``min_sources`` sources

        Raises:
            InsufficientSources: If every query was tried without a quorum
        """
        scientific_name = scientific_name or ""
        required = self.config.min_sources
        report = ResearchReport(sources=[])
        accepted_urls: set[str] = set()

        logger.info(f"[Research] Starting web research for: {species} ({scientific_name})")

        for index, template in enumerate(self.templates, start=1):
            if len(report.sources) >= required:
                break

            query = " ".join(
                template.format(species=species, scientific_name=scientific_name).split()
            )
            logger.info(f"[Research] Search strategy {index}/{len(self.templates)}: \"{query}\"")
            report.queries_tried += 1

            results = await self.search_service.search(query)
            logger.info(f"[Research] Found {len(results)} search results for strategy {index}")

            for result in results:
                if len(report.sources) >= required:
                    break

                url_key = _url_key(result.url)
                if url_key in accepted_urls:
                    logger.info(f"[Research] Skipping duplicate source: {result.url}")
                    continue

                report.documents_examined += 1
                source = await self._process_document(result, species, scientific_name, report)
                if source is None:
                    continue

                accepted_urls.add(url_key)
                report.sources.append(source)
                logger.info(
                    f"[Research] Accepted source {len(report.sources)}/{required}: "
                    f"{source.source_name}"
                )
                if on_source_accepted is not None:
                    await on_source_accepted(source, len(report.sources))

            if len(report.sources) < required and index < len(self.templates):
                logger.info(
                    f"[Research] Only found {len(report.sources)}/{required} sources, "
                    f"trying next search strategy..."
                )

        if len(report.sources) < required:
            logger.error(
                f"[Research] Insufficient sources for {species}: "
                f"{len(report.sources)}/{required}"
            )
            raise InsufficientSources(found=len(report.sources), required=required)

        logger.info(f"[Research] Gathered {len(report.sources)} valid sources")
        return report

    async def _process_document(
        self,
        result: SearchResult,
        species: str,
        scientific_name: str,
        report: ResearchReport,
    ) -> Optional[CareSourceRecord]:
        """Fetch, extract and validate one candidate; None when it is unusable."""
        try:
            text = await self.content_extractor.fetch_text(result.url)

            content = text if len(text) >= self.config.min_content_length else result.snippet
            if not content or len(content) < self.config.min_snippet_length:
                self._reject(report, result, "insufficient content")
                return None

            logger.info(f"[Research] Analyzing {len(content)} characters from {result.url}")
            extraction = await self.care_extractor.extract(
                content, species, scientific_name or species, result
            )
        except ExtractionError as e:
            self._reject(report, result, f"error: {e}")
            return None
        except Exception as e:
            logger.exception(f"[Research] Unexpected error processing {result.url}: {e}")
            self._reject(report, result, f"unexpected error: {e}")
            return None

        problem = self.validate(extraction)
        if problem:
            self._reject(report, result, problem)
            return None

        return extraction.to_source_record()

    def validate(self, extraction: CareExtraction) -> Optional[str]:
        """
        Check an extraction against the acceptance rules.

        Returns:
            Reason for rejection, or None when the source is acceptable
        """
        present = extraction.present_field_count
        logger.debug(
            f"[Research] {extraction.source_url} - confidence {extraction.confidence}, "
            f"info fields {present}/5"
        )

        if extraction.confidence < self.config.min_source_confidence:
            return (
                f"confidence too low ({extraction.confidence} < "
                f"{self.config.min_source_confidence})"
            )
        if present < self.config.min_present_fields:
            return f"insufficient information ({present}/5 fields)"
        return None

    @staticmethod
    def _reject(report: ResearchReport, result: SearchResult, reason: str):
        logger.warning(f"[Research] Source {result.url} rejected - {reason}")
        report.rejections.append(f"{result.url}: {reason}")


def _url_key(url: str) -> str:
    """Normalize a URL for duplicate detection."""
    return url.strip().rstrip("/")
