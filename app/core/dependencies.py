"""
FastAPI dependency injection.

Provides dependency injection for services and components,
enabling easy testing and component swapping.
"""

from functools import lru_cache

from app.core.config import ConsensusConfig, ResearchConfig, get_settings
from app.ml.identification import ConsensusResolver, ProviderRegistry
from app.services.care_extraction import CareExtractor
from app.services.content_extraction import ContentExtractor
from app.services.import_pipeline import ImportPipeline
from app.services.llm_client import LLMClient
from app.services.research_orchestrator import ResearchOrchestrator
from app.services.search_service import WebSearchService
from app.services.stores import (
    InMemoryPlantRecordStore,
    InMemorySessionStore,
    PlantRecordStore,
    SessionStore,
)


@lru_cache()
def get_session_store() -> SessionStore:
    """Get the shared session store."""
    return InMemorySessionStore()


@lru_cache()
def get_plant_store() -> PlantRecordStore:
    """Get the shared plant record store."""
    return InMemoryPlantRecordStore()


@lru_cache()
def get_provider_registry() -> ProviderRegistry:
    """Get cached registry with every configured identification provider."""
    return ProviderRegistry.from_settings(get_settings())


@lru_cache()
def get_consensus_resolver() -> ConsensusResolver:
    """Get cached consensus resolver."""
    return ConsensusResolver(ConsensusConfig.from_settings(get_settings()))


@lru_cache()
def get_llm_client() -> LLMClient:
    """Get cached chat-completions client."""
    return LLMClient()


@lru_cache()
def get_search_service() -> WebSearchService:
    """Get cached web search service."""
    settings = get_settings()
    return WebSearchService(
        tavily_api_key=settings.tavily_api_key,
        max_results=settings.max_search_results,
        timeout=settings.search_timeout_seconds,
    )


@lru_cache()
def get_content_extractor() -> ContentExtractor:
    """Get cached document fetcher."""
    settings = get_settings()
    return ContentExtractor(
        timeout=settings.fetch_timeout_seconds,
        max_chars=settings.max_content_chars,
    )


@lru_cache()
def get_care_extractor() -> CareExtractor:
    """Get cached care extractor."""
    return CareExtractor(get_llm_client(), get_settings().extraction_model)


@lru_cache()
def get_research_orchestrator() -> ResearchOrchestrator:
    """Get cached research orchestrator."""
    return ResearchOrchestrator(
        get_search_service(),
        get_content_extractor(),
        get_care_extractor(),
        config=ResearchConfig.from_settings(get_settings()),
    )


@lru_cache()
def get_import_pipeline() -> ImportPipeline:
    """Get the import pipeline wired to the shared stores."""
    return ImportPipeline.from_settings(
        get_session_store(),
        get_plant_store(),
        get_provider_registry(),
        get_consensus_resolver(),
        get_research_orchestrator(),
    )


__all__ = [
    "get_session_store",
    "get_plant_store",
    "get_provider_registry",
    "get_consensus_resolver",
    "get_llm_client",
    "get_search_service",
    "get_content_extractor",
    "get_care_extractor",
    "get_research_orchestrator",
    "get_import_pipeline",
]
