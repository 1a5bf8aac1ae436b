"""
Application configuration with environment-based settings.

Configuration is centralized here to allow easy swapping between
development, staging, and production environments. Thresholds used by
the consensus and research stages are carried into those components
through explicit config objects built from the settings.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Configuration
    app_name: str = "Plant Care Import API"
    app_version: str = "0.1.0"
    debug: bool = False
    api_prefix: str = "/api/v1"

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 4

    # Identification consensus
    consensus_confidence_threshold: float = 0.6
    consensus_variance_threshold: float = 0.35
    consensus_agreement_threshold: float = 0.67
    max_suggestions: int = 3
    provider_timeout_seconds: float = 30.0

    # Care research
    min_sources: int = 3
    min_source_confidence: float = 0.5
    min_present_fields: int = 2
    min_content_length: int = 100
    min_snippet_length: int = 20
    max_content_chars: int = 10000
    max_search_results: int = 5
    fetch_timeout_seconds: float = 8.0
    search_timeout_seconds: float = 5.0

    # Consolidation
    care_notes_max_length: int = 200

    # LLM Integration (OpenAI-compatible chat completions, OpenRouter by default)
    llm_base_url: str = "https://openrouter.ai/api/v1"
    llm_api_key: Optional[str] = None
    identification_models: list[str] = Field(
        default_factory=lambda: [
            "anthropic/claude-sonnet-4",
            "openai/gpt-4o",
            "google/gemini-2.5-flash",
        ]
    )
    extraction_model: str = "anthropic/claude-sonnet-4"
    llm_timeout_seconds: float = 60.0

    # External services
    plantnet_api_key: Optional[str] = None
    tavily_api_key: Optional[str] = None

    # Session pipeline
    auto_confirm: bool = False

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_prefix = "PLANT_IMPORT_"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


@dataclass(frozen=True)
class ConsensusConfig:
    """Acceptance gates for multi-provider identification."""
    confidence_threshold: float = 0.6
    variance_threshold: float = 0.35
    agreement_threshold: float = 0.67
    max_suggestions: int = 3

    @classmethod
    def from_settings(cls, settings: Settings) -> "ConsensusConfig":
        return cls(
            confidence_threshold=settings.consensus_confidence_threshold,
            variance_threshold=settings.consensus_variance_threshold,
            agreement_threshold=settings.consensus_agreement_threshold,
            max_suggestions=settings.max_suggestions,
        )


@dataclass(frozen=True)
class ResearchConfig:
    """Quorum and validation rules for care research."""
    min_sources: int = 3
    min_source_confidence: float = 0.5
    min_present_fields: int = 2
    min_content_length: int = 100
    min_snippet_length: int = 20

    @classmethod
    def from_settings(cls, settings: Settings) -> "ResearchConfig":
        return cls(
            min_sources=settings.min_sources,
            min_source_confidence=settings.min_source_confidence,
            min_present_fields=settings.min_present_fields,
            min_content_length=settings.min_content_length,
            min_snippet_length=settings.min_snippet_length,
        )


# Authoritative horticultural domains preferred when searching for care guides
AUTHORITATIVE_DOMAINS = [
    "rhs.org.uk",
    "missouribotanicalgarden.org",
    "extension.org",
    ".edu",
    ".gov",
]

# Directory search pages used when no search backend returns results
PLANT_CARE_DIRECTORIES = {
    "Royal Horticultural Society": "https://www.rhs.org.uk/search?query={query}",
    "Missouri Botanical Garden": (
        "https://www.missouribotanicalgarden.org/PlantFinder/FullQuery.aspx?searchterm={query}"
    ),
    "University Extension Services": "https://extension.org/?s={query}",
}
