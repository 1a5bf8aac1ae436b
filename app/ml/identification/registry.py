"""
Identification Provider Registry

Manages identification providers and coordinates concurrent inference.
Each provider call settles independently (vote or error) so a single
failing provider never cancels the others.
"""

import asyncio
import logging
import time
from typing import Dict, List, Optional, Any

from app.core.config import Settings, get_settings
from app.ml.identification.base import (
    ClassificationProvider,
    ImageInput,
    ProviderOutcome,
)

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """
    Registry for identification providers.

    Manages provider lifecycle, provides concurrent fan-out,
    and handles graceful degradation on provider failures.
    """

    def __init__(self, timeout: float = 30.0):
        self._providers: Dict[str, ClassificationProvider] = {}
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ProviderRegistry":
        """
        Build a registry with every provider the settings enable.

        Args:
            settings: Application settings (defaults to cached settings)
        """
        from app.ml.identification.providers import LLMVisionProvider, PlantNetProvider
        from app.services.llm_client import LLMClient

        settings = settings or get_settings()
        registry = cls(timeout=settings.provider_timeout_seconds)

        if settings.llm_api_key:
            client = LLMClient(
                base_url=settings.llm_base_url,
                api_key=settings.llm_api_key,
                timeout=settings.llm_timeout_seconds,
            )
            for model in settings.identification_models:
                registry.register(LLMVisionProvider(model, client=client))

        if settings.plantnet_api_key:
            registry.register(PlantNetProvider(api_key=settings.plantnet_api_key))

        logger.info(f"Provider registry initialized with {len(registry)} provider(s)")
        return registry

    def __len__(self) -> int:
        return len(self._providers)

    def register(self, provider: ClassificationProvider):
        """
        Register a provider.

        Args:
            provider: Instance implementing ClassificationProvider
        """
        self._providers[provider.name] = provider
        logger.info(f"Registered identification provider: {provider.name}")

    def get_provider(self, name: str) -> Optional[ClassificationProvider]:
        """Get a specific provider by name."""
        return self._providers.get(name)

    def get_provider_info(self) -> List[Dict[str, Any]]:
        """Get info for all registered providers."""
        return [provider.get_provider_info() for provider in self._providers.values()]

    async def classify_single(
        self,
        provider: ClassificationProvider,
        image: ImageInput
    ) -> ProviderOutcome:
        """
        Run one provider, converting any failure or timeout into an outcome.

        Args:
            provider: Provider to call
            image: Image to classify

        Returns:
            ProviderOutcome with either a vote or an error
        """
        start_time = time.time()
        try:
            vote = await asyncio.wait_for(provider.classify(image), timeout=self.timeout)
            return ProviderOutcome(
                provider=provider.name,
                vote=vote,
                latency_ms=(time.time() - start_time) * 1000,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Provider {provider.name} timed out after {self.timeout}s")
            error = "Timeout"
        except Exception as e:
            logger.warning(f"Error in {provider.name} identification: {e}")
            error = str(e) or type(e).__name__

        return ProviderOutcome(
            provider=provider.name,
            error=error,
            latency_ms=(time.time() - start_time) * 1000,
        )

    async def classify_all(self, image: ImageInput) -> List[ProviderOutcome]:
        """
        Run every registered provider concurrently and wait for all to settle.

        Args:
            image: Image to classify

        Returns:
            One outcome per provider, in registration order
        """
        providers = list(self._providers.values())
        if not providers:
            logger.warning("No identification providers registered")
            return []

        async with asyncio.TaskGroup() as group:
            tasks = [
                group.create_task(self.classify_single(provider, image))
                for provider in providers
            ]

        outcomes = [task.result() for task in tasks]
        succeeded = sum(1 for o in outcomes if not o.has_error)
        logger.info(f"Identification fan-out settled: {succeeded}/{len(outcomes)} succeeded")
        return outcomes
