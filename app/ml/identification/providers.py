"""
Identification provider integrations.

- LLMVisionProvider: Multimodal chat models behind an OpenAI-compatible API
- PlantNetProvider: Pl@ntNet species identification API

Every provider returns an IdentificationVote; "no plant" is reported as a
sentinel vote with zero confidence, not as an error.
"""

import logging
import os
import time
from typing import Optional

import httpx
from pydantic import ValidationError

from app.core.exceptions import ExtractionError
from app.ml.identification.base import (
    ClassificationProvider,
    IdentificationVote,
    ImageInput,
)
from app.models.schemas import IdentificationGuess
from app.services.llm_client import ChatMessage, LLMClient

logger = logging.getLogger(__name__)


IDENTIFICATION_PROMPT = """Identify the plant in this photo.

Respond with a JSON object with exactly these keys:
- "species": the common name of the plant
- "scientific_name": the botanical (binomial) name
- "confidence": a number from 0 to 1
- "reasoning": one or two sentences on the visual features you used

If the photo does not show a plant, respond with species "Unknown Plant",
scientific_name "Unknown Plant" and confidence 0."""


class LLMVisionProvider(ClassificationProvider):
    """
    Multimodal LLM used as an independent identification provider.

    One instance is created per configured model so that several models
    vote independently on the same photo.
    """

    def __init__(self, model: str, client: Optional[LLMClient] = None):
        self.model = model
        self.client = client or LLMClient()

    @property
    def name(self) -> str:
        return self.model

    @property
    def provider_type(self) -> str:
        return "llm_vision"

    @property
    def is_configured(self) -> bool:
        return self.client.is_configured

    async def classify(self, image: ImageInput) -> IdentificationVote:
        """Ask the model for a species guess and validate its reply."""
        messages = [
            ChatMessage(
                role="user",
                content=[
                    {"type": "image_url", "image_url": {"url": image.url}},
                    {"type": "text", "text": IDENTIFICATION_PROMPT},
                ],
            )
        ]

        payload = await self.client.complete_json(self.model, messages, max_tokens=500)

        try:
            guess = IdentificationGuess.model_validate(payload)
        except ValidationError as e:
            raise ExtractionError(f"{self.model} returned an invalid identification") from e

        return IdentificationVote(
            provider=self.name,
            scientific_name=guess.scientific_name,
            common_name=guess.species,
            confidence=guess.confidence,
            reasoning=guess.reasoning,
        )


class PlantNetProvider(ClassificationProvider):
    """
    Pl@ntNet API Integration for species identification.

    API: https://my.plantnet.org/
    Species: 50,000+ plant species

    Requires API key from https://my.plantnet.org/
    """

    API_BASE_URL = "https://my-api.plantnet.org/v2/identify/all"

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key or os.getenv("PLANTNET_API_KEY")
        self.timeout = timeout
        self._transport = transport

    @property
    def name(self) -> str:
        return "plantnet"

    @property
    def provider_type(self) -> str:
        return "plantnet"

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def classify(self, image: ImageInput) -> IdentificationVote:
        """Run identification using the PlantNet API."""
        if not self.api_key:
            raise ExtractionError(
                "PlantNet API key not configured. Set PLANT_IMPORT_PLANTNET_API_KEY."
            )

        start_time = time.time()
        image_bytes = await image.get_jpeg_bytes(timeout=self.timeout)

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(
                self.API_BASE_URL,
                files={"images": ("plant.jpg", image_bytes, "image/jpeg")},
                params={"api-key": self.api_key, "organs": "auto"},
            )

        processing_time = (time.time() - start_time) * 1000
        logger.debug(f"PlantNet responded {response.status_code} in {processing_time:.0f}ms")

        # PlantNet answers 404 when nothing in the image matches a species
        if response.status_code == 404:
            return IdentificationVote.non_plant(self.name, "PlantNet found no matching species")
        if response.status_code == 401:
            raise ExtractionError("Invalid PlantNet API key")
        if response.status_code == 429:
            raise ExtractionError("PlantNet API rate limit exceeded")
        if response.status_code != 200:
            raise ExtractionError(f"PlantNet API error: {response.status_code}")

        results = response.json().get("results") or []
        if not results:
            return IdentificationVote.non_plant(self.name, "PlantNet found no matching species")

        top_result = results[0]
        species = top_result.get("species", {})
        scientific_name = species.get("scientificNameWithoutAuthor") or ""
        common_names = species.get("commonNames") or []

        return IdentificationVote(
            provider=self.name,
            scientific_name=scientific_name,
            common_name=common_names[0] if common_names else scientific_name,
            confidence=float(top_result.get("score", 0)),
            reasoning=f"PlantNet top match among {len(results)} candidate(s)",
        )
