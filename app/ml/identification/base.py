"""
Base interfaces and data structures for plant identification providers.

Provides:
- ImageInput: Image reference with lazily downloaded, normalized bytes
- IdentificationVote: One provider's species guess
- ProviderOutcome: Settled result of one provider call (vote or error)
- ClassificationProvider: Abstract base for all providers
- ResolvedIdentification / SelectionRequired: Consensus results
"""

import base64
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from io import BytesIO
from typing import Optional, List, Dict, Any, Union

import httpx
from PIL import Image

logger = logging.getLogger(__name__)

# Names providers report when the photo does not show a plant
NON_PLANT_SENTINELS = {"unknown plant", "unknown species"}
UNKNOWN_PLANT = "Unknown Plant"


@dataclass
class ImageInput:
    """
    Image submitted for identification.

    Providers that accept a URL use ``url`` directly; providers that need
    the image bytes call ``get_jpeg_bytes()``, which downloads the image once
    and re-encodes it as RGB JPEG.
    """
    url: str
    data: Optional[bytes] = None
    _jpeg: Optional[bytes] = field(default=None, init=False, repr=False)

    async def get_jpeg_bytes(self, timeout: float = 30.0) -> bytes:
        """Download (if needed) and normalize the image to JPEG bytes."""
        if self._jpeg is not None:
            return self._jpeg

        raw = self.data
        if raw is None:
            if self.url.startswith("data:"):
                raw = base64.b64decode(self.url.split(",", 1)[1])
            else:
                async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
                    response = await client.get(self.url)
                    response.raise_for_status()
                    raw = response.content

        buffer = BytesIO()
        Image.open(BytesIO(raw)).convert("RGB").save(buffer, format="JPEG", quality=85)
        self._jpeg = buffer.getvalue()
        return self._jpeg


@dataclass
class IdentificationVote:
    """
    Individual species guess from a single provider.

    Each provider produces one of these, which are then reconciled
    by the consensus resolver.
    """
    provider: str
    scientific_name: str
    common_name: str
    confidence: float  # 0.0 - 1.0
    reasoning: str = ""

    @property
    def is_non_plant(self) -> bool:
        """True when the provider reported that no plant is visible."""
        return (
            self.common_name.strip().lower() in NON_PLANT_SENTINELS
            or self.confidence == 0
        )

    @property
    def species_key(self) -> str:
        """Grouping key: trimmed, case-insensitive scientific name."""
        return self.scientific_name.strip().lower()

    @classmethod
    def non_plant(cls, provider: str, reasoning: str = "") -> "IdentificationVote":
        return cls(
            provider=provider,
            scientific_name=UNKNOWN_PLANT,
            common_name=UNKNOWN_PLANT,
            confidence=0.0,
            reasoning=reasoning,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "scientific_name": self.scientific_name,
            "common_name": self.common_name,
            "confidence": round(self.confidence, 3),
            "reasoning": self.reasoning,
        }


@dataclass
class ProviderOutcome:
    """Settled result of one provider call: exactly one of vote/error is set."""
    provider: str
    vote: Optional[IdentificationVote] = None
    error: Optional[str] = None
    latency_ms: float = 0.0

    @property
    def has_error(self) -> bool:
        return self.error is not None or self.vote is None


@dataclass
class Suggestion:
    """One ranked candidate offered to the user for disambiguation."""
    common_name: str
    scientific_name: str
    confidence: float
    votes: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "common_name": self.common_name,
            "scientific_name": self.scientific_name,
            "confidence": round(self.confidence, 3),
            "votes": self.votes,
        }


@dataclass
class ResolvedIdentification:
    """Consensus reached: a single confident identification."""
    common_name: str
    scientific_name: str
    confidence: float
    agreement_ratio: float
    models_agreed: int
    total_models: int
    notes: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "common_name": self.common_name,
            "scientific_name": self.scientific_name,
            "confidence": round(self.confidence, 3),
            "agreement_ratio": round(self.agreement_ratio, 3),
            "models_agreed": self.models_agreed,
            "total_models": self.total_models,
            "notes": self.notes,
        }


@dataclass
class SelectionRequired:
    """Consensus gates not met: the user must pick from ranked suggestions."""
    suggestions: List[Suggestion]
    agreement_ratio: float
    models_agreed: int
    total_models: int
    notes: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "suggestions": [s.to_dict() for s in self.suggestions],
            "agreement_ratio": round(self.agreement_ratio, 3),
            "models_agreed": self.models_agreed,
            "total_models": self.total_models,
            "notes": self.notes,
        }


ConsensusResult = Union[ResolvedIdentification, SelectionRequired]


class ClassificationProvider(ABC):
    """
    Abstract base class for identification providers.

    All providers (LLM vision models, external APIs) must implement this
    interface to participate in the consensus system. A provider that sees
    no plant returns ``IdentificationVote.non_plant(...)`` rather than
    raising.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique provider name used in logs and outcomes."""
        pass

    @property
    def provider_type(self) -> str:
        """Provider family identifier (e.g., 'llm_vision', 'plantnet')."""
        return "custom"

    @property
    def is_configured(self) -> bool:
        """Check if the provider has the credentials it needs."""
        return True

    @abstractmethod
    async def classify(self, image: ImageInput) -> IdentificationVote:
        """
        Guess the species shown in an image.

        Args:
            image: Image to classify

        Returns:
            IdentificationVote with names and confidence
        """
        pass

    def get_provider_info(self) -> Dict[str, Any]:
        """Get provider metadata for API responses."""
        return {
            "name": self.name,
            "type": self.provider_type,
            "is_configured": self.is_configured,
        }
