"""
Identification Package

Provides multi-provider plant identification with consensus resolution.

Components:
- ClassificationProvider: Base interface for all providers
- ProviderRegistry: Manages providers and concurrent fan-out
- ConsensusResolver: Reconciles votes into an identification or suggestions
"""

from app.ml.identification.base import (
    ClassificationProvider,
    ConsensusResult,
    IdentificationVote,
    ImageInput,
    ProviderOutcome,
    ResolvedIdentification,
    SelectionRequired,
    Suggestion,
)
from app.ml.identification.registry import ProviderRegistry
from app.ml.identification.consensus_engine import ConsensusResolver

__all__ = [
    "ClassificationProvider",
    "ConsensusResult",
    "IdentificationVote",
    "ImageInput",
    "ProviderOutcome",
    "ResolvedIdentification",
    "SelectionRequired",
    "Suggestion",
    "ProviderRegistry",
    "ConsensusResolver",
]
