# ML module initialization
from app.ml.identification import ConsensusResolver, ProviderRegistry

__all__ = [
    "ConsensusResolver",
    "ProviderRegistry",
]
