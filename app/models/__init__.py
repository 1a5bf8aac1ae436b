# Data models module
from app.models.session import (
    CareProfile,
    CareSourceRecord,
    ImportSession,
    PlantRecord,
    SessionSuggestion,
)
from app.models.schemas import (
    CareExtraction,
    CreateSessionRequest,
    IdentificationGuess,
    ImportSessionResponse,
    ResearchRequest,
    ResearchResponse,
    SelectionRequest,
)
from app.models.enums import CareField, SessionStatus, SunlightLevel

__all__ = [
    "CareProfile",
    "CareSourceRecord",
    "ImportSession",
    "PlantRecord",
    "SessionSuggestion",
    "CareExtraction",
    "CreateSessionRequest",
    "IdentificationGuess",
    "ImportSessionResponse",
    "ResearchRequest",
    "ResearchResponse",
    "SelectionRequest",
    "CareField",
    "SessionStatus",
    "SunlightLevel",
]
