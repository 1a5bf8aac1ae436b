# Services module
from app.services.consolidation import consolidate_care
from app.services.import_pipeline import ImportPipeline
from app.services.research_orchestrator import ResearchOrchestrator, ResearchReport
from app.services.stores import (
    InMemoryPlantRecordStore,
    InMemorySessionStore,
    PlantRecordStore,
    SessionStore,
)

__all__ = [
    "consolidate_care",
    "ImportPipeline",
    "ResearchOrchestrator",
    "ResearchReport",
    "InMemoryPlantRecordStore",
    "InMemorySessionStore",
    "PlantRecordStore",
    "SessionStore",
]
