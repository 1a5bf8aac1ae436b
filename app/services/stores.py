"""
Session and plant-record stores.

The pipeline depends only on the abstract interfaces; the in-memory
implementations back the API by default and are what tests use. Each
operation is atomic at the record level.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from app.core.exceptions import PersistenceFailure, SessionNotFound
from app.models.session import CareProfile, ImportSession, PlantRecord

logger = logging.getLogger(__name__)


class SessionStore(ABC):
    """Persistence for ImportSession records."""

    @abstractmethod
    async def get(self, session_id: str) -> Optional[ImportSession]:
        pass

    @abstractmethod
    async def create(self, session: ImportSession) -> ImportSession:
        pass

    @abstractmethod
    async def update(self, session_id: str, fields: dict[str, Any]) -> ImportSession:
        """Apply a partial update atomically; raises SessionNotFound."""
        pass

    @abstractmethod
    async def delete(self, session_id: str) -> bool:
        pass

    @abstractmethod
    async def list(self) -> list[ImportSession]:
        """All sessions, newest first."""
        pass


class PlantRecordStore(ABC):
    """Persistence for finished plant records."""

    @abstractmethod
    async def create(self, profile: CareProfile, session: ImportSession) -> str:
        """Create a plant from a confirmed import and return its id."""
        pass

    @abstractmethod
    async def get(self, plant_id: str) -> Optional[PlantRecord]:
        pass

    @abstractmethod
    async def delete(self, plant_id: str) -> bool:
        pass

    @abstractmethod
    async def list(self) -> list[PlantRecord]:
        pass


class InMemorySessionStore(SessionStore):
    """In-memory session store (would be a database table in production)."""

    def __init__(self):
        self._sessions: dict[str, ImportSession] = {}
        self._lock = asyncio.Lock()

    async def get(self, session_id: str) -> Optional[ImportSession]:
        return self._sessions.get(session_id)

    async def create(self, session: ImportSession) -> ImportSession:
        async with self._lock:
            if session.id in self._sessions:
                raise PersistenceFailure(f"Import session {session.id} already exists")
            self._sessions[session.id] = session
        logger.debug(f"Created import session {session.id}")
        return session

    async def update(self, session_id: str, fields: dict[str, Any]) -> ImportSession:
        async with self._lock:
            current = self._sessions.get(session_id)
            if current is None:
                raise SessionNotFound(session_id)
            unknown = set(fields) - set(ImportSession.model_fields)
            if unknown:
                raise PersistenceFailure(f"Unknown session field(s): {', '.join(sorted(unknown))}")
            updated = current.model_copy(update=fields)
            self._sessions[session_id] = updated
        return updated

    async def delete(self, session_id: str) -> bool:
        async with self._lock:
            return self._sessions.pop(session_id, None) is not None

    async def list(self) -> list[ImportSession]:
        return sorted(self._sessions.values(), key=lambda s: s.created_at, reverse=True)


class InMemoryPlantRecordStore(PlantRecordStore):
    """In-memory plant store."""

    def __init__(self):
        self._plants: dict[str, PlantRecord] = {}

    async def create(self, profile: CareProfile, session: ImportSession) -> str:
        if not session.identified_species:
            raise PersistenceFailure("Cannot create a plant without an identified species")

        plant = PlantRecord(
            name=session.identified_species,
            species=session.identified_species,
            scientific_name=session.scientific_name,
            image_url=session.image_url,
            sunlight_level=profile.sunlight_level,
            watering_frequency_days=profile.watering_days,
            fertilizing_frequency_days=profile.fertilizing_days,
            humidity_preference=profile.humidity,
            temperature_range=profile.temperature_range,
            care_notes=profile.care_notes,
            sources=list(session.care_sources),
        )
        self._plants[plant.id] = plant
        logger.info(f"Created plant {plant.id} ({plant.species})")
        return plant.id

    async def get(self, plant_id: str) -> Optional[PlantRecord]:
        return self._plants.get(plant_id)

    async def delete(self, plant_id: str) -> bool:
        return self._plants.pop(plant_id, None) is not None

    async def list(self) -> list[PlantRecord]:
        return sorted(self._plants.values(), key=lambda p: p.created_at, reverse=True)
