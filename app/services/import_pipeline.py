"""
Plant Import Pipeline

Drives an import session through identification, care research and
confirmation. Every step loads the session, applies a pure transition from
``session_state`` and commits only the changed fields to the store, so a
polling client always sees a consistent record.

Flow:
    create_session ─► run (background)
                        ├─ identify ─► needs_selection ─► select ─► resume_research
                        └─ research ─► confirming ─► confirm (or auto-confirm)

A session deleted while the pipeline is working is detected before each
commit and stops the pipeline without an error.
"""

import logging
from typing import Awaitable, Callable, List, Optional, Tuple

from app.core.config import Settings, get_settings
from app.core.exceptions import (
    InvalidTransition,
    PersistenceFailure,
    PlantImportError,
    SessionNotFound,
)
from app.ml.identification import ConsensusResolver, ImageInput, ProviderRegistry
from app.models.enums import SessionStatus
from app.models.session import CareProfile, CareSourceRecord, ImportSession
from app.services import session_state
from app.services.consolidation import DEFAULT_NOTES_MAX_LENGTH, consolidate_care
from app.services.research_orchestrator import ResearchOrchestrator, ResearchReport
from app.services.stores import PlantRecordStore, SessionStore

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Something went wrong while importing this plant. Please try again."


class ImportPipeline:
    """
    State machine controller for plant import sessions.

    Usage:
        pipeline = ImportPipeline(store, plant_store, registry, resolver, orchestrator)
        session = await pipeline.create_session(image_url)
        await pipeline.run(session.id)
    """

    def __init__(
        self,
        store: SessionStore,
        plant_store: PlantRecordStore,
        registry: ProviderRegistry,
        resolver: ConsensusResolver,
        orchestrator: ResearchOrchestrator,
        auto_confirm: bool = False,
        notes_max_length: int = DEFAULT_NOTES_MAX_LENGTH,
    ):
        self.store = store
        self.plant_store = plant_store
        self.registry = registry
        self.resolver = resolver
        self.orchestrator = orchestrator
        self.auto_confirm = auto_confirm
        self.notes_max_length = notes_max_length

    @classmethod
    def from_settings(
        cls,
        store: SessionStore,
        plant_store: PlantRecordStore,
        registry: ProviderRegistry,
        resolver: ConsensusResolver,
        orchestrator: ResearchOrchestrator,
        settings: Optional[Settings] = None,
    ) -> "ImportPipeline":
        settings = settings or get_settings()
        return cls(
            store,
            plant_store,
            registry,
            resolver,
            orchestrator,
            auto_confirm=settings.auto_confirm,
            notes_max_length=settings.care_notes_max_length,
        )

    # === Session access ===

    async def create_session(self, image_url: str) -> ImportSession:
        """Create a new session in ``uploading`` status."""
        session = await self.store.create(ImportSession(image_url=image_url))
        logger.info(f"Created import session {session.id}")
        return session

    async def get_session(self, session_id: str) -> ImportSession:
        session = await self.store.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    async def list_sessions(self) -> List[ImportSession]:
        return await self.store.list()

    async def delete_session(self, session_id: str):
        if not await self.store.delete(session_id):
            raise SessionNotFound(session_id)
        logger.info(f"Deleted import session {session_id}")

    # === Background entry points ===

    async def run(self, session_id: str, image: Optional[ImageInput] = None):
        """
        Run identification and, when it resolves, care research.

        Never raises: failures are recorded on the session.
        """
        async def steps():
            session = await self.identify(session_id, image)
            if session.status == SessionStatus.RESEARCHING:
                await self.research(session_id)

        await self._guard(session_id, steps)

    async def resume_research(self, session_id: str):
        """Continue with care research after the user selected a species."""
        await self._guard(session_id, lambda: self.research(session_id))

    # === Pipeline steps ===

    async def identify(
        self,
        session_id: str,
        image: Optional[ImageInput] = None
    ) -> ImportSession:
        """
        Identify the plant in the session's photo.

        Raises:
            NoPlantDetected: Every provider reported a non-plant
            AllProvidersFailed: No provider produced a vote
        """
        session = await self.get_session(session_id)
        if image is None:
            if not session.image_url:
                raise PlantImportError("No photo was provided for this import")
            image = ImageInput(url=session.image_url)

        session = await self._commit(
            session, session_state.begin_identification(session, image.url)
        )

        outcomes = await self.registry.classify_all(image)
        result = self.resolver.resolve_outcomes(outcomes)

        session = await self._commit(session, session_state.apply_consensus(session, result))
        logger.info(
            f"Session {session_id} identification finished with status {session.status.value}"
        )
        return session

    async def research(self, session_id: str) -> ImportSession:
        """
        Research, validate and consolidate care information.

        Raises:
            InsufficientSources: The research quorum was not reached
            InvalidTransition: The session is not in ``researching``
        """
        session = await self.get_session(session_id)
        if session.status != SessionStatus.RESEARCHING:
            raise InvalidTransition(session.status.value, "research")

        current = session

        async def on_source_accepted(source: CareSourceRecord, accepted: int):
            nonlocal current
            current = await self._commit(current, session_state.record_source(current, source))

        report = await self.orchestrator.research(
            session.identified_species,
            session.scientific_name,
            on_source_accepted=on_source_accepted,
        )

        profile = consolidate_care(report.sources, self.notes_max_length)
        current = await self._commit(current, session_state.finalize_profile(current, profile))
        logger.info(
            f"Session {session_id} care profile ready from {len(report.sources)} sources"
        )

        if self.auto_confirm:
            current = await self.confirm(session_id)
        return current

    async def select(
        self,
        session_id: str,
        species: str,
        scientific_name: str
    ) -> ImportSession:
        """
        Record the user's species choice; research continues separately.

        Raises:
            InvalidTransition: The session is not waiting for a selection
        """
        session = await self.get_session(session_id)
        session = await self._commit(
            session, session_state.select_species(session, species, scientific_name)
        )
        logger.info(f"Session {session_id} species selected: {species} ({scientific_name})")
        return session

    async def confirm(self, session_id: str) -> ImportSession:
        """
        Create the finished plant record and complete the session.

        A rejected write fails the session before the error is re-raised.
        A plant created for a session that disappears or cannot be
        completed is deleted again.

        Raises:
            InvalidTransition: The session has no care profile to confirm
            PersistenceFailure: The plant or session store rejected the write
        """
        session = await self.get_session(session_id)
        if session.status != SessionStatus.CONFIRMING or session.care_profile is None:
            raise InvalidTransition(session.status.value, "confirm")

        try:
            plant_id = await self.plant_store.create(session.care_profile, session)
        except PersistenceFailure as e:
            logger.error(f"Plant store rejected session {session_id}: {e.message}")
            await self._fail(session_id, e.message)
            raise
        except Exception as e:
            logger.error(f"Plant store rejected session {session_id}: {e}")
            failure = PersistenceFailure("Failed to save the new plant")
            await self._fail(session_id, failure.message)
            raise failure from e

        try:
            session = await self._commit(session, session_state.complete(session, plant_id))
        except PlantImportError as e:
            await self.plant_store.delete(plant_id)
            logger.info(f"Removed plant {plant_id}, session {session_id} was not completed")
            if not isinstance(e, SessionNotFound):
                await self._fail(session_id, e.message)
            raise

        logger.info(f"Session {session_id} completed, plant {plant_id}")
        return session

    # === Standalone research ===

    async def research_species(
        self,
        species: str,
        scientific_name: Optional[str] = None
    ) -> Tuple[CareProfile, ResearchReport]:
        """Research and consolidate care for a species without a session."""
        report = await self.orchestrator.research(species, scientific_name or species)
        return consolidate_care(report.sources, self.notes_max_length), report

    # === Internals ===

    async def _commit(self, before: ImportSession, after: ImportSession) -> ImportSession:
        """Persist the fields a transition changed, if the session still exists."""
        if await self.store.get(before.id) is None:
            raise SessionNotFound(before.id)

        fields = session_state.changes(before, after)
        if not fields:
            return before

        try:
            return await self.store.update(before.id, fields)
        except PlantImportError:
            raise
        except Exception as e:
            logger.error(f"Failed to save session {before.id}: {e}")
            raise PersistenceFailure() from e

    async def _guard(self, session_id: str, steps: Callable[[], Awaitable[object]]):
        try:
            await steps()
        except SessionNotFound:
            logger.info(f"Import session {session_id} no longer exists, stopping")
        except PlantImportError as e:
            logger.warning(f"Import session {session_id} failed: {e.message}")
            await self._fail(session_id, e.message)
        except Exception as e:
            logger.exception(f"Unexpected error in import session {session_id}: {e}")
            await self._fail(session_id, GENERIC_FAILURE_MESSAGE)

    async def _fail(self, session_id: str, message: str):
        try:
            session = await self.store.get(session_id)
            if session is None or session.status.is_terminal:
                return
            await self.store.update(
                session_id, session_state.changes(session, session_state.fail(session, message))
            )
        except Exception as e:
            logger.error(f"Could not record failure for session {session_id}: {e}")
