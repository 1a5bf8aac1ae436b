"""
Tests for ImportPipeline - the session state machine end to end.

Providers and research are faked; stores, consensus, consolidation and the
transitions are the real implementations.
"""

import pytest

from app.core.exceptions import (
    InsufficientSources,
    InvalidTransition,
    PersistenceFailure,
    SessionNotFound,
)
from app.ml.identification.base import (
    ClassificationProvider,
    IdentificationVote,
    ImageInput,
)
from app.ml.identification.consensus_engine import ConsensusResolver
from app.ml.identification.registry import ProviderRegistry
from app.models.enums import SessionStatus, SunlightLevel
from app.models.session import CareSourceRecord
from app.services.import_pipeline import GENERIC_FAILURE_MESSAGE, ImportPipeline
from app.services.research_orchestrator import ResearchReport
from app.services.stores import InMemoryPlantRecordStore, InMemorySessionStore

IMAGE_URL = "https://example.com/photos/snake-plant.jpg"


class StaticProvider(ClassificationProvider):
    def __init__(self, name, scientific, common, confidence):
        self._name = name
        self.vote = IdentificationVote(name, scientific, common, confidence)

    @property
    def name(self):
        return self._name

    async def classify(self, image):
        return self.vote


class FakeOrchestrator:
    """Reports each configured source through the callback, like the real one."""

    def __init__(self, sources=None, error=None, before_source=None):
        self.sources = sources or []
        self.error = error
        self.before_source = before_source
        self.calls = []

    async def research(self, species, scientific_name=None, on_source_accepted=None):
        self.calls.append((species, scientific_name))
        for index, source in enumerate(self.sources, start=1):
            if self.before_source is not None:
                await self.before_source(index)
            if on_source_accepted is not None:
                await on_source_accepted(source, index)
        if self.error is not None:
            raise self.error
        return ResearchReport(sources=list(self.sources), queries_tried=1, documents_examined=3)


def care(watering, fertilizing, sunlight, humidity="low", notes=""):
    return CareSourceRecord(
        source_name="Source",
        watering_days=watering,
        fertilizing_days=fertilizing,
        sunlight_level=sunlight,
        humidity=humidity,
        temperature_range="60-85°F",
        care_notes=notes,
    )


SNAKE_PLANT_SOURCES = [
    care(7, 30, "low", notes="Drought tolerant."),
    care(10, 30, "low", humidity="moderate"),
    care(7, 45, "bright"),
]


def registry_with(*votes):
    registry = ProviderRegistry(timeout=1)
    for index, (scientific, common, confidence) in enumerate(votes):
        registry.register(StaticProvider(f"model-{index}", scientific, common, confidence))
    return registry


def snake_plant_registry():
    return registry_with(
        ("Dracaena trifasciata", "Snake Plant", 0.9),
        ("Dracaena trifasciata", "Snake Plant", 0.85),
        ("Dracaena trifasciata", "Snake Plant", 0.88),
    )


class FailingSessionStore(InMemorySessionStore):
    """Rejects updates that touch ``field``."""

    def __init__(self, field):
        super().__init__()
        self.field = field

    async def update(self, session_id, fields):
        if self.field in fields:
            raise RuntimeError("database is locked")
        return await super().update(session_id, fields)


class FailingPlantStore(InMemoryPlantRecordStore):
    def __init__(self, error=None, before_create=None):
        super().__init__()
        self.error = error
        self.before_create = before_create

    async def create(self, profile, session):
        if self.before_create is not None:
            await self.before_create(session)
        if self.error is not None:
            raise self.error
        return await super().create(profile, session)


def build_pipeline(registry=None, orchestrator=None, auto_confirm=False, store=None, plant_store=None):
    return ImportPipeline(
        store=store or InMemorySessionStore(),
        plant_store=plant_store or InMemoryPlantRecordStore(),
        registry=registry if registry is not None else snake_plant_registry(),
        resolver=ConsensusResolver(),
        orchestrator=orchestrator or FakeOrchestrator(SNAKE_PLANT_SOURCES),
        auto_confirm=auto_confirm,
    )


class TestImportPipeline:
    """Test suite for ImportPipeline."""

    @pytest.mark.asyncio
    async def test_snake_plant_end_to_end(self):
        pipeline = build_pipeline()
        session = await pipeline.create_session(IMAGE_URL)
        assert session.status == SessionStatus.UPLOADING

        await pipeline.run(session.id, ImageInput(url=IMAGE_URL))

        session = await pipeline.get_session(session.id)
        assert session.status == SessionStatus.CONFIRMING
        assert session.identified_species == "Snake Plant"
        assert session.scientific_name == "Dracaena trifasciata"
        assert session.confidence == pytest.approx(0.877)
        assert len(session.care_sources) == 3
        assert session.care_profile.watering_days == 8
        assert session.care_profile.fertilizing_days == 35
        assert session.care_profile.sunlight_level == SunlightLevel.LOW
        assert session.care_profile.humidity == "low"

        completed = await pipeline.confirm(session.id)

        assert completed.status == SessionStatus.COMPLETED
        plant = await pipeline.plant_store.get(completed.plant_id)
        assert plant.species == "Snake Plant"
        assert plant.watering_frequency_days == 8
        assert len(plant.sources) == 3

    @pytest.mark.asyncio
    async def test_auto_confirm(self):
        pipeline = build_pipeline(auto_confirm=True)
        session = await pipeline.create_session(IMAGE_URL)

        await pipeline.run(session.id, ImageInput(url=IMAGE_URL))

        session = await pipeline.get_session(session.id)
        assert session.status == SessionStatus.COMPLETED
        assert session.plant_id is not None

    @pytest.mark.asyncio
    async def test_progress_is_committed_per_source(self):
        statuses = []
        pipeline = None

        async def before_source(index):
            current = await pipeline.get_session(session.id)
            statuses.append((current.status, len(current.care_sources)))

        orchestrator = FakeOrchestrator(SNAKE_PLANT_SOURCES, before_source=before_source)
        pipeline = build_pipeline(orchestrator=orchestrator)
        session = await pipeline.create_session(IMAGE_URL)

        await pipeline.run(session.id, ImageInput(url=IMAGE_URL))

        assert statuses == [
            (SessionStatus.RESEARCHING, 0),
            (SessionStatus.COMPARING, 1),
            (SessionStatus.COMPARING, 2),
        ]

    @pytest.mark.asyncio
    async def test_ambiguous_identification_then_selection(self):
        orchestrator = FakeOrchestrator(SNAKE_PLANT_SOURCES)
        pipeline = build_pipeline(
            registry=registry_with(
                ("Ficus elastica", "Rubber Plant", 0.7),
                ("Ficus lyrata", "Fiddle Leaf Fig", 0.8),
                ("Ficus benjamina", "Weeping Fig", 0.75),
            ),
            orchestrator=orchestrator,
        )
        session = await pipeline.create_session(IMAGE_URL)

        await pipeline.run(session.id, ImageInput(url=IMAGE_URL))

        session = await pipeline.get_session(session.id)
        assert session.status == SessionStatus.NEEDS_SELECTION
        assert session.suggestions[0].scientific_name == "Ficus lyrata"
        assert orchestrator.calls == []

        selected = await pipeline.select(session.id, "Fiddle Leaf Fig", "Ficus lyrata")
        assert selected.status == SessionStatus.RESEARCHING
        assert selected.confidence == 0.7

        await pipeline.resume_research(session.id)

        session = await pipeline.get_session(session.id)
        assert session.status == SessionStatus.CONFIRMING
        assert orchestrator.calls == [("Fiddle Leaf Fig", "Ficus lyrata")]

    @pytest.mark.asyncio
    async def test_select_outside_needs_selection(self):
        pipeline = build_pipeline()
        session = await pipeline.create_session(IMAGE_URL)

        with pytest.raises(InvalidTransition):
            await pipeline.select(session.id, "Snake Plant", "Dracaena trifasciata")

    @pytest.mark.asyncio
    async def test_non_plant_photo_fails_session(self):
        pipeline = build_pipeline(
            registry=registry_with(
                ("Unknown Plant", "Unknown Plant", 0.0),
                ("Unknown Plant", "Unknown Plant", 0.0),
            )
        )
        session = await pipeline.create_session(IMAGE_URL)

        await pipeline.run(session.id, ImageInput(url=IMAGE_URL))

        session = await pipeline.get_session(session.id)
        assert session.status == SessionStatus.FAILED
        assert "No plant was detected" in session.error_message

    @pytest.mark.asyncio
    async def test_no_providers_fails_session(self):
        pipeline = build_pipeline(registry=ProviderRegistry())
        session = await pipeline.create_session(IMAGE_URL)

        await pipeline.run(session.id, ImageInput(url=IMAGE_URL))

        session = await pipeline.get_session(session.id)
        assert session.status == SessionStatus.FAILED
        assert "All identification providers failed" in session.error_message

    @pytest.mark.asyncio
    async def test_insufficient_sources_fails_session(self):
        orchestrator = FakeOrchestrator(
            SNAKE_PLANT_SOURCES[:1], error=InsufficientSources(found=1, required=3)
        )
        pipeline = build_pipeline(orchestrator=orchestrator)
        session = await pipeline.create_session(IMAGE_URL)

        await pipeline.run(session.id, ImageInput(url=IMAGE_URL))

        session = await pipeline.get_session(session.id)
        assert session.status == SessionStatus.FAILED
        assert "Found 1 valid source(s) out of 3 required" in session.error_message
        assert len(session.care_sources) == 1

    @pytest.mark.asyncio
    async def test_unexpected_error_stored_with_generic_message(self):
        pipeline = build_pipeline(orchestrator=FakeOrchestrator(error=RuntimeError("boom")))
        session = await pipeline.create_session(IMAGE_URL)

        await pipeline.run(session.id, ImageInput(url=IMAGE_URL))

        session = await pipeline.get_session(session.id)
        assert session.status == SessionStatus.FAILED
        assert session.error_message == GENERIC_FAILURE_MESSAGE

    @pytest.mark.asyncio
    async def test_deleted_session_stops_pipeline(self):
        pipeline = None

        async def delete_mid_research(index):
            if index == 2:
                await pipeline.delete_session(session.id)

        orchestrator = FakeOrchestrator(SNAKE_PLANT_SOURCES, before_source=delete_mid_research)
        pipeline = build_pipeline(orchestrator=orchestrator)
        session = await pipeline.create_session(IMAGE_URL)

        await pipeline.run(session.id, ImageInput(url=IMAGE_URL))

        assert await pipeline.store.get(session.id) is None
        assert await pipeline.plant_store.list() == []

    @pytest.mark.asyncio
    async def test_confirm_requires_profile(self):
        pipeline = build_pipeline()
        session = await pipeline.create_session(IMAGE_URL)

        with pytest.raises(InvalidTransition):
            await pipeline.confirm(session.id)

    @pytest.mark.asyncio
    async def test_research_species_without_session(self):
        pipeline = build_pipeline()

        profile, report = await pipeline.research_species("Snake Plant")

        assert profile.watering_days == 8
        assert report.documents_examined == 3
        assert pipeline.orchestrator.calls == [("Snake Plant", "Snake Plant")]

    @pytest.mark.asyncio
    async def test_plant_store_failure_fails_session(self):
        pipeline = build_pipeline(plant_store=FailingPlantStore(error=RuntimeError("db down")))
        session = await pipeline.create_session(IMAGE_URL)
        await pipeline.run(session.id, ImageInput(url=IMAGE_URL))

        with pytest.raises(PersistenceFailure):
            await pipeline.confirm(session.id)

        session = await pipeline.get_session(session.id)
        assert session.status == SessionStatus.FAILED
        assert session.error_message == "Failed to save the new plant"
        assert session.plant_id is None

    @pytest.mark.asyncio
    async def test_session_store_failure_fails_session(self):
        pipeline = build_pipeline(store=FailingSessionStore("care_profile"))
        session = await pipeline.create_session(IMAGE_URL)

        await pipeline.run(session.id, ImageInput(url=IMAGE_URL))

        session = await pipeline.get_session(session.id)
        assert session.status == SessionStatus.FAILED
        assert session.error_message == "Failed to save import progress"
        assert session.care_profile is None

    @pytest.mark.asyncio
    async def test_failed_completion_removes_plant(self):
        pipeline = build_pipeline(store=FailingSessionStore("plant_id"))
        session = await pipeline.create_session(IMAGE_URL)
        await pipeline.run(session.id, ImageInput(url=IMAGE_URL))

        with pytest.raises(PersistenceFailure):
            await pipeline.confirm(session.id)

        session = await pipeline.get_session(session.id)
        assert session.status == SessionStatus.FAILED
        assert session.error_message == "Failed to save import progress"
        assert await pipeline.plant_store.list() == []

    @pytest.mark.asyncio
    async def test_session_deleted_during_confirm_removes_plant(self):
        pipeline = None

        async def delete_session(session):
            await pipeline.delete_session(session.id)

        pipeline = build_pipeline(plant_store=FailingPlantStore(before_create=delete_session))
        session = await pipeline.create_session(IMAGE_URL)
        await pipeline.run(session.id, ImageInput(url=IMAGE_URL))

        with pytest.raises(SessionNotFound):
            await pipeline.confirm(session.id)

        assert await pipeline.store.get(session.id) is None
        assert await pipeline.plant_store.list() == []
