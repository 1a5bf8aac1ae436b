"""
Tests for import session state transitions.
"""

import pytest

from app.core.exceptions import InvalidTransition
from app.ml.identification.base import ResolvedIdentification, SelectionRequired, Suggestion
from app.models.enums import SessionStatus
from app.models.session import CareProfile, CareSourceRecord, ImportSession
from app.services import session_state


@pytest.fixture
def care_source():
    return CareSourceRecord(
        source_name="RHS",
        source_url="https://rhs.org.uk/snake",
        watering_days=7,
        fertilizing_days=30,
        sunlight_level="low",
        humidity="low",
        temperature_range="60-85°F",
    )


@pytest.fixture
def profile():
    return CareProfile(
        watering_days=8,
        fertilizing_days=35,
        sunlight_level="low",
        humidity="low",
        temperature_range="60-85°F",
        care_notes="Let the soil dry.",
    )


def identifying_session():
    session = ImportSession(image_url="https://example.com/p.jpg")
    return session_state.begin_identification(session, session.image_url)


class TestSessionTransitions:
    """Test suite for the session state machine."""

    def test_new_session_is_uploading(self):
        assert ImportSession().status == SessionStatus.UPLOADING

    def test_begin_identification(self):
        session = identifying_session()

        assert session.status == SessionStatus.IDENTIFYING
        assert session.image_url == "https://example.com/p.jpg"

    def test_resolved_consensus_moves_to_researching(self):
        result = ResolvedIdentification(
            common_name="Snake Plant",
            scientific_name="Dracaena trifasciata",
            confidence=0.87666,
            agreement_ratio=1.0,
            models_agreed=3,
            total_models=3,
        )

        session = session_state.apply_consensus(identifying_session(), result)

        assert session.status == SessionStatus.RESEARCHING
        assert session.identified_species == "Snake Plant"
        assert session.scientific_name == "Dracaena trifasciata"
        assert session.confidence == 0.877

    def test_ambiguous_consensus_moves_to_needs_selection(self):
        result = SelectionRequired(
            suggestions=[
                Suggestion("Rubber Plant", "Ficus elastica", 0.7, 1),
                Suggestion("Fiddle Leaf Fig", "Ficus lyrata", 0.8, 1),
            ],
            agreement_ratio=0.5,
            models_agreed=1,
            total_models=2,
        )

        session = session_state.apply_consensus(identifying_session(), result)

        assert session.status == SessionStatus.NEEDS_SELECTION
        assert [s.scientific_name for s in session.suggestions] == ["Ficus elastica", "Ficus lyrata"]
        assert session.identified_species is None

    def test_select_species(self):
        session = ImportSession(status=SessionStatus.NEEDS_SELECTION, suggestions=[])

        selected = session_state.select_species(session, "Fiddle Leaf Fig", "Ficus lyrata")

        assert selected.status == SessionStatus.RESEARCHING
        assert selected.confidence == 0.7
        assert selected.suggestions is None
        assert selected.identified_species == "Fiddle Leaf Fig"

    def test_select_requires_needs_selection(self):
        with pytest.raises(InvalidTransition) as exc_info:
            session_state.select_species(ImportSession(status=SessionStatus.RESEARCHING), "A", "B")

        assert exc_info.value.current == "researching"

    def test_record_source_appends(self, care_source):
        session = ImportSession(status=SessionStatus.RESEARCHING)

        first = session_state.record_source(session, care_source)
        second = session_state.record_source(first, care_source)

        assert first.status == SessionStatus.COMPARING
        assert len(first.care_sources) == 1
        assert len(second.care_sources) == 2
        assert session.care_sources == []

    def test_finalize_and_complete(self, care_source, profile):
        session = session_state.record_source(
            ImportSession(status=SessionStatus.RESEARCHING), care_source
        )

        confirming = session_state.finalize_profile(session, profile)
        completed = session_state.complete(confirming, "plant-1")

        assert confirming.status == SessionStatus.CONFIRMING
        assert confirming.care_profile == profile
        assert completed.status == SessionStatus.COMPLETED
        assert completed.plant_id == "plant-1"

    def test_finalize_requires_comparing(self, profile):
        with pytest.raises(InvalidTransition):
            session_state.finalize_profile(ImportSession(status=SessionStatus.RESEARCHING), profile)

    def test_fail_from_non_terminal(self):
        failed = session_state.fail(ImportSession(status=SessionStatus.COMPARING), "No sources")

        assert failed.status == SessionStatus.FAILED
        assert failed.error_message == "No sources"

    @pytest.mark.parametrize("status", [SessionStatus.COMPLETED, SessionStatus.FAILED])
    def test_terminal_sessions_cannot_fail(self, status):
        with pytest.raises(InvalidTransition):
            session_state.fail(ImportSession(status=status), "late failure")

    def test_changes_lists_updated_fields(self, care_source):
        before = ImportSession(status=SessionStatus.RESEARCHING)
        after = session_state.record_source(before, care_source)

        changed = session_state.changes(before, after)

        assert set(changed) >= {"status", "care_sources", "current_action"}
        assert "id" not in changed
        assert "image_url" not in changed
