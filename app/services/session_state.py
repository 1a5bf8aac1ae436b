"""
Import session state transitions.

Each function takes the current ImportSession and returns the next one;
nothing here touches a store, so every transition can be tested on its own.

    uploading ─► identifying ─┬─► researching ─► comparing ─► confirming ─► completed
                              └─► needs_selection ─┘ (user picks a species)

    any non-terminal status ─► failed
"""

from typing import Any, Iterable

from app.core.exceptions import InvalidTransition
from app.ml.identification.base import (
    ConsensusResult,
    ResolvedIdentification,
    SelectionRequired,
)
from app.models.enums import SessionStatus
from app.models.session import (
    CareProfile,
    CareSourceRecord,
    ImportSession,
    SessionSuggestion,
    utc_now,
)

# Confidence recorded when the user picks a species from the suggestions
USER_SELECTION_CONFIDENCE = 0.7


def _transition(
    session: ImportSession,
    allowed_from: Iterable[SessionStatus],
    action: str,
    **updates: Any
) -> ImportSession:
    if session.status not in allowed_from:
        raise InvalidTransition(session.status.value, action)
    return session.model_copy(update={**updates, "updated_at": utc_now()})


def begin_identification(session: ImportSession, image_url: str) -> ImportSession:
    """uploading → identifying once an image reference is available."""
    return _transition(
        session,
        {SessionStatus.UPLOADING},
        "identify",
        status=SessionStatus.IDENTIFYING,
        image_url=image_url,
        current_action="Identifying plant",
    )


def apply_consensus(session: ImportSession, result: ConsensusResult) -> ImportSession:
    """identifying → researching (resolved) or needs_selection (ambiguous)."""
    if isinstance(result, ResolvedIdentification):
        return _transition(
            session,
            {SessionStatus.IDENTIFYING},
            "resolve",
            status=SessionStatus.RESEARCHING,
            identified_species=result.common_name,
            scientific_name=result.scientific_name,
            confidence=round(result.confidence, 3),
            suggestions=None,
            current_action=f"Researching care for {result.common_name}",
        )

    if isinstance(result, SelectionRequired):
        return _transition(
            session,
            {SessionStatus.IDENTIFYING},
            "request selection for",
            status=SessionStatus.NEEDS_SELECTION,
            suggestions=[
                SessionSuggestion(
                    common_name=s.common_name,
                    scientific_name=s.scientific_name,
                    confidence=round(s.confidence, 3),
                    votes=s.votes,
                )
                for s in result.suggestions
            ],
            current_action="Waiting for species selection",
        )

    raise TypeError(f"Unsupported consensus result: {type(result).__name__}")


def select_species(
    session: ImportSession,
    species: str,
    scientific_name: str
) -> ImportSession:
    """needs_selection → researching with the species the user picked."""
    return _transition(
        session,
        {SessionStatus.NEEDS_SELECTION},
        "select a species for",
        status=SessionStatus.RESEARCHING,
        identified_species=species,
        scientific_name=scientific_name,
        confidence=USER_SELECTION_CONFIDENCE,
        suggestions=None,
        current_action=f"Researching care for {species}",
    )


def record_source(session: ImportSession, source: CareSourceRecord) -> ImportSession:
    """researching/comparing → comparing, appending an accepted source."""
    sources = [*session.care_sources, source]
    return _transition(
        session,
        {SessionStatus.RESEARCHING, SessionStatus.COMPARING},
        "record a source for",
        status=SessionStatus.COMPARING,
        care_sources=sources,
        current_action=f"Comparing {len(sources)} source(s)",
    )


def finalize_profile(session: ImportSession, profile: CareProfile) -> ImportSession:
    """comparing → confirming with the consolidated care profile."""
    return _transition(
        session,
        {SessionStatus.COMPARING},
        "finalize",
        status=SessionStatus.CONFIRMING,
        care_profile=profile,
        current_action="Waiting for confirmation",
    )


def complete(session: ImportSession, plant_id: str) -> ImportSession:
    """confirming → completed, linking the finished plant record."""
    return _transition(
        session,
        {SessionStatus.CONFIRMING},
        "complete",
        status=SessionStatus.COMPLETED,
        plant_id=plant_id,
        current_action=None,
    )


def fail(session: ImportSession, message: str) -> ImportSession:
    """Any non-terminal status → failed with a user-facing message."""
    non_terminal = [s for s in SessionStatus if not s.is_terminal]
    return _transition(
        session,
        non_terminal,
        "fail",
        status=SessionStatus.FAILED,
        error_message=message,
        current_action=None,
    )


def changes(before: ImportSession, after: ImportSession) -> dict[str, Any]:
    """Fields that differ between two versions of the same session."""
    return {
        name: getattr(after, name)
        for name in ImportSession.model_fields
        if getattr(before, name) != getattr(after, name)
    }
