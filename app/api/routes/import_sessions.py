"""
Import session endpoints.

A client uploads a photo elsewhere, creates a session with the image URL
and polls the session while identification and care research run in the
background:
- Create / list / get / delete sessions
- Select a species when identification was ambiguous
- Confirm the consolidated care profile
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from app.core.dependencies import get_import_pipeline
from app.core.exceptions import InvalidTransition, PersistenceFailure, SessionNotFound
from app.models.schemas import (
    CreateSessionRequest,
    ErrorResponse,
    ImportSessionResponse,
    SelectionRequest,
)
from app.models.session import ImportSession
from app.services.import_pipeline import ImportPipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/import-sessions", tags=["Import"])


@router.post(
    "",
    status_code=202,
    response_model=ImportSessionResponse,
    summary="Start a plant import",
    description="""
    Create an import session for an uploaded photo.

    Identification and care research run in the background; poll
    `GET /import-sessions/{id}` to follow progress. The session ends in
    `confirming` (ready to confirm), `needs_selection` (pick one of the
    suggestions) or `failed` (see `error_message`).
    """
)
async def create_import_session(
    request: CreateSessionRequest,
    background_tasks: BackgroundTasks,
    pipeline: ImportPipeline = Depends(get_import_pipeline)
) -> ImportSession:
    session = await pipeline.create_session(request.image_url)
    background_tasks.add_task(pipeline.run, session.id)
    logger.info(f"Queued import session {session.id}")
    return session


@router.get(
    "",
    response_model=list[ImportSessionResponse],
    summary="List import sessions",
)
async def list_import_sessions(
    pipeline: ImportPipeline = Depends(get_import_pipeline)
) -> list[ImportSession]:
    """All import sessions, newest first."""
    return await pipeline.list_sessions()


@router.get(
    "/{session_id}",
    response_model=ImportSessionResponse,
    responses={404: {"model": ErrorResponse, "description": "Session not found"}},
    summary="Get import session",
)
async def get_import_session(
    session_id: str,
    pipeline: ImportPipeline = Depends(get_import_pipeline)
) -> ImportSession:
    """Current state of an import session (used for polling)."""
    try:
        return await pipeline.get_session(session_id)
    except SessionNotFound as e:
        raise HTTPException(status_code=404, detail=e.message)


@router.delete(
    "/{session_id}",
    status_code=204,
    responses={404: {"model": ErrorResponse, "description": "Session not found"}},
    summary="Delete import session",
)
async def delete_import_session(
    session_id: str,
    pipeline: ImportPipeline = Depends(get_import_pipeline)
) -> None:
    """
    Delete a session.

    Background work on a deleted session stops at its next step.
    """
    try:
        await pipeline.delete_session(session_id)
    except SessionNotFound as e:
        raise HTTPException(status_code=404, detail=e.message)


@router.post(
    "/{session_id}/select",
    response_model=ImportSessionResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Session not found"},
        409: {"model": ErrorResponse, "description": "Session is not waiting for a selection"},
    },
    summary="Select a species",
)
async def select_species(
    session_id: str,
    request: SelectionRequest,
    background_tasks: BackgroundTasks,
    pipeline: ImportPipeline = Depends(get_import_pipeline)
) -> ImportSession:
    """Pick one of the suggested species; care research continues in the background."""
    try:
        session = await pipeline.select(session_id, request.species, request.scientific_name)
    except SessionNotFound as e:
        raise HTTPException(status_code=404, detail=e.message)
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=e.message)

    background_tasks.add_task(pipeline.resume_research, session_id)
    return session


@router.post(
    "/{session_id}/confirm",
    response_model=ImportSessionResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Session not found"},
        409: {"model": ErrorResponse, "description": "Session has no care profile to confirm"},
        500: {"model": ErrorResponse, "description": "The plant could not be saved; the session is failed"},
    },
    summary="Confirm the care profile",
)
async def confirm_import(
    session_id: str,
    pipeline: ImportPipeline = Depends(get_import_pipeline)
) -> ImportSession:
    """Create the plant from the consolidated care profile and complete the session."""
    try:
        return await pipeline.confirm(session_id)
    except SessionNotFound as e:
        raise HTTPException(status_code=404, detail=e.message)
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=e.message)
    except PersistenceFailure as e:
        raise HTTPException(status_code=500, detail=e.message)
