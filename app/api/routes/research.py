"""
Care research endpoint.

Runs the research and consolidation stages synchronously for a species
the caller already knows, without creating an import session.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from app.core.dependencies import get_import_pipeline
from app.core.exceptions import InsufficientSources
from app.models.schemas import ErrorResponse, ResearchRequest, ResearchResponse
from app.services.import_pipeline import ImportPipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/research", tags=["Research"])


@router.post(
    "",
    response_model=ResearchResponse,
    responses={
        422: {"model": ErrorResponse, "description": "Not enough reliable sources"},
    },
    summary="Research plant care",
)
async def research_care(
    request: ResearchRequest,
    pipeline: ImportPipeline = Depends(get_import_pipeline)
) -> ResearchResponse:
    """
    Research care requirements for a species.

    Searches the web, validates each source and consolidates the accepted
    ones into a single care profile.
    """
    logger.info(f"Received research request for {request.species}")
    try:
        profile, report = await pipeline.research_species(
            request.species, request.scientific_name
        )
    except InsufficientSources as e:
        raise HTTPException(status_code=422, detail=e.message)

    return ResearchResponse(
        care_profile=profile,
        sources=report.sources,
        queries_tried=report.queries_tried,
        documents_examined=report.documents_examined,
    )
