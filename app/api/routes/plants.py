"""
Plant record endpoints.

Read-only access to the plants created by confirmed imports.
"""

from fastapi import APIRouter, Depends, HTTPException

from app.core.dependencies import get_plant_store
from app.models.schemas import ErrorResponse
from app.models.session import PlantRecord
from app.services.stores import PlantRecordStore

router = APIRouter(prefix="/plants", tags=["Plants"])


@router.get("", response_model=list[PlantRecord], summary="List plants")
async def list_plants(
    store: PlantRecordStore = Depends(get_plant_store)
) -> list[PlantRecord]:
    return await store.list()


@router.get(
    "/{plant_id}",
    response_model=PlantRecord,
    responses={404: {"model": ErrorResponse, "description": "Plant not found"}},
    summary="Get plant",
)
async def get_plant(
    plant_id: str,
    store: PlantRecordStore = Depends(get_plant_store)
) -> PlantRecord:
    plant = await store.get(plant_id)
    if plant is None:
        raise HTTPException(status_code=404, detail=f"Plant {plant_id} not found")
    return plant
