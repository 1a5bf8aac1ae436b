"""
Domain records for the import pipeline.

ImportSession is the aggregate root and unit of persistence. All records
are immutable; the session state machine produces updated copies.
"""

from datetime import datetime, timezone
from typing import Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import SessionStatus, SunlightLevel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionSuggestion(BaseModel):
    """Candidate species offered when identification is ambiguous."""
    model_config = ConfigDict(frozen=True)

    common_name: str
    scientific_name: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    votes: int = Field(..., ge=1)


class CareSourceRecord(BaseModel):
    """Care claims extracted from one validated source document."""
    model_config = ConfigDict(frozen=True)

    source_name: str
    source_url: Optional[str] = None
    watering_days: float = Field(..., gt=0, description="Days between watering")
    fertilizing_days: float = Field(..., gt=0, description="Days between fertilizing")
    sunlight_level: SunlightLevel
    humidity: str
    temperature_range: str
    care_notes: str = ""
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class CareProfile(BaseModel):
    """Consolidated care parameters derived from several sources."""
    model_config = ConfigDict(frozen=True)

    watering_days: int
    fertilizing_days: int
    sunlight_level: SunlightLevel
    humidity: str
    temperature_range: str
    care_notes: str

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")


class ImportSession(BaseModel):
    """
    Persistent record tracking one identification-and-research run.

    ``status`` is the state-machine discriminator; see
    ``app.services.session_state`` for the allowed transitions.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    status: SessionStatus = SessionStatus.UPLOADING
    image_url: Optional[str] = None
    identified_species: Optional[str] = None
    scientific_name: Optional[str] = None
    confidence: Optional[float] = None
    suggestions: Optional[list[SessionSuggestion]] = None
    care_sources: list[CareSourceRecord] = Field(default_factory=list)
    care_profile: Optional[CareProfile] = None
    error_message: Optional[str] = None
    plant_id: Optional[str] = None
    current_action: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class PlantRecord(BaseModel):
    """Finished plant record created from a confirmed import."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    species: str
    scientific_name: Optional[str] = None
    image_url: Optional[str] = None
    sunlight_level: SunlightLevel
    watering_frequency_days: int
    fertilizing_frequency_days: int
    humidity_preference: str
    temperature_range: str
    care_notes: str
    sources: list[CareSourceRecord] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
