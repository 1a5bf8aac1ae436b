"""
Pydantic schemas for API request/response validation and for the typed
contracts at the LLM capability boundary.

These schemas define the contract between the API and clients,
ensuring type safety and automatic documentation.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional

from app.models.enums import CareField, SunlightLevel
from app.models.session import CareProfile, CareSourceRecord, ImportSession


# === Capability Schemas ===

class IdentificationGuess(BaseModel):
    """Species guess returned by a vision model."""
    species: str = Field(..., description="Common name of the plant")
    scientific_name: str = Field(..., description="Scientific/botanical name")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Confidence level 0-1")
    reasoning: str = Field(default="", description="Visual features used")


class CareExtraction(BaseModel):
    """
    Care recommendation extracted from one source document.

    Every field carries a presence flag so that values the model had to
    default can be told apart from values stated in the source.
    """
    source_name: str = Field(..., description="Name of the source")
    source_url: Optional[str] = Field(default=None, description="URL of the source")
    has_watering_info: bool = Field(..., description="Source explicitly mentions watering frequency")
    watering_frequency_days: float = Field(..., gt=0, description="Days between watering")
    has_fertilizing_info: bool = Field(..., description="Source explicitly mentions fertilizing frequency")
    fertilizing_frequency_days: float = Field(..., gt=0, description="Days between fertilizing")
    has_light_info: bool = Field(..., description="Source explicitly mentions light requirements")
    sunlight_level: SunlightLevel = Field(..., description="Light requirements")
    has_humidity_info: bool = Field(..., description="Source explicitly mentions humidity needs")
    humidity_preference: str = Field(..., description="Humidity needs")
    has_temperature_info: bool = Field(..., description="Source explicitly mentions temperature range")
    temperature_range: str = Field(..., description="Ideal temperature range")
    care_notes: str = Field(default="", description="Care tips stated by the source")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Confidence the data came from the source")

    @field_validator("sunlight_level", mode="before")
    @classmethod
    def normalize_sunlight(cls, v):
        """Accept case variations like 'Bright'."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @property
    def present_fields(self) -> list[CareField]:
        """Care fields the source explicitly covers."""
        flags = {
            CareField.WATERING: self.has_watering_info,
            CareField.FERTILIZING: self.has_fertilizing_info,
            CareField.LIGHT: self.has_light_info,
            CareField.HUMIDITY: self.has_humidity_info,
            CareField.TEMPERATURE: self.has_temperature_info,
        }
        return [name for name, present in flags.items() if present]

    @property
    def present_field_count(self) -> int:
        return len(self.present_fields)

    def to_source_record(self) -> CareSourceRecord:
        """Convert an accepted extraction into an immutable source record."""
        return CareSourceRecord(
            source_name=self.source_name,
            source_url=self.source_url,
            watering_days=self.watering_frequency_days,
            fertilizing_days=self.fertilizing_frequency_days,
            sunlight_level=self.sunlight_level,
            humidity=self.humidity_preference,
            temperature_range=self.temperature_range,
            care_notes=self.care_notes,
            confidence=self.confidence,
        )


# === Request Schemas ===

class CreateSessionRequest(BaseModel):
    """
    Request schema for starting a plant import.

    Attributes:
        image_url: Public URL (or data URL) of the uploaded photo
    """
    image_url: str = Field(
        ...,
        description="URL of the uploaded plant photo",
        min_length=8
    )

    @field_validator("image_url")
    @classmethod
    def validate_image_url(cls, v: str) -> str:
        """Only http(s) and data URLs can be fetched by providers."""
        v = v.strip()
        if not v.startswith(("http://", "https://", "data:image/")):
            raise ValueError("image_url must be an http(s) or data:image URL")
        return v


class SelectionRequest(BaseModel):
    """User's choice among the suggested species."""
    species: str = Field(..., min_length=1, description="Common name")
    scientific_name: str = Field(..., min_length=1, description="Scientific name")


class ResearchRequest(BaseModel):
    """Request for synchronous care research of a known species."""
    species: str = Field(..., min_length=1, description="Common name")
    scientific_name: Optional[str] = Field(
        default=None,
        description="Scientific name (defaults to the common name)"
    )


# === Response Schemas ===

class ImportSessionResponse(ImportSession):
    """Session as returned to polling clients."""

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "id": "5d1c2a1e-8f7b-4a57-9d7e-0f3c8c2b6d11",
                "status": "confirming",
                "image_url": "https://example.com/photos/snake-plant.jpg",
                "identified_species": "Snake Plant",
                "scientific_name": "Dracaena trifasciata",
                "confidence": 0.877,
                "care_profile": {
                    "watering_days": 8,
                    "fertilizing_days": 35,
                    "sunlight_level": "low",
                    "humidity": "low",
                    "temperature_range": "60-85°F",
                    "care_notes": "Allow soil to dry between waterings..."
                }
            }
        },
    )


class ResearchResponse(BaseModel):
    """Consolidated care profile with the sources it was derived from."""
    care_profile: CareProfile
    sources: list[CareSourceRecord]
    queries_tried: int = Field(..., description="Search templates executed")
    documents_examined: int = Field(..., description="Candidate documents processed")


# === Error Schemas ===

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[dict] = Field(default=None, description="Additional error details")
