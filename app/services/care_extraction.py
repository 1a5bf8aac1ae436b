"""
Care Extraction Service

Structured-extraction capability: turns the text of one source document
into a typed CareExtraction. The prompt asks the model to report only what
the text states, flag which fields are present and score its confidence,
so the research orchestrator can reject sources that would otherwise be
filled with guesses.
"""

import logging
from typing import Optional

from pydantic import ValidationError

from app.core.config import get_settings
from app.core.exceptions import ExtractionError
from app.models.schemas import CareExtraction
from app.services.llm_client import ChatMessage, LLMClient
from app.services.search_service import SearchResult

logger = logging.getLogger(__name__)


EXTRACTION_PROMPT = """You are analyzing plant care information for {species} ({scientific_name}) from {title}.

Content to analyze:
{content}

CRITICAL INSTRUCTIONS:
1. Extract information ONLY if it is EXPLICITLY stated in the content above
2. For each field, first set the has_*_info boolean to indicate if that information exists
3. If information is NOT in the content, set has_*_info to false and provide the default value listed below
4. Set your confidence score based on how explicitly the information is stated:
   - 1.0: Explicitly stated with specific numbers/details
   - 0.7-0.9: Clearly implied or described without exact numbers
   - 0.3-0.6: Vague mentions or general statements
   - 0.0-0.2: No information found, you're guessing
5. NEVER make up specific numbers if they aren't in the content
6. If most information is missing, set confidence to 0.0

Respond with a JSON object with these keys:
- source_name: "{title}"
- source_url: "{url}"
- has_watering_info: true only if watering frequency is explicitly mentioned
- watering_frequency_days: Convert phrases like "weekly"=7, "bi-weekly"=14, "twice a week"=3, "monthly"=30. Default 7.
- has_fertilizing_info: true only if fertilizing frequency is explicitly mentioned
- fertilizing_frequency_days: Same conversion rules. Default 30.
- has_light_info: true only if light requirements are mentioned
- sunlight_level: exactly one of "low", "medium", "bright", "direct"
    low: shade, low light, indirect light, north-facing
    medium: partial sun, filtered light, moderate light
    bright: bright indirect, east/west windows, lots of light
    direct: full sun, direct sunlight, south-facing, outdoor sun
  Default "medium".
- has_humidity_info: true only if humidity is mentioned
- humidity_preference: "low" (<40%), "moderate" (40-60%) or "high" (>60%). Default "moderate".
- has_temperature_info: true only if a temperature range is mentioned
- temperature_range: in Fahrenheit, e.g. "60-75°F". Default "60-75°F".
- care_notes: ONLY direct quotes or paraphrases from the content, 2-3 short points
- confidence: overall confidence (0-1) that the information came from the content"""


class CareExtractor:
    """
    Extract care recommendations from free text with an LLM.

    Usage:
        extractor = CareExtractor(client, model="anthropic/claude-sonnet-4")
        extraction = await extractor.extract(text, "Snake Plant", "Dracaena trifasciata", result)
    """

    def __init__(self, client: Optional[LLMClient] = None, model: Optional[str] = None):
        self.client = client or LLMClient()
        self.model = model or get_settings().extraction_model

    async def extract(
        self,
        text: str,
        species: str,
        scientific_name: str,
        source: SearchResult
    ) -> CareExtraction:
        """
        Extract a typed care record from one document.

        Args:
            text: Cleaned document text (or search snippet)
            species: Common name of the target plant
            scientific_name: Scientific name of the target plant
            source: Search result the text came from

        Returns:
            Validated CareExtraction

        Raises:
            ExtractionError: If the model call fails or its output does not
                match the schema
        """
        prompt = EXTRACTION_PROMPT.format(
            species=species,
            scientific_name=scientific_name,
            title=source.title,
            url=source.url,
            content=text,
        )

        payload = await self.client.complete_json(
            self.model,
            [ChatMessage(role="user", content=prompt)],
        )

        # The source identity comes from the search result, not the model
        payload["source_name"] = payload.get("source_name") or source.title
        payload["source_url"] = source.url

        try:
            return CareExtraction.model_validate(payload)
        except ValidationError as e:
            raise ExtractionError(
                f"Care extraction for {source.url} did not match the schema: "
                f"{e.error_count()} error(s)"
            ) from e
