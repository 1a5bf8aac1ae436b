"""
Care Consolidation

Reduces validated per-source care records into one care profile:
- watering / fertilizing: rounded mean
- sunlight: most common level (first to reach the top count wins ties)
- humidity / temperature: taken from the first source
- care notes: all notes joined, truncated with an ellipsis

Pure and deterministic: the same ordered input always gives the same profile.
"""

import math
from typing import Sequence

from app.models.enums import SunlightLevel
from app.models.session import CareProfile, CareSourceRecord

DEFAULT_NOTES_MAX_LENGTH = 200


def consolidate_care(
    sources: Sequence[CareSourceRecord],
    notes_max_length: int = DEFAULT_NOTES_MAX_LENGTH,
) -> CareProfile:
    """
    Consolidate care records into a single profile.

    Args:
        sources: Validated source records, in acceptance order
        notes_max_length: Maximum care-notes length before truncation

    Returns:
        CareProfile

    Raises:
        ValueError: If no sources are given
    """
    if not sources:
        raise ValueError("At least one care source is required")

    # Humidity and temperature are free text; the first source is used as-is
    first = sources[0]

    return CareProfile(
        watering_days=_round_half_up(_mean([s.watering_days for s in sources])),
        fertilizing_days=_round_half_up(_mean([s.fertilizing_days for s in sources])),
        sunlight_level=_most_common_sunlight([s.sunlight_level for s in sources]),
        humidity=first.humidity,
        temperature_range=first.temperature_range,
        care_notes=_combine_notes([s.care_notes for s in sources], notes_max_length),
    )


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _most_common_sunlight(levels: Sequence[SunlightLevel]) -> SunlightLevel:
    """Mode of the levels; on a tie the level tallied first wins."""
    counts: dict[SunlightLevel, int] = {}
    for level in levels:
        counts[level] = counts.get(level, 0) + 1

    best_level, best_count = None, 0
    for level, count in counts.items():
        if count > best_count:
            best_level, best_count = level, count
    return best_level


def _combine_notes(notes: Sequence[str], max_length: int) -> str:
    combined = " ".join(n.strip() for n in notes if n and n.strip())
    if len(combined) > max_length:
        return combined[:max_length] + "..."
    return combined
