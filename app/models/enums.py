"""
Enumerations for the plant import system.

These enums provide type safety and clear documentation of valid values.
"""

from enum import Enum


class SessionStatus(str, Enum):
    """Import session lifecycle status, persisted as a plain string."""
    UPLOADING = "uploading"
    IDENTIFYING = "identifying"
    RESEARCHING = "researching"
    COMPARING = "comparing"
    CONFIRMING = "confirming"
    COMPLETED = "completed"
    FAILED = "failed"
    NEEDS_SELECTION = "needs_selection"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.COMPLETED, SessionStatus.FAILED)


class SunlightLevel(str, Enum):
    """Light requirement categories."""
    LOW = "low"              # shade, north-facing, low indirect light
    MEDIUM = "medium"        # partial sun, filtered light
    BRIGHT = "bright"        # bright indirect, east/west windows
    DIRECT = "direct"        # full sun, south-facing


class CareField(str, Enum):
    """Care parameters tracked for source validation."""
    WATERING = "watering"
    FERTILIZING = "fertilizing"
    LIGHT = "light"
    HUMIDITY = "humidity"
    TEMPERATURE = "temperature"
