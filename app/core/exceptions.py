"""
Error taxonomy for the plant import pipeline.

Terminal errors end a session in the ``failed`` state and their ``message``
is what the user sees when polling. Recoverable errors are absorbed where
they happen (a single document or provider) and only logged.
"""

from typing import Optional


class PlantImportError(Exception):
    """Base class for errors that carry a user-facing message."""

    default_message = "Plant import failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# === Terminal errors ===

class NoPlantDetected(PlantImportError):
    """Every provider agreed the image does not show a plant."""

    default_message = (
        "No plant was detected in this photo. "
        "Please upload a clear photo of a single plant and try again."
    )


class AllProvidersFailed(PlantImportError):
    """No identification provider returned a result."""

    default_message = "All identification providers failed. Please try again later."


class InsufficientSources(PlantImportError):
    """Care research could not reach the source quorum."""

    def __init__(self, found: int, required: int):
        self.found = found
        self.required = required
        super().__init__(
            f"Unable to find sufficient reliable care information. "
            f"Found {found} valid source(s) out of {required} required. "
            f"The available sources either lacked specific care details or the "
            f"information couldn't be verified with sufficient confidence. "
            f"Please add this plant manually with care instructions from a trusted source."
        )


class PersistenceFailure(PlantImportError):
    """The session or plant store rejected a write."""

    default_message = "Failed to save import progress"


# === Recoverable errors ===

class ExtractionError(PlantImportError):
    """A structured-extraction call failed or returned an invalid payload."""

    default_message = "Structured extraction failed"


# === Control flow ===

class SessionNotFound(PlantImportError):
    """The session does not exist (never created or deleted by the user)."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Import session {session_id} not found")


class InvalidTransition(PlantImportError):
    """A state transition was attempted from a status that does not allow it."""

    def __init__(self, current: str, attempted: str):
        self.current = current
        self.attempted = attempted
        super().__init__(f"Cannot {attempted} a session in status '{current}'")
