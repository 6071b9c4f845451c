"""
Error taxonomy for the upload-to-study-material pipeline.

Every error carries the HTTP status it maps to; ``main.py`` installs a single
exception handler that turns them into JSON error bodies.
"""


class StudyAssistantError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = 500
    public_message: str | None = None  # Replaces the message in the body for 5xx errors

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_body(self) -> dict:
        if self.public_message:
            return {"error": self.public_message, "details": self.message}
        return {"error": self.message}


class ValidationError(StudyAssistantError):
    """Bad or missing input, or an unsupported file type."""
    status_code = 400


class InsufficientContentError(ValidationError):
    """Extracted text is too short to generate study materials from."""
    status_code = 400


class FileTooLargeError(ValidationError):
    """Upload exceeds the configured size ceiling."""
    status_code = 413


class NotFoundError(StudyAssistantError):
    status_code = 404


class QuotaExceededError(StudyAssistantError):
    status_code = 403


class ExtractionError(StudyAssistantError):
    """The uploaded binary could not be read or parsed."""
    public_message = "Failed to process document"


class GenerationError(StudyAssistantError):
    """The language-model call failed."""
    public_message = "Failed to process document"


class MalformedResponseError(StudyAssistantError):
    """The model answered, but not with the required JSON structure."""
    public_message = "Failed to process document"
