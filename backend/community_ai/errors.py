from typing import List, Optional


class AIServiceError(Exception):
    """Base class for errors raised by the AI service layer."""


class InvalidParameters(AIServiceError, ValueError):
    """A required field is missing or a value is outside its declared set."""


class BackendUnavailable(AIServiceError):
    """The selected model backend is not configured."""


class GenerationFailure(AIServiceError):
    """Every allowed backend attempt failed or returned an invalid shape."""

    def __init__(self, message: str, cause: Optional[BaseException] = None, attempts: Optional[List[str]] = None):
        super().__init__(message)
        self.cause = cause
        self.attempts = list(attempts or [])
