"""
Errors Module - Exception hierarchy for the assistant.
======================================================

Only request-shape problems and missing configuration ever reach the
caller as non-2xx responses. Everything else is handled where it occurs:
classifier and extractor misses fall through to the generative path,
completion failures become a placeholder answer, analytics failures are
logged and dropped.
"""


class AssistantError(Exception):
    """Base class for all assistant errors."""


class RequestValidationError(AssistantError):
    """The incoming request cannot be processed."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class MissingConfigurationError(AssistantError):
    """A credential required for the requested path is not configured."""

    def __init__(self, message: str = "Missing OpenAI API key"):
        super().__init__(message)
        self.message = message
        self.status_code = 500


class CompletionServiceError(AssistantError):
    """The generative completion service failed or answered in an unexpected shape."""
