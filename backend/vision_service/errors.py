"""
Exceptions raised along the vision pipeline.
Routes catch VisionServiceError once and turn it into a failure envelope.
"""

from typing import Optional


class VisionServiceError(Exception):
    """Base error for the vision service. Carries the HTTP status to return."""

    status_code = 400

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ConfigurationError(VisionServiceError):
    """The service is missing configuration it needs (e.g. the API key)."""


class ValidationError(VisionServiceError):
    """The uploaded request is unusable: missing file, bad type, too large."""


class StorageError(VisionServiceError):
    """The temp upload directory could not be created or written to."""


class UpstreamError(VisionServiceError):
    """OpenAI answered with a non-200 status."""

    def __init__(self, status: int, body: str):
        super().__init__(f"OpenAI API error: HTTP {status} - {body}")
        self.status = status
        self.body = body


class TransportError(VisionServiceError):
    """The request to OpenAI never completed (connection error or timeout)."""
