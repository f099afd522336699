"""Error taxonomy shared by the generators, the repository and the API layer.

Every error carries the HTTP status it maps to; the handler registered in
``beanstalk.main`` renders them as ``{"error": ..., "detail": ...}``.
"""

from typing import Any, Optional


class BeanstalkError(Exception):
    """Base class for all service errors."""

    status_code: int = 500

    def __init__(self, message: str, detail: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationError(BeanstalkError):
    """Malformed or missing request data."""

    status_code = 400


class FileTooLargeError(ValidationError):
    pass


class UnsupportedFormatError(ValidationError):
    pass


class EmptyContentError(ValidationError):
    pass


class NotFoundError(BeanstalkError):
    """Referenced PRD or epic does not exist."""

    status_code = 404


class PreconditionFailedError(BeanstalkError):
    """A required earlier pipeline step has not completed."""

    status_code = 409


class UpstreamGenerationError(BeanstalkError):
    """The language model failed or returned unusable output."""

    status_code = 502


class GenerationFailedError(UpstreamGenerationError):
    """Model call errored or the response was not JSON."""


class SchemaValidationError(UpstreamGenerationError):
    """Model returned JSON that does not match the expected schema."""


class ConfigurationError(BeanstalkError):
    """Required external credentials are missing."""

    status_code = 503
