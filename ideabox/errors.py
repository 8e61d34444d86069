"""
Error taxonomy for the analysis service.

Every error raised by the core carries the HTTP status the API layer
should answer with, so route handlers never have to translate them.
"""

from typing import Optional


class IdeaboxError(Exception):
    """Base class for all service errors."""

    status_code: int = 500

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class FetchError(IdeaboxError):
    """The store was unreachable or rejected a read query."""


class PerItemAnalysisError(IdeaboxError):
    """Analysis or persistence of a single email failed."""

    def __init__(self, email_id: str, message: str, detail: Optional[str] = None):
        super().__init__(message, detail)
        self.email_id = email_id


class NotFoundError(IdeaboxError):
    """Requested record does not exist or is not owned by the caller."""

    status_code = 404


class AnalysisTimeoutError(IdeaboxError):
    """The analysis call exceeded its wall-clock budget."""


class AuthenticationError(IdeaboxError):
    """Missing or invalid credentials."""

    status_code = 401
