"""
Error Response Models

Defines the error body returned by every failing endpoint: a human-readable
``error`` string and, where useful, structured ``details``.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standardized error response model for API errors."""
    error: str = Field(
        ...,
        description="Human-readable error message"
    )
    details: Optional[Any] = Field(
        default=None,
        description="Additional error details"
    )


class ValidationErrorItem(BaseModel):
    """
    Validation error detail model for request validation errors.

    Contains specific information about a field that failed validation.
    """
    loc: List[str] = Field(
        ...,
        description="Error location (field path)"
    )
    msg: str = Field(
        ...,
        description="Error message"
    )
    type: str = Field(
        ...,
        description="Error type"
    )
