"""
Authentication Data Models

Decoded bearer token claims used by the authentication dependency.
"""

from typing import Optional

from pydantic import BaseModel, Field


class TokenData(BaseModel):
    """Decoded token data with the authenticated user's identity."""
    sub: str = Field(
        ...,
        min_length=1,
        description="User id the token was issued for"
    )
    email: Optional[str] = Field(
        default=None,
        description="User email, when the issuer includes it"
    )
    exp: int = Field(
        ...,
        description="Token expiration timestamp"
    )
