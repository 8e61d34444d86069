"""
Bearer Token Authentication

Verifies the JWT access tokens issued by the session provider and exposes
the authenticated user to route handlers.

Design Considerations:
- Tokens are HS256 JWTs signed with JWT_SECRET_KEY; the subject claim is the user id
- Every failure maps to a 401 with a WWW-Authenticate challenge
- Token issuance is kept for tooling and tests
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from api.config import get_settings
from api.models.auth import TokenData
from ideabox.errors import AuthenticationError

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class AuthenticationService:
    """Issues and verifies JWT access tokens."""

    def __init__(self):
        self.settings = get_settings()
        self.secret_key = self.settings.JWT_SECRET_KEY.get_secret_value()
        self.algorithm = self.settings.JWT_ALGORITHM
        self.access_token_expire_minutes = self.settings.JWT_TOKEN_EXPIRE_MINUTES

        logger.info("Authentication service initialized")

    def create_access_token(self, data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
        """
        Create a signed JWT access token.

        Args:
            data: Token payload data; must include ``sub``
            expires_delta: Optional custom expiration time

        Returns:
            Encoded JWT token string
        """
        to_encode = data.copy()
        expire = datetime.now(timezone.utc) + (
            expires_delta or timedelta(minutes=self.access_token_expire_minutes)
        )
        to_encode.update({"exp": expire})
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def verify_token(self, token: str) -> TokenData:
        """
        Decode and validate a JWT access token.

        Args:
            token: Encoded JWT

        Returns:
            Validated token claims

        Raises:
            AuthenticationError: If the token is invalid, expired or has no subject
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as e:
            logger.warning(f"Token validation error: {str(e)}")
            raise AuthenticationError("Invalid authentication credentials")

        user_id = payload.get("sub")
        if not user_id:
            logger.warning("Token missing sub claim")
            raise AuthenticationError("Invalid authentication credentials")

        return TokenData(sub=str(user_id), email=payload.get("email"), exp=payload["exp"])


auth_service: Optional[AuthenticationService] = None


def get_auth_service() -> AuthenticationService:
    """Provide authentication service instance for dependency injection."""
    global auth_service
    if auth_service is None:
        auth_service = AuthenticationService()
    return auth_service


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    service: AuthenticationService = Depends(get_auth_service)
) -> Dict[str, Any]:
    """
    Resolve the authenticated user from the Authorization header.

    Returns:
        Dictionary with the user's ``id`` and ``email``

    Raises:
        AuthenticationError: If the header is missing or the token is invalid
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError("Unauthorized")

    token_data = service.verify_token(credentials.credentials)
    return {"id": token_data.sub, "email": token_data.email}
