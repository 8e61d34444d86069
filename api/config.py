"""
API Configuration Management

Settings of the analysis API: runtime environment, bearer token
verification, CORS, and the limits applied to analysis requests.

Design Considerations:
- Values come from the environment or a .env file
- Invalid settings stop the process at startup
- Development and testing share a fixed JWT secret; production must supply its own
"""

from enum import Enum
from typing import List

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEVELOPMENT_JWT_SECRET = "insecure_development_key_do_not_use_in_production_1234567890"


def _split(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class EnvironmentType(str, Enum):
    """Deployment context the API runs in."""
    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"


class APISettings(BaseSettings):
    """
    Validated API settings.

    The analysis limits are the defaults used when a request body omits
    ``maxEmails`` or ``batchSize``; the request model enforces the same bounds.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    ENVIRONMENT: EnvironmentType = EnvironmentType.DEVELOPMENT
    DEBUG: bool = False

    API_TITLE: str = "IdeaBox Analysis API"
    API_DESCRIPTION: str = "AI categorization, action extraction and client tagging for synced Gmail messages"
    API_VERSION: str = "1.0.0"

    # Bearer tokens are issued by the session provider and verified here
    JWT_SECRET_KEY: SecretStr = Field(
        default=SecretStr(DEVELOPMENT_JWT_SECRET),
        description="HMAC secret shared with the session provider"
    )
    JWT_ALGORITHM: str = "HS256"
    JWT_TOKEN_EXPIRE_MINUTES: int = Field(default=60, gt=0)

    # Comma-separated lists
    CORS_ORIGINS: str = "*"
    CORS_METHODS: str = "GET,POST,OPTIONS"

    ANALYSIS_DEFAULT_MAX_EMAILS: int = Field(
        default=50,
        ge=1,
        le=200,
        description="Emails analyzed per batch request when the body omits maxEmails"
    )
    ANALYSIS_BATCH_SIZE: int = Field(
        default=10,
        ge=1,
        le=20,
        description="Emails analyzed concurrently when the body omits batchSize"
    )
    ANALYSIS_TIMEOUT_SECONDS: float = Field(
        default=300,
        gt=0,
        description="Wall-clock budget for one batch analysis request"
    )

    @property
    def cors_origins(self) -> List[str]:
        return _split(self.CORS_ORIGINS)

    @property
    def cors_methods(self) -> List[str]:
        return _split(self.CORS_METHODS)

    @field_validator("JWT_SECRET_KEY")
    @classmethod
    def validate_jwt_secret(cls, value: SecretStr) -> SecretStr:
        """Validate JWT secret key meets minimum length."""
        if len(value.get_secret_value()) < 32:
            raise ValueError("JWT secret key must be at least 32 characters long")
        return value

    @model_validator(mode="after")
    def require_production_secret(self) -> "APISettings":
        if (self.ENVIRONMENT == EnvironmentType.PRODUCTION
                and self.JWT_SECRET_KEY.get_secret_value() == DEVELOPMENT_JWT_SECRET):
            raise ValueError("JWT_SECRET_KEY must be set in production")
        return self


def get_settings() -> APISettings:
    """
    Load and validate API settings from the environment.

    Returns:
        Validated API settings object

    Raises:
        ValidationError: If configuration fails validation
    """
    return APISettings()
