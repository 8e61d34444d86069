"""
Gmail Account API Models

Response models for the connected-account listing. Account rows never carry
OAuth tokens.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class AccountSummary(BaseModel):
    """A connected Gmail account with its synced email count."""
    id: str
    email: str
    display_name: Optional[str] = None
    last_sync_at: Optional[str] = None
    sync_enabled: bool = True
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    email_count: int = Field(0, ge=0, description="Emails synced from this account")


class LatestSync(BaseModel):
    """The user's most recent sync or analysis run."""
    status: str
    completed_at: Optional[str] = None
    emails_fetched: int = 0
    emails_analyzed: int = 0
    error_message: Optional[str] = None
    duration_ms: Optional[int] = None


class AccountListResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    accounts: List[AccountSummary]
    latest_sync: Optional[LatestSync] = Field(default=None, alias="latestSync")
