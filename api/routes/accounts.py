"""
Gmail Account API Routes
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends

from api.auth.service import get_current_user
from api.models.accounts import AccountListResponse
from api.services.account_service import AccountService, get_account_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/gmail", tags=["Gmail Accounts"])


@router.get(
    "/accounts",
    response_model=AccountListResponse,
    summary="List connected Gmail accounts"
)
async def list_accounts(
    user: Dict[str, Any] = Depends(get_current_user),
    account_service: AccountService = Depends(get_account_service)
):
    """
    List the caller's connected Gmail accounts with their email counts and
    the latest sync result. OAuth tokens are never included.
    """
    return await account_service.list_accounts(user["id"])
