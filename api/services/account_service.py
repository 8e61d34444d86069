"""
Gmail Account Service

Lists a user's connected Gmail accounts with the number of emails synced
from each and the outcome of the latest sync or analysis run.

Design Considerations:
- One count query per account, issued concurrently
- A failing count fails the whole listing; partial counts are never returned
- A missing or unreadable sync log yields no latestSync rather than an error
"""

import asyncio
import logging
from typing import Optional

from api.models.accounts import AccountListResponse, AccountSummary, LatestSync
from ideabox.errors import FetchError
from ideabox.storage.repositories import EmailRepository, GmailAccountRepository, SyncLogRepository

logger = logging.getLogger(__name__)


class AccountService:
    """Read operations over connected Gmail accounts."""

    def __init__(self,
                 account_repository: Optional[GmailAccountRepository] = None,
                 email_repository: Optional[EmailRepository] = None,
                 sync_log_repository: Optional[SyncLogRepository] = None):
        self.account_repository = account_repository or GmailAccountRepository()
        self.email_repository = email_repository or EmailRepository()
        self.sync_log_repository = sync_log_repository or SyncLogRepository()

    async def list_accounts(self, user_id: str) -> AccountListResponse:
        """
        List the user's accounts with per-account email counts.

        Args:
            user_id: Authenticated user

        Returns:
            Accounts in connection order plus the latest sync summary

        Raises:
            FetchError: If the accounts or any of the counts cannot be read
        """
        accounts = await self.account_repository.list_for_user(user_id)

        counts = await asyncio.gather(
            *(self.email_repository.count_for_account(user_id, account["id"]) for account in accounts)
        )

        try:
            latest = await self.sync_log_repository.get_latest(user_id)
        except FetchError as e:
            logger.warning(f"Latest sync unavailable for user {user_id}: {e.message}")
            latest = None

        logger.info(f"Fetched {len(accounts)} Gmail accounts for user {user_id}")
        return AccountListResponse(
            accounts=[AccountSummary(**account, email_count=count) for account, count in zip(accounts, counts)],
            latest_sync=LatestSync(**latest) if latest else None,
        )


account_service: Optional[AccountService] = None


def get_account_service() -> AccountService:
    """Provide account service instance for dependency injection."""
    global account_service
    if account_service is None:
        account_service = AccountService()
    return account_service
