"""
Batch Analysis Orchestrator

Entry point for "analyze my unanalyzed emails": selects eligible emails,
resolves the user's client context, hands the emails to the batch
processor, and folds the outcomes into a single AnalysisResult.

Design Considerations:
- Sequential: select, resolve, delegate; all fan-out lives in the batch processor
- Only a failure to select emails aborts the call
- A failure to load clients degrades to analysis without client context
- Counts, tokens and cost come from the batch processor as reported
"""

import logging
import time
from typing import Optional

from ideabox.config.analyzer_config import ANALYZER_CONFIG
from ideabox.email_processing.aggregator import fold_outcomes
from ideabox.email_processing.batch_processor import BatchProcessor
from ideabox.email_processing.models import AnalysisResult, BatchOptions, UserContext
from ideabox.errors import FetchError
from ideabox.storage.repositories import ClientRepository, EmailRepository

logger = logging.getLogger(__name__)


class AnalysisOrchestrator:
    """Runs AI analysis over a user's unanalyzed emails."""

    def __init__(self,
                 email_repository: Optional[EmailRepository] = None,
                 client_repository: Optional[ClientRepository] = None,
                 batch_processor: Optional[BatchProcessor] = None):
        self.email_repository = email_repository or EmailRepository()
        self.client_repository = client_repository or ClientRepository()
        self.batch_processor = batch_processor or BatchProcessor()

    async def resolve_context(self, user_id: str) -> UserContext:
        """
        Build the analysis context for a user.

        Client lookup failures are logged and yield an empty client list.
        """
        try:
            clients = await self.client_repository.get_active_clients(user_id)
        except FetchError as e:
            logger.warning(f"Could not load clients for user {user_id}, continuing without them: {e.message}")
            clients = []
        return UserContext(user_id=user_id, clients=clients)

    async def run(self,
                  user_id: str,
                  max_emails: int,
                  batch_size: int = ANALYZER_CONFIG["batch"]["batch_size"]) -> AnalysisResult:
        """
        Analyze up to ``max_emails`` of the user's unanalyzed emails.

        Args:
            user_id: Owner of the emails
            max_emails: Upper bound on emails selected
            batch_size: Emails analyzed concurrently per sub-batch

        Returns:
            AnalysisResult; zeroed with processing time 0 when nothing is eligible

        Raises:
            FetchError: If the unanalyzed emails cannot be selected
        """
        started = time.perf_counter()

        emails = await self.email_repository.get_unanalyzed_emails(user_id, max_emails)
        if not emails:
            logger.info(f"No unanalyzed emails for user {user_id}")
            return AnalysisResult()

        context = await self.resolve_context(user_id)
        logger.info(f"Analyzing {len(emails)} emails for user {user_id} with {len(context.clients)} active clients")

        def on_progress(completed: int, total: int) -> None:
            logger.debug(f"Analysis progress for user {user_id}: {completed}/{total}")

        def on_error(email_id: str, error: str) -> None:
            logger.warning(f"Email analysis failed for {email_id}: {error}")

        batch = await self.batch_processor.process_batch(
            emails,
            context,
            BatchOptions(
                batch_size=batch_size,
                delay_between_batches=ANALYZER_CONFIG["batch"]["delay_between_batches"],
                item_timeout_seconds=ANALYZER_CONFIG["batch"]["item_timeout_seconds"],
                skip_analyzed=True,
                on_progress=on_progress,
                on_error=on_error,
            ),
        )

        categorized, actions_created = fold_outcomes(batch.results.values())

        result = AnalysisResult(
            success_count=batch.success_count,
            failure_count=batch.failure_count,
            skipped_count=batch.skipped_count,
            actions_created=actions_created,
            tokens_used=batch.total_tokens_used,
            estimated_cost=batch.estimated_cost,
            processing_time_ms=int((time.perf_counter() - started) * 1000),
            categorized=categorized,
            errors=list(batch.errors),
        )
        logger.info(
            f"Analysis complete for user {user_id}: {result.success_count} succeeded, "
            f"{result.failure_count} failed, {result.actions_created} actions in {result.processing_time_ms}ms"
        )
        return result
