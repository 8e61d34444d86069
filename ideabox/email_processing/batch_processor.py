"""
Batch Email Processing

Feeds a list of emails through the EmailProcessor in consecutive
sub-batches and tallies the outcomes.

Design Considerations:
- Emails within a sub-batch run concurrently; sub-batches run one after
  another with a short pause between them, bounding concurrency at batch_size
- Every email is isolated: a timeout or exception becomes a failure outcome
  and the batch continues
- No retries at this level; LLM calls retry inside the Groq client
"""

import asyncio
import logging
import time
from dataclasses import replace
from typing import List, Optional

from ideabox.email_processing.models import (
    AnalysisFailure,
    AnalysisOutcome,
    AnalysisSuccess,
    BatchOptions,
    BatchResult,
    Email,
    ProcessOptions,
    UserContext,
)
from ideabox.email_processing.processor import EmailProcessor

logger = logging.getLogger(__name__)


class BatchProcessor:
    """Processes many emails with bounded concurrency."""

    def __init__(self, processor: Optional[EmailProcessor] = None):
        self.processor = processor or EmailProcessor()

    async def process_batch(self,
                            emails: List[Email],
                            context: UserContext,
                            options: Optional[BatchOptions] = None) -> BatchResult:
        """
        Analyze a list of emails in sub-batches.

        Args:
            emails: Emails to analyze, in submission order
            context: Owner and active clients
            options: Sub-batch size, delay, timeouts, callbacks and
                per-email processing switches

        Returns:
            BatchResult whose success, failure and skipped counts add up to
            the number of emails processed
        """
        options = options or BatchOptions()
        started = time.perf_counter()

        if options.max_emails is not None:
            emails = emails[:options.max_emails]
        total = len(emails)
        batch_size = max(1, options.batch_size)

        result = BatchResult(total_emails=total)
        if total == 0:
            return result

        logger.info(f"Processing {total} emails for user {context.user_id} in batches of {batch_size}")
        item_options = ProcessOptions(
            skip_analyzed=options.skip_analyzed,
            save_to_database=options.save_to_database,
            create_actions=options.create_actions,
        )

        for start in range(0, total, batch_size):
            chunk = emails[start:start + batch_size]
            outcomes = await asyncio.gather(
                *(self._process_one(email, context, item_options, options.item_timeout_seconds) for email in chunk)
            )
            for outcome in outcomes:
                self._tally(result, outcome, options)

            completed = min(start + batch_size, total)
            if options.on_progress:
                options.on_progress(completed, total)

            if completed < total and options.delay_between_batches > 0:
                await asyncio.sleep(options.delay_between_batches)

        result.total_time_ms = int((time.perf_counter() - started) * 1000)
        result.avg_time_per_email_ms = result.total_time_ms // total
        logger.info(
            f"Batch complete: {result.success_count} succeeded, {result.failure_count} failed, "
            f"{result.skipped_count} skipped in {result.total_time_ms}ms"
        )
        return result

    async def process_sequentially(self,
                                   emails: List[Email],
                                   context: UserContext,
                                   options: Optional[BatchOptions] = None) -> BatchResult:
        """Process emails one at a time."""
        return await self.process_batch(emails, context, replace(options or BatchOptions(), batch_size=1))

    async def _process_one(self,
                           email: Email,
                           context: UserContext,
                           options: ProcessOptions,
                           timeout: Optional[float]) -> AnalysisOutcome:
        try:
            return await asyncio.wait_for(self.processor.process(email, context, options), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Analysis of email {email.id} timed out after {timeout}s")
            return AnalysisFailure(email_id=email.id, error=f"Analysis timed out after {timeout}s")
        except Exception as e:
            logger.error(f"Unexpected error analyzing email {email.id}: {str(e)}", exc_info=True)
            return AnalysisFailure(email_id=email.id, error=str(e))

    @staticmethod
    def _tally(result: BatchResult, outcome: AnalysisOutcome, options: BatchOptions) -> None:
        result.results[outcome.email_id] = outcome
        result.total_tokens_used += outcome.tokens_used
        result.estimated_cost += outcome.estimated_cost

        if isinstance(outcome, AnalysisSuccess):
            if outcome.skipped:
                result.skipped_count += 1
            else:
                result.success_count += 1
            return

        result.failure_count += 1
        result.errors.append({"email_id": outcome.email_id, "error": outcome.error})
        if options.on_error:
            options.on_error(outcome.email_id, outcome.error)
