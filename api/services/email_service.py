"""
Email Analysis Service

Connects the analysis API to the processing pipeline: runs batch analysis
under a wall-clock budget and records it in the sync log, and analyzes
single emails on demand.

Design Considerations:
- Clean separation from route handling
- Route handlers receive models ready to serialize
- The sync log is informational; failing to write it never fails a request
"""

import asyncio
import logging
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from api.config import APISettings, get_settings
from api.models.emails import (
    AnalysisErrorItem,
    AnalysisResultModel,
    AnalysisSummary,
    AnalyzeEmailResponse,
    AnalyzeEmailsResponse,
)
from ideabox.email_processing.batch_processor import BatchProcessor
from ideabox.email_processing.models import AnalysisFailure, AnalysisResult, ProcessOptions
from ideabox.email_processing.orchestrator import AnalysisOrchestrator
from ideabox.email_processing.processor import EmailProcessor
from ideabox.errors import AnalysisTimeoutError, NotFoundError, PerItemAnalysisError
from ideabox.storage.repositories import AnalysisRepository, EmailRepository, SyncLogRepository

logger = logging.getLogger(__name__)

ALREADY_ANALYZED_MESSAGE = "Email was already analyzed. Set x-force-reanalyze header to re-analyze."
NOTHING_TO_ANALYZE_MESSAGE = "No unanalyzed emails found"


def to_result_model(result: AnalysisResult) -> AnalysisResultModel:
    return AnalysisResultModel(
        success_count=result.success_count,
        failure_count=result.failure_count,
        skipped_count=result.skipped_count,
        categorized=result.categorized,
        actions_created=result.actions_created,
        tokens_used=result.tokens_used,
        estimated_cost=result.estimated_cost,
        processing_time_ms=result.processing_time_ms,
        errors=[AnalysisErrorItem(email_id=e["email_id"], error=e["error"]) for e in result.errors],
    )


class EmailService:
    """
    Email analysis operations used by the API routes.

    Collaborators are injectable; by default the service builds the full
    pipeline over the application database.
    """

    def __init__(self,
                 settings: Optional[APISettings] = None,
                 processor: Optional[EmailProcessor] = None,
                 orchestrator: Optional[AnalysisOrchestrator] = None,
                 email_repository: Optional[EmailRepository] = None,
                 analysis_repository: Optional[AnalysisRepository] = None,
                 sync_log_repository: Optional[SyncLogRepository] = None):
        self.settings = settings or get_settings()
        self.email_repository = email_repository or EmailRepository()
        self.analysis_repository = analysis_repository or AnalysisRepository()
        self.sync_log_repository = sync_log_repository or SyncLogRepository()
        self.processor = processor or EmailProcessor(
            email_repository=self.email_repository,
            analysis_repository=self.analysis_repository,
        )
        self.orchestrator = orchestrator or AnalysisOrchestrator(
            email_repository=self.email_repository,
            batch_processor=BatchProcessor(self.processor),
        )

    async def analyze_unanalyzed(self,
                                 user_id: str,
                                 max_emails: Optional[int] = None,
                                 batch_size: Optional[int] = None) -> AnalyzeEmailsResponse:
        """
        Analyze the user's unanalyzed emails.

        Args:
            user_id: Authenticated user
            max_emails: Maximum emails to analyze; configured default when None
            batch_size: Concurrent emails per sub-batch; configured default when None

        Returns:
            Response model with the aggregate result

        Raises:
            FetchError: If unanalyzed emails cannot be selected
            AnalysisTimeoutError: If the run exceeds ANALYSIS_TIMEOUT_SECONDS
        """
        max_emails = max_emails or self.settings.ANALYSIS_DEFAULT_MAX_EMAILS
        batch_size = batch_size or self.settings.ANALYSIS_BATCH_SIZE
        timeout = self.settings.ANALYSIS_TIMEOUT_SECONDS
        started_at = datetime.now(timezone.utc)

        logger.info(f"Batch analysis requested by user {user_id}: max_emails={max_emails}, batch_size={batch_size}")
        try:
            result = await asyncio.wait_for(
                self.orchestrator.run(user_id, max_emails, batch_size),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f"Batch analysis for user {user_id} exceeded {timeout}s")
            raise AnalysisTimeoutError(f"Analysis timed out after {timeout} seconds")

        if result.analyzed == 0:
            return AnalyzeEmailsResponse(
                analyzed=0,
                results=to_result_model(result),
                message=NOTHING_TO_ANALYZE_MESSAGE,
            )

        await self._record_run(user_id, result, started_at)
        return AnalyzeEmailsResponse(analyzed=result.success_count, results=to_result_model(result))

    async def analyze_email(self, user_id: str, email_id: str, force: bool = False) -> AnalyzeEmailResponse:
        """
        Analyze one email on demand.

        Args:
            user_id: Authenticated user
            email_id: Email to analyze
            force: Re-analyze even when a stored analysis exists

        Returns:
            The fresh analysis with a summary, or the stored analysis when the
            email was already analyzed and ``force`` is False

        Raises:
            NotFoundError: If the email does not exist or belongs to someone else
            PerItemAnalysisError: If the analysis failed
        """
        email = await self.email_repository.get_email_for_user(user_id, email_id)
        if email is None:
            raise NotFoundError("Email not found")

        if email.analyzed_at is not None and not force:
            logger.info(f"Email {email_id} already analyzed; returning stored analysis")
            return AnalyzeEmailResponse(
                already_analyzed=True,
                analysis=await self.analysis_repository.get_analysis(email_id),
                message=ALREADY_ANALYZED_MESSAGE,
            )

        context = await self.orchestrator.resolve_context(user_id)
        outcome = await self.processor.process(email, context, ProcessOptions(skip_analyzed=False))

        if isinstance(outcome, AnalysisFailure):
            raise PerItemAnalysisError(
                email_id,
                f"Analysis failed: {outcome.error}",
                "; ".join(outcome.errors) or None,
            )

        analysis = outcome.analysis
        categorization = analysis.categorization
        action = analysis.action_extraction
        tagging = analysis.client_tagging
        return AnalyzeEmailResponse(
            analysis=asdict(analysis),
            summary=AnalysisSummary(
                category=categorization.category if categorization else None,
                has_action=bool(action and action.has_action),
                action_title=action.action_title if action else None,
                client_match=bool(tagging and tagging.client_match),
                tokens_used=analysis.total_tokens_used,
                processing_time_ms=analysis.total_processing_time_ms,
            ),
        )

    async def _record_run(self, user_id: str, result: AnalysisResult, started_at: datetime) -> None:
        failed = result.failure_count > 0 and result.success_count == 0
        try:
            await self.sync_log_repository.create_log(
                user_id=user_id,
                sync_type="analysis",
                status="failed" if failed else "completed",
                emails_fetched=result.analyzed,
                emails_analyzed=result.success_count,
                errors_count=result.failure_count,
                duration_ms=result.processing_time_ms,
                started_at=started_at,
                error_message=result.errors[0]["error"] if result.errors else None,
            )
        except SQLAlchemyError as e:
            logger.warning(f"Failed to create analysis log for user {user_id}: {str(e)}")


email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    """Provide email service instance for dependency injection."""
    global email_service
    if email_service is None:
        email_service = EmailService()
    return email_service
