"""
Per-Email Analysis Processor

Runs the core analyzers for a single email, combines their outputs, and
persists the result. Coordinates between the analyzers while keeping the
email's stored state consistent.

Design Considerations:
- Analyzers run concurrently; one failing analyzer does not sink the others
- An email counts as analyzed when at least one analyzer succeeded
- The analysis row and the email's analyzed marker are written together
- Action creation is best effort and never fails the email
"""

import asyncio
import logging
from dataclasses import fields
from typing import Any, Dict, List, Optional, Type, TypeVar

from ideabox.email_processing.analyzers import ActionExtractor, ClientTagger, EmailCategorizer
from ideabox.email_processing.base import BaseEmailAnalyzer
from ideabox.email_processing.models import (
    ActionExtractionData,
    AggregatedAnalysis,
    AnalysisFailure,
    AnalysisOutcome,
    AnalysisSuccess,
    AnalyzerResult,
    CategorizationData,
    ClientTaggingData,
    Email,
    ProcessOptions,
    UserContext,
)
from ideabox.errors import PerItemAnalysisError
from ideabox.storage.repositories import ActionRepository, AnalysisRepository, EmailRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _build(data_cls: Type[T], data: Optional[Dict[str, Any]]) -> T:
    names = {f.name for f in fields(data_cls)}
    return data_cls(**{k: v for k, v in (data or {}).items() if k in names})


class EmailProcessor:
    """
    Analyzes one email with the categorizer, action extractor and client tagger.

    The processor never raises for a per-email problem: every path ends in an
    AnalysisSuccess or an AnalysisFailure.
    """

    def __init__(self,
                 categorizer: Optional[BaseEmailAnalyzer] = None,
                 action_extractor: Optional[BaseEmailAnalyzer] = None,
                 client_tagger: Optional[BaseEmailAnalyzer] = None,
                 email_repository: Optional[EmailRepository] = None,
                 analysis_repository: Optional[AnalysisRepository] = None,
                 action_repository: Optional[ActionRepository] = None):
        """
        Initialize the processor with its analyzers and repositories.

        Args:
            categorizer: Category analyzer
            action_extractor: Action item analyzer
            client_tagger: Client matching analyzer
            email_repository: Used to record analysis errors
            analysis_repository: Persists aggregated analyses
            action_repository: Creates action rows
        """
        self.categorizer = categorizer or EmailCategorizer()
        self.action_extractor = action_extractor or ActionExtractor()
        self.client_tagger = client_tagger or ClientTagger()
        self.email_repository = email_repository or EmailRepository()
        self.analysis_repository = analysis_repository or AnalysisRepository()
        self.action_repository = action_repository or ActionRepository()

    async def process(self,
                      email: Email,
                      context: UserContext,
                      options: Optional[ProcessOptions] = None) -> AnalysisOutcome:
        """
        Analyze and persist a single email.

        Args:
            email: Email to analyze
            context: Owner and active clients
            options: Skip, persistence and action-creation switches

        Returns:
            AnalysisSuccess (possibly skipped) or AnalysisFailure
        """
        options = options or ProcessOptions()

        if options.skip_analyzed and email.analyzed_at is not None:
            logger.debug(f"Email {email.id} already analyzed, skipping")
            return AnalysisSuccess(email_id=email.id, analysis=AggregatedAnalysis(), skipped=True)

        results = await self._run_analyzers(email, context)
        analysis = self._aggregate(results)
        errors = [f"{name}: {result.error}" for name, result in results.items() if not result.success]

        if not any(result.success for result in results.values()):
            message = "All analyzers failed"
            logger.warning(f"Analysis failed for email {email.id}: {'; '.join(errors)}")
            await self.email_repository.record_analysis_error(email.id, "; ".join(errors) or message)
            return AnalysisFailure(
                email_id=email.id,
                error=message,
                errors=errors,
                tokens_used=analysis.total_tokens_used,
                estimated_cost=analysis.total_estimated_cost,
            )

        if errors:
            logger.info(f"Partial analysis for email {email.id}: {'; '.join(errors)}")

        if options.save_to_database:
            try:
                await self.analysis_repository.save_analysis(email, analysis)
            except PerItemAnalysisError as e:
                return AnalysisFailure(
                    email_id=email.id,
                    error=e.message,
                    errors=errors + [e.message],
                    tokens_used=analysis.total_tokens_used,
                    estimated_cost=analysis.total_estimated_cost,
                )

            if options.create_actions:
                await self._create_action(email, analysis)

        return AnalysisSuccess(email_id=email.id, analysis=analysis)

    async def _run_analyzers(self, email: Email, context: UserContext) -> Dict[str, AnalyzerResult]:
        analyzers = {
            "categorizer": self.categorizer,
            "action_extractor": self.action_extractor,
            "client_tagger": self.client_tagger,
        }
        outputs: List[Any] = await asyncio.gather(
            *(analyzer.analyze(email, context) for analyzer in analyzers.values()),
            return_exceptions=True,
        )

        results: Dict[str, AnalyzerResult] = {}
        for name, output in zip(analyzers, outputs):
            if isinstance(output, BaseException):
                logger.error(f"{name} raised for email {email.id}: {str(output)}")
                output = AnalyzerResult(success=False, error=str(output))
            results[name] = output
        return results

    @staticmethod
    def _aggregate(results: Dict[str, AnalyzerResult]) -> AggregatedAnalysis:
        categorization = results["categorizer"]
        action = results["action_extractor"]
        tagging = results["client_tagger"]

        return AggregatedAnalysis(
            categorization=_build(CategorizationData, categorization.data) if categorization.success else None,
            action_extraction=_build(ActionExtractionData, action.data) if action.success else None,
            client_tagging=_build(ClientTaggingData, tagging.data) if tagging.success else None,
            total_tokens_used=sum(r.tokens_used for r in results.values()),
            total_estimated_cost=sum(r.estimated_cost for r in results.values()),
            total_processing_time_ms=max((r.processing_time_ms for r in results.values()), default=0),
        )

    async def _create_action(self, email: Email, analysis: AggregatedAnalysis) -> None:
        action = analysis.action_extraction
        if not action or not action.has_action or action.action_type == "none":
            return

        tagging = analysis.client_tagging
        client_id = tagging.client_id if tagging and tagging.client_match else None
        try:
            await self.action_repository.create_action(email, action, client_id)
        except Exception as e:
            logger.error(f"Failed to create action for email {email.id}: {str(e)}")
