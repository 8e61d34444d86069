"""
Email Analysis API Routes

Endpoints that trigger AI analysis: a batch run over the caller's
unanalyzed emails and an on-demand analysis of a single email.

Design Considerations:
- Every endpoint requires a valid bearer token
- Request bodies are validated before any work starts
- Service errors propagate to the global handlers, which own the status mapping
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Header, Path

from api.auth.service import get_current_user
from api.models.emails import AnalyzeEmailResponse, AnalyzeEmailsRequest, AnalyzeEmailsResponse
from api.services.email_service import EmailService, get_email_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/emails", tags=["Email Analysis"])


@router.post(
    "/analyze",
    response_model=AnalyzeEmailsResponse,
    response_model_exclude_none=True,
    summary="Analyze the caller's unanalyzed emails"
)
async def analyze_emails(
    request: Optional[AnalyzeEmailsRequest] = Body(default=None),
    user: Dict[str, Any] = Depends(get_current_user),
    email_service: EmailService = Depends(get_email_service)
):
    """
    Run categorization, action extraction and client tagging over the
    newest unanalyzed, unarchived emails of the caller.

    Args:
        request: Optional limits (maxEmails 1-200, batchSize 1-20)

    Returns:
        Number of emails analyzed and the aggregate result
    """
    request = request or AnalyzeEmailsRequest()
    logger.info(f"Analysis triggered by user {user['id']}")
    return await email_service.analyze_unanalyzed(user["id"], request.max_emails, request.batch_size)


@router.post(
    "/{email_id}/analyze",
    response_model=AnalyzeEmailResponse,
    response_model_exclude_none=True,
    summary="Analyze a single email"
)
async def analyze_email(
    email_id: str = Path(..., description="Email id"),
    x_force_reanalyze: Optional[str] = Header(default=None),
    user: Dict[str, Any] = Depends(get_current_user),
    email_service: EmailService = Depends(get_email_service)
):
    """
    Analyze one email, or return its stored analysis.

    Send ``x-force-reanalyze: true`` to analyze an email that already has
    an analysis.

    Raises:
        NotFoundError: If the email does not exist or is not the caller's
        PerItemAnalysisError: If the analysis failed
    """
    force = (x_force_reanalyze or "").strip().lower() == "true"
    return await email_service.analyze_email(user["id"], email_id, force=force)
