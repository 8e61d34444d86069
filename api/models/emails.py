"""
Email Analysis API Models

Request and response models for the batch and single-email analysis
endpoints. JSON field names are camelCase; Python attributes stay snake_case.

Design Considerations:
- Request limits are enforced here so invalid bodies never reach the pipeline
- Responses serialize by alias, so clients see camelCase keys
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serializing field names as camelCase."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnalyzeEmailsRequest(CamelModel):
    """
    Body of a batch analysis request.

    Both fields are optional; the configured defaults apply when omitted.
    """
    max_emails: Optional[int] = Field(
        default=None,
        ge=1,
        le=200,
        description="Maximum number of unanalyzed emails to analyze"
    )
    batch_size: Optional[int] = Field(
        default=None,
        ge=1,
        le=20,
        description="Emails analyzed concurrently"
    )


class AnalysisErrorItem(CamelModel):
    email_id: str
    error: str


class AnalysisResultModel(CamelModel):
    """Aggregate counts of one batch analysis run."""
    success_count: int = Field(..., description="Emails analyzed successfully")
    failure_count: int = Field(..., description="Emails whose analysis failed")
    skipped_count: int = Field(..., description="Emails skipped because already analyzed")
    categorized: Dict[str, int] = Field(default_factory=dict, description="Successful emails per category")
    actions_created: int = Field(..., description="Successful emails with a detected action")
    tokens_used: int = Field(..., description="LLM tokens consumed")
    estimated_cost: float = Field(..., description="Estimated LLM cost in USD")
    processing_time_ms: int = Field(..., description="Wall-clock duration of the run")
    errors: List[AnalysisErrorItem] = Field(default_factory=list, description="Per-email failures")


class AnalyzeEmailsResponse(CamelModel):
    success: bool = True
    analyzed: int = Field(..., description="Emails analyzed successfully")
    results: AnalysisResultModel
    message: Optional[str] = None


class AnalysisSummary(CamelModel):
    """Compact view of a single email's fresh analysis."""
    category: Optional[str] = None
    has_action: bool = False
    action_title: Optional[str] = None
    client_match: bool = False
    tokens_used: int = 0
    processing_time_ms: int = 0


class AnalyzeEmailResponse(CamelModel):
    """
    Response of the single-email analysis endpoint.

    ``summary`` accompanies a fresh analysis; ``already_analyzed`` and
    ``message`` accompany a stored one.
    """
    success: bool = True
    analysis: Optional[Dict[str, Any]] = None
    summary: Optional[AnalysisSummary] = None
    already_analyzed: Optional[bool] = None
    message: Optional[str] = None
