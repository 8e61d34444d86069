"""
Shared data models for email analysis.

Plain dataclasses passed between the store, the analyzers, the per-email
processor and the batch layer. None of them hold a database session.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union

from ideabox.config.analyzer_config import ANALYZER_VERSION


@dataclass
class Email:
    """A synced message as seen by the analysis pipeline."""
    id: str
    user_id: str
    sender_email: str
    date: datetime
    subject: Optional[str] = None
    sender_name: Optional[str] = None
    snippet: Optional[str] = None
    body_text: Optional[str] = None
    gmail_labels: List[str] = field(default_factory=list)
    gmail_id: Optional[str] = None
    thread_id: Optional[str] = None
    gmail_account_id: Optional[str] = None
    category: Optional[str] = None
    client_id: Optional[str] = None
    is_archived: bool = False
    analyzed_at: Optional[datetime] = None
    analysis_error: Optional[str] = None


@dataclass
class Client:
    """A known client of the user."""
    id: str
    name: str
    company: Optional[str] = None
    email_domains: List[str] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)
    priority: str = "medium"
    status: str = "active"


@dataclass
class UserContext:
    """Per-call analysis context: the owner and their active clients."""
    user_id: str
    clients: List[Client] = field(default_factory=list)


@dataclass
class AnalyzerResult:
    """Outcome of a single analyzer call. Never raised, always returned."""
    success: bool
    data: Optional[Dict[str, Any]] = None
    confidence: float = 0.0
    tokens_used: int = 0
    estimated_cost: float = 0.0
    processing_time_ms: int = 0
    error: Optional[str] = None


@dataclass
class CategorizationData:
    category: str
    confidence: float
    reasoning: str = ""
    topics: List[str] = field(default_factory=list)
    summary: str = ""
    quick_action: str = "none"


@dataclass
class ActionExtractionData:
    has_action: bool
    action_type: str = "none"
    action_title: Optional[str] = None
    action_description: Optional[str] = None
    urgency_score: int = 1
    deadline: Optional[str] = None
    estimated_minutes: Optional[int] = None
    confidence: float = 0.0


@dataclass
class ClientTaggingData:
    client_match: bool
    client_name: Optional[str] = None
    client_id: Optional[str] = None
    match_confidence: float = 0.0
    project_name: Optional[str] = None
    relationship_signal: str = "unknown"


@dataclass
class AggregatedAnalysis:
    """
    Combined output of the analyzers for one email.

    A facet is present only when its analyzer succeeded.
    """
    categorization: Optional[CategorizationData] = None
    action_extraction: Optional[ActionExtractionData] = None
    client_tagging: Optional[ClientTaggingData] = None
    total_tokens_used: int = 0
    total_estimated_cost: float = 0.0
    total_processing_time_ms: int = 0
    analyzer_version: str = ANALYZER_VERSION


@dataclass
class AnalysisSuccess:
    """The email was analyzed (or skipped because it already was)."""
    email_id: str
    analysis: AggregatedAnalysis
    skipped: bool = False

    @property
    def tokens_used(self) -> int:
        return self.analysis.total_tokens_used

    @property
    def estimated_cost(self) -> float:
        return self.analysis.total_estimated_cost


@dataclass
class AnalysisFailure:
    """Analysis or persistence of the email failed."""
    email_id: str
    error: str
    errors: List[str] = field(default_factory=list)
    tokens_used: int = 0
    estimated_cost: float = 0.0


AnalysisOutcome = Union[AnalysisSuccess, AnalysisFailure]

ProgressCallback = Callable[[int, int], None]
ErrorCallback = Callable[[str, str], None]


@dataclass
class ProcessOptions:
    """Options for processing a single email."""
    skip_analyzed: bool = True
    save_to_database: bool = True
    create_actions: bool = True


@dataclass
class BatchOptions(ProcessOptions):
    """Options for processing a list of emails in sub-batches."""
    batch_size: int = 10
    delay_between_batches: float = 0.1
    max_emails: Optional[int] = None
    item_timeout_seconds: float = 120
    on_progress: Optional[ProgressCallback] = None
    on_error: Optional[ErrorCallback] = None


@dataclass
class BatchResult:
    """Totals and per-email outcomes of one batch run."""
    total_emails: int = 0
    success_count: int = 0
    failure_count: int = 0
    skipped_count: int = 0
    total_time_ms: int = 0
    avg_time_per_email_ms: int = 0
    total_tokens_used: int = 0
    estimated_cost: float = 0.0
    results: Dict[str, AnalysisOutcome] = field(default_factory=dict)
    errors: List[Dict[str, str]] = field(default_factory=list)


@dataclass
class AnalysisResult:
    """
    Aggregate result of one batch analysis call for a user.

    success_count + failure_count + skipped_count always equals the number of
    emails handed to the batch processor.
    """
    success_count: int = 0
    failure_count: int = 0
    skipped_count: int = 0
    actions_created: int = 0
    tokens_used: int = 0
    estimated_cost: float = 0.0
    processing_time_ms: int = 0
    categorized: Dict[str, int] = field(default_factory=dict)
    errors: List[Dict[str, str]] = field(default_factory=list)

    @property
    def analyzed(self) -> int:
        return self.success_count + self.failure_count + self.skipped_count
