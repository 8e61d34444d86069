"""
Repository Implementations for the Analysis Store

Data access for the analysis pipeline: selecting unanalyzed emails, loading
the user's clients, persisting analyses, actions and sync logs, and reading
connected Gmail accounts.

Design Considerations:
- Repository pattern for data access abstraction
- Every query is scoped to the owning user
- Methods return dataclasses or dictionaries, never ORM objects, so nothing
  is touched after its session closes
- Read failures surface as FetchError; analysis write failures as
  PerItemAnalysisError
"""

import logging
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from ideabox.email_processing.models import (
    ActionExtractionData,
    AggregatedAnalysis,
    Client,
    Email,
)
from ideabox.errors import FetchError, PerItemAnalysisError
from ideabox.storage.database import SessionFactory, get_db_session
from ideabox.storage.models import (
    ActionRecord,
    ClientRecord,
    EmailAnalysisRecord,
    EmailRecord,
    GmailAccountRecord,
    SyncLogRecord,
)

logger = logging.getLogger(__name__)


def _email_from_record(record: EmailRecord) -> Email:
    return Email(
        id=record.id,
        user_id=record.user_id,
        sender_email=record.sender_email,
        date=record.date,
        subject=record.subject,
        sender_name=record.sender_name,
        snippet=record.snippet,
        body_text=record.body_text,
        gmail_labels=list(record.gmail_labels or []),
        gmail_id=record.gmail_id,
        thread_id=record.thread_id,
        gmail_account_id=record.gmail_account_id,
        category=record.category,
        client_id=record.client_id,
        is_archived=record.is_archived,
        analyzed_at=record.analyzed_at,
        analysis_error=record.analysis_error,
    )


def _client_from_record(record: ClientRecord) -> Client:
    return Client(
        id=record.id,
        name=record.name,
        company=record.company,
        email_domains=list(record.email_domains or []),
        keywords=list(record.keywords or []),
        priority=record.priority,
        status=record.status,
    )


def _facet(value: Any) -> Optional[Dict[str, Any]]:
    return asdict(value) if value is not None else None


class EmailRepository:
    """Read access to synced emails plus the analysis error marker."""

    def __init__(self, session_factory: SessionFactory = get_db_session):
        self.session_factory = session_factory

    async def get_unanalyzed_emails(self, user_id: str, max_emails: int) -> List[Email]:
        """
        Select the user's emails that still need analysis.

        An email is eligible when it has never been analyzed and is not
        archived. Newest first by receipt date, at most ``max_emails``.

        Args:
            user_id: Owner of the emails
            max_emails: Upper bound on the number of emails returned

        Returns:
            Eligible emails, newest first

        Raises:
            FetchError: If the store cannot be queried
        """
        try:
            with self.session_factory() as session:
                records = (
                    session.query(EmailRecord)
                    .filter(
                        EmailRecord.user_id == user_id,
                        EmailRecord.analyzed_at.is_(None),
                        EmailRecord.is_archived.is_(False),
                    )
                    .order_by(EmailRecord.date.desc())
                    .limit(max_emails)
                    .all()
                )
                return [_email_from_record(record) for record in records]
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch unanalyzed emails for user {user_id}: {str(e)}")
            raise FetchError("Failed to fetch emails", str(e))

    async def get_email_for_user(self, user_id: str, email_id: str) -> Optional[Email]:
        """Return the email if it exists and belongs to the user, else None."""
        try:
            with self.session_factory() as session:
                record = (
                    session.query(EmailRecord)
                    .filter(EmailRecord.id == email_id, EmailRecord.user_id == user_id)
                    .first()
                )
                return _email_from_record(record) if record else None
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch email {email_id}: {str(e)}")
            raise FetchError("Failed to fetch email", str(e))

    async def record_analysis_error(self, email_id: str, error: str) -> None:
        """Store the last analysis error on the email. Best effort."""
        try:
            with self.session_factory() as session:
                session.query(EmailRecord).filter(EmailRecord.id == email_id).update(
                    {EmailRecord.analysis_error: error}
                )
        except SQLAlchemyError as e:
            logger.warning(f"Could not record analysis error for email {email_id}: {str(e)}")

    async def count_for_account(self, user_id: str, account_id: str) -> int:
        """
        Count the emails synced from one Gmail account.

        Raises:
            FetchError: If the count query fails
        """
        try:
            with self.session_factory() as session:
                return (
                    session.query(func.count(EmailRecord.id))
                    .filter(
                        EmailRecord.user_id == user_id,
                        EmailRecord.gmail_account_id == account_id,
                    )
                    .scalar()
                ) or 0
        except SQLAlchemyError as e:
            logger.error(f"Failed to count emails for account {account_id}: {str(e)}")
            raise FetchError("Failed to count emails", str(e))


class ClientRepository:
    """Read access to the user's client roster."""

    def __init__(self, session_factory: SessionFactory = get_db_session):
        self.session_factory = session_factory

    async def get_active_clients(self, user_id: str) -> List[Client]:
        """
        Load the user's active clients.

        Raises:
            FetchError: If the store cannot be queried
        """
        try:
            with self.session_factory() as session:
                records = (
                    session.query(ClientRecord)
                    .filter(ClientRecord.user_id == user_id, ClientRecord.status == "active")
                    .order_by(ClientRecord.name)
                    .all()
                )
                return [_client_from_record(record) for record in records]
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch clients for user {user_id}: {str(e)}")
            raise FetchError("Failed to fetch clients", str(e))


class AnalysisRepository:
    """Persistence of aggregated analyses and the email fields they drive."""

    def __init__(self, session_factory: SessionFactory = get_db_session):
        self.session_factory = session_factory

    async def save_analysis(self, email: Email, analysis: AggregatedAnalysis) -> None:
        """
        Upsert the analysis row and mark the email analyzed.

        The analysis row, ``analyzed_at``, the category and the client link are
        written in a single transaction.

        Args:
            email: The analyzed email
            analysis: Aggregated analyzer output

        Raises:
            PerItemAnalysisError: If the write fails
        """
        values = {
            "categorization": _facet(analysis.categorization),
            "action_extraction": _facet(analysis.action_extraction),
            "client_tagging": _facet(analysis.client_tagging),
            "analyzer_version": analysis.analyzer_version,
            "tokens_used": analysis.total_tokens_used,
            "estimated_cost": analysis.total_estimated_cost,
            "processing_time_ms": analysis.total_processing_time_ms,
        }
        email_updates: Dict[Any, Any] = {
            EmailRecord.analyzed_at: datetime.now(timezone.utc),
            EmailRecord.analysis_error: None,
        }
        if analysis.categorization:
            email_updates[EmailRecord.category] = analysis.categorization.category
        tagging = analysis.client_tagging
        if tagging and tagging.client_match and tagging.client_id:
            email_updates[EmailRecord.client_id] = tagging.client_id

        try:
            with self.session_factory() as session:
                record = (
                    session.query(EmailAnalysisRecord)
                    .filter(EmailAnalysisRecord.email_id == email.id)
                    .first()
                )
                if record is None:
                    session.add(EmailAnalysisRecord(email_id=email.id, user_id=email.user_id, **values))
                else:
                    for key, value in values.items():
                        setattr(record, key, value)
                    record.created_at = datetime.now(timezone.utc)

                session.query(EmailRecord).filter(EmailRecord.id == email.id).update(email_updates)
            logger.debug(f"Saved analysis for email {email.id}")
        except SQLAlchemyError as e:
            logger.error(f"Failed to save analysis for email {email.id}: {str(e)}")
            raise PerItemAnalysisError(email.id, "Failed to save analysis", str(e))

    async def get_analysis(self, email_id: str) -> Optional[Dict[str, Any]]:
        """Return the stored analysis for an email, or None."""
        try:
            with self.session_factory() as session:
                record = (
                    session.query(EmailAnalysisRecord)
                    .filter(EmailAnalysisRecord.email_id == email_id)
                    .first()
                )
                return record.to_dict() if record else None
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch analysis for email {email_id}: {str(e)}")
            raise FetchError("Failed to fetch analysis", str(e))


class ActionRepository:
    """Creation of action items extracted from emails."""

    def __init__(self, session_factory: SessionFactory = get_db_session):
        self.session_factory = session_factory

    async def create_action(
        self,
        email: Email,
        action: ActionExtractionData,
        client_id: Optional[str] = None
    ) -> str:
        """
        Insert a pending, AI-sourced action for an email.

        Returns:
            The id of the new action
        """
        with self.session_factory() as session:
            record = ActionRecord(
                user_id=email.user_id,
                email_id=email.id,
                client_id=client_id,
                title=action.action_title or email.subject or "Action required",
                description=action.action_description,
                action_type=action.action_type,
                urgency_score=action.urgency_score,
                deadline=action.deadline,
                estimated_minutes=action.estimated_minutes,
                status="pending",
                source="ai",
            )
            session.add(record)
            session.flush()
            action_id = record.id
        logger.debug(f"Created action {action_id} for email {email.id}")
        return action_id


class SyncLogRepository:
    """Sync and analysis run logs."""

    def __init__(self, session_factory: SessionFactory = get_db_session):
        self.session_factory = session_factory

    async def create_log(
        self,
        user_id: str,
        sync_type: str,
        status: str,
        emails_fetched: int = 0,
        emails_analyzed: int = 0,
        errors_count: int = 0,
        duration_ms: Optional[int] = None,
        started_at: Optional[datetime] = None,
        error_message: Optional[str] = None
    ) -> str:
        """Insert a completed log row and return its id."""
        with self.session_factory() as session:
            record = SyncLogRecord(
                user_id=user_id,
                sync_type=sync_type,
                status=status,
                emails_fetched=emails_fetched,
                emails_analyzed=emails_analyzed,
                errors_count=errors_count,
                duration_ms=duration_ms,
                error_message=error_message,
                started_at=started_at or datetime.now(timezone.utc),
                completed_at=datetime.now(timezone.utc),
            )
            session.add(record)
            session.flush()
            return record.id

    async def get_latest(self, user_id: str) -> Optional[Dict[str, Any]]:
        """
        Return the most recent log for the user, or None.

        Raises:
            FetchError: If the store cannot be queried
        """
        try:
            with self.session_factory() as session:
                record = (
                    session.query(SyncLogRecord)
                    .filter(SyncLogRecord.user_id == user_id)
                    .order_by(SyncLogRecord.completed_at.desc().nullslast())
                    .first()
                )
                return record.to_dict() if record else None
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch latest sync log for user {user_id}: {str(e)}")
            raise FetchError("Failed to fetch sync status", str(e))


class GmailAccountRepository:
    """Read access to connected Gmail accounts."""

    def __init__(self, session_factory: SessionFactory = get_db_session):
        self.session_factory = session_factory

    async def list_for_user(self, user_id: str) -> List[Dict[str, Any]]:
        """
        List the user's accounts, oldest connection first.

        Raises:
            FetchError: If the store cannot be queried
        """
        try:
            with self.session_factory() as session:
                records = (
                    session.query(GmailAccountRecord)
                    .filter(GmailAccountRecord.user_id == user_id)
                    .order_by(GmailAccountRecord.created_at.asc())
                    .all()
                )
                return [record.to_dict() for record in records]
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch Gmail accounts for user {user_id}: {str(e)}")
            raise FetchError("Failed to fetch accounts", str(e))
