"""
Database Models for the IdeaBox Store

Defines the tables the analysis pipeline reads and writes: connected Gmail
accounts, synced emails, the user's clients, per-email AI analyses, action
items extracted from emails, and sync/analysis logs.

Design Considerations:
- Every row is owned by a user id; queries are always owner-scoped
- JSON columns for analyzer outputs so their shape can evolve
- Indexes on the columns used by the unanalyzed-email selector
- OAuth tokens are never stored on the account row
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: datetime) -> Any:
    return value.isoformat() if value else None


class GmailAccountRecord(Base):
    """A Gmail mailbox connected by a user."""
    __tablename__ = "gmail_accounts"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    email = Column(String(255), nullable=False)
    display_name = Column(String(255), nullable=True)
    last_sync_at = Column(DateTime(timezone=True), nullable=True)
    sync_enabled = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        """Public representation; no credential fields exist on this row."""
        return {
            "id": self.id,
            "email": self.email,
            "display_name": self.display_name,
            "last_sync_at": _iso(self.last_sync_at),
            "sync_enabled": self.sync_enabled,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class ClientRecord(Base):
    """A known client used to disambiguate analysis output."""
    __tablename__ = "clients"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    company = Column(String(255), nullable=True)
    email_domains = Column(JSON, nullable=False, default=list)
    keywords = Column(JSON, nullable=False, default=list)
    priority = Column(String(20), nullable=False, default="medium")  # low|medium|high|vip
    status = Column(String(20), nullable=False, default="active")  # active|inactive|archived

    created_at = Column(DateTime(timezone=True), default=_now, nullable=False)


class EmailRecord(Base):
    """A synced Gmail message."""
    __tablename__ = "emails"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    gmail_account_id = Column(String(36), ForeignKey("gmail_accounts.id", ondelete="CASCADE"), nullable=True, index=True)

    gmail_id = Column(String(255), nullable=False)
    thread_id = Column(String(255), nullable=True)

    subject = Column(Text, nullable=True)
    sender_email = Column(String(255), nullable=False)
    sender_name = Column(String(255), nullable=True)
    date = Column(DateTime(timezone=True), nullable=False)
    snippet = Column(Text, nullable=True)
    body_text = Column(Text, nullable=True)
    gmail_labels = Column(JSON, nullable=False, default=list)

    category = Column(String(50), nullable=True)
    client_id = Column(String(36), ForeignKey("clients.id", ondelete="SET NULL"), nullable=True)

    is_archived = Column(Boolean, default=False, nullable=False)

    # null until analysis completes
    analyzed_at = Column(DateTime(timezone=True), nullable=True)
    analysis_error = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=_now, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "gmail_id", name="uq_emails_user_gmail_id"),
        Index("idx_emails_user_date", "user_id", "date"),
        Index("idx_emails_unanalyzed", "user_id", "analyzed_at", "is_archived"),
    )


class EmailAnalysisRecord(Base):
    """Aggregated analyzer output, one row per email."""
    __tablename__ = "email_analyses"

    id = Column(String(36), primary_key=True, default=_uuid)
    email_id = Column(String(36), ForeignKey("emails.id", ondelete="CASCADE"), nullable=False, unique=True)
    user_id = Column(String(36), nullable=False, index=True)

    categorization = Column(JSON, nullable=True)
    action_extraction = Column(JSON, nullable=True)
    client_tagging = Column(JSON, nullable=True)

    analyzer_version = Column(String(20), nullable=False)
    tokens_used = Column(Integer, nullable=False, default=0)
    estimated_cost = Column(Float, nullable=False, default=0.0)
    processing_time_ms = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=_now, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        """Convert analysis row to dictionary representation for API responses."""
        return {
            "id": self.id,
            "email_id": self.email_id,
            "user_id": self.user_id,
            "categorization": self.categorization,
            "action_extraction": self.action_extraction,
            "client_tagging": self.client_tagging,
            "analyzer_version": self.analyzer_version,
            "tokens_used": self.tokens_used,
            "estimated_cost": self.estimated_cost,
            "processing_time_ms": self.processing_time_ms,
            "created_at": _iso(self.created_at),
        }


class ActionRecord(Base):
    """An action item extracted from an email."""
    __tablename__ = "actions"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    email_id = Column(String(36), ForeignKey("emails.id", ondelete="SET NULL"), nullable=True)
    client_id = Column(String(36), ForeignKey("clients.id", ondelete="SET NULL"), nullable=True)

    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    action_type = Column(String(20), nullable=True)
    urgency_score = Column(Integer, nullable=False, default=5)
    deadline = Column(String(64), nullable=True)
    estimated_minutes = Column(Integer, nullable=True)
    status = Column(String(20), nullable=False, default="pending")
    source = Column(String(20), nullable=False, default="ai")

    created_at = Column(DateTime(timezone=True), default=_now, nullable=False)


class SyncLogRecord(Base):
    """Outcome of a sync or analysis run."""
    __tablename__ = "sync_logs"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    sync_type = Column(String(20), nullable=False)  # full|incremental|analysis
    status = Column(String(20), nullable=False)  # completed|failed
    emails_fetched = Column(Integer, nullable=False, default=0)
    emails_analyzed = Column(Integer, nullable=False, default=0)
    errors_count = Column(Integer, nullable=False, default=0)
    duration_ms = Column(Integer, nullable=True)
    error_message = Column(Text, nullable=True)

    started_at = Column(DateTime(timezone=True), default=_now, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "completed_at": _iso(self.completed_at),
            "emails_fetched": self.emails_fetched,
            "emails_analyzed": self.emails_analyzed,
            "error_message": self.error_message,
            "duration_ms": self.duration_ms,
        }
