"""
Builders for records, emails, analyzer results and outcomes used across tests.
"""

from datetime import datetime, timedelta, timezone

from ideabox.email_processing.models import (
    ActionExtractionData,
    AggregatedAnalysis,
    AnalysisFailure,
    AnalysisSuccess,
    AnalyzerResult,
    CategorizationData,
    Email,
)
from ideabox.storage.models import ClientRecord, EmailRecord, GmailAccountRecord

USER_ID = "user-1"
OTHER_USER_ID = "user-2"
BASE_DATE = datetime(2026, 3, 1, 12, 0, 0)


def email_record(email_id, user_id=USER_ID, minutes=0, **overrides):
    values = dict(
        id=email_id,
        user_id=user_id,
        gmail_id=f"gmail-{email_id}",
        sender_email="sender@example.com",
        subject=f"Subject {email_id}",
        date=BASE_DATE + timedelta(minutes=minutes),
        body_text="Hello there",
    )
    values.update(overrides)
    return EmailRecord(**values)


def client_record(client_id, name, user_id=USER_ID, **overrides):
    values = dict(id=client_id, user_id=user_id, name=name, email_domains=[], keywords=[])
    values.update(overrides)
    return ClientRecord(**values)


def account_record(account_id, email, user_id=USER_ID, **overrides):
    values = dict(id=account_id, user_id=user_id, email=email)
    values.update(overrides)
    return GmailAccountRecord(**values)


def make_email(email_id="e1", analyzed=False, **overrides):
    values = dict(
        id=email_id,
        user_id=USER_ID,
        sender_email="sender@example.com",
        sender_name="Sender",
        subject="Quarterly proposal",
        date=BASE_DATE,
        body_text="Please review the attached proposal by Friday.",
        analyzed_at=datetime(2026, 3, 2, tzinfo=timezone.utc) if analyzed else None,
    )
    values.update(overrides)
    return Email(**values)


def make_success(email_id, category=None, has_action=False, tokens=0, cost=0.0, skipped=False):
    analysis = AggregatedAnalysis(
        categorization=CategorizationData(category=category, confidence=0.9) if category else None,
        action_extraction=ActionExtractionData(has_action=has_action, action_type="review" if has_action else "none"),
        total_tokens_used=tokens,
        total_estimated_cost=cost,
    )
    if skipped:
        analysis = AggregatedAnalysis()
    return AnalysisSuccess(email_id=email_id, analysis=analysis, skipped=skipped)


def make_failure(email_id, error="boom", tokens=0, cost=0.0):
    return AnalysisFailure(email_id=email_id, error=error, tokens_used=tokens, estimated_cost=cost)


def categorization_result(category="work", tokens=100, cost=0.0001):
    return AnalyzerResult(
        success=True,
        data={
            "category": category,
            "confidence": 0.9,
            "reasoning": "Work correspondence",
            "topics": ["proposal"],
            "summary": "Review the proposal",
            "quick_action": "review",
        },
        confidence=0.9,
        tokens_used=tokens,
        estimated_cost=cost,
        processing_time_ms=40,
    )


def action_result(has_action=True, action_type="review", tokens=80, cost=0.00008):
    return AnalyzerResult(
        success=True,
        data={
            "has_action": has_action,
            "action_type": action_type if has_action else "none",
            "action_title": "Review proposal" if has_action else None,
            "action_description": None,
            "urgency_score": 6,
            "deadline": None,
            "estimated_minutes": 15,
            "confidence": 0.8,
        },
        confidence=0.8,
        tokens_used=tokens,
        estimated_cost=cost,
        processing_time_ms=55,
    )


def tagging_result(client_id=None, tokens=50, cost=0.00005):
    return AnalyzerResult(
        success=True,
        data={
            "client_match": client_id is not None,
            "client_name": "Acme" if client_id else None,
            "client_id": client_id,
            "match_confidence": 0.9 if client_id else 0.0,
            "project_name": None,
            "relationship_signal": "neutral",
        },
        tokens_used=tokens,
        estimated_cost=cost,
        processing_time_ms=30,
    )


def failed_result(error="model unavailable"):
    return AnalyzerResult(success=False, error=error)
