"""
API endpoint tests for the analysis service.

These tests verify authentication, request validation, response shapes and
the mapping of service errors to status codes. FastAPI's TestClient drives
the real application; the services behind the routes are replaced through
dependency overrides and tokens are signed with the test secret.

Testing Strategy:
- Reject missing and invalid bearer tokens
- Validate request bodies before any work starts
- Confirm camelCase response bodies
- Map service errors to the documented status codes
"""

import pytest
from contextlib import contextmanager
from datetime import timedelta
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from unittest.mock import AsyncMock, MagicMock

from api.main import app
from api.auth.service import AuthenticationService
from api.models.accounts import AccountListResponse, AccountSummary, LatestSync
from api.models.emails import AnalysisSummary, AnalyzeEmailResponse, AnalyzeEmailsResponse
from api.services.account_service import get_account_service
from api.services.email_service import (
    NOTHING_TO_ANALYZE_MESSAGE,
    EmailService,
    get_email_service,
    to_result_model,
)
from ideabox.email_processing.models import AnalysisResult
from ideabox.email_processing.orchestrator import AnalysisOrchestrator
from ideabox.email_processing.processor import EmailProcessor
from ideabox.errors import AnalysisTimeoutError, FetchError, NotFoundError, PerItemAnalysisError
from ideabox.storage.models import EmailAnalysisRecord
from ideabox.storage.repositories import (
    ActionRepository,
    AnalysisRepository,
    ClientRepository,
    EmailRepository,
    SyncLogRepository,
)
from tests.factories import (
    BASE_DATE,
    OTHER_USER_ID,
    USER_ID,
    action_result,
    categorization_result,
    email_record,
    tagging_result,
)

client = TestClient(app)


def auth_headers(user_id=USER_ID, **extra):
    token = AuthenticationService().create_access_token({"sub": user_id, "email": "user@example.com"})
    return {"Authorization": f"Bearer {token}", **extra}


@pytest.fixture
def email_service():
    service = MagicMock()
    service.analyze_unanalyzed = AsyncMock()
    service.analyze_email = AsyncMock()
    app.dependency_overrides[get_email_service] = lambda: service
    yield service
    app.dependency_overrides.pop(get_email_service, None)


@pytest.fixture
def account_service():
    service = MagicMock()
    service.list_accounts = AsyncMock()
    app.dependency_overrides[get_account_service] = lambda: service
    yield service
    app.dependency_overrides.pop(get_account_service, None)


def batch_response():
    result = AnalysisResult(
        success_count=2,
        failure_count=1,
        actions_created=1,
        tokens_used=640,
        estimated_cost=0.0004,
        processing_time_ms=2100,
        categorized={"work": 1, "finance": 1},
        errors=[{"email_id": "e3", "error": "All analyzers failed"}],
    )
    return AnalyzeEmailsResponse(analyzed=result.success_count, results=to_result_model(result))


class TestAuthentication:

    def test_missing_token(self, email_service):
        response = client.post("/api/emails/analyze", json={})

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}
        assert response.headers["WWW-Authenticate"] == "Bearer"
        email_service.analyze_unanalyzed.assert_not_called()

    def test_invalid_token(self, email_service):
        response = client.post(
            "/api/emails/analyze",
            json={},
            headers={"Authorization": "Bearer not-a-jwt"},
        )

        assert response.status_code == 401
        assert response.json()["error"] == "Invalid authentication credentials"

    def test_expired_token(self, account_service):
        token = AuthenticationService().create_access_token({"sub": USER_ID}, timedelta(minutes=-5))

        response = client.get("/api/gmail/accounts", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        account_service.list_accounts.assert_not_called()


class TestBatchAnalysisEndpoint:

    def test_successful_run(self, email_service):
        email_service.analyze_unanalyzed.return_value = batch_response()

        response = client.post(
            "/api/emails/analyze",
            json={"maxEmails": 20, "batchSize": 5},
            headers=auth_headers(),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["analyzed"] == 2
        assert "message" not in body
        assert body["results"]["successCount"] == 2
        assert body["results"]["failureCount"] == 1
        assert body["results"]["skippedCount"] == 0
        assert body["results"]["actionsCreated"] == 1
        assert body["results"]["categorized"] == {"work": 1, "finance": 1}
        assert body["results"]["errors"] == [{"emailId": "e3", "error": "All analyzers failed"}]
        email_service.analyze_unanalyzed.assert_awaited_once_with(USER_ID, 20, 5)

    def test_body_is_optional(self, email_service):
        email_service.analyze_unanalyzed.return_value = batch_response()

        response = client.post("/api/emails/analyze", headers=auth_headers())

        assert response.status_code == 200
        email_service.analyze_unanalyzed.assert_awaited_once_with(USER_ID, None, None)

    def test_nothing_to_analyze(self, email_service):
        email_service.analyze_unanalyzed.return_value = AnalyzeEmailsResponse(
            analyzed=0,
            results=to_result_model(AnalysisResult()),
            message=NOTHING_TO_ANALYZE_MESSAGE,
        )

        response = client.post("/api/emails/analyze", json={}, headers=auth_headers())

        assert response.status_code == 200
        assert response.json()["analyzed"] == 0
        assert response.json()["message"] == NOTHING_TO_ANALYZE_MESSAGE

    @pytest.mark.parametrize("body", [
        {"maxEmails": 0},
        {"maxEmails": 201},
        {"batchSize": 21},
        {"batchSize": "many"},
    ])
    def test_invalid_body(self, email_service, body):
        response = client.post("/api/emails/analyze", json=body, headers=auth_headers())

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request body"
        assert isinstance(response.json()["details"], list)
        email_service.analyze_unanalyzed.assert_not_called()

    def test_selection_failure_hides_detail(self, email_service):
        email_service.analyze_unanalyzed.side_effect = FetchError("Failed to fetch emails", "connection refused")

        response = client.post("/api/emails/analyze", json={}, headers=auth_headers())

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch emails"}

    def test_skip_already_analyzed_is_ignored(self, email_service):
        email_service.analyze_unanalyzed.return_value = batch_response()

        response = client.post(
            "/api/emails/analyze",
            json={"maxEmails": 5, "skipAlreadyAnalyzed": False},
            headers=auth_headers(),
        )

        assert response.status_code == 200
        email_service.analyze_unanalyzed.assert_awaited_once_with(USER_ID, 5, None)

    def test_timeout(self, email_service):
        email_service.analyze_unanalyzed.side_effect = AnalysisTimeoutError("Analysis timed out after 300.0 seconds")

        response = client.post("/api/emails/analyze", json={}, headers=auth_headers())

        assert response.status_code == 500
        assert response.json()["error"] == "Analysis timed out after 300.0 seconds"

    def test_unexpected_error_is_sanitized(self, email_service):
        email_service.analyze_unanalyzed.side_effect = RuntimeError("secret internals")
        unsafe_client = TestClient(app, raise_server_exceptions=False)

        response = unsafe_client.post("/api/emails/analyze", json={}, headers=auth_headers())

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}


class TestSingleEmailEndpoint:

    def test_fresh_analysis(self, email_service):
        email_service.analyze_email.return_value = AnalyzeEmailResponse(
            analysis={"categorization": {"category": "work"}, "total_tokens_used": 230},
            summary=AnalysisSummary(category="work", has_action=True, action_title="Reply", tokens_used=230),
        )

        response = client.post("/api/emails/e1/analyze", headers=auth_headers())

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["summary"]["category"] == "work"
        assert body["summary"]["hasAction"] is True
        assert body["summary"]["tokensUsed"] == 230
        assert "alreadyAnalyzed" not in body
        email_service.analyze_email.assert_awaited_once_with(USER_ID, "e1", force=False)

    def test_already_analyzed(self, email_service):
        email_service.analyze_email.return_value = AnalyzeEmailResponse(
            already_analyzed=True,
            analysis={"email_id": "e1"},
            message="Email was already analyzed. Set x-force-reanalyze header to re-analyze.",
        )

        response = client.post("/api/emails/e1/analyze", headers=auth_headers())

        assert response.status_code == 200
        assert response.json()["alreadyAnalyzed"] is True
        assert "summary" not in response.json()

    @pytest.mark.parametrize("value,expected", [("true", True), ("TRUE", True), ("false", False), ("1", False)])
    def test_force_header(self, email_service, value, expected):
        email_service.analyze_email.return_value = AnalyzeEmailResponse(analysis={})

        client.post("/api/emails/e1/analyze", headers=auth_headers(**{"x-force-reanalyze": value}))

        email_service.analyze_email.assert_awaited_once_with(USER_ID, "e1", force=expected)

    def test_not_found(self, email_service):
        email_service.analyze_email.side_effect = NotFoundError("Email not found")

        response = client.post("/api/emails/missing/analyze", headers=auth_headers())

        assert response.status_code == 404
        assert response.json() == {"error": "Email not found"}

    def test_analysis_failure_hides_detail(self, email_service):
        email_service.analyze_email.side_effect = PerItemAnalysisError(
            "e1", "Analysis failed: All analyzers failed", "categorizer: timeout"
        )

        response = client.post("/api/emails/e1/analyze", headers=auth_headers())

        assert response.status_code == 500
        assert response.json() == {"error": "Analysis failed: All analyzers failed"}


class TestAccountsEndpoint:

    def test_list_accounts(self, account_service):
        account_service.list_accounts.return_value = AccountListResponse(
            accounts=[
                AccountSummary(id="a1", email="one@example.com", sync_enabled=True, email_count=12),
                AccountSummary(id="a2", email="two@example.com", sync_enabled=False, email_count=0),
            ],
            latest_sync=LatestSync(status="completed", completed_at="2026-03-05T09:00:00", emails_fetched=12),
        )

        response = client.get("/api/gmail/accounts", headers=auth_headers())

        assert response.status_code == 200
        body = response.json()
        assert [a["email_count"] for a in body["accounts"]] == [12, 0]
        assert body["accounts"][1]["sync_enabled"] is False
        assert body["latestSync"]["status"] == "completed"
        assert all("access_token" not in a and "refresh_token" not in a for a in body["accounts"])
        account_service.list_accounts.assert_awaited_once_with(USER_ID)

    def test_no_sync_yet(self, account_service):
        account_service.list_accounts.return_value = AccountListResponse(accounts=[])

        response = client.get("/api/gmail/accounts", headers=auth_headers())

        assert response.status_code == 200
        assert response.json() == {"accounts": [], "latestSync": None}

    def test_count_failure(self, account_service):
        account_service.list_accounts.side_effect = FetchError("Failed to count emails")

        response = client.get("/api/gmail/accounts", headers=auth_headers())

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to count emails"}


def test_health_check():
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["version"] == "1.0.0"


class TestReanalysisGuard:
    """Single-email endpoint over the real service and an in-memory store."""

    @pytest.fixture
    def analyzers(self):
        return {
            "categorizer": MagicMock(analyze=AsyncMock(return_value=categorization_result("clients"))),
            "action_extractor": MagicMock(analyze=AsyncMock(return_value=action_result())),
            "client_tagger": MagicMock(analyze=AsyncMock(return_value=tagging_result())),
        }

    @pytest.fixture
    def live_service(self, session_factory, analyzers):
        email_repository = EmailRepository(session_factory)
        analysis_repository = AnalysisRepository(session_factory)
        processor = EmailProcessor(
            email_repository=email_repository,
            analysis_repository=analysis_repository,
            action_repository=ActionRepository(session_factory),
            **analyzers,
        )
        service = EmailService(
            processor=processor,
            orchestrator=AnalysisOrchestrator(email_repository, ClientRepository(session_factory)),
            email_repository=email_repository,
            analysis_repository=analysis_repository,
            sync_log_repository=SyncLogRepository(session_factory),
        )
        app.dependency_overrides[get_email_service] = lambda: service
        yield service
        app.dependency_overrides.pop(get_email_service, None)

    def test_repeat_calls_return_stored_analysis(self, live_service, analyzers, seed):
        seed(
            email_record("e1", analyzed_at=BASE_DATE),
            EmailAnalysisRecord(
                email_id="e1",
                user_id=USER_ID,
                categorization={"category": "finance", "confidence": 0.8},
                analyzer_version="1.0.0",
                tokens_used=90,
            ),
        )

        first = client.post("/api/emails/e1/analyze", headers=auth_headers())
        second = client.post("/api/emails/e1/analyze", headers=auth_headers())

        assert first.status_code == second.status_code == 200
        assert first.json()["alreadyAnalyzed"] is True
        assert first.json()["analysis"] == second.json()["analysis"]
        assert first.json()["analysis"]["categorization"]["category"] == "finance"
        for analyzer in analyzers.values():
            analyzer.analyze.assert_not_called()

    def test_force_header_reanalyzes_every_time(self, live_service, analyzers, seed):
        seed(email_record("e1", analyzed_at=BASE_DATE))
        headers = auth_headers(**{"x-force-reanalyze": "true"})

        first = client.post("/api/emails/e1/analyze", headers=headers)
        second = client.post("/api/emails/e1/analyze", headers=headers)

        assert first.status_code == second.status_code == 200
        assert second.json()["summary"]["category"] == "clients"
        assert second.json()["summary"]["hasAction"] is True
        for analyzer in analyzers.values():
            assert analyzer.analyze.await_count == 2

    def test_unknown_email_is_404(self, live_service):
        response = client.post("/api/emails/missing/analyze", headers=auth_headers())

        assert response.status_code == 404
        assert response.json() == {"error": "Email not found"}

    def test_foreign_email_is_404(self, live_service, seed):
        seed(email_record("e9", user_id=OTHER_USER_ID))

        response = client.post("/api/emails/e9/analyze", headers=auth_headers())

        assert response.status_code == 404


@contextmanager
def unreachable_store():
    raise OperationalError(
        "SELECT * FROM emails WHERE user_id = ?",
        ("user-1",),
        Exception("could not connect to server at 10.0.0.5:5432"),
    )
    yield  # pragma: no cover


class TestStoreFailureResponses:
    """Store failures answer with a short message and no database internals."""

    @pytest.fixture
    def analyzers(self):
        return {
            "categorizer": MagicMock(analyze=AsyncMock(return_value=categorization_result())),
            "action_extractor": MagicMock(analyze=AsyncMock(return_value=action_result())),
            "client_tagger": MagicMock(analyze=AsyncMock(return_value=tagging_result())),
        }

    def install(self, email_factory, analysis_factory, session_factory, analyzers):
        email_repository = EmailRepository(email_factory)
        analysis_repository = AnalysisRepository(analysis_factory)
        service = EmailService(
            processor=EmailProcessor(
                email_repository=email_repository,
                analysis_repository=analysis_repository,
                action_repository=ActionRepository(session_factory),
                **analyzers,
            ),
            orchestrator=AnalysisOrchestrator(email_repository, ClientRepository(session_factory)),
            email_repository=email_repository,
            analysis_repository=analysis_repository,
            sync_log_repository=SyncLogRepository(session_factory),
        )
        app.dependency_overrides[get_email_service] = lambda: service

    @pytest.fixture(autouse=True)
    def clear_override(self):
        yield
        app.dependency_overrides.pop(get_email_service, None)

    def test_batch_selection_failure(self, session_factory, analyzers):
        self.install(unreachable_store, session_factory, session_factory, analyzers)

        response = client.post("/api/emails/analyze", json={}, headers=auth_headers())

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch emails"}
        assert "SELECT" not in response.text
        assert "10.0.0.5" not in response.text

    def test_single_email_save_failure(self, session_factory, analyzers, seed):
        seed(email_record("e1"))
        self.install(session_factory, unreachable_store, session_factory, analyzers)

        response = client.post("/api/emails/e1/analyze", headers=auth_headers())

        assert response.status_code == 500
        assert response.json() == {"error": "Analysis failed: Failed to save analysis"}
        assert "10.0.0.5" not in response.text
