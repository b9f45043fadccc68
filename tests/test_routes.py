"""HTTP API tests with FastAPI's TestClient.

The lifespan is not run: components are placed on ``app.state`` by hand,
with a MockRepository behind the DraftService and AsyncMock stand-ins for
the report queue and publisher.  ``get_db`` is overridden so no database
is needed.
"""

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from helpers.mocks import MockRepository
from sugb_forms.drafts import DraftService
from sugb_forms.schema_store import SchemaStore
from sugb_reports.exceptions import ArtifactNotFoundError
from sugb_reports.models import JobStatusInfo
from sugb_server.app import create_app
from sugb_server.config import ServerSettings
from sugb_server.dependencies import get_db
from sugb_server.routes import reports as reports_routes

USER = {"X-User-ID": "u1"}
OTHER = {"X-User-ID": "u2"}
COMPLETE = {"q1": "Acme", "q2": "5000", "q3": "A"}


@pytest.fixture
def settings():
    return ServerSettings(admin_api_key="admin-secret", log_level="WARNING")


@pytest.fixture
def queue():
    q = AsyncMock()
    q.enqueue.return_value = "job-1"
    q.get_status.return_value = None
    q.drain.return_value = 2
    q.reclaim_stale.return_value = 1
    return q


@pytest.fixture
def publisher():
    p = AsyncMock()
    p.fetch.return_value = b"%PDF-test"
    return p


@pytest.fixture
def audit(monkeypatch):
    mock = AsyncMock()
    monkeypatch.setattr(reports_routes, "_audit", mock)
    return mock


@pytest.fixture
def app(settings, small_schema, small_engine, queue, publisher, audit):
    application = create_app(settings)
    drafts = DraftService(small_engine)
    drafts._repo = MockRepository()
    drafts._audit = AsyncMock()

    application.state.schema_store = SchemaStore.from_schema(small_schema)
    application.state.form_engine = small_engine
    application.state.drafts = drafts
    application.state.report_queue = queue
    application.state.publisher = publisher

    async def override_db():
        yield AsyncMock()

    application.dependency_overrides[get_db] = override_db
    return application


@pytest.fixture
def client(app):
    return TestClient(app)


def _save(client, responses, headers=USER, **extra):
    return client.post(
        "/api/v1/survey/draft", json={"responses": responses, **extra}, headers=headers,
    )


# =====================================================================
# Identity
# =====================================================================


class TestIdentity:
    """X-User-ID and the optional proxy secret."""

    def test_missing_user_header_is_401(self, client):
        assert client.get("/api/v1/survey/draft").status_code == 401

    def test_proxy_secret_enforced_when_configured(self, app):
        app.state.settings = ServerSettings(trusted_proxy_secret="gw")
        client = TestClient(app)
        url = "/api/v1/survey/draft"
        assert client.get(url, headers=USER).status_code == 403
        assert client.get(url, headers={**USER, "X-Proxy-Secret": "nope"}).status_code == 403
        assert client.get(url, headers={**USER, "X-Proxy-Secret": "gw"}).status_code == 200


# =====================================================================
# Survey
# =====================================================================


class TestSurveyRoutes:
    """Schema, draft load and draft save/submit."""

    def test_schema(self, client):
        resp = client.get("/api/v1/survey/schema")
        assert resp.status_code == 200
        body = resp.json()
        assert [s["id"] for s in body["sections"]] == ["s1", "s2"]

    def test_draft_for_new_user(self, client):
        resp = client.get("/api/v1/survey/draft", headers=USER)
        assert resp.status_code == 200
        body = resp.json()
        assert body["draft"] is None
        assert body["form"]["progress"] == 0
        assert body["form"]["section_id"] == "s1"

    def test_section_index_out_of_range_is_400(self, client):
        resp = client.get("/api/v1/survey/draft?section_index=9", headers=USER)
        assert resp.status_code == 400

    def test_save_then_load(self, client):
        resp = _save(client, {"q1": "Acme", "q2": "5000"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["progress"] == 67
        assert body["can_submit"] is False
        assert body["errors"] == {"q3": "Scheme is required"}

        loaded = client.get("/api/v1/survey/draft?section_index=1", headers=USER).json()
        assert loaded["draft"]["responses"] == {"q1": "Acme", "q2": "5000"}
        assert loaded["form"]["section_id"] == "s2"
        assert loaded["form"]["furthest_unlocked"] == 1

    def test_unknown_question_is_400(self, client):
        assert _save(client, {"nope": 1}).status_code == 400

    def test_incomplete_submission_is_422(self, client):
        resp = _save(client, {"q1": "Acme"}, is_complete=True)
        assert resp.status_code == 422
        assert resp.json()["detail"] == "Please complete all required sections before submitting"

    def test_complete_submission(self, client):
        resp = _save(client, COMPLETE, is_complete=True)
        assert resp.status_code == 200
        body = resp.json()
        assert body["survey_response"]["status"] == "completed"
        assert body["progress"] == 100
        assert body["can_submit"] is True


# =====================================================================
# Reports
# =====================================================================


class TestReportRoutes:
    """Report request, status and download."""

    def _response_id(self, client):
        return _save(client, COMPLETE, is_complete=True).json()["survey_response"]["survey_response_id"]

    def test_request_report_enqueues_and_drains(self, client, queue, audit):
        rid = self._response_id(client)
        resp = client.post(
            "/api/v1/reports",
            json={"survey_response_id": rid, "options": {"includeCharts": False}},
            headers=USER,
        )
        assert resp.status_code == 202
        assert resp.json() == {"message": "PDF generation started", "job_id": "job-1"}

        queue.enqueue.assert_awaited_once()
        _, enqueued_id, options = queue.enqueue.await_args.args
        assert enqueued_id == rid
        assert options.include_charts is False
        queue.drain.assert_awaited_once()
        assert audit.add_entry.await_args.kwargs["action"] == "report_requested"

    def test_no_drain_when_worker_owns_queue(self, app, client, queue):
        app.state.settings = ServerSettings(drain_on_request=False)
        rid = self._response_id(client)
        resp = client.post("/api/v1/reports", json={"survey_response_id": rid}, headers=USER)
        assert resp.status_code == 202
        queue.drain.assert_not_awaited()

    def test_request_for_other_users_response_is_404(self, client, queue):
        rid = self._response_id(client)
        resp = client.post("/api/v1/reports", json={"survey_response_id": rid}, headers=OTHER)
        assert resp.status_code == 404
        queue.enqueue.assert_not_awaited()

    def test_unknown_job_is_404(self, client, queue):
        resp = client.get("/api/v1/reports/jobs/missing", headers=USER)
        assert resp.status_code == 404
        assert queue.get_status.await_args.kwargs["user_id"] == "u1"

    def test_job_status(self, client, queue):
        queue.get_status.return_value = JobStatusInfo(
            id="job-1",
            status="completed",
            attempts=1,
            max_attempts=3,
            created_at=datetime(2026, 10, 1, tzinfo=timezone.utc),
            artifact_ref="/api/v1/reports/download/x.pdf",
        )
        body = client.get("/api/v1/reports/jobs/job-1", headers=USER).json()
        assert body["status"] == "completed"
        assert body["artifact_ref"] == "/api/v1/reports/download/x.pdf"

    def test_download(self, client, publisher):
        rid = self._response_id(client)
        name = f"sugb-report-{rid}-1700000000000.pdf"
        resp = client.get(f"/api/v1/reports/download/{name}", headers=USER)
        assert resp.status_code == 200
        assert resp.content == b"%PDF-test"
        assert resp.headers["content-type"] == "application/pdf"
        assert name in resp.headers["content-disposition"]
        publisher.fetch.assert_awaited_once_with(name)

    def test_download_other_users_report_is_404(self, client, publisher):
        rid = self._response_id(client)
        name = f"sugb-report-{rid}-1.pdf"
        assert client.get(f"/api/v1/reports/download/{name}", headers=OTHER).status_code == 404
        publisher.fetch.assert_not_awaited()

    def test_download_bad_names(self, client):
        assert client.get("/api/v1/reports/download/notes.txt", headers=USER).status_code == 400
        assert client.get("/api/v1/reports/download/random.pdf", headers=USER).status_code == 404

    def test_download_missing_artifact_is_404(self, client, publisher):
        publisher.fetch.side_effect = ArtifactNotFoundError("gone")
        name = f"sugb-report-{self._response_id(client)}-1.pdf"
        assert client.get(f"/api/v1/reports/download/{name}", headers=USER).status_code == 404


# =====================================================================
# Admin
# =====================================================================


class TestAdminRoutes:
    """X-Admin-Key protection and queue operations."""

    def test_missing_key_is_401(self, client):
        assert client.post("/api/v1/admin/reports/drain").status_code == 401

    def test_wrong_key_is_403(self, client):
        resp = client.post("/api/v1/admin/reports/drain", headers={"X-Admin-Key": "x"})
        assert resp.status_code == 403

    def test_disabled_when_unconfigured(self, app, client):
        app.state.settings = ServerSettings()
        resp = client.post("/api/v1/admin/reports/drain", headers={"X-Admin-Key": "admin-secret"})
        assert resp.status_code == 403

    def test_drain(self, client):
        resp = client.post("/api/v1/admin/reports/drain", headers={"X-Admin-Key": "admin-secret"})
        assert resp.json() == {"affected_jobs": 2, "action": "drain"}

    def test_reclaim(self, client):
        resp = client.post("/api/v1/admin/reports/reclaim", headers={"X-Admin-Key": "admin-secret"})
        assert resp.json() == {"affected_jobs": 1, "action": "reclaim_stale"}


def test_unparseable_uuid_download_name_is_404(client):
    name = f"sugb-report-{uuid.uuid4()}-x.pdf"
    assert client.get(f"/api/v1/reports/download/{name}", headers=USER).status_code == 404
