# tests/unit/test_maintenance_router.py
"""
Unit tests for the admin maintenance router.

Covers:
- admin API key enforcement
- POST /run status codes (200, 500, 409) and result shape
- GET/PUT /config, GET /preview, GET /status
"""

from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from app import models
from app.database import get_db
from app.main import app
from app.routers.admin_maintenance import get_orchestrator
from app.services.maintenance.errors import MaintenanceInProgressError
from app.services.maintenance.log_sweeper import LogSweeper, SweepResult
from app.services.maintenance.orchestrator import MaintenanceOrchestrator, MaintenanceResult
from app.services.maintenance.scheduler import MaintenanceScheduler
from app.utils.clock import utcnow

API_KEY = "test-admin-key"
HEADERS = {"X-API-Key": API_KEY}


@pytest.fixture
def sweeper():
    sweeper = MagicMock(spec=LogSweeper)
    sweeper.sweep.return_value = SweepResult(files_deleted=1, bytes_freed=512)
    return sweeper


@pytest.fixture
def client(monkeypatch, session_factory, sweeper, fixed_clock):
    """Test client wired to the in-memory database."""
    monkeypatch.setenv("ADMIN_API_KEY", API_KEY)

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_orchestrator] = lambda: MaintenanceOrchestrator(
        session_factory, log_sweeper=sweeper, clock=fixed_clock
    )
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestAuthentication:
    """Admin key enforcement."""

    def test_missing_key_rejected(self, client):
        response = client.get("/v1/admin/maintenance/config")
        assert response.status_code == 401

    def test_wrong_key_rejected(self, client):
        response = client.get("/v1/admin/maintenance/config", headers={"X-API-Key": "nope"})
        assert response.status_code == 401

    def test_fails_closed_without_configured_key(self, client, monkeypatch):
        monkeypatch.delenv("ADMIN_API_KEY")
        response = client.get("/v1/admin/maintenance/config", headers=HEADERS)
        assert response.status_code == 500


class TestRunEndpoint:
    """POST /v1/admin/maintenance/run"""

    def test_successful_run(self, client, make_job, db, now):
        make_job(created_at=now - timedelta(days=400))

        response = client.post("/v1/admin/maintenance/run", headers=HEADERS)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["archived"]["jobs"] == 1
        assert data["total_archived"] == 1
        assert data["log_files_deleted"] == 1
        assert data["bytes_freed"] == 512
        assert data["triggered_by"] == "admin"
        assert db.query(models.JobArchive).count() == 1

    def test_response_has_result_shape(self, client, now):
        response = client.post("/v1/admin/maintenance/run", headers=HEADERS)

        expected_keys = set(MaintenanceResult.empty((), "admin", now).to_dict())
        assert set(response.json()) == expected_keys

    def test_failed_run_returns_500_with_result(self, client, sweeper, fixed_clock):
        failing_factory = MagicMock(side_effect=RuntimeError("database unavailable"))
        app.dependency_overrides[get_orchestrator] = lambda: MaintenanceOrchestrator(
            failing_factory, log_sweeper=sweeper, clock=fixed_clock
        )

        response = client.post("/v1/admin/maintenance/run", headers=HEADERS)

        assert response.status_code == 500
        data = response.json()
        assert data["success"] is False
        assert "database unavailable" in data["error_message"]
        assert data["archived"]["jobs"] == 0

    def test_concurrent_run_returns_409(self, client):
        with patch(
            "app.routers.admin_maintenance.run_maintenance_exclusive",
            side_effect=MaintenanceInProgressError("A maintenance cycle is already running"),
        ):
            response = client.post("/v1/admin/maintenance/run", headers=HEADERS)

        assert response.status_code == 409


class TestConfigEndpoints:
    """GET/PUT /v1/admin/maintenance/config"""

    def test_get_returns_defaults(self, client):
        response = client.get("/v1/admin/maintenance/config", headers=HEADERS)

        assert response.status_code == 200
        data = response.json()
        assert data["is_archival_enabled"] is True
        assert data["job_retention_months"] == 12
        assert data["audit_log_retention_days"] == 90
        assert data["archive_retention_years"] == 7
        assert data["log_retention_days"] == 30
        assert data["archival_batch_size"] == 5000

    def test_put_updates_only_given_fields(self, client):
        response = client.put(
            "/v1/admin/maintenance/config",
            headers=HEADERS,
            json={"job_retention_months": 24, "is_archival_enabled": False},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["job_retention_months"] == 24
        assert data["is_archival_enabled"] is False
        assert data["job_execution_retention_months"] == 12

    def test_put_rejects_out_of_range(self, client):
        response = client.put(
            "/v1/admin/maintenance/config",
            headers=HEADERS,
            json={"archival_batch_size": 0},
        )

        assert response.status_code == 422


class TestPreviewEndpoint:
    """GET /v1/admin/maintenance/preview"""

    def test_counts_pending_rows(self, client, make_job, make_audit_log, db):
        make_job(created_at=utcnow() - timedelta(days=400))
        make_job(created_at=utcnow() - timedelta(days=5))
        make_audit_log(timestamp=utcnow() - timedelta(days=100))

        response = client.get("/v1/admin/maintenance/preview", headers=HEADERS)

        assert response.status_code == 200
        data = response.json()
        assert data["archival_enabled"] is True
        assert data["pending_archive"]["jobs"] == 1
        assert data["pending_archive"]["audit_logs"] == 1
        assert data["pending_purge"]["jobs"] == 0
        # Preview never changes data
        assert db.query(models.Job).count() == 2


class TestStatusEndpoint:
    """GET /v1/admin/maintenance/status"""

    def test_without_scheduler(self, client):
        response = client.get("/v1/admin/maintenance/status", headers=HEADERS)

        assert response.status_code == 200
        data = response.json()
        assert data["scheduler_enabled"] is False
        assert data["running"] is False

    def test_with_scheduler(self, client, now):
        scheduler = MaintenanceScheduler(lambda cancel_event: None)
        scheduler.next_run_at = now
        scheduler.last_result = MaintenanceResult.empty((), "scheduler", now)
        app.state.maintenance_scheduler = scheduler
        try:
            response = client.get("/v1/admin/maintenance/status", headers=HEADERS)
        finally:
            app.state.maintenance_scheduler = None

        assert response.status_code == 200
        data = response.json()
        assert data["scheduler_enabled"] is True
        assert data["state"] == "idle"
        assert data["run_hour_utc"] == 2
        assert data["last_result"]["triggered_by"] == "scheduler"
