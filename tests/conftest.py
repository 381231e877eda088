# tests/conftest.py
"""
Pytest configuration and fixtures.
"""

import os
from datetime import datetime, timedelta

import pytest

# Set test environment
os.environ.setdefault("TESTING", "1")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("MAINTENANCE_SCHEDULER_ENABLED", "false")

from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.database import Base  # noqa: E402
from app import models  # noqa: E402,F401

# Fixed "now" used across maintenance tests
NOW = datetime(2026, 6, 15, 12, 0, 0)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: tests that wait on real threads")


@pytest.fixture
def engine():
    """In-memory SQLite engine shared by every session in one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    """Session factory bound to the test engine (one session per batch)."""
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    """A session for arranging and inspecting test data."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def now():
    """The fixed current time used by maintenance tests."""
    return NOW


@pytest.fixture
def fixed_clock():
    """Clock callable that always returns NOW."""
    return lambda: NOW


# -----------------------------------------------------------------------------
# Row factories
# -----------------------------------------------------------------------------


def _job_values(**overrides) -> dict:
    values = {
        "account_id": 1,
        "vm_account_id": 1001,
        "vm_account_number": "ACC-1001",
        "vendor_code": "VENDOR",
        "credential_id": 7,
        "period_type": "Monthly",
        "billing_period_start": NOW - timedelta(days=60),
        "billing_period_end": NOW - timedelta(days=30),
        "status": "Completed",
        "created_by": "tests",
    }
    values.update(overrides)
    return values


@pytest.fixture
def make_job(db):
    """Insert a Job row and return it."""

    def _make(**overrides):
        job = models.Job(**_job_values(**overrides))
        db.add(job)
        db.commit()
        db.refresh(job)
        return job

    return _make


@pytest.fixture
def make_job_execution(db):
    """Insert a JobExecution row and return it."""

    def _make(**overrides):
        values = {
            "job_id": 1,
            "request_type_id": 1,
            "started_at": NOW - timedelta(days=400),
            "is_success": True,
        }
        values.update(overrides)
        execution = models.JobExecution(**values)
        db.add(execution)
        db.commit()
        db.refresh(execution)
        return execution

    return _make


@pytest.fixture
def make_audit_log(db):
    """Insert an AuditLog row and return it."""

    def _make(**overrides):
        values = {
            "event_type": "Update",
            "entity_type": "Job",
            "entity_id": 1,
            "action": "StatusChanged",
            "user_name": "operator",
            "timestamp": NOW - timedelta(days=120),
        }
        values.update(overrides)
        entry = models.AuditLog(**values)
        db.add(entry)
        db.commit()
        db.refresh(entry)
        return entry

    return _make


@pytest.fixture
def make_schedule_execution(db):
    """Insert a ScheduleExecution row and return it."""

    def _make(**overrides):
        values = {
            "schedule_id": 3,
            "started_at": NOW - timedelta(days=400),
            "status": "Succeeded",
        }
        values.update(overrides)
        execution = models.ScheduleExecution(**values)
        db.add(execution)
        db.commit()
        db.refresh(execution)
        return execution

    return _make


@pytest.fixture
def make_job_archive(db):
    """Insert a JobArchive row directly and return it."""

    def _make(archived_at, original_id=1, **overrides):
        archive = models.JobArchive(
            original_id=original_id,
            archived_at=archived_at,
            archived_by="System Archival",
            created_at=archived_at - timedelta(days=400),
            **_job_values(**overrides),
        )
        db.add(archive)
        db.commit()
        db.refresh(archive)
        return archive

    return _make
