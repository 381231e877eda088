# tests/unit/test_maintenance/test_migrator.py
"""Unit tests for the batch migrator."""

import threading
from datetime import timedelta
from unittest.mock import patch

import pytest

from app import models
from app.services.maintenance.errors import BatchStepError
from app.services.maintenance.migrator import migrate_records
from app.services.maintenance.record_kinds import AUDIT_LOGS, JOB_EXECUTIONS, JOBS, SCHEDULE_EXECUTIONS
from app.services.maintenance.store import MaintenanceStore
from app.utils.clock import subtract_months


@pytest.fixture
def cutoff(now):
    return subtract_months(now, 12)


class TestBatching:
    """Tests for batch sizing and termination."""

    def test_five_rows_batch_of_two(self, session_factory, make_job, now, cutoff, fixed_clock):
        """5 eligible rows with batch size 2 move in batches of 2, 2, 1."""
        for _ in range(5):
            make_job(created_at=now - timedelta(days=400))

        result = migrate_records(session_factory, JOBS, cutoff, 2, "System Archival", clock=fixed_clock)

        assert result.total == 5
        assert result.batch_sizes == [2, 2, 1]
        assert result.cancelled is False

    def test_exact_multiple_ends_on_empty_batch(self, session_factory, make_job, now, cutoff):
        """4 rows with batch size 2 take ceil(4/2) = 2 non-empty batches."""
        for _ in range(4):
            make_job(created_at=now - timedelta(days=400))

        result = migrate_records(session_factory, JOBS, cutoff, 2, "System Archival")

        assert result.total == 4
        assert result.batches == 2

    def test_no_eligible_rows(self, session_factory, make_job, now, cutoff):
        """Nothing eligible means zero batches and zero total."""
        make_job(created_at=now - timedelta(days=30))

        result = migrate_records(session_factory, JOBS, cutoff, 100, "System Archival")

        assert result.total == 0
        assert result.batches == 0

    def test_rejects_batch_size_below_one(self, session_factory, cutoff):
        """A batch size of zero would loop forever and is rejected."""
        with pytest.raises(ValueError):
            migrate_records(session_factory, JOBS, cutoff, 0, "System Archival")


class TestEligibility:
    """Tests for which live rows get migrated."""

    def test_only_rows_older_than_cutoff_move(self, session_factory, db, make_job, now, cutoff):
        """Rows created after the cutoff stay live."""
        old_id = make_job(created_at=now - timedelta(days=400)).id
        recent_id = make_job(created_at=now - timedelta(days=10)).id

        result = migrate_records(session_factory, JOBS, cutoff, 100, "System Archival")

        assert result.total == 1
        live_ids = {row.id for row in db.query(models.Job).all()}
        archived_ids = {row.original_id for row in db.query(models.JobArchive).all()}
        assert live_ids == {recent_id}
        assert archived_ids == {old_id}

    def test_row_created_exactly_at_cutoff_stays(self, session_factory, db, make_job, cutoff):
        """The cutoff comparison is strict."""
        make_job(created_at=cutoff)

        result = migrate_records(session_factory, JOBS, cutoff, 100, "System Archival")

        assert result.total == 0
        assert db.query(models.Job).count() == 1

    def test_soft_deleted_rows_are_skipped(self, session_factory, db, make_job, now, cutoff):
        """Soft-deleted rows are never migrated."""
        make_job(created_at=now - timedelta(days=400), is_deleted=True)

        result = migrate_records(session_factory, JOBS, cutoff, 100, "System Archival")

        assert result.total == 0
        assert db.query(models.JobArchive).count() == 0

    def test_recently_updated_old_row_still_moves(self, session_factory, db, make_job, now, cutoff):
        """Eligibility is by creation time, not last modification."""
        make_job(created_at=now - timedelta(days=400), updated_at=now - timedelta(hours=1))

        result = migrate_records(session_factory, JOBS, cutoff, 100, "System Archival")

        assert result.total == 1

    def test_audit_logs_age_by_event_timestamp(self, session_factory, db, make_audit_log, now):
        """Audit logs are eligible by their event timestamp."""
        cutoff = now - timedelta(days=90)
        make_audit_log(timestamp=now - timedelta(days=120), created_at=now - timedelta(days=1))
        make_audit_log(timestamp=now - timedelta(days=10), created_at=now - timedelta(days=200))

        result = migrate_records(session_factory, AUDIT_LOGS, cutoff, 100, "System Archival")

        assert result.total == 1
        assert db.query(models.AuditLog).one().timestamp == now - timedelta(days=10)

    def test_future_cutoff_migrates_fresh_rows(self, session_factory, db, make_job, now):
        """A cutoff in the future (negative retention) makes every row eligible."""
        make_job(created_at=now)
        future_cutoff = subtract_months(now, -1)

        result = migrate_records(session_factory, JOBS, future_cutoff, 100, "System Archival")

        assert result.total == 1
        assert db.query(models.Job).count() == 0


class TestArchiveRows:
    """Tests for the archive row contents."""

    def test_archive_is_full_field_copy(self, session_factory, db, make_job, now, cutoff, fixed_clock):
        """Every business column is copied and provenance is stamped."""
        job = make_job(
            created_at=now - timedelta(days=400),
            vendor_code="ACME",
            error_message="portal timeout",
            retry_count=3,
            is_manual_request=True,
            manual_request_reason="customer escalation",
        )
        expected = {name: getattr(job, name) for name in JOBS.copied_columns}
        job_id = job.id

        migrate_records(session_factory, JOBS, cutoff, 100, "Nightly Run", clock=fixed_clock)

        archive = db.query(models.JobArchive).one()
        assert archive.original_id == job_id
        assert archive.archived_at == now
        assert archive.archived_by == "Nightly Run"
        for name, value in expected.items():
            assert getattr(archive, name) == value, name

    def test_copied_columns_exclude_identity_and_soft_delete(self):
        """The live id and is_deleted flag are not part of the copy."""
        for kind in (JOBS, JOB_EXECUTIONS, AUDIT_LOGS, SCHEDULE_EXECUTIONS):
            assert "id" not in kind.copied_columns
            assert "is_deleted" not in kind.copied_columns
            assert "created_at" in kind.copied_columns

    def test_row_never_in_both_tables(self, session_factory, db, make_job_execution, now, cutoff):
        """After migration a record exists only in the archive."""
        execution_id = make_job_execution(created_at=now - timedelta(days=400)).id

        migrate_records(session_factory, JOB_EXECUTIONS, cutoff, 100, "System Archival")

        assert db.query(models.JobExecution).filter(models.JobExecution.id == execution_id).count() == 0
        assert (
            db.query(models.JobExecutionArchive)
            .filter(models.JobExecutionArchive.original_id == execution_id)
            .count()
            == 1
        )


class TestFailureAndResume:
    """Tests for batch failure, cancellation and idempotent re-runs."""

    def test_rerun_is_idempotent(self, session_factory, db, make_schedule_execution, now, cutoff):
        """A second run finds nothing left to move."""
        for _ in range(3):
            make_schedule_execution(created_at=now - timedelta(days=400))

        first = migrate_records(session_factory, SCHEDULE_EXECUTIONS, cutoff, 2, "System Archival")
        second = migrate_records(session_factory, SCHEDULE_EXECUTIONS, cutoff, 2, "System Archival")

        assert first.total == 3
        assert second.total == 0
        assert db.query(models.ScheduleExecutionArchive).count() == 3

    def test_failed_batch_rolls_back_only_itself(self, session_factory, db, make_job, now, cutoff):
        """Earlier batches stay committed; the failing batch leaves no trace."""
        for _ in range(5):
            make_job(created_at=now - timedelta(days=400))

        original_delete = MaintenanceStore.delete_live
        calls = {"count": 0}

        def flaky_delete(self, kind, ids):
            calls["count"] += 1
            if calls["count"] == 2:
                raise RuntimeError("connection lost")
            return original_delete(self, kind, ids)

        with patch.object(MaintenanceStore, "delete_live", flaky_delete):
            with pytest.raises(BatchStepError) as exc_info:
                migrate_records(session_factory, JOBS, cutoff, 2, "System Archival")

        error = exc_info.value
        assert error.step == "archive"
        assert error.kind == "jobs"
        assert error.processed == 2
        assert isinstance(error.__cause__, RuntimeError)

        assert db.query(models.JobArchive).count() == 2
        assert db.query(models.Job).count() == 3

        # Re-running picks up where the last committed batch left off
        resumed = migrate_records(session_factory, JOBS, cutoff, 2, "System Archival")
        assert resumed.total == 3
        assert db.query(models.Job).count() == 0
        assert db.query(models.JobArchive).count() == 5

    def test_cancelled_before_start(self, session_factory, db, make_job, now, cutoff):
        """A pre-set cancellation moves nothing."""
        make_job(created_at=now - timedelta(days=400))
        cancel = threading.Event()
        cancel.set()

        result = migrate_records(session_factory, JOBS, cutoff, 100, "System Archival", cancel_event=cancel)

        assert result.cancelled is True
        assert result.total == 0
        assert db.query(models.Job).count() == 1

    def test_cancelled_between_batches(self, session_factory, db, make_job, now, cutoff):
        """Cancellation is honoured after the in-flight batch commits."""
        for _ in range(5):
            make_job(created_at=now - timedelta(days=400))
        cancel = threading.Event()

        def clock():
            # Request cancellation while the first batch is being built
            cancel.set()
            return now

        result = migrate_records(
            session_factory, JOBS, cutoff, 2, "System Archival", cancel_event=cancel, clock=clock
        )

        assert result.cancelled is True
        assert result.total == 2
        assert db.query(models.JobArchive).count() == 2
        assert db.query(models.Job).count() == 3


class TestRecordKinds:
    """Tests for record kind lookup."""

    def test_get_kind_by_name(self):
        from app.services.maintenance.record_kinds import get_kind

        assert get_kind("audit_logs") is AUDIT_LOGS
        assert get_kind("audit_logs").eligibility_column == "timestamp"

    def test_unknown_kind(self):
        from app.services.maintenance.record_kinds import get_kind

        with pytest.raises(KeyError):
            get_kind("invoices")
