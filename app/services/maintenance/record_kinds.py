# app/services/maintenance/record_kinds.py
"""
Record kind descriptors.

A RecordKind tells the generic migrator and purger everything they need to
know about one live/archive table pair: which retention setting applies,
which column decides eligibility and how a live row is projected into its
archive row.
"""

from dataclasses import dataclass, field
from datetime import datetime

from app.models import (
    AuditLog,
    AuditLogArchive,
    Job,
    JobArchive,
    JobExecution,
    JobExecutionArchive,
    ScheduleExecution,
    ScheduleExecutionArchive,
)

# Live columns that are not copied into the archive row
_NOT_COPIED = {"id", "is_deleted"}


@dataclass(frozen=True)
class RecordKind:
    """One live table and the archive table it migrates into."""

    name: str
    live_model: type
    archive_model: type
    # RetentionConfiguration attribute holding the live retention amount
    retention_field: str
    retention_unit: str = "months"
    eligibility_column: str = "created_at"
    copied_columns: tuple[str, ...] = field(init=False)

    def __post_init__(self):
        archive_columns = {c.key for c in self.archive_model.__table__.columns}
        copied = tuple(
            c.key
            for c in self.live_model.__table__.columns
            if c.key not in _NOT_COPIED and c.key in archive_columns
        )
        object.__setattr__(self, "copied_columns", copied)

    @property
    def label(self) -> str:
        return self.live_model.__name__

    @property
    def eligibility_attr(self):
        return getattr(self.live_model, self.eligibility_column)

    def project(self, row, archived_at: datetime, archived_by: str):
        """Build the archive row for a live row: full field copy plus provenance."""
        values = {name: getattr(row, name) for name in self.copied_columns}
        return self.archive_model(
            original_id=row.id,
            archived_at=archived_at,
            archived_by=archived_by,
            **values,
        )


JOBS = RecordKind("jobs", Job, JobArchive, retention_field="job_retention_months")
JOB_EXECUTIONS = RecordKind(
    "job_executions", JobExecution, JobExecutionArchive, retention_field="execution_retention_months"
)
# Audit logs age by the time of the audited event, not by row creation
AUDIT_LOGS = RecordKind(
    "audit_logs",
    AuditLog,
    AuditLogArchive,
    retention_field="audit_log_retention_days",
    retention_unit="days",
    eligibility_column="timestamp",
)
SCHEDULE_EXECUTIONS = RecordKind(
    "schedule_executions",
    ScheduleExecution,
    ScheduleExecutionArchive,
    retention_field="execution_retention_months",
)

# Migration and purge order
RECORD_KINDS: tuple[RecordKind, ...] = (JOBS, JOB_EXECUTIONS, AUDIT_LOGS, SCHEDULE_EXECUTIONS)

KIND_NAMES: tuple[str, ...] = tuple(kind.name for kind in RECORD_KINDS)


def get_kind(name: str) -> RecordKind:
    """Look up a record kind by name. Raises KeyError for unknown names."""
    for kind in RECORD_KINDS:
        if kind.name == name:
            return kind
    raise KeyError(f"Unknown record kind '{name}'")
