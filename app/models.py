# app/models.py
"""
Scheduler platform database models used by the maintenance engine.

Tables:
- MaintenanceConfiguration: Single-row retention settings
- Job / JobArchive: Invoice retrieval jobs
- JobExecution / JobExecutionArchive: Individual retrieval attempts for a job
- AuditLog / AuditLogArchive: User and system audit trail
- ScheduleExecution / ScheduleExecutionArchive: Runs of scheduled platform jobs

Each live table shares its business columns with its archive table through a
column mixin, so an archive row is always a field-for-field copy of the live
row plus original_id, archived_at and archived_by.
"""

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Integer,
    String,
    Text,
)

from app.database import Base
from app.utils.clock import utcnow


# -----------------------------------------------------------------------------
# Shared column sets
# -----------------------------------------------------------------------------

class AuditColumns:
    """Creation/modification stamps carried by every live and archive row."""
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    created_by = Column(String(200), nullable=True)
    updated_at = Column(DateTime, nullable=True)
    updated_by = Column(String(200), nullable=True)


class ArchiveColumns:
    """Back-reference and archival stamp added to every archive row."""
    id = Column(Integer, primary_key=True, autoincrement=True)
    original_id = Column(Integer, nullable=False, index=True)
    archived_at = Column(DateTime, nullable=False, index=True)
    archived_by = Column(String(200), nullable=False)


class JobColumns(AuditColumns):
    account_id = Column(Integer, nullable=False, index=True)
    account_rule_id = Column(Integer, nullable=True)
    vm_account_id = Column(BigInteger, nullable=False)
    vm_account_number = Column(String(128), nullable=False, default="")
    vendor_code = Column(String(128), nullable=True)
    credential_id = Column(Integer, nullable=False)
    period_type = Column(String(13), nullable=True)
    billing_period_start = Column(DateTime, nullable=False)
    billing_period_end = Column(DateTime, nullable=False)
    next_run_at = Column(DateTime, nullable=True)
    next_range_start = Column(DateTime, nullable=True)
    next_range_end = Column(DateTime, nullable=True)
    status = Column(String(50), nullable=False, default="Pending")
    is_missing = Column(Boolean, nullable=False, default=False)
    status_id = Column(Integer, nullable=True)
    status_description = Column(String(100), nullable=True)
    index_id = Column(BigInteger, nullable=True)
    credential_verified_at = Column(DateTime, nullable=True)
    scraping_completed_at = Column(DateTime, nullable=True)
    error_message = Column(Text, nullable=True)
    retry_count = Column(Integer, nullable=False, default=0)
    is_manual_request = Column(Boolean, nullable=False, default=False)
    manual_request_reason = Column(Text, nullable=True)
    last_status_check_response = Column(Text, nullable=True)
    last_status_check_at = Column(DateTime, nullable=True)


class JobExecutionColumns(AuditColumns):
    job_id = Column(Integer, nullable=False, index=True)
    request_type_id = Column(Integer, nullable=False)
    started_at = Column(DateTime, nullable=False)
    ended_at = Column(DateTime, nullable=True)
    status_id = Column(Integer, nullable=True)
    status_description = Column(String(100), nullable=True)
    is_error = Column(Boolean, nullable=False, default=False)
    is_final = Column(Boolean, nullable=False, default=False)
    index_id = Column(BigInteger, nullable=True)
    http_status_code = Column(Integer, nullable=True)
    is_success = Column(Boolean, nullable=False, default=False)
    error_message = Column(Text, nullable=True)
    api_response = Column(Text, nullable=True)
    request_payload = Column(Text, nullable=True)


class AuditLogColumns(AuditColumns):
    event_type = Column(String(100), nullable=False)
    entity_type = Column(String(100), nullable=False)
    entity_id = Column(Integer, nullable=True)
    action = Column(String(100), nullable=False)
    old_values = Column(Text, nullable=True)
    new_values = Column(Text, nullable=True)
    user_name = Column(String(200), nullable=False, default="")
    client_id = Column(Integer, nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)
    timestamp = Column(DateTime, default=utcnow, nullable=False, index=True)  # When the audited event happened
    additional_data = Column(Text, nullable=True)


class ScheduleExecutionColumns(AuditColumns):
    schedule_id = Column(Integer, nullable=False, index=True)
    started_at = Column(DateTime, nullable=False)
    ended_at = Column(DateTime, nullable=True)
    status = Column(String(32), nullable=False)
    output = Column(Text, nullable=True)
    error_message = Column(Text, nullable=True)
    stack_trace = Column(Text, nullable=True)
    retry_count = Column(Integer, nullable=False, default=0)
    duration_seconds = Column(Integer, nullable=True)
    triggered_by = Column(String(200), nullable=True)
    cancelled_by = Column(String(200), nullable=True)


# -----------------------------------------------------------------------------
# Configuration
# -----------------------------------------------------------------------------

class MaintenanceConfiguration(Base):
    """
    Retention settings for the daily maintenance cycle.

    Single-row table. A missing row means built-in defaults apply.
    """
    __tablename__ = "maintenance_configuration"

    id = Column(Integer, primary_key=True, autoincrement=True)
    is_archival_enabled = Column(Boolean, nullable=False, default=True)
    job_retention_months = Column(Integer, nullable=False, default=12)
    job_execution_retention_months = Column(Integer, nullable=False, default=12)
    audit_log_retention_days = Column(Integer, nullable=False, default=90)
    archive_retention_years = Column(Integer, nullable=False, default=7)
    log_retention_days = Column(Integer, nullable=False, default=30)
    archival_batch_size = Column(Integer, nullable=False, default=5000)
    notes = Column(Text, nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


# -----------------------------------------------------------------------------
# Live tables
# -----------------------------------------------------------------------------

class Job(JobColumns, Base):
    """Invoice retrieval job for one account and billing period."""
    __tablename__ = "jobs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    is_deleted = Column(Boolean, nullable=False, default=False, index=True)


class JobExecution(JobExecutionColumns, Base):
    """One request made on behalf of a Job (credential check or download)."""
    __tablename__ = "job_executions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    is_deleted = Column(Boolean, nullable=False, default=False, index=True)


class AuditLog(AuditLogColumns, Base):
    """Audit trail entry."""
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    is_deleted = Column(Boolean, nullable=False, default=False, index=True)


class ScheduleExecution(ScheduleExecutionColumns, Base):
    """One run of a scheduled platform job."""
    __tablename__ = "schedule_executions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    is_deleted = Column(Boolean, nullable=False, default=False, index=True)


# -----------------------------------------------------------------------------
# Archive tables (immutable after insert)
# -----------------------------------------------------------------------------

class JobArchive(ArchiveColumns, JobColumns, Base):
    __tablename__ = "job_archives"


class JobExecutionArchive(ArchiveColumns, JobExecutionColumns, Base):
    __tablename__ = "job_execution_archives"


class AuditLogArchive(ArchiveColumns, AuditLogColumns, Base):
    __tablename__ = "audit_log_archives"


class ScheduleExecutionArchive(ArchiveColumns, ScheduleExecutionColumns, Base):
    __tablename__ = "schedule_execution_archives"
