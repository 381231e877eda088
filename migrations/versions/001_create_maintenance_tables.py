"""Create maintenance tables: retention configuration, live tables and archives.

Changes:
- Create maintenance_configuration (single-row retention settings)
- Create live tables: jobs, job_executions, audit_logs, schedule_executions
- Create one archive table per live table with the same business columns
  plus original_id, archived_at and archived_by

Revision ID: 001_create_maintenance_tables
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_create_maintenance_tables'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# (live table, archive table)
TABLE_PAIRS = [
    ('jobs', 'job_archives'),
    ('job_executions', 'job_execution_archives'),
    ('audit_logs', 'audit_log_archives'),
    ('schedule_executions', 'schedule_execution_archives'),
]


def _audit_columns() -> list:
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('created_by', sa.String(length=200), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('updated_by', sa.String(length=200), nullable=True),
    ]


def _job_columns() -> list:
    return [
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('account_rule_id', sa.Integer(), nullable=True),
        sa.Column('vm_account_id', sa.BigInteger(), nullable=False),
        sa.Column('vm_account_number', sa.String(length=128), nullable=False, server_default=''),
        sa.Column('vendor_code', sa.String(length=128), nullable=True),
        sa.Column('credential_id', sa.Integer(), nullable=False),
        sa.Column('period_type', sa.String(length=13), nullable=True),
        sa.Column('billing_period_start', sa.DateTime(), nullable=False),
        sa.Column('billing_period_end', sa.DateTime(), nullable=False),
        sa.Column('next_run_at', sa.DateTime(), nullable=True),
        sa.Column('next_range_start', sa.DateTime(), nullable=True),
        sa.Column('next_range_end', sa.DateTime(), nullable=True),
        sa.Column('status', sa.String(length=50), nullable=False, server_default='Pending'),
        sa.Column('is_missing', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('status_id', sa.Integer(), nullable=True),
        sa.Column('status_description', sa.String(length=100), nullable=True),
        sa.Column('index_id', sa.BigInteger(), nullable=True),
        sa.Column('credential_verified_at', sa.DateTime(), nullable=True),
        sa.Column('scraping_completed_at', sa.DateTime(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('retry_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_manual_request', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('manual_request_reason', sa.Text(), nullable=True),
        sa.Column('last_status_check_response', sa.Text(), nullable=True),
        sa.Column('last_status_check_at', sa.DateTime(), nullable=True),
    ]


def _job_execution_columns() -> list:
    return [
        sa.Column('job_id', sa.Integer(), nullable=False),
        sa.Column('request_type_id', sa.Integer(), nullable=False),
        sa.Column('started_at', sa.DateTime(), nullable=False),
        sa.Column('ended_at', sa.DateTime(), nullable=True),
        sa.Column('status_id', sa.Integer(), nullable=True),
        sa.Column('status_description', sa.String(length=100), nullable=True),
        sa.Column('is_error', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('is_final', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('index_id', sa.BigInteger(), nullable=True),
        sa.Column('http_status_code', sa.Integer(), nullable=True),
        sa.Column('is_success', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('api_response', sa.Text(), nullable=True),
        sa.Column('request_payload', sa.Text(), nullable=True),
    ]


def _audit_log_columns() -> list:
    return [
        sa.Column('event_type', sa.String(length=100), nullable=False),
        sa.Column('entity_type', sa.String(length=100), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('action', sa.String(length=100), nullable=False),
        sa.Column('old_values', sa.Text(), nullable=True),
        sa.Column('new_values', sa.Text(), nullable=True),
        sa.Column('user_name', sa.String(length=200), nullable=False, server_default=''),
        sa.Column('client_id', sa.Integer(), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.Column('additional_data', sa.Text(), nullable=True),
    ]


def _schedule_execution_columns() -> list:
    return [
        sa.Column('schedule_id', sa.Integer(), nullable=False),
        sa.Column('started_at', sa.DateTime(), nullable=False),
        sa.Column('ended_at', sa.DateTime(), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('output', sa.Text(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('stack_trace', sa.Text(), nullable=True),
        sa.Column('retry_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('duration_seconds', sa.Integer(), nullable=True),
        sa.Column('triggered_by', sa.String(length=200), nullable=True),
        sa.Column('cancelled_by', sa.String(length=200), nullable=True),
    ]


BUSINESS_COLUMNS = {
    'jobs': _job_columns,
    'job_executions': _job_execution_columns,
    'audit_logs': _audit_log_columns,
    'schedule_executions': _schedule_execution_columns,
}

# Extra indexed columns per live table (besides created_at / is_deleted)
INDEXED_COLUMNS = {
    'jobs': ['account_id'],
    'job_executions': ['job_id'],
    'audit_logs': ['timestamp'],
    'schedule_executions': ['schedule_id'],
}


def upgrade() -> None:
    """Create configuration, live and archive tables."""

    # -------------------------------------------------------------------------
    # 1. Retention configuration
    # -------------------------------------------------------------------------
    print("  Creating maintenance_configuration table...")

    op.create_table(
        'maintenance_configuration',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('is_archival_enabled', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('job_retention_months', sa.Integer(), nullable=False, server_default='12'),
        sa.Column('job_execution_retention_months', sa.Integer(), nullable=False, server_default='12'),
        sa.Column('audit_log_retention_days', sa.Integer(), nullable=False, server_default='90'),
        sa.Column('archive_retention_years', sa.Integer(), nullable=False, server_default='7'),
        sa.Column('log_retention_days', sa.Integer(), nullable=False, server_default='30'),
        sa.Column('archival_batch_size', sa.Integer(), nullable=False, server_default='5000'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )

    # -------------------------------------------------------------------------
    # 2. Live tables and their archives
    # -------------------------------------------------------------------------
    for live_table, archive_table in TABLE_PAIRS:
        print(f"  Creating {live_table} and {archive_table} tables...")
        business = BUSINESS_COLUMNS[live_table]

        op.create_table(
            live_table,
            sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
            *business(),
            *_audit_columns(),
            sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default='false'),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index(f'ix_{live_table}_created_at', live_table, ['created_at'], unique=False)
        op.create_index(f'ix_{live_table}_is_deleted', live_table, ['is_deleted'], unique=False)
        for column in INDEXED_COLUMNS[live_table]:
            op.create_index(f'ix_{live_table}_{column}', live_table, [column], unique=False)

        op.create_table(
            archive_table,
            sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
            sa.Column('original_id', sa.Integer(), nullable=False),
            sa.Column('archived_at', sa.DateTime(), nullable=False),
            sa.Column('archived_by', sa.String(length=200), nullable=False),
            *business(),
            *_audit_columns(),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index(f'ix_{archive_table}_original_id', archive_table, ['original_id'], unique=False)
        op.create_index(f'ix_{archive_table}_archived_at', archive_table, ['archived_at'], unique=False)
        op.create_index(f'ix_{archive_table}_created_at', archive_table, ['created_at'], unique=False)
        for column in INDEXED_COLUMNS[live_table]:
            op.create_index(f'ix_{archive_table}_{column}', archive_table, [column], unique=False)

    print("  Created maintenance tables")


def downgrade() -> None:
    """Drop all maintenance tables."""
    for live_table, archive_table in reversed(TABLE_PAIRS):
        op.drop_table(archive_table)
        op.drop_table(live_table)
    op.drop_table('maintenance_configuration')
