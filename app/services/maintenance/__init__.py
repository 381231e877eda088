# app/services/maintenance/__init__.py
"""
Retention-driven maintenance services.

Daily cycle:
- Archive: move aged live records into their archive tables
- Purge: permanently delete archive records past archive retention
- Log sweep: delete stale log files from the logs/ directories

Services:
- config_service: Retention configuration snapshot and updates
- record_kinds: Live/archive table pairs handled by the engine
- migrator: Batched live -> archive migration
- purger: Batched archive deletion
- log_sweeper: Log file retention
- orchestrator: One maintenance cycle, end to end
- scheduler: Daily loop with hourly retry after a crash
"""

from app.services.maintenance.config_service import (
    DEFAULT_CONFIGURATION,
    RetentionConfiguration,
    ensure_configuration,
    get_retention_configuration,
    update_configuration,
)
from app.services.maintenance.errors import BatchStepError, MaintenanceError, MaintenanceInProgressError
from app.services.maintenance.log_sweeper import LogSweeper, SweepResult
from app.services.maintenance.migrator import BatchRunResult, migrate_records
from app.services.maintenance.orchestrator import (
    MaintenanceOrchestrator,
    MaintenanceResult,
    build_orchestrator,
    is_maintenance_running,
    run_maintenance_exclusive,
)
from app.services.maintenance.preview import get_maintenance_preview
from app.services.maintenance.purger import archive_purge_cutoff, purge_archives
from app.services.maintenance.record_kinds import RECORD_KINDS, RecordKind, get_kind
from app.services.maintenance.scheduler import MaintenanceScheduler, SchedulerState, compute_next_run

__all__ = [
    # Configuration
    "RetentionConfiguration",
    "DEFAULT_CONFIGURATION",
    "get_retention_configuration",
    "ensure_configuration",
    "update_configuration",
    # Record kinds
    "RecordKind",
    "RECORD_KINDS",
    "get_kind",
    # Migrate / purge
    "migrate_records",
    "purge_archives",
    "archive_purge_cutoff",
    "BatchRunResult",
    # Logs
    "LogSweeper",
    "SweepResult",
    # Orchestration
    "MaintenanceOrchestrator",
    "MaintenanceResult",
    "build_orchestrator",
    "run_maintenance_exclusive",
    "is_maintenance_running",
    "get_maintenance_preview",
    # Scheduling
    "MaintenanceScheduler",
    "SchedulerState",
    "compute_next_run",
    # Errors
    "MaintenanceError",
    "BatchStepError",
    "MaintenanceInProgressError",
]
