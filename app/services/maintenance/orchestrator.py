# app/services/maintenance/orchestrator.py
"""
Maintenance orchestrator.

Runs one maintenance cycle:
1. Read the retention configuration snapshot (once)
2. If archival is enabled: migrate every record kind, then purge every archive kind
3. Always sweep stale log files, even when archival is disabled
4. Return one aggregated MaintenanceResult

The is_archival_enabled flag only gates step 2, never the log sweep.

Failures never escape run(). A failed step marks the result as failed,
records the error, and keeps every count accumulated so far. Batches that
committed before the failure are not rolled back.
"""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.logging_config import log_step
from app.services.maintenance.config_service import RetentionConfiguration, get_retention_configuration
from app.services.maintenance.errors import BatchStepError, MaintenanceInProgressError
from app.services.maintenance.log_sweeper import LogSweeper, SweepResult
from app.services.maintenance.migrator import migrate_records
from app.services.maintenance.purger import archive_purge_cutoff, purge_archives
from app.services.maintenance.record_kinds import RECORD_KINDS, RecordKind
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

DEFAULT_ARCHIVED_BY = "System Archival"


@dataclass
class MaintenanceResult:
    """Aggregated outcome of one maintenance cycle."""
    archived: dict[str, int] = field(default_factory=dict)
    purged: dict[str, int] = field(default_factory=dict)
    log_files_deleted: int = 0
    bytes_freed: int = 0
    success: bool = True
    error_message: str | None = None
    cancelled: bool = False
    triggered_by: str = "scheduler"
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @classmethod
    def empty(cls, kinds: tuple[RecordKind, ...], triggered_by: str, started_at: datetime) -> "MaintenanceResult":
        """A result with a zero count for every kind, so the shape never varies."""
        return cls(
            archived={kind.name: 0 for kind in kinds},
            purged={kind.name: 0 for kind in kinds},
            triggered_by=triggered_by,
            started_at=started_at,
        )

    @property
    def total_archived(self) -> int:
        return sum(self.archived.values())

    @property
    def total_purged(self) -> int:
        return sum(self.purged.values())

    def to_dict(self) -> dict:
        return {
            "archived": dict(self.archived),
            "purged": dict(self.purged),
            "total_archived": self.total_archived,
            "total_purged": self.total_purged,
            "log_files_deleted": self.log_files_deleted,
            "bytes_freed": self.bytes_freed,
            "success": self.success,
            "error_message": self.error_message,
            "cancelled": self.cancelled,
            "triggered_by": self.triggered_by,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
        }


class MaintenanceOrchestrator:
    """
    Sequences migrator -> purger -> log sweeper for one cycle.

    Used by both the daily scheduler and the admin trigger, so both produce
    the same behaviour and the same result shape.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        kinds: tuple[RecordKind, ...] = RECORD_KINDS,
        log_sweeper: Optional[LogSweeper] = None,
        clock: Callable[[], datetime] = utcnow,
        archived_by: str = DEFAULT_ARCHIVED_BY,
    ):
        self.session_factory = session_factory
        self.kinds = kinds
        self.log_sweeper = log_sweeper or LogSweeper(clock=clock)
        self.clock = clock
        self.archived_by = archived_by

    def run(
        self,
        cancel_event: Optional[threading.Event] = None,
        triggered_by: str = "scheduler",
    ) -> MaintenanceResult:
        """Run one full maintenance cycle. Never raises."""
        result = MaintenanceResult.empty(self.kinds, triggered_by, self.clock())
        start_time = time.time()

        logger.info(
            f"Starting maintenance process (triggered by {triggered_by})",
            extra={"event": "maintenance_start", "triggered_by": triggered_by},
        )

        try:
            config = self._load_configuration()

            if not config.enabled:
                logger.info("Data archival is disabled in configuration. Skipping archival steps.")
            else:
                with log_step("archive"):
                    self._run_archival(config, result, cancel_event)
                if not result.cancelled:
                    with log_step("purge"):
                        self._run_purge(config, result, cancel_event)

            if result.cancelled or _is_cancelled(cancel_event):
                result.cancelled = True
                logger.info("Maintenance cancelled, skipping remaining steps")
            else:
                with log_step("log_sweep"):
                    sweep = self._run_log_sweep(config.log_retention_days, cancel_event)
                result.log_files_deleted = sweep.files_deleted
                result.bytes_freed = sweep.bytes_freed

            logger.info(
                f"Maintenance completed. Archived: {result.archived}. Purged: {result.purged}. "
                f"Log files deleted: {result.log_files_deleted} "
                f"({result.bytes_freed / (1024 * 1024):.2f} MB freed)",
                extra={
                    "event": "maintenance_complete",
                    "duration_ms": int((time.time() - start_time) * 1000),
                    "files_deleted": result.log_files_deleted,
                    "bytes_freed": result.bytes_freed,
                },
            )

        except BatchStepError as e:
            counts = result.archived if e.step == "archive" else result.purged
            counts[e.kind] = e.processed
            result.success = False
            result.error_message = str(e)
            logger.error(f"Error during maintenance process: {e}", exc_info=True)

        except Exception as e:
            result.success = False
            result.error_message = str(e)
            logger.error(f"Error during maintenance process: {e}", exc_info=True)

        result.finished_at = self.clock()
        return result

    def _load_configuration(self) -> RetentionConfiguration:
        db = self.session_factory()
        try:
            return get_retention_configuration(db)
        finally:
            db.close()

    def _run_archival(
        self,
        config: RetentionConfiguration,
        result: MaintenanceResult,
        cancel_event: Optional[threading.Event],
    ) -> None:
        now = self.clock()
        for kind in self.kinds:
            period = config.live_retention(kind)
            cutoff = period.cutoff(now)
            logger.info(f"Archival cutoff for {kind.name}: {cutoff.isoformat()} ({period} retention)")

            run = migrate_records(
                self.session_factory,
                kind,
                cutoff,
                config.batch_size,
                self.archived_by,
                cancel_event=cancel_event,
                clock=self.clock,
            )
            result.archived[kind.name] = run.total
            if run.cancelled:
                result.cancelled = True
                return

        logger.info(f"Data archival completed: {result.archived}")

    def _run_purge(
        self,
        config: RetentionConfiguration,
        result: MaintenanceResult,
        cancel_event: Optional[threading.Event],
    ) -> None:
        # Fresh clock reading: the purge cutoff is independent of the archive cutoffs
        cutoff = archive_purge_cutoff(self.clock(), config.archive_retention_years)
        logger.info(
            f"Purging archives older than {cutoff.isoformat()} ({config.archive_retention_years} years retention)"
        )

        for kind in self.kinds:
            run = purge_archives(
                self.session_factory,
                kind,
                cutoff,
                config.batch_size,
                cancel_event=cancel_event,
            )
            result.purged[kind.name] = run.total
            if run.cancelled:
                result.cancelled = True
                return

        logger.info(f"Archive purge completed: {result.purged}")

    def _run_log_sweep(self, retention_days: int, cancel_event: Optional[threading.Event]) -> SweepResult:
        try:
            return self.log_sweeper.sweep(retention_days, cancel_event=cancel_event)
        except Exception as e:
            logger.warning(f"Log cleanup failed (non-fatal): {e}", exc_info=True)
            return SweepResult()


def _is_cancelled(cancel_event: Optional[threading.Event]) -> bool:
    return cancel_event is not None and cancel_event.is_set()


# -----------------------------------------------------------------------------
# Single-runner guard
# -----------------------------------------------------------------------------

_run_lock = threading.Lock()


def is_maintenance_running() -> bool:
    """True while a maintenance cycle holds the runner lock."""
    return _run_lock.locked()


def run_maintenance_exclusive(
    orchestrator: MaintenanceOrchestrator,
    cancel_event: Optional[threading.Event] = None,
    triggered_by: str = "scheduler",
) -> MaintenanceResult:
    """
    Run a cycle unless one is already in progress in this process.

    Raises MaintenanceInProgressError instead of waiting, so the scheduler
    and the admin trigger never run two cycles at once.
    """
    if not _run_lock.acquire(blocking=False):
        raise MaintenanceInProgressError("A maintenance cycle is already running")
    try:
        return orchestrator.run(cancel_event=cancel_event, triggered_by=triggered_by)
    finally:
        _run_lock.release()


def build_orchestrator(session_factory: Callable[[], Session]) -> MaintenanceOrchestrator:
    """Orchestrator wired from process settings (log base dir, archived_by)."""
    from app.config import get_settings

    settings = get_settings()
    return MaintenanceOrchestrator(
        session_factory,
        log_sweeper=LogSweeper(base_dir=settings.LOG_BASE_DIR),
        archived_by=settings.MAINTENANCE_ARCHIVED_BY,
    )
