# app/services/maintenance/migrator.py
"""
Batch migrator: moves aged live records into their archive table.

One generic loop serves every record kind:
1. Fetch up to batch_size non-deleted rows older than the cutoff, lowest id first
2. Project each row into an archive row (archived_at = batch wall-clock time)
3. Insert the archive rows and delete the live rows in one transaction
4. Stop on an empty or short batch, or when cancellation is requested

Migrated rows no longer exist in the live table, so re-running after a
failure or cancellation simply picks up where the last committed batch left
off. No checkpoint state is kept.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.services.maintenance.errors import BatchStepError
from app.services.maintenance.record_kinds import RecordKind
from app.services.maintenance.store import batch_transaction
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)


@dataclass
class BatchRunResult:
    """Outcome of running one migrator or purger to exhaustion."""
    kind: str
    total: int = 0
    batch_sizes: list[int] = field(default_factory=list)
    cancelled: bool = False

    @property
    def batches(self) -> int:
        return len(self.batch_sizes)


def check_batch_size(batch_size: int) -> None:
    if batch_size < 1:
        raise ValueError(f"batch_size must be at least 1 (got {batch_size})")


def migrate_batch(
    session_factory: Callable[[], Session],
    kind: RecordKind,
    cutoff: datetime,
    batch_size: int,
    archived_by: str,
    archived_at: datetime,
) -> int:
    """
    Move one batch of eligible rows. Returns the number of rows moved.

    The insert of the archive rows and the delete of the live rows commit
    together or not at all.
    """
    with batch_transaction(session_factory) as store:
        rows = store.fetch_eligible(kind, cutoff, batch_size)
        if not rows:
            return 0

        store.insert_archives([kind.project(row, archived_at, archived_by) for row in rows])
        store.delete_live(kind, [row.id for row in rows])
        return len(rows)


def migrate_records(
    session_factory: Callable[[], Session],
    kind: RecordKind,
    cutoff: datetime,
    batch_size: int,
    archived_by: str,
    cancel_event: Optional[threading.Event] = None,
    clock: Callable[[], datetime] = utcnow,
) -> BatchRunResult:
    """
    Migrate every eligible record of one kind, batch by batch.

    Cancellation is honoured between batches only. A failing batch is rolled
    back and raised as BatchStepError; batches committed before it stay.
    """
    check_batch_size(batch_size)
    result = BatchRunResult(kind=kind.name)

    logger.info(
        f"Archiving {kind.label} records created before {cutoff.isoformat()}",
        extra={"event": "migrate_start", "kind": kind.name, "cutoff": cutoff.isoformat()},
    )

    while True:
        if cancel_event is not None and cancel_event.is_set():
            logger.info(f"Archival of {kind.label} cancelled after {result.total} records")
            result.cancelled = True
            break

        try:
            moved = migrate_batch(session_factory, kind, cutoff, batch_size, archived_by, clock())
        except Exception as e:
            logger.error(
                f"Archive batch for {kind.label} failed after {result.total} records: {e}",
                extra={"event": "migrate_failed", "kind": kind.name, "total": result.total},
            )
            raise BatchStepError("archive", kind.name, result.total, e) from e

        if moved == 0:
            break

        result.total += moved
        result.batch_sizes.append(moved)
        logger.info(
            f"Archived {moved} {kind.label} records (total: {result.total})",
            extra={"event": "migrate_batch", "kind": kind.name, "batch_size": moved, "total": result.total},
        )

        if moved < batch_size:
            break

    return result
