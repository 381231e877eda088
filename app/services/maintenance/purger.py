# app/services/maintenance/purger.py
"""
Batch purger: permanently deletes archive rows past the archive retention.

Same loop shape as the migrator, but the predicate is archived_at < cutoff
(exclusive) on the archive table and the action is a plain delete.
"""

import logging
import threading
from collections.abc import Callable
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.services.maintenance.errors import BatchStepError
from app.services.maintenance.migrator import BatchRunResult, check_batch_size
from app.services.maintenance.record_kinds import RecordKind
from app.services.maintenance.store import batch_transaction
from app.utils.clock import subtract_years

logger = logging.getLogger(__name__)


def archive_purge_cutoff(now: datetime, archive_retention_years: int) -> datetime:
    """Archive rows archived strictly before this moment are purged."""
    return subtract_years(now, archive_retention_years)


def purge_batch(
    session_factory: Callable[[], Session],
    kind: RecordKind,
    cutoff: datetime,
    batch_size: int,
) -> int:
    """Delete one batch of expired archive rows. Returns the number deleted."""
    with batch_transaction(session_factory) as store:
        ids = store.fetch_expired_archive_ids(kind, cutoff, batch_size)
        if not ids:
            return 0
        store.delete_archives(kind, ids)
        return len(ids)


def purge_archives(
    session_factory: Callable[[], Session],
    kind: RecordKind,
    cutoff: datetime,
    batch_size: int,
    cancel_event: Optional[threading.Event] = None,
) -> BatchRunResult:
    """Purge every expired archive row of one kind, batch by batch."""
    check_batch_size(batch_size)
    result = BatchRunResult(kind=kind.name)

    logger.info(
        f"Purging {kind.archive_model.__name__} records archived before {cutoff.isoformat()}",
        extra={"event": "purge_start", "kind": kind.name, "cutoff": cutoff.isoformat()},
    )

    while True:
        if cancel_event is not None and cancel_event.is_set():
            logger.info(f"Purge of {kind.archive_model.__name__} cancelled after {result.total} records")
            result.cancelled = True
            break

        try:
            deleted = purge_batch(session_factory, kind, cutoff, batch_size)
        except Exception as e:
            logger.error(
                f"Purge batch for {kind.archive_model.__name__} failed after {result.total} records: {e}",
                extra={"event": "purge_failed", "kind": kind.name, "total": result.total},
            )
            raise BatchStepError("purge", kind.name, result.total, e) from e

        if deleted == 0:
            break

        result.total += deleted
        result.batch_sizes.append(deleted)
        logger.info(
            f"Purged {deleted} {kind.archive_model.__name__} records (total: {result.total})",
            extra={"event": "purge_batch", "kind": kind.name, "batch_size": deleted, "total": result.total},
        )

        if deleted < batch_size:
            break

    return result
